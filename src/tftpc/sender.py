from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import BinaryIO, ClassVar

from .constants import BLOCK_MODULUS, BLOCK_SIZE
from .errors import AckTimeoutExhausted, LocalFileError, ProtocolError
from .packet import Opcode, Packet, encode_data, encode_request, is_ack_for
from .session import Direction, SessionState, TransferSession, remaining_ms

logger = logging.getLogger(__name__)


@dataclass(slots=True, kw_only=True)
class UploadSession(TransferSession):
    """Push ``source`` to the server as ``filename``.

    Every DATA packet is resent unchanged until its ACK arrives or the retry
    budget runs out; the wait grows with each attempt.

    By default the request is not acknowledged before the first block and the
    transfer ends on an empty read, so a source whose length is a multiple of
    512 gets no trailing empty block. ``strict`` waits for ACK 0 and always
    finishes with a short (possibly empty) block, as RFC 1350 servers expect.
    """

    direction: ClassVar[Direction] = Direction.SEND

    source: BinaryIO
    strict: bool = False

    def _exchange(self) -> None:
        request = encode_request(Opcode.WRQ, self.filename, self.mode)
        if self.strict:
            self._deliver(request, 0)
        else:
            self._send(request)
        self._transition(SessionState.REQUEST_SENT)
        self.block = 1

        while True:
            try:
                chunk = self.source.read(BLOCK_SIZE)
            except OSError as exc:
                raise LocalFileError(getattr(self.source, "name", self.filename), str(exc)) from exc
            if not chunk and not self.strict:
                break

            self._transition(SessionState.EXCHANGING)
            self._deliver(encode_data(self.block, chunk), self.block)
            self.result.blocks += 1
            self.result.bytes_transferred += len(chunk)
            logger.debug("block #%d: %d bytes acknowledged", self.block, len(chunk))

            if self.strict and len(chunk) < BLOCK_SIZE:
                break
            self.block = (self.block + 1) % BLOCK_MODULUS

    def _deliver(self, packet: bytes, block: int) -> None:
        for attempt in range(1, self.policy.retries + 1):
            if attempt > 1:
                self.result.retransmits += 1
            self._send(packet)
            if self._wait_for_ack(block, self.policy.timeout_for(attempt)):
                return
            self.result.timeouts += 1
            logger.warning(
                "timeout while waiting for ACK #%d; attempt %d/%d",
                block,
                attempt,
                self.policy.retries,
            )

        raise AckTimeoutExhausted(block, self.policy.retries)

    def _wait_for_ack(self, block: int, timeout_ms: int) -> bool:
        """Wait at most ``timeout_ms`` in total for the ACK of ``block``.

        Stale ACKs and other packets do not extend the wait.
        """
        deadline = time.monotonic() + timeout_ms / 1000.0
        wait_ms: float = timeout_ms
        while True:
            try:
                raw = self._receive(wait_ms, deadline)
            except TimeoutError:
                return False

            if is_ack_for(raw, block):
                return True

            packet = Packet.from_bytes(raw)
            if packet.is_error:
                raise ProtocolError(packet.code, packet.message)
            logger.debug("ignoring opcode %d #%d while waiting for ACK #%d", packet.opcode, packet.block, block)

            wait_ms = remaining_ms(deadline)
            if wait_ms <= 0:
                return False

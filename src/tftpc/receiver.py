from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO, ClassVar

from .constants import BLOCK_MODULUS, BLOCK_SIZE
from .errors import LocalFileError, ProtocolError, TransferStalled
from .packet import Opcode, Packet, encode_ack, encode_request
from .session import Direction, SessionState, TransferSession

logger = logging.getLogger(__name__)


@dataclass(slots=True, kw_only=True)
class DownloadSession(TransferSession):
    """Pull ``filename`` from the server into ``sink``.

    Each round is a single blocking receive bounded by the base timeout.
    There is no per-block retry here: a timeout ends the transfer.
    """

    direction: ClassVar[Direction] = Direction.RECEIVE

    sink: BinaryIO

    def _exchange(self) -> None:
        self._send(encode_request(Opcode.RRQ, self.filename, self.mode))
        self._transition(SessionState.REQUEST_SENT)
        self.block = 1

        while True:
            try:
                raw = self._receive(self.policy.base_timeout_ms)
            except TimeoutError as exc:
                self.result.timeouts += 1
                raise TransferStalled(self.block, self.policy.base_timeout_ms) from exc

            packet = Packet.from_bytes(raw)

            if packet.is_error:
                raise ProtocolError(packet.code, packet.message)

            if not packet.is_data:
                logger.debug("ignoring opcode %d while waiting for block #%d", packet.opcode, self.block)
                continue

            if packet.block != self.block:
                logger.debug("ignoring block #%d; expected #%d", packet.block, self.block)
                continue

            self._transition(SessionState.EXCHANGING)
            self._write(packet.payload)
            self._send(encode_ack(packet.block))
            self.result.blocks += 1
            self.result.bytes_transferred += len(packet.payload)
            logger.debug("block #%d: %d bytes", packet.block, len(packet.payload))

            if len(packet.payload) < BLOCK_SIZE:
                break
            self.block = (self.block + 1) % BLOCK_MODULUS

        try:
            self.sink.flush()
        except OSError as exc:
            raise LocalFileError(self._sink_name, str(exc)) from exc

    @property
    def _sink_name(self) -> str:
        return getattr(self.sink, "name", self.filename)

    def _write(self, payload: bytes) -> None:
        try:
            self.sink.write(payload)
        except OSError as exc:
            raise LocalFileError(self._sink_name, str(exc)) from exc

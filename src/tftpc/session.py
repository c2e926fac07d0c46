from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import ClassVar

from .constants import DEFAULT_RETRIES, DEFAULT_TIMEOUT_MS, MAX_DATAGRAM, MODE_OCTET
from .errors import NetworkError, TransferError
from .net import Address, UdpEndpoint
from .packet import Text

logger = logging.getLogger(__name__)


class Direction(str, enum.Enum):
    SEND = "send"
    RECEIVE = "receive"


class SessionState(enum.Enum):
    IDLE = "idle"
    REQUEST_SENT = "request-sent"
    EXCHANGING = "exchanging-blocks"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """How long to wait for the peer, and how often to try, per block.

    Waits escalate linearly with the attempt number: attempt ``k`` waits
    ``k * base_timeout_ms``.
    """

    base_timeout_ms: int = DEFAULT_TIMEOUT_MS
    retries: int = DEFAULT_RETRIES

    def __post_init__(self) -> None:
        if self.base_timeout_ms <= 0:
            raise ValueError(f"base timeout must be positive: {self.base_timeout_ms}")
        if self.retries < 1:
            raise ValueError(f"retry budget must be at least 1: {self.retries}")

    def timeout_for(self, attempt: int) -> int:
        return self.base_timeout_ms * max(1, attempt)


@dataclass(slots=True)
class TransferResult:
    direction: Direction
    filename: str
    blocks: int = 0
    bytes_transferred: int = 0
    packets_sent: int = 0
    timeouts: int = 0
    retransmits: int = 0
    start_ts: float = field(default_factory=time.monotonic)
    end_ts: float | None = None

    @property
    def duration_s(self) -> float:
        if self.end_ts is None:
            return 0.0
        return max(0.0, self.end_ts - self.start_ts)

    @property
    def throughput_mbps(self) -> float:
        if self.duration_s <= 0:
            return 0.0
        return (self.bytes_transferred * 8 / 1_000_000) / self.duration_s


@dataclass(slots=True, kw_only=True)
class TransferSession:
    """One transfer in one direction over an already-open endpoint.

    Subclasses implement ``_exchange``; ``run`` owns the state machine,
    the result bookkeeping and the failure transition.
    """

    direction: ClassVar[Direction]

    udp: UdpEndpoint
    server: Address
    filename: str
    mode: Text = MODE_OCTET
    policy: RetryPolicy = field(default_factory=RetryPolicy)

    state: SessionState = field(default=SessionState.IDLE, init=False)
    peer: Address | None = field(default=None, init=False)
    block: int = field(default=0, init=False)
    result: TransferResult = field(init=False)

    def run(self) -> TransferResult:
        self.result = TransferResult(direction=self.direction, filename=self.filename)
        logger.info("%s %s with %s:%d", self.direction.value, self.filename, *self.server)
        try:
            self._exchange()
        except TransferError:
            self._transition(SessionState.FAILED)
            raise
        except OSError as exc:
            self._transition(SessionState.FAILED)
            raise NetworkError(str(exc)) from exc

        self._transition(SessionState.COMPLETED)
        self.result.end_ts = time.monotonic()
        logger.info(
            "done; %s %d bytes in %d blocks (%.3fs, timeouts=%d)",
            self.direction.value,
            self.result.bytes_transferred,
            self.result.blocks,
            self.result.duration_s,
            self.result.timeouts,
        )
        return self.result

    def _exchange(self) -> None:
        raise NotImplementedError

    def _transition(self, state: SessionState) -> None:
        if state is not self.state:
            logger.debug("state %s -> %s", self.state.value, state.value)
            self.state = state

    def _send(self, data: bytes) -> None:
        self.udp.sendto(data, self.peer or self.server)
        self.result.packets_sent += 1

    def _receive(self, timeout_ms: float, deadline: float | None = None) -> bytes:
        """Block for the next datagram from the server; raises ``TimeoutError``.

        The first reply fixes the peer address; datagrams from anywhere else
        are dropped. The whole call, dropped datagrams included, ends by
        ``deadline`` (default: ``timeout_ms`` from now).
        """
        if deadline is None:
            deadline = time.monotonic() + timeout_ms / 1000.0
        while True:
            self.udp.settimeout(timeout_ms)
            raw, addr = self.udp.recvfrom(MAX_DATAGRAM)
            if self.peer is None and addr[0] == self.server[0]:
                self.peer = addr
                logger.debug("peer is %s:%d", *addr)
            if addr == self.peer:
                return raw

            logger.debug("ignoring %d bytes from unknown sender %s:%d", len(raw), *addr)
            timeout_ms = remaining_ms(deadline)
            if timeout_ms <= 0:
                raise TimeoutError("timed out")


def remaining_ms(deadline: float) -> float:
    return (deadline - time.monotonic()) * 1000.0

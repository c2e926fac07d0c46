from __future__ import annotations

import logging
import random
import socket
import time
from dataclasses import dataclass
from typing import Tuple

from .constants import MAX_DATAGRAM
from .errors import HostResolutionError

logger = logging.getLogger(__name__)

Address = Tuple[str, int]


def resolve_host(host: str) -> str:
    try:
        return socket.gethostbyname(host)
    except (socket.gaierror, UnicodeError) as exc:
        raise HostResolutionError(host, str(exc)) from exc


@dataclass(frozen=True, slots=True)
class Impairment:
    loss_rate: float = 0.0
    delay_ms: int = 0

    def should_drop(self) -> bool:
        return random.random() < self.loss_rate

    def sleep_if_needed(self) -> None:
        if self.delay_ms > 0:
            time.sleep(self.delay_ms / 1000.0)


class UdpEndpoint:
    """A client-side datagram socket with an adjustable read timeout."""

    def __init__(self, sock: socket.socket, impairment: Impairment | None = None):
        self.sock = sock
        self.impairment = impairment or Impairment()

    @classmethod
    def sending(
        cls,
        timeout_ms: int = 0,
        impairment: Impairment | None = None,
    ) -> "UdpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        endpoint = cls(sock, impairment)
        if timeout_ms > 0:
            endpoint.settimeout(timeout_ms)
        return endpoint

    def settimeout(self, timeout_ms: int) -> None:
        self.sock.settimeout(timeout_ms / 1000.0)

    def sendto(self, data: bytes, addr: Address) -> None:
        if self.impairment.should_drop():
            logger.debug("dropped outbound %d bytes to %s:%d", len(data), *addr)
            return
        self.impairment.sleep_if_needed()
        self.sock.sendto(data, addr)

    def recvfrom(self, bufsize: int = MAX_DATAGRAM) -> Tuple[bytes, Address]:
        while True:
            data, addr = self.sock.recvfrom(bufsize)
            if self.impairment.should_drop():
                logger.debug("dropped inbound %d bytes from %s:%d", len(data), *addr)
                continue
            self.impairment.sleep_if_needed()
            return data, addr

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "UdpEndpoint":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

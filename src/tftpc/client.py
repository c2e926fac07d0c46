from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Optional

from .constants import DEFAULT_SERVER_PORT
from .errors import FileNotFound, LocalFileError, NetworkError
from .net import Address, Impairment, UdpEndpoint, resolve_host
from .receiver import DownloadSession
from .sender import UploadSession
from .session import Direction, RetryPolicy, TransferResult, TransferSession

logger = logging.getLogger(__name__)

EndpointFactory = Callable[[RetryPolicy], UdpEndpoint]
Resolver = Callable[[str], str]


@dataclass(frozen=True, slots=True)
class TransferRequest:
    """Everything needed to run one transfer.

    ``filename`` is the name on the server. ``local_path`` defaults to it.
    """

    server: str
    filename: str
    direction: Direction
    port: int = DEFAULT_SERVER_PORT
    local_path: Optional[str] = None
    policy: RetryPolicy = field(default_factory=RetryPolicy)
    strict: bool = False
    impairment: Optional[Impairment] = None

    @property
    def path(self) -> str:
        return self.local_path or self.filename


def make_session(direction: Direction, **kwargs) -> TransferSession:
    """Build the session variant for ``direction``.

    ``sink`` is taken by downloads, ``source`` and ``strict`` by uploads.
    """
    if Direction(direction) is Direction.RECEIVE:
        return DownloadSession(**kwargs)
    return UploadSession(**kwargs)


class TransferClient:
    def __init__(
        self,
        endpoint_factory: Optional[EndpointFactory] = None,
        resolver: Resolver = resolve_host,
    ):
        self.endpoint_factory = endpoint_factory
        self.resolver = resolver

    def _open_endpoint(self, request: TransferRequest) -> UdpEndpoint:
        if self.endpoint_factory is not None:
            return self.endpoint_factory(request.policy)
        try:
            return UdpEndpoint.sending(
                timeout_ms=request.policy.base_timeout_ms,
                impairment=request.impairment,
            )
        except OSError as exc:
            raise NetworkError(str(exc)) from exc

    def execute(self, request: TransferRequest) -> TransferResult:
        address = (self.resolver(request.server), request.port)
        logger.debug("resolved %s to %s:%d", request.server, *address)
        if Direction(request.direction) is Direction.SEND:
            return self._upload(request, address)
        return self._download(request, address)

    def _upload(self, request: TransferRequest, address: Address) -> TransferResult:
        source = open_source(request.path)
        with source, self._open_endpoint(request) as udp:
            session = make_session(
                Direction.SEND,
                udp=udp,
                server=address,
                filename=request.filename,
                policy=request.policy,
                source=source,
                strict=request.strict,
            )
            return session.run()

    def _download(self, request: TransferRequest, address: Address) -> TransferResult:
        with open_sink(request.path) as sink, self._open_endpoint(request) as udp:
            session = make_session(
                Direction.RECEIVE,
                udp=udp,
                server=address,
                filename=request.filename,
                policy=request.policy,
                sink=sink,
            )
            return session.run()


def receive_file(server: str, filename: str, **options) -> TransferResult:
    return TransferClient().execute(
        TransferRequest(server=server, filename=filename, direction=Direction.RECEIVE, **options)
    )


def send_file(server: str, filename: str, **options) -> TransferResult:
    return TransferClient().execute(
        TransferRequest(server=server, filename=filename, direction=Direction.SEND, **options)
    )


def open_source(path: str) -> BinaryIO:
    try:
        return open(path, "rb")
    except FileNotFoundError as exc:
        raise FileNotFound(path) from exc
    except OSError as exc:
        raise LocalFileError(path, exc.strerror or str(exc)) from exc


def open_sink(path: str) -> BinaryIO:
    try:
        return open(path, "wb")
    except OSError as exc:
        raise LocalFileError(path, exc.strerror or str(exc)) from exc

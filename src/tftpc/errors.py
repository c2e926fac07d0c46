from __future__ import annotations


class TransferError(Exception):
    """Base class for every failure a transfer can surface to its caller."""


class HostResolutionError(TransferError):
    def __init__(self, host: str, reason: str = ""):
        self.host = host
        detail = f": {reason}" if reason else ""
        super().__init__(f"could not resolve host {host!r}{detail}")


class FileNotFound(TransferError, FileNotFoundError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"no file found: {path}")


class EncodingError(TransferError, ValueError):
    pass


class DecodingError(TransferError, ValueError):
    pass


class ProtocolError(TransferError):
    """The server answered with an ERROR packet."""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(f"error from server (code {code}): {message}")


class AckTimeoutExhausted(TransferError):
    def __init__(self, block: int, attempts: int):
        self.block = block
        self.attempts = attempts
        super().__init__(f"failed to receive valid ACK for block #{block} after {attempts} attempts")


class TransferStalled(TransferError):
    """No packet arrived within the read timeout while downloading."""

    def __init__(self, block: int, timeout_ms: int):
        self.block = block
        self.timeout_ms = timeout_ms
        super().__init__(f"timed out after {timeout_ms} ms waiting for block #{block}")


class LocalFileError(TransferError, OSError):
    """The local file could not be opened, read or written."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"local file {path}: {reason}")


class NetworkError(TransferError, OSError):
    """The socket itself failed (unreachable network, closed endpoint, ...)."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"network error: {reason}")

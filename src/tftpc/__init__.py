"""Lock-step file transfer client (TFTP-style) over UDP.

Layout mirrors the protocol's layers:
- ``packet``: framing of request, data, ack and error packets
- ``receiver`` / ``sender``: one state machine per transfer direction
- ``client``: resolves the server, owns the socket and file, runs a session
"""

from .client import TransferClient, TransferRequest, receive_file, send_file
from .errors import (
    AckTimeoutExhausted,
    DecodingError,
    EncodingError,
    FileNotFound,
    HostResolutionError,
    ProtocolError,
    TransferError,
    TransferStalled,
)
from .session import Direction, RetryPolicy, TransferResult

__all__ = [
    "AckTimeoutExhausted",
    "DecodingError",
    "Direction",
    "EncodingError",
    "FileNotFound",
    "HostResolutionError",
    "ProtocolError",
    "RetryPolicy",
    "TransferClient",
    "TransferError",
    "TransferRequest",
    "TransferResult",
    "TransferStalled",
    "receive_file",
    "send_file",
]

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import Tuple, Union

from .constants import (
    ACK,
    BLOCK_MODULUS,
    BLOCK_SIZE,
    DATA,
    ERROR,
    HEADER_FORMAT,
    HEADER_LEN,
    MODE_OCTET,
    RRQ,
    WRQ,
)
from .errors import DecodingError, EncodingError

Text = Union[str, bytes]


class Opcode(enum.IntEnum):
    RRQ = RRQ
    WRQ = WRQ
    DATA = DATA
    ACK = ACK
    ERROR = ERROR


def _as_bytes(value: Text, field: str) -> bytes:
    raw = value.encode("utf-8") if isinstance(value, str) else bytes(value)
    if b"\x00" in raw:
        raise EncodingError(f"{field} must not contain a zero byte")
    return raw


def _check_block(block: int) -> None:
    if not 0 <= block < BLOCK_MODULUS:
        raise EncodingError(f"block number out of range: {block}")


def encode_request(opcode: int, filename: Text, mode: Text = MODE_OCTET) -> bytes:
    if opcode not in (Opcode.RRQ, Opcode.WRQ):
        raise EncodingError(f"not a request opcode: {opcode}")
    name = _as_bytes(filename, "filename")
    if not name:
        raise EncodingError("filename must not be empty")
    return struct.pack("!H", opcode) + name + b"\x00" + _as_bytes(mode, "mode") + b"\x00"


def encode_data(block: int, payload: bytes) -> bytes:
    _check_block(block)
    if len(payload) > BLOCK_SIZE:
        raise EncodingError(f"payload too large: {len(payload)}")
    return struct.pack(HEADER_FORMAT, Opcode.DATA, block) + payload


def encode_ack(block: int) -> bytes:
    _check_block(block)
    return struct.pack(HEADER_FORMAT, Opcode.ACK, block)


def encode_error(code: int, message: Text) -> bytes:
    if not 0 <= code < BLOCK_MODULUS:
        raise EncodingError(f"error code out of range: {code}")
    return struct.pack(HEADER_FORMAT, Opcode.ERROR, code) + _as_bytes(message, "message") + b"\x00"


def decode_header(raw: bytes) -> Tuple[int, int]:
    """Return ``(opcode, block_or_code)``.

    Only the low byte of the opcode field is read, so a stray high byte does
    not change how a packet is classified.
    """
    if len(raw) < HEADER_LEN:
        raise DecodingError(f"datagram too small to be a valid packet: {len(raw)} bytes")
    (field,) = struct.unpack_from("!H", raw, 2)
    return raw[1], field


def is_ack_for(raw: bytes, expected_block: int) -> bool:
    if len(raw) < HEADER_LEN:
        return False
    opcode, block = decode_header(raw)
    return opcode == Opcode.ACK and block == expected_block


@dataclass(frozen=True, slots=True)
class Packet:
    opcode: int
    block: int
    payload: bytes = b""
    message: str = ""

    @property
    def is_data(self) -> bool:
        return self.opcode == Opcode.DATA

    @property
    def is_error(self) -> bool:
        return self.opcode == Opcode.ERROR

    @property
    def code(self) -> int:
        return self.block

    @staticmethod
    def from_bytes(raw: bytes) -> "Packet":
        opcode, field = decode_header(raw)
        body = raw[HEADER_LEN:]

        if opcode == Opcode.ERROR:
            text = body.split(b"\x00", 1)[0]
            return Packet(opcode=opcode, block=field, message=text.decode("utf-8", errors="replace"))

        if opcode == Opcode.DATA:
            return Packet(opcode=opcode, block=field, payload=body)

        return Packet(opcode=opcode, block=field)

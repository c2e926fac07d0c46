from __future__ import annotations

HEADER_FORMAT = "!HH"  # opcode, block (or error code)
HEADER_LEN = 4

RRQ = 1
WRQ = 2
DATA = 3
ACK = 4
ERROR = 5

BLOCK_SIZE = 512
MAX_DATAGRAM = HEADER_LEN + BLOCK_SIZE
BLOCK_MODULUS = 1 << 16

MODE_OCTET = b"octet"

DEFAULT_SERVER_PORT = 1738
DEFAULT_TIMEOUT_MS = 10_000
DEFAULT_RETRIES = 3

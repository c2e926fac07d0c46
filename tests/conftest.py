from __future__ import annotations

import socket
import struct
import threading

import pytest

from tftpc.packet import encode_ack, encode_data, encode_error

SERVER = ("127.0.0.1", 1738)
TIMEOUT = object()


class ScriptedEndpoint:
    """Stands in for UdpEndpoint; replays canned replies, records everything sent.

    A reply is raw bytes (from SERVER), a ``(bytes, addr)`` tuple, or TIMEOUT.
    Running out of replies also times out.
    """

    def __init__(self, replies=()):
        self.replies = list(replies)
        self.sent: list[tuple[bytes, tuple[str, int]]] = []
        self.timeouts: list[int] = []
        self.closed = False

    def settimeout(self, timeout_ms: int) -> None:
        self.timeouts.append(timeout_ms)

    def sendto(self, data: bytes, addr) -> None:
        self.sent.append((data, addr))

    def recvfrom(self, bufsize: int = 516):
        if not self.replies:
            raise TimeoutError("timed out")
        reply = self.replies.pop(0)
        if reply is TIMEOUT:
            raise TimeoutError("timed out")
        if isinstance(reply, tuple):
            return reply
        return reply, SERVER

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def packets(self) -> list[bytes]:
        return [data for data, _ in self.sent]


class LoopbackServer(threading.Thread):
    """Minimal in-memory peer on 127.0.0.1 answering from its listening port."""

    def __init__(self):
        super().__init__(daemon=True)
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.settimeout(0.05)
        self.port = self.sock.getsockname()[1]
        self.files: dict[str, bytes] = {}
        self._uploads: dict = {}
        self._downloads: dict = {}
        self._stop_event = threading.Event()

    def run(self) -> None:
        while not self._stop_event.is_set():
            try:
                raw, addr = self.sock.recvfrom(516)
            except TimeoutError:
                continue
            self.handle(raw, addr)

    def stop(self) -> None:
        self._stop_event.set()
        self.join(timeout=2.0)
        self.sock.close()

    def _block(self, data: bytes, block: int) -> bytes:
        return data[(block - 1) * 512 : block * 512]

    def handle(self, raw: bytes, addr) -> None:
        opcode, field = struct.unpack("!HH", raw[:4])
        if opcode in (1, 2):
            name = raw[2:].split(b"\x00", 1)[0].decode()
            if opcode == 2:
                self._uploads[addr] = [name, bytearray(), 1]
                self.files[name] = b""
                self.sock.sendto(encode_ack(0), addr)
            elif name not in self.files:
                self.sock.sendto(encode_error(1, "File not found"), addr)
            else:
                self._downloads[addr] = [self.files[name], 1]
                self.sock.sendto(encode_data(1, self._block(self.files[name], 1)), addr)
        elif opcode == 3 and addr in self._uploads:
            upload = self._uploads[addr]
            if field == upload[2]:
                upload[1] += raw[4:]
                upload[2] += 1
                self.files[upload[0]] = bytes(upload[1])
            self.sock.sendto(encode_ack(field), addr)
            if len(raw) - 4 < 512:
                del self._uploads[addr]
        elif opcode == 4 and addr in self._downloads:
            download = self._downloads[addr]
            if field != download[1]:
                return
            if len(self._block(download[0], field)) < 512:
                del self._downloads[addr]
                return
            download[1] += 1
            self.sock.sendto(encode_data(download[1], self._block(download[0], download[1])), addr)


@pytest.fixture
def loopback_server():
    server = LoopbackServer()
    server.start()
    yield server
    server.stop()

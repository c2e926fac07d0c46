from __future__ import annotations

import argparse
import json
import logging
import sys

from .client import TransferClient, TransferRequest
from .constants import DEFAULT_RETRIES, DEFAULT_SERVER_PORT, DEFAULT_TIMEOUT_MS
from .errors import TransferError
from .net import Impairment
from .session import Direction, RetryPolicy

logger = logging.getLogger(__name__)


def run_transfer(args: argparse.Namespace, direction: Direction) -> int:
    request = TransferRequest(
        server=args.host,
        filename=args.file,
        direction=direction,
        port=args.port,
        local_path=args.local,
        policy=RetryPolicy(base_timeout_ms=args.timeout_ms, retries=getattr(args, "retries", DEFAULT_RETRIES)),
        strict=getattr(args, "strict", False),
        impairment=Impairment(args.loss_rate, args.delay_ms),
    )
    try:
        result = TransferClient().execute(request)
    except TransferError as exc:
        logger.error("%s failed: %s", direction.value, exc)
        return 1

    payload = {
        "direction": result.direction.value,
        "file": result.filename,
        "bytes": result.bytes_transferred,
        "blocks": result.blocks,
        "packets": result.packets_sent,
        "seconds": result.duration_s,
        "mbps": result.throughput_mbps,
        "timeouts": result.timeouts,
        "retransmits": result.retransmits,
    }
    print(json.dumps(payload, indent=2) if args.json else payload)
    return 0


def cmd_get(args: argparse.Namespace) -> int:
    return run_transfer(args, Direction.RECEIVE)


def cmd_put(args: argparse.Namespace) -> int:
    return run_transfer(args, Direction.SEND)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="tftpc", description="Lock-step file transfer client over UDP.")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(x: argparse.ArgumentParser) -> None:
        x.add_argument("host", help="server host name or IP address")
        x.add_argument("file", help="file name on the server")
        x.add_argument("--port", type=int, default=DEFAULT_SERVER_PORT)
        x.add_argument("--local", default=None, help="local path (defaults to FILE)")
        x.add_argument("--timeout-ms", type=int, default=DEFAULT_TIMEOUT_MS)
        x.add_argument("--loss-rate", type=float, default=0.0, help="simulate packet loss")
        x.add_argument("--delay-ms", type=int, default=0, help="simulate per-packet delay")
        x.add_argument("--json", action="store_true")

    get = sub.add_parser("get", help="read a file from the server")
    add_common(get)
    get.set_defaults(func=cmd_get)

    put = sub.add_parser("put", help="write a file to the server")
    add_common(put)
    put.add_argument("--retries", type=int, default=DEFAULT_RETRIES, help="attempts per block")
    put.add_argument("--strict", action="store_true", help="RFC 1350 handshake and final block")
    put.set_defaults(func=cmd_put)

    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(message)s",
        stream=sys.stderr,
    )
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

import json

import pytest

from tftpc.cli import build_parser, main


def test_parser_defaults():
    args = build_parser().parse_args(["put", "10.0.0.5", "notes.txt"])
    assert args.port == 1738
    assert args.timeout_ms == 10_000
    assert args.retries == 3
    assert args.local is None
    assert not args.strict


def test_get_prints_metrics(loopback_server, tmp_path, capsys):
    loopback_server.files["notes.txt"] = b"hello\n" * 100
    out = tmp_path / "notes.txt"

    code = main(
        [
            "get",
            "127.0.0.1",
            "notes.txt",
            "--port",
            str(loopback_server.port),
            "--local",
            str(out),
            "--timeout-ms",
            "2000",
            "--json",
        ]
    )

    assert code == 0
    assert out.read_bytes() == b"hello\n" * 100
    payload = json.loads(capsys.readouterr().out)
    assert payload["bytes"] == 600
    assert payload["blocks"] == 2
    assert payload["packets"] == 3


def test_put_missing_file_fails(tmp_path):
    assert main(["put", "127.0.0.1", "x.bin", "--local", str(tmp_path / "missing.bin")]) == 1


def test_get_rejects_upload_only_flags():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["get", "10.0.0.5", "notes.txt", "--strict"])


def test_get_into_missing_directory_fails(tmp_path):
    target = tmp_path / "no" / "dir" / "f"
    assert main(["get", "127.0.0.1", "f", "--local", str(target), "--timeout-ms", "50"]) == 1

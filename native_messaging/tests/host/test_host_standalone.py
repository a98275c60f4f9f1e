"""Tests that run the echo host as a real process over pipes.

The browser starts the host with framed JSON on stdin and reads
framed replies from stdout. These tests do the same, so nothing
is mocked: streams, threads and exit codes are all real.
"""
from __future__ import annotations

import json
import os
import struct
import subprocess
import sys
from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parents[3]


def _frame(value: object) -> bytes:
    body = json.dumps(value).encode("utf-8")
    return struct.pack("=I", len(body)) + body


def _raw_frame(body: bytes) -> bytes:
    return struct.pack("=I", len(body)) + body


def _frames(data: bytes) -> list[object]:
    out: list[object] = []
    offset = 0
    while offset < len(data):
        (length,) = struct.unpack("=I", data[offset : offset + 4])
        body = data[offset + 4 : offset + 4 + length]
        out.append(json.loads(body))
        offset += 4 + length
    return out


def _run_host(stdin_data: bytes) -> subprocess.CompletedProcess[bytes]:
    env = {
        k: v for k, v in os.environ.items()
        if not k.startswith("NATIVE_MESSAGING_")
    }
    env["PYTHONPATH"] = os.pathsep.join(
        p for p in (str(_REPO_ROOT), env.get("PYTHONPATH", "")) if p
    )
    return subprocess.run(
        [sys.executable, "-m", "native_messaging.host.main"],
        capture_output=True,
        timeout=20,
        check=False,
        env=env,
        input=stdin_data,
    )


class TestHostStandalone:
    """Tests for the echo host process."""

    def test_empty_stdin_exits_0(self) -> None:
        """Closing stdin immediately is a clean disconnect."""
        result = _run_host(b"")
        assert result.returncode == 0, result.stderr.decode()
        assert result.stdout == b""

    def test_echoes_every_request(self) -> None:
        """Each framed request gets one framed reply, in order."""
        requests = [{"hello": "world"}, [1, 2, 3], "text", {"n": None}]
        result = _run_host(b"".join(_frame(r) for r in requests))
        assert result.returncode == 0, result.stderr.decode()
        assert _frames(result.stdout) == [
            {"success": True, "echo": r} for r in requests
        ]

    def test_bad_json_gets_error_reply(self) -> None:
        """A non-JSON payload is answered, not fatal."""
        body = b"{not json"
        stdin_data = struct.pack("=I", len(body)) + body + _frame({"ok": 1})
        result = _run_host(stdin_data)
        assert result.returncode == 0, result.stderr.decode()
        replies = _frames(result.stdout)
        assert replies[0]["success"] is False  # type: ignore[index]
        assert replies[1] == {"success": True, "echo": {"ok": 1}}

    def test_nan_and_deep_nesting_get_error_replies(self) -> None:
        """NaN, too-deep nesting and infinite numbers get error replies."""
        stdin_data = (
            _raw_frame(b"[NaN]")
            + _raw_frame(b"[" * 100_000)
            + _raw_frame(b"1e999")
            + _frame("after")
        )
        result = _run_host(stdin_data)
        assert result.returncode == 0, result.stderr.decode()
        replies = _frames(result.stdout)
        assert [r["success"] for r in replies] == [False, False, False, True]  # type: ignore[index]
        assert replies[3] == {"success": True, "echo": "after"}

    def test_oversized_echo_gets_error_reply(self) -> None:
        """A valid request whose echo exceeds 1 MiB is answered with an error."""
        result = _run_host(_frame("a" * 1_100_000) + _frame("small"))
        assert result.returncode == 0, result.stderr.decode()
        replies = _frames(result.stdout)
        assert replies[0]["success"] is False  # type: ignore[index]
        assert "max 1048576" in replies[0]["error"]  # type: ignore[index]
        assert replies[1] == {"success": True, "echo": "small"}

    def test_oversized_frame_exits_1(self) -> None:
        """A length over the 64 MiB cap fails with a stderr diagnostic."""
        stdin_data = struct.pack("=I", 64 * 1024 * 1024 + 1)
        result = _run_host(stdin_data)
        assert result.returncode == 1
        assert result.stdout == b""
        assert b"incoming native message is" in result.stderr

    def test_truncated_body_exits_1(self) -> None:
        """A body cut short is an error, unlike a cut-short prefix."""
        result = _run_host(struct.pack("=I", 10) + b"abc")
        assert result.returncode == 1
        assert b"unexpected end of stream" in result.stderr

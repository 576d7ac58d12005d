"""Test doubles and frame helpers shared by the host tests."""

import json
import struct

from pigeon.services.tmux_bridge import SendResult, SessionListResult, TmuxBridgeErrorType


class FakeTmuxBridge:
    """In-memory stand-in for TmuxBridge.

    Holds a list of session names (or None for "no server running") and
    records the text typed into each session.
    """

    def __init__(self, sessions=None):
        self.sessions = sessions
        self.typed: dict[str, list[str]] = {}
        self.list_calls = 0

    def list_sessions(self) -> SessionListResult:
        self.list_calls += 1
        if self.sessions is None:
            return SessionListResult(
                success=False,
                error_type=TmuxBridgeErrorType.NO_SERVER,
                error_message="tmux server is not running",
            )
        return SessionListResult(success=True, sessions=tuple(self.sessions))

    def send_text(self, session: str, text: str) -> SendResult:
        if self.sessions is None:
            return SendResult(
                success=False,
                error_type=TmuxBridgeErrorType.NO_SERVER,
                error_message=f"{session} not found: tmux server is not running",
            )
        if session not in self.sessions:
            return SendResult(
                success=False,
                error_type=TmuxBridgeErrorType.SESSION_NOT_FOUND,
                error_message=f"{session} not found",
            )
        self.typed.setdefault(session, []).append(text)
        return SendResult(success=True)


def encode_frame(payload) -> bytes:
    """Frame a payload the way the browser does. Bytes are framed as-is."""
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
    return struct.pack("<I", len(body)) + body


def decode_frames(raw: bytes) -> list[dict]:
    """Split a captured stdout buffer into decoded frames."""
    frames = []
    pos = 0
    while pos < len(raw):
        (length,) = struct.unpack("<I", raw[pos:pos + 4])
        frames.append(json.loads(raw[pos + 4:pos + 4 + length].decode("utf-8")))
        pos += 4 + length
    return frames

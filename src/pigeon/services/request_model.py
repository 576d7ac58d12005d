"""Typed requests and responses exchanged with the browser extension.

A request is exactly one of SendRequest or ListSessionsRequest, selected by
the ``action`` field. Anything else is rejected during decode; no field is
ever filled in with a guessed value.
"""

from dataclasses import dataclass
from typing import Any, Union

ACTION_SEND = "send"
ACTION_LIST_SESSIONS = "list-sessions"

VALID_SIDES = ("old", "new")

UNKNOWN_ACTION_ERROR = "unknown action"


class RequestDecodeError(Exception):
    """Raised when a message does not describe a valid request.

    The exception message is the error string returned to the caller.
    """


@dataclass
class SendRequest:
    """Deliver a code selection (and optional question) to a tmux session."""

    file: str
    code: str
    tmux_target: str
    question: str = ""
    start_line: int | None = None
    end_line: int | None = None
    side: str | None = None
    debug_html: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "action": ACTION_SEND,
            "file": self.file,
            "code": self.code,
            "question": self.question,
            "tmux_target": self.tmux_target,
        }
        for key in ("start_line", "end_line", "side", "debug_html"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass
class ListSessionsRequest:
    """Enumerate the tmux sessions that can be targeted."""

    def to_dict(self) -> dict[str, Any]:
        return {"action": ACTION_LIST_SESSIONS}


Request = Union[SendRequest, ListSessionsRequest]


@dataclass
class Response:
    """Reply to exactly one request."""

    ok: bool
    sessions: list[str] | None = None
    error: str | None = None

    @classmethod
    def success(cls) -> "Response":
        return cls(ok=True)

    @classmethod
    def sessions_list(cls, sessions: list[str]) -> "Response":
        return cls(ok=True, sessions=list(sessions))

    @classmethod
    def failure(cls, error: str) -> "Response":
        return cls(ok=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        if not self.ok:
            return {"ok": False, "error": self.error or "unknown error"}
        data: dict[str, Any] = {"ok": True}
        if self.sessions is not None:
            data["sessions"] = list(self.sessions)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Response":
        if data.get("ok") is True:
            sessions = data.get("sessions")
            return cls(ok=True, sessions=list(sessions) if sessions is not None else None)
        return cls(ok=False, error=str(data.get("error", "")))


def _invalid(message: str) -> RequestDecodeError:
    return RequestDecodeError(f"invalid request: {message}")


def _required_str(data: dict, key: str) -> str:
    if key not in data or data[key] is None:
        raise _invalid(f"missing field '{key}'")
    value = data[key]
    if not isinstance(value, str):
        raise _invalid(f"field '{key}' must be a string")
    return value


def _optional_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise _invalid(f"field '{key}' must be a string")
    return value


def _optional_line(data: dict, key: str) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    # bool is an int subclass; true/false are never line numbers
    if isinstance(value, bool) or not isinstance(value, int):
        raise _invalid(f"field '{key}' must be an integer")
    if value < 1:
        raise _invalid(f"field '{key}' must be a positive integer")
    return value


def _decode_send(data: dict) -> SendRequest:
    code = _required_str(data, "code")
    if not code:
        raise _invalid("field 'code' must not be empty")

    start_line = _optional_line(data, "start_line")
    end_line = _optional_line(data, "end_line")
    if start_line is not None and end_line is not None and end_line < start_line:
        raise _invalid("'end_line' must not be less than 'start_line'")

    side = _optional_str(data, "side")
    if side is not None and side not in VALID_SIDES:
        raise _invalid(f"field 'side' must be one of {', '.join(VALID_SIDES)}")

    return SendRequest(
        file=_required_str(data, "file"),
        code=code,
        tmux_target=_required_str(data, "tmux_target"),
        question=_optional_str(data, "question") or "",
        start_line=start_line,
        end_line=end_line,
        side=side,
        debug_html=_optional_str(data, "debug_html"),
    )


def decode_request(data: Any) -> Request:
    """Decode a JSON object into a request.

    Args:
        data: The decoded JSON message body

    Returns:
        SendRequest or ListSessionsRequest

    Raises:
        RequestDecodeError: unknown/missing action or invalid payload
    """
    if not isinstance(data, dict):
        raise _invalid("message must be a JSON object")

    action = data.get("action")
    if action == ACTION_SEND:
        return _decode_send(data)
    if action == ACTION_LIST_SESSIONS:
        return ListSessionsRequest()
    raise RequestDecodeError(UNKNOWN_ACTION_ERROR)

"""tmux bridge for listing sessions and typing text into them.

Text is sent with a single ``send-keys -l`` (literal) call followed,
after a short pause, by a separate Enter keystroke. Arguments are passed
as an argv list, never through a shell, and the text follows ``--`` so tmux cannot read it as
flags or key names. Sessions are addressed as ``=name:`` so tmux only
accepts an exact session-name match.
"""

import logging
import os
import shutil
import subprocess
import time
from enum import Enum
from typing import NamedTuple

logger = logging.getLogger(__name__)

DEFAULT_SUBPROCESS_TIMEOUT = 5  # seconds
DEFAULT_TEXT_ENTER_DELAY_MS = 120  # ms between text send and Enter

# Chrome launches native hosts with a minimal PATH, so check where package
# managers usually put tmux before giving up.
TMUX_CANDIDATE_PATHS = (
    "/opt/homebrew/bin/tmux",  # Homebrew on Apple Silicon
    "/usr/local/bin/tmux",  # Homebrew on Intel Mac / manual install
    "/usr/bin/tmux",  # System package manager
)

SESSION_NAME_FORMAT = "#{session_name}"


class TmuxBridgeErrorType(str, Enum):
    """Error types for tmux bridge operations."""

    SESSION_NOT_FOUND = "session_not_found"
    NO_SERVER = "no_server"
    TMUX_NOT_INSTALLED = "tmux_not_installed"
    SUBPROCESS_FAILED = "subprocess_failed"
    INVALID_SESSION = "invalid_session"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


# Failures caused by the environment rather than by the request
CONNECTION_ERRORS = frozenset({
    TmuxBridgeErrorType.NO_SERVER,
    TmuxBridgeErrorType.TMUX_NOT_INSTALLED,
    TmuxBridgeErrorType.TIMEOUT,
})


class SendResult(NamedTuple):
    """Result of a send operation."""

    success: bool
    error_type: TmuxBridgeErrorType | None = None
    error_message: str | None = None
    latency_ms: int = 0


class SessionListResult(NamedTuple):
    """Result of a list-sessions operation."""

    success: bool
    sessions: tuple[str, ...] = ()
    error_type: TmuxBridgeErrorType | None = None
    error_message: str | None = None


def find_tmux_binary(configured: str | None = None) -> str:
    """Locate the tmux executable.

    Order: configured path, PATH lookup, well-known install locations,
    then bare ``tmux`` (which fails later with TMUX_NOT_INSTALLED).
    """
    if configured:
        return os.path.expanduser(configured)

    found = shutil.which("tmux")
    if found:
        return found

    for candidate in TMUX_CANDIDATE_PATHS:
        if os.path.exists(candidate):
            return candidate

    return "tmux"


def session_target(session: str) -> str:
    """Build an exact-match target for the active pane of a session."""
    return f"={session}:"


def _stderr_text(error: subprocess.CalledProcessError) -> str:
    return (error.stderr or b"").decode("utf-8", errors="replace").strip()


def _classify_subprocess_error(error: subprocess.CalledProcessError) -> TmuxBridgeErrorType:
    """Classify a tmux subprocess error based on stderr content."""
    stderr = _stderr_text(error).lower()
    # Checked first: "error connecting to ... (No such file or directory)"
    # would otherwise look like a missing session.
    if (
        "no server running" in stderr
        or "error connecting" in stderr
        or "failed to connect" in stderr
    ):
        return TmuxBridgeErrorType.NO_SERVER
    if "can't find" in stderr or "no such" in stderr or "not found" in stderr:
        return TmuxBridgeErrorType.SESSION_NOT_FOUND
    return TmuxBridgeErrorType.SUBPROCESS_FAILED


class TmuxBridge:
    """Runs tmux commands on behalf of the native host."""

    def __init__(
        self,
        binary: str | None = None,
        timeout: float = DEFAULT_SUBPROCESS_TIMEOUT,
        text_enter_delay_ms: int = DEFAULT_TEXT_ENTER_DELAY_MS,
    ):
        self.binary = find_tmux_binary(binary)
        self.timeout = timeout
        self.text_enter_delay_ms = text_enter_delay_ms

    @classmethod
    def from_config(cls, tmux_config: dict) -> "TmuxBridge":
        return cls(
            binary=tmux_config.get("binary"),
            timeout=tmux_config.get("subprocess_timeout", DEFAULT_SUBPROCESS_TIMEOUT),
            text_enter_delay_ms=tmux_config.get(
                "text_enter_delay_ms", DEFAULT_TEXT_ENTER_DELAY_MS
            ),
        )

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        return subprocess.run(
            [self.binary, *args],
            check=True,
            timeout=self.timeout,
            capture_output=True,
        )

    def list_sessions(self) -> SessionListResult:
        """List session names in the order tmux reports them.

        An empty list is a success. A missing tmux server is a failure
        (NO_SERVER), not an empty list.
        """
        try:
            result = self._run("list-sessions", "-F", SESSION_NAME_FORMAT)
        except FileNotFoundError:
            logger.warning(f"tmux binary not found: {self.binary}")
            return SessionListResult(
                success=False,
                error_type=TmuxBridgeErrorType.TMUX_NOT_INSTALLED,
                error_message="tmux is not installed or not on PATH.",
            )
        except subprocess.CalledProcessError as e:
            error_type = _classify_subprocess_error(e)
            stderr_text = _stderr_text(e)
            logger.warning(f"tmux list-sessions failed: {stderr_text}")
            if error_type == TmuxBridgeErrorType.NO_SERVER:
                message = "tmux server is not running"
            else:
                error_type = TmuxBridgeErrorType.SUBPROCESS_FAILED
                message = (
                    f"tmux list-sessions failed: {stderr_text}"
                    if stderr_text else "tmux list-sessions failed"
                )
            return SessionListResult(
                success=False, error_type=error_type, error_message=message,
            )
        except subprocess.TimeoutExpired:
            logger.warning("tmux list-sessions timed out")
            return SessionListResult(
                success=False,
                error_type=TmuxBridgeErrorType.TIMEOUT,
                error_message=f"tmux subprocess timed out after {self.timeout}s.",
            )
        except OSError as e:
            logger.warning(f"Failed to run tmux list-sessions: {e}")
            return SessionListResult(
                success=False,
                error_type=TmuxBridgeErrorType.SUBPROCESS_FAILED,
                error_message=f"Failed to run tmux: {e}",
            )

        stdout = (result.stdout or b"").decode("utf-8", errors="replace")
        sessions = tuple(line for line in stdout.splitlines() if line)
        logger.debug(f"tmux reported {len(sessions)} session(s)")
        return SessionListResult(success=True, sessions=sessions)

    def send_text(self, session: str, text: str) -> SendResult:
        """Type text into a session as literal keystrokes, then press Enter.

        Enter is only sent once the literal text has been delivered, so a
        failure never submits a partial prompt. The pause before Enter lets
        Ink-based prompts treat it as a keypress rather than the end of a
        paste; it grows by 1ms per 10 chars beyond 200.

        Args:
            session: Exact tmux session name
            text: Text to type; delivered verbatim

        Returns:
            SendResult with success status and optional error information
        """
        if not session:
            return SendResult(
                success=False,
                error_type=TmuxBridgeErrorType.INVALID_SESSION,
                error_message="no tmux session specified",
            )

        target = session_target(session)
        start_time = time.time()

        try:
            # Literal text: -l disables key-name lookup, -- ends option parsing
            self._run("send-keys", "-t", target, "-l", "--", text)

            # Scale delay with text length: +1ms per 10 chars beyond 200
            delay_ms = self.text_enter_delay_ms + max(0, len(text) - 200) // 10
            if delay_ms != self.text_enter_delay_ms:
                logger.debug(
                    f"Adaptive delay for session {session!r}: "
                    f"{self.text_enter_delay_ms}ms -> {delay_ms}ms "
                    f"(text length: {len(text)})"
                )
            time.sleep(delay_ms / 1000.0)

            self._run("send-keys", "-t", target, "Enter")

            latency_ms = int((time.time() - start_time) * 1000)
            logger.info(
                f"Sent {len(text)} chars to tmux session {session!r} ({latency_ms}ms)"
            )
            return SendResult(success=True, latency_ms=latency_ms)

        except FileNotFoundError:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.warning(f"tmux binary not found: {self.binary}")
            return SendResult(
                success=False,
                error_type=TmuxBridgeErrorType.TMUX_NOT_INSTALLED,
                error_message="tmux is not installed or not on PATH.",
                latency_ms=latency_ms,
            )

        except subprocess.CalledProcessError as e:
            latency_ms = int((time.time() - start_time) * 1000)
            error_type = _classify_subprocess_error(e)
            stderr_text = _stderr_text(e)
            logger.warning(f"tmux send-keys failed for session {session!r}: {stderr_text}")
            if error_type == TmuxBridgeErrorType.SESSION_NOT_FOUND:
                message = f"{session} not found"
            elif error_type == TmuxBridgeErrorType.NO_SERVER:
                message = f"{session} not found: tmux server is not running"
            else:
                message = (
                    f"tmux send-keys failed: {stderr_text}"
                    if stderr_text else "tmux send-keys failed"
                )
            return SendResult(
                success=False,
                error_type=error_type,
                error_message=message,
                latency_ms=latency_ms,
            )

        except subprocess.TimeoutExpired:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.warning(f"tmux send-keys timed out for session {session!r}")
            return SendResult(
                success=False,
                error_type=TmuxBridgeErrorType.TIMEOUT,
                error_message=f"tmux subprocess timed out after {self.timeout}s.",
                latency_ms=latency_ms,
            )

        except Exception as e:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.exception(f"Unexpected error sending to tmux session {session!r}")
            return SendResult(
                success=False,
                error_type=TmuxBridgeErrorType.UNKNOWN,
                error_message=f"Unexpected error: {e}",
                latency_ms=latency_ms,
            )

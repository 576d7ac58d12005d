"""Native messaging host loop.

Reads one framed request from stdin, handles it, writes exactly one framed
response to stdout, and repeats until Chrome closes stdin. Requests are
handled strictly one at a time.
"""

import logging
import logging.config
import sys
from enum import Enum
from pathlib import Path
from typing import BinaryIO

from .config import get_format_config, get_value
from .services.message_formatter import DEFAULT_QUESTION, format_message
from .services.native_messaging import (
    FrameError,
    FrameTooLargeError,
    TransportError,
    read_message,
    write_message,
)
from .services.request_model import (
    ListSessionsRequest,
    RequestDecodeError,
    Response,
    SendRequest,
    decode_request,
)
from .services.target_resolver import TargetResolutionError, TargetResolver
from .services.tmux_bridge import CONNECTION_ERRORS, TmuxBridge

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_TRANSPORT_ERROR = 2

RESPONSE_TOO_LARGE_ERROR = "response too large"
CONNECTION_ERROR_PREFIX = "tmux unavailable: "


def _failure_message(result, fallback: str) -> str:
    """Error text for a failed bridge result, marking connection failures."""
    message = result.error_message or fallback
    if result.error_type in CONNECTION_ERRORS:
        return CONNECTION_ERROR_PREFIX + message
    return message


class HostState(str, Enum):
    """Phases of the request/response loop."""

    AWAITING_FRAME = "awaiting_frame"
    DECODING = "decoding"
    DISPATCHING = "dispatching"
    ENCODING = "encoding"
    CLOSED = "closed"


def setup_logging(config: dict) -> None:
    """Configure logging to stderr and a rotating file.

    stdout is the native messaging channel, so the console handler must
    write to stderr (Chrome forwards it to its own log).
    """
    log_level = get_value(config, "logging", "level", default="INFO")
    log_file = get_value(config, "logging", "file", default=None)
    max_bytes = get_value(config, "logging", "max_bytes", default=1_000_000)
    backup_count = get_value(config, "logging", "backup_count", default=3)

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "standard",
            "stream": "ext://sys.stderr",
        },
    }

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": "standard",
            "filename": str(log_path),
            "maxBytes": max_bytes,
            "backupCount": backup_count,
        }

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S%z",
            },
        },
        "handlers": handlers,
        "root": {
            "level": log_level,
            "handlers": list(handlers),
        },
    }

    logging.config.dictConfig(logging_config)


class NativeHost:
    """Request/response loop between the browser extension and tmux.

    Collaborators are injected so tests can substitute fakes for tmux and
    for the standard streams.
    """

    def __init__(
        self,
        bridge: TmuxBridge,
        resolver: TargetResolver | None = None,
        config: dict | None = None,
        stdin: BinaryIO | None = None,
        stdout: BinaryIO | None = None,
    ):
        config = config or {}
        self.bridge = bridge
        self.resolver = resolver or TargetResolver()
        self.stdin = stdin if stdin is not None else sys.stdin.buffer
        self.stdout = stdout if stdout is not None else sys.stdout.buffer

        format_config = get_format_config(config)
        self.default_question = format_config["default_question"] or DEFAULT_QUESTION
        self.max_code_chars = format_config["max_code_chars"]
        self.html_dump_path = get_value(config, "debug", "html_dump_path", default=None)

        self.state = HostState.AWAITING_FRAME
        self.requests_handled = 0

    def run(self) -> int:
        """Serve requests until stdin closes or the response channel breaks.

        Returns:
            EXIT_SUCCESS on end of stream, EXIT_TRANSPORT_ERROR if a
            response could not be written.
        """
        logger.info("Native host started")
        while True:
            self.state = HostState.AWAITING_FRAME
            try:
                message = read_message(self.stdin)
            except FrameError as e:
                logger.warning(f"Rejected frame: {e}")
                response = Response.failure(str(e))
            else:
                if message is None:
                    break
                response = self.handle_message(message)

            try:
                self._write_response(response)
            except TransportError as e:
                logger.error(f"Response channel closed, shutting down: {e}")
                self.state = HostState.CLOSED
                return EXIT_TRANSPORT_ERROR
            self.requests_handled += 1

        self.state = HostState.CLOSED
        logger.info(f"stdin closed after {self.requests_handled} request(s), exiting")
        return EXIT_SUCCESS

    def handle_message(self, message: dict) -> Response:
        """Decode and dispatch one message. Never raises for bad input."""
        self.state = HostState.DECODING
        try:
            request = decode_request(message)
        except RequestDecodeError as e:
            logger.warning(f"Invalid request: {e}")
            return Response.failure(str(e))

        self.state = HostState.DISPATCHING
        if isinstance(request, SendRequest):
            return self._handle_send(request)
        if isinstance(request, ListSessionsRequest):
            return self._handle_list_sessions()
        raise TypeError(f"Unhandled request type: {type(request).__name__}")

    def _handle_list_sessions(self) -> Response:
        result = self.bridge.list_sessions()
        if not result.success:
            return Response.failure(_failure_message(result, "failed to list tmux sessions"))
        return Response.sessions_list(list(result.sessions))

    def _handle_send(self, request: SendRequest) -> Response:
        if request.debug_html is not None:
            self._record_debug_html(request.debug_html)

        try:
            session = self.resolver.resolve(request)
        except TargetResolutionError as e:
            logger.warning(f"Send rejected: {e}")
            return Response.failure(str(e))

        text = format_message(
            request,
            default_question=self.default_question,
            max_code_chars=self.max_code_chars,
        )
        result = self.bridge.send_text(session, text)
        if not result.success:
            return Response.failure(_failure_message(result, f"failed to send to {session}"))
        return Response.success()

    def _record_debug_html(self, html: str) -> None:
        """Keep the extension's diagnostic HTML out of the request path.

        Only its size is logged. When debug.html_dump_path is configured the
        raw HTML is written there for offline inspection.
        """
        logger.debug(f"Request carried debug_html ({len(html)} chars)")
        if not self.html_dump_path:
            return
        dump_path = Path(self.html_dump_path).expanduser()
        try:
            dump_path.parent.mkdir(parents=True, exist_ok=True)
            dump_path.write_text(html, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not write debug HTML to {dump_path}: {e}")

    def _write_response(self, response: Response) -> None:
        self.state = HostState.ENCODING
        try:
            write_message(self.stdout, response.to_dict())
        except FrameTooLargeError as e:
            logger.error(f"Response not sent: {e}")
            write_message(self.stdout, Response.failure(RESPONSE_TOO_LARGE_ERROR).to_dict())

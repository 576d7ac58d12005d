"""Services package for the Pigeon native host."""

from .message_formatter import format_message, format_location
from .native_messaging import (
    MAX_MESSAGE_BYTES,
    FrameError,
    FrameTooLargeError,
    MalformedFrameError,
    NativeMessagingError,
    TransportError,
    encode_message,
    read_message,
    write_message,
)
from .request_model import (
    ListSessionsRequest,
    Request,
    RequestDecodeError,
    Response,
    SendRequest,
    decode_request,
)
from .target_resolver import TargetResolutionError, TargetResolver, validate_session_name
from .tmux_bridge import (
    SendResult,
    SessionListResult,
    TmuxBridge,
    TmuxBridgeErrorType,
    find_tmux_binary,
)

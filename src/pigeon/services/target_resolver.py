"""Resolve the tmux session a send request is delivered to.

The caller's explicit ``tmux_target`` is authoritative. There is no
configuration override and no fallback session name: a request that does
not name a usable session is rejected instead of being typed into some
other session.
"""

import logging
import re

from .request_model import SendRequest

logger = logging.getLogger(__name__)

# tmux rewrites ':' and '.' in session names, so a name containing them can
# only be a window/pane target and never an exact session match.
_FORBIDDEN_CHARS = re.compile(r"[:.\x00-\x1f\x7f]")


class TargetResolutionError(Exception):
    """Raised when a request does not name a session that can be targeted."""


def validate_session_name(name: str) -> str:
    """Return the session name unchanged, or raise TargetResolutionError.

    Surrounding whitespace is part of the name, since tmux keeps it too.
    """
    if not name:
        raise TargetResolutionError("no tmux session specified")
    if _FORBIDDEN_CHARS.search(name):
        raise TargetResolutionError(f"invalid tmux session name: {name!r}")
    return name


class TargetResolver:
    """Maps a SendRequest to the session name it targets."""

    def __init__(self, legacy_override: str | None = None):
        if legacy_override:
            logger.warning(
                f"Ignoring legacy tmux_target={legacy_override!r} override; "
                f"the session chosen in the extension is always used"
            )

    def resolve(self, request: SendRequest) -> str:
        return validate_session_name(request.tmux_target)

"""Build the prompt text typed into the tmux session for a send request."""

from .request_model import SendRequest

DEFAULT_QUESTION = "Explain this code"
TRUNCATION_MARKER = "...(truncated)"


def format_location(request: SendRequest) -> str:
    """Render ``file[:start[-end]][ (deleted lines)]``."""
    location = request.file
    start, end = request.start_line, request.end_line
    if start is not None and end is not None and start != end:
        location += f":{start}-{end}"
    elif start is not None:
        location += f":{start}"

    if request.side == "old":
        location += " (deleted lines)"
    return location


def truncate_code(code: str, max_chars: int | None) -> str:
    """Cut code to max_chars characters. None or 0 disables truncation."""
    if not max_chars or len(code) <= max_chars:
        return code
    return code[:max_chars] + TRUNCATION_MARKER


def format_message(
    request: SendRequest,
    default_question: str = DEFAULT_QUESTION,
    max_code_chars: int | None = None,
) -> str:
    """Format a send request as a location line, a fenced code block and the question.

    Code and question are embedded unchanged (unless truncation is
    explicitly enabled), so the receiving session sees exactly what was
    selected in the browser.

    Args:
        request: The decoded send request
        default_question: Used when the request's question is empty
        max_code_chars: Optional code length limit in characters

    Returns:
        The multi-line message text
    """
    code = truncate_code(request.code, max_code_chars)
    question = request.question or default_question
    return f"{format_location(request)}\n```\n{code}\n```\n{question}"

"""Chrome Native Messaging framing over the host's standard streams.

Each message is a 4-byte little-endian unsigned length followed by that
many bytes of UTF-8 encoded JSON. The same framing is used in both
directions. stdout carries nothing but frames, so nothing in this
package may print to it.
"""

import json
import logging
import struct
from typing import Any, BinaryIO

logger = logging.getLogger(__name__)

HEADER = struct.Struct("<I")

# Chrome refuses host->browser messages above 1 MiB; apply the same
# ceiling to incoming frames.
MAX_MESSAGE_BYTES = 1024 * 1024

_DISCARD_CHUNK_BYTES = 64 * 1024


class NativeMessagingError(Exception):
    """Base error for the frame codec."""


class FrameError(NativeMessagingError):
    """A single frame was unusable. The channel itself is still in sync."""


class FrameTooLargeError(FrameError):
    """Frame length exceeds MAX_MESSAGE_BYTES."""

    def __init__(self, length: int):
        super().__init__(
            f"message too large: {length} bytes (limit {MAX_MESSAGE_BYTES})"
        )
        self.length = length


class MalformedFrameError(FrameError):
    """Frame body is not a UTF-8 encoded JSON object."""


class TransportError(NativeMessagingError):
    """Writing to the peer failed. The channel is no longer usable."""


def _read_exact(stream: BinaryIO, n: int) -> bytes | None:
    """Read exactly n bytes, or return None if the stream ends first."""
    buf = bytearray()
    while len(buf) < n:
        chunk = stream.read(n - len(buf))
        if not chunk:
            if buf:
                logger.warning(
                    f"Stream closed mid-frame ({len(buf)} of {n} bytes read)"
                )
            return None
        buf.extend(chunk)
    return bytes(buf)


def _discard(stream: BinaryIO, n: int) -> bool:
    """Consume n bytes without buffering them. False if the stream ended."""
    remaining = n
    while remaining > 0:
        chunk = stream.read(min(remaining, _DISCARD_CHUNK_BYTES))
        if not chunk:
            return False
        remaining -= len(chunk)
    return True


def read_message(stream: BinaryIO) -> dict[str, Any] | None:
    """Read one framed JSON object from the stream.

    Blocks until a full frame has arrived. Returns None at end of stream,
    which is the host's shutdown signal (Chrome closes stdin when the
    extension disconnects).

    Raises:
        FrameTooLargeError: the announced length is above the ceiling.
            The body has already been consumed so the next read starts
            on a frame boundary.
        MalformedFrameError: the body is not a UTF-8 JSON object.
    """
    header = _read_exact(stream, HEADER.size)
    if header is None:
        return None
    (length,) = HEADER.unpack(header)

    if length > MAX_MESSAGE_BYTES:
        logger.warning(f"Rejecting oversized frame: {length} bytes")
        if not _discard(stream, length):
            logger.warning("Stream closed while discarding oversized frame")
            return None
        raise FrameTooLargeError(length)

    raw = _read_exact(stream, length)
    if raw is None:
        return None

    try:
        obj = json.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise MalformedFrameError(f"invalid UTF-8 in message: {e}") from e
    except json.JSONDecodeError as e:
        raise MalformedFrameError(f"invalid JSON: {e}") from e

    if not isinstance(obj, dict):
        raise MalformedFrameError("message must be a JSON object")
    return obj


def encode_message(payload: dict[str, Any]) -> bytes:
    """Serialize a payload into a complete frame (header + body)."""
    raw = json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    if len(raw) > MAX_MESSAGE_BYTES:
        raise FrameTooLargeError(len(raw))
    return HEADER.pack(len(raw)) + raw


def write_message(stream: BinaryIO, payload: dict[str, Any]) -> None:
    """Write one frame and flush it so the peer never waits on a partial frame.

    Raises:
        FrameTooLargeError: the encoded payload exceeds the ceiling.
            Nothing has been written.
        TransportError: the underlying stream failed (broken pipe etc).
    """
    frame = encode_message(payload)
    try:
        stream.write(frame)
        stream.flush()
    except (OSError, ValueError) as e:
        # ValueError: write to a closed file object
        raise TransportError(f"failed to write message: {e}") from e

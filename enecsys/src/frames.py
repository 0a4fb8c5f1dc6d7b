"""
Frame delimiting, validation and payload decoding for the gateway stream.

Enecsys gateways push ASCII frames terminated by a carriage return (0x0D).
Telemetry frames are exactly 77 bytes long and carry the marker ``WS`` at
offset 18. Everything from offset 21 onward is an unpadded URL-safe base64
payload whose hex rendering is the *digest* consumed by
:mod:`enecsys.src.extractor`.

Operations:
- read_frame(reader): Read one terminator-delimited frame, or None at EOF.
- is_telemetry_frame(frame): Length and marker check, no side effects.
- decode_payload(frame): Base64 payload -> lowercase hex digest.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re

from enecsys.src.errors import PayloadDecodeError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FRAME_TERMINATOR: bytes = b"\r"
"""Single byte that ends every frame on the wire."""

FRAME_LENGTH: int = 77
"""Length in bytes of a telemetry frame, terminator excluded."""

MARKER_START: int = 18
MARKER_END: int = 20
TELEMETRY_MARKER: bytes = b"WS"
"""Frame subtype marker at [MARKER_START, MARKER_END) of a telemetry frame."""

PAYLOAD_OFFSET: int = 21
"""First byte of the base64 payload."""

_URLSAFE_B64 = re.compile(r"[A-Za-z0-9_-]*")


# ---------------------------------------------------------------------------
# Reader
# ---------------------------------------------------------------------------


async def read_frame(reader: asyncio.StreamReader) -> bytes | None:
    """Read the next frame from *reader*.

    Waits until a terminator arrives and returns the bytes before it.

    Args:
        reader: The connection's stream reader.

    Returns:
        The frame without its terminator, or ``None`` when the stream ended,
        failed, or exceeded the reader's line limit. The caller must stop
        reading from the connection after ``None``.
    """
    try:
        line = await reader.readuntil(FRAME_TERMINATOR)
    except asyncio.IncompleteReadError as exc:
        if exc.partial:
            logger.debug(
                "Stream closed with %d unterminated bytes discarded",
                len(exc.partial),
            )
        return None
    except asyncio.LimitOverrunError:
        logger.warning("Frame exceeds stream limit without terminator, closing")
        return None
    except OSError:
        logger.info("Read error on connection", exc_info=True)
        return None
    return line[: -len(FRAME_TERMINATOR)]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def is_telemetry_frame(frame: bytes) -> bool:
    """Return True if *frame* is a 77-byte frame with the ``WS`` marker."""
    return (
        len(frame) == FRAME_LENGTH
        and frame[MARKER_START:MARKER_END] == TELEMETRY_MARKER
    )


# ---------------------------------------------------------------------------
# Payload decoding
# ---------------------------------------------------------------------------


def decode_payload(frame: bytes) -> str:
    """Decode the base64 payload of a telemetry frame into a hex digest.

    The payload must use the URL-safe alphabet without ``=`` padding.
    Anything else (standard-alphabet characters, padding, non-ASCII bytes,
    impossible lengths) is rejected instead of being skipped over.

    Args:
        frame: A frame for which :func:`is_telemetry_frame` is true.

    Returns:
        The decoded bytes rendered as lowercase hex.

    Raises:
        PayloadDecodeError: If the payload is not valid unpadded URL-safe
            base64.
    """
    try:
        text = frame[PAYLOAD_OFFSET:].decode("ascii")
    except UnicodeDecodeError as exc:
        raise PayloadDecodeError("Payload contains non-ASCII bytes") from exc

    if not _URLSAFE_B64.fullmatch(text):
        raise PayloadDecodeError(
            f"Payload contains characters outside the URL-safe alphabet: {text!r}"
        )

    padded = text + "=" * (-len(text) % 4)
    try:
        raw = base64.b64decode(padded, altchars=b"-_", validate=True)
    except binascii.Error as exc:
        raise PayloadDecodeError(f"Invalid base64 payload: {exc}") from exc

    return raw.hex()

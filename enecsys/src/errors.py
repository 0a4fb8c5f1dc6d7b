"""
Per-frame failure types raised by the decoding stages.

Every stage of the frame pipeline raises a subclass of :class:`FrameError`
when a frame cannot be turned into samples. The pipeline converts these into
a :class:`~enecsys.src.models.FrameOutcome`; they never escape the connection
handler.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations


class FrameError(Exception):
    """Base class for a frame that was recognised but could not be decoded."""


class PayloadDecodeError(FrameError):
    """The frame payload is not valid unpadded URL-safe base64."""


class DigestLengthError(FrameError):
    """The decoded digest is too short for the field offset table.

    Attributes:
        length: Actual digest length in characters.
        required: Minimum length needed by the offset table.
    """

    def __init__(self, length: int, required: int) -> None:
        super().__init__(
            f"Digest has {length} characters, at least {required} required"
        )
        self.length = length
        self.required = required


class DigestFormatError(FrameError):
    """The digest contains characters that are not lowercase hex digits."""

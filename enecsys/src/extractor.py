"""
Pure field extractor that turns a hex digest into a RawFieldSet.

Slices every field listed in :mod:`enecsys.src.fields` out of the digest,
parses it as an unsigned base-16 integer and returns the values as floats.
The digest length is checked against the offset table before any slicing,
so a short payload fails loudly instead of yielding truncated readings.

This is a pure function: no side effects, no I/O, no clock.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import re

from enecsys.src.errors import DigestFormatError, DigestLengthError
from enecsys.src.fields import DEVICE_ID_FIELD, DIGEST_FIELDS, MIN_DIGEST_LENGTH
from enecsys.src.models import RawFieldSet

_HEX = re.compile(r"[0-9a-f]*")


def extract_fields(digest: str) -> RawFieldSet:
    """Extract the raw readings from a decoded digest.

    Args:
        digest: Lowercase hex string produced by
            :func:`~enecsys.src.frames.decode_payload`.

    Returns:
        A :class:`RawFieldSet` with ``device_id`` set to the first eight
        digest characters and every numeric field unscaled.

    Raises:
        DigestLengthError: If *digest* is shorter than
            :data:`~enecsys.src.fields.MIN_DIGEST_LENGTH`.
        DigestFormatError: If *digest* contains anything but lowercase hex.
    """
    if len(digest) < MIN_DIGEST_LENGTH:
        raise DigestLengthError(len(digest), MIN_DIGEST_LENGTH)
    if not _HEX.fullmatch(digest):
        raise DigestFormatError(f"Digest is not lowercase hex: {digest!r}")

    values: dict[str, float | str] = {
        DEVICE_ID_FIELD.name: DEVICE_ID_FIELD.slice(digest),
    }
    for fd in DIGEST_FIELDS:
        values[fd.name] = float(int(fd.slice(digest), 16))

    return RawFieldSet(**values)  # type: ignore[arg-type]

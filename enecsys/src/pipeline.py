"""
Per-frame pipeline: validate -> decode -> extract -> derive -> dispatch.

:func:`process_frame` is the only place where the typed stage failures of
:mod:`enecsys.src.errors` are turned into a :class:`FrameOutcome`. Frames
that are not telemetry frames are ignored without being treated as errors.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from enecsys.src.deriver import derive
from enecsys.src.dispatcher import build_samples
from enecsys.src.errors import DigestFormatError, DigestLengthError, PayloadDecodeError
from enecsys.src.extractor import extract_fields
from enecsys.src.frames import decode_payload, is_telemetry_frame
from enecsys.src.models import FrameOutcome

if TYPE_CHECKING:
    from enecsys.src.dispatcher import ResultDispatcher

logger = logging.getLogger(__name__)


def process_frame(frame: bytes, *, dispatcher: ResultDispatcher) -> FrameOutcome:
    """Run one frame through the full pipeline.

    Args:
        frame: Frame bytes without the terminator.
        dispatcher: Destination for the resulting samples.

    Returns:
        The frame's :class:`FrameOutcome`. Only ``DISPATCHED`` frames touch
        the exporter gauges or the broker.
    """
    if not is_telemetry_frame(frame):
        logger.debug("Ignoring non-telemetry frame (length=%d)", len(frame))
        return FrameOutcome.IGNORED

    try:
        digest = decode_payload(frame)
    except PayloadDecodeError as exc:
        logger.warning("Dropping frame, payload decode failed: %s", exc)
        return FrameOutcome.DECODE_FAILED

    try:
        raw = extract_fields(digest)
    except (DigestLengthError, DigestFormatError) as exc:
        logger.warning("Dropping frame, field extraction failed: %s", exc)
        return FrameOutcome.OUT_OF_RANGE

    derived = derive(raw)
    logger.debug(
        "Decoded device=%s raw=%s derived=%s",
        raw.device_id,
        raw,
        derived,
        extra={"device_id": raw.device_id},
    )

    dispatcher.dispatch(build_samples(raw, derived))
    return FrameOutcome.DISPATCHED

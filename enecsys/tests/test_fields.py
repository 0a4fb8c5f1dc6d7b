"""
Tests for the Enecsys digest field map.

Verifies offset table integrity and that the minimum digest length covers
every field.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import pytest
from enecsys.src.fields import (
    ALL_FIELDS,
    DEVICE_ID_FIELD,
    DIGEST_FIELDS,
    MIN_DIGEST_LENGTH,
    FieldDef,
)
from enecsys.src.models import RawFieldSet

EXPECTED_OFFSETS = {
    "device_id": (0, 8),
    "time1": (18, 22),
    "time2": (30, 36),
    "dc_current_raw": (46, 50),
    "dc_power": (50, 54),
    "efficiency_raw": (54, 58),
    "ac_freq": (58, 60),
    "ac_volt": (60, 64),
    "temperature": (64, 66),
    "wh": (66, 70),
    "kwh": (70, 74),
}


class TestOffsetTable:
    """The offset table matches the frame layout."""

    def test_offsets_match_layout(self) -> None:
        assert {
            name: (fd.start, fd.end) for name, fd in ALL_FIELDS.items()
        } == EXPECTED_OFFSETS

    def test_device_id_field(self) -> None:
        assert DEVICE_ID_FIELD.start == 0
        assert DEVICE_ID_FIELD.width == 8

    def test_fields_do_not_overlap(self) -> None:
        ordered = sorted(ALL_FIELDS.values(), key=lambda fd: fd.start)
        for left, right in zip(ordered, ordered[1:]):
            assert left.end <= right.start, f"{left.name} overlaps {right.name}"

    def test_min_digest_length_is_74(self) -> None:
        assert MIN_DIGEST_LENGTH == 74

    def test_every_numeric_field_exists_on_raw_field_set(self) -> None:
        model_fields = set(RawFieldSet.model_fields)
        for fd in DIGEST_FIELDS:
            assert fd.name in model_fields

    def test_names_are_unique(self) -> None:
        names = [fd.name for fd in DIGEST_FIELDS]
        assert len(names) == len(set(names))
        assert DEVICE_ID_FIELD.name not in names


class TestFieldDef:
    """FieldDef validation and slicing."""

    def test_slice(self) -> None:
        fd = FieldDef(name="x", start=2, end=4)
        assert fd.slice("abcdef") == "cd"

    @pytest.mark.parametrize(("start", "end"), [(-1, 2), (4, 4), (5, 3)])
    def test_invalid_range_rejected(self, start: int, end: int) -> None:
        with pytest.raises(ValueError, match="invalid offset range"):
            FieldDef(name="bad", start=start, end=end)

    def test_frozen(self) -> None:
        fd = FieldDef(name="x", start=0, end=2)
        with pytest.raises(AttributeError):
            fd.start = 1  # type: ignore[misc]

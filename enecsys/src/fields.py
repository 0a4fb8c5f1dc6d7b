"""
Enecsys telemetry digest field map -- single source of truth.

Defines the character offsets of every raw field inside the decoded digest
(the lowercase hex rendering of a ``WS`` frame payload). Offsets are
positions in the hex string, so each byte of the payload spans two
characters. Every numeric field is an unsigned big-endian integer and is
extracted unscaled; unit conversions live in :mod:`enecsys.src.deriver`.

Layout of the first 74 digest characters::

    [0,8)    device id            [50,54)  dc power (W)
    [18,22)  time 1               [54,58)  efficiency (0.1 %)
    [30,36)  time 2               [58,60)  ac frequency (Hz)
    [46,50)  dc current (25 mA)   [60,64)  ac voltage (V)
    [64,66)  temperature (C)      [66,70)  energy today (Wh)
    [70,74)  energy history (kWh)

Characters outside these ranges are not interpreted.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Data definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FieldDef:
    """Definition of a single fixed-offset digest field.

    Attributes:
        name: Unique identifier, matching the attribute on
            :class:`~enecsys.src.models.RawFieldSet`.
        start: First character offset (inclusive).
        end: Last character offset (exclusive).
        unit: Engineering unit of the *raw* value (``""`` when unitless or
            still needing a scale factor).
        description: Free-text description of the field.
    """

    name: str
    start: int
    end: int
    unit: str = ""
    description: str = ""

    def __post_init__(self) -> None:  # noqa: D105
        if self.start < 0 or self.end <= self.start:
            msg = (
                f"Field '{self.name}': invalid offset range "
                f"[{self.start},{self.end})"
            )
            raise ValueError(msg)

    @property
    def width(self) -> int:
        """Number of hex characters this field occupies."""
        return self.end - self.start

    def slice(self, digest: str) -> str:
        """Return the characters of *digest* covered by this field."""
        return digest[self.start : self.end]


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

DEVICE_ID_FIELD = FieldDef(
    name="device_id",
    start=0,
    end=8,
    description="Inverter identifier, kept as an 8-character hex string",
)

# ---------------------------------------------------------------------------
# Numeric fields, in digest order
# ---------------------------------------------------------------------------

DIGEST_FIELDS: list[FieldDef] = [
    FieldDef(
        name="time1",
        start=18,
        end=22,
        description="Inverter time counter 1",
    ),
    FieldDef(
        name="time2",
        start=30,
        end=36,
        description="Inverter time counter 2",
    ),
    FieldDef(
        name="dc_current_raw",
        start=46,
        end=50,
        description="DC input current in 25 mA steps",
    ),
    FieldDef(
        name="dc_power",
        start=50,
        end=54,
        unit="W",
        description="DC input power",
    ),
    FieldDef(
        name="efficiency_raw",
        start=54,
        end=58,
        description="Conversion efficiency in tenths of a percent",
    ),
    FieldDef(
        name="ac_freq",
        start=58,
        end=60,
        unit="Hz",
        description="Grid frequency",
    ),
    FieldDef(
        name="ac_volt",
        start=60,
        end=64,
        unit="V",
        description="Grid voltage",
    ),
    FieldDef(
        name="temperature",
        start=64,
        end=66,
        unit="C",
        description="Inverter temperature",
    ),
    FieldDef(
        name="wh",
        start=66,
        end=70,
        unit="Wh",
        description="Energy produced today, sub-kWh part",
    ),
    FieldDef(
        name="kwh",
        start=70,
        end=74,
        unit="kWh",
        description="Energy produced in history, whole kWh",
    ),
]

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

ALL_FIELDS: dict[str, FieldDef] = {
    fd.name: fd for fd in [DEVICE_ID_FIELD, *DIGEST_FIELDS]
}
"""Flat lookup of every digest field by name."""

MIN_DIGEST_LENGTH: int = max(fd.end for fd in ALL_FIELDS.values())
"""Shortest digest for which every field slice is in bounds (74)."""

"""
Pydantic models for decoded Enecsys telemetry.

Defines the per-frame value objects that flow through the pipeline:

- :class:`RawFieldSet` -- unscaled readings sliced from the digest.
- :class:`DerivedFieldSet` -- scaled and computed electrical quantities.
- :class:`MetricSample` -- one named value bound for the exporter and broker.
- :class:`FrameOutcome` -- what happened to a frame.

All models are frozen; nothing here outlives the frame it was built from.

CHANGELOG:
- 2026-10-19: Initial creation
- 2026-10-19: Lifetime energy gauge fed from life_kwh instead of a rescaled lifeWh

TODO:
- None
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class FrameOutcome(str, Enum):
    """Classification of a single inbound frame after processing."""

    DISPATCHED = "dispatched"
    IGNORED = "ignored"
    DECODE_FAILED = "decode_failed"
    OUT_OF_RANGE = "out_of_range"
    ERROR = "error"


class RawFieldSet(BaseModel):
    """Unscaled readings extracted from fixed digest offsets.

    Attributes:
        device_id: First 8 characters of the digest (lowercase hex).
        time1: Inverter time counter 1.
        time2: Inverter time counter 2.
        dc_current_raw: DC current in 25 mA steps.
        dc_power: DC power in watts.
        efficiency_raw: Efficiency in tenths of a percent.
        ac_freq: Grid frequency in hertz.
        ac_volt: Grid voltage in volts.
        temperature: Inverter temperature in degrees Celsius.
        wh: Watt-hour part of the lifetime energy counter.
        kwh: Kilowatt-hour part of the lifetime energy counter.
    """

    model_config = ConfigDict(frozen=True)

    device_id: str
    time1: float
    time2: float
    dc_current_raw: float
    dc_power: float
    efficiency_raw: float
    ac_freq: float
    ac_volt: float
    temperature: float
    wh: float
    kwh: float


class DerivedFieldSet(BaseModel):
    """Quantities computed from a :class:`RawFieldSet`.

    ``dc_volt`` and ``ac_current`` are ``None`` when their divisor is zero;
    such values are treated as undefined and never exported or published.
    """

    model_config = ConfigDict(frozen=True)

    life_kwh: float
    life_wh: float
    dc_current: float
    dc_volt: float | None
    efficiency: float
    ac_power: float
    ac_current: float | None


class MetricSample(BaseModel):
    """A single (device, metric, value) emission.

    Attributes:
        device_id: Inverter identifier used as label and topic segment.
        name: Metric name, also the last topic segment.
        value: The reading, or ``None`` when undefined.
        gauge_value: Value for the exporter gauge when it is not ``value``
            itself (the lifetime energy gauge is in kWh, the topic in Wh).
    """

    model_config = ConfigDict(frozen=True)

    device_id: str
    name: str
    value: float | None
    gauge_value: float | None = None

    @property
    def gauge_reading(self) -> float | None:
        """Value to set on the exporter gauge."""
        return self.value if self.gauge_value is None else self.gauge_value

    @property
    def defined(self) -> bool:
        """True when the sample carries a usable value."""
        return self.value is not None

    def payload(self) -> str:
        """Render the value as a one-decimal fixed-point string.

        Raises:
            ValueError: If the sample is undefined.
        """
        if self.value is None:
            raise ValueError(f"Sample '{self.name}' has no value")
        return f"{self.value:.1f}"

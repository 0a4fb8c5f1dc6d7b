"""
Derived electrical quantities for a decoded frame.

Applies the inverter's unit scaling and computes voltages, AC power and
lifetime energy from a :class:`~enecsys.src.models.RawFieldSet`:

    life_kwh   = kwh + 0.001 * wh
    life_wh    = 1000 * kwh + wh
    dc_current = 0.025 * dc_current_raw
    dc_volt    = dc_power / dc_current
    efficiency = 0.1 * efficiency_raw          (percent)
    ac_power   = dc_power * efficiency / 100
    ac_current = ac_power / ac_volt

A quotient whose divisor is exactly zero is undefined and returned as
``None``; the dispatcher drops undefined values instead of exporting them.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

from enecsys.src.models import DerivedFieldSet, RawFieldSet

DC_CURRENT_SCALE: float = 0.025
"""Amps per raw DC current step."""

EFFICIENCY_SCALE: float = 0.1
"""Percent per raw efficiency step."""

WH_PER_KWH: float = 1000.0
KWH_PER_WH: float = 0.001


def _ratio(numerator: float, divisor: float) -> float | None:
    """Return ``numerator / divisor``, or None when *divisor* is zero."""
    if divisor == 0:
        return None
    return numerator / divisor


def derive(raw: RawFieldSet) -> DerivedFieldSet:
    """Compute the derived quantities for *raw*.

    Args:
        raw: Unscaled readings from :func:`~enecsys.src.extractor.extract_fields`.

    Returns:
        A :class:`DerivedFieldSet`; ``dc_volt`` is None when the DC current
        is zero and ``ac_current`` is None when the AC voltage is zero.
    """
    dc_current = DC_CURRENT_SCALE * raw.dc_current_raw
    efficiency = EFFICIENCY_SCALE * raw.efficiency_raw
    ac_power = raw.dc_power * efficiency / 100

    return DerivedFieldSet(
        life_kwh=raw.kwh + KWH_PER_WH * raw.wh,
        life_wh=WH_PER_KWH * raw.kwh + raw.wh,
        dc_current=dc_current,
        dc_volt=_ratio(raw.dc_power, dc_current),
        efficiency=efficiency,
        ac_power=ac_power,
        ac_current=_ratio(ac_power, raw.ac_volt),
    )

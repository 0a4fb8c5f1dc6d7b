"""
Prometheus exporter for Enecsys inverter readings.

Owns a dedicated :class:`prometheus_client.CollectorRegistry` holding one
gauge per published metric (labelled by inverter ``id``) plus a few
pipeline counters, and serves it over HTTP for scraping.

The metric table :data:`METRICS` is the single source of truth for sample
names, their order, the gauge each one feeds, and which field supplies the
value.

CHANGELOG:
- 2026-10-19: Initial creation
- 2026-10-19: Lifetime energy gauge fed from life_kwh instead of a rescaled lifeWh

TODO:
- None
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Gauge, start_http_server

from enecsys.src.models import FrameOutcome

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Metric table
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MetricDef:
    """Definition of one per-inverter metric.

    Attributes:
        name: Sample name, used as the last MQTT topic segment.
        gauge: Prometheus gauge name.
        help: Gauge help text.
        source: Attribute on the raw or derived field set that supplies
            the sample value.
        gauge_source: Attribute that supplies the gauge value when it differs
            from the published one; None means the gauge shows ``source``.
    """

    name: str
    gauge: str
    help: str
    source: str
    gauge_source: str | None = None


METRICS: list[MetricDef] = [
    MetricDef("temperature", "enecsys_temperature", "Temperature of the solar panel.", "temperature"),
    MetricDef("wh", "enecsys_watthours_today", "Watt hours produced today.", "wh"),
    MetricDef("kwh", "enecsys_kilowatthours_history", "Kilowatt hours produced in history.", "kwh"),
    # Published in Wh, exported in kWh.
    MetricDef(
        "lifeWh",
        "enecsys_kilowatthours_total",
        "Kilowatt hours produced in total.",
        "life_wh",
        gauge_source="life_kwh",
    ),
    MetricDef("time1", "enecsys_time1", "Time 1.", "time1"),
    MetricDef("time2", "enecsys_time2", "Time 2.", "time2"),
    MetricDef("dcpower", "enecsys_dc_power", "DC power.", "dc_power"),
    MetricDef("dcvolt", "enecsys_dc_volt", "DC voltage.", "dc_volt"),
    MetricDef("dccurrent", "enecsys_dc_current", "DC current.", "dc_current"),
    MetricDef("efficiency", "enecsys_efficiency", "Inverter efficiency.", "efficiency"),
    MetricDef("acpower", "enecsys_ac_power", "AC power.", "ac_power"),
    MetricDef("acvolt", "enecsys_ac_volt", "AC voltage.", "ac_volt"),
    MetricDef("accurrent", "enecsys_ac_current", "AC current.", "ac_current"),
    MetricDef("acfreq", "enecsys_ac_frequency", "AC frequency.", "ac_freq"),
]
"""All per-inverter metrics in dispatch order."""

METRICS_BY_NAME: dict[str, MetricDef] = {md.name: md for md in METRICS}

LABEL = "id"


# ---------------------------------------------------------------------------
# Exporter
# ---------------------------------------------------------------------------


class MetricsExporter:
    """Gauges and counters for the gateway, backed by a private registry.

    prometheus_client metrics are thread-safe, so connection handlers may
    update them concurrently without extra locking.

    Args:
        registry: Registry to register into. A fresh one is created when
            omitted, which keeps tests isolated from the global registry.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self._gauges: dict[str, Gauge] = {
            md.name: Gauge(md.gauge, md.help, [LABEL], registry=self.registry)
            for md in METRICS
        }
        self.frames = Counter(
            "enecsys_frames",
            "Inbound frames by processing outcome.",
            ["outcome"],
            registry=self.registry,
        )
        self.undefined_samples = Counter(
            "enecsys_undefined_samples",
            "Samples dropped because their value was undefined.",
            ["metric"],
            registry=self.registry,
        )
        self.publish_failures = Counter(
            "enecsys_publish_failures",
            "Samples that could not be published to the broker.",
            registry=self.registry,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def set(self, name: str, device_id: str, value: float) -> None:
        """Set gauge *name* for inverter *device_id* to *value*.

        Raises:
            KeyError: If *name* is not in :data:`METRICS`.
        """
        self._gauges[name].labels(device_id).set(value)

    def clear(self, name: str, device_id: str) -> None:
        """Remove the series of gauge *name* for *device_id*, if present."""
        try:
            self._gauges[name].remove(device_id)
        except KeyError:
            pass

    def record_frame(self, outcome: FrameOutcome) -> None:
        """Count one frame under *outcome*."""
        self.frames.labels(outcome.value).inc()

    def record_undefined(self, name: str) -> None:
        """Count one undefined sample for metric *name*."""
        self.undefined_samples.labels(name).inc()

    def record_publish_failure(self) -> None:
        """Count one failed broker publish."""
        self.publish_failures.inc()

    def serve(self, port: int, addr: str = "0.0.0.0") -> None:
        """Start the HTTP scrape endpoint in a daemon thread."""
        start_http_server(port, addr=addr, registry=self.registry)
        logger.info("Metrics endpoint listening on %s:%d", addr, port)

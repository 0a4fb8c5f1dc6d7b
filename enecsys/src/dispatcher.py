"""
Result dispatcher: fans decoded samples out to the exporter and the broker.

Builds the fixed, ordered list of samples for a frame from the metric table
in :mod:`enecsys.src.metrics`, then for each sample updates the Prometheus
gauge and publishes a one-decimal string to
``<namespace>/<device_id>/<metric>``.

Undefined samples (a zero divisor upstream) are neither exported nor
published; their gauge series is removed so no stale reading is scraped.
Publishing is best-effort: a failed publish is counted and logged and the
remaining samples are still dispatched.

CHANGELOG:
- 2026-10-19: Initial creation
- 2026-10-19: Lifetime energy gauge fed from life_kwh instead of a rescaled lifeWh

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from enecsys.src.metrics import METRICS
from enecsys.src.models import DerivedFieldSet, MetricSample, RawFieldSet

if TYPE_CHECKING:
    from enecsys.src.metrics import MetricsExporter
    from enecsys.src.publisher import MqttPublisher, NullPublisher

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "enecsys"


def _field_value(raw: RawFieldSet, derived: DerivedFieldSet, field: str) -> float | None:
    source = derived if field in DerivedFieldSet.model_fields else raw
    return getattr(source, field)


def build_samples(raw: RawFieldSet, derived: DerivedFieldSet) -> list[MetricSample]:
    """Return the frame's samples in :data:`~enecsys.src.metrics.METRICS` order.

    Each value is read from *derived* if it defines the field, otherwise
    from *raw*.
    """
    samples: list[MetricSample] = []
    for md in METRICS:
        gauge_value = None
        if md.gauge_source is not None:
            gauge_value = _field_value(raw, derived, md.gauge_source)
        samples.append(
            MetricSample(
                device_id=raw.device_id,
                name=md.name,
                value=_field_value(raw, derived, md.source),
                gauge_value=gauge_value,
            )
        )
    return samples


def topic_for(namespace: str, sample: MetricSample) -> str:
    """Return the MQTT topic for *sample* under *namespace*."""
    return f"{namespace}/{sample.device_id}/{sample.name}"


class ResultDispatcher:
    """Routes samples to the metrics exporter and the publish sink.

    Args:
        exporter: Gauge registry to update.
        publisher: MQTT publisher (or the null publisher).
        namespace: First topic segment.
    """

    def __init__(
        self,
        *,
        exporter: MetricsExporter,
        publisher: MqttPublisher | NullPublisher,
        namespace: str = DEFAULT_NAMESPACE,
    ) -> None:
        self.exporter = exporter
        self.publisher = publisher
        self.namespace = namespace

    def dispatch(self, samples: list[MetricSample]) -> int:
        """Export and publish every defined sample, in order.

        Args:
            samples: Output of :func:`build_samples`.

        Returns:
            Number of samples exported to the gauge registry.
        """
        exported = 0
        for sample in samples:
            if not sample.defined:
                logger.debug(
                    "Undefined %s for device=%s, not dispatched",
                    sample.name,
                    sample.device_id,
                    extra={"device_id": sample.device_id},
                )
                self.exporter.clear(sample.name, sample.device_id)
                self.exporter.record_undefined(sample.name)
                continue

            self.exporter.set(sample.name, sample.device_id, sample.gauge_reading)  # type: ignore[arg-type]
            exported += 1

            if not self.publisher.enabled:
                continue
            try:
                ok = self.publisher.publish(
                    topic_for(self.namespace, sample), sample.payload()
                )
            except Exception:
                logger.warning("Publish of %s raised", sample.name, exc_info=True)
                ok = False
            if not ok:
                self.exporter.record_publish_failure()

        return exported

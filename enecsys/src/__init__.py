"""
Gateway daemon package for Enecsys micro-inverter telemetry.

Accepts the line-oriented frame stream that Enecsys gateways push over TCP,
decodes each telemetry frame into raw and derived electrical readings, and
fans the results out to a Prometheus exporter and an MQTT broker.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

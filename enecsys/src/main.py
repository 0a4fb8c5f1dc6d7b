"""
Gateway daemon entrypoint for Enecsys micro-inverter telemetry.

Wires the components together and runs until SIGTERM/SIGINT:

1. **Settings**: loaded once from the YAML file given as the first
   command-line argument (see :mod:`enecsys.src.config`).
2. **Exporter**: Prometheus gauges served on ``metrics_port``.
3. **Publisher**: one persistent MQTT session, or a no-op publisher when
   MQTT is not configured.
4. **Listener**: accepts gateway connections on ``listen_port`` and runs
   every frame through the decode pipeline.

Graceful shutdown on SIGTERM/SIGINT sets a shared asyncio.Event; the
listener stops accepting, open connections are cancelled and the MQTT
session is closed.

Structured JSON logging is used for all events.

CHANGELOG:
- 2026-10-19: Initial creation
- 2026-10-19: JSON formatter emits peer and device_id context fields

TODO:
- None
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import signal
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from enecsys.src.config import load_settings
from enecsys.src.dispatcher import ResultDispatcher
from enecsys.src.health import HealthWriter
from enecsys.src.metrics import MetricsExporter
from enecsys.src.publisher import build_publisher
from enecsys.src.server import FrameServer

if TYPE_CHECKING:
    from enecsys.src.config import EnecsysSettings
    from enecsys.src.publisher import MqttPublisher, NullPublisher

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


CONTEXT_FIELDS = ("peer", "device_id")
"""Record attributes (passed via ``extra=``) copied into the JSON line."""


class GatewayJsonFormatter(logging.Formatter):
    """JSON log formatter that carries gateway connection context.

    Besides timestamp, level, logger and message, any of
    :data:`CONTEXT_FIELDS` set on the record is emitted as its own key, so
    log lines can be filtered by gateway peer or inverter id.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = str(value)
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level: str = "INFO") -> None:
    """Install :class:`GatewayJsonFormatter` on the root logger (stderr).

    Args:
        level: Root log level name.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(GatewayJsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def _masked_secret(value: str | None) -> str:
    """Return a short non-reversible fingerprint of a secret for diagnostics."""
    if not value:
        return "empty"
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]
    return f"len={len(value)} sha256={digest}"


# ---------------------------------------------------------------------------
# Startup config logging
# ---------------------------------------------------------------------------


def log_config_summary(settings: EnecsysSettings) -> None:
    """Log a config summary at startup, masking the MQTT password."""
    logger.info(
        "Gateway starting with config: "
        "listen_host=%s, listen_port=%s, metrics_port=%s, "
        "topic_namespace=%s, mqtt_enabled=%s, mqtt_address=%s, "
        "mqtt_client_name=%s, mqtt_user_name=%s, mqtt_password_masked=%s, "
        "publish_timeout_s=%s, health_path=%s, log_level=%s",
        settings.listen_host,
        settings.listen_port,
        settings.metrics_port,
        settings.topic_namespace,
        settings.mqtt_enabled,
        settings.mqtt_address,
        settings.mqtt_client_name,
        settings.mqtt_user_name,
        _masked_secret(settings.mqtt_password),
        settings.publish_timeout_s,
        settings.health_path,
        settings.log_level,
    )


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


async def run_gateway(
    *,
    server: FrameServer,
    publisher: MqttPublisher | NullPublisher,
    shutdown_event: asyncio.Event,
) -> None:
    """Run the frame listener until *shutdown_event* is set.

    The publisher is started before the listener accepts connections and
    stopped after the last connection has been closed.

    Args:
        server: The frame listener.
        publisher: MQTT publisher or null publisher.
        shutdown_event: Event to signal graceful shutdown.
    """
    publisher.start()
    try:
        await server.serve_until(shutdown_event)
    finally:
        publisher.stop()
        logger.info("Shutdown complete")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


async def async_main(argv: list[str] | None = None) -> None:
    """Async entrypoint: load config, build components, run until signalled.

    Args:
        argv: Command-line arguments without the program name; the first one
            is the config file path. Defaults to ``sys.argv[1:]``.
    """
    args = sys.argv[1:] if argv is None else argv
    configure_logging()

    settings = load_settings(args[0] if args else None)
    logging.getLogger().setLevel(settings.log_level)
    log_config_summary(settings)

    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: _handle_signal(shutdown_event),
        )

    exporter = MetricsExporter()
    exporter.serve(settings.metrics_port)

    publisher = build_publisher(settings)
    dispatcher = ResultDispatcher(
        exporter=exporter,
        publisher=publisher,
        namespace=settings.topic_namespace,
    )

    health = HealthWriter(settings.health_path) if settings.health_path else None

    server = FrameServer(
        host=settings.listen_host,
        port=settings.listen_port,
        dispatcher=dispatcher,
        health=health,
    )

    await run_gateway(
        server=server,
        publisher=publisher,
        shutdown_event=shutdown_event,
    )


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event.

    Args:
        shutdown_event: The event to set for graceful shutdown.
    """
    logger.info("Received shutdown signal, initiating graceful shutdown")
    shutdown_event.set()


def main() -> None:
    """Synchronous entrypoint for the gateway daemon."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()

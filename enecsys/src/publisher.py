"""
MQTT publish sink for inverter samples.

Keeps one persistent paho-mqtt session per process: the client connects in
the background at startup, paho's network thread handles keepalive and
reconnects, and every sample is published as a retained QoS 0 message on
the same session.

Operations:
- start(): Begin the background connection.
- publish(topic, payload): Send one retained message, bounded wait.
- stop(): Disconnect and stop the network thread.

When MQTT configuration is incomplete, :func:`build_publisher` returns a
:class:`NullPublisher` whose methods do nothing, so decoding and exporting
keep working without a broker.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import paho.mqtt.client as mqtt

if TYPE_CHECKING:
    from enecsys.src.config import EnecsysSettings

logger = logging.getLogger(__name__)

KEEPALIVE_S = 60
PUBLISH_QOS = 0


class MqttPublisher:
    """Retained QoS 0 publisher over a persistent paho-mqtt session.

    ``publish`` never raises: failures are logged and reported through the
    return value so the caller can carry on with the next sample.

    Args:
        host: Broker hostname or IP address.
        port: Broker TCP port.
        client_id: MQTT client identifier.
        username: Broker user name.
        password: Broker password.
        publish_timeout_s: Upper bound on how long ``publish`` waits for the
            message to be written to the socket.
        client: Pre-built paho client, for tests.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int,
        client_id: str,
        username: str | None = None,
        password: str | None = None,
        publish_timeout_s: float = 1.0,
        client: Any = None,
    ) -> None:
        self._host = host
        self._port = port
        self._publish_timeout_s = publish_timeout_s
        self._connected = False

        if client is None:
            client = mqtt.Client(
                mqtt.CallbackAPIVersion.VERSION2,
                client_id=client_id,
            )
        self._client = client
        if username is not None:
            self._client.username_pw_set(username, password)
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect

    # ------------------------------------------------------------------
    # Callbacks (run on paho's network thread)
    # ------------------------------------------------------------------

    def _on_connect(self, client, userdata, flags, reason_code, properties):  # noqa: ANN001
        if reason_code.is_failure:
            self._connected = False
            logger.error("MQTT connection refused: %s", reason_code)
        else:
            self._connected = True
            logger.info("Connected to MQTT broker %s:%d", self._host, self._port)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):  # noqa: ANN001
        self._connected = False
        if reason_code.is_failure:
            logger.warning("Disconnected from MQTT broker: %s", reason_code)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        """True: samples are sent to the broker."""
        return True

    @property
    def connected(self) -> bool:
        """True while the broker session is up."""
        return self._connected

    def start(self) -> None:
        """Connect in the background and start paho's network thread."""
        logger.info("Connecting to MQTT broker at %s:%d", self._host, self._port)
        self._client.connect_async(self._host, self._port, KEEPALIVE_S)
        self._client.loop_start()

    def publish(self, topic: str, payload: str) -> bool:
        """Publish *payload* to *topic*, retained, at most once.

        Returns:
            True if the message was handed to the broker connection within
            the publish timeout, False otherwise.
        """
        try:
            info = self._client.publish(topic, payload, qos=PUBLISH_QOS, retain=True)
            if info.rc != mqtt.MQTT_ERR_SUCCESS:
                logger.warning(
                    "MQTT publish to %s failed: %s", topic, mqtt.error_string(info.rc)
                )
                return False
            info.wait_for_publish(timeout=self._publish_timeout_s)
        except Exception:
            logger.warning("MQTT publish to %s failed", topic, exc_info=True)
            return False

        if not info.is_published():
            logger.warning(
                "MQTT publish to %s not confirmed within %.1fs",
                topic,
                self._publish_timeout_s,
            )
            return False
        logger.debug("Published %s = %s", topic, payload)
        return True

    def stop(self) -> None:
        """Disconnect from the broker and stop the network thread."""
        try:
            self._client.disconnect()
            self._client.loop_stop()
        except Exception:
            logger.debug("Error closing MQTT connection", exc_info=True)
        self._connected = False


class NullPublisher:
    """Publisher used when MQTT is not configured; drops every message."""

    @property
    def enabled(self) -> bool:
        """False: the dispatcher skips publishing."""
        return False

    @property
    def connected(self) -> bool:
        """Always False, there is no broker session."""
        return False

    def start(self) -> None:
        pass

    def publish(self, topic: str, payload: str) -> bool:
        return False

    def stop(self) -> None:
        pass


def build_publisher(settings: EnecsysSettings) -> MqttPublisher | NullPublisher:
    """Return an :class:`MqttPublisher` if MQTT is fully configured.

    Args:
        settings: Loaded gateway settings.

    Returns:
        A ready-to-start publisher, or a :class:`NullPublisher` when any
        MQTT setting is missing.
    """
    if not settings.mqtt_enabled:
        logger.error(
            "MQTT configuration incomplete (need userName, password, "
            "mqttAddress, clientName); no MQTT publishing will be active"
        )
        return NullPublisher()

    host, port = settings.mqtt_broker  # type: ignore[misc]
    logger.info("MQTT publishing active")
    return MqttPublisher(
        host=host,
        port=port,
        client_id=settings.mqtt_client_name,  # type: ignore[arg-type]
        username=settings.mqtt_user_name,
        password=settings.mqtt_password,
        publish_timeout_s=settings.publish_timeout_s,
    )

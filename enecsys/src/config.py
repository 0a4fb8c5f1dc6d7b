"""
Gateway configuration loaded from a YAML file and environment variables.

Uses Pydantic BaseSettings for validation. The YAML file named on the
command line supplies the MQTT credentials and optional overrides; any field
not present in the file falls back to an ``ENECSYS_``-prefixed environment
variable, then to its default. The resulting settings object is frozen and
passed explicitly to the components that need it.

Expected file layout::

    ---
    userName: valUserName
    password: valPassword
    mqttAddress: "tcp://host:1883"
    clientName: valClientName

Missing or invalid MQTT keys disable publishing only; the exporter and the
frame listener start regardless.

CHANGELOG:
- 2026-10-19: Initial creation
- 2026-10-19: Invalid MQTT values from the environment no longer abort startup

TODO:
- None
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml
from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_MQTT_PORT = 1883

YAML_KEYS: dict[str, str] = {
    "userName": "mqtt_user_name",
    "password": "mqtt_password",
    "mqttAddress": "mqtt_address",
    "clientName": "mqtt_client_name",
    "listenHost": "listen_host",
    "listenPort": "listen_port",
    "metricsPort": "metrics_port",
    "topicNamespace": "topic_namespace",
    "publishTimeout": "publish_timeout_s",
    "healthPath": "health_path",
    "logLevel": "log_level",
}
"""Maps YAML file keys to EnecsysSettings field names."""

MQTT_FIELDS = ("mqtt_user_name", "mqtt_password", "mqtt_address", "mqtt_client_name")

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def parse_broker_address(address: str) -> tuple[str, int]:
    """Split a broker address into host and port.

    Accepts ``tcp://host:port``, ``mqtt://host:port``, ``host:port`` and
    ``host``; the port defaults to 1883.

    Raises:
        ValueError: On an unsupported scheme, a missing host, or a bad port.
    """
    target = address if "://" in address else f"tcp://{address}"
    parts = urlsplit(target)
    if parts.scheme not in ("tcp", "mqtt"):
        raise ValueError(f"unsupported broker scheme '{parts.scheme}'")
    if not parts.hostname:
        raise ValueError(f"broker address '{address}' has no host")
    try:
        port = parts.port
    except ValueError as exc:
        raise ValueError(f"broker address '{address}' has an invalid port") from exc
    return parts.hostname, port if port is not None else DEFAULT_MQTT_PORT


class EnecsysSettings(BaseSettings):
    """Gateway configuration.

    Attributes:
        mqtt_user_name: Broker user name (YAML ``userName``).
        mqtt_password: Broker password (YAML ``password``).
        mqtt_address: Broker address (YAML ``mqttAddress``).
        mqtt_client_name: MQTT client id (YAML ``clientName``).
        listen_host: Interface for the frame listener.
        listen_port: TCP port gateways connect to (default 5040).
        metrics_port: Prometheus scrape port (default 5041).
        topic_namespace: First MQTT topic segment (default ``enecsys``).
        publish_timeout_s: Max wait per MQTT publish, in seconds.
        health_path: Health JSON file path; None disables the file.
        log_level: Root log level name.
    """

    model_config = SettingsConfigDict(env_prefix="ENECSYS_", frozen=True, extra="ignore")

    mqtt_user_name: str | None = None
    mqtt_password: str | None = None
    mqtt_address: str | None = None
    mqtt_client_name: str | None = None
    listen_host: str = "0.0.0.0"
    listen_port: int = 5040
    metrics_port: int = 5041
    topic_namespace: str = "enecsys"
    publish_timeout_s: float = 1.0
    health_path: str | None = None
    log_level: str = "INFO"

    @field_validator("mqtt_address")
    @classmethod
    def mqtt_address_must_parse(cls, v: str | None) -> str | None:
        """Validate that the broker address has a host and usable port."""
        if v is not None:
            parse_broker_address(v)
        return v

    @field_validator("mqtt_user_name", "mqtt_password", "mqtt_client_name")
    @classmethod
    def mqtt_value_must_not_be_blank(cls, v: str | None) -> str | None:
        """Reject empty strings for MQTT credentials and client id."""
        if v is not None and not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("listen_port", "metrics_port")
    @classmethod
    def port_must_be_valid(cls, v: int) -> int:
        """Validate TCP port is in valid range."""
        if v < 1 or v > 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("publish_timeout_s")
    @classmethod
    def publish_timeout_must_be_positive(cls, v: float) -> float:
        """Validate the publish timeout is positive."""
        if v <= 0:
            raise ValueError("publish timeout must be > 0")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        """Normalise and validate the log level name."""
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log level must be one of {sorted(_LOG_LEVELS)}")
        return level

    @property
    def mqtt_enabled(self) -> bool:
        """True when every MQTT setting is present."""
        return all(getattr(self, name) is not None for name in MQTT_FIELDS)

    @property
    def mqtt_broker(self) -> tuple[str, int] | None:
        """Broker ``(host, port)``, or None when no address is configured."""
        if self.mqtt_address is None:
            return None
        return parse_broker_address(self.mqtt_address)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _read_yaml(path: str | Path | None) -> dict[str, Any]:
    """Read the YAML mapping at *path*, or return {} after logging why not."""
    if path is None:
        logger.error(
            "No configuration file given; pass its path as the first argument "
            "to enable MQTT publishing"
        )
        return {}
    try:
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except OSError as exc:
        logger.error("Couldn't read config file %s: %s", path, exc)
        return {}
    except yaml.YAMLError as exc:
        logger.error("Couldn't parse config file %s: %s", path, exc)
        return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.error("Config file %s must contain a mapping", path)
        return {}
    return data


def _map_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Translate YAML keys to field names, dropping unknown keys."""
    fields: dict[str, Any] = {}
    for key, value in data.items():
        name = YAML_KEYS.get(str(key))
        if name is None:
            logger.warning("Ignoring unknown config key '%s'", key)
            continue
        fields[name] = str(value) if name in MQTT_FIELDS and value is not None else value
    return fields


def load_settings(path: str | Path | None) -> EnecsysSettings:
    """Load settings from the YAML file at *path*.

    Invalid MQTT values are logged and discarded so that the gateway runs
    without publishing; any other invalid value aborts startup.

    Args:
        path: Config file path, or None when none was given.

    Returns:
        The frozen settings object.

    Raises:
        pydantic.ValidationError: If a non-MQTT setting is invalid.
    """
    fields = _map_keys(_read_yaml(path))

    try:
        settings = EnecsysSettings(**fields)
    except ValidationError as exc:
        bad_mqtt = {
            err["loc"][0]
            for err in exc.errors()
            if err["loc"] and err["loc"][0] in MQTT_FIELDS
        }
        if not bad_mqtt:
            raise
        for err in exc.errors():
            if err["loc"] and err["loc"][0] in bad_mqtt:
                logger.error("Invalid %s: %s", err["loc"][0], err["msg"])
        # Explicit None also masks a bad value coming from the environment.
        for name in bad_mqtt:
            fields[str(name)] = None
        settings = EnecsysSettings(**fields)

    missing = [
        key for key, name in YAML_KEYS.items()
        if name in MQTT_FIELDS and getattr(settings, name) is None
    ]
    for key in missing:
        logger.error("%s missing.", key)
    return settings

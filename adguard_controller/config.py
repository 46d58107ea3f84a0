"""Configuration loader for adguard-controller."""

from __future__ import annotations

import os
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

from . import constants

# (environment variable, section, option)
ENVIRONMENT_OVERRIDES = (
    ("ADGUARD_URL", "adguard", "base_url"),
    ("ADGUARD_USERNAME", "adguard", "username"),
    ("ADGUARD_PASSWORD", "adguard", "password"),
    ("ADGUARD_TIMEOUT", "adguard", "timeout_seconds"),
    ("ADGUARD_SERVICE_ID", "adguard", "service_id"),
    ("MQTT_HOST", "mqtt", "host"),
    ("MQTT_PORT", "mqtt", "port"),
    ("MQTT_USERNAME", "mqtt", "username"),
    ("MQTT_PASSWORD", "mqtt", "password"),
    ("MQTT_TOPIC", "mqtt", "topic"),
    ("MQTT_TLS", "mqtt", "tls"),
    ("PORT", "http", "port"),
    ("LOG_LEVEL", "logging", "level"),
)


@dataclass(frozen=True, slots=True)
class AdGuardConfig:
    base_url: str = constants.DEFAULT_ADGUARD_URL
    username: str = constants.DEFAULT_ADGUARD_USERNAME
    password: str = constants.DEFAULT_ADGUARD_PASSWORD
    timeout_seconds: float = constants.DEFAULT_TIMEOUT_SECONDS
    service_id: str = constants.DEFAULT_SERVICE_ID
    service_name: str = constants.DEFAULT_SERVICE_NAME


@dataclass(frozen=True, slots=True)
class BrokerConfig:
    host: str = constants.DEFAULT_BROKER_HOST
    port: int = constants.DEFAULT_BROKER_PORT
    username: Optional[str] = None
    password: Optional[str] = None
    topic: str = constants.DEFAULT_TOPIC
    tls: bool = True
    keepalive_seconds: int = 10
    enabled: bool = True


@dataclass(frozen=True, slots=True)
class HttpConfig:
    host: str = constants.DEFAULT_HTTP_HOST
    port: int = constants.DEFAULT_HTTP_PORT


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = None
    log_network: bool = False


@dataclass(frozen=True, slots=True)
class ResilienceConfig:
    reconnect_delay_seconds: float = constants.DEFAULT_RECONNECT_DELAY_SECONDS
    reconnect_forever: bool = True
    reconnect_max_attempts: int = 0  # Only consulted when reconnect_forever is off
    queue_capacity: int = constants.DEFAULT_QUEUE_CAPACITY
    strict_status: bool = False


@dataclass(frozen=True, slots=True)
class ControllerConfig:
    adguard: AdGuardConfig
    broker: BrokerConfig
    http: HttpConfig
    logging: LoggingConfig
    resilience: ResilienceConfig
    raw: ConfigParser
    path: Path


def _getint(parser: ConfigParser, section: str, option: str, default: int) -> int:
    try:
        return parser.getint(section, option, fallback=default)
    except ValueError:
        return default


def _getfloat(
    parser: ConfigParser, section: str, option: str, default: float
) -> float:
    try:
        return parser.getfloat(section, option, fallback=default)
    except ValueError:
        return default


def _getboolean(
    parser: ConfigParser, section: str, option: str, default: bool
) -> bool:
    try:
        return parser.getboolean(section, option, fallback=default)
    except ValueError:
        return default


def _optional(parser: ConfigParser, section: str, option: str) -> Optional[str]:
    value = parser.get(section, option, fallback="")
    return value or None


def load_config(
    path: Optional[Path] = None, *, environ: Optional[Mapping[str, str]] = None
) -> ControllerConfig:
    """Load configuration from defaults, an optional file and the environment.

    Environment variables win over the file, which wins over the built-in
    defaults.
    """

    config_path = path or constants.DEFAULT_CONFIG_PATH
    env = os.environ if environ is None else environ

    parser = ConfigParser(interpolation=None)
    parser.read_dict(
        {
            "adguard": {
                "base_url": constants.DEFAULT_ADGUARD_URL,
                "username": constants.DEFAULT_ADGUARD_USERNAME,
                "password": constants.DEFAULT_ADGUARD_PASSWORD,
                "timeout_seconds": str(constants.DEFAULT_TIMEOUT_SECONDS),
                "service_id": constants.DEFAULT_SERVICE_ID,
                "service_name": constants.DEFAULT_SERVICE_NAME,
            },
            "mqtt": {
                "enabled": "true",
                "host": constants.DEFAULT_BROKER_HOST,
                "port": str(constants.DEFAULT_BROKER_PORT),
                "topic": constants.DEFAULT_TOPIC,
                "tls": "true",
                "keepalive_seconds": "10",
            },
            "http": {
                "host": constants.DEFAULT_HTTP_HOST,
                "port": str(constants.DEFAULT_HTTP_PORT),
            },
            "logging": {
                "level": "INFO",
                "log_network": "false",
            },
            "resilience": {
                "reconnect_delay_seconds": str(
                    constants.DEFAULT_RECONNECT_DELAY_SECONDS
                ),
                "reconnect_forever": "true",
                "reconnect_max_attempts": "0",
                "queue_capacity": str(constants.DEFAULT_QUEUE_CAPACITY),
                "strict_status": "false",
            },
        }
    )

    if config_path.exists():
        parser.read(config_path)

    for variable, section, option in ENVIRONMENT_OVERRIDES:
        value = env.get(variable)
        if value is not None:
            parser.set(section, option, value)

    adguard = AdGuardConfig(
        base_url=parser.get("adguard", "base_url").rstrip("/"),
        username=parser.get("adguard", "username"),
        password=parser.get("adguard", "password"),
        timeout_seconds=_getfloat(
            parser, "adguard", "timeout_seconds", constants.DEFAULT_TIMEOUT_SECONDS
        ),
        service_id=parser.get("adguard", "service_id"),
        service_name=parser.get("adguard", "service_name"),
    )

    broker = BrokerConfig(
        host=parser.get("mqtt", "host"),
        port=_getint(parser, "mqtt", "port", constants.DEFAULT_BROKER_PORT),
        username=_optional(parser, "mqtt", "username"),
        password=_optional(parser, "mqtt", "password"),
        topic=parser.get("mqtt", "topic"),
        tls=_getboolean(parser, "mqtt", "tls", True),
        keepalive_seconds=max(1, _getint(parser, "mqtt", "keepalive_seconds", 10)),
        enabled=_getboolean(parser, "mqtt", "enabled", True),
    )

    http = HttpConfig(
        host=parser.get("http", "host"),
        port=_getint(parser, "http", "port", constants.DEFAULT_HTTP_PORT),
    )

    log_path_value = parser.get("logging", "path", fallback="")
    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=Path(log_path_value).expanduser() if log_path_value else None,
        log_network=_getboolean(parser, "logging", "log_network", False),
    )

    resilience = ResilienceConfig(
        reconnect_delay_seconds=max(
            0.0,
            _getfloat(
                parser,
                "resilience",
                "reconnect_delay_seconds",
                constants.DEFAULT_RECONNECT_DELAY_SECONDS,
            ),
        ),
        reconnect_forever=_getboolean(parser, "resilience", "reconnect_forever", True),
        reconnect_max_attempts=max(
            0, _getint(parser, "resilience", "reconnect_max_attempts", 0)
        ),
        queue_capacity=max(
            1,
            _getint(
                parser,
                "resilience",
                "queue_capacity",
                constants.DEFAULT_QUEUE_CAPACITY,
            ),
        ),
        strict_status=_getboolean(parser, "resilience", "strict_status", False),
    )

    return ControllerConfig(
        adguard=adguard,
        broker=broker,
        http=http,
        logging=logging_config,
        resilience=resilience,
        raw=parser,
        path=config_path,
    )


def placeholder_settings(config: ControllerConfig) -> List[str]:
    """Return the appliance settings still holding their placeholder defaults."""

    placeholders = []
    if config.adguard.base_url == constants.DEFAULT_ADGUARD_URL:
        placeholders.append("adguard.base_url")
    if config.adguard.username == constants.DEFAULT_ADGUARD_USERNAME:
        placeholders.append("adguard.username")
    if config.adguard.password == constants.DEFAULT_ADGUARD_PASSWORD:
        placeholders.append("adguard.password")
    return placeholders

"""Constants used across the adguard-controller package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "adguard-controller"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / APP_NAME / DEFAULT_CONFIG_FILENAME

CLIENT_ID_PREFIX = "adguard_controller"

# Placeholders; real deployments override them through the environment.
DEFAULT_ADGUARD_URL = "default ip"
DEFAULT_ADGUARD_USERNAME = "default  username"
DEFAULT_ADGUARD_PASSWORD = "default password"
DEFAULT_TIMEOUT_SECONDS = 30.0

DEFAULT_SERVICE_ID = "youtube"
DEFAULT_SERVICE_NAME = "YouTube"

DEFAULT_BROKER_HOST = "localhost"
DEFAULT_BROKER_PORT = 8883
DEFAULT_TOPIC = "adguard/youtube"

DEFAULT_HTTP_HOST = "0.0.0.0"
DEFAULT_HTTP_PORT = 3000

DEFAULT_QUEUE_CAPACITY = 10
DEFAULT_RECONNECT_DELAY_SECONDS = 5.0

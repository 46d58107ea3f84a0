"""Adapter modules for external integrations."""

from .adguard import (
    AdGuardClient,
    AdGuardError,
    AuthError,
    RemoteError,
    SessionToken,
)
from .mqtt import MQTTClient, MQTTConnectionError, build_client_id

__all__ = [
    "AdGuardClient",
    "AdGuardError",
    "AuthError",
    "MQTTClient",
    "MQTTConnectionError",
    "RemoteError",
    "SessionToken",
    "build_client_id",
]

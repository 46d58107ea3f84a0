"""Domain models for commands and their outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class Command(str, Enum):
    """The two intents either inbound channel can express."""

    ENABLE_BLOCKING = "enable"
    DISABLE_BLOCKING = "disable"

    @property
    def enabled(self) -> bool:
        return self is Command.ENABLE_BLOCKING


class Channel(str, Enum):
    """Where a command came from."""

    HTTP = "http"
    MQTT = "mqtt"


class OutcomeKind(str, Enum):
    OK = "ok"
    AUTH_FAILED = "auth_failed"
    REMOTE_FAILED = "remote_failed"


_HTTP_STATUS = {
    OutcomeKind.OK: 200,
    OutcomeKind.AUTH_FAILED: 401,
    OutcomeKind.REMOTE_FAILED: 500,
}


@dataclass(frozen=True, slots=True)
class Outcome:
    success: bool
    message: str
    kind: OutcomeKind = OutcomeKind.OK

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self.kind]

    def as_dict(self) -> Dict[str, object]:
        return {"success": self.success, "message": self.message}

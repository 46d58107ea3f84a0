"""Runtime status of the controller as served on ``/healthz``."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from .core import Channel, Command, Outcome


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ServiceState(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass(slots=True)
class CommandRecord:
    """The last command seen on one channel and how it ended."""

    command: Command
    success: bool
    message: str
    finished_at: datetime = field(default_factory=_now)

    def as_dict(self) -> Dict[str, object]:
        return {
            "command": self.command.value,
            "success": self.success,
            "message": self.message,
            "finishedAt": self.finished_at.isoformat(timespec="seconds"),
        }


@dataclass(slots=True)
class BrokerStatus:
    state: str
    connected: bool
    detail: Optional[str] = None
    connections: int = 0
    failures: int = 0

    def as_dict(self) -> Dict[str, object]:
        return {
            "state": self.state,
            "connected": self.connected,
            "detail": self.detail,
            "connections": self.connections,
            "failures": self.failures,
        }


class HealthReporter:
    """Collects the service lifecycle, the broker link and recent outcomes.

    The controller reports ``ok`` while it is running, the broker link (once
    the supervisor has reported one) is connected, and the latest command on
    every channel succeeded. Anything else is ``degraded``.
    """

    def __init__(self) -> None:
        self._state: Optional[ServiceState] = None
        self._broker: Optional[BrokerStatus] = None
        self._last_commands: Dict[Channel, CommandRecord] = {}
        self._processed = 0
        self._dropped = 0
        self._lock = asyncio.Lock()

    async def set_service_state(self, state: ServiceState) -> None:
        async with self._lock:
            self._state = state

    async def record_broker(
        self,
        state: str,
        *,
        connected: bool,
        detail: Optional[str] = None,
        connections: int = 0,
        failures: int = 0,
    ) -> None:
        async with self._lock:
            self._broker = BrokerStatus(
                state=state,
                connected=connected,
                detail=detail,
                connections=connections,
                failures=failures,
            )

    async def record_outcome(
        self, channel: Channel, command: Command, outcome: Outcome
    ) -> None:
        async with self._lock:
            self._processed += 1
            self._last_commands[channel] = CommandRecord(
                command=command, success=outcome.success, message=outcome.message
            )

    async def record_dropped(self) -> None:
        async with self._lock:
            self._dropped += 1

    async def snapshot(self) -> Dict[str, object]:
        async with self._lock:
            state = self._state
            broker = self._broker
            last_commands = dict(self._last_commands)
            processed, dropped = self._processed, self._dropped

        healthy = all(record.success for record in last_commands.values())
        if state is not None and state is not ServiceState.RUNNING:
            healthy = False
        if broker is not None and not broker.connected:
            healthy = False

        return {
            "status": "ok" if healthy else "degraded",
            "state": state.value if state is not None else None,
            "broker": broker.as_dict() if broker is not None else None,
            "lastCommand": {
                channel.value: record.as_dict()
                for channel, record in last_commands.items()
            },
            "commands": {"processed": processed, "dropped": dropped},
        }

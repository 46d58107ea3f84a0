"""Broker connection supervision.

The supervisor keeps the MQTT subscription alive for the lifetime of the
process: it connects, subscribes, waits for the link to drop, pauses for the
configured delay and starts over.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .adapters.mqtt import MQTTConnectionError

if TYPE_CHECKING:
    from .adapters.mqtt import MQTTClient
    from .config import ResilienceConfig
    from .health import HealthReporter

LOGGER = logging.getLogger(__name__)

# At-most-once delivery for command messages.
COMMAND_QOS = 0


class ConnectionState(str, Enum):
    """Current state of the MQTT connection."""

    DISCONNECTED = "disconnected"
    """Not connected to MQTT broker."""

    CONNECTING = "connecting"
    """Attempting the first connection."""

    CONNECTED = "connected"
    """Connected and subscribed to the command topic."""

    RECONNECTING = "reconnecting"
    """Waiting out the reconnect delay after a failure."""


class ConnectionSupervisor:
    """Owns the connect / subscribe / reconnect cycle of the MQTT client."""

    def __init__(
        self,
        *,
        mqtt_client: MQTTClient,
        topic: str,
        resilience_config: ResilienceConfig,
        health: Optional[HealthReporter] = None,
    ) -> None:
        self._mqtt_client = mqtt_client
        self._topic = topic
        self._resilience = resilience_config
        self._health = health

        self._state = ConnectionState.DISCONNECTED
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None
        self.failures = 0
        self.connections = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def reconnect_delay(self) -> float:
        return self._resilience.reconnect_delay_seconds

    def start(self) -> None:
        """Start the supervision task."""
        if self._task is not None and not self._task.done():
            LOGGER.warning("Supervisor already running")
            return

        self._stop_event.clear()
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Stop supervising and disconnect from the broker."""
        self._stop_event.set()

        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

        try:
            await self._mqtt_client.disconnect()
        except Exception as exc:
            LOGGER.debug("Ignoring error during MQTT shutdown: %s", exc)
        await self._set_state(ConnectionState.DISCONNECTED, "stopped")

    async def run(self) -> None:
        """Connect and keep reconnecting until stopped or out of attempts."""

        consecutive_failures = 0
        await self._set_state(ConnectionState.CONNECTING, "connecting")

        while not self._stop_event.is_set():
            try:
                await self._mqtt_client.connect()
                self._mqtt_client.subscribe(self._topic, qos=COMMAND_QOS)
            except (MQTTConnectionError, RuntimeError, OSError) as exc:
                self.failures += 1
                consecutive_failures += 1
                LOGGER.error("MQTT error: %s", exc)
                with contextlib.suppress(Exception):
                    await self._mqtt_client.disconnect()
            else:
                consecutive_failures = 0
                self.connections += 1
                LOGGER.info("Subscribed to MQTT topic: %s", self._topic)
                await self._set_state(ConnectionState.CONNECTED, None)

                await self._wait_for_disconnect()
                if self._stop_event.is_set():
                    break

                self.failures += 1
                LOGGER.error("MQTT error: connection to broker lost")
                with contextlib.suppress(Exception):
                    await self._mqtt_client.disconnect()

            if not self._should_retry(consecutive_failures):
                LOGGER.error(
                    "Giving up on MQTT after %d consecutive failures",
                    consecutive_failures,
                )
                await self._set_state(ConnectionState.DISCONNECTED, "gave up")
                return

            await self._set_state(
                ConnectionState.RECONNECTING,
                f"retrying in {self.reconnect_delay:.1f}s",
            )
            if await self._sleep(self.reconnect_delay):
                break

    def _should_retry(self, consecutive_failures: int) -> bool:
        if self._resilience.reconnect_forever:
            return True
        return consecutive_failures < self._resilience.reconnect_max_attempts

    async def _wait_for_disconnect(self) -> None:
        disconnected = asyncio.create_task(self._mqtt_client.wait_disconnected())
        stopped = asyncio.create_task(self._stop_event.wait())
        try:
            await asyncio.wait(
                {disconnected, stopped}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (disconnected, stopped):
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    async def _sleep(self, delay: float) -> bool:
        """Pause for ``delay``; returns True when stopped meanwhile."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    async def _set_state(self, state: ConnectionState, detail: Optional[str]) -> None:
        if state != self._state:
            LOGGER.debug("MQTT state %s -> %s", self._state.value, state.value)
        self._state = state
        if self._health is not None:
            await self._health.record_broker(
                state.value,
                connected=state == ConnectionState.CONNECTED,
                detail=detail,
                connections=self.connections,
                failures=self.failures,
            )

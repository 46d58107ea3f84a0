"""Command dispatch: login, update blocked services, report the outcome."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

from . import constants
from .adapters.adguard import AuthError, RemoteError, SessionToken
from .core import Channel, Command, Outcome, OutcomeKind
from .health import HealthReporter

LOGGER = logging.getLogger(__name__)


class BlockingClient(Protocol):
    async def login(self) -> SessionToken: ...

    async def set_blocking(self, token: SessionToken, enabled: bool) -> None: ...


class Dispatcher:
    """Runs commands against AdGuard Home regardless of which channel sent them.

    :meth:`handle` returns the :class:`Outcome`; the HTTP surface turns it into
    a response while :meth:`consume` only logs it.
    """

    def __init__(
        self,
        client: BlockingClient,
        *,
        service_name: str = constants.DEFAULT_SERVICE_NAME,
        health: Optional[HealthReporter] = None,
    ) -> None:
        self._client = client
        self._service_name = service_name
        self._health = health
        self.processed = 0

    async def handle(
        self, command: Command, *, channel: Channel = Channel.HTTP
    ) -> Outcome:
        verb = "enable" if command.enabled else "disable"

        try:
            token = await self._client.login()
        except AuthError as exc:
            LOGGER.error("Failed to login: %s", exc)
            outcome = Outcome(
                success=False,
                message=f"Failed to login to AdGuard Home: {exc}",
                kind=OutcomeKind.AUTH_FAILED,
            )
            await self._record(channel, command, outcome)
            return outcome

        try:
            await self._client.set_blocking(token, command.enabled)
        except RemoteError as exc:
            LOGGER.error(
                "Failed to %s %s blocking: %s", verb, self._service_name, exc
            )
            outcome = Outcome(
                success=False,
                message=f"Failed to {verb} {self._service_name} blocking: {exc}",
                kind=OutcomeKind.REMOTE_FAILED,
            )
            await self._record(channel, command, outcome)
            return outcome

        message = f"{self._service_name} blocking {verb}d successfully"
        LOGGER.info("%s", message)
        outcome = Outcome(success=True, message=message)
        await self._record(channel, command, outcome)
        return outcome

    async def consume(self, queue: asyncio.Queue[Command]) -> None:
        """Drain ``queue`` in FIFO order for as long as the task runs."""

        LOGGER.info("Command consumer started")
        while True:
            command = await queue.get()
            try:
                outcome = await self.handle(command, channel=Channel.MQTT)
            except Exception:
                LOGGER.exception("Unexpected failure handling %s", command.value)
            else:
                if outcome.success:
                    LOGGER.info("MQTT command %s: %s", command.value, outcome.message)
                else:
                    LOGGER.error("MQTT command %s: %s", command.value, outcome.message)
            finally:
                queue.task_done()

    async def _record(
        self, channel: Channel, command: Command, outcome: Outcome
    ) -> None:
        self.processed += 1
        if self._health is not None:
            await self._health.record_outcome(channel, command, outcome)

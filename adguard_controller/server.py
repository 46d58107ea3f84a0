"""HTTP control surface: one-tap GET routes that toggle blocking."""

from __future__ import annotations

import contextlib
import logging
from typing import Optional

from aiohttp import web

from . import constants
from .core import Command, Outcome, OutcomeKind
from .dispatcher import Dispatcher
from .health import HealthReporter

LOGGER = logging.getLogger(__name__)


class ControlServer:
    """aiohttp server exposing status, enable and disable routes.

    The trigger routes are plain GETs so they can be fired from a phone
    shortcut; each one waits for the full login and update before answering.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        host: str,
        port: int,
        *,
        health: Optional[HealthReporter] = None,
        service_id: str = constants.DEFAULT_SERVICE_ID,
        service_name: str = constants.DEFAULT_SERVICE_NAME,
    ) -> None:
        self._dispatcher = dispatcher
        self._host = host
        self._port = port
        self._health = health
        self._service_id = service_id
        self._service_name = service_name
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/", self._handle_status)
        app.router.add_get(
            f"/{self._service_id}/enable", self._handle_enable, allow_head=False
        )
        app.router.add_get(
            f"/{self._service_id}/disable", self._handle_disable, allow_head=False
        )
        app.router.add_get("/healthz", self._handle_health)
        return app

    async def start(self) -> None:
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        try:
            await self._site.start()
        except OSError:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
            raise
        LOGGER.info("Listening on %s:%s", self._host, self._port)

    async def stop(self) -> None:
        with contextlib.suppress(Exception):
            if self._site is not None:
                await self._site.stop()
        if self._runner is not None:
            await self._runner.cleanup()
        self._site = None
        self._runner = None

    async def _handle_status(self, request: web.Request) -> web.Response:
        return web.json_response(
            {
                "success": True,
                "message": f"AdGuard {self._service_name} API is running",
            }
        )

    async def _handle_enable(self, request: web.Request) -> web.Response:
        return await self._dispatch(Command.ENABLE_BLOCKING)

    async def _handle_disable(self, request: web.Request) -> web.Response:
        return await self._dispatch(Command.DISABLE_BLOCKING)

    async def _handle_health(self, request: web.Request) -> web.Response:
        if self._health is None:
            return web.json_response({"status": "ok"})
        snapshot = await self._health.snapshot()
        status = 200 if snapshot["status"] == "ok" else 503
        return web.json_response(snapshot, status=status)

    async def _dispatch(self, command: Command) -> web.Response:
        try:
            outcome = await self._dispatcher.handle(command)
        except Exception as exc:
            verb = "enable" if command.enabled else "disable"
            LOGGER.exception("Unexpected failure handling %s", command.value)
            outcome = Outcome(
                success=False,
                message=f"Failed to {verb} {self._service_name} blocking: {exc}",
                kind=OutcomeKind.REMOTE_FAILED,
            )
        return web.json_response(outcome.as_dict(), status=outcome.http_status)

import asyncio
from typing import Any, Optional

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from adguard_controller.adapters.adguard import AuthError, RemoteError
from adguard_controller.config import AdGuardConfig


class ApplianceStub:
    """AdGuard Home stand-in recording every login and update it receives."""

    def __init__(self) -> None:
        self.cookie: Optional[str] = "sess=abc"
        self.login_body = "OK"
        self.update_status = 200
        self.update_body = ""
        self.update_delay = 0.0
        self.logins: list[dict[str, Any]] = []
        self.updates: list[dict[str, Any]] = []
        self.base_url = ""

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/control/login", self._login)
        app.router.add_put("/control/blocked_services/update", self._update)
        return app

    async def _login(self, request: web.Request) -> web.Response:
        self.logins.append(await request.json())
        response = web.Response(text=self.login_body)
        if self.cookie:
            response.headers["Set-Cookie"] = self.cookie
        return response

    async def _update(self, request: web.Request) -> web.Response:
        self.updates.append(
            {"cookie": request.headers.get("Cookie"), "body": await request.json()}
        )
        if self.update_delay:
            await asyncio.sleep(self.update_delay)
        return web.Response(status=self.update_status, text=self.update_body)

    def config(self, **overrides: Any) -> AdGuardConfig:
        values: dict[str, Any] = {
            "base_url": self.base_url,
            "username": "admin",
            "password": "secret",
            "timeout_seconds": 5.0,
        }
        values.update(overrides)
        return AdGuardConfig(**values)


@pytest_asyncio.fixture
async def appliance():
    stub = ApplianceStub()
    server = TestServer(stub.build_app())
    await server.start_server()
    stub.base_url = str(server.make_url("/")).rstrip("/")
    try:
        yield stub
    finally:
        await server.close()


class FakeAdGuardClient:
    """In-memory client recording the calls a dispatcher makes."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.login_error: Optional[Exception] = None
        self.update_error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None

    async def login(self) -> str:
        self.calls.append(("login",))
        if self.login_error is not None:
            error, self.login_error = self.login_error, None
            raise error
        return "sess=abc"

    async def set_blocking(self, token: str, enabled: bool) -> None:
        if self.gate is not None:
            await self.gate.wait()
        self.calls.append(("set_blocking", token, enabled))
        if self.update_error is not None:
            raise self.update_error


@pytest.fixture
def fake_client() -> FakeAdGuardClient:
    return FakeAdGuardClient()


@pytest.fixture
def no_cookie_error() -> AuthError:
    return AuthError(
        "No cookies found in response", reason=AuthError.NO_COOKIE, body="denied"
    )


@pytest.fixture
def transport_error() -> RemoteError:
    return RemoteError("Connection reset by peer", reason=RemoteError.TRANSPORT)

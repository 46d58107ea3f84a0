"""AdGuard Home adapter: session login and blocked-services updates."""

from __future__ import annotations

import asyncio
import logging
from http.cookies import CookieError, SimpleCookie
from typing import Any, Dict, Optional

import aiohttp
from aiohttp import hdrs

from ..config import AdGuardConfig

LOGGER = logging.getLogger(__name__)

LOGIN_PATH = "/control/login"
BLOCKED_SERVICES_UPDATE_PATH = "/control/blocked_services/update"

NO_COOKIE_MESSAGE = "No cookies found in response"

# Opaque cookie header value obtained from a login call.
SessionToken = str


class AdGuardError(RuntimeError):
    """Base class for failures talking to AdGuard Home."""

    reason: str = "unknown"


class AuthError(AdGuardError):
    """Raised when a login does not yield a session cookie."""

    NO_COOKIE = "no_cookie"
    TRANSPORT = "transport"

    def __init__(self, message: str, *, reason: str, body: Optional[str] = None):
        super().__init__(message)
        self.reason = reason
        self.body = body


class RemoteError(AdGuardError):
    """Raised when the blocked-services update call fails."""

    TRANSPORT = "transport"
    STATUS = "status"

    def __init__(self, message: str, *, reason: str, status: Optional[int] = None):
        super().__init__(message)
        self.reason = reason
        self.status = status


def extract_session_token(set_cookie: str) -> SessionToken:
    """Reduce a ``Set-Cookie`` header to the ``name=value`` pairs to send back."""

    cookie = SimpleCookie()
    try:
        cookie.load(set_cookie)
    except CookieError:
        cookie = SimpleCookie()

    pairs = [f"{name}={morsel.value}" for name, morsel in cookie.items()]
    if pairs:
        return "; ".join(pairs)
    return set_cookie.split(";", 1)[0].strip()


class AdGuardClient:
    """Stateless client for the AdGuard Home control API.

    Every mutating call is preceded by its own :meth:`login`; nothing is cached
    between calls, so one instance can be shared by concurrent tasks.
    """

    def __init__(
        self,
        config: AdGuardConfig,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        strict_status: bool = False,
    ) -> None:
        self.config = config
        self.strict_status = strict_status
        self._base_url = config.base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "AdGuardClient":
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def open(self) -> None:
        await self._ensure_session()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None

    @property
    def login_url(self) -> str:
        return f"{self._base_url}{LOGIN_PATH}"

    @property
    def update_url(self) -> str:
        return f"{self._base_url}{BLOCKED_SERVICES_UPDATE_PATH}"

    def blocked_services_payload(self, enabled: bool) -> Dict[str, Any]:
        ids = [self.config.service_id] if enabled else []
        return {"ids": ids, "schedule": {"time_zone": "Local"}}

    async def login(self) -> SessionToken:
        """Log in and return the session cookie.

        Raises:
            AuthError: If no ``Set-Cookie`` header is returned or the request
                fails at the transport level.
        """

        session = await self._ensure_session()
        payload = {"name": self.config.username, "password": self.config.password}

        LOGGER.info("Sending login request to: %s", self.login_url)

        try:
            async with session.post(self.login_url, json=payload) as response:
                set_cookie = response.headers.get(hdrs.SET_COOKIE)
                if set_cookie:
                    LOGGER.info("Login successful, received cookies")
                    return extract_session_token(set_cookie)

                body = await response.text(errors="replace")
        except asyncio.TimeoutError as exc:
            raise AuthError(self._timeout_message(), reason=AuthError.TRANSPORT) from exc
        except (aiohttp.ClientError, ValueError) as exc:
            raise AuthError(str(exc), reason=AuthError.TRANSPORT) from exc

        LOGGER.error(
            "Login response (status %s) with no cookies: %s", response.status, body
        )
        raise AuthError(NO_COOKIE_MESSAGE, reason=AuthError.NO_COOKIE, body=body)

    async def set_blocking(self, token: SessionToken, enabled: bool) -> None:
        """Replace the blocked-services list with the tracked service or nothing.

        Raises:
            RemoteError: On transport failure, or a non-2xx status when
                ``strict_status`` is set.
        """

        session = await self._ensure_session()
        action = "Enabling" if enabled else "Disabling"
        LOGGER.info(
            "%s %s blocking at: %s", action, self.config.service_name, self.update_url
        )

        try:
            async with session.put(
                self.update_url,
                json=self.blocked_services_payload(enabled),
                headers={hdrs.COOKIE: token},
            ) as response:
                status = response.status
                body = await response.text(errors="replace")
        except asyncio.TimeoutError as exc:
            raise RemoteError(
                self._timeout_message(), reason=RemoteError.TRANSPORT
            ) from exc
        except (aiohttp.ClientError, ValueError) as exc:
            raise RemoteError(str(exc), reason=RemoteError.TRANSPORT) from exc

        LOGGER.info("Blocked services update response status: %s", status)
        LOGGER.info("Response body: %s", body)

        if self.strict_status and not 200 <= status < 300:
            raise RemoteError(
                f"AdGuard Home responded with status {status}",
                reason=RemoteError.STATUS,
                status=status,
            )

    async def enable_blocking(self, token: SessionToken) -> None:
        await self.set_blocking(token, True)

    async def disable_blocking(self, token: SessionToken) -> None:
        await self.set_blocking(token, False)

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds),
                cookie_jar=aiohttp.DummyCookieJar(),
            )
            self._owns_session = True
        return self._session

    def _timeout_message(self) -> str:
        return f"request timed out after {self.config.timeout_seconds:g}s"

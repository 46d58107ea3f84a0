"""MQTT adapter encapsulating paho-mqtt client usage."""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
import uuid
from typing import Awaitable, Callable, List, Optional

import paho.mqtt.client as mqtt

from .. import constants
from ..config import BrokerConfig

LOGGER = logging.getLogger(__name__)
# paho writes its packet trace here.
PAHO_LOGGER = logging.getLogger("paho.mqtt.client")

MessageHandler = Callable[[str, bytes], Awaitable[None] | None]

# How often a blocked network thread re-checks whether the client is closing.
_DELIVERY_POLL_SECONDS = 0.5


class MQTTConnectionError(RuntimeError):
    """Raised when the MQTT client fails to establish a connection."""


def build_client_id() -> str:
    return f"{constants.CLIENT_ID_PREFIX}_{uuid.uuid4()}"


class MQTTClient:
    """Async-friendly wrapper over the threaded paho-mqtt client.

    Incoming messages are handed to the async message handler and the paho
    network thread waits for the handler to finish, so a slow handler stalls
    further consumption instead of piling up work.
    """

    def __init__(
        self,
        config: BrokerConfig,
        *,
        client_id: str,
        keepalive: Optional[int] = None,
    ) -> None:
        self.config = config
        self.client_id = client_id
        self.keepalive = keepalive if keepalive is not None else config.keepalive_seconds

        self._client: Optional[mqtt.Client] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._connected_event: Optional[asyncio.Event] = None
        self._disconnect_event: Optional[asyncio.Event] = None
        self._message_handler: Optional[MessageHandler] = None
        self._last_connect_rc: Optional[int] = None
        self._connected: bool = False
        self._closing = threading.Event()
        self._disconnect_handlers: List[Callable[[int], None]] = []
        self._connect_handlers: List[Callable[[int], None]] = []

    async def connect(self, timeout: float = 30.0) -> None:
        """Connect to the MQTT broker and wait for acknowledgement."""

        self._loop = asyncio.get_running_loop()
        self._connected_event = asyncio.Event()
        self._disconnect_event = asyncio.Event()
        self._last_connect_rc = None
        self._closing.clear()

        client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            reconnect_on_failure=False,
        )
        client.enable_logger(PAHO_LOGGER)

        if self.config.username:
            client.username_pw_set(self.config.username, self.config.password)

        if self.config.tls:
            client.tls_set()

        client.on_connect = self._on_connect
        client.on_connect_fail = self._on_connect_fail
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message

        self._client = client

        LOGGER.info(
            "Connecting to MQTT broker %s:%s (tls=%s)",
            self.config.host,
            self.config.port,
            self.config.tls,
        )

        try:
            client.connect_async(self.config.host, self.config.port, self.keepalive)
        except (OSError, ValueError) as exc:
            self._client = None
            raise MQTTConnectionError(f"Invalid MQTT broker address: {exc}") from exc
        client.loop_start()

        try:
            await asyncio.wait_for(self._connected_event.wait(), timeout=timeout)
            if self._last_connect_rc is None or self._last_connect_rc != 0:
                raise MQTTConnectionError(
                    f"MQTT broker rejected connection (rc={self._last_connect_rc})"
                )
        except asyncio.TimeoutError as exc:
            self._release(client)
            raise MQTTConnectionError("Timed out connecting to MQTT broker") from exc
        except MQTTConnectionError:
            self._release(client)
            raise

    async def disconnect(self, timeout: float = 5.0) -> None:
        """Gracefully disconnect from the broker."""

        if not self._client:
            return

        assert self._disconnect_event is not None

        # Unblock a network thread still waiting on a handler.
        self._closing.set()
        self._client.disconnect()

        try:
            await asyncio.wait_for(self._disconnect_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            LOGGER.warning("Timed out waiting for MQTT disconnect acknowledgement")
        finally:
            self._release(self._client)
        self._connected = False

    async def wait_disconnected(self) -> None:
        """Block until the current connection is lost or closed."""

        if self._disconnect_event is None:
            return
        await self._disconnect_event.wait()

    def subscribe(self, topic: str, qos: int = 0) -> None:
        if not self._client:
            raise RuntimeError("MQTT client not connected")
        result, _ = self._client.subscribe(topic, qos=qos)
        if result != mqtt.MQTT_ERR_SUCCESS:
            raise MQTTConnectionError(f"Subscribe failed with rc={result}")

    def set_message_handler(self, handler: Optional[MessageHandler]) -> None:
        self._message_handler = handler

    def register_disconnect_handler(self, handler: Callable[[int], None]) -> None:
        self._disconnect_handlers.append(handler)

    def register_connect_handler(self, handler: Callable[[int], None]) -> None:
        self._connect_handlers.append(handler)

    def is_connected(self) -> bool:
        return self._connected

    def _release(self, client: mqtt.Client) -> None:
        self._closing.set()
        client.loop_stop()
        if self._client is client:
            self._client = None

    # ------------------------------------------------------------------
    # Internal callbacks bridging the threaded paho callbacks into asyncio
    # ------------------------------------------------------------------
    def _on_connect(
        self, client: mqtt.Client, userdata, flags, reason_code, properties=None
    ) -> None:
        rc = _reason_value(reason_code)
        self._last_connect_rc = rc
        loop = self._loop
        if rc == 0:
            LOGGER.info("Connected to MQTT broker")
            self._connected = True
            if loop:
                loop.call_soon_threadsafe(self._set_event, self._connected_event)
                for handler in self._connect_handlers:
                    loop.call_soon_threadsafe(handler, rc)
        else:
            LOGGER.error("MQTT connection failed with rc=%s", rc)
            self._connected = False
            if loop:
                loop.call_soon_threadsafe(self._set_event, self._connected_event)
                # Treat a refused connection as closed.
                loop.call_soon_threadsafe(self._set_event, self._disconnect_event)

    def _on_connect_fail(self, client: mqtt.Client, userdata) -> None:
        LOGGER.error("MQTT connection attempt failed before broker acknowledgement")
        self._last_connect_rc = -1
        loop = self._loop
        if loop:
            loop.call_soon_threadsafe(self._set_event, self._connected_event)
            loop.call_soon_threadsafe(self._set_event, self._disconnect_event)

    def _on_disconnect(
        self,
        client: mqtt.Client,
        userdata,
        disconnect_flags=None,
        reason_code=0,
        properties=None,
    ) -> None:
        rc = _reason_value(reason_code)
        LOGGER.info("Disconnected from MQTT broker (rc=%s)", rc)
        self._connected = False
        loop = self._loop
        if loop:
            loop.call_soon_threadsafe(self._set_event, self._disconnect_event)
            for handler in self._disconnect_handlers:
                loop.call_soon_threadsafe(handler, rc)

    def _on_message(
        self, client: mqtt.Client, userdata, message: mqtt.MQTTMessage
    ) -> None:
        handler = self._message_handler
        loop = self._loop
        if not handler or not loop:
            return

        try:
            result = handler(message.topic, message.payload)
        except Exception:
            LOGGER.exception("MQTT message handler raised an exception")
            return

        if not asyncio.iscoroutine(result):
            return

        future = asyncio.run_coroutine_threadsafe(result, loop)
        while not self._closing.is_set():
            try:
                future.result(timeout=_DELIVERY_POLL_SECONDS)
                return
            except concurrent.futures.TimeoutError:
                continue
            except concurrent.futures.CancelledError:
                return
            except Exception:
                LOGGER.exception("MQTT message handler raised an exception")
                return
        future.cancel()

    @staticmethod
    def _set_event(event: Optional[asyncio.Event]) -> None:
        if event is not None:
            event.set()


def _reason_value(reason_code) -> int:
    value = getattr(reason_code, "value", reason_code)
    try:
        return int(value)
    except (TypeError, ValueError):
        return -1

"""Main application entry-point for adguard-controller."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from .adapters import AdGuardClient, MQTTClient, build_client_id
from .commands import MessagingAdapter, create_command_queue
from .config import ControllerConfig, load_config, placeholder_settings
from .connection import ConnectionSupervisor
from .core import Command
from .dispatcher import Dispatcher
from .health import HealthReporter, ServiceState
from .logging import configure_logging
from .server import ControlServer

LOGGER = logging.getLogger(__name__)


class ControllerApp:
    """Coordinates application startup and shutdown.

    Three long-lived tasks share one event loop: the HTTP server, the MQTT
    connection supervisor and the dispatcher's queue consumer. All of them
    use the same :class:`AdGuardClient`, which keeps no session state.
    """

    def __init__(
        self,
        config: Optional[ControllerConfig] = None,
        *,
        adguard_client: Optional[AdGuardClient] = None,
        mqtt_client: Optional[MQTTClient] = None,
    ) -> None:
        self._config = config or load_config()
        self._client = adguard_client
        self._mqtt_client = mqtt_client
        self._health = HealthReporter()
        self._client_id = build_client_id()
        self._dispatcher: Optional[Dispatcher] = None
        self._server: Optional[ControlServer] = None
        self._supervisor: Optional[ConnectionSupervisor] = None
        self._consumer_task: Optional[asyncio.Task[None]] = None
        self._shutdown_event: Optional[asyncio.Event] = None

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def dispatcher(self) -> Optional[Dispatcher]:
        return self._dispatcher

    @property
    def supervisor(self) -> Optional[ConnectionSupervisor]:
        return self._supervisor

    @property
    def health(self) -> HealthReporter:
        return self._health

    @classmethod
    def start(cls, config: Optional[ControllerConfig] = None) -> None:
        instance = cls(config=config)
        configure_logging(
            instance._config.logging.level,
            log_path=instance._config.logging.path,
            log_network=instance._config.logging.log_network,
        )
        try:
            asyncio.run(instance.run())
        except KeyboardInterrupt:
            LOGGER.info("adguard-controller received shutdown signal")

    async def run(self) -> None:
        self._shutdown_event = asyncio.Event()

        LOGGER.info("Starting AdGuard %s API", self._config.adguard.service_name)
        LOGGER.info("Configured for AdGuard Home at: %s", self._config.adguard.base_url)
        for setting in placeholder_settings(self._config):
            LOGGER.warning("%s is using its placeholder default", setting)

        try:
            await self._start_services()
            await self._shutdown_event.wait()
        except asyncio.CancelledError:
            LOGGER.info("adguard-controller received shutdown signal")
            raise
        finally:
            await self._stop_services()

    def request_shutdown(self) -> None:
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    async def _start_services(self) -> None:
        config = self._config
        await self._health.set_service_state(ServiceState.STARTING)

        if self._client is None:
            self._client = AdGuardClient(
                config.adguard, strict_status=config.resilience.strict_status
            )
        # Failing to build the HTTP client is fatal.
        await self._client.open()

        self._dispatcher = Dispatcher(
            self._client,
            service_name=config.adguard.service_name,
            health=self._health,
        )

        if config.broker.enabled:
            queue = create_command_queue(config.resilience.queue_capacity)
            adapter = MessagingAdapter(queue, health=self._health)
            self._consumer_task = asyncio.create_task(self._dispatcher.consume(queue))

            if self._mqtt_client is None:
                self._mqtt_client = MQTTClient(config.broker, client_id=self._client_id)
            self._mqtt_client.set_message_handler(adapter.handle_message)
            self._supervisor = ConnectionSupervisor(
                mqtt_client=self._mqtt_client,
                topic=config.broker.topic,
                resilience_config=config.resilience,
                health=self._health,
            )
            self._supervisor.start()
        else:
            LOGGER.info("MQTT disabled; only the HTTP surface is active")

        self._server = ControlServer(
            self._dispatcher,
            config.http.host,
            config.http.port,
            health=self._health,
            service_id=config.adguard.service_id,
            service_name=config.adguard.service_name,
        )
        await self._server.start()

        await self._health.set_service_state(ServiceState.RUNNING)

    async def _stop_services(self) -> None:
        await self._health.set_service_state(ServiceState.STOPPING)

        if self._server is not None:
            await self._server.stop()
            self._server = None

        if self._supervisor is not None:
            await self._supervisor.stop()
            self._supervisor = None

        if self._consumer_task is not None:
            self._consumer_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer_task
            self._consumer_task = None

        if self._client is not None:
            await self._client.close()


async def dispatch_once(config: ControllerConfig, command: Command) -> bool:
    """Run a single command outside the long-lived service."""

    async with AdGuardClient(
        config.adguard, strict_status=config.resilience.strict_status
    ) as client:
        dispatcher = Dispatcher(client, service_name=config.adguard.service_name)
        outcome = await dispatcher.handle(command)

    print(outcome.message)
    return outcome.success

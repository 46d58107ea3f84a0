"""Messaging command intake: decode MQTT payloads into queued commands."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Union

from . import constants
from .core import Command
from .health import HealthReporter

LOGGER = logging.getLogger(__name__)

_PAYLOADS = {command.value: command for command in Command}


def create_command_queue(
    capacity: int = constants.DEFAULT_QUEUE_CAPACITY,
) -> asyncio.Queue[Command]:
    if capacity < 1:
        raise ValueError("Command queue capacity must be positive")
    return asyncio.Queue(maxsize=capacity)


def decode_command(payload: Union[bytes, str]) -> Optional[Command]:
    """Map a raw payload to a command; ``None`` when unrecognised.

    Invalid UTF-8 is replaced rather than rejected, surrounding whitespace is
    ignored and matching is case-sensitive.
    """

    if isinstance(payload, (bytes, bytearray)):
        text = bytes(payload).decode("utf-8", errors="replace")
    else:
        text = payload
    return _PAYLOADS.get(text.strip())


class MessagingAdapter:
    """Feeds commands received over MQTT into the dispatcher queue."""

    def __init__(
        self,
        queue: asyncio.Queue[Command],
        *,
        health: Optional[HealthReporter] = None,
    ) -> None:
        self._queue = queue
        self._health = health
        self.received = 0
        self.enqueued = 0
        self.dropped = 0

    @property
    def queue(self) -> asyncio.Queue[Command]:
        return self._queue

    async def handle_message(self, topic: str, payload: bytes) -> Optional[Command]:
        """Decode one message and enqueue it, waiting while the queue is full."""

        self.received += 1
        text = bytes(payload).decode("utf-8", errors="replace")
        LOGGER.info("Received MQTT message on %s: %s", topic, text)

        command = decode_command(text)
        if command is None:
            self.dropped += 1
            LOGGER.warning("Unknown MQTT command received: %s", text.strip())
            if self._health is not None:
                await self._health.record_dropped()
            return None

        if self._queue.full():
            LOGGER.warning(
                "Command queue full (%d pending); waiting to enqueue %s",
                self._queue.qsize(),
                command.value,
            )
        await self._queue.put(command)
        self.enqueued += 1
        return command

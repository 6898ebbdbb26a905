from __future__ import annotations

import asyncio
import importlib
from dataclasses import dataclass
from types import ModuleType
from typing import Any, Awaitable, Callable, List, Protocol

from sqshelper.messaging.models import ReceivedMessage, ReceiveRequest
from sqshelper.shared.exceptions import ConfigurationError
from sqshelper.shared.logging import correlation_scope, get_logger

logger = get_logger(__name__)

MessageHandler = Callable[[ReceivedMessage], Awaitable[Any]]


class MessageSource(Protocol):
    """Anything able to receive (already rehydrated) messages."""

    async def receive_messages(
        self, queue_url: str, request: ReceiveRequest | None = None
    ) -> List[ReceivedMessage]:  # pragma: no cover - protocol
        ...


def load_factory(path: str) -> Callable[..., Any]:
    """Load a callable from ``module:attr`` notation."""
    if ":" not in path:
        raise ConfigurationError(
            f"invalid import path '{path}', expected module:attr", setting="handler"
        )
    module_name, attr_name = path.split(":", 1)
    module: ModuleType = importlib.import_module(module_name)
    factory = getattr(module, attr_name, None)
    if factory is None or not callable(factory):
        raise ConfigurationError(
            f"'{attr_name}' in '{module_name}' is not callable", setting="handler"
        )
    return factory


@dataclass
class ConsumerLoop:
    """Poll, fan out one handler call per message, sleep when idle, repeat.

    Runs until ``stop_event`` is set, ``max_cycles`` polls were made, or an
    error is raised. A failing handler does not cancel its siblings: the
    whole batch is awaited, then the first failure stops the loop.
    """

    source: MessageSource
    queue_url: str
    request: ReceiveRequest
    handler: MessageHandler
    idle_interval_seconds: float = 5.0

    async def run(
        self,
        stop_event: asyncio.Event | None = None,
        max_cycles: int | None = None,
    ) -> int:
        """Run the loop and return the number of polls made."""
        cycles = 0
        stop_event = stop_event or asyncio.Event()

        while not stop_event.is_set():
            messages = await self.source.receive_messages(self.queue_url, self.request)
            cycles += 1
            logger.debug(
                "consumer_polled",
                extra={"queue_url": self.queue_url, "count": len(messages)},
            )
            if messages:
                await self._dispatch(messages)
            if max_cycles is not None and cycles >= max_cycles:
                break
            if not messages:
                await self._idle(stop_event)

        logger.info("consumer_stopped", extra={"queue_url": self.queue_url, "cycles": cycles})
        return cycles

    async def _dispatch(self, messages: List[ReceivedMessage]) -> None:
        results = await asyncio.gather(
            *(self._handle(message) for message in messages),
            return_exceptions=True,
        )
        failures = [
            (message, result)
            for message, result in zip(messages, results)
            if isinstance(result, BaseException)
        ]
        for message, error in failures:
            logger.error(
                "consumer_handler_failed",
                extra={"message_id": message.message_id},
                exc_info=error,
            )
        if failures:
            raise failures[0][1]

    async def _handle(self, message: ReceivedMessage) -> Any:
        with correlation_scope(message.message_id):
            logger.debug("consumer_handler_started", extra={"message_id": message.message_id})
            return await self.handler(message)

    async def _idle(self, stop_event: asyncio.Event) -> None:
        logger.debug("consumer_sleeping", extra={"seconds": self.idle_interval_seconds})
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=self.idle_interval_seconds)
        except asyncio.TimeoutError:
            pass

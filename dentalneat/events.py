"""
Engine Lifecycle Events

Advisory notifications published by the NEAT engine:
- Engine started / stopped
- Generation started / completed
- Fitness statistics of each evaluated population
- New best-ever genome
- Per-genome evaluation failures

Consumers either register handler callbacks or subscribe an asyncio queue.
Nothing published here feeds back into the engine.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable

from loguru import logger


# =============================================================================
# Event Types
# =============================================================================


class EventType(Enum):
    """Types of engine events."""

    # Lifecycle
    NEAT_STARTED = "neat_started"
    NEAT_STOPPED = "neat_stopped"

    # Generation progress
    GENERATION_STARTED = "generation_started"
    FITNESS_STATISTICS = "fitness_statistics"
    GENERATION_COMPLETED = "generation_completed"
    NEW_BEST_GENOME = "new_best_genome"

    # Failures
    EVALUATION_ERROR = "evaluation_error"


@dataclass
class NEATEvent:
    """One published engine event."""

    event_type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def __str__(self) -> str:
        return f"{self.event_type.value} ({self.timestamp}): {self.data}"


EventHandler = Callable[[NEATEvent], "Awaitable[None] | None"]


# =============================================================================
# Event Bus
# =============================================================================


class EventBus:
    """
    Fan-out of engine events to handlers and subscriber queues.

    Handlers may be plain or async callables. A failing handler is logged and
    skipped; it never affects the publisher or the other handlers.
    """

    def __init__(self, max_history: int = 1000):
        self.handlers: dict[EventType, list[EventHandler]] = {
            event_type: [] for event_type in EventType
        }
        self.event_history: deque[NEATEvent] = deque(maxlen=max_history)

        self._subscribers: list[tuple[asyncio.Queue, frozenset[EventType] | None]] = []
        self._pending: set[asyncio.Task] = set()

    def register_handler(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Register event handler callback.

        Args:
            event_type: Type of event to handle
            handler: Sync or async callback receiving the event
        """
        self.handlers[event_type].append(handler)
        logger.debug(
            "Registered event handler",
            event_type=event_type.value,
            total_handlers=len(self.handlers[event_type]),
        )

    def unregister_handler(self, event_type: EventType, handler: EventHandler) -> None:
        if handler in self.handlers[event_type]:
            self.handlers[event_type].remove(handler)
            logger.debug("Unregistered event handler", event_type=event_type.value)

    def subscribe(
        self,
        event_types: list[EventType] | None = None,
        maxsize: int = 0,
    ) -> asyncio.Queue:
        """
        Subscribe a queue to published events.

        Args:
            event_types: Only deliver these types (all types if None)
            maxsize: Queue bound; events are dropped for a full queue

        Returns:
            Queue receiving ``NEATEvent`` values
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        filter_types = frozenset(event_types) if event_types is not None else None
        self._subscribers.append((queue, filter_types))
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers = [(q, types) for q, types in self._subscribers if q is not queue]

    async def publish(self, event_type: EventType, data: dict[str, Any] | None = None) -> NEATEvent:
        """
        Publish an event, awaiting async handlers in registration order.

        Args:
            event_type: Type of event
            data: Event payload

        Returns:
            The published event
        """
        event = self._record(event_type, data)

        for handler in list(self.handlers[event_type]):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._log_handler_error(event, e)

        return event

    def emit(self, event_type: EventType, data: dict[str, Any] | None = None) -> NEATEvent:
        """
        Publish an event from synchronous code.

        Async handlers are scheduled on the running loop; without one they
        are skipped with a warning.
        """
        event = self._record(event_type, data)

        for handler in list(self.handlers[event_type]):
            try:
                result = handler(event)
            except Exception as e:
                self._log_handler_error(event, e)
                continue

            if inspect.isawaitable(result):
                self._schedule(event, result)

        return event

    def get_event_history(
        self,
        event_type: EventType | None = None,
        limit: int = 100,
    ) -> list[NEATEvent]:
        """
        Get recent event history.

        Args:
            event_type: Filter by event type (None for all)
            limit: Maximum number of events to return

        Returns:
            List of recent events, oldest first
        """
        events = list(self.event_history)

        if event_type is not None:
            events = [e for e in events if e.event_type == event_type]

        return events[-limit:] if limit > 0 else []

    def clear_history(self) -> None:
        self.event_history.clear()

    def _record(self, event_type: EventType, data: dict[str, Any] | None) -> NEATEvent:
        event = NEATEvent(event_type=event_type, data=dict(data or {}))
        self.event_history.append(event)

        for queue, types in self._subscribers:
            if types is not None and event_type not in types:
                continue
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Subscriber queue full, dropping event", event_type=event_type.value)

        return event

    def _schedule(self, event: NEATEvent, awaitable: Awaitable[None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "No running event loop for async handler, skipping",
                event_type=event.event_type.value,
            )
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return

        task = loop.create_task(self._run_handler(event, awaitable))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _run_handler(self, event: NEATEvent, awaitable: Awaitable[None]) -> None:
        try:
            await awaitable
        except Exception as e:
            self._log_handler_error(event, e)

    @staticmethod
    def _log_handler_error(event: NEATEvent, error: Exception) -> None:
        logger.error(
            "Handler error",
            event_type=event.event_type.value,
            error=str(error),
        )


__all__ = [
    "EventType",
    "NEATEvent",
    "EventHandler",
    "EventBus",
]

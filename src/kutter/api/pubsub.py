"""In-process pub/sub for real-time chat events."""

from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass
from typing import Union

from kutter.config import DEFAULT_BUS_CAPACITY
from kutter.store import ChatMessage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NewMessage:
    """A message was appended to the store."""

    message: ChatMessage

    def to_frame(self) -> dict:
        return {"action": "new_message", **self.message.to_dict()}


@dataclass(frozen=True)
class Delete:
    """A message was removed from the store."""

    message_id: int

    def to_frame(self) -> dict:
        return {"action": "delete", "message_id": self.message_id}


OutgoingEvent = Union[NewMessage, Delete]


class Lagged(Exception):
    """Events were evicted from a subscription because it fell behind."""

    def __init__(self, missed: int):
        super().__init__(f"subscriber lagged, {missed} event(s) dropped")
        self.missed = missed


class BusClosed(Exception):
    """The bus was shut down; no further events will arrive."""


_CLOSED = object()


class Subscription:
    """A receiver on the bus with a private bounded queue.

    Use as an async context manager, or call :meth:`close` when done.
    """

    def __init__(self, bus: MessageBus, capacity: int) -> None:
        self._bus = bus
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self._missed = 0
        self._held: object | None = None
        self._closed = False

    def _offer(self, item: object, *, count_missed: bool = True) -> None:
        """Enqueue without blocking; evict the oldest item when full."""
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            self._queue.get_nowait()
            if count_missed:
                self._missed += 1
            self._queue.put_nowait(item)

    async def recv(self) -> OutgoingEvent:
        """Next event in publish order.

        Raises:
            Lagged: events were dropped since the previous call.
            BusClosed: the bus has been closed.
        """
        if self._missed:
            missed, self._missed = self._missed, 0
            raise Lagged(missed)
        if self._held is not None:
            item, self._held = self._held, None
        else:
            item = await self._queue.get()
            if self._missed:
                # Evictions happened while we waited; report the gap before
                # handing out the oldest surviving event
                self._held = item
                missed, self._missed = self._missed, 0
                raise Lagged(missed)
        if item is _CLOSED:
            # Keep the sentinel so later calls keep failing fast
            self._queue.put_nowait(_CLOSED)
            raise BusClosed()
        return item

    def close(self) -> None:
        """Stop receiving; the bus forgets this subscription."""
        if not self._closed:
            self._closed = True
            self._bus.unsubscribe(self)

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()


class MessageBus:
    """Asyncio broadcast hub for chat events.

    Session actors subscribe; the chat hub publishes after each commit.
    Subscriptions are held weakly, so an abandoned one stops receiving
    once it is garbage-collected even if ``close()`` was never called.
    """

    def __init__(self, capacity: int = DEFAULT_BUS_CAPACITY) -> None:
        self.capacity = capacity
        self._subscribers: weakref.WeakSet[Subscription] = weakref.WeakSet()
        self._closed = False

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        """Register a new receiver for subsequently published events."""
        sub = Subscription(self, self.capacity)
        if self._closed:
            sub._offer(_CLOSED, count_missed=False)
        else:
            self._subscribers.add(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        """Remove a subscription."""
        self._subscribers.discard(sub)

    def publish(self, event: OutgoingEvent) -> None:
        """Broadcast event to all subscribers (non-blocking)."""
        for sub in list(self._subscribers):
            was_lagging = sub._missed
            sub._offer(event)
            if sub._missed and not was_lagging:
                logger.debug("Subscriber fell behind, evicting oldest events")

    def close(self) -> None:
        """Wake every subscriber with BusClosed and refuse new ones."""
        self._closed = True
        for sub in list(self._subscribers):
            sub._offer(_CLOSED, count_missed=False)
        self._subscribers.clear()

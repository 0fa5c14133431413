"""
Publish/subscribe primitives for live state.

``StateCell`` holds a single current value and replays it to new
subscribers; ``EventChannel`` broadcasts transient events with no replay.
Both are owned by the object that publishes through them, never shared
process-wide.
"""

import asyncio
from typing import Generic, TypeVar

T = TypeVar("T")


class Subscription(Generic[T]):
    """A registered listener queue, usable as an async iterator.

    Registration happens on construction, so events published before the
    first ``await`` are not lost. Call :meth:`close` (or use ``with``) to
    unregister.
    """

    def __init__(self, listeners: set[asyncio.Queue]) -> None:
        self._listeners = listeners
        self._queue: asyncio.Queue[T] = asyncio.Queue()
        listeners.add(self._queue)

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> T:
        return await self._queue.get()

    def __enter__(self) -> "Subscription[T]":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _push(self, value: T) -> None:
        self._queue.put_nowait(value)

    def drain(self) -> list[T]:
        """Return every value received so far without waiting."""
        items: list[T] = []
        while not self._queue.empty():
            items.append(self._queue.get_nowait())
        return items

    def close(self) -> None:
        self._listeners.discard(self._queue)


class StateCell(Generic[T]):
    """Single mutable value with change notification.

    Setting a value equal to the current one is a no-op, so subscribers
    only see real changes.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._listeners: set[asyncio.Queue] = set()

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        if value == self._value:
            return
        self._value = value
        for queue in tuple(self._listeners):
            queue.put_nowait(value)

    def subscribe(self) -> Subscription[T]:
        """Register a listener; the current value is delivered first."""
        subscription: Subscription[T] = Subscription(self._listeners)
        subscription._push(self._value)
        return subscription


class EventChannel(Generic[T]):
    """Broadcast channel for transient events (errors, completions)."""

    def __init__(self) -> None:
        self._listeners: set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    def emit(self, event: T) -> None:
        for queue in tuple(self._listeners):
            queue.put_nowait(event)

    def subscribe(self) -> Subscription[T]:
        return Subscription(self._listeners)

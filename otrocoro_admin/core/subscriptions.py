"""
Live snapshot subscriptions

A subscription is a cancellable handle over a listener registered with a
document store. Every emission is a full snapshot of the watched document or
query result, never a delta, so consumers replace their state on each call.

Usage:
    subscription = await service.subscribe_to_bundles(on_bundles, filters)
    ...
    subscription.cancel()

    # or as an async stream
    stream = await service.stream_bundles(filters)
    async for bundles in stream:
        ...
        stream.cancel()
"""
import asyncio
import logging
from typing import Any, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class Subscription:
    """Handle returned by every subscribe call."""

    def __init__(self, on_cancel: Optional[Callable[[], None]] = None):
        self._on_cancel = on_cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Detach the listener. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        if self._on_cancel is not None:
            self._on_cancel()
            self._on_cancel = None

    dispose = cancel

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cancel()
        return False


class SnapshotStream(Generic[T]):
    """
    Async iterator over snapshots.

    Snapshots are buffered in an unbounded queue; cancelling ends the
    iteration after the snapshots already delivered have been consumed.
    """

    def __init__(self):
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue()
        self._subscription: Optional[Subscription] = None

    def attach(self, subscription: Subscription) -> None:
        self._subscription = subscription

    def push(self, snapshot: T) -> None:
        """Listener callback feeding the stream."""
        self._queue.put_nowait(snapshot)

    @property
    def active(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def cancel(self) -> None:
        if self._subscription is not None and self._subscription.active:
            self._subscription.cancel()
            self._queue.put_nowait(_CLOSED)

    dispose = cancel

    def __aiter__(self):
        return self

    async def __anext__(self) -> T:
        snapshot = await self._queue.get()
        if snapshot is _CLOSED:
            raise StopAsyncIteration
        return snapshot

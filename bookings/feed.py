"""
Live booking feeds for the admin dashboard.

A subscription yields a fresh, ordered snapshot of bookings every time the
store reports a change. Consumers must close it (or use ``async with``) to
release the store listener.
"""

import asyncio
from typing import List, Optional, Set

from db.store import BookingStore
from models.booking import Booking, BookingStatus
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__)


class BookingSubscription:
    """Async iterator of booking-list snapshots, newest first."""

    def __init__(self, feed: "BookingFeed", status: Optional[BookingStatus] = None):
        self._feed = feed
        self.status = status
        self._changed = asyncio.Event()
        # First iteration emits the current state without waiting
        self._changed.set()
        self._closed = False
        feed.store.add_listener(self._on_change)

    @property
    def closed(self) -> bool:
        return self._closed

    def _on_change(self) -> None:
        self._changed.set()

    def __aiter__(self) -> "BookingSubscription":
        return self

    async def __anext__(self) -> List[Booking]:
        if self._closed:
            raise StopAsyncIteration
        await self._changed.wait()
        if self._closed:
            raise StopAsyncIteration
        self._changed.clear()
        return await self._feed.store.query_bookings(status=self.status)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._feed.store.remove_listener(self._on_change)
        self._feed._release(self)
        # Wake a pending __anext__ so it can stop
        self._changed.set()

    async def __aenter__(self) -> "BookingSubscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class BookingFeed:
    """Creates and tracks live booking subscriptions."""

    def __init__(self, store: BookingStore):
        self.store = store
        self._open: Set[BookingSubscription] = set()

    @property
    def open_subscriptions(self) -> int:
        return len(self._open)

    def subscribe(self, status: Optional[BookingStatus] = None) -> BookingSubscription:
        subscription = BookingSubscription(self, status)
        self._open.add(subscription)
        logger.debug(f"Booking feed subscribed (status={status}, open={len(self._open)})")
        return subscription

    def _release(self, subscription: BookingSubscription) -> None:
        self._open.discard(subscription)

    def close_all(self) -> None:
        for subscription in list(self._open):
            subscription.close()

"""
Booking-created event delivery.

Each registered handler runs as an independent background task so a slow
or failing integration never delays or rolls back booking creation.
Delivery is at-least-once: handlers must tolerate repeated events.
"""

import asyncio
from typing import Any, Awaitable, Callable, List, Set

from models.booking import Booking
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="events.log")

BookingCreatedHandler = Callable[[Booking], Awaitable[Any]]


class BookingEventBus:
    """In-process dispatcher for booking-created events."""

    def __init__(self) -> None:
        self._handlers: List[BookingCreatedHandler] = []
        self._tasks: Set[asyncio.Task] = set()

    def on_booking_created(self, handler: BookingCreatedHandler) -> None:
        self._handlers.append(handler)

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    def publish_created(self, booking: Booking) -> List[asyncio.Task]:
        """Schedule every handler for a booking. Must be called inside a running loop."""
        tasks = []
        for handler in self._handlers:
            task = asyncio.create_task(self._run(handler, booking))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            tasks.append(task)
        return tasks

    async def _run(self, handler: BookingCreatedHandler, booking: Booking) -> Any:
        name = getattr(handler, "__qualname__", repr(handler))
        try:
            return await handler(booking)
        except Exception as e:
            logger.error(
                f"Booking-created handler {name} failed for booking {booking.id}: {e}",
                exc_info=True,
            )
            return None

    async def drain(self) -> None:
        """Wait for all in-flight handler tasks."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

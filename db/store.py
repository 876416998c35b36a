"""
Booking store interface.

The store is a key-document collection with insert, field update and
filtered, ordered queries. Implementations notify registered listeners after
every write so live booking feeds can refresh.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from models.admin import RoleRequest, RoleRequestStatus
from models.booking import Booking, BookingStatus
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__)

ChangeListener = Callable[[], None]


class BookingStore(ABC):
    """Abstract booking store."""

    def __init__(self) -> None:
        self._listeners: List[ChangeListener] = []

    # ========== Change Listeners ==========

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _notify_change(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"Booking change listener failed: {e}", exc_info=True)

    # ========== Booking Operations ==========

    @abstractmethod
    async def insert_booking(self, data: Dict[str, Any]) -> str:
        """Insert a booking document and return its generated id."""

    @abstractmethod
    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        """Get booking by id, or None when it does not exist."""

    @abstractmethod
    async def update_booking(
        self,
        booking_id: str,
        fields: Dict[str, Any],
        clear_fields: Iterable[str] = (),
    ) -> Booking:
        """
        Set fields on a booking and remove clear_fields.

        Raises:
            BookingNotFoundError: If the booking does not exist
            StoreError: If the write fails
        """

    @abstractmethod
    async def query_bookings(
        self,
        status: Optional[BookingStatus] = None,
        created_since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Booking]:
        """Bookings matching the filters, newest created_at first."""

    # ========== Admin Records ==========

    @abstractmethod
    async def add_audit_log(self, entry: Dict[str, Any]) -> None:
        """Append an entry to the admin audit log."""

    @abstractmethod
    async def get_system_status(self, key: str) -> Dict[str, Any]:
        """Get a system status record (empty dict when unset)."""

    @abstractmethod
    async def set_system_status(self, key: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Create or update a system status record."""

    @abstractmethod
    async def count_audit_logs(self, action: str, performed_by: str, since: datetime) -> int:
        """Number of audit entries for an action by one caller since a time."""

    @abstractmethod
    async def add_alert(self, entry: Dict[str, Any]) -> None:
        """Record a monitoring alert."""

    @abstractmethod
    async def add_emergency_backup(self, record: Dict[str, Any]) -> None:
        """Record an emergency backup request."""

    # ========== Role Requests ==========

    @abstractmethod
    async def insert_role_request(self, data: Dict[str, Any]) -> str:
        """Insert a role assignment request and return its generated id."""

    @abstractmethod
    async def get_role_request(self, request_id: str) -> Optional[RoleRequest]:
        """Get a role assignment request, or None when it does not exist."""

    @abstractmethod
    async def update_role_request(self, request_id: str, fields: Dict[str, Any]) -> RoleRequest:
        """
        Set fields on a role assignment request.

        Raises:
            RoleRequestNotFoundError: If the request does not exist
            StoreError: If the write fails
        """

    @abstractmethod
    async def query_role_requests(
        self, status: Optional[RoleRequestStatus] = None
    ) -> List[RoleRequest]:
        """Role assignment requests matching the status, newest first."""

"""In-process booking store for local development and tests."""

import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from db.store import BookingStore
from models.admin import RoleRequest, RoleRequestStatus
from models.booking import Booking, BookingStatus
from utils.exceptions import BookingNotFoundError, RoleRequestNotFoundError
from utils.datetime_utils import utc_now


class InMemoryBookingStore(BookingStore):
    """Dictionary-backed store. Not shared across processes."""

    def __init__(self) -> None:
        super().__init__()
        self.bookings: Dict[str, Dict[str, Any]] = {}
        self.audit_logs: List[Dict[str, Any]] = []
        self.system_status: Dict[str, Dict[str, Any]] = {}
        self.alerts: List[Dict[str, Any]] = []
        self.emergency_backups: List[Dict[str, Any]] = []
        self.role_requests: Dict[str, Dict[str, Any]] = {}

    async def insert_booking(self, data: Dict[str, Any]) -> str:
        booking_id = uuid.uuid4().hex
        self.bookings[booking_id] = dict(data)
        self._notify_change()
        return booking_id

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        doc = self.bookings.get(booking_id)
        if doc is None:
            return None
        return Booking(id=booking_id, **doc)

    async def update_booking(
        self,
        booking_id: str,
        fields: Dict[str, Any],
        clear_fields: Iterable[str] = (),
    ) -> Booking:
        doc = self.bookings.get(booking_id)
        if doc is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")

        doc.update(fields)
        for field in clear_fields:
            doc.pop(field, None)

        self._notify_change()
        return Booking(id=booking_id, **doc)

    async def query_bookings(
        self,
        status: Optional[BookingStatus] = None,
        created_since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Booking]:
        bookings = [Booking(id=booking_id, **doc) for booking_id, doc in self.bookings.items()]

        if status is not None:
            bookings = [b for b in bookings if b.status == BookingStatus(status).value]
        if created_since is not None:
            bookings = [b for b in bookings if b.created_at >= created_since]

        bookings.sort(key=lambda b: b.created_at, reverse=True)
        if limit is not None:
            bookings = bookings[:limit]
        return bookings

    async def add_audit_log(self, entry: Dict[str, Any]) -> None:
        self.audit_logs.append({**entry, "timestamp": utc_now()})

    async def get_system_status(self, key: str) -> Dict[str, Any]:
        return dict(self.system_status.get(key, {}))

    async def set_system_status(self, key: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        record = self.system_status.setdefault(key, {})
        record.update(fields)
        return dict(record)

    async def count_audit_logs(self, action: str, performed_by: str, since: datetime) -> int:
        return sum(
            1
            for entry in self.audit_logs
            if entry.get("action") == action
            and entry.get("performed_by") == performed_by
            and entry["timestamp"] >= since
        )

    async def add_alert(self, entry: Dict[str, Any]) -> None:
        self.alerts.append({**entry, "timestamp": utc_now()})

    async def add_emergency_backup(self, record: Dict[str, Any]) -> None:
        self.emergency_backups.append(dict(record))

    async def insert_role_request(self, data: Dict[str, Any]) -> str:
        request_id = uuid.uuid4().hex
        self.role_requests[request_id] = dict(data)
        return request_id

    async def get_role_request(self, request_id: str) -> Optional[RoleRequest]:
        doc = self.role_requests.get(request_id)
        if doc is None:
            return None
        return RoleRequest(id=request_id, **doc)

    async def update_role_request(self, request_id: str, fields: Dict[str, Any]) -> RoleRequest:
        doc = self.role_requests.get(request_id)
        if doc is None:
            raise RoleRequestNotFoundError(f"Role request {request_id} not found")
        doc.update(fields)
        return RoleRequest(id=request_id, **doc)

    async def query_role_requests(
        self, status: Optional[RoleRequestStatus] = None
    ) -> List[RoleRequest]:
        requests = [RoleRequest(id=rid, **doc) for rid, doc in self.role_requests.items()]
        if status is not None:
            requests = [r for r in requests if r.status == RoleRequestStatus(status).value]
        requests.sort(key=lambda r: r.created_at, reverse=True)
        return requests

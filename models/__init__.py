"""Pydantic models for data validation and serialization."""

from .admin import (
    AdminClaims,
    AdminRole,
    Permission,
    ROLE_PERMISSIONS,
    RoleRequest,
    RoleRequestStatus,
)
from .booking import Booking, BookingFormData, BookingStatus
from .service import Service, find_service, get_all_services

__all__ = [
    "AdminClaims",
    "AdminRole",
    "Booking",
    "BookingFormData",
    "BookingStatus",
    "Permission",
    "ROLE_PERMISSIONS",
    "RoleRequest",
    "RoleRequestStatus",
    "Service",
    "find_service",
    "get_all_services",
]

"""Booking store implementations."""

from .memory_store import InMemoryBookingStore
from .store import BookingStore
from .supabase_client import SupabaseBookingStore

__all__ = ["BookingStore", "InMemoryBookingStore", "SupabaseBookingStore"]

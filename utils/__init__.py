"""Shared helpers: logging, validation, datetimes and error types."""

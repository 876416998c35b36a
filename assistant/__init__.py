"""Public travel Q&A assistant."""

from .travel import ChatMessage, TravelAssistant

__all__ = ["ChatMessage", "TravelAssistant"]

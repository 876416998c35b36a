"""
Mauritius travel assistant backed by Claude.

General travel questions only; pricing and booking questions are sent
back to the booking form.
"""

import asyncio
from typing import List, Optional

from anthropic import Anthropic, APIError
from pydantic import BaseModel

from utils.constants import MAX_QUESTION_LENGTH
from utils.exceptions import AssistantUnavailableError, ValidationError
from utils.logging_config import setup_logging
from utils.validation import sanitize_text

logger = setup_logging(name=__name__, log_file="assistant.log")

SYSTEM_PROMPT = (
    "You are a helpful Mauritius travel assistant. Answer only general "
    "Mauritius-related questions (attractions, culture, weather, safety, "
    "transport). If asked about pricing or bookings, reply: 'Use the booking "
    "form or WhatsApp for quotes.' Keep answers concise, friendly, and "
    "factual. Avoid medical/financial/legal advice."
)

# Retry configuration
_MAX_RETRIES = 3
_RETRY_DELAY = 1.0  # seconds
_RETRY_BACKOFF = 2.0
_API_TIMEOUT = 30.0  # seconds
_HISTORY_LIMIT = 6


class ChatMessage(BaseModel):
    role: str  # "user" or "assistant"
    text: str


class TravelAssistant:
    """Claude-backed Q&A for the public site."""

    def __init__(self, api_key: Optional[str], model: str, client: Optional[Anthropic] = None):
        self.model = model
        self.client = client or (Anthropic(api_key=api_key) if api_key else None)

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def reply(self, question: str, history: Optional[List[ChatMessage]] = None) -> str:
        """
        Answer a question, keeping only the last few conversation turns.

        Raises:
            ValidationError: If the question is empty
            AssistantUnavailableError: If Claude is not configured or keeps failing
        """
        question = sanitize_text(question, MAX_QUESTION_LENGTH)
        if not question:
            raise ValidationError("Please provide a question.")
        if not self.configured:
            raise AssistantUnavailableError("AI assistant is not configured")

        messages = [
            {"role": "user" if m.role == "user" else "assistant", "content": m.text}
            for m in (history or [])[-_HISTORY_LIMIT:]
            if m.text.strip()
        ]
        # The API requires the conversation to start with a user turn
        while messages and messages[0]["role"] != "user":
            messages.pop(0)
        messages.append({"role": "user", "content": question})

        delay = _RETRY_DELAY
        for attempt in range(_MAX_RETRIES):
            try:
                message = await asyncio.wait_for(
                    asyncio.to_thread(
                        self.client.messages.create,
                        model=self.model,
                        max_tokens=500,
                        system=SYSTEM_PROMPT,
                        messages=messages,
                    ),
                    timeout=_API_TIMEOUT,
                )
                text = "".join(
                    block.text for block in message.content if getattr(block, "type", "") == "text"
                ).strip()
                if text:
                    return text
                raise AssistantUnavailableError("AI response unavailable")

            except asyncio.TimeoutError:
                logger.warning(f"Claude API timeout (attempt {attempt + 1}/{_MAX_RETRIES})")
            except APIError as e:
                status = getattr(e, "status_code", None)
                if status and 400 <= status < 500:
                    logger.error(f"Claude API client error: {e}", exc_info=True)
                    raise AssistantUnavailableError("AI response unavailable") from e
                logger.warning(f"Claude API error (attempt {attempt + 1}/{_MAX_RETRIES}): {e}")

            if attempt < _MAX_RETRIES - 1:
                await asyncio.sleep(delay)
                delay *= _RETRY_BACKOFF

        logger.error(f"Claude API unavailable after {_MAX_RETRIES} attempts")
        raise AssistantUnavailableError("AI response unavailable")

"""
Owner notification channels.

Every channel reports an explicit DeliveryResult instead of raising:
sent, not_configured (missing credentials) or failed (provider error).
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional

import aiohttp
from aiogram import Bot
from pydantic import BaseModel

from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="notifications.log")


class DeliveryStatus(str, Enum):
    SENT = "sent"
    NOT_CONFIGURED = "not_configured"
    FAILED = "failed"


class DeliveryResult(BaseModel):
    """Outcome of one delivery attempt."""

    channel: str
    status: DeliveryStatus
    detail: Optional[str] = None

    @property
    def sent(self) -> bool:
        return self.status == DeliveryStatus.SENT


class OwnerMessage(BaseModel):
    """Notification about a new booking, addressed to the operator."""

    booking_id: str
    subject: str
    text: str
    service_name: str
    date: str

    def metadata(self) -> Dict[str, str]:
        return {
            "bookingId": self.booking_id,
            "serviceName": self.service_name,
            "date": self.date,
        }


class NotificationChannel(ABC):
    """Base class for an outbound notification channel."""

    name: str = "channel"

    @property
    @abstractmethod
    def configured(self) -> bool:
        """True when the channel has the credentials it needs."""

    @abstractmethod
    async def _deliver(self, message: OwnerMessage) -> None:
        """Send the message, raising on any provider failure."""

    async def send(self, message: OwnerMessage) -> DeliveryResult:
        if not self.configured:
            return DeliveryResult(channel=self.name, status=DeliveryStatus.NOT_CONFIGURED)

        try:
            await self._deliver(message)
        except Exception as e:
            logger.warning(
                f"{self.name} notification failed for booking {message.booking_id}: {e}"
            )
            return DeliveryResult(channel=self.name, status=DeliveryStatus.FAILED, detail=str(e))

        logger.info(f"{self.name} notification sent for booking {message.booking_id}")
        return DeliveryResult(channel=self.name, status=DeliveryStatus.SENT)


class _HttpChannel(NotificationChannel):
    """Shared JSON-over-HTTP delivery."""

    def __init__(self, timeout_seconds: float = 10.0):
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def _post_json(self, url: str, payload: Dict[str, Any], headers: Dict[str, str]) -> None:
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.post(url, json=payload, headers=headers) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise aiohttp.ClientResponseError(
                        response.request_info,
                        response.history,
                        status=response.status,
                        message=body[:200],
                    )


class EmailChannel(_HttpChannel):
    """Transactional email through a Resend-compatible HTTP API."""

    name = "email"

    def __init__(
        self,
        api_key: Optional[str],
        sender: Optional[str],
        recipient: Optional[str],
        endpoint: str = "https://api.resend.com/emails",
        timeout_seconds: float = 10.0,
    ):
        super().__init__(timeout_seconds)
        self.api_key = api_key
        self.sender = sender
        self.recipient = recipient
        self.endpoint = endpoint

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.sender and self.recipient)

    async def _deliver(self, message: OwnerMessage) -> None:
        payload = {
            "from": self.sender,
            "to": [self.recipient],
            "subject": message.subject,
            "text": message.text,
            "tags": [
                {"name": key, "value": _tag_value(value)}
                for key, value in message.metadata().items()
            ],
        }
        await self._post_json(
            self.endpoint,
            payload,
            {"Authorization": f"Bearer {self.api_key}"},
        )


class ChatWebhookChannel(_HttpChannel):
    """Generic chat webhook (Slack/Teams style incoming webhook)."""

    name = "chat_webhook"

    def __init__(self, url: Optional[str], token: Optional[str] = None, timeout_seconds: float = 10.0):
        super().__init__(timeout_seconds)
        self.url = url
        self.token = token

    @property
    def configured(self) -> bool:
        return bool(self.url)

    async def _deliver(self, message: OwnerMessage) -> None:
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        await self._post_json(
            self.url,
            {"text": message.text, "metadata": message.metadata()},
            headers,
        )


class TelegramChannel(NotificationChannel):
    """Message to the owner's Telegram chat through the Bot API."""

    name = "telegram"

    def __init__(self, bot_token: Optional[str], chat_id: Optional[str]):
        self.bot_token = bot_token
        self.chat_id = chat_id

    @property
    def configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    async def _deliver(self, message: OwnerMessage) -> None:
        bot = Bot(token=self.bot_token)
        try:
            await bot.send_message(self.chat_id, message.text)
        finally:
            await bot.session.close()


def _tag_value(value: str) -> str:
    # Resend tags accept ASCII letters, digits, underscores and dashes only
    return "".join(c if c.isalnum() or c in "_-" else "_" for c in value)[:256]

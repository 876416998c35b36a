"""
Unit tests for owner notification channels and the dispatcher.
"""

import logging
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from bookings.lifecycle import BookingLifecycle
from models.booking import Booking
from notifications.channels import (
    ChatWebhookChannel,
    DeliveryStatus,
    EmailChannel,
    OwnerMessage,
    TelegramChannel,
)
from notifications.dispatcher import NotificationDispatcher, build_owner_message


@pytest.fixture
def message():
    return OwnerMessage(
        booking_id="b1",
        subject="New booking: Catamaran Trip (2024-03-01)",
        text="New booking request",
        service_name="Catamaran Trip",
        date="2024-03-01",
    )


@pytest.fixture
def lifecycle(store):
    return BookingLifecycle(store)


async def _create(lifecycle, form) -> Booking:
    booking_id = await lifecycle.create_booking(form)
    return await lifecycle.get_booking(booking_id)


@pytest.fixture
async def capture_server():
    """Local HTTP endpoint that records JSON posts."""
    received = []
    state = {"status": 200}

    async def handler(request):
        received.append({"json": await request.json(), "headers": dict(request.headers)})
        return web.json_response({"id": "msg_1"}, status=state["status"])

    app = web.Application()
    app.router.add_post("/send", handler)
    server = TestServer(app)
    await server.start_server()
    yield server, received, state
    await server.close()


class TestOwnerMessage:
    def test_rental_message(self):
        now = datetime(2024, 2, 1, tzinfo=timezone.utc)
        booking = Booking(
            id="b1",
            customer_name="Jane Doe",
            customer_phone="+23012345",
            service_name="Car Rental",
            rental_start=datetime(2024, 3, 1, tzinfo=timezone.utc),
            rental_end=datetime(2024, 3, 3, tzinfo=timezone.utc),
            created_at=now,
            updated_at=now,
        )

        message = build_owner_message(booking)

        assert message.subject == "New booking: Car Rental (2024-03-01 to 2024-03-03)"
        assert "Phone: +23012345" in message.text
        assert "Email: -" in message.text
        assert message.metadata() == {
            "bookingId": "b1",
            "serviceName": "Car Rental",
            "date": "2024-03-01 to 2024-03-03",
        }


class TestChannels:
    @pytest.mark.asyncio
    async def test_unconfigured_channels(self, message):
        for channel in (
            EmailChannel(api_key=None, sender=None, recipient=None),
            TelegramChannel(bot_token=None, chat_id=None),
            ChatWebhookChannel(url=None),
        ):
            result = await channel.send(message)
            assert result.status == DeliveryStatus.NOT_CONFIGURED

    @pytest.mark.asyncio
    async def test_email_payload(self, capture_server, message):
        server, received, _ = capture_server
        channel = EmailChannel(
            api_key="re_test",
            sender="bookings@example.com",
            recipient="owner@example.com",
            endpoint=str(server.make_url("/send")),
        )

        result = await channel.send(message)

        assert result.sent
        payload = received[0]["json"]
        assert payload["to"] == ["owner@example.com"]
        assert payload["subject"] == message.subject
        assert {"name": "serviceName", "value": "Catamaran_Trip"} in payload["tags"]
        assert received[0]["headers"]["Authorization"] == "Bearer re_test"

    @pytest.mark.asyncio
    async def test_email_provider_error(self, capture_server, message):
        server, _, state = capture_server
        state["status"] = 500
        channel = EmailChannel(
            api_key="re_test",
            sender="bookings@example.com",
            recipient="owner@example.com",
            endpoint=str(server.make_url("/send")),
        )

        result = await channel.send(message)

        assert result.status == DeliveryStatus.FAILED
        assert "500" in result.detail

    @pytest.mark.asyncio
    async def test_chat_webhook_payload(self, capture_server, message):
        server, received, _ = capture_server
        channel = ChatWebhookChannel(url=str(server.make_url("/send")), token="hook-token")

        result = await channel.send(message)

        assert result.sent
        assert received[0]["json"] == {"text": message.text, "metadata": message.metadata()}
        assert received[0]["headers"]["Authorization"] == "Bearer hook-token"

    @pytest.mark.asyncio
    async def test_telegram_sends_and_closes_session(self, message):
        mock_bot = MagicMock()
        mock_bot.send_message = AsyncMock()
        mock_bot.session.close = AsyncMock()

        with patch("notifications.channels.Bot", return_value=mock_bot) as bot_cls:
            result = await TelegramChannel("123:abc", "42").send(message)

        assert result.sent
        bot_cls.assert_called_once_with(token="123:abc")
        mock_bot.send_message.assert_awaited_once_with("42", message.text)
        mock_bot.session.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_telegram_failure(self, message):
        mock_bot = MagicMock()
        mock_bot.send_message = AsyncMock(side_effect=RuntimeError("chat not found"))
        mock_bot.session.close = AsyncMock()

        with patch("notifications.channels.Bot", return_value=mock_bot):
            result = await TelegramChannel("123:abc", "42").send(message)

        assert result.status == DeliveryStatus.FAILED
        mock_bot.session.close.assert_awaited_once()


class TestDispatcher:
    @pytest.mark.asyncio
    async def test_first_channel_wins(self, lifecycle, booking_form, channel_factory):
        email = channel_factory("email")
        telegram = channel_factory("telegram")
        dispatcher = NotificationDispatcher(lifecycle, [email, telegram])
        booking = await _create(lifecycle, booking_form)

        outcome = await dispatcher.handle_booking_created(booking)

        assert outcome.delivered_via == "email"
        assert len(email.messages) == 1
        assert telegram.messages == []
        stored = await lifecycle.get_booking(booking.id)
        assert stored.owner_notified_at is not None

    @pytest.mark.asyncio
    async def test_falls_back_on_failure(self, lifecycle, booking_form, channel_factory):
        email = channel_factory("email", fail=True)
        telegram = channel_factory("telegram", configured=False)
        webhook = channel_factory("chat_webhook")
        dispatcher = NotificationDispatcher(lifecycle, [email, telegram, webhook])
        booking = await _create(lifecycle, booking_form)

        outcome = await dispatcher.handle_booking_created(booking)

        assert outcome.delivered_via == "chat_webhook"
        assert [a.status for a in outcome.attempts] == [
            DeliveryStatus.FAILED,
            DeliveryStatus.NOT_CONFIGURED,
            DeliveryStatus.SENT,
        ]

    @pytest.mark.asyncio
    async def test_no_channel_configured(
        self, lifecycle, booking_form, channel_factory, caplog
    ):
        dispatcher = NotificationDispatcher(
            lifecycle, [channel_factory("email", configured=False)]
        )
        booking = await _create(lifecycle, booking_form)

        with caplog.at_level(logging.ERROR, logger="notifications.dispatcher"):
            outcome = await dispatcher.handle_booking_created(booking)

        assert not outcome.delivered
        assert "IntegrationError" in caplog.text
        assert "no notification channel is configured" in caplog.text
        stored = await lifecycle.get_booking(booking.id)
        assert stored.status == "pending"
        assert stored.owner_notified_at is None

    @pytest.mark.asyncio
    async def test_all_channels_failed(self, lifecycle, booking_form, channel_factory, caplog):
        dispatcher = NotificationDispatcher(
            lifecycle,
            [channel_factory("email", fail=True), channel_factory("telegram", fail=True)],
        )
        booking = await _create(lifecycle, booking_form)

        with caplog.at_level(logging.ERROR, logger="notifications.dispatcher"):
            outcome = await dispatcher.handle_booking_created(booking)

        assert not outcome.delivered
        assert "all configured channels failed" in caplog.text

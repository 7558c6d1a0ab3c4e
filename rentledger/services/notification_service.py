"""
Payment notification delivery.

Handles:
- Tenant receipts and landlord alerts after a settlement
- Telegram transport (python-telegram-bot) and an in-memory transport for tests
- Best-effort dispatch: failures are logged, never raised to the settlement
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, Optional

from sqlalchemy.orm import Session
from telegram import Bot
from telegram.error import TelegramError

from rentledger.models.user import User
from rentledger.services.errors import NotificationError

logger = logging.getLogger(__name__)


class NotificationTransport(ABC):
    """Abstract base class for notification transports."""

    @abstractmethod
    async def send_message(self, chat_id: int | str, message: str) -> bool:
        """Send a message to a chat.

        Args:
            chat_id: Telegram chat ID
            message: Message text to send

        Returns:
            bool: True if successful

        Raises:
            NotificationError: If the transport could not deliver the message
        """


class MockTransport(NotificationTransport):
    """In-memory mock transport for testing.

    Stores all messages in memory instead of sending to Telegram.
    """

    def __init__(self):
        """Initialize with empty message log."""
        self.messages: list[Dict[str, Any]] = []

    async def send_message(self, chat_id: int | str, message: str) -> bool:
        self.messages.append({"chat_id": chat_id, "message": message})
        logger.debug(f"[MOCK] Message queued for {chat_id}: {message}")
        return True

    def get_messages(self, chat_id: Optional[int | str] = None) -> list[Dict[str, Any]]:
        """Retrieve stored messages, optionally filtered by chat_id."""
        if chat_id is None:
            return self.messages
        return [m for m in self.messages if m["chat_id"] == chat_id]

    def clear(self):
        """Clear all stored messages."""
        self.messages = []


class TelegramTransport(NotificationTransport):
    """Deliver messages through the Telegram Bot API."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_message(self, chat_id: int | str, message: str) -> bool:
        try:
            await self.bot.send_message(chat_id=chat_id, text=message)
        except TelegramError as e:
            raise NotificationError(f"Telegram delivery to {chat_id} failed: {e}") from e
        return True


class PaymentNotifier:
    """Send settlement messages to tenants and landlords.

    Recipients are looked up by user id; users without a linked Telegram chat
    are skipped.
    """

    def __init__(self, transport: NotificationTransport, session_factory: Callable[[], Session]):
        """Initialize notifier.

        Args:
            transport: Message transport
            session_factory: Creates a short-lived session for recipient lookup
        """
        self.transport = transport
        self.session_factory = session_factory

    async def notify_tenant(self, tenant_id: int, message: str) -> bool:
        """Send a payment receipt to a tenant."""
        return await self._notify_user(tenant_id, message)

    async def notify_landlord(self, landlord_id: int, message: str) -> bool:
        """Alert a landlord about a received payment."""
        return await self._notify_user(landlord_id, message)

    def _lookup_chat_id(self, user_id: int) -> Optional[str]:
        with self.session_factory() as db:
            user = db.get(User, user_id)
            return user.telegram_id if user else None

    async def _notify_user(self, user_id: int, message: str) -> bool:
        # Blocking database read stays off the event loop
        chat_id = await asyncio.to_thread(self._lookup_chat_id, user_id)

        if not chat_id:
            logger.info(f"User {user_id} has no Telegram chat, notification skipped")
            return False
        return await self.transport.send_message(chat_id, message)


async def dispatch_notifications(notifier: PaymentNotifier, pending: Iterable[Any]) -> int:
    """Deliver settlement notifications; never raises.

    Args:
        notifier: PaymentNotifier to deliver with
        pending: Items with `recipient` ("tenant"/"landlord"), `user_id`, `message`

    Returns:
        Number of messages delivered
    """
    delivered = 0
    for item in pending:
        send = notifier.notify_landlord if item.recipient == "landlord" else notifier.notify_tenant
        try:
            if await send(item.user_id, item.message):
                delivered += 1
        except Exception as e:
            # Settlement is already committed; a lost message must not surface
            logger.error(
                f"Failed to notify {item.recipient} {item.user_id}: {e}", exc_info=True
            )
    return delivered


# Global notifier instance (initialized in main.py with real settings)
_notifier_instance: Optional[PaymentNotifier] = None


def init_payment_notifier(
    session_factory: Callable[[], Session], bot_token: str = ""
) -> PaymentNotifier:
    """Initialize the global notifier.

    Args:
        session_factory: Session factory for recipient lookup
        bot_token: Telegram bot token; empty selects the in-memory transport
    """
    global _notifier_instance
    transport: NotificationTransport
    if bot_token:
        transport = TelegramTransport(Bot(bot_token))
    else:
        logger.warning("TELEGRAM_BOT_TOKEN not set, payment notifications stay in memory")
        transport = MockTransport()
    _notifier_instance = PaymentNotifier(transport, session_factory)
    return _notifier_instance


def get_payment_notifier() -> PaymentNotifier:
    """Get the global notifier (creates an in-memory one if not initialized)."""
    global _notifier_instance
    if _notifier_instance is None:
        from rentledger.services import SessionLocal

        _notifier_instance = PaymentNotifier(MockTransport(), SessionLocal)
    return _notifier_instance


__all__ = [
    "MockTransport",
    "NotificationTransport",
    "PaymentNotifier",
    "TelegramTransport",
    "dispatch_notifications",
    "get_payment_notifier",
    "init_payment_notifier",
]

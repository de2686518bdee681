"""Telegram notification adapter — implements NotificationPort.

Wraps a telegram.Bot instance to satisfy the NotificationPort protocol.
"""

from __future__ import annotations

import logging

from telegram import Bot, LinkPreviewOptions
from telegram.error import BadRequest, Forbidden, TelegramError

from src.ports.notification_port import ChatUnreachableError

logger = logging.getLogger(__name__)

# BadRequest texts meaning the chat is gone rather than the request malformed
_GONE_MARKERS = ("chat not found", "peer_id_invalid", "bot was kicked", "group chat was deactivated")


def _is_gone(exc: TelegramError) -> bool:
    if isinstance(exc, Forbidden):
        return True
    return isinstance(exc, BadRequest) and any(m in exc.message.lower() for m in _GONE_MARKERS)


class TelegramNotifier:
    """Telegram implementation of NotificationPort."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send_message(
        self, chat_id: int | str, text: str, parse_mode: str | None = None
    ) -> None:
        try:
            await self._bot.send_message(
                chat_id=chat_id,
                text=text,
                parse_mode=parse_mode,
                link_preview_options=LinkPreviewOptions(is_disabled=True),
            )
        except TelegramError as exc:
            if _is_gone(exc):
                raise ChatUnreachableError(f"Chat {chat_id} unreachable: {exc}") from exc
            raise

    async def probe_chat(self, chat_id: int | str) -> None:
        """Raise ChatUnreachableError if the bot can no longer see the chat."""
        try:
            await self._bot.get_chat(chat_id)
        except TelegramError as exc:
            if _is_gone(exc):
                logger.warning("Chat %s unreachable: %s", chat_id, exc)
                raise ChatUnreachableError(str(exc)) from exc
            raise

    async def get_member_status(self, chat_id: int | str, user_id: int) -> str | None:
        """Member status ("creator", "administrator", "member", ...) or None."""
        try:
            member = await self._bot.get_chat_member(chat_id, user_id)
        except TelegramError as exc:
            logger.debug("get_chat_member(%s, %s) failed: %s", chat_id, user_id, exc)
            return None
        return member.status

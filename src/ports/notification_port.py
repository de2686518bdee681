"""Notification port — abstract interface for talking to chats.

Core modules depend on this protocol, never on a specific messaging provider.
"""

from __future__ import annotations

from typing import Protocol


class ChatUnreachableError(Exception):
    """The bot can no longer message this chat (blocked, kicked, deleted)."""


class NotificationPort(Protocol):
    """Abstract notification interface used by core modules."""

    async def send_message(
        self, chat_id: int | str, text: str, parse_mode: str | None = None
    ) -> None: ...

    async def probe_chat(self, chat_id: int | str) -> None: ...

    async def get_member_status(
        self, chat_id: int | str, user_id: int
    ) -> str | None: ...

"""
Standup Bot — State Store.

Group records and private-chat sessions persist in a single JSON document,
surviving bot restarts. Every mutation rewrites the whole document.

The write goes to a temporary file which then atomically replaces the
previous document, so a crash mid-write never leaves a truncated file. A
failed write is logged and otherwise ignored: the in-memory state stays
authoritative for the running process.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from src.data.models import GroupRecord, StoreDocument, UserSession, utcnow

logger = logging.getLogger(__name__)


class JsonFileStorage:
    """Loads and saves the StoreDocument as a JSON file."""

    def __init__(self, path: str | None = None) -> None:
        if path is None:
            from src.config import settings
            path = settings.DATA_PATH

        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> StoreDocument:
        """Read the document; a missing or unreadable file yields an empty one."""
        if not self._path.exists():
            logger.info("No state file at %s, starting empty", self._path)
            return StoreDocument()
        try:
            return StoreDocument.model_validate_json(self._path.read_text(encoding="utf-8"))
        except (OSError, ValidationError, ValueError) as exc:
            logger.error("Failed to load state from %s: %s", self._path, exc)
            return StoreDocument()

    def save(self, document: StoreDocument) -> bool:
        """Write the full document. Returns False (and logs) on failure."""
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(document.to_json())
            os.replace(tmp_name, self._path)
            tmp_name = None
            return True
        except OSError as exc:
            logger.error("Error saving state to %s: %s", self._path, exc)
            return False
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)


class BotStore:
    """Process-wide mapping of groups and private-chat sessions.

    Handlers receive the store through the application context; nothing
    imports it as a global.
    """

    def __init__(
        self,
        storage: JsonFileStorage,
        default_spreadsheet_id: str | None = None,
    ) -> None:
        self._storage = storage
        self._default_spreadsheet_id = default_spreadsheet_id or None
        self.document = storage.load()
        logger.debug(
            "Store loaded: %d group(s), %d session(s)",
            len(self.document.groups), len(self.document.private_chats),
        )

    @property
    def groups(self) -> dict[str, GroupRecord]:
        return self.document.groups

    def save(self) -> bool:
        return self._storage.save(self.document)

    # -- groups ---------------------------------------------------------

    def get_group(self, chat_id: int | str) -> GroupRecord | None:
        return self.document.groups.get(str(chat_id))

    def init_group(self, chat_id: int | str, group_name: str | None = None) -> GroupRecord:
        """Return the group record, creating it with defaults on first sight."""
        key = str(chat_id)
        group = self.document.groups.get(key)
        if group is None:
            group = GroupRecord(id=key)
            group.settings.spreadsheet_id = self._default_spreadsheet_id
            if group_name:
                group.metadata.group_name = group_name
            self.document.groups[key] = group
            self.save()
            logger.info("Group %s initialized (%s)", key, group_name or "unnamed")
        return group

    def touch_group(self, chat_id: int | str, group_name: str | None) -> GroupRecord:
        """Record activity in a group and refresh its display name."""
        group = self.init_group(chat_id, group_name)
        if group_name:
            group.metadata.group_name = group_name
        group.metadata.last_activity = utcnow()
        self.save()
        return group

    def delete_group(self, chat_id: int | str) -> bool:
        """Purge a group record entirely."""
        removed = self.document.groups.pop(str(chat_id), None)
        if removed is None:
            return False
        self.save()
        logger.info("Group %s deleted", chat_id)
        return True

    def list_named_groups(self) -> list[GroupRecord]:
        """Groups whose name is known, in insertion order."""
        return [g for g in self.document.groups.values() if g.metadata.group_name]

    # -- private-chat sessions ------------------------------------------

    def get_session(self, user_id: int | str) -> UserSession:
        """Return the user's session, creating an empty one if needed."""
        key = str(user_id)
        session = self.document.private_chats.get(key)
        if session is None:
            session = UserSession()
            self.document.private_chats[key] = session
        return session

    def set_target_group(self, user_id: int | str, group_id: int | str) -> UserSession:
        session = self.get_session(user_id)
        session.target_group_id = str(group_id)
        self.save()
        logger.info("User %s now posts to group %s", user_id, group_id)
        return session

"""
Standup Bot — Data Models.

Everything the bot remembers lives in one JSON document: per-group records
(logs, settings, categories) under "groups" and per-user private-chat
sessions under "privateChats". Field aliases are the camelCase keys of that
document; Python code uses the snake_case attribute names.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DraftState = Literal["collecting_yesterday", "collecting_today"]
DraftField = Literal["what", "why"]

DEFAULT_REMINDER_TIME = "09:00"
DEFAULT_WEEKDAYS = [1, 2, 3, 4, 5]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Task(_Document):
    """One accomplishment or priority: what was done, and why."""

    what: str
    why: str = ""


class DraftContent(_Document):
    yesterday: list[Task] = Field(default_factory=list)
    today: list[Task] = Field(default_factory=list)


class DraftUpdate(_Document):
    """An in-progress guided update being built turn by turn."""

    state: DraftState = "collecting_yesterday"
    collecting: DraftField = "what"
    current_task: Task | None = Field(default=None, alias="currentTask")
    content: DraftContent = Field(default_factory=DraftContent)
    last_modified: datetime = Field(default_factory=utcnow, alias="lastModified")

    @property
    def section(self) -> Literal["yesterday", "today"]:
        return "yesterday" if self.state == "collecting_yesterday" else "today"

    @property
    def tasks(self) -> list[Task]:
        """Task list of the section currently being collected."""
        return getattr(self.content, self.section)


class UpdateEntry(_Document):
    """The latest standup update of one user in one group."""

    user: str
    text: str
    date: datetime


class GroupSettings(_Document):
    reminder_time_utc: str = Field(default=DEFAULT_REMINDER_TIME, alias="reminderTimeUTC")
    is_active: bool = Field(default=False, alias="isActive")
    spreadsheet_id: str | None = Field(default=None, alias="spreadsheetId")
    active_weekdays: list[int] = Field(
        default_factory=lambda: list(DEFAULT_WEEKDAYS), alias="activeWeekdays",
    )  # ISO weekdays, Monday = 1


class GroupMetadata(_Document):
    group_name: str = Field(default="", alias="groupName")
    joined_at: datetime = Field(default_factory=utcnow, alias="joinedAt")
    last_activity: datetime = Field(default_factory=utcnow, alias="lastActivity")
    last_reminder_time: datetime | None = Field(default=None, alias="lastReminderTime")


class GroupState(_Document):
    # User whose next group message is read as the /setReminder reply
    awaiting_reminder_from: int | None = Field(default=None, alias="awaitingReminderFrom")


class GroupRecord(_Document):
    """Everything the bot tracks for one group chat."""

    id: str
    stand_up_logs: list[UpdateEntry] = Field(default_factory=list, alias="standUpLogs")
    settings: GroupSettings = Field(default_factory=GroupSettings)
    metadata: GroupMetadata = Field(default_factory=GroupMetadata)
    member_categories: dict[str, list[str]] = Field(
        default_factory=dict, alias="memberCategories",
    )
    state: GroupState = Field(default_factory=GroupState)


class UserSession(_Document):
    """A user's private-chat session with the bot."""

    target_group_id: str | None = Field(default=None, alias="targetGroupId")
    draft_update: DraftUpdate | None = Field(default=None, alias="draftUpdate")


class StoreDocument(_Document):
    """Root of the persisted JSON document."""

    groups: dict[str, GroupRecord] = Field(default_factory=dict)
    private_chats: dict[str, UserSession] = Field(default_factory=dict, alias="privateChats")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)

"""Standup Bot — error taxonomy.

Every error a user can trigger derives from StandupError and carries the
text the bot replies with. Handlers catch StandupError at the command
boundary; nothing here is allowed to crash the process.
"""

from __future__ import annotations


class StandupError(Exception):
    """Base class for user-facing failures."""

    default_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def user_message(self) -> str:
        return str(self)


class InvalidFormatError(StandupError):
    """Malformed time, id or argument input. State is unchanged."""

    default_message = "Invalid format. Please check the example and try again."


class EmptyUpdateError(StandupError):
    """A single-shot update had no text after the command."""

    default_message = (
        "Please provide your update after the command. For example:\n"
        "/myUpdate Yesterday: Worked on X\nToday: Work on Y\nBlockers: None"
    )


class EmptyGuardedSectionError(StandupError):
    """Tried to leave a draft section that has no tasks."""

    default_message = "Please add at least one task before continuing."


class TooLongError(StandupError):
    """A draft field exceeded its character cap."""

    def __init__(self, length: int, limit: int) -> None:
        self.length = length
        self.limit = limit
        super().__init__(
            f"Your input is too long ({length} characters). "
            f"Please keep it under {limit} characters. Try again:"
        )


class NoSpreadsheetConfiguredError(StandupError):
    """Export was attempted for a group without a spreadsheet id."""

    default_message = (
        "No spreadsheet is configured for this group. "
        "An admin can set one with /setSpreadsheet <id>."
    )


class ExportFailedError(StandupError):
    """The spreadsheet call failed. The local write is kept."""

    default_message = "Error exporting your update to the spreadsheet."


class PermissionDeniedError(StandupError):
    """A non-admin invoked an admin-only command."""

    default_message = "Only group administrators can use this command."


class TargetGroupNotSetError(StandupError):
    """Drafting was started before a target group was chosen."""

    default_message = "Please use /showGroups and /setGC first to choose your target group chat."


class NoDraftError(StandupError):
    """A draft command arrived while no draft is in progress."""

    default_message = "No update preparation in progress. Use /start to begin."


class PostFailedError(StandupError):
    """The finished draft could not be posted to the target group."""

    default_message = "Failed to post the update. Please try /done again or contact support."

"""
Standup Bot — Update Upsert Pipeline.

Every finished update, whether typed in one /myUpdate command or built
through the guided draft, passes through submit_update():

1. the entry replaces the user's previous entry in the group log (or is
   appended when the user has none),
2. the store is saved,
3. the entry is exported to the group's spreadsheet.

The local write always happens before the export and is never rolled back:
a failing spreadsheet call must not lose what the user wrote.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Literal

from src.core.errors import EmptyUpdateError, StandupError
from src.core.sheet_export import export_update
from src.data.models import GroupRecord, UpdateEntry

if TYPE_CHECKING:
    from src.data.store import BotStore
    from src.ports.spreadsheet_port import SpreadsheetPort

logger = logging.getLogger(__name__)


@dataclass
class SubmitResult:
    """Outcome of one submission."""

    status: Literal["created", "replaced"]
    entry: UpdateEntry
    exported: bool
    export_error: StandupError | None = None


def upsert_entry(group: GroupRecord, entry: UpdateEntry) -> Literal["created", "replaced"]:
    """Replace the entry with the same user in place, else append."""
    for index, existing in enumerate(group.stand_up_logs):
        if existing.user == entry.user:
            group.stand_up_logs[index] = entry
            return "replaced"
    group.stand_up_logs.append(entry)
    return "created"


async def submit_update(
    store: BotStore,
    sheets: SpreadsheetPort,
    group_id: int | str,
    user: str,
    text: str,
    now: datetime | None = None,
) -> SubmitResult:
    """Record a user's update for today and export it.

    Raises EmptyUpdateError before touching any state when `text` is blank.
    Export problems are reported in the result, never raised.
    """
    text = (text or "").strip()
    if not text:
        raise EmptyUpdateError()

    if now is None:
        now = datetime.now(timezone.utc)

    group = store.init_group(group_id)
    entry = UpdateEntry(user=user, text=text, date=now)
    status = upsert_entry(group, entry)
    store.save()
    logger.info("Update of '%s' in group %s %s", user, group.id, status)

    try:
        await export_update(sheets, group, entry)
    except StandupError as exc:
        logger.warning("Export of '%s' in group %s failed: %s", user, group.id, exc)
        return SubmitResult(status=status, entry=entry, exported=False, export_error=exc)
    return SubmitResult(status=status, entry=entry, exported=True)

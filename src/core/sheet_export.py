"""
Standup Bot — Spreadsheet Export.

Writes a group's latest update for a user into the group's spreadsheet.
Rows are bucketed into one sheet per ISO week, and a (group, user, day)
triple owns at most one row: re-exporting overwrites that row instead of
appending a second one.

This module is provider-agnostic: it depends on the SpreadsheetPort
protocol, not on a specific implementation.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta, timezone
from typing import TYPE_CHECKING

from src.core.errors import ExportFailedError, NoSpreadsheetConfiguredError
from src.core.members import category_label
from src.ports.spreadsheet_port import SpreadsheetError, a1_range

if TYPE_CHECKING:
    from src.data.models import GroupRecord, UpdateEntry
    from src.ports.spreadsheet_port import SpreadsheetPort

logger = logging.getLogger(__name__)

HEADER = ["Group ID", "Group Name", "User", "Category", "Update", "Date"]
_LAST_COLUMN = "F"

# Column positions within a row
_COL_GROUP_ID = 0
_COL_USER = 2
_COL_DATE = 5


def week_sheet_name(day: date) -> str:
    """Sheet title for the ISO week containing `day`.

    e.g. date(2024, 3, 20) -> "Standups 2024-W12 03/18-03/22"
    """
    iso_year, iso_week, _ = day.isocalendar()
    monday = day - timedelta(days=day.weekday())
    friday = monday + timedelta(days=4)
    return f"Standups {iso_year}-W{iso_week:02d} {monday:%m/%d}-{friday:%m/%d}"


def entry_day(entry: UpdateEntry) -> date:
    moment = entry.date
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).date()


def build_row(group: GroupRecord, entry: UpdateEntry) -> list[str]:
    return [
        group.id,
        group.metadata.group_name,
        entry.user,
        category_label(group, entry.user),
        entry.text,
        entry_day(entry).isoformat(),
    ]


def find_row(rows: list[list[str]], group_id: str, user: str, day: str) -> int | None:
    """1-based sheet row number of the existing row for (group, user, day).

    Row 1 is the header and never matches.
    """
    for index, row in enumerate(rows[1:], start=2):
        if len(row) <= _COL_DATE:
            continue
        if row[_COL_GROUP_ID] == group_id and row[_COL_USER] == user and row[_COL_DATE] == day:
            return index
    return None


async def export_update(
    sheets: SpreadsheetPort,
    group: GroupRecord,
    entry: UpdateEntry,
) -> int | None:
    """Upsert the entry's row in this week's sheet.

    Returns the overwritten row number, or None when a new row was appended.

    Raises:
        NoSpreadsheetConfiguredError: the group has no spreadsheet id.
        ExportFailedError: any spreadsheet call failed.
    """
    spreadsheet_id = group.settings.spreadsheet_id
    if not spreadsheet_id:
        raise NoSpreadsheetConfiguredError()

    day = entry_day(entry)
    sheet = week_sheet_name(day)
    row = build_row(group, entry)

    try:
        await sheets.ensure_sheet(spreadsheet_id, sheet, HEADER)
        rows = await sheets.read_rows(spreadsheet_id, a1_range(sheet, f"A:{_LAST_COLUMN}"))
        row_number = find_row(rows, group.id, entry.user, day.isoformat())
        if row_number is not None:
            await sheets.update_row(
                spreadsheet_id,
                a1_range(sheet, f"A{row_number}:{_LAST_COLUMN}{row_number}"),
                row,
            )
        else:
            await sheets.append_row(spreadsheet_id, a1_range(sheet, f"A:{_LAST_COLUMN}"), row)
    except SpreadsheetError as exc:
        raise ExportFailedError() from exc

    logger.info(
        "Exported update of '%s' in group %s to '%s' (%s)",
        entry.user, group.id, sheet,
        f"row {row_number} overwritten" if row_number else "appended",
    )
    return row_number

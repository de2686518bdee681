"""Spreadsheet port — abstract interface for spreadsheet operations.

Core modules depend on this protocol, never on a specific provider.
Ranges use A1 notation including the sheet title, e.g. "Standups!A:F".
"""

from __future__ import annotations

from typing import Protocol


class SpreadsheetError(Exception):
    """Raised when any spreadsheet provider operation fails."""


def a1_range(title: str, cells: str) -> str:
    """A1 range inside a named sheet; titles with spaces must be quoted."""
    return "'" + title.replace("'", "''") + "'!" + cells


class SpreadsheetPort(Protocol):
    """Abstract spreadsheet interface used by core modules."""

    async def ensure_sheet(
        self, spreadsheet_id: str, title: str, header: list[str]
    ) -> bool: ...

    async def read_rows(
        self, spreadsheet_id: str, range_: str
    ) -> list[list[str]]: ...

    async def update_row(
        self, spreadsheet_id: str, range_: str, row: list[str]
    ) -> None: ...

    async def append_row(
        self, spreadsheet_id: str, range_: str, row: list[str]
    ) -> None: ...

"""Google Sheets adapter — implements SpreadsheetPort for Google Sheets API v4.

All Google-specific logic lives here. Core modules never import this directly;
they depend on the SpreadsheetPort protocol.

The googleapiclient is synchronous, so every request runs in a worker thread
to keep the bot's event loop responsive.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from src.integrations.google_auth import get_sheets_service
from src.ports.spreadsheet_port import SpreadsheetError, a1_range

logger = logging.getLogger(__name__)


def _column_letter(index: int) -> str:
    """1 -> A, 6 -> F, 27 -> AA."""
    letters = ""
    while index > 0:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


class GoogleSheetsAdapter:
    """Google Sheets implementation of SpreadsheetPort."""

    def __init__(self, service_factory: Callable[[], Any] = get_sheets_service) -> None:
        self._service_factory = service_factory

    async def _execute(self, description: str, build_request: Callable[[Any], Any]) -> Any:
        def _run():
            service = self._service_factory()
            return build_request(service).execute()

        try:
            return await asyncio.to_thread(_run)
        except Exception as exc:
            logger.error("Google Sheets API error (%s): %s", description, exc)
            raise SpreadsheetError(f"Failed to {description}: {exc}") from exc

    async def ensure_sheet(self, spreadsheet_id: str, title: str, header: list[str]) -> bool:
        """Create the sheet with a header row unless it exists. Returns True if created."""
        meta = await self._execute(
            "read spreadsheet metadata",
            lambda s: s.spreadsheets().get(
                spreadsheetId=spreadsheet_id, fields="sheets.properties.title",
            ),
        )
        titles = {
            sheet.get("properties", {}).get("title")
            for sheet in meta.get("sheets", [])
        }
        if title in titles:
            return False

        await self._execute(
            f"add sheet '{title}'",
            lambda s: s.spreadsheets().batchUpdate(
                spreadsheetId=spreadsheet_id,
                body={"requests": [{"addSheet": {"properties": {"title": title}}}]},
            ),
        )
        header_range = a1_range(title, f"A1:{_column_letter(len(header))}1")
        await self.update_row(spreadsheet_id, header_range, header)
        logger.info("Sheet '%s' created in spreadsheet %s", title, spreadsheet_id)
        return True

    async def read_rows(self, spreadsheet_id: str, range_: str) -> list[list[str]]:
        result = await self._execute(
            f"read {range_}",
            lambda s: s.spreadsheets().values().get(spreadsheetId=spreadsheet_id, range=range_),
        )
        return result.get("values", [])

    async def update_row(self, spreadsheet_id: str, range_: str, row: list[str]) -> None:
        await self._execute(
            f"update {range_}",
            lambda s: s.spreadsheets().values().update(
                spreadsheetId=spreadsheet_id,
                range=range_,
                valueInputOption="RAW",
                body={"values": [row]},
            ),
        )
        logger.debug("Row written at %s", range_)

    async def append_row(self, spreadsheet_id: str, range_: str, row: list[str]) -> None:
        await self._execute(
            f"append to {range_}",
            lambda s: s.spreadsheets().values().append(
                spreadsheetId=spreadsheet_id,
                range=range_,
                valueInputOption="RAW",
                insertDataOption="INSERT_ROWS",
                body={"values": [row]},
            ),
        )
        logger.debug("Row appended to %s", range_)

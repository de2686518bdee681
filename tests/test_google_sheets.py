"""Tests for src.adapters.google_sheets — Google Sheets API wrapper.

The API service object is mocked; no network calls are made.
"""

from unittest.mock import MagicMock

import pytest

from src.adapters.google_sheets import GoogleSheetsAdapter, _column_letter
from src.ports.spreadsheet_port import SpreadsheetError, a1_range


def _adapter(service):
    return GoogleSheetsAdapter(service_factory=lambda: service)


def test_column_letter():
    assert _column_letter(1) == "A"
    assert _column_letter(6) == "F"
    assert _column_letter(27) == "AA"


def test_a1_range_escapes_quotes():
    assert a1_range("Bob's week", "A1:F1") == "'Bob''s week'!A1:F1"


class TestEnsureSheet:
    @pytest.mark.asyncio
    async def test_existing_sheet_untouched(self):
        service = MagicMock()
        spreadsheets = service.spreadsheets.return_value
        spreadsheets.get.return_value.execute.return_value = {
            "sheets": [{"properties": {"title": "Week 12"}}]
        }

        created = await _adapter(service).ensure_sheet("sheet-1", "Week 12", ["A", "B"])

        assert created is False
        spreadsheets.batchUpdate.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_sheet_created_with_header(self):
        service = MagicMock()
        spreadsheets = service.spreadsheets.return_value
        spreadsheets.get.return_value.execute.return_value = {"sheets": []}

        created = await _adapter(service).ensure_sheet("sheet-1", "Week 12", ["A", "B", "C"])

        assert created is True
        body = spreadsheets.batchUpdate.call_args.kwargs["body"]
        assert body["requests"][0]["addSheet"]["properties"]["title"] == "Week 12"
        update_kwargs = spreadsheets.values.return_value.update.call_args.kwargs
        assert update_kwargs["range"] == "'Week 12'!A1:C1"
        assert update_kwargs["body"] == {"values": [["A", "B", "C"]]}


class TestRows:
    @pytest.mark.asyncio
    async def test_read_rows(self):
        service = MagicMock()
        values = service.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.return_value = {"values": [["h"], ["r"]]}
        assert await _adapter(service).read_rows("sheet-1", "'W'!A:F") == [["h"], ["r"]]

    @pytest.mark.asyncio
    async def test_read_rows_empty_sheet(self):
        service = MagicMock()
        values = service.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.return_value = {}
        assert await _adapter(service).read_rows("sheet-1", "'W'!A:F") == []

    @pytest.mark.asyncio
    async def test_append_row(self):
        service = MagicMock()
        values = service.spreadsheets.return_value.values.return_value
        await _adapter(service).append_row("sheet-1", "'W'!A:F", ["a", "b"])
        kwargs = values.append.call_args.kwargs
        assert kwargs["valueInputOption"] == "RAW"
        assert kwargs["insertDataOption"] == "INSERT_ROWS"
        assert kwargs["body"] == {"values": [["a", "b"]]}

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self):
        service = MagicMock()
        values = service.spreadsheets.return_value.values.return_value
        values.update.return_value.execute.side_effect = RuntimeError("403 forbidden")
        with pytest.raises(SpreadsheetError, match="403 forbidden"):
            await _adapter(service).update_row("sheet-1", "'W'!A2:F2", ["a"])

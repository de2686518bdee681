"""Shared test fixtures and configuration.

Sets up fake environment variables so src.config doesn't sys.exit(),
and provides common fixtures like a temp-file store.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("GOOGLE_CLIENT_EMAIL", "standup-bot@example.iam.gserviceaccount.com")
os.environ.setdefault("GOOGLE_PRIVATE_KEY", "")
os.environ.setdefault("GOOGLE_SPREADSHEET_ID", "")
os.environ.setdefault("BOT_ADMIN_IDS", "999")
os.environ.setdefault("DATA_PATH", os.path.join("data", "test-standups.json"))

import pytest
from unittest.mock import AsyncMock, MagicMock


@pytest.fixture
def data_path(tmp_path):
    """Return a temporary JSON state path."""
    return str(tmp_path / "standups.json")


@pytest.fixture
def storage(data_path):
    from src.data.store import JsonFileStorage
    return JsonFileStorage(path=data_path)


@pytest.fixture
def store(storage):
    """Return a BotStore backed by a temp file."""
    from src.data.store import BotStore
    return BotStore(storage)


class FakeSheets:
    """In-memory SpreadsheetPort: {spreadsheet_id: {sheet title: rows}}."""

    def __init__(self):
        self.books = {}
        self.calls = []

    @staticmethod
    def _title(range_):
        return range_.split("!")[0].strip("'").replace("''", "'")

    async def ensure_sheet(self, spreadsheet_id, title, header):
        self.calls.append(("ensure_sheet", title))
        sheets = self.books.setdefault(spreadsheet_id, {})
        if title in sheets:
            return False
        sheets[title] = [list(header)]
        return True

    async def read_rows(self, spreadsheet_id, range_):
        self.calls.append(("read_rows", range_))
        return [list(r) for r in self.books[spreadsheet_id][self._title(range_)]]

    async def update_row(self, spreadsheet_id, range_, row):
        self.calls.append(("update_row", range_))
        cells = range_.split("!")[1]
        number = int("".join(ch for ch in cells.split(":")[0] if ch.isdigit()))
        self.books[spreadsheet_id][self._title(range_)][number - 1] = list(row)

    async def append_row(self, spreadsheet_id, range_, row):
        self.calls.append(("append_row", range_))
        self.books[spreadsheet_id][self._title(range_)].append(list(row))


@pytest.fixture
def fake_sheets():
    return FakeSheets()


@pytest.fixture
def notifier():
    """A NotificationPort mock whose callers are all admins."""
    mock = MagicMock()
    mock.send_message = AsyncMock()
    mock.probe_chat = AsyncMock()
    mock.get_member_status = AsyncMock(return_value="administrator")
    return mock

"""Tests for src.core.draft — the guided update state machine."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from src.core.draft import (
    WHAT_MAX_CHARS,
    WHY_MAX_CHARS,
    accept_input,
    advance_section,
    cancel_draft,
    finalize_draft,
    reply_after_input,
    start_draft,
    user_key,
)
from src.core.errors import (
    EmptyGuardedSectionError,
    NoDraftError,
    PostFailedError,
    TargetGroupNotSetError,
    TooLongError,
)
from src.core.formatting import MARKDOWN, PROMPT_WHY
from src.data.models import UserSession

NOW = datetime(2024, 3, 20, 10, 0, tzinfo=timezone.utc)


def _session():
    return UserSession(target_group_id="-100123")


def _add_task(session, what, why):
    assert accept_input(session, what) is None
    return accept_input(session, why)


class TestStartAndCancel:
    def test_requires_target_group(self):
        with pytest.raises(TargetGroupNotSetError):
            start_draft(UserSession())

    def test_start_replaces_existing_draft(self):
        session = _session()
        start_draft(session)
        _add_task(session, "a", "b")
        start_draft(session)
        assert session.draft_update.content.yesterday == []

    def test_cancel(self):
        session = _session()
        start_draft(session)
        assert cancel_draft(session) is True
        assert session.draft_update is None
        assert cancel_draft(session) is False


class TestAcceptInput:
    def test_what_then_why(self):
        session = _session()
        draft = start_draft(session)
        assert accept_input(session, "fixed login") is None
        assert draft.collecting == "why"
        task = accept_input(session, "users were locked out")
        assert task.what == "fixed login"
        assert task.why == "users were locked out"
        assert draft.collecting == "what"
        assert draft.current_task is None
        assert len(draft.content.yesterday) == 1

    def test_appended_task_is_a_copy(self):
        session = _session()
        draft = start_draft(session)
        task = _add_task(session, "a", "b")
        task.what = "mutated"
        assert draft.content.yesterday[0].what == "a"

    def test_what_too_long_keeps_state(self):
        session = _session()
        draft = start_draft(session)
        with pytest.raises(TooLongError) as exc_info:
            accept_input(session, "x" * (WHAT_MAX_CHARS + 1))
        assert f"under {WHAT_MAX_CHARS} characters" in exc_info.value.user_message
        assert draft.collecting == "what"
        assert draft.current_task is None

    def test_why_too_long_keeps_state(self):
        session = _session()
        draft = start_draft(session)
        accept_input(session, "short")
        with pytest.raises(TooLongError):
            accept_input(session, "y" * (WHY_MAX_CHARS + 1))
        assert draft.collecting == "why"
        assert draft.current_task.what == "short"
        assert draft.content.yesterday == []

    def test_limits_are_inclusive(self):
        session = _session()
        start_draft(session)
        task = _add_task(session, "x" * WHAT_MAX_CHARS, "y" * WHY_MAX_CHARS)
        assert len(task.what) == WHAT_MAX_CHARS

    def test_without_draft(self):
        with pytest.raises(NoDraftError):
            accept_input(_session(), "hello")

    def test_replies(self):
        session = _session()
        draft = start_draft(session)
        assert reply_after_input(draft, accept_input(session, "a")) == PROMPT_WHY
        reply = reply_after_input(draft, accept_input(session, "b"))
        assert "accomplishment 1:\nwhat: a\nwhy: b" in reply
        assert "accomplishment 2" in reply


class TestAdvanceSection:
    def test_empty_yesterday_is_guarded(self):
        session = _session()
        draft = start_draft(session)
        with pytest.raises(EmptyGuardedSectionError):
            advance_section(session)
        assert draft.state == "collecting_yesterday"

    def test_yesterday_to_today(self):
        session = _session()
        draft = start_draft(session)
        _add_task(session, "a", "b")
        assert advance_section(session) == "today"
        assert draft.state == "collecting_today"
        assert draft.section == "today"

    def test_partial_task_dropped_on_transition(self):
        session = _session()
        draft = start_draft(session)
        _add_task(session, "a", "b")
        accept_input(session, "half")
        advance_section(session)
        assert draft.current_task is None
        assert draft.collecting == "what"

    def test_empty_today_is_guarded(self):
        session = _session()
        start_draft(session)
        _add_task(session, "a", "b")
        advance_section(session)
        with pytest.raises(EmptyGuardedSectionError):
            advance_section(session)

    def test_today_ready_to_finalize(self):
        session = _session()
        start_draft(session)
        _add_task(session, "a", "b")
        advance_section(session)
        _add_task(session, "c", "d")
        assert advance_section(session) == "finalize"


def test_user_key():
    assert user_key("Jane Doe", "@jane") == "Jane Doe (@jane)"
    assert user_key("", "@jane") == "@jane"


class TestFinalize:
    def _ready_store(self, store):
        session = store.get_session(42)
        session.target_group_id = "-100123"
        start_draft(session)
        _add_task(session, "fixed login", "users locked out")
        advance_section(session)
        _add_task(session, "deploy", "release day")
        return session

    @pytest.mark.asyncio
    async def test_posts_records_and_clears(self, store, notifier, fake_sheets):
        session = self._ready_store(store)
        store.init_group(-100123, "Team").settings.spreadsheet_id = "sheet-1"

        result = await finalize_draft(
            store, notifier, fake_sheets, 42, "Jane Doe", "@jane", now=NOW,
        )

        notifier.send_message.assert_awaited_once()
        args, kwargs = notifier.send_message.call_args
        assert args[0] == "-100123"
        assert args[1].startswith("*Jane Doe* \\(@jane\\):")
        assert kwargs["parse_mode"] == MARKDOWN

        entry = store.get_group(-100123).stand_up_logs[0]
        assert entry.user == "Jane Doe (@jane)"
        assert entry.text.startswith("Yesterday:\naccomplishment 1:\nwhat: fixed login")
        assert result.submit.exported is True
        assert session.draft_update is None

    @pytest.mark.asyncio
    async def test_post_failure_keeps_draft(self, store, notifier, fake_sheets):
        session = self._ready_store(store)
        notifier.send_message = AsyncMock(side_effect=RuntimeError("network"))

        with pytest.raises(PostFailedError):
            await finalize_draft(store, notifier, fake_sheets, 42, "Jane Doe", "@jane", now=NOW)

        assert session.draft_update is not None
        assert store.get_group(-100123) is None

    @pytest.mark.asyncio
    async def test_export_failure_still_clears_draft(self, store, notifier, fake_sheets):
        session = self._ready_store(store)

        result = await finalize_draft(store, notifier, fake_sheets, 42, "Jane Doe", "@jane", now=NOW)

        assert result.submit.exported is False
        assert session.draft_update is None
        assert len(store.get_group(-100123).stand_up_logs) == 1

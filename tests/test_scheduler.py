"""Tests for src.core.scheduler — reminder and follow-up ticks."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from src.core.formatting import MARKDOWN, REMINDER_MONDAY, REMINDER_WEEKDAY
from src.core.scheduler import (
    follow_up_due,
    reminder_due,
    reminder_message,
    run_reminder_tick,
)
from src.data.models import GroupRecord, UpdateEntry
from src.ports.notification_port import ChatUnreachableError

WEDNESDAY_9 = datetime(2024, 3, 20, 9, 0, tzinfo=timezone.utc)
MONDAY_9 = datetime(2024, 3, 18, 9, 0, tzinfo=timezone.utc)
SATURDAY_9 = datetime(2024, 3, 23, 9, 0, tzinfo=timezone.utc)


def _group(active=True, time="09:00"):
    group = GroupRecord(id="-100123")
    group.settings.is_active = active
    group.settings.reminder_time_utc = time
    return group


class TestReminderDue:
    def test_fires_on_matching_minute(self):
        assert reminder_due(_group(), WEDNESDAY_9 + timedelta(seconds=30)) is True

    def test_not_on_other_minutes(self):
        assert reminder_due(_group(), WEDNESDAY_9 + timedelta(minutes=1)) is False

    def test_inactive_group(self):
        assert reminder_due(_group(active=False), WEDNESDAY_9) is False

    def test_weekend_skipped_by_default(self):
        assert reminder_due(_group(), SATURDAY_9) is False

    def test_custom_weekdays(self):
        group = _group()
        group.settings.active_weekdays = [6]
        assert reminder_due(group, SATURDAY_9) is True
        assert reminder_due(group, WEDNESDAY_9) is False


class TestFollowUpDue:
    def test_window(self):
        group = _group()
        group.metadata.last_reminder_time = WEDNESDAY_9
        assert follow_up_due(group, WEDNESDAY_9 + timedelta(minutes=59)) is False
        assert follow_up_due(group, WEDNESDAY_9 + timedelta(hours=1)) is True
        assert follow_up_due(group, WEDNESDAY_9 + timedelta(hours=1, seconds=59)) is True
        assert follow_up_due(group, WEDNESDAY_9 + timedelta(hours=1, seconds=60)) is False

    def test_without_reminder(self):
        assert follow_up_due(_group(), WEDNESDAY_9) is False


def test_reminder_message_by_weekday():
    assert reminder_message(MONDAY_9) == REMINDER_MONDAY
    assert reminder_message(WEDNESDAY_9) == REMINDER_WEEKDAY


class TestRunReminderTick:
    @pytest.mark.asyncio
    async def test_sends_reminder_and_records_time(self, store, notifier):
        store.groups["-100123"] = _group()

        await run_reminder_tick(store, notifier, now=WEDNESDAY_9)

        notifier.probe_chat.assert_awaited_once_with("-100123")
        notifier.send_message.assert_awaited_once_with("-100123", REMINDER_WEEKDAY)
        assert store.get_group("-100123").metadata.last_reminder_time == WEDNESDAY_9

    @pytest.mark.asyncio
    async def test_unreachable_group_is_deleted(self, store, notifier):
        store.groups["-100123"] = _group()
        notifier.probe_chat = AsyncMock(side_effect=ChatUnreachableError("kicked"))

        await run_reminder_tick(store, notifier, now=WEDNESDAY_9)

        assert store.get_group("-100123") is None
        notifier.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_follow_up_lists_missing(self, store, notifier):
        group = _group()
        group.member_categories = {"eng": ["alice", "bob"]}
        group.metadata.last_reminder_time = WEDNESDAY_9
        group.stand_up_logs = [UpdateEntry(user="alice", text="x", date=WEDNESDAY_9)]
        store.groups[group.id] = group

        await run_reminder_tick(store, notifier, now=WEDNESDAY_9 + timedelta(hours=1))

        args, kwargs = notifier.send_message.call_args
        assert "@bob" in args[1]
        assert "@alice" not in args[1]
        assert kwargs["parse_mode"] == MARKDOWN

    @pytest.mark.asyncio
    async def test_no_follow_up_when_everyone_posted(self, store, notifier):
        group = _group()
        group.member_categories = {"eng": ["alice"]}
        group.metadata.last_reminder_time = WEDNESDAY_9
        group.stand_up_logs = [UpdateEntry(user="alice", text="x", date=WEDNESDAY_9)]
        store.groups[group.id] = group

        await run_reminder_tick(store, notifier, now=WEDNESDAY_9 + timedelta(hours=1))

        notifier.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_one_failing_group_does_not_stop_others(self, store, notifier):
        store.groups["-1"] = GroupRecord(id="-1")
        store.groups["-2"] = GroupRecord(id="-2")
        for group in store.groups.values():
            group.settings.is_active = True

        notifier.send_message = AsyncMock(side_effect=[RuntimeError("boom"), None])
        await run_reminder_tick(store, notifier, now=WEDNESDAY_9)

        assert notifier.send_message.await_count == 2
        assert store.get_group("-2").metadata.last_reminder_time == WEDNESDAY_9

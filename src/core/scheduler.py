"""
Standup Bot — Reminder Scheduler.

A minute-granularity tick (driven by the PTB JobQueue) that, for every
active group:

Initial reminder: fires when the UTC "HH:MM" of the tick equals the
group's reminderTimeUTC on one of its active weekdays. The group is probed
first; a group the bot can no longer reach is purged.

Follow-up: one hour after the initial reminder, lists configured members
who still haven't posted today.

Missed ticks are never caught up. This module is provider-agnostic: it
depends on the NotificationPort protocol, not on a specific implementation.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from src.core.formatting import (
    MARKDOWN,
    REMINDER_MONDAY,
    REMINDER_WEEKDAY,
    render_follow_up,
)
from src.core.members import missing_members
from src.core.time_conversion import format_time_of_day
from src.ports.notification_port import ChatUnreachableError

if TYPE_CHECKING:
    from src.data.models import GroupRecord
    from src.data.store import BotStore
    from src.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)

POLL_INTERVAL = timedelta(seconds=60)
FOLLOW_UP_DELAY = timedelta(hours=1)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def is_active_day(group: GroupRecord, now: datetime) -> bool:
    return _as_utc(now).isoweekday() in group.settings.active_weekdays


def reminder_due(group: GroupRecord, now: datetime) -> bool:
    """True on the tick whose UTC HH:MM matches the group's reminder time."""
    if not group.settings.is_active or not is_active_day(group, now):
        return False
    now = _as_utc(now)
    return format_time_of_day(now.hour, now.minute) == group.settings.reminder_time_utc


def follow_up_due(group: GroupRecord, now: datetime) -> bool:
    """True on the single tick that falls one hour after the last reminder."""
    last = group.metadata.last_reminder_time
    if not group.settings.is_active or last is None or not is_active_day(group, now):
        return False
    elapsed = _as_utc(now) - _as_utc(last)
    return FOLLOW_UP_DELAY <= elapsed < FOLLOW_UP_DELAY + POLL_INTERVAL


def reminder_message(now: datetime) -> str:
    """Mondays ask about Friday and the weekend too."""
    return REMINDER_MONDAY if _as_utc(now).weekday() == 0 else REMINDER_WEEKDAY


async def _send_reminder(
    store: BotStore, notifier: NotificationPort, group: GroupRecord, now: datetime,
) -> None:
    try:
        await notifier.probe_chat(group.id)
    except ChatUnreachableError as exc:
        logger.warning("Group %s unreachable, removing it: %s", group.id, exc)
        store.delete_group(group.id)
        return

    group.metadata.last_reminder_time = now
    store.save()
    await notifier.send_message(group.id, reminder_message(now))
    logger.info("Reminder sent to group %s", group.id)


async def _send_follow_up(
    notifier: NotificationPort, group: GroupRecord, now: datetime,
) -> None:
    missing = missing_members(group, _as_utc(now).date())
    if not missing:
        logger.debug("Group %s: everyone posted, no follow-up", group.id)
        return
    await notifier.send_message(group.id, render_follow_up(missing), parse_mode=MARKDOWN)
    logger.info("Follow-up sent to group %s (%d missing)", group.id, len(missing))


async def run_reminder_tick(
    store: BotStore,
    notifier: NotificationPort,
    now: datetime | None = None,
) -> None:
    """Evaluate every group once. A failing group never stops the others."""
    now = _as_utc(now or datetime.now(timezone.utc))

    # Snapshot: reminders may delete unreachable groups while iterating
    for group in list(store.groups.values()):
        try:
            if reminder_due(group, now):
                await _send_reminder(store, notifier, group, now)
            elif follow_up_due(group, now):
                await _send_follow_up(notifier, group, now)
        except ChatUnreachableError as exc:
            logger.warning("Group %s unreachable, removing it: %s", group.id, exc)
            store.delete_group(group.id)
        except Exception as exc:
            logger.error("Reminder tick failed for group %s: %s", group.id, exc)

"""Time conversion — pure business logic.

Turns the 12-hour clock times users type into the UTC time-of-day the
reminder job compares against.

No I/O: this module only transforms data.

Known limitation: the user's UTC offset is inferred from a single sample
("what time is it for you now?") at whole-hour precision. Half-hour zones
and a stated time that straddles an hour boundary come out one hour off.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from src.core.errors import InvalidFormatError

logger = logging.getLogger(__name__)

_PERIODS = ("am", "pm")


@dataclass(frozen=True)
class LocalTime:
    """A time of day on the 24-hour clock."""

    hour: int      # 0..23
    minute: int    # 0..59

    def as_hhmm(self) -> str:
        return format_time_of_day(self.hour, self.minute)


def parse_local_time(text: str) -> LocalTime:
    """Parse a 12-hour clock string like "2:55 pm" into 24-hour form.

    Raises InvalidFormatError on an hour outside 1-12, a minute outside
    0-59, a missing am/pm token, or non-numeric components.
    """
    if not text or not text.strip():
        raise InvalidFormatError('Time is required. Example: "2:55 pm" or "10:25 am"')

    parts = text.strip().lower().split()
    if len(parts) != 2 or parts[1] not in _PERIODS:
        raise InvalidFormatError('Invalid time format. Example: "2:55 pm" or "10:25 am"')

    clock, period = parts
    if ":" not in clock:
        raise InvalidFormatError('Invalid time format. Example: "2:55 pm" or "10:25 am"')

    hour_text, minute_text = clock.split(":", 1)
    if not (hour_text.isdigit() and minute_text.isdigit()):
        raise InvalidFormatError("Invalid time format. Hours: 1-12, Minutes: 0-59, Period: am/pm")

    hour, minute = int(hour_text), int(minute_text)
    if not (1 <= hour <= 12 and 0 <= minute <= 59):
        raise InvalidFormatError("Invalid time format. Hours: 1-12, Minutes: 0-59, Period: am/pm")

    if period == "pm" and hour != 12:
        hour += 12
    if period == "am" and hour == 12:
        hour = 0
    return LocalTime(hour, minute)


def parse_hhmm(text: str) -> LocalTime:
    """Parse a stored 24-hour "HH:MM" string."""
    try:
        hour_text, minute_text = text.strip().split(":")
        hour, minute = int(hour_text), int(minute_text)
    except (AttributeError, ValueError) as exc:
        raise InvalidFormatError(f"Invalid time {text!r}, expected HH:MM") from exc
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise InvalidFormatError(f"Invalid time {text!r}, expected HH:MM")
    return LocalTime(hour, minute)


def utc_offset_hours(current_local: LocalTime, now: datetime | None = None) -> int:
    """Whole-hour offset of the user's clock from UTC, normalized to [-12, 12]."""
    if now is None:
        now = datetime.now(timezone.utc)
    offset = current_local.hour - now.astimezone(timezone.utc).hour
    if offset > 12:
        offset -= 24
    elif offset < -12:
        offset += 24
    return offset


def convert_to_utc(
    desired_local: str,
    current_local: str,
    now: datetime | None = None,
) -> LocalTime:
    """Convert a desired local time to UTC given the user's stated current time.

    Args:
        desired_local: When the reminder should fire, e.g. "10:25 am".
        current_local: What the user's clock reads right now, e.g. "2:55 pm".
        now: Reference instant; defaults to the current UTC time.

    Returns:
        The UTC time of day, wrapped across midnight.
    """
    current = parse_local_time(current_local)
    desired = parse_local_time(desired_local)
    offset = utc_offset_hours(current, now)
    utc_hour = (desired.hour - offset) % 24
    logger.debug(
        "Converted %s (offset %+d) to %02d:%02d UTC",
        desired_local, offset, utc_hour, desired.minute,
    )
    return LocalTime(utc_hour, desired.minute)


def format_time_of_day(hour: int, minute: int, with_period: bool = False) -> str:
    """Render "HH:MM", or "H:MM AM/PM" when with_period is set."""
    if not with_period:
        return f"{hour:02d}:{minute:02d}"
    period = "PM" if hour >= 12 else "AM"
    display_hour = hour % 12 or 12
    return f"{display_hour}:{minute:02d} {period}"


def parse_reminder_request(text: str) -> tuple[str, str]:
    """Split the two-line /setReminder reply into (current, desired).

    Expected shape:
        Now: 2:55 pm
        Set: 10:25 am
    """
    lines = [line.strip() for line in (text or "").strip().splitlines() if line.strip()]
    if len(lines) != 2:
        raise InvalidFormatError("Invalid input. Please provide 2 lines as shown in the example.")

    values: list[str] = []
    for line in lines:
        if ":" not in line:
            raise InvalidFormatError("Invalid time format. Please try again with the example format.")
        _, value = line.split(":", 1)
        values.append(value.strip())
    return values[0], values[1]

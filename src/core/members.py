"""Category membership — pure business logic.

Categories are admin-defined labels grouping member handles for reporting.
Membership is only ever stored in GroupRecord.member_categories; which
categories a user belongs to is always derived from it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

from src.core.errors import InvalidFormatError
from src.data.models import GroupRecord, UpdateEntry

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"

# "Jane Doe (@jane)" is the key guided drafts are stored under
_DRAFT_KEY_RE = re.compile(r"\(@([^()\s]+)\)\s*$")


@dataclass
class AddResult:
    category: str
    added: list[str] = field(default_factory=list)
    already: list[str] = field(default_factory=list)


@dataclass
class RemoveResult:
    removed: list[tuple[str, str]] = field(default_factory=list)  # (username, category)
    not_found: list[str] = field(default_factory=list)
    cleaned_categories: list[str] = field(default_factory=list)


def member_handle(user: str) -> str:
    """Handle a stored update key refers to.

    Single-shot updates are keyed by the bare handle; guided drafts by
    "Display Name (@handle)".
    """
    match = _DRAFT_KEY_RE.search(user)
    return match.group(1) if match else user


def parse_usernames(text: str) -> list[str]:
    """Split "alice, @bob,carol" into unique handles without the "@"."""
    names: list[str] = []
    for raw in (text or "").split(","):
        name = raw.strip().lstrip("@").strip()
        if name and name not in names:
            names.append(name)
    return names


def parse_add_member_args(text: str) -> tuple[str, list[str]]:
    """Parse '/addMember' arguments: a category then comma-separated handles.

    The category may be quoted to contain spaces: '"Sales Team" user1, user2'.
    """
    text = (text or "").strip()
    if text.startswith('"'):
        closing = text.find('"', 1)
        if closing == -1:
            raise InvalidFormatError(
                'Invalid format for quotes. Example:\n/addMember "Sales Team" user1, user2'
            )
        category = text[1:closing].strip()
        rest = text[closing + 1:]
    else:
        parts = text.split(maxsplit=1)
        if len(parts) < 2:
            raise InvalidFormatError(
                "Provide category and usernames.\nFormat: /addMember [category] user1, user2, ..."
            )
        category, rest = parts

    if not category:
        raise InvalidFormatError("Category name cannot be empty.")
    usernames = parse_usernames(rest)
    if not usernames:
        raise InvalidFormatError("No valid usernames provided.")
    return category, usernames


def add_members(group: GroupRecord, category: str, usernames: list[str]) -> AddResult:
    """Add handles to a category (created on demand, name lower-cased)."""
    key = category.lower()
    members = group.member_categories.setdefault(key, [])
    result = AddResult(category=category)
    for name in usernames:
        if name in members:
            result.already.append(name)
        else:
            members.append(name)
            result.added.append(name)
    logger.info("Group %s: added %d member(s) to '%s'", group.id, len(result.added), key)
    return result


def remove_members(group: GroupRecord, usernames: list[str]) -> RemoveResult:
    """Remove handles from every category, then drop categories left empty."""
    result = RemoveResult()
    for name in usernames:
        found = False
        for category, members in group.member_categories.items():
            if name in members:
                members.remove(name)
                result.removed.append((name, category))
                found = True
        if not found:
            result.not_found.append(name)

    for category in [c for c, m in group.member_categories.items() if not m]:
        del group.member_categories[category]
        result.cleaned_categories.append(category)

    logger.info(
        "Group %s: removed %d membership(s), dropped %d empty categor(ies)",
        group.id, len(result.removed), len(result.cleaned_categories),
    )
    return result


def categories_of(group: GroupRecord, user: str) -> list[str]:
    """Categories the user belongs to, in category order."""
    handle = member_handle(user)
    return [
        category
        for category, members in group.member_categories.items()
        if user in members or handle in members
    ]


def category_label(group: GroupRecord, user: str) -> str:
    return ", ".join(categories_of(group, user)) or UNCATEGORIZED


def all_members(group: GroupRecord) -> list[str]:
    """Every configured handle once, in first-seen order."""
    seen: list[str] = []
    for members in group.member_categories.values():
        for name in members:
            if name not in seen:
                seen.append(name)
    return seen


def member_index(group: GroupRecord) -> dict[str, list[str]]:
    """Handle -> categories it appears in."""
    index: dict[str, list[str]] = {}
    for category, members in group.member_categories.items():
        for name in members:
            index.setdefault(name, []).append(category)
    return index


def _utc_date(moment: datetime) -> date:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).date()


def entries_for_day(group: GroupRecord, day: date) -> list[UpdateEntry]:
    return [entry for entry in group.stand_up_logs if _utc_date(entry.date) == day]


def submitted_on(group: GroupRecord, day: date) -> set[str]:
    """Keys and handles of everyone with an update dated `day`."""
    submitted: set[str] = set()
    for entry in entries_for_day(group, day):
        submitted.add(entry.user)
        submitted.add(member_handle(entry.user))
    return submitted


def missing_members(group: GroupRecord, day: date) -> list[str]:
    """Configured members without an update dated `day`."""
    submitted = submitted_on(group, day)
    return [name for name in all_members(group) if name not in submitted]


def group_by_category(group: GroupRecord, entries: list[UpdateEntry]) -> dict[str, list[UpdateEntry]]:
    """Bucket updates under the first category of their author."""
    grouped: dict[str, list[UpdateEntry]] = {}
    for entry in entries:
        categories = categories_of(group, entry.user)
        grouped.setdefault(categories[0] if categories else UNCATEGORIZED, []).append(entry)
    return grouped

"""
Standup Bot — Guided Update Drafting.

A private-chat dialogue that builds an update task by task:

    collecting_yesterday --/today--> collecting_today --/done--> posted
            |                               |
            +------------- /stop -----------+--> cancelled

Inside either section the user alternates between a task's "what" and its
"why". The draft lives on the user's session record, so the message router
only has to look the session up to know whether free text belongs to a
draft; there is no per-draft listener to register or tear down.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Literal

from src.core.errors import (
    EmptyGuardedSectionError,
    NoDraftError,
    PostFailedError,
    TargetGroupNotSetError,
    TooLongError,
)
from src.core.formatting import (
    MARKDOWN,
    PROMPT_WHY,
    format_next_task_prompt,
    format_task_preview,
    render_final_update,
    render_group_post,
)
from src.core.updates import SubmitResult, submit_update
from src.data.models import DraftUpdate, Task, UserSession, utcnow

if TYPE_CHECKING:
    from src.data.store import BotStore
    from src.ports.notification_port import NotificationPort
    from src.ports.spreadsheet_port import SpreadsheetPort

logger = logging.getLogger(__name__)

WHAT_MAX_CHARS = 250
WHY_MAX_CHARS = 300

_SECTION_GUARD_MESSAGES = {
    "yesterday": "Please add at least one accomplishment before continuing.",
    "today": "Please add at least one priority before finishing.",
}


@dataclass
class FinalizeResult:
    group_id: str
    submit: SubmitResult


def start_draft(session: UserSession) -> DraftUpdate:
    """Begin a fresh draft, discarding any unfinished one."""
    if not session.target_group_id:
        raise TargetGroupNotSetError()
    session.draft_update = DraftUpdate()
    return session.draft_update


def _require_draft(session: UserSession) -> DraftUpdate:
    if session.draft_update is None:
        raise NoDraftError()
    return session.draft_update


def accept_input(session: UserSession, text: str) -> Task | None:
    """Feed one free-text message into the draft.

    Returns the completed task when the message finished a what/why pair,
    otherwise None. Over-long input raises TooLongError and leaves the
    draft untouched so the same field is asked again.
    """
    draft = _require_draft(session)
    value = (text or "").strip()

    if draft.collecting == "what":
        if len(value) > WHAT_MAX_CHARS:
            raise TooLongError(len(value), WHAT_MAX_CHARS)
        draft.current_task = Task(what=value)
        draft.collecting = "why"
        draft.last_modified = utcnow()
        return None

    if len(value) > WHY_MAX_CHARS:
        raise TooLongError(len(value), WHY_MAX_CHARS)
    if draft.current_task is None:
        draft.current_task = Task(what="")
    draft.current_task.why = value
    completed = draft.current_task
    draft.tasks.append(completed.model_copy())
    draft.current_task = None
    draft.collecting = "what"
    draft.last_modified = utcnow()
    return completed


def reply_after_input(draft: DraftUpdate, completed: Task | None) -> str:
    """What the bot says after accept_input()."""
    if completed is None:
        return PROMPT_WHY
    preview = format_task_preview(draft.tasks, draft.section)
    return f"{preview}\n\n{format_next_task_prompt(draft.section, len(draft.tasks) + 1)}"


def advance_section(session: UserSession) -> Literal["today", "finalize"]:
    """Handle /today or /done.

    From yesterday, moves on to today's priorities. From today, reports
    that the draft is ready to be finalized without changing it.
    """
    draft = _require_draft(session)
    if not draft.tasks:
        raise EmptyGuardedSectionError(_SECTION_GUARD_MESSAGES[draft.section])

    if draft.state == "collecting_yesterday":
        draft.state = "collecting_today"
        draft.collecting = "what"
        draft.current_task = None
        draft.last_modified = utcnow()
        return "today"
    return "finalize"


def cancel_draft(session: UserSession) -> bool:
    """Drop the draft. Returns False when there was nothing to cancel."""
    if session.draft_update is None:
        return False
    session.draft_update = None
    return True


def user_key(display_name: str, handle: str) -> str:
    """Key a guided update is stored under, e.g. "Jane Doe (@jane)"."""
    return f"{display_name} ({handle})" if display_name else handle


async def finalize_draft(
    store: BotStore,
    notifier: NotificationPort,
    sheets: SpreadsheetPort,
    user_id: int | str,
    display_name: str,
    handle: str,
    now: datetime | None = None,
) -> FinalizeResult:
    """Post the finished draft to the target group, then record and export it.

    If posting fails the draft is kept so the user can retry /done. Once the
    post went through the draft is destroyed, whatever the export outcome.
    """
    session = store.get_session(user_id)
    draft = _require_draft(session)
    target = session.target_group_id
    if not target:
        raise TargetGroupNotSetError()

    post = render_group_post(display_name or handle, handle, draft)
    try:
        await notifier.send_message(target, post, parse_mode=MARKDOWN)
    except Exception as exc:
        logger.error("Posting draft of user %s to group %s failed: %s", user_id, target, exc)
        raise PostFailedError() from exc

    result = await submit_update(
        store,
        sheets,
        target,
        user_key(display_name, handle),
        render_final_update(draft),
        now=now or datetime.now(timezone.utc),
    )
    session.draft_update = None
    store.save()
    logger.info("Draft of user %s posted to group %s", user_id, target)
    return FinalizeResult(group_id=target, submit=result)

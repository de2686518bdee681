"""
Standup Bot — Telegram Bot.

Telegram is the only user interface. Group chats get single-shot updates,
reports, reminder and export settings, and category management. The
private chat walks a user through a guided update and posts it to the
group they selected.

Free text is routed by looking at persisted state: a private message goes
into the user's draft when one is active, and a group message answers a
pending /setReminder when its author asked for one.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Coroutine

from telegram import LinkPreviewOptions, Update
from telegram.constants import ChatMemberStatus, ChatType
from telegram.ext import (
    Application,
    ApplicationBuilder,
    ChatMemberHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from src.config import settings
from src.core.draft import (
    accept_input,
    advance_section,
    cancel_draft,
    finalize_draft,
    reply_after_input,
    start_draft,
)
from src.core.errors import (
    InvalidFormatError,
    NoDraftError,
    PermissionDeniedError,
    StandupError,
    TooLongError,
)
from src.core.formatting import (
    MARKDOWN,
    PROMPT_START_TODAY,
    PROMPT_START_YESTERDAY,
    SET_REMINDER_PROMPT,
    bold,
    format_error,
    format_success,
    group_chat_help,
    md,
    private_chat_help,
    render_member_list,
    render_missing_report,
    render_standup_report,
)
from src.core.members import (
    add_members,
    all_members,
    entries_for_day,
    group_by_category,
    member_index,
    missing_members,
    parse_add_member_args,
    parse_usernames,
    remove_members,
)
from src.core.time_conversion import (
    convert_to_utc,
    format_time_of_day,
    parse_hhmm,
    parse_reminder_request,
)
from src.core.updates import submit_update

if TYPE_CHECKING:
    from telegram import User

    from src.data.models import GroupRecord
    from src.data.store import BotStore
    from src.ports.notification_port import NotificationPort
    from src.ports.spreadsheet_port import SpreadsheetPort

logger = logging.getLogger(__name__)

_GROUP_TYPES = (ChatType.GROUP, ChatType.SUPERGROUP)
_ADMIN_STATUSES = (ChatMemberStatus.OWNER, ChatMemberStatus.ADMINISTRATOR)
_MEMBER_STATUSES = (*_ADMIN_STATUSES, ChatMemberStatus.MEMBER)
_SPREADSHEET_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")

_GENERIC_FAILURE = "Something went wrong. Please try again later."

# New plain-text messages only; edits never feed a draft or a pending reminder
PLAIN_TEXT = filters.TEXT & ~filters.COMMAND & filters.UpdateType.MESSAGE

Handler = Callable[..., Coroutine[Any, Any, None]]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _store(context: ContextTypes.DEFAULT_TYPE) -> BotStore:
    return context.bot_data["store"]


def _is_group(update: Update) -> bool:
    chat = update.effective_chat
    return chat is not None and chat.type in _GROUP_TYPES


def _command_payload(update: Update) -> str:
    """Everything after the command word, line breaks preserved."""
    parts = (update.effective_message.text or "").split(None, 1)
    return parts[1].strip() if len(parts) > 1 else ""


def _user_handle(user: User) -> str:
    return f"@{user.username}" if user.username else user.full_name


def _member_key(user: User) -> str:
    """Key single-shot updates are stored under: the bare username."""
    return user.username or user.full_name


async def _reply(update: Update, text: str, markdown: bool = False) -> None:
    await update.effective_message.reply_text(
        text,
        parse_mode=MARKDOWN if markdown else None,
        link_preview_options=LinkPreviewOptions(is_disabled=True),
    )


# ---------------------------------------------------------------------------
# Decorators
# ---------------------------------------------------------------------------


def reports_errors(func: Handler) -> Handler:
    """Turn failures into a reply instead of letting them escape the handler."""

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        try:
            return await func(update, context)
        except StandupError as exc:
            await _reply(update, format_error(exc.user_message))
        except Exception as exc:
            logger.error("%s failed: %s", func.__name__, exc)
            await _reply(update, format_error(_GENERIC_FAILURE))

    return wrapper


def group_only(func: Handler) -> Handler:
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not _is_group(update):
            await _reply(update, format_error("This command can only be used in group chats."))
            return
        return await func(update, context)

    return wrapper


def private_only(func: Handler) -> Handler:
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if _is_group(update):
            await _reply(
                update,
                format_error("This command can only be used in private chats with the bot."),
            )
            return
        return await func(update, context)

    return wrapper


def group_admin_only(func: Handler) -> Handler:
    """Reject callers who are not creator or administrator of the group.

    Membership is asked from Telegram on every call; nothing is cached.
    """

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        notifier: NotificationPort = context.bot_data["notifier"]
        user = update.effective_user
        status = None
        if user is not None:
            status = await notifier.get_member_status(update.effective_chat.id, user.id)
        if status not in _ADMIN_STATUSES:
            uid = user.id if user else "unknown"
            logger.warning("Non-admin user_id=%s tried %s", uid, func.__name__)
            await _reply(update, format_error(PermissionDeniedError().user_message))
            return
        return await func(update, context)

    return wrapper


def bot_admin_only(func: Handler) -> Handler:
    """Silently ignore users not listed in BOT_ADMIN_IDS."""

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        if user is None or user.id not in settings.BOT_ADMIN_IDS:
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return
        return await func(update, context)

    return wrapper


# ---------------------------------------------------------------------------
# Chat events
# ---------------------------------------------------------------------------


async def track_group_activity(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Refresh the group's name and last activity on every group message."""
    if not _is_group(update):
        return
    chat = update.effective_chat
    _store(context).touch_group(chat.id, chat.title)


async def handle_new_members(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Greet the group when the bot itself is added."""
    bot_id = context.bot.id
    if not any(member.id == bot_id for member in update.effective_message.new_chat_members):
        return
    chat = update.effective_chat
    _store(context).init_group(chat.id, chat.title)
    logger.info("Added to group %s (%s)", chat.id, chat.title)
    await _reply(update, group_chat_help(context.bot.username, welcome=True), markdown=True)


async def handle_my_chat_member(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Forget a group as soon as the bot leaves or is removed from it."""
    change = update.my_chat_member
    if change is None or change.chat.type not in _GROUP_TYPES:
        return
    if change.new_chat_member.status in (ChatMemberStatus.LEFT, ChatMemberStatus.BANNED):
        logger.info("Bot removed from group %s, purging its record", change.chat.id)
        _store(context).delete_group(change.chat.id)


# ---------------------------------------------------------------------------
# Help
# ---------------------------------------------------------------------------


async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — context-sensitive command list."""
    if _is_group(update):
        await _reply(update, group_chat_help(context.bot.username), markdown=True)
    else:
        await _reply(update, private_chat_help(), markdown=True)


# ---------------------------------------------------------------------------
# Single-shot updates (group)
# ---------------------------------------------------------------------------


@group_only
@reports_errors
async def cmd_my_update(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /myUpdate <text> and /up <text>."""
    store = _store(context)
    sheets: SpreadsheetPort = context.bot_data["sheets"]

    result = await submit_update(
        store, sheets, update.effective_chat.id, _member_key(update.effective_user),
        _command_payload(update),
    )

    verb = "updated" if result.status == "replaced" else "recorded"
    msg = format_success(f"Your standup update has been {verb}!")
    if result.export_error is not None:
        msg += f"\n\n⚠️ {result.export_error.user_message}"
    await _reply(update, msg)


# ---------------------------------------------------------------------------
# Group selection (private)
# ---------------------------------------------------------------------------


async def _groups_of_user(
    store: BotStore, notifier: NotificationPort, user_id: int,
) -> list[GroupRecord]:
    """Known groups the user currently belongs to, in a stable order."""
    groups = []
    for group in store.list_named_groups():
        status = await notifier.get_member_status(group.id, user_id)
        if status in _MEMBER_STATUSES:
            groups.append(group)
    return groups


@private_only
@reports_errors
async def cmd_show_groups(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /showGroups — numbered list of the user's groups."""
    groups = await _groups_of_user(
        _store(context), context.bot_data["notifier"], update.effective_user.id,
    )
    if not groups:
        await _reply(
            update,
            "You are not a member of any configured group chats.\n\n"
            "Please:\n"
            "1. Join a group where I am present\n"
            "2. Make sure I am an admin in that group\n"
            "3. Use /help in the group to set it up",
        )
        return

    lines = [md("Here are the groups where you are a member:"), ""]
    for number, group in enumerate(groups, start=1):
        lines.append(f"{bold('Group:')} {number}")
        lines.append(f"{bold('Name:')} {md(group.metadata.group_name)}")
        lines.append(f"{bold('ID:')} `{md(group.id)}`")
        lines.append("")
    lines.append(md('Use /setGC <number> to select a group (e.g., "/setGC 1")'))
    await _reply(update, "\n".join(lines), markdown=True)


@private_only
@reports_errors
async def cmd_set_gc(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /setGC <n> — choose the group drafts are posted to."""
    if not context.args:
        raise InvalidFormatError(
            "Please provide a group number. Use /showGroups to see the list of available groups."
        )
    try:
        number = int(context.args[0])
    except ValueError:
        number = 0

    store = _store(context)
    user_id = update.effective_user.id
    groups = await _groups_of_user(store, context.bot_data["notifier"], user_id)
    if not 1 <= number <= len(groups):
        raise InvalidFormatError(
            "Invalid group number. Use /showGroups to see the list of available groups."
        )

    group = groups[number - 1]
    store.set_target_group(user_id, group.id)
    await _reply(
        update,
        format_success(
            f'Group "{group.metadata.group_name}" configured successfully!\n\n'
            "You can now use /start to begin drafting your standup update."
        ),
    )


@private_only
@bot_admin_only
async def cmd_show_all_groups(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /showAllGroups — every known group, for bot operators."""
    groups = _store(context).list_named_groups()
    if not groups:
        await _reply(update, "No groups found in database.")
        return

    lines = [bold("All Configured Groups:"), ""]
    for group in groups:
        lines.append(f"{bold('Name:')} {md(group.metadata.group_name)}")
        lines.append(f"{bold('ID:')} `{md(group.id)}`")
        lines.append("")
    await _reply(update, "\n".join(lines).rstrip(), markdown=True)


# ---------------------------------------------------------------------------
# Guided drafting (private)
# ---------------------------------------------------------------------------


@private_only
@reports_errors
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — begin a new draft."""
    store = _store(context)
    start_draft(store.get_session(update.effective_user.id))
    store.save()
    await _reply(update, PROMPT_START_YESTERDAY)


@private_only
@reports_errors
async def cmd_next_section(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /today and /done — close the current section.

    Closing yesterday moves on to today; closing today posts the update.
    """
    store = _store(context)
    user = update.effective_user
    if advance_section(store.get_session(user.id)) == "today":
        store.save()
        await _reply(update, PROMPT_START_TODAY)
        return

    result = await finalize_draft(
        store,
        context.bot_data["notifier"],
        context.bot_data["sheets"],
        user.id,
        user.full_name,
        _user_handle(user),
    )
    if result.submit.export_error is None:
        await _reply(
            update,
            format_success("Your update has been posted to the group chat and exported successfully!"),
        )
    else:
        await _reply(
            update,
            format_error(
                "Your update was posted but failed to export to the spreadsheet.\n"
                + result.submit.export_error.user_message
            ),
        )


@private_only
@reports_errors
async def cmd_stop(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /stop — abandon the draft."""
    store = _store(context)
    if not cancel_draft(store.get_session(update.effective_user.id)):
        raise NoDraftError("No update preparation in progress.")
    store.save()
    await _reply(update, format_success("Update preparation cancelled. Use /start to begin a new update."))


async def _handle_draft_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    store = _store(context)
    session = store.get_session(update.effective_user.id)
    if session.draft_update is None:
        await _reply(update, "Use /start to begin your standup update, or /help to see all commands.")
        return

    try:
        completed = accept_input(session, update.message.text)
    except TooLongError as exc:
        await _reply(update, format_error(exc.user_message))
        return
    store.save()
    await _reply(update, reply_after_input(session.draft_update, completed))


# ---------------------------------------------------------------------------
# Reports (group)
# ---------------------------------------------------------------------------


def _today() -> datetime:
    return datetime.now(timezone.utc)


@group_only
@reports_errors
async def cmd_show_standup(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /showStandup — today's updates grouped by category."""
    group = _store(context).init_group(update.effective_chat.id, update.effective_chat.title)
    day = _today().date()
    members = all_members(group)
    pending = missing_members(group, day)
    report = render_standup_report(
        group_by_category(group, entries_for_day(group, day)),
        pending,
        total_members=len(members),
        submitted=len(members) - len(pending),
    )
    await _reply(update, report, markdown=True)


@group_only
@reports_errors
async def cmd_missing(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /missing — configured members without an update today."""
    group = _store(context).init_group(update.effective_chat.id, update.effective_chat.title)
    index = member_index(group)
    missing = missing_members(group, _today().date())
    report = render_missing_report(
        {name: index[name] for name in missing},
        submitted=len(index) - len(missing),
        total_members=len(index),
    )
    await _reply(update, report, markdown=True)


# ---------------------------------------------------------------------------
# Reminder settings (group)
# ---------------------------------------------------------------------------


@group_only
@reports_errors
async def cmd_set_reminder(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /setReminder — ask the caller for their clock and the wanted time."""
    store = _store(context)
    group = store.init_group(update.effective_chat.id, update.effective_chat.title)
    group.state.awaiting_reminder_from = update.effective_user.id
    store.save()
    await _reply(update, SET_REMINDER_PROMPT)


async def _handle_reminder_reply(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    store = _store(context)
    group = store.get_group(update.effective_chat.id)
    if group is None or group.state.awaiting_reminder_from != update.effective_user.id:
        return

    # One reply only, valid or not
    group.state.awaiting_reminder_from = None
    try:
        current, desired = parse_reminder_request(update.message.text)
        utc = convert_to_utc(desired, current)
    except InvalidFormatError as exc:
        store.save()
        await _reply(update, format_error(exc.user_message))
        return

    group.settings.reminder_time_utc = utc.as_hhmm()
    group.settings.is_active = True
    store.save()
    logger.info("Group %s reminder set to %s UTC", group.id, group.settings.reminder_time_utc)
    await _reply(
        update,
        format_success(
            "Reminder set!\n"
            f"• Your local time: {desired}\n"
            f"• UTC time: {format_time_of_day(utc.hour, utc.minute, with_period=True)}\n"
            "• Status: Reminders are now active"
        ),
    )


@group_only
@reports_errors
async def cmd_toggle_reminder(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /toggleReminder — flip reminders on or off."""
    store = _store(context)
    group = store.init_group(update.effective_chat.id, update.effective_chat.title)
    group.settings.is_active = not group.settings.is_active
    store.save()
    status = "✅ Active" if group.settings.is_active else "❌ Inactive"
    await _reply(
        update,
        format_success(
            f"Reminders are now {status}\n"
            f"Current reminder time: {group.settings.reminder_time_utc} UTC"
        ),
    )


@group_only
@reports_errors
async def cmd_show_reminder(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /showReminder — current reminder settings."""
    group = _store(context).init_group(update.effective_chat.id, update.effective_chat.title)
    reminder = parse_hhmm(group.settings.reminder_time_utc)
    status = "✅ Active" if group.settings.is_active else "❌ Inactive"
    await _reply(
        update,
        "📅 Standup Reminder Settings\n\n"
        f"Status: {status}\n"
        f"UTC Time: {reminder.as_hhmm()} "
        f"({format_time_of_day(reminder.hour, reminder.minute, with_period=True)})\n\n"
        "Use /setReminder to change this time.",
    )


# ---------------------------------------------------------------------------
# Member management (group, admin)
# ---------------------------------------------------------------------------


@group_only
@group_admin_only
@reports_errors
async def cmd_manage_members(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /manageMembers — categories and their members."""
    group = _store(context).init_group(update.effective_chat.id, update.effective_chat.title)
    await _reply(update, render_member_list(group.member_categories), markdown=True)


@group_only
@group_admin_only
@reports_errors
async def cmd_add_member(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addMember <category> <user1, user2, ...>."""
    category, usernames = parse_add_member_args(_command_payload(update))
    store = _store(context)
    group = store.init_group(update.effective_chat.id, update.effective_chat.title)
    result = add_members(group, category, usernames)
    store.save()

    lines = []
    if result.added:
        lines.append(format_success(
            f'Added to category "{result.category}": '
            + ", ".join(f"@{n}" for n in result.added)
        ))
    if result.already:
        lines.append("Already in category: " + ", ".join(f"@{n}" for n in result.already))
    await _reply(update, "\n\n".join(lines))


@group_only
@group_admin_only
@reports_errors
async def cmd_remove_member(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /removeMember <user1, user2, ...>."""
    usernames = parse_usernames(_command_payload(update))
    if not usernames:
        raise InvalidFormatError(
            "Provide usernames to remove.\nFormat: /removeMember user1, user2, ..."
        )
    store = _store(context)
    group = store.init_group(update.effective_chat.id, update.effective_chat.title)
    result = remove_members(group, usernames)
    store.save()

    lines = []
    if result.removed:
        lines.append(format_success("Removed:\n" + "\n".join(
            f"• @{name} from {category}" for name, category in result.removed
        )))
    if result.not_found:
        lines.append("Not found in any category: " + ", ".join(f"@{n}" for n in result.not_found))
    if result.cleaned_categories:
        lines.append("Removed empty categories: " + ", ".join(result.cleaned_categories))
    await _reply(update, "\n\n".join(lines))


# ---------------------------------------------------------------------------
# Export settings (group, admin)
# ---------------------------------------------------------------------------


@group_only
@group_admin_only
@reports_errors
async def cmd_set_spreadsheet(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /setSpreadsheet <id>."""
    from src.integrations.google_auth import service_account_email

    spreadsheet_id = _command_payload(update)
    if not _SPREADSHEET_ID_RE.match(spreadsheet_id):
        raise InvalidFormatError(
            "Invalid spreadsheet ID format.\n\n"
            "The ID should be found in your spreadsheet's URL:\n"
            "https://docs.google.com/spreadsheets/d/<spreadsheet_id>/edit"
        )

    store = _store(context)
    group = store.init_group(update.effective_chat.id, update.effective_chat.title)
    group.settings.spreadsheet_id = spreadsheet_id
    store.save()
    logger.info("Group %s now exports to spreadsheet %s", group.id, spreadsheet_id)

    email = await asyncio.to_thread(service_account_email)
    lines = [md("✅ Spreadsheet ID updated successfully!")]
    if email:
        lines += [
            "",
            f"{bold('Important:')} {md('Share your spreadsheet with our service account:')}",
            f"`{md(email)}`",
            "",
            md("Give it Editor access so it can create and update sheets."),
        ]
    await _reply(update, "\n".join(lines), markdown=True)


@group_only
@group_admin_only
@reports_errors
async def cmd_show_spreadsheet(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /showSpreadsheet."""
    group = _store(context).get_group(update.effective_chat.id)
    if group is None or not group.settings.spreadsheet_id:
        await _reply(
            update,
            "📝 No spreadsheet configured yet.\n\n"
            "Use /setSpreadsheet <spreadsheet_id> to set one up.",
        )
        return
    await _reply(
        update,
        f"{bold('📊 Current Spreadsheet Settings')}\n\n"
        f"ID: `{md(group.settings.spreadsheet_id)}`\n\n"
        f"{md('To change this, use: /setSpreadsheet <new_spreadsheet_id>')}",
        markdown=True,
    )


@group_only
@group_admin_only
@reports_errors
async def cmd_remove_spreadsheet(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /removeSpreadsheet — stop exporting this group's updates."""
    store = _store(context)
    group = store.get_group(update.effective_chat.id)
    if group is None or not group.settings.spreadsheet_id:
        raise InvalidFormatError("No spreadsheet currently configured.")

    group.settings.spreadsheet_id = None
    store.save()
    await _reply(
        update,
        format_success(
            "Spreadsheet integration removed.\n\n"
            "Updates will no longer be exported to Google Sheets.\n"
            "Use /setSpreadsheet to set up a new spreadsheet."
        ),
    )


# ---------------------------------------------------------------------------
# Message router
# ---------------------------------------------------------------------------


@reports_errors
async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Route plain text to the draft (private) or a pending /setReminder (group)."""
    if update.effective_user is None or update.message is None:
        return
    # Anything slash-prefixed is command-like, even without a command entity
    if (update.message.text or "").startswith("/"):
        return
    if _is_group(update):
        await _handle_reminder_reply(update, context)
    else:
        await _handle_draft_text(update, context)


async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.error("Unhandled error while processing %s", update, exc_info=context.error)


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------

_COMMANDS: list[tuple[tuple[str, ...], Handler]] = [
    (("help",), cmd_help),
    (("myupdate", "up"), cmd_my_update),
    (("showgroups",), cmd_show_groups),
    (("setgc",), cmd_set_gc),
    (("showallgroups",), cmd_show_all_groups),
    (("start",), cmd_start),
    (("today", "done"), cmd_next_section),
    (("stop",), cmd_stop),
    (("showstandup",), cmd_show_standup),
    (("missing",), cmd_missing),
    (("setreminder",), cmd_set_reminder),
    (("togglereminder",), cmd_toggle_reminder),
    (("showreminder",), cmd_show_reminder),
    (("managemembers",), cmd_manage_members),
    (("addmember",), cmd_add_member),
    (("removemember",), cmd_remove_member),
    (("setspreadsheet",), cmd_set_spreadsheet),
    (("showspreadsheet",), cmd_show_spreadsheet),
    (("removespreadsheet",), cmd_remove_spreadsheet),
]


async def _post_init(app: Application) -> None:
    from src.health import run_health_server

    app.bot_data["health_task"] = asyncio.create_task(run_health_server(settings.PORT))


async def _post_shutdown(app: Application) -> None:
    task = app.bot_data.pop("health_task", None)
    if task is not None:
        task.cancel()


def build_app(
    store: BotStore | None = None,
    sheets: SpreadsheetPort | None = None,
    notifier: NotificationPort | None = None,
) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        store: Group and session store. Defaults to the JSON file at DATA_PATH.
        sheets: Spreadsheet port implementation. Defaults to GoogleSheetsAdapter.
        notifier: Notification port implementation. Defaults to TelegramNotifier
                  (created from the bot instance after app is built).
    """
    app = (
        ApplicationBuilder()
        .token(settings.TELEGRAM_BOT_TOKEN)
        .post_init(_post_init)
        .post_shutdown(_post_shutdown)
        .build()
    )

    if store is None:
        from src.data.store import BotStore, JsonFileStorage
        store = BotStore(JsonFileStorage(), settings.GOOGLE_SPREADSHEET_ID)

    if sheets is None:
        from src.adapters.google_sheets import GoogleSheetsAdapter
        sheets = GoogleSheetsAdapter()

    if notifier is None:
        from src.adapters.telegram_notifier import TelegramNotifier
        notifier = TelegramNotifier(app.bot)

    # Store ports in bot_data for handler access
    app.bot_data["store"] = store
    app.bot_data["sheets"] = sheets
    app.bot_data["notifier"] = notifier

    # Metadata tracking runs before, and independently of, every other handler
    app.add_handler(MessageHandler(filters.ChatType.GROUPS, track_group_activity), group=-1)

    for names, callback in _COMMANDS:
        app.add_handler(CommandHandler(list(names), callback))

    app.add_handler(MessageHandler(filters.StatusUpdate.NEW_CHAT_MEMBERS, handle_new_members))
    app.add_handler(ChatMemberHandler(handle_my_chat_member, ChatMemberHandler.MY_CHAT_MEMBER))
    app.add_handler(MessageHandler(PLAIN_TEXT, handle_text))
    app.add_error_handler(on_error)

    _setup_reminders(app, store, notifier)

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def _setup_reminders(app: Application, store: BotStore, notifier: NotificationPort) -> None:
    """Register the reminder tick, aligned to the start of each minute."""
    from src.core.scheduler import POLL_INTERVAL, run_reminder_tick

    async def _reminder_job_callback(context: ContextTypes.DEFAULT_TYPE) -> None:
        await run_reminder_tick(store, notifier)

    now = datetime.now(timezone.utc)
    app.job_queue.run_repeating(
        _reminder_job_callback,
        interval=POLL_INTERVAL,
        first=60 - now.second,
        name="standup_reminders",
    )
    logger.info("Reminder tick scheduled every %ds", POLL_INTERVAL.seconds)


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    # basicConfig is a no-op once main.py has configured logging
    logging.getLogger().setLevel(settings.LOG_LEVEL.upper())
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logger.info("Starting Standup Bot...")
    app = build_app()
    app.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()

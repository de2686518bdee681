"""Message rendering — pure business logic.

Builds every text the bot sends. Rich messages use Telegram MarkdownV2:
dynamic content always goes through md() so user-typed characters such as
"_" or "." never break the markup. Short confirmations are plain text.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from telegram.constants import ParseMode
from telegram.helpers import escape_markdown

if TYPE_CHECKING:
    from src.data.models import DraftUpdate, Task, UpdateEntry

MARKDOWN = ParseMode.MARKDOWN_V2

_SECTION_LABELS = {"yesterday": "accomplishment", "today": "prio"}


def md(text: str | None) -> str:
    """Escape text for MarkdownV2."""
    return escape_markdown(text or "", version=2)


def bold(text: str) -> str:
    return f"*{md(text)}*"


def format_success(message: str) -> str:
    return f"✅ {message}"


def format_error(message: str) -> str:
    return f"❌ {message}"


def format_username(username: str) -> str:
    """"alice" -> "@alice". Display names ("Jane Doe (@jane)") pass through."""
    if not username:
        return ""
    if username.startswith("@") or " " in username:
        return username
    return f"@{username}"


# ---------------------------------------------------------------------------
# Draft rendering
# ---------------------------------------------------------------------------

PROMPT_START_YESTERDAY = (
    "Let's prepare your standup update.\n\n"
    "First, tell me what you accomplished yesterday.\n\n"
    "What was your biggest accomplishment 1:"
)

PROMPT_START_TODAY = "Great! Now let's talk about your priorities for today.\n\nWhat is prio 1:"

PROMPT_WHY = "Why?"


def format_task(task: Task, number: int, section: str) -> str:
    label = _SECTION_LABELS[section]
    return f"{label} {number}:\nwhat: {task.what}\nwhy: {task.why}"


def format_task_preview(tasks: list[Task], section: str) -> str:
    """Running list of the tasks collected so far in one section."""
    return "\n\n".join(format_task(t, i, section) for i, t in enumerate(tasks, start=1))


def format_next_task_prompt(section: str, next_number: int) -> str:
    if section == "yesterday":
        return (
            "Write /today to finish yesterday's accomplishments and start today's "
            f"priorities. Otherwise tell me, what was yesterday's accomplishment {next_number}?"
        )
    return f"Write /done to finish or what is prio {next_number}?"


def render_final_update(draft: DraftUpdate, markdown: bool = False) -> str:
    """Both sections of a finished draft.

    The plain variant is what gets stored and exported; the markdown variant
    is what gets posted to the group.
    """
    blocks: list[str] = []
    for section, title in (("yesterday", "Yesterday:"), ("today", "Today:")):
        tasks = getattr(draft.content, section)
        body = "\n\n".join(format_task(t, i, section) for i, t in enumerate(tasks, start=1))
        if markdown:
            blocks.append(f"{bold(title)}\n{md(body)}")
        else:
            blocks.append(f"{title}\n{body}")
    return "\n\n".join(blocks)


def render_group_post(display_name: str, handle: str, draft: DraftUpdate) -> str:
    """The MarkdownV2 message posted to the target group."""
    return f"{bold(display_name)} \\({md(handle)}\\):\n\n{render_final_update(draft, markdown=True)}"


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def render_standup_report(
    updates_by_category: dict[str, list[UpdateEntry]],
    pending: list[str],
    total_members: int,
    submitted: int,
) -> str:
    """Today's updates grouped by category, in MarkdownV2."""
    if not updates_by_category:
        return md("No standup updates for today yet.\n\nUse /myUpdate or /up to share yours.")

    lines = [bold("Today's Standup Updates"), ""]
    for category, updates in updates_by_category.items():
        lines.append(f"{bold(category)}:")
        for upd in updates:
            lines.append(f"• {md(format_username(upd.user))}:")
            lines.extend(f"  {md(line)}" for line in upd.text.splitlines())
            lines.append("")

    if total_members > 0:
        if pending:
            lines.append(bold("Pending Updates From:"))
            lines.extend(f"• {md(format_username(m))}" for m in pending)
            lines.append("")
        lines.append(f"{bold('Summary:')} {md(f'{submitted}/{total_members} updates submitted')}")
    return "\n".join(lines).rstrip()


def render_missing_report(
    missing: dict[str, list[str]],
    submitted: int,
    total_members: int,
) -> str:
    """Members without an update today and their categories, in MarkdownV2."""
    if total_members == 0:
        return md(
            "No team members configured.\n"
            "Use /addMember [category] [username] to add members."
        )
    summary = f"{bold('Summary:')} {md(f'{submitted}/{total_members} updates submitted')}"
    if not missing:
        return f"✅ {bold('All team members have submitted their updates!')}\n{summary}"

    lines = [bold("Missing Standup Updates"), ""]
    for member, categories in missing.items():
        lines.append(f"• {md(format_username(member))}")
        lines.append(f"  _{md('Categories: ' + ', '.join(categories))}_")
        lines.append("")
    lines.append(summary)
    return "\n".join(lines)


def render_follow_up(missing: Iterable[str]) -> str:
    """Scheduled nudge listing members who haven't posted yet, in MarkdownV2."""
    lines = [
        bold("⚠️ Missing Standup Updates"),
        "",
        md("The following members haven't submitted updates yet:"),
    ]
    lines.extend(f"• {md(format_username(m))}" for m in missing)
    lines.append("")
    lines.append(md("Use /myUpdate to submit your standup."))
    return "\n".join(lines)


def render_member_list(categories: dict[str, list[str]]) -> str:
    """Categories and their members plus usage hints, in MarkdownV2."""
    lines = [bold("Team Members by Category"), ""]
    if not categories:
        lines.append(md("No members set in any category"))
        lines.append("")
    for category, members in categories.items():
        lines.append(f"{bold(category)}:")
        if not members:
            lines.append(md("• No members"))
        lines.extend(f"• {md(format_username(m))}" for m in members)
        lines.append("")
    lines.extend([
        md("To add members:"),
        f"`{md('/addMember [category] [username1], [username2], ...')}`",
        "",
        md("To remove members:"),
        f"`{md('/removeMember [username1], [username2], ...')}`",
        "",
        md("Example: /addMember developer john_doe"),
    ])
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Reminder templates (plain text)
# ---------------------------------------------------------------------------

REMINDER_MONDAY = (
    "🕐 Good morning! It's standup time.\n\n"
    "Share your update using /myUpdate:\n"
    "/myUpdate\nFriday: <stuff>\nWeekend: <stuff>\nToday: <stuff>\nBlockers: <stuff>"
)

REMINDER_WEEKDAY = (
    "🕐 Good morning! It's standup time.\n\n"
    "Share your update using /myUpdate:\n"
    "/myUpdate Yesterday: <stuff>\nToday: <stuff>\nBlockers: <stuff>"
)

SET_REMINDER_PROMPT = (
    "Please provide current time and desired reminder time in this format:\n\n"
    "Now: 2:55 pm\nSet: 10:25 am\n\n(Then press Enter)"
)


# ---------------------------------------------------------------------------
# Help
# ---------------------------------------------------------------------------


def _help_section(title: str, lines: list[str]) -> str:
    return "\n".join([bold(title), *(md(line) for line in lines)])


def private_chat_help() -> str:
    """Help for the one-to-one chat with the bot, in MarkdownV2."""
    return "\n\n".join([
        bold("🤖 Standup Bot Private Chat Commands"),
        _help_section("Setup:", [
            "• /showGroups - Show list of available group chats",
            "• /setGC <number> - Set which group chat your updates should go to",
        ]),
        _help_section("Creating Updates:", [
            "• /start - Begin creating your standup update",
            "• /today - Finish yesterday's tasks and move to today's",
            "• /done - Finish and send your update to the group",
            "• /stop - Cancel update preparation",
        ]),
        _help_section("How it works:", [
            "1. Use /showGroups to see available groups",
            "2. Use /setGC with the group number to select your target group",
            "3. Use /start to begin your update",
            "4. Add your yesterday's accomplishments one by one",
            "5. Use /today when done with yesterday's tasks",
            "6. Add your today's priorities one by one",
            "7. Use /done to finish and send your update",
        ]),
        _help_section("Format for Tasks:", [
            "For each task, you'll enter:",
            "1. What you did/will do",
            "2. Why you did/will do it",
            "The bot will automatically format and number your tasks.",
        ]),
    ])


def group_chat_help(bot_username: str | None, welcome: bool = False) -> str:
    """Help for group chats, in MarkdownV2. The welcome variant greets the group."""
    if welcome:
        intro = md("I'll help you manage daily standups.")
        header = f"{bold('👋 Thanks for adding me to the group!')}\n\n{intro}"
    else:
        header = bold("🤖 Standup Bot Group Commands")
    private_hint = (
        f"To create updates, chat with @{bot_username} privately."
        if bot_username else "To create updates, chat with me privately."
    )
    parts = [
        header,
        f"{bold('⚠️ IMPORTANT:')}\n{md('Make the bot ADMIN to ensure all features work.')}",
        _help_section("Update Commands:", [
            "• /myUpdate <text> or /up <text> - Share your update",
            "• /showStandup - Show today's standup updates",
            "• /missing - Show who hasn't submitted updates",
        ]),
        _help_section("Reminder Settings:", [
            "• /setReminder - Set daily standup reminder time",
            "• /showReminder - Show reminder settings",
            "• /toggleReminder - Toggle reminders on/off",
        ]),
        _help_section("Export Settings (admin only):", [
            "• /setSpreadsheet <id> - Set the Google Spreadsheet ID",
            "• /showSpreadsheet - Show the current spreadsheet",
            "• /removeSpreadsheet - Stop exporting updates",
        ]),
        _help_section("Member Management (admin only):", [
            "• /manageMembers - Show all members and categories",
            "• /addMember [category] [username] - Add member to category",
            "• /removeMember [username] - Remove member from all categories",
        ]),
        _help_section("Creating Updates:", [
            private_hint,
            "The bot will guide you through creating well-formatted updates.",
            "You can still use /up with your text. Example:",
            "/up Yesterday: <your update>",
            "Today: <your update>",
            "Blockers: None",
        ]),
        _help_section("Notes:", [
            "• The latest update overwrites previous updates",
            "• Reminders are converted to UTC internally",
            "• Member categories help organize standup reports",
        ]),
    ]
    if welcome:
        parts.append(md("Type /help anytime to see this message again."))
    return "\n\n".join(parts)

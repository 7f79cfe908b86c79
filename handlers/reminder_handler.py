# handlers/reminder_handler.py
import logging

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from services.storage_service import LifeDeskStore, StorageError
from utils.telegram_utils import build_keyboard, md, resolve_user_offset, send_or_edit, user_id_of
from utils.time_parsing_utils import format_timestamp, parse_time_expression, user_now

logger = logging.getLogger(__name__)

UPCOMING_REMINDERS_LIMIT = 10

SOURCE_EMOJI = {"note": "📝", "todo": "✅", "manual": "⏰"}

REMIND_USAGE_TEXT = (
    "⏰ *Set a Reminder*\n\n"
    "Usage: `/remind <what> <when>`\n\n"
    "Examples:\n"
    "• `/remind call mom in 2 hours`\n"
    "• `/remind dentist tomorrow 8am`\n"
    "• `/remind stand-up at 9:30`\n\n"
    "Without a recognizable time the reminder is set for one hour from now."
)

REMINDERS_BUTTONS = [
    [("🔄 Refresh", "show_reminders"), ("🏠 Home", "show_home")],
]


async def show_reminders(update: Update, context: ContextTypes.DEFAULT_TYPE, store: LifeDeskStore) -> None:
    user_id = user_id_of(update)
    try:
        reminders = store.get_upcoming_reminders(user_id, limit=UPCOMING_REMINDERS_LIMIT)
    except StorageError:
        await send_or_edit(update, "❌ I couldn't load your reminders right now. Please try again.", build_keyboard(REMINDERS_BUTTONS))
        return

    if not reminders:
        text = "⏰ *Upcoming Reminders*\n\nNothing scheduled. Add \"Reminder at ...\" to a note or todo, or use /remind."
    else:
        offset = resolve_user_offset(store, user_id)
        lines = ["⏰ *Upcoming Reminders*", ""]
        for reminder in reminders:
            emoji = SOURCE_EMOJI.get(reminder.source_type, "⏰")
            lines.append(f"{emoji} {md(reminder.content)}\n   🕒 {format_timestamp(reminder.reminder_time, offset)}")
        text = "\n".join(lines)
    await send_or_edit(update, text, build_keyboard(REMINDERS_BUTTONS))


async def remind_command(update: Update, context: ContextTypes.DEFAULT_TYPE, store: LifeDeskStore) -> None:
    """/remind <text>: the time phrase may appear anywhere; none found means one hour from now."""
    user_id = user_id_of(update)
    text = " ".join(context.args).strip() if context.args else ""
    if not text:
        await update.message.reply_text(REMIND_USAGE_TEXT, parse_mode=ParseMode.MARKDOWN)
        return

    offset = resolve_user_offset(store, user_id)
    parsed = parse_time_expression(text, user_now(offset), strict=False)
    content = parsed.remainder_text or text

    try:
        store.create_reminder(user_id, content, parsed.absolute_timestamp, "manual")
    except StorageError:
        await update.message.reply_text("❌ Sorry, I couldn't save your reminder. Please try again.")
        return

    await update.message.reply_text(
        f"⏰ *Reminder set!*\n\n{md(content)}\n🕒 {format_timestamp(parsed.absolute_timestamp, offset)}",
        parse_mode=ParseMode.MARKDOWN,
        reply_markup=build_keyboard(REMINDERS_BUTTONS),
    )

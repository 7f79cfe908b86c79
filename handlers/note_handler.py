# handlers/note_handler.py
import logging

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from services.storage_service import LifeDeskStore, StorageError
from utils.categorization_utils import categorize_note, note_emoji
from utils.telegram_utils import build_keyboard, md, resolve_user_offset, send_or_edit, user_id_of
from utils.time_parsing_utils import format_timestamp, parse_time_expression, user_now

logger = logging.getLogger(__name__)

RECENT_NOTES_LIMIT = 5
NOTE_PREVIEW_LENGTH = 80

NOTE_PROMPT = (
    "📝 *Create New Note*\n\n"
    "Type your note and send it.\n\n"
    "💡 Add a reminder by ending it with \"Reminder at ...\", for example:\n"
    "• `Call the bank Reminder at tomorrow 9am`\n"
    "• `Book review Reminder at 12/2/2026 7pm`\n"
    "• `Stretch Reminder at in 2 hours`"
)

NOTES_BUTTONS = [
    [("➕ Create New Note", "create_note"), ("🔄 Refresh", "refresh_notes")],
    [("🏠 Home", "show_home")],
]
NOTE_SAVED_BUTTONS = [
    [("➕ Add Another", "create_note"), ("📝 View Notes", "refresh_notes")],
    [("🏠 Home", "show_home")],
]


def _preview(text: str) -> str:
    return text if len(text) <= NOTE_PREVIEW_LENGTH else text[:NOTE_PREVIEW_LENGTH - 3] + "..."


async def show_notes(update: Update, context: ContextTypes.DEFAULT_TYPE, store: LifeDeskStore) -> None:
    user_id = user_id_of(update)
    try:
        notes = store.get_recent_notes(user_id, limit=RECENT_NOTES_LIMIT)
    except StorageError:
        await send_or_edit(update, "❌ I couldn't load your notes right now. Please try again.", build_keyboard(NOTES_BUTTONS))
        return

    if not notes:
        await send_or_edit(
            update,
            "📝 *Your Notes*\n\nNo notes yet. Tap below to write your first one!",
            build_keyboard(NOTES_BUTTONS),
        )
        return

    offset = resolve_user_offset(store, user_id)
    lines = ["📝 *Your Recent Notes*\n"]
    for index, note in enumerate(notes, start=1):
        created = format_timestamp(note.created_at, offset, "%b %d")
        lines.append(f"{index}. {note_emoji(note.category)} {md(_preview(note.content))}\n   _{created}_")
    await send_or_edit(update, "\n".join(lines), build_keyboard(NOTES_BUTTONS))


async def process_note_input(update: Update, context: ContextTypes.DEFAULT_TYPE, text: str, store: LifeDeskStore) -> None:
    """Saves text as a note; a trailing "Reminder at <time>" also schedules a reminder."""
    user_id = user_id_of(update)
    offset = resolve_user_offset(store, user_id)
    parsed = parse_time_expression(text, user_now(offset))

    content = parsed.remainder_text if parsed.found and parsed.remainder_text else text
    category = categorize_note(content)

    try:
        note = store.create_note(user_id, content, category)
    except StorageError:
        await update.message.reply_text("❌ Sorry, I couldn't save your note. Please try again.")
        return

    reminder_line = ""
    if parsed.found:
        try:
            store.create_reminder(user_id, content, parsed.absolute_timestamp, "note", note.id)
            reminder_line = f"\n\n⏰ Reminder set for {format_timestamp(parsed.absolute_timestamp, offset)}"
        except StorageError:
            reminder_line = "\n\n⚠️ The note is saved, but I couldn't schedule its reminder."

    logger.info(f"Saved {category} note {note.id} for user {user_id}")
    await update.message.reply_text(
        f"✅ *Note saved!* {note_emoji(category)}\n\n{md(content)}{reminder_line}",
        parse_mode=ParseMode.MARKDOWN,
        reply_markup=build_keyboard(NOTE_SAVED_BUTTONS),
    )

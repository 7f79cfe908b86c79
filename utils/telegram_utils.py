# utils/telegram_utils.py
import logging
from typing import List, Optional, Sequence, Tuple

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.constants import ParseMode
from telegram.error import BadRequest
from telegram.helpers import escape_markdown

from schema import InputMode
from services.input_mode_service import InputModeStore, StateStorageUnavailable
from services.storage_service import LifeDeskStore, StorageError

logger = logging.getLogger(__name__)

ButtonRow = Sequence[Tuple[str, str]]  # (label, callback_data)

HOME_BUTTONS: List[ButtonRow] = [
    [("📝 Notes", "refresh_notes"), ("✅ Todos", "refresh_todos")],
    [("💰 Expenses", "refresh_expenses"), ("🎨 Generate Image", "create_image")],
    [("📊 Summary", "show_summary"), ("⏰ Reminders", "show_reminders")],
]


def user_id_of(update: Update) -> str:
    return str(update.effective_user.id)


def md(text: object) -> str:
    """Escapes user-supplied text for legacy Markdown messages."""
    return escape_markdown(str(text), version=1)


def build_keyboard(rows: Sequence[ButtonRow]) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton(label, callback_data=data) for label, data in row] for row in rows]
    )


def home_keyboard() -> InlineKeyboardMarkup:
    return build_keyboard(HOME_BUTTONS)


async def send_or_edit(update: Update, text: str, reply_markup: Optional[InlineKeyboardMarkup] = None) -> None:
    """Edits the message behind a button press, or replies to a plain message."""
    query = update.callback_query
    if query is not None:
        try:
            await query.edit_message_text(text=text, parse_mode=ParseMode.MARKDOWN, reply_markup=reply_markup)
        except BadRequest as e:
            # Refresh buttons often re-render identical content
            if "not modified" not in str(e).lower():
                raise
        return
    await update.effective_message.reply_text(text, parse_mode=ParseMode.MARKDOWN, reply_markup=reply_markup)


def resolve_user_offset(store: LifeDeskStore, user_id: str) -> int:
    """The user's UTC offset in minutes; 0 when unknown or the lookup fails."""
    try:
        user = store.get_user(user_id)
    except StorageError as e:
        logger.warning(f"Could not load timezone for user {user_id}, assuming UTC: {e}")
        return 0
    return user.timezone_offset if user else 0


async def start_input_mode(
    update: Update,
    mode_store: InputModeStore,
    mode: InputMode,
    prompt: str,
    reply_markup: Optional[InlineKeyboardMarkup] = None,
) -> bool:
    """Arms the user's next text message for mode and shows the prompt. Returns False if the mode could not be stored."""
    user_id = user_id_of(update)
    try:
        mode_store.set_mode(user_id, mode)
    except StateStorageUnavailable as e:
        logger.error(f"Could not start '{mode.value}' input for user {user_id}: {e}")
        await send_or_edit(update, "⚠️ I can't take input right now. Please try again in a moment.", home_keyboard())
        return False
    await send_or_edit(update, prompt, reply_markup or build_keyboard([[("❌ Cancel", "cancel_input")]]))
    return True

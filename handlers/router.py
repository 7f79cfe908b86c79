# handlers/router.py
import logging
from typing import Any, Optional

from telegram import Update
from telegram.ext import ContextTypes

from schema import InputMode
from services.input_mode_service import InputModeStore, StateStorageUnavailable
from services.storage_service import LifeDeskStore
from handlers.ai_handler import IMAGE_PROMPT, IMAGE_UNAVAILABLE_TEXT, generate_and_send_image, handle_ai_query
from handlers.expense_handler import EXPENSE_PROMPT, process_expense_input, show_expenses
from handlers.menu_handler import show_help, show_home
from handlers.note_handler import NOTE_PROMPT, process_note_input, show_notes
from handlers.reminder_handler import show_reminders
from handlers.summary_handler import show_summary
from handlers.todo_handler import TODO_PROMPT, complete_todo, process_todo_input, show_todos
from utils.telegram_utils import home_keyboard, send_or_edit, start_input_mode, user_id_of

logger = logging.getLogger(__name__)

INPUT_PROMPTS = {
    "create_note": (InputMode.NOTE, NOTE_PROMPT),
    "create_todo": (InputMode.TODO, TODO_PROMPT),
    "create_expense": (InputMode.EXPENSE, EXPENSE_PROMPT),
    "create_image": (InputMode.IMAGE, IMAGE_PROMPT),
}


async def handle_text_message(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    store: LifeDeskStore,
    mode_store: InputModeStore,
    nlp_processor: Any,
    ai_service_url: str,
    freepik_api_key: Optional[str] = None,
) -> None:
    """
    Routes a plain text message. The user's input mode is read first: with a
    mode set the text goes to that mode's processor and the mode is cleared
    afterwards, even when processing fails. Without one the text goes to the
    AI assistant.
    """
    if not update.message or not update.message.text:
        return

    user_id = user_id_of(update)
    text = update.message.text.strip()
    if not text:
        return

    try:
        record = mode_store.get_mode(user_id)
    except StateStorageUnavailable as e:
        logger.warning(f"{e}; handling message from {user_id} without an input mode")
        record = None

    if record is None:
        await handle_ai_query(update, context, text, ai_service_url)
        return

    logger.info(f"User {user_id} sent input for mode '{record.mode.value}'")
    try:
        if record.mode is InputMode.NOTE:
            await process_note_input(update, context, text, store)
        elif record.mode is InputMode.TODO:
            await process_todo_input(update, context, text, store)
        elif record.mode is InputMode.EXPENSE:
            await process_expense_input(update, context, text, store, nlp_processor, ai_service_url)
        elif record.mode is InputMode.IMAGE:
            await generate_and_send_image(update, context, text, freepik_api_key)
    finally:
        try:
            mode_store.clear_mode(user_id)
        except StateStorageUnavailable as e:
            logger.error(f"Input mode for user {user_id} could not be cleared: {e}")


async def handle_callback_query(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    store: LifeDeskStore,
    mode_store: InputModeStore,
    freepik_api_key: Optional[str] = None,
) -> None:
    """Dispatches inline button presses; callback data is "action" or "action:param"."""
    query = update.callback_query
    await query.answer()

    action, _, param = (query.data or "").partition(":")
    logger.info(f"User {user_id_of(update)} pressed '{query.data}'")

    if action in INPUT_PROMPTS:
        mode, prompt = INPUT_PROMPTS[action]
        if mode is InputMode.IMAGE and not freepik_api_key:
            await send_or_edit(update, IMAGE_UNAVAILABLE_TEXT, home_keyboard())
            return
        await start_input_mode(update, mode_store, mode, prompt)
    elif action == "cancel_input":
        try:
            mode_store.clear_mode(user_id_of(update))
        except StateStorageUnavailable as e:
            logger.error(f"Could not cancel input mode: {e}")
        await show_home(update, context)
    elif action == "complete_todo" and param:
        await complete_todo(update, context, store, param)
    elif action == "refresh_notes":
        await show_notes(update, context, store)
    elif action == "refresh_todos":
        await show_todos(update, context, store)
    elif action == "refresh_expenses":
        await show_expenses(update, context, store)
    elif action == "show_summary":
        await show_summary(update, context, store)
    elif action == "show_reminders":
        await show_reminders(update, context, store)
    elif action in ("show_home", "back_home"):
        await show_home(update, context)
    elif action == "show_help":
        await show_help(update, context)
    else:
        logger.warning(f"Unhandled callback data: '{query.data}'")

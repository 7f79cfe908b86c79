# handlers/todo_handler.py
import logging

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from services.storage_service import LifeDeskStore, StorageError
from utils.telegram_utils import build_keyboard, md, resolve_user_offset, send_or_edit, user_id_of
from utils.time_parsing_utils import format_timestamp, parse_time_expression, user_now

logger = logging.getLogger(__name__)

RECENT_TODOS_LIMIT = 5
MAX_COMPLETE_BUTTONS = 3
BUTTON_LABEL_LENGTH = 20
COMPLETE_TODO_PREFIX = "complete_todo:"

TODO_PROMPT = (
    "✅ *Create New Todo*\n\n"
    "Type the task and send it.\n\n"
    "📅 Set a due date with \"Reminder at ...\", for example:\n"
    "• `Pay rent Reminder at 12/1/2026`\n"
    "• `Submit report Reminder at today 6pm`"
)

TODO_SAVED_BUTTONS = [
    [("➕ Add Another", "create_todo"), ("✅ View Todos", "refresh_todos")],
    [("🏠 Home", "show_home")],
]


def _shorten(text: str, length: int) -> str:
    return text if len(text) <= length else text[:length - 1] + "…"


async def show_todos(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    store: LifeDeskStore,
    header: str = "✅ *Your Todos*",
) -> None:
    user_id = user_id_of(update)
    try:
        todos = store.get_recent_todos(user_id, limit=RECENT_TODOS_LIMIT)
    except StorageError:
        await send_or_edit(update, "❌ I couldn't load your todos right now. Please try again.")
        return

    rows = []
    if not todos:
        text = f"{header}\n\nNothing on your list. Tap below to add a task!"
    else:
        offset = resolve_user_offset(store, user_id)
        lines = [header, ""]
        for index, todo in enumerate(todos, start=1):
            status = "✅" if todo.completed else "⏳"
            line = f"{index}. {status} {md(todo.task)}"
            if todo.due_date:
                line += f"\n   📅 Due {format_timestamp(todo.due_date, offset)}"
            lines.append(line)
        text = "\n".join(lines)

        pending = [todo for todo in todos if not todo.completed][:MAX_COMPLETE_BUTTONS]
        rows.extend(
            [(f"✅ {_shorten(todo.task, BUTTON_LABEL_LENGTH)}", f"{COMPLETE_TODO_PREFIX}{todo.id}")] for todo in pending
        )

    rows.append([("➕ Create New Todo", "create_todo"), ("🔄 Refresh", "refresh_todos")])
    rows.append([("🏠 Home", "show_home")])
    await send_or_edit(update, text, build_keyboard(rows))


async def process_todo_input(update: Update, context: ContextTypes.DEFAULT_TYPE, text: str, store: LifeDeskStore) -> None:
    """Saves text as a todo; a "Reminder at <time>" phrase becomes its due date and a reminder."""
    user_id = user_id_of(update)
    offset = resolve_user_offset(store, user_id)
    parsed = parse_time_expression(text, user_now(offset))

    task = parsed.remainder_text if parsed.found and parsed.remainder_text else text
    due_date = parsed.absolute_timestamp if parsed.found else None

    try:
        todo = store.create_todo(user_id, task, due_date)
    except StorageError:
        await update.message.reply_text("❌ Sorry, I couldn't save your todo. Please try again.")
        return

    due_line = ""
    if due_date is not None:
        due_line = f"\n\n📅 Due {format_timestamp(due_date, offset)}"
        try:
            store.create_reminder(user_id, task, due_date, "todo", todo.id)
            due_line += " (reminder set)"
        except StorageError:
            due_line += "\n⚠️ I couldn't schedule the reminder for it."

    logger.info(f"Saved todo {todo.id} for user {user_id} (due: {due_date})")
    await update.message.reply_text(
        f"✅ *Todo added!*\n\n{md(task)}{due_line}",
        parse_mode=ParseMode.MARKDOWN,
        reply_markup=build_keyboard(TODO_SAVED_BUTTONS),
    )


async def complete_todo(update: Update, context: ContextTypes.DEFAULT_TYPE, store: LifeDeskStore, todo_id: str) -> None:
    user_id = user_id_of(update)
    try:
        store.complete_todo(user_id, todo_id)
    except StorageError:
        await send_or_edit(update, "❌ I couldn't mark that todo as done. Please try again.")
        return
    logger.info(f"User {user_id} completed todo {todo_id}")
    await show_todos(update, context, store, header="🎉 *Todo completed!*\n\n✅ *Your Todos*")

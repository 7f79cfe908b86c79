# handlers/menu_handler.py
import logging

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from services.storage_service import LifeDeskStore, StorageError
from utils.telegram_utils import build_keyboard, home_keyboard, md, send_or_edit, user_id_of

logger = logging.getLogger(__name__)

MIN_OFFSET_MINUTES = -720
MAX_OFFSET_MINUTES = 840

HELP_TEXT = """🎯 *Life Desk*

📝 */note* - Capture thoughts, ideas, links
   • Auto-categorized (link, task, idea, general)
   • Add "reminder at tomorrow 9am" to schedule a reminder

✅ */todo* - Task management
   • One-tap completion buttons
   • "Pay rent reminder at 12/1/2026" sets the due date

💰 */expense* - Expense tracking
   • Simple format: amount + description (e.g. 15 coffee)
   • Weekly totals

⏰ */reminders* - Upcoming reminders
   • */remind* call mom in 2 hours

🎨 */image* - AI image generation from a text prompt

📊 */summary* - Weekly overview of notes, todos and spending

🕒 */timezone* - Set your UTC offset in minutes

💬 Send any other text to chat with the AI assistant, or a photo to have it described."""

UNKNOWN_COMMAND_TEXT = """🤔 *I didn't understand that command.*

*Available commands:*
📝 /note - Manage your notes
✅ /todo - Manage your tasks
💰 /expense - Track expenses
⏰ /reminders - Upcoming reminders
🎨 /image - Generate AI images
📊 /summary - View weekly summary
🏠 /home - Main menu
❓ /help - Show help

*Or just send me any text for AI assistance!*"""

HELP_BUTTONS = [
    [("📝 Try Notes", "refresh_notes"), ("✅ Try Todos", "refresh_todos")],
    [("💰 Try Expenses", "refresh_expenses"), ("📊 View Summary", "show_summary")],
    [("🏠 Home", "show_home")],
]


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE, store: LifeDeskStore) -> None:
    user = update.effective_user
    user_id = user_id_of(update)
    logger.info(f"User {user_id} sent /start")

    try:
        if store.get_user(user_id) is None:
            store.create_user(user_id, user.first_name, user.username)
    except StorageError as e:
        logger.error(f"Could not register user {user_id}: {e}")
        await update.message.reply_text("⚠️ I couldn't set up your account right now. Please try /start again in a moment.")
        return

    welcome_message = (
        f"🎯 *Welcome to Life Desk, {md(user.first_name)}!*\n\n"
        "Your productivity companion for notes, todos and expenses.\n\n"
        "*Choose a command to get started:*"
    )
    await update.message.reply_text(welcome_message, parse_mode=ParseMode.MARKDOWN, reply_markup=home_keyboard())


async def show_home(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    home_message = f"🏠 *Welcome back, {md(update.effective_user.first_name)}!*\n\n*Choose what you'd like to do:*"
    await send_or_edit(update, home_message, home_keyboard())


async def show_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await send_or_edit(update, HELP_TEXT, build_keyboard(HELP_BUTTONS))


async def unknown_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.info(f"Unknown command from {user_id_of(update)}: '{update.message.text}'")
    await update.message.reply_text(UNKNOWN_COMMAND_TEXT, parse_mode=ParseMode.MARKDOWN)


def format_utc_offset(offset_minutes: int) -> str:
    sign = "-" if offset_minutes < 0 else "+"
    hours, minutes = divmod(abs(offset_minutes), 60)
    return f"UTC{sign}{hours:02d}:{minutes:02d}"


async def timezone_command(update: Update, context: ContextTypes.DEFAULT_TYPE, store: LifeDeskStore) -> None:
    user_id = user_id_of(update)
    args_text = " ".join(context.args) if context.args else ""

    if not args_text.strip():
        try:
            user = store.get_user(user_id)
        except StorageError:
            user = None
        current_timezone = user.timezone if user else "UTC"
        current_offset = user.timezone_offset if user else 0
        await update.message.reply_text(
            "🕒 *Timezone Settings*\n\n"
            f"Your current timezone: *{current_timezone}*\n"
            f"Offset from UTC: *{current_offset} minutes*\n\n"
            "To set your timezone, use:\n"
            "`/timezone [offset]`\n\n"
            "Examples:\n"
            "`/timezone -120` (UTC-02:00)\n"
            "`/timezone 0` (UTC)\n"
            "`/timezone 330` (UTC+05:30)",
            parse_mode=ParseMode.MARKDOWN,
        )
        return

    try:
        offset = int(args_text.strip())
    except ValueError:
        offset = None
    if offset is None or not MIN_OFFSET_MINUTES <= offset <= MAX_OFFSET_MINUTES:
        await update.message.reply_text(
            f"❌ Invalid timezone offset. Please provide a number between {MIN_OFFSET_MINUTES} and "
            f"{MAX_OFFSET_MINUTES} (minutes from UTC)."
        )
        return

    timezone_name = format_utc_offset(offset)
    try:
        store.set_timezone_offset(user_id, timezone_name, offset)
    except StorageError:
        await update.message.reply_text("❌ Something went wrong setting your timezone. Please try again.")
        return

    await update.message.reply_text(
        f"✅ *Timezone Updated*\n\nYour timezone is now *{timezone_name}* ({offset} minutes from UTC).",
        parse_mode=ParseMode.MARKDOWN,
    )

# bot.py
import logging
import os

import spacy
from convex import ConvexClient
from dotenv import load_dotenv
from telegram import Update
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    TypeHandler,
    filters,
)

from handlers.ai_handler import handle_photo_message, image_command
from handlers.expense_handler import show_expenses
from handlers.menu_handler import show_help, show_home, start_command, timezone_command, unknown_command
from handlers.note_handler import show_notes
from handlers.reminder_handler import remind_command, show_reminders
from handlers.router import handle_callback_query, handle_text_message
from handlers.summary_handler import show_summary
from handlers.todo_handler import show_todos
from services.input_mode_service import InputModeStore
from services.storage_service import LifeDeskStore, StorageError

# Load environment variables from .env.local file
load_dotenv(dotenv_path=".env.local")

# --- Global Initializations ---
TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN")
CONVEX_URL = os.getenv("CONVEX_URL")
AI_SERVICE_URL = os.getenv("AI_SERVICE_URL")
FREEPIK_API_KEY = os.getenv("FREEPIK_API_KEY")
WEBHOOK_URL = os.getenv("WEBHOOK_URL")
PORT = int(os.getenv("PORT", "8443"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

if not TELEGRAM_BOT_TOKEN:
    raise ValueError("TELEGRAM_BOT_TOKEN not found in .env.local file. Please add it.")
if not CONVEX_URL:
    raise ValueError("CONVEX_URL not found in .env.local file. Please add it.")
if not AI_SERVICE_URL:
    raise ValueError("AI_SERVICE_URL not found in .env.local file. Please add it.")

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", level=getattr(logging, LOG_LEVEL, logging.INFO)
)
# Keep per-request HTTP lines out of the bot log
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

convex_client = ConvexClient(CONVEX_URL)
store = LifeDeskStore(convex_client)
mode_store = InputModeStore(convex_client)

try:
    nlp = spacy.load("en_core_web_sm")
    logger.info("spaCy model en_core_web_sm loaded successfully.")
except OSError:
    logger.error("spaCy model en_core_web_sm not found. Please run 'python -m spacy download en_core_web_sm'")
    raise

if not FREEPIK_API_KEY:
    logger.warning("FREEPIK_API_KEY is not set; image generation is disabled.")


async def record_activity(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Touches the user's last-active time before any other handler runs."""
    if not update.effective_user:
        return
    try:
        store.touch_user(str(update.effective_user.id))
    except StorageError as e:
        logger.warning(f"Could not record activity for user {update.effective_user.id}: {e}")


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.error("Unhandled error while processing an update", exc_info=context.error)
    if isinstance(update, Update) and update.effective_message:
        await update.effective_message.reply_text("😔 Sorry, something went wrong. Please try again.")


# --- Main Application Setup ---
def main() -> None:
    application = Application.builder().token(TELEGRAM_BOT_TOKEN).build()

    async def wrapped_start_command(update, context):
        await start_command(update, context, store)

    async def wrapped_notes_command(update, context):
        await show_notes(update, context, store)

    async def wrapped_todos_command(update, context):
        await show_todos(update, context, store)

    async def wrapped_expenses_command(update, context):
        await show_expenses(update, context, store)

    async def wrapped_summary_command(update, context):
        await show_summary(update, context, store)

    async def wrapped_reminders_command(update, context):
        await show_reminders(update, context, store)

    async def wrapped_remind_command(update, context):
        await remind_command(update, context, store)

    async def wrapped_timezone_command(update, context):
        await timezone_command(update, context, store)

    async def wrapped_image_command(update, context):
        await image_command(update, context, mode_store, FREEPIK_API_KEY)

    async def wrapped_handle_callback_query(update, context):
        await handle_callback_query(update, context, store, mode_store, FREEPIK_API_KEY)

    async def wrapped_handle_text_message(update, context):
        await handle_text_message(update, context, store, mode_store, nlp, AI_SERVICE_URL, FREEPIK_API_KEY)

    async def wrapped_handle_photo_message(update, context):
        await handle_photo_message(update, context, AI_SERVICE_URL)

    application.add_handler(TypeHandler(Update, record_activity), group=-1)

    # Add Command Handlers
    application.add_handler(CommandHandler("start", wrapped_start_command))
    application.add_handler(CommandHandler("home", show_home))
    application.add_handler(CommandHandler("help", show_help))
    application.add_handler(CommandHandler(["note", "notes"], wrapped_notes_command))
    application.add_handler(CommandHandler(["todo", "todos"], wrapped_todos_command))
    application.add_handler(CommandHandler(["expense", "expenses"], wrapped_expenses_command))
    application.add_handler(CommandHandler("summary", wrapped_summary_command))
    application.add_handler(CommandHandler("reminders", wrapped_reminders_command))
    application.add_handler(CommandHandler("remind", wrapped_remind_command))
    application.add_handler(CommandHandler("timezone", wrapped_timezone_command))
    application.add_handler(CommandHandler("image", wrapped_image_command))

    application.add_handler(CallbackQueryHandler(wrapped_handle_callback_query))

    # Plain text and photos (must be after CommandHandlers)
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, wrapped_handle_text_message))
    application.add_handler(MessageHandler(filters.PHOTO, wrapped_handle_photo_message))
    application.add_handler(MessageHandler(filters.COMMAND, unknown_command))

    application.add_error_handler(error_handler)

    if WEBHOOK_URL:
        logger.info(f"Bot starting in webhook mode on port {PORT}...")
        application.run_webhook(
            listen="0.0.0.0",
            port=PORT,
            url_path=TELEGRAM_BOT_TOKEN,
            webhook_url=f"{WEBHOOK_URL.rstrip('/')}/{TELEGRAM_BOT_TOKEN}",
        )
    else:
        logger.info("Bot starting in polling mode...")
        application.run_polling()


if __name__ == "__main__":
    main()

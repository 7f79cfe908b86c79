# handlers/expense_handler.py
import asyncio
import logging
from typing import Any, Optional

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from services.ai_assistant_service import get_ai_category_prediction
from services.storage_service import LifeDeskStore, StorageError
from utils.expense_parsing_utils import parse_expense_text
from utils.period_utils import week_bounds_ms
from utils.telegram_utils import build_keyboard, md, resolve_user_offset, send_or_edit, user_id_of
from utils.time_parsing_utils import format_timestamp, user_now

logger = logging.getLogger(__name__)

RECENT_EXPENSES_LIMIT = 5
CATEGORY_CONFIDENCE_THRESHOLD = 0.60

EXPENSE_PROMPT = (
    "💰 *Log New Expense*\n\n"
    "Send the amount followed by a description:\n"
    "• `15 coffee`\n"
    "• `120.50 groceries`\n"
    "• `spent $12 on lunch`"
)

INVALID_EXPENSE_TEXT = (
    "❌ *Invalid format*\n\n"
    "Please send the amount followed by a description, like `15 coffee` or `120.50 groceries`."
)

EXPENSES_BUTTONS = [
    [("➕ Log Expense", "create_expense"), ("🔄 Refresh", "refresh_expenses")],
    [("🏠 Home", "show_home")],
]
EXPENSE_SAVED_BUTTONS = [
    [("➕ Add Another", "create_expense"), ("💰 View Expenses", "refresh_expenses")],
    [("🏠 Home", "show_home")],
]
TRY_AGAIN_BUTTONS = [[("🔄 Try Again", "create_expense"), ("🏠 Home", "show_home")]]


async def show_expenses(update: Update, context: ContextTypes.DEFAULT_TYPE, store: LifeDeskStore) -> None:
    user_id = user_id_of(update)
    offset = resolve_user_offset(store, user_id)
    this_week_start_ms, _ = week_bounds_ms(user_now(offset))
    try:
        week_expenses = store.get_expenses_between(user_id, this_week_start_ms)
        recent = store.get_recent_expenses(user_id, limit=RECENT_EXPENSES_LIMIT)
    except StorageError:
        await send_or_edit(update, "❌ I couldn't load your expenses right now. Please try again.", build_keyboard(EXPENSES_BUTTONS))
        return

    week_total = sum(expense.amount for expense in week_expenses)
    lines = ["💰 *Your Expenses*", "", f"This week: *${week_total:.2f}*", ""]
    if not recent:
        lines.append("No expenses logged yet.")
    else:
        lines.append("*Recent:*")
        for expense in recent:
            spent_on = format_timestamp(expense.created_at, offset, "%b %d")
            category = f" _({md(expense.category)})_" if expense.category else ""
            lines.append(f"• ${expense.amount:.2f} - {md(expense.description)}{category} · {spent_on}")
    await send_or_edit(update, "\n".join(lines), build_keyboard(EXPENSES_BUTTONS))


def _predict_category(description: str, ai_service_url: Optional[str]) -> Optional[str]:
    if not ai_service_url:
        return None
    category, confidence = get_ai_category_prediction(description, ai_service_url)
    if category and confidence is not None and confidence >= CATEGORY_CONFIDENCE_THRESHOLD:
        return category
    if category:
        logger.info(f"Ignoring low-confidence category '{category}' ({confidence}) for '{description}'")
    return None


async def process_expense_input(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    text: str,
    store: LifeDeskStore,
    nlp_processor: Any = None,
    ai_service_url: Optional[str] = None,
) -> None:
    user_id = user_id_of(update)
    parsed = parse_expense_text(text, nlp_processor)
    if parsed is None:
        logger.info(f"User {user_id} sent unparseable expense text: '{text}'")
        await update.message.reply_text(
            INVALID_EXPENSE_TEXT, parse_mode=ParseMode.MARKDOWN, reply_markup=build_keyboard(TRY_AGAIN_BUTTONS)
        )
        return

    amount, description = parsed
    category = await asyncio.to_thread(_predict_category, description, ai_service_url)
    try:
        expense = store.create_expense(user_id, amount, description, category)
    except StorageError:
        await update.message.reply_text("❌ Sorry, I couldn't save your expense. Please try again.")
        return

    logger.info(f"Logged expense {expense.id} for user {user_id}: {amount} '{description}' ({category})")
    category_line = f"\n🏷️ Category: {md(category)}" if category else ""
    await update.message.reply_text(
        f"✅ *Expense logged!*\n\n💵 ${amount:.2f} - {md(description)}{category_line}",
        parse_mode=ParseMode.MARKDOWN,
        reply_markup=build_keyboard(EXPENSE_SAVED_BUTTONS),
    )

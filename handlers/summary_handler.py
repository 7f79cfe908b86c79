# handlers/summary_handler.py
import logging
from datetime import datetime

from telegram import Update
from telegram.ext import ContextTypes

from schema import WeeklySummary
from services.storage_service import LifeDeskStore, StorageError
from utils.period_utils import most_productive_weekday, week_bounds_ms
from utils.telegram_utils import build_keyboard, md, resolve_user_offset, send_or_edit, user_id_of
from utils.time_parsing_utils import user_now

logger = logging.getLogger(__name__)

SUMMARY_BUTTONS = [
    [("🔄 Refresh", "show_summary"), ("🏠 Home", "show_home")],
]


def build_weekly_summary(store: LifeDeskStore, user_id: str, now: datetime) -> WeeklySummary:
    """
    Collects this week's activity (weeks start Sunday 00:00 on now's clock)
    and last week's spending. Raises StorageError if any lookup fails.
    """
    this_week_start_ms, last_week_start_ms = week_bounds_ms(now)

    notes = store.get_notes_since(user_id, this_week_start_ms)
    todos = store.get_todos_since(user_id, this_week_start_ms)
    this_week_expenses = store.get_expenses_between(user_id, this_week_start_ms)
    last_week_expenses = store.get_expenses_between(user_id, last_week_start_ms, this_week_start_ms)

    completed = [todo for todo in todos if todo.completed]
    activity = [note.created_at for note in notes]
    activity += [todo.completed_at or todo.created_at for todo in completed]

    return WeeklySummary(
        notes_count=len(notes),
        todos_completed=len(completed),
        todos_total=len(todos),
        total_spent=sum(expense.amount for expense in this_week_expenses),
        last_week_spent=sum(expense.amount for expense in last_week_expenses),
        most_productive_day=most_productive_weekday(activity, now.tzinfo),
    )


def motivational_line(summary: WeeklySummary) -> str:
    if summary.completion_rate >= 80:
        return "🌟 Outstanding week! You're crushing your goals!"
    if summary.completion_rate >= 60:
        return "👍 Good progress! Keep up the momentum!"
    return "💪 Every step counts. Let's make next week even better!"


def format_weekly_summary(summary: WeeklySummary, first_name: str) -> str:
    if summary.last_week_spent > 0:
        change = summary.spending_change
        trend = "📈" if change > 0 else "📉"
        spending_trend = f"{trend} {change:+.1f}% vs last week"
    else:
        spending_trend = "No spending last week to compare"

    lines = [
        f"📊 *Weekly Summary for {md(first_name)}*",
        "",
        f"📝 Notes saved: *{summary.notes_count}*",
        f"✅ Todos completed: *{summary.todos_completed}/{summary.todos_total}* ({summary.completion_rate}%)",
        f"💰 Spent this week: *${summary.total_spent:.2f}*",
        f"   {spending_trend}",
    ]
    if summary.most_productive_day:
        lines.append(f"🏆 Most productive day: *{summary.most_productive_day}*")
    lines += ["", motivational_line(summary)]
    return "\n".join(lines)


async def show_summary(update: Update, context: ContextTypes.DEFAULT_TYPE, store: LifeDeskStore) -> None:
    user_id = user_id_of(update)
    now = user_now(resolve_user_offset(store, user_id))
    try:
        summary = build_weekly_summary(store, user_id, now)
    except StorageError:
        await send_or_edit(update, "❌ I couldn't build your summary right now. Please try again.", build_keyboard(SUMMARY_BUTTONS))
        return

    logger.info(f"Weekly summary for user {user_id}: {summary.model_dump()}")
    await send_or_edit(
        update,
        format_weekly_summary(summary, update.effective_user.first_name),
        build_keyboard(SUMMARY_BUTTONS),
    )

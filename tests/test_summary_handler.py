"""Tests for the weekly summary."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

from schema import Expense, Note, Todo, WeeklySummary
from handlers.summary_handler import build_weekly_summary, format_weekly_summary, motivational_line
from utils.time_parsing_utils import to_epoch_ms

UTC = timezone.utc
NOW = datetime(2024, 1, 17, 12, tzinfo=UTC)  # Wednesday
THIS_WEEK_MS = to_epoch_ms(datetime(2024, 1, 14, tzinfo=UTC))
LAST_WEEK_MS = to_epoch_ms(datetime(2024, 1, 7, tzinfo=UTC))


def ms(day, hour=12):
    return to_epoch_ms(datetime(2024, 1, day, hour, tzinfo=UTC))


def make_store():
    store = MagicMock()
    store.get_notes_since.return_value = [
        Note(id="n1", user_id="1", content="a", created_at=ms(15)),
        Note(id="n2", user_id="1", content="b", created_at=ms(16)),
        Note(id="n3", user_id="1", content="c", created_at=ms(16)),
    ]
    store.get_todos_since.return_value = [
        Todo(id="t1", user_id="1", task="x", completed=True, created_at=ms(15), completed_at=ms(16)),
        Todo(id="t2", user_id="1", task="y", completed=True, created_at=ms(15), completed_at=ms(17)),
        Todo(id="t3", user_id="1", task="z", completed=False, created_at=ms(15)),
    ]

    def expenses(user_id, start_ms, end_ms=None):
        if start_ms == THIS_WEEK_MS:
            return [Expense(id="e1", user_id="1", amount=30, description="x", created_at=ms(15))]
        return [Expense(id="e2", user_id="1", amount=20, description="y", created_at=ms(10))]

    store.get_expenses_between.side_effect = expenses
    return store


def test_build_weekly_summary():
    store = make_store()
    summary = build_weekly_summary(store, "1", NOW)

    store.get_notes_since.assert_called_once_with("1", THIS_WEEK_MS)
    store.get_expenses_between.assert_any_call("1", LAST_WEEK_MS, THIS_WEEK_MS)
    assert summary.notes_count == 3
    assert (summary.todos_completed, summary.todos_total) == (2, 3)
    assert summary.completion_rate == 67
    assert summary.total_spent == 30
    assert summary.last_week_spent == 20
    assert summary.spending_change == 50.0
    assert summary.most_productive_day == "Tuesday"


def test_summary_rates_without_data():
    summary = WeeklySummary()
    assert summary.completion_rate == 0
    assert summary.spending_change == 0.0
    assert "No spending last week" in format_weekly_summary(summary, "Ada")


def test_format_weekly_summary():
    summary = WeeklySummary(
        notes_count=3, todos_completed=4, todos_total=5, total_spent=30, last_week_spent=40,
        most_productive_day="Monday",
    )
    text = format_weekly_summary(summary, "Ada")
    assert "4/5" in text
    assert "(80%)" in text
    assert "-25.0% vs last week" in text
    assert "Monday" in text
    assert "Outstanding week" in text


def test_motivational_lines():
    assert "Good progress" in motivational_line(WeeklySummary(todos_completed=3, todos_total=5))
    assert "Every step counts" in motivational_line(WeeklySummary(todos_completed=1, todos_total=5))

"""Tests for the Convex storage adapter."""

from unittest.mock import MagicMock

import pytest

from services.storage_service import LifeDeskStore, StorageError

NOW_SECONDS = 1_700_000_000.0
NOW_MS = int(NOW_SECONDS * 1000)


@pytest.fixture
def convex():
    return MagicMock()


@pytest.fixture
def store(convex):
    return LifeDeskStore(convex, clock=lambda: NOW_SECONDS)


def test_get_user_maps_row(store, convex):
    convex.query.return_value = {
        "_id": "u1",
        "telegramChatId": "42",
        "firstName": "Ada",
        "timezone": "UTC+05:30",
        "timezoneOffset": 330,
        "createdAt": 1,
        "lastActiveAt": 2,
    }
    user = store.get_user("42")
    convex.query.assert_called_once_with("users:getUser", {"telegramChatId": "42"})
    assert user.first_name == "Ada"
    assert user.timezone_offset == 330


def test_get_user_missing(store, convex):
    convex.query.return_value = None
    assert store.get_user("42") is None


def test_create_user_sends_camel_case(store, convex):
    store.create_user("42", "Ada", "ada")
    convex.mutation.assert_called_once_with("users:createUser", {
        "telegramChatId": "42",
        "firstName": "Ada",
        "username": "ada",
        "timezone": "UTC",
        "timezoneOffset": 0,
        "createdAt": NOW_MS,
        "lastActiveAt": NOW_MS,
    })


def test_create_note_returns_model_with_id(store, convex):
    convex.mutation.return_value = "note123"
    note = store.create_note("42", "read this", "idea")
    convex.mutation.assert_called_once_with("notes:createNote", {
        "telegramChatId": "42",
        "content": "read this",
        "category": "idea",
        "createdAt": NOW_MS,
    })
    assert note.id == "note123"
    assert note.category == "idea"


def test_create_without_returned_id_is_an_error(store, convex):
    convex.mutation.return_value = None
    with pytest.raises(StorageError):
        store.create_todo("42", "task")


def test_create_todo_with_due_date(store, convex):
    convex.mutation.return_value = "todo1"
    todo = store.create_todo("42", "pay rent", due_date=123)
    args = convex.mutation.call_args[0][1]
    assert args["dueDate"] == 123
    assert args["completed"] is False
    assert todo.due_date == 123


def test_recent_rows_skip_malformed(store, convex):
    convex.query.return_value = [
        {"_id": "e1", "telegramChatId": "42", "amount": 12.5, "description": "lunch", "createdAt": 1},
        {"_id": "e2", "telegramChatId": "42", "description": "no amount", "createdAt": 2},
    ]
    expenses = store.get_recent_expenses("42")
    assert [expense.id for expense in expenses] == ["e1"]


def test_expenses_between_passes_end_date(store, convex):
    convex.query.return_value = []
    store.get_expenses_between("42", 100, 200)
    convex.query.assert_called_once_with(
        "expenses:getExpensesInRange", {"telegramChatId": "42", "startDate": 100, "endDate": 200}
    )


def test_create_reminder(store, convex):
    convex.mutation.return_value = "r1"
    reminder = store.create_reminder("42", "call mom", 999, "note", "note123")
    args = convex.mutation.call_args[0][1]
    assert args["sourceType"] == "note"
    assert args["sourceId"] == "note123"
    assert args["isSent"] is False
    assert reminder.reminder_time == 999


def test_upcoming_reminders_use_current_time(store, convex):
    convex.query.return_value = []
    store.get_upcoming_reminders("42", limit=3)
    convex.query.assert_called_once_with(
        "reminders:getUpcomingReminders", {"telegramChatId": "42", "after": NOW_MS, "limit": 3}
    )


def test_complete_todo(store, convex):
    store.complete_todo("42", "todo1")
    convex.mutation.assert_called_once_with(
        "todos:completeTodo", {"telegramChatId": "42", "todoId": "todo1", "completedAt": NOW_MS}
    )


def test_convex_faults_become_storage_errors(store, convex):
    convex.query.side_effect = RuntimeError("boom")
    with pytest.raises(StorageError) as exc_info:
        store.get_recent_notes("42")
    assert isinstance(exc_info.value.__cause__, RuntimeError)

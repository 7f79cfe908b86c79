# services/storage_service.py
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import ValidationError

from schema import ConvexRow, Expense, Note, NoteCategory, Reminder, ReminderSource, Todo, User

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT", bound=ConvexRow)


class StorageError(Exception):
    """A Convex query or mutation failed."""


class LifeDeskStore:
    """
    Typed access to the Convex tables behind the bot: users, notes, todos,
    expenses and reminders. Documents are mapped to the models in schema.py
    here and nowhere else.
    """

    def __init__(self, convex_client: Any, clock: Callable[[], float] = time.time):
        self.convex_client = convex_client
        self.clock = clock

    def now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _query(self, name: str, args: Dict[str, Any]) -> Any:
        try:
            return self.convex_client.query(name, args)
        except Exception as e:
            logger.error(f"Error calling Convex {name} query: {e}")
            raise StorageError(f"{name} failed: {e}") from e

    def _mutation(self, name: str, args: Dict[str, Any]) -> Any:
        try:
            return self.convex_client.mutation(name, args)
        except Exception as e:
            logger.error(f"Error calling Convex {name} mutation: {e}")
            raise StorageError(f"{name} failed: {e}") from e

    @staticmethod
    def _to_rows(model: Type[RowT], rows: Optional[List[Dict[str, Any]]]) -> List[RowT]:
        mapped: List[RowT] = []
        for row in rows or []:
            try:
                mapped.append(model.model_validate(row))
            except ValidationError as e:
                logger.warning(f"Skipping malformed {model.__name__} row {row.get('_id', '?')}: {e}")
        return mapped

    @staticmethod
    def _created(model: Type[RowT], document_id: Any, fields: Dict[str, Any]) -> RowT:
        if not document_id:
            raise StorageError(f"Convex did not return an id for the new {model.__name__}")
        return model.model_validate({"_id": str(document_id), **fields})

    # --- Users ---
    def get_user(self, user_id: str) -> Optional[User]:
        row = self._query("users:getUser", {"telegramChatId": str(user_id)})
        if not row:
            return None
        try:
            return User.model_validate(row)
        except ValidationError as e:
            logger.warning(f"Malformed user row for {user_id}: {e}")
            return None

    def create_user(self, user_id: str, first_name: str, username: Optional[str] = None) -> User:
        now = self.now_ms()
        user = User(
            telegram_chat_id=str(user_id),
            first_name=first_name,
            username=username,
            created_at=now,
            last_active_at=now,
        )
        self._mutation("users:createUser", user.model_dump(by_alias=True, exclude_none=True))
        logger.info(f"Created user {user_id} ({first_name})")
        return user

    def touch_user(self, user_id: str) -> None:
        self._mutation("users:touchUser", {"telegramChatId": str(user_id), "lastActiveAt": self.now_ms()})

    def set_timezone_offset(self, user_id: str, timezone_name: str, offset_minutes: int) -> None:
        self._mutation(
            "users:setTimezone",
            {"telegramChatId": str(user_id), "timezone": timezone_name, "timezoneOffset": offset_minutes},
        )
        logger.info(f"Updated timezone for user {user_id}: {timezone_name} (offset: {offset_minutes})")

    # --- Notes ---
    def create_note(self, user_id: str, content: str, category: Optional[NoteCategory] = None) -> Note:
        fields = {"telegramChatId": str(user_id), "content": content, "createdAt": self.now_ms()}
        if category:
            fields["category"] = category
        document_id = self._mutation("notes:createNote", fields)
        return self._created(Note, document_id, fields)

    def get_recent_notes(self, user_id: str, limit: int = 5) -> List[Note]:
        rows = self._query("notes:getRecentNotes", {"telegramChatId": str(user_id), "limit": limit})
        return self._to_rows(Note, rows)

    def get_notes_since(self, user_id: str, start_ms: int) -> List[Note]:
        rows = self._query("notes:getNotesSince", {"telegramChatId": str(user_id), "startDate": start_ms})
        return self._to_rows(Note, rows)

    # --- Todos ---
    def create_todo(self, user_id: str, task: str, due_date: Optional[int] = None) -> Todo:
        fields = {"telegramChatId": str(user_id), "task": task, "completed": False, "createdAt": self.now_ms()}
        if due_date is not None:
            fields["dueDate"] = due_date
        document_id = self._mutation("todos:createTodo", fields)
        return self._created(Todo, document_id, fields)

    def get_recent_todos(self, user_id: str, limit: int = 5) -> List[Todo]:
        rows = self._query("todos:getRecentTodos", {"telegramChatId": str(user_id), "limit": limit})
        return self._to_rows(Todo, rows)

    def get_todos_since(self, user_id: str, start_ms: int) -> List[Todo]:
        rows = self._query("todos:getTodosSince", {"telegramChatId": str(user_id), "startDate": start_ms})
        return self._to_rows(Todo, rows)

    def complete_todo(self, user_id: str, todo_id: str) -> None:
        self._mutation(
            "todos:completeTodo",
            {"telegramChatId": str(user_id), "todoId": todo_id, "completedAt": self.now_ms()},
        )

    # --- Expenses ---
    def create_expense(self, user_id: str, amount: float, description: str, category: Optional[str] = None) -> Expense:
        fields = {
            "telegramChatId": str(user_id),
            "amount": amount,
            "description": description,
            "createdAt": self.now_ms(),
        }
        if category:
            fields["category"] = category
        document_id = self._mutation("expenses:createExpense", fields)
        return self._created(Expense, document_id, fields)

    def get_recent_expenses(self, user_id: str, limit: int = 5) -> List[Expense]:
        rows = self._query("expenses:getRecentExpenses", {"telegramChatId": str(user_id), "limit": limit})
        return self._to_rows(Expense, rows)

    def get_expenses_between(self, user_id: str, start_ms: int, end_ms: Optional[int] = None) -> List[Expense]:
        args: Dict[str, Any] = {"telegramChatId": str(user_id), "startDate": start_ms}
        if end_ms is not None:
            args["endDate"] = end_ms
        rows = self._query("expenses:getExpensesInRange", args)
        return self._to_rows(Expense, rows)

    # --- Reminders ---
    def create_reminder(
        self,
        user_id: str,
        content: str,
        reminder_time: int,
        source_type: ReminderSource,
        source_id: Optional[str] = None,
    ) -> Reminder:
        fields: Dict[str, Any] = {
            "telegramChatId": str(user_id),
            "content": content,
            "reminderTime": reminder_time,
            "isSent": False,
            "sourceType": source_type,
            "createdAt": self.now_ms(),
        }
        if source_id:
            fields["sourceId"] = source_id
        document_id = self._mutation("reminders:createReminder", fields)
        logger.info(f"Reminder scheduled for user {user_id} at {reminder_time} ({source_type})")
        return self._created(Reminder, document_id, fields)

    def get_upcoming_reminders(self, user_id: str, limit: int = 10) -> List[Reminder]:
        rows = self._query(
            "reminders:getUpcomingReminders",
            {"telegramChatId": str(user_id), "after": self.now_ms(), "limit": limit},
        )
        return self._to_rows(Reminder, rows)

# schema.py
from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class InputMode(str, Enum):
    NOTE = "note"
    TODO = "todo"
    EXPENSE = "expense"
    IMAGE = "image"


NoteCategory = Literal["link", "task", "idea", "general"]
ReminderSource = Literal["note", "todo", "manual"]


class ConvexRow(BaseModel):
    """Base for documents read from Convex. Convex keys are camelCase."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class InputModeRecord(ConvexRow):
    user_id: str = Field(alias="telegramChatId")
    mode: InputMode
    created_at: int = Field(alias="createdAt")
    expires_at: Optional[int] = Field(default=None, alias="expiresAt")


class User(ConvexRow):
    telegram_chat_id: str = Field(alias="telegramChatId")
    first_name: str = Field(alias="firstName")
    username: Optional[str] = None
    timezone: str = "UTC"
    timezone_offset: int = Field(default=0, alias="timezoneOffset")  # minutes from UTC
    created_at: int = Field(alias="createdAt")
    last_active_at: int = Field(alias="lastActiveAt")


class Note(ConvexRow):
    id: str = Field(alias="_id")
    user_id: str = Field(alias="telegramChatId")
    content: str
    category: Optional[NoteCategory] = None
    created_at: int = Field(alias="createdAt")


class Todo(ConvexRow):
    id: str = Field(alias="_id")
    user_id: str = Field(alias="telegramChatId")
    task: str
    due_date: Optional[int] = Field(default=None, alias="dueDate")
    completed: bool = False
    created_at: int = Field(alias="createdAt")
    completed_at: Optional[int] = Field(default=None, alias="completedAt")


class Expense(ConvexRow):
    id: str = Field(alias="_id")
    user_id: str = Field(alias="telegramChatId")
    amount: float
    description: str
    category: Optional[str] = None
    created_at: int = Field(alias="createdAt")


class Reminder(ConvexRow):
    id: str = Field(alias="_id")
    user_id: str = Field(alias="telegramChatId")
    content: str
    reminder_time: int = Field(alias="reminderTime")
    is_sent: bool = Field(default=False, alias="isSent")
    source_type: ReminderSource = Field(alias="sourceType")
    source_id: Optional[str] = Field(default=None, alias="sourceId")
    created_at: int = Field(alias="createdAt")


class WeeklySummary(BaseModel):
    notes_count: int = 0
    todos_completed: int = 0
    todos_total: int = 0
    total_spent: float = 0.0
    last_week_spent: float = 0.0
    most_productive_day: Optional[str] = None

    @property
    def completion_rate(self) -> int:
        if self.todos_total <= 0:
            return 0
        return round(self.todos_completed / self.todos_total * 100)

    @property
    def spending_change(self) -> float:
        if self.last_week_spent <= 0:
            return 0.0
        return round((self.total_spent - self.last_week_spent) / self.last_week_spent * 100, 1)

"""Pytest configuration and fixtures."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest


class FakeConvexClient:
    """In-memory stand-in for the inputModes Convex functions."""

    def __init__(self):
        self.modes = {}
        self.calls = []
        self.fail = False

    def _check(self, name):
        self.calls.append(name)
        if self.fail:
            raise ConnectionError(f"convex unreachable during {name}")

    def query(self, name, args):
        self._check(name)
        if name == "inputModes:getMode":
            return self.modes.get(args["telegramChatId"])
        raise AssertionError(f"unexpected query {name}")

    def mutation(self, name, args):
        self._check(name)
        if name == "inputModes:setMode":
            self.modes[args["telegramChatId"]] = dict(args)
        elif name == "inputModes:clearMode":
            self.modes.pop(args["telegramChatId"], None)
        else:
            raise AssertionError(f"unexpected mutation {name}")
        return None


class MockUpdate:
    """Mock Telegram Update for a plain message or a button press."""

    def __init__(self, user_id: str = "123456789", text: str = "hello", callback_data: str = None):
        self.effective_user = MagicMock()
        self.effective_user.id = int(user_id)
        self.effective_user.username = "test_user"
        self.effective_user.first_name = "Test"

        self.effective_chat = MagicMock()
        self.effective_chat.id = int(user_id)

        self.message = MagicMock()
        self.message.text = text
        self.message.caption = None
        self.message.reply_text = AsyncMock()
        self.effective_message = self.message

        if callback_data is None:
            self.callback_query = None
        else:
            self.callback_query = MagicMock()
            self.callback_query.data = callback_data
            self.callback_query.answer = AsyncMock()
            self.callback_query.edit_message_text = AsyncMock()


@pytest.fixture
def fake_convex():
    return FakeConvexClient()


@pytest.fixture
def sample_user_id():
    return "123456789"


@pytest.fixture
def make_update():
    return MockUpdate


@pytest.fixture
def context():
    ctx = MagicMock()
    ctx.args = []
    ctx.bot = MagicMock()
    ctx.bot.send_photo = AsyncMock()
    ctx.bot.get_file = AsyncMock()
    return ctx


@pytest.fixture
def monday_morning():
    """2024-01-15 was a Monday."""
    return datetime(2024, 1, 15, 0, 0, tzinfo=timezone.utc)

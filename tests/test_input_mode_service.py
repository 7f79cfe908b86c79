"""Tests for the per-user input mode store."""

import pytest

from schema import InputMode
from services.input_mode_service import InputModeStore, StateStorageUnavailable


class Clock:
    def __init__(self, seconds: float = 1_700_000_000.0):
        self.seconds = seconds

    def __call__(self):
        return self.seconds


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def mode_store(fake_convex, clock):
    return InputModeStore(fake_convex, clock=clock)


def test_get_mode_without_record_is_none(mode_store, sample_user_id):
    assert mode_store.get_mode(sample_user_id) is None


@pytest.mark.parametrize("mode", [InputMode.NOTE, InputMode.TODO, InputMode.EXPENSE, InputMode.IMAGE])
def test_set_then_get_returns_mode(mode_store, sample_user_id, mode):
    mode_store.set_mode(sample_user_id, mode)
    record = mode_store.get_mode(sample_user_id)
    assert record.mode is mode
    assert record.user_id == sample_user_id


def test_mode_persists_across_reads(mode_store, sample_user_id):
    mode_store.set_mode(sample_user_id, InputMode.NOTE)
    assert mode_store.get_mode(sample_user_id).mode is InputMode.NOTE
    assert mode_store.get_mode(sample_user_id).mode is InputMode.NOTE


def test_set_mode_overwrites_pending_mode(mode_store, fake_convex, sample_user_id):
    mode_store.set_mode(sample_user_id, InputMode.NOTE)
    mode_store.set_mode(sample_user_id, InputMode.EXPENSE)
    assert mode_store.get_mode(sample_user_id).mode is InputMode.EXPENSE
    assert len(fake_convex.modes) == 1


def test_clear_mode_removes_record(mode_store, sample_user_id):
    mode_store.set_mode(sample_user_id, InputMode.TODO)
    mode_store.clear_mode(sample_user_id)
    assert mode_store.get_mode(sample_user_id) is None


def test_clear_mode_is_idempotent(mode_store, sample_user_id):
    mode_store.clear_mode(sample_user_id)
    mode_store.clear_mode(sample_user_id)
    assert mode_store.get_mode(sample_user_id) is None


def test_users_are_independent(mode_store):
    mode_store.set_mode("1", InputMode.NOTE)
    mode_store.set_mode("2", InputMode.TODO)
    mode_store.clear_mode("1")
    assert mode_store.get_mode("1") is None
    assert mode_store.get_mode("2").mode is InputMode.TODO


def test_set_mode_writes_camel_case_row(mode_store, fake_convex, clock, sample_user_id):
    mode_store.set_mode(sample_user_id, InputMode.NOTE)
    assert fake_convex.modes[sample_user_id] == {
        "telegramChatId": sample_user_id,
        "mode": "note",
        "createdAt": int(clock.seconds * 1000),
    }


def test_image_mode_expires(mode_store, fake_convex, clock, sample_user_id):
    record = mode_store.set_mode(sample_user_id, InputMode.IMAGE)
    assert record.expires_at == record.created_at + 10 * 60 * 1000

    clock.seconds += 9 * 60
    assert mode_store.get_mode(sample_user_id).mode is InputMode.IMAGE

    clock.seconds += 60
    assert mode_store.get_mode(sample_user_id) is None


def test_expired_read_does_not_write(mode_store, fake_convex, clock, sample_user_id):
    mode_store.set_mode(sample_user_id, InputMode.IMAGE)
    clock.seconds += 11 * 60
    fake_convex.calls.clear()
    assert mode_store.get_mode(sample_user_id) is None
    assert fake_convex.calls == ["inputModes:getMode"]
    assert sample_user_id in fake_convex.modes


def test_expired_mode_is_replaced_by_next_set(mode_store, clock, sample_user_id):
    mode_store.set_mode(sample_user_id, InputMode.IMAGE)
    clock.seconds += 11 * 60
    assert mode_store.get_mode(sample_user_id) is None
    mode_store.set_mode(sample_user_id, InputMode.NOTE)
    assert mode_store.get_mode(sample_user_id).mode is InputMode.NOTE


def test_text_modes_never_expire(mode_store, clock, sample_user_id):
    mode_store.set_mode(sample_user_id, InputMode.EXPENSE)
    clock.seconds += 30 * 24 * 3600
    assert mode_store.get_mode(sample_user_id).mode is InputMode.EXPENSE


def test_unreadable_row_is_ignored(mode_store, fake_convex, sample_user_id):
    fake_convex.modes[sample_user_id] = {"telegramChatId": sample_user_id, "mode": "poem", "createdAt": 1}
    fake_convex.calls.clear()
    assert mode_store.get_mode(sample_user_id) is None
    assert fake_convex.calls == ["inputModes:getMode"]


@pytest.mark.parametrize("operation", [
    lambda store, user: store.get_mode(user),
    lambda store, user: store.set_mode(user, InputMode.NOTE),
    lambda store, user: store.clear_mode(user),
])
def test_storage_faults_are_reported(mode_store, fake_convex, sample_user_id, operation):
    fake_convex.fail = True
    with pytest.raises(StateStorageUnavailable) as exc_info:
        operation(mode_store, sample_user_id)
    assert exc_info.value.user_id == sample_user_id
    assert isinstance(exc_info.value.__cause__, ConnectionError)


def test_storage_faults_are_not_retried(mode_store, fake_convex, sample_user_id):
    fake_convex.fail = True
    with pytest.raises(StateStorageUnavailable):
        mode_store.get_mode(sample_user_id)
    assert fake_convex.calls == ["inputModes:getMode"]

# services/input_mode_service.py
import logging
import time
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from schema import InputMode, InputModeRecord

logger = logging.getLogger(__name__)

# Only the image prompt session expires; note/todo/expense modes wait until used or replaced.
MODE_TTL_MS: Dict[InputMode, int] = {
    InputMode.IMAGE: 10 * 60 * 1000,
}


class StateStorageUnavailable(Exception):
    """The input mode row could not be read, written or deleted."""

    def __init__(self, operation: str, user_id: str):
        super().__init__(f"Input mode storage unavailable during {operation} for user {user_id}")
        self.operation = operation
        self.user_id = user_id


class InputModeStore:
    """
    Owns the single "current input mode" row per user.

    Backed by three Convex functions that key the row by telegramChatId:
    inputModes:setMode (upsert), inputModes:getMode and inputModes:clearMode.
    Nothing else reads or writes that table.
    """

    def __init__(self, convex_client: Any, clock: Callable[[], float] = time.time):
        self.convex_client = convex_client
        self.clock = clock

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def set_mode(self, user_id: str, mode: InputMode) -> InputModeRecord:
        created_at = self._now_ms()
        ttl = MODE_TTL_MS.get(mode)
        record = InputModeRecord(
            user_id=str(user_id),
            mode=mode,
            created_at=created_at,
            expires_at=created_at + ttl if ttl else None,
        )
        payload = record.model_dump(by_alias=True, exclude_none=True, mode="json")
        try:
            self.convex_client.mutation("inputModes:setMode", payload)
        except Exception as e:
            logger.error(f"Error calling Convex inputModes:setMode for user {user_id}: {e}")
            raise StateStorageUnavailable("set_mode", str(user_id)) from e
        logger.info(f"User {user_id} entered input mode '{mode.value}'")
        return record

    def get_mode(self, user_id: str) -> Optional[InputModeRecord]:
        try:
            row = self.convex_client.query("inputModes:getMode", {"telegramChatId": str(user_id)})
        except Exception as e:
            logger.error(f"Error calling Convex inputModes:getMode for user {user_id}: {e}")
            raise StateStorageUnavailable("get_mode", str(user_id)) from e

        if not row:
            return None

        # Read-only: a stale row is reported as None and left for the next set_mode or clear_mode
        try:
            record = InputModeRecord.model_validate(row)
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable input mode row for user {user_id}: {e}")
            return None

        if record.expires_at is not None and record.expires_at <= self._now_ms():
            logger.info(f"Input mode '{record.mode.value}' for user {user_id} has expired")
            return None
        return record

    def clear_mode(self, user_id: str) -> None:
        try:
            self.convex_client.mutation("inputModes:clearMode", {"telegramChatId": str(user_id)})
        except Exception as e:
            logger.error(f"Error calling Convex inputModes:clearMode for user {user_id}: {e}")
            raise StateStorageUnavailable("clear_mode", str(user_id)) from e

# utils/period_utils.py
import calendar
import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, Optional, Tuple

logger = logging.getLogger(__name__)

WEEK_MS = 7 * 24 * 60 * 60 * 1000


def week_start(now: datetime) -> datetime:
    """Sunday 00:00 of the week containing now, on now's own clock."""
    days_since_sunday = (now.weekday() + 1) % 7
    start = now - timedelta(days=days_since_sunday)
    return start.replace(hour=0, minute=0, second=0, microsecond=0)


def week_bounds_ms(now: datetime) -> Tuple[int, int]:
    """
    Returns (this_week_start_ms, last_week_start_ms).
    Last week is the seven days before this week's Sunday.
    """
    this_week_start_ms = int(week_start(now).timestamp() * 1000)
    return this_week_start_ms, this_week_start_ms - WEEK_MS


def most_productive_weekday(timestamps_ms: Iterable[int], tzinfo=None) -> Optional[str]:
    """Name of the weekday holding the most activity timestamps, or None when there are none."""
    counts: Counter = Counter()
    for ts in timestamps_ms:
        try:
            counts[datetime.fromtimestamp(ts / 1000, tz=tzinfo).weekday()] += 1
        except (TypeError, ValueError, OverflowError):
            logger.warning(f"Ignoring unreadable activity timestamp: {ts}")
    if not counts:
        return None
    # Ties resolve Monday-first
    best_day = min(counts, key=lambda day: (-counts[day], day))
    return calendar.day_name[best_day]

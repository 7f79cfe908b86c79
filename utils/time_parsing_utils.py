# utils/time_parsing_utils.py
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from re import Match, Pattern
from typing import Callable, List, NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_HOUR = 9  # date-only expressions, bare "tomorrow" and "next week"
FALLBACK_DELAY = timedelta(hours=1)

REMINDER_KEYWORD_PATTERN = re.compile(r"\b(?:reminder|remainder)\s+at\b\s*", re.IGNORECASE)

# H[:MM] [am|pm], not followed by more digits, letters or another colon
_TIME_OF_DAY = r"(\d{1,2})(?::(\d{2}))?\s*(am|pm)?(?![\w:])"
_OPTIONAL_TIME_SUFFIX = r"(?:\s+(?:at\s+)?" + _TIME_OF_DAY + r")?"


@dataclass(frozen=True)
class ParsedTimeExpression:
    found: bool
    absolute_timestamp: Optional[int] = None  # epoch milliseconds
    remainder_text: Optional[str] = None
    scheduled_for: Optional[datetime] = None


NOT_FOUND = ParsedTimeExpression(found=False)


@dataclass(frozen=True)
class TimeMatch:
    when: datetime
    start: int
    end: int
    rule: str


class _Rule(NamedTuple):
    name: str
    pattern: Pattern
    resolve: Callable[[Match, datetime], datetime]
    # Looser phrases need a stricter pattern when searching free text
    search_pattern: Optional[Pattern] = None


def to_epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def user_timezone(offset_minutes: Optional[int]) -> timezone:
    return timezone(timedelta(minutes=offset_minutes or 0))


def user_now(offset_minutes: Optional[int] = 0, clock: Optional[Callable[[], datetime]] = None) -> datetime:
    """
    Current instant as an aware datetime on the user's wall clock.
    The offset is a fixed number of minutes from UTC.
    """
    current = clock() if clock else datetime.now(timezone.utc)
    return current.astimezone(user_timezone(offset_minutes))


def format_timestamp(timestamp_ms: int, offset_minutes: Optional[int] = 0, fmt: str = "%a, %b %d at %H:%M") -> str:
    try:
        return datetime.fromtimestamp(timestamp_ms / 1000, tz=user_timezone(offset_minutes)).strftime(fmt)
    except (TypeError, ValueError, OverflowError):
        return "N/A"


def _to_24_hour(hour: int, meridiem: Optional[str]) -> int:
    if not meridiem:
        return hour
    meridiem = meridiem.lower()
    if meridiem == "am" and hour == 12:
        return 0
    if meridiem == "pm" and 1 <= hour <= 11:
        return hour + 12
    return hour


def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _at_time_of_day(day: datetime, hour: int, minute: int) -> datetime:
    # timedelta lets hour 24+ or minute 60+ roll into the next day instead of raising
    return _start_of_day(day) + timedelta(hours=hour, minutes=minute)


def _calendar_day(year: int, month: int, day: int, like: datetime) -> datetime:
    """Midnight of year/month/day, rolling month and day overflow forward like date arithmetic does."""
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    first_of_month = like.replace(year=year, month=month, day=1, hour=0, minute=0, second=0, microsecond=0)
    return first_of_month + timedelta(days=day - 1)


def _optional_time(match: Match, hour_group: int) -> Tuple[int, int]:
    """(hour, minute) from an optional trailing time-of-day, defaulting to 09:00."""
    if match.group(hour_group) is None:
        return DEFAULT_HOUR, 0
    hour = _to_24_hour(int(match.group(hour_group)), match.group(hour_group + 2))
    return hour, int(match.group(hour_group + 1) or 0)


def _resolve_month_first_date(match: Match, now: datetime) -> datetime:
    month, day, year = int(match.group(1)), int(match.group(2)), int(match.group(3))
    hour, minute = _optional_time(match, 4)
    return _calendar_day(year, month, day, now) + timedelta(hours=hour, minutes=minute)


def _resolve_year_first_date(match: Match, now: datetime) -> datetime:
    year, month, day = int(match.group(1)), int(match.group(2)), int(match.group(3))
    hour, minute = _optional_time(match, 4)
    return _calendar_day(year, month, day, now) + timedelta(hours=hour, minutes=minute)


def _resolve_today_at(match: Match, now: datetime) -> datetime:
    hour = _to_24_hour(int(match.group(1)), match.group(3))
    return _at_time_of_day(now, hour, int(match.group(2) or 0))


def _resolve_tomorrow_at(match: Match, now: datetime) -> datetime:
    hour = _to_24_hour(int(match.group(1)), match.group(3))
    return _at_time_of_day(now + timedelta(days=1), hour, int(match.group(2) or 0))


def _resolve_tomorrow(match: Match, now: datetime) -> datetime:
    return _at_time_of_day(now + timedelta(days=1), DEFAULT_HOUR, 0)


def _resolve_next_week(match: Match, now: datetime) -> datetime:
    return _at_time_of_day(now + timedelta(days=7), DEFAULT_HOUR, 0)


def _resolve_in_hours(match: Match, now: datetime) -> datetime:
    return now + timedelta(hours=int(match.group(1)))


def _resolve_in_minutes(match: Match, now: datetime) -> datetime:
    return now + timedelta(minutes=int(match.group(1)))


def _resolve_clock_time(hour: int, minute: int, meridiem: Optional[str], now: datetime, guess_pm: bool = False) -> datetime:
    if meridiem:
        hour = _to_24_hour(hour, meridiem)
    elif guess_pm and hour <= 12 and now.hour >= 12:
        # Guess: "at 5" typed in the afternoon means 17:00
        hour += 12
    candidate = _at_time_of_day(now, hour, minute)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def _resolve_hour_minute_meridiem(match: Match, now: datetime) -> datetime:
    return _resolve_clock_time(int(match.group(1)), int(match.group(2)), match.group(3), now)


def _resolve_hour_meridiem(match: Match, now: datetime) -> datetime:
    return _resolve_clock_time(int(match.group(1)), 0, match.group(2), now)


def _resolve_hour_minute(match: Match, now: datetime) -> datetime:
    return _resolve_clock_time(int(match.group(1)), int(match.group(2)), None, now)


def _resolve_bare_hour(match: Match, now: datetime) -> datetime:
    return _resolve_clock_time(int(match.group(1)), 0, None, now, guess_pm=True)


def _compile(pattern: str) -> Pattern:
    return re.compile(pattern, re.IGNORECASE)


# Order matters: specific absolute dates must win over looser relative phrases.
TIME_RULES: List[_Rule] = [
    _Rule("date_m:d:y", _compile(r"\b(\d{1,2}):(\d{1,2}):(\d{4})(?!\d)" + _OPTIONAL_TIME_SUFFIX), _resolve_month_first_date),
    _Rule("date_m/d/y", _compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})(?!\d)" + _OPTIONAL_TIME_SUFFIX), _resolve_month_first_date),
    _Rule("date_y-m-d", _compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})(?!\d)" + _OPTIONAL_TIME_SUFFIX), _resolve_year_first_date),
    _Rule("today_at", _compile(r"\btoday\s+(?:at\s+)?" + _TIME_OF_DAY), _resolve_today_at),
    _Rule("tomorrow_at", _compile(r"\btomorrow\s+(?:at\s+)?" + _TIME_OF_DAY), _resolve_tomorrow_at),
    _Rule("tomorrow", _compile(r"\btomorrow\b"), _resolve_tomorrow),
    _Rule("next_week", _compile(r"\bnext\s+week\b"), _resolve_next_week),
    _Rule("in_hours", _compile(r"\bin\s+(\d+)\s+hours?\b"), _resolve_in_hours),
    _Rule("in_minutes", _compile(r"\bin\s+(\d+)\s+(?:minutes?|mins?)\b"), _resolve_in_minutes),
    _Rule("h:mm_meridiem", _compile(r"\b(?:at\s+)?(\d{1,2}):(\d{2})\s*(am|pm)\b"), _resolve_hour_minute_meridiem),
    _Rule("h_meridiem", _compile(r"\b(?:at\s+)?(\d{1,2})\s*(am|pm)\b"), _resolve_hour_meridiem),
    _Rule("h:mm", _compile(r"\b(?:at\s+)?(\d{1,2}):(\d{2})(?![\w:])"), _resolve_hour_minute),
    _Rule(
        "bare_hour",
        _compile(r"\b(?:at\s+)?(\d{1,2})(?![\w:])"),
        _resolve_bare_hour,
        search_pattern=_compile(r"\bat\s+(\d{1,2})(?![\w:])"),
    ),
]


def match_time_phrase(text: str, now: datetime, anchored: bool = False) -> Optional[TimeMatch]:
    """
    Runs the ordered rule list against text. The first rule that matches wins.
    anchored=True requires the time phrase to start at the beginning of text,
    otherwise the phrase may appear anywhere.
    Returns None when no rule matches; never raises.
    """
    if not text:
        return None

    for rule in TIME_RULES:
        if anchored:
            match = rule.pattern.match(text)
        else:
            match = (rule.search_pattern or rule.pattern).search(text)
        if not match:
            continue
        try:
            when = rule.resolve(match, now)
        except (ValueError, OverflowError) as e:
            logger.debug(f"Rule '{rule.name}' matched '{match.group(0)}' but produced no usable date: {e}")
            continue
        logger.debug(f"Rule '{rule.name}' matched '{match.group(0)}' -> {when.isoformat()}")
        return TimeMatch(when=when, start=match.start(), end=match.end(), rule=rule.name)

    return None


def _clean_remainder(text: str) -> str:
    text = re.sub(r"\s+", " ", text).strip()
    return re.sub(r"^[\s,;\-]+|[\s,;\-]+$", "", text)


def _found(when: datetime, remainder: str) -> ParsedTimeExpression:
    return ParsedTimeExpression(
        found=True,
        absolute_timestamp=to_epoch_ms(when),
        remainder_text=_clean_remainder(remainder),
        scheduled_for=when,
    )


def parse_time_expression(text: str, now: datetime, strict: bool = True) -> ParsedTimeExpression:
    """
    Extracts a time expression from free text.

    strict=True: only text opted in with "reminder at" / "remainder at" is
    parsed. The phrase right after "at" must match one of the time rules;
    the keyword and the matched phrase are stripped from remainder_text.
    Without the keyword, or when the phrase matches no rule, found is False.

    strict=False: the rules are searched anywhere in the text and an
    unrecognized text resolves to now + 1 hour, so found is always True.
    """
    if text is None:
        text = ""

    if strict:
        keyword = REMINDER_KEYWORD_PATTERN.search(text)
        if not keyword:
            return NOT_FOUND
        phrase = text[keyword.end():]
        match = match_time_phrase(phrase, now, anchored=True)
        if match is None:
            logger.info(f"Reminder keyword present but no time expression recognized in '{phrase}'")
            return NOT_FOUND
        return _found(match.when, text[:keyword.start()] + " " + phrase[match.end:])

    match = match_time_phrase(text, now)
    if match is None:
        logger.info(f"No time expression in '{text}', defaulting to {FALLBACK_DELAY} from now")
        return _found(now + FALLBACK_DELAY, text)
    return _found(match.when, text[:match.start] + " " + text[match.end:])

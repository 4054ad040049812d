import re
from datetime import datetime
from typing import Optional

from dateutil import parser as dateparser

MINUTES_PER_DAY = 24 * 60

# hours 1-6 without am/pm read as afternoon/evening; 7-12 as written
AFTERNOON_BARE_HOURS = range(1, 7)

CLOCK_RE = re.compile(r"^(?:[01]\d|2[0-3]):[0-5]\d$")
_TOKEN_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?$")
_REFERENCE_DAY = datetime(2000, 1, 1)
_CLOCK_HINT_RE = re.compile(r"\d:\d|\d\s*[ap]\.?m\b", re.IGNORECASE)
NAMED_TIMES = {"noon": "12:00", "midnight": "00:00"}


def is_clock(value) -> bool:
    return isinstance(value, str) and bool(CLOCK_RE.match(value))


def _meridiem_flag(meridiem: Optional[str]) -> Optional[str]:
    if not meridiem:
        return None
    flag = meridiem.replace(".", "").strip().lower()
    return flag if flag in ("am", "pm") else None


def normalize_time(token: str, meridiem: Optional[str] = None) -> Optional[str]:
    """
    Turn "H" / "H:MM" plus an optional am/pm marker into "HH:MM" (24h).
    Returns None when the token is not a valid clock reading.
    """
    if not token:
        return None
    m = _TOKEN_RE.match(token.strip())
    if not m:
        return None
    raw_hour, raw_minute = m.group(1), m.group(2)
    hour = int(raw_hour)
    minute = int(raw_minute) if raw_minute is not None else 0
    if minute > 59:
        return None

    flag = _meridiem_flag(meridiem)
    if meridiem and flag is None:
        return None
    if flag:
        if not 1 <= hour <= 12:
            return None
        if flag == "am":
            hour = 0 if hour == 12 else hour
        else:
            hour = 12 if hour == 12 else hour + 12
    else:
        if hour > 23:
            return None
        explicit_24h = raw_hour.startswith("0") and len(raw_hour) == 2
        if not explicit_24h and hour in AFTERNOON_BARE_HOURS:
            hour += 12
    return f"{hour:02d}:{minute:02d}"


def _to_minutes(clock: str) -> int:
    hours, minutes = clock.split(":")
    return int(hours) * 60 + int(minutes)


def _from_minutes(total: int) -> str:
    total %= MINUTES_PER_DAY
    return f"{total // 60:02d}:{total % 60:02d}"


def calculate_end_time(start_time: str, duration_minutes: int) -> str:
    return _from_minutes(_to_minutes(start_time) + int(duration_minutes))


def minutes_between(start_time: str, end_time: str) -> int:
    return (_to_minutes(end_time) - _to_minutes(start_time)) % MINUTES_PER_DAY


def coerce_clock(value) -> Optional[str]:
    """Best-effort conversion of model output like "6pm" or "18:00:00"."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if is_clock(text):
        return text
    if text.lower() in NAMED_TIMES:
        return NAMED_TIMES[text.lower()]
    if _TOKEN_RE.match(text):
        return normalize_time(text)
    # durations and bare dates carry no time of day
    if not _CLOCK_HINT_RE.search(text):
        return None
    try:
        parsed = dateparser.parse(text, default=_REFERENCE_DAY)
    except (ValueError, OverflowError):
        return None
    return parsed.strftime("%H:%M")

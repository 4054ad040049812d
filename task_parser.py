# task_parser.py: deterministic extraction of tasks from free-text plans
import logging
import re
from collections import namedtuple
from fractions import Fraction
from typing import Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from time_normalizer import NAMED_TIMES, calculate_end_time, is_clock, minutes_between, normalize_time

logger = logging.getLogger("task_parser")
logger.setLevel(logging.INFO)

MAX_LINE_LENGTH = 200
MIN_TITLE_LENGTH = 3
MAX_TITLE_LENGTH = 200
PRIORITY_LEVELS = ("high", "medium", "low")
CONFIDENCE_RATIO = 0.5

_MARKER_RE = re.compile(r"^(?:•\s*|[-*]\s+|\d+[.)]\s+)")
_STRAY_BULLET_RE = re.compile(r"^[-*•]+(?=\S)")
_READER_RE = re.compile(r"\b(?:you|your|yours)\b", re.IGNORECASE)
_EMPHASIS_RE = re.compile(r"\*\*|__")
_EMPTY_BRACKETS_RE = re.compile(r"\(\s*\)|\[\s*\]")
_TITLE_TRIM = " \t,;:.!*_-–—"
_DANGLING_RE = re.compile(r"\s+(?:at|by|from|@)$", re.IGNORECASE)

_FILLER_RE = re.compile(
    r"^(?:here\b|i\b|we\b|based on\b|let me\b|let['’]s\b|sure\b|okay\b|of course\b"
    r"|certainly\b|absolutely\b|great\b|hope\b|feel free\b|good luck\b|note\b"
    r"|you can\b|you could\b|could you\b|would you\b|can you\b"
    r"|this\b|these\b|that\b|it\b|it['’]s\b|there\b|your\b)",
    re.IGNORECASE,
)

_LEVEL = r"(?P<level>high|medium|low)"
_PRIORITY_PATTERNS = (
    re.compile(r"[(\[]\s*" + _LEVEL + r"[\s-]*priority\s*[)\]]", re.IGNORECASE),
    re.compile(r"[(\[]\s*priority\s*[:=-]?\s*" + _LEVEL + r"\s*[)\]]", re.IGNORECASE),
    re.compile(r"^\s*" + _LEVEL + r"[\s-]*priority\s*[:\-–]\s*", re.IGNORECASE),
    re.compile(r"(?:^|[\s,;\-–]+)" + _LEVEL + r"[\s-]*priority\s*[.!]?\s*$", re.IGNORECASE),
)

_DURATION_RE = re.compile(
    r"\bfor\s+(?:"
    r"(?P<half>half\s+an\s+hour)(?![a-z])"
    r"|(?P<hours>\d+(?:\.\d+)?\s*|an?\s+)(?:hours?|hrs?|h)(?![a-z])"
    r"(?:\s*(?:and\s+)?(?P<extra>\d+)\s*(?:minutes?|mins?|m)(?![a-z]))?"
    r"|(?P<minutes>\d+)\s*(?:minutes?|mins?|m)(?![a-z])"
    r")",
    re.IGNORECASE,
)

_MERIDIEM = r"[ap]\.?m\.?"
_RANGE_RE = re.compile(
    r"(?P<prefix>\b(?:from|at)\s+)?"
    r"(?<![\d:.])(?P<start>\d{1,2}(?::\d{2})?)\s*(?P<start_mer>" + _MERIDIEM + r")?"
    r"\s*(?:-|–|—|\bto\b|\buntil\b|\btill\b)\s*"
    r"(?P<end>\d{1,2}(?::\d{2})?)\s*(?P<end_mer>" + _MERIDIEM + r")?(?![\w:])",
    re.IGNORECASE,
)
_TIME_RE = re.compile(
    r"(?P<at>\bat\s+|@\s*)?"
    r"(?:\b(?P<word>noon|midnight)\b"
    r"|(?<![\d:.])(?P<clock>\d{1,2}(?::\d{2})?)(?:\s*(?P<meridiem>" + _MERIDIEM + r"))?(?![\w:]))",
    re.IGNORECASE,
)

ExtractedFields = namedtuple(
    "ExtractedFields", ["title", "start_time", "estimated_duration", "priority"]
)
Matcher = Callable[[str], Optional[Tuple[object, str]]]

_CAMEL_KEYS = {
    "start_time": "startTime",
    "end_time": "endTime",
    "estimated_duration": "estimatedDuration",
    "sync_to_calendar": "syncToCalendar",
}


class ParsedTask:
    def __init__(self, title: str, start_time: Optional[str] = None, end_time: Optional[str] = None,
                 estimated_duration: Optional[int] = None, priority: Optional[str] = None,
                 description: Optional[str] = None, sync_to_calendar: Optional[bool] = None):
        self.title = title
        self.description = description
        self.start_time = start_time
        self.end_time = end_time
        self.estimated_duration = estimated_duration
        self.priority = priority
        self.sync_to_calendar = sync_to_calendar

    def to_dict(self) -> Dict:
        return {k: v for k, v in self.__dict__.items() if v is not None}

    @classmethod
    def from_dict(cls, data: Mapping) -> "ParsedTask":
        return cls(
            title=data.get("title"),
            description=data.get("description"),
            start_time=_field(data, "start_time"),
            end_time=_field(data, "end_time"),
            estimated_duration=_field(data, "estimated_duration"),
            priority=data.get("priority"),
            sync_to_calendar=_field(data, "sync_to_calendar"),
        )

    def __eq__(self, other):
        if not isinstance(other, ParsedTask):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"ParsedTask({self.to_dict()!r})"


def _field(data: Mapping, key: str):
    value = data.get(key)
    if value is None and key in _CAMEL_KEYS:
        value = data.get(_CAMEL_KEYS[key])
    return value


def _as_mapping(task) -> Optional[Mapping]:
    if isinstance(task, ParsedTask):
        return task.to_dict()
    if isinstance(task, Mapping):
        return task
    return None


# ---- line classification ----

def _looks_like_plain_task(line: str) -> bool:
    if len(line) > 4 and line.startswith(("**", "__")) and line.endswith(("**", "__")):
        # a bold-only line is a section label
        return False
    text = line.strip("*_ ").replace("’", "'")
    if text.endswith(("?", ":")):
        return False
    if _FILLER_RE.match(text):
        return False
    if text.endswith((".", "!")) and _READER_RE.search(text):
        # a finished sentence addressed to the reader is commentary
        return False
    return sum(ch.isalpha() for ch in text) >= MIN_TITLE_LENGTH


def is_candidate_line(line: str) -> bool:
    line = (line or "").strip()
    if not line or line.startswith("#"):
        return False
    marker = _MARKER_RE.match(line)
    body = line[marker.end():] if marker else line
    if len(body) > MAX_LINE_LENGTH:
        return False
    if marker:
        return bool(body.strip())
    return _looks_like_plain_task(line)


def iter_candidate_lines(text: Optional[str]) -> Iterator[str]:
    """Yield trimmed lines that plausibly describe a task, in source order."""
    for raw in (text or "").splitlines():
        line = raw.strip()
        if not line:
            continue
        if is_candidate_line(line):
            yield line
        else:
            logger.debug("Skipping non-task line: %r", line[:60])


# ---- field extraction ----

def _cut(text: str, match) -> str:
    return text[:match.start()] + " " + text[match.end():]


def match_priority(text: str) -> Optional[Tuple[str, str]]:
    for pattern in _PRIORITY_PATTERNS:
        m = pattern.search(text)
        if m:
            return m.group("level").lower(), _cut(text, m)
    return None


def match_duration(text: str) -> Optional[Tuple[int, str]]:
    m = _DURATION_RE.search(text)
    if not m:
        return None
    if m.group("half"):
        minutes = 30
    elif m.group("hours"):
        raw_hours = m.group("hours").strip().lower()
        hours = Fraction(1) if raw_hours in ("a", "an") else Fraction(raw_hours)
        minutes = int(round(hours * 60)) + int(m.group("extra") or 0)
    else:
        minutes = int(m.group("minutes"))
    return minutes, _cut(text, m)


def _resolve_range(m) -> Optional[Tuple[str, str]]:
    start_mer, end_mer = m.group("start_mer"), m.group("end_mer")
    if not (m.group("prefix") or start_mer or end_mer or ":" in m.group(0)):
        return None
    end = normalize_time(m.group("end"), end_mer)
    if end is None:
        return None
    if start_mer or not end_mer:
        start = normalize_time(m.group("start"), start_mer)
    else:
        # "9-11am": the start borrows the end's meridiem unless that puts it after the end
        start = normalize_time(m.group("start"), end_mer)
        if start is None or start > end:
            other = "am" if end_mer.lower().startswith("p") else "pm"
            start = normalize_time(m.group("start"), other) or start
    if start is None:
        return None
    return start, end


def _resolve_time(m) -> Optional[str]:
    if m.group("word"):
        return NAMED_TIMES[m.group("word").lower()]
    clock, meridiem = m.group("clock"), m.group("meridiem")
    if not (m.group("at") or meridiem or ":" in clock):
        return None
    return normalize_time(clock, meridiem)


def _first(pattern, text, resolve):
    for m in pattern.finditer(text):
        value = resolve(m)
        if value is not None:
            return m, value
    return None, None


def match_time(text: str) -> Optional[Tuple[Tuple[str, Optional[str]], str]]:
    """First clock expression in the line; a range yields (start, end)."""
    range_match, span = _first(_RANGE_RE, text, _resolve_range)
    time_match, start = _first(_TIME_RE, text, _resolve_time)
    if range_match and (time_match is None or range_match.start() <= time_match.start()):
        return span, _cut(text, range_match)
    if time_match:
        return (start, None), _cut(text, time_match)
    return None


MATCHERS: Tuple[Tuple[str, Matcher], ...] = (
    ("priority", match_priority),
    ("duration", match_duration),
    ("time", match_time),
)


def _clean_title(text: str) -> str:
    text = _EMPTY_BRACKETS_RE.sub(" ", text)
    text = re.sub(r"\s+", " ", text).strip(_TITLE_TRIM)
    return _DANGLING_RE.sub("", text).strip(_TITLE_TRIM)


def extract_fields(line: str) -> ExtractedFields:
    text = _MARKER_RE.sub("", (line or "").strip(), count=1)
    text = _EMPHASIS_RE.sub("", text)
    text = _STRAY_BULLET_RE.sub("", text)
    found = {}
    for name, matcher in MATCHERS:
        result = matcher(text)
        if result is None:
            continue
        found[name], text = result

    start_time = range_end = None
    if "time" in found:
        start_time, range_end = found["time"]
    duration = found.get("duration")
    if duration is None and start_time and range_end:
        duration = minutes_between(start_time, range_end)
    return ExtractedFields(
        title=_clean_title(text),
        start_time=start_time,
        estimated_duration=duration,
        priority=found.get("priority"),
    )


# ---- entry points ----

def parse_tasks_from_ai_response(response_text: Optional[str]) -> List[ParsedTask]:
    """
    Parse a free-text plan (bullets, numbered items, short sentences) into tasks.
    Lines that don't read like tasks are skipped; nothing here raises on bad text.
    """
    tasks: List[ParsedTask] = []
    for line in iter_candidate_lines(response_text):
        fields = extract_fields(line)
        if len(fields.title) < MIN_TITLE_LENGTH:
            logger.debug("Dropping line with no usable title: %r", line[:60])
            continue
        end_time = None
        if fields.start_time and fields.estimated_duration is not None:
            end_time = calculate_end_time(fields.start_time, fields.estimated_duration)
        tasks.append(ParsedTask(
            title=fields.title,
            start_time=fields.start_time,
            end_time=end_time,
            estimated_duration=fields.estimated_duration,
            priority=fields.priority,
        ))
    logger.debug("Parsed %d task(s) from response", len(tasks))
    return tasks


def validate_task(task) -> bool:
    data = _as_mapping(task)
    if data is None:
        return False
    title = data.get("title")
    if not isinstance(title, str) or not MIN_TITLE_LENGTH <= len(title) <= MAX_TITLE_LENGTH:
        return False
    for key in ("start_time", "end_time"):
        value = _field(data, key)
        if value is not None and not is_clock(value):
            return False
    return True


def is_confident_parse(tasks: Iterable) -> bool:
    """
    Confident when something was found, every task validates, and at least
    half of them carry a start time, a duration or an explicit priority.
    """
    rows = [_as_mapping(t) for t in tasks]
    if not rows or not all(validate_task(r) for r in rows):
        return False
    detailed = [
        r for r in rows
        if _field(r, "start_time") or _field(r, "estimated_duration") is not None or r.get("priority")
    ]
    return len(detailed) / len(rows) >= CONFIDENCE_RATIO

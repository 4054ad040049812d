import json
import logging
import os
from typing import List, Optional

from openai import OpenAI

from observability import emit_event
from task_parser import PRIORITY_LEVELS, ParsedTask, validate_task
from time_normalizer import calculate_end_time, coerce_clock, minutes_between

logger = logging.getLogger("llm_nlu")
logger.setLevel(logging.INFO)

USE_OPENAI = os.environ.get("USE_OPENAI", "false").lower() in ("1", "true", "yes")
OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY")
OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")

OPENAI_CLIENT = None
if USE_OPENAI and OPENAI_API_KEY:
    OPENAI_CLIENT = OpenAI(api_key=OPENAI_API_KEY)
else:
    logger.info("OpenAI refinement disabled; local task parsing only.")

SYSTEM_PROMPT = (
    "You are a task parser. Turn the user's priorities into JSON of the form "
    '{"tasks": [{"title": "...", "startTime": "HH:MM", "endTime": "HH:MM", '
    '"estimatedDuration": 60, "priority": "high|medium|low"}]}. '
    "title is required, times are 24-hour, estimatedDuration is in minutes, "
    "omit anything the user did not say."
)


def _coerce_duration(value) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        minutes = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return None
    return minutes if minutes >= 0 else None


def _coerce_task(item) -> Optional[ParsedTask]:
    if not isinstance(item, dict):
        return None
    raw = ParsedTask.from_dict(item)
    title = raw.title.strip() if isinstance(raw.title, str) else ""
    start = coerce_clock(raw.start_time)
    end = coerce_clock(raw.end_time)
    duration = _coerce_duration(raw.estimated_duration)
    priority = raw.priority.lower() if isinstance(raw.priority, str) else None
    if priority not in PRIORITY_LEVELS:
        priority = None

    if start and duration is not None:
        end = calculate_end_time(start, duration)
    elif start and end:
        duration = minutes_between(start, end)
    elif end:
        logger.debug("Dropping end time without a start time for %r", title)
        end = None

    description = raw.description if isinstance(raw.description, str) else None
    sync = raw.sync_to_calendar if isinstance(raw.sync_to_calendar, bool) else None
    return ParsedTask(title=title, start_time=start, end_time=end, estimated_duration=duration,
                      priority=priority, description=description, sync_to_calendar=sync)


def _read_tasks(content: str) -> List[ParsedTask]:
    start = content.find("{")
    if start == -1:
        raise ValueError("model reply contained no JSON object")
    parsed = json.loads(content[start:])
    items = parsed.get("tasks") if isinstance(parsed, dict) else None
    if not isinstance(items, list):
        raise ValueError("model reply has no 'tasks' list")
    tasks = [_coerce_task(item) for item in items]
    return [t for t in tasks if t is not None and validate_task(t)]


def refine_tasks(text: str, locally_parsed: Optional[List[ParsedTask]] = None, client=None) -> List[ParsedTask]:
    """
    Ask the model to structure `text`. Any failure (no client, API error,
    bad JSON, nothing usable) returns the locally parsed tasks instead.
    """
    fallback = list(locally_parsed or [])
    client = client or OPENAI_CLIENT
    if client is None or not (text or "").strip():
        return fallback

    try:
        completion = client.chat.completions.create(
            model=OPENAI_MODEL,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": f"Parse these priorities:\n\n{text}"},
            ],
            temperature=0.2,
            response_format={"type": "json_object"},
        )
        content = completion.choices[0].message.content or ""
        tasks = _read_tasks(content)
    except Exception as e:
        logger.exception("LLM task refinement failed, using local parse: %s", e)
        emit_event("refine_tasks_failed", {"error": str(e), "fallback_count": len(fallback)})
        return fallback

    if not tasks:
        logger.info("LLM refinement returned no usable tasks; using local parse.")
        return fallback
    emit_event("refine_tasks", {"count": len(tasks), "model": OPENAI_MODEL})
    return tasks

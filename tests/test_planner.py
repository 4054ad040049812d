import json

import pytest

import observability
from planner import NO_TASKS_MESSAGE, TaskPlanner
from task_parser import ParsedTask


class RecordingRefiner:
    def __init__(self, result=None):
        self.result = result
        self.calls = []

    def __call__(self, text, locally_parsed=None):
        self.calls.append((text, locally_parsed))
        return locally_parsed if self.result is None else self.result


def test_confident_local_parse_skips_refiner():
    refiner = RecordingRefiner()
    planner = TaskPlanner(refiner=refiner)

    result = planner.plan("• Meeting at 10am\n• Gym session at 6pm (high priority)")

    assert refiner.calls == []
    assert result["source"] == "local"
    assert result["confident"] is True
    assert result["tasks"] == [
        {"title": "Meeting", "start_time": "10:00", "priority": "medium", "sync_to_calendar": False},
        {"title": "Gym session", "start_time": "18:00", "priority": "high", "sync_to_calendar": False},
    ]
    assert "message" not in result


def test_thin_local_parse_asks_refiner():
    refiner = RecordingRefiner([ParsedTask("Work on AI feature", start_time="10:00", priority="high")])
    planner = TaskPlanner(refiner=refiner)

    result = planner.plan("• Work on AI feature\n• Go to the gym")

    assert len(refiner.calls) == 1
    text, local = refiner.calls[0]
    assert "Go to the gym" in text
    assert [t.title for t in local] == ["Work on AI feature", "Go to the gym"]
    assert result["source"] == "llm"
    assert result["confident"] is False
    assert result["tasks"][0]["priority"] == "high"


def test_refiner_returning_local_tasks_is_reported_as_fallback():
    planner = TaskPlanner(refiner=RecordingRefiner())

    result = planner.plan("• Work on AI feature\n• Go to the gym")

    assert result["source"] == "fallback"
    assert [t["title"] for t in result["tasks"]] == ["Work on AI feature", "Go to the gym"]
    assert all(t["priority"] == "medium" for t in result["tasks"])


def test_empty_plan_carries_message():
    planner = TaskPlanner(refiner=RecordingRefiner([]))

    result = planner.plan("Could you tell me more about your day?")

    assert result["tasks"] == []
    assert result["message"] == NO_TASKS_MESSAGE


def test_custom_default_priority():
    planner = TaskPlanner(refiner=RecordingRefiner(), default_priority="low")

    result = planner.plan("• Pay rent")

    assert result["tasks"][0]["priority"] == "low"


@pytest.mark.parametrize("text", ["", "   \n", None])
def test_blank_text_is_rejected(text):
    with pytest.raises(ValueError):
        TaskPlanner(refiner=RecordingRefiner()).plan(text)


def test_plan_emits_event():
    TaskPlanner(refiner=RecordingRefiner()).plan("• Meeting at 10am")

    with open(observability.LOG_FILE, encoding="utf-8") as f:
        events = [json.loads(line) for line in f]
    assert events[-1]["name"] == "plan_parsed"
    assert events[-1]["payload"] == {"source": "local", "count": 1, "confident": True}

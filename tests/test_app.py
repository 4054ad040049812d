from fastapi.testclient import TestClient

import app as app_module
from planner import TaskPlanner


def _client():
    return TestClient(app_module.app)


def test_health():
    response = _client().get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_parse_endpoint_returns_tasks_with_validity():
    response = _client().post("/tasks/parse", json={"text": "• Work on feature for 2 hours at 10am"})

    body = response.json()
    assert response.status_code == 200
    assert body["status"] == "ok"
    assert body["result"]["tasks"] == [
        {
            "title": "Work on feature",
            "start_time": "10:00",
            "end_time": "12:00",
            "estimated_duration": 120,
            "valid": True,
        }
    ]
    assert body["result"]["confident"] is True


def test_parse_endpoint_with_prose_returns_nothing():
    response = _client().post("/tasks/parse", json={"text": "I understand you want to plan your day."})

    assert response.json()["result"] == {"tasks": [], "confident": False}


def test_validate_endpoint():
    client = _client()

    short = client.post("/tasks/validate", json={"task": {"title": "ab"}})
    ok = client.post(
        "/tasks/validate",
        json={"task": {"title": "Task", "startTime": "14:30", "endTime": "15:00"}},
    )

    assert short.json()["result"] == {"valid": False}
    assert ok.json()["result"] == {"valid": True}


def test_plan_endpoint(monkeypatch):
    monkeypatch.setattr(app_module, "planner", TaskPlanner(refiner=lambda text, locally_parsed=None: locally_parsed))

    response = _client().post("/tasks/plan", json={"text": "• Fix critical bug (high priority)"})

    result = response.json()["result"]
    assert result["source"] == "local"
    assert result["tasks"] == [{"title": "Fix critical bug", "priority": "high", "sync_to_calendar": False}]


def test_plan_endpoint_rejects_blank_text():
    response = _client().post("/tasks/plan", json={"text": "   "})

    assert response.status_code == 400
    assert response.json()["detail"] == "Please enter your priorities for today."


def test_plan_endpoint_hides_unexpected_errors(monkeypatch):
    def broken(text, locally_parsed=None):
        raise RuntimeError("boom")

    monkeypatch.setattr(app_module, "planner", TaskPlanner(refiner=broken))

    response = _client().post("/tasks/plan", json={"text": "• Go to the gym"})

    assert response.json() == {"status": "error", "message": "Internal server error."}

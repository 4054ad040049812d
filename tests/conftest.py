import pytest

import observability


@pytest.fixture(autouse=True)
def _isolate_events(monkeypatch, tmp_path):
    monkeypatch.setattr(observability, "LOG_FILE", str(tmp_path / "events.log"))
    monkeypatch.setattr(observability, "LOCAL_SINK_ENABLED", True)
    monkeypatch.setattr(observability, "LANGFUSE_API_KEY", None)
    monkeypatch.setattr(observability, "LANGFUSE_API_URL", None)

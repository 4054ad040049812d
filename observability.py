import json
import logging
import os
import threading
from datetime import datetime, timezone

import requests

logger = logging.getLogger("observability")

LOG_FILE = os.environ.get("OBS_LOG_FILE", "events.log")
LOCAL_SINK_ENABLED = os.environ.get("OBS_DISABLED", "false").lower() not in ("1", "true", "yes")
LOCK = threading.Lock()

LANGFUSE_API_KEY = os.environ.get("LANGFUSE_API_KEY")
LANGFUSE_API_URL = os.environ.get("LANGFUSE_API_URL")  # e.g. https://api.langfuse.com


def _write_local(event: dict):
    serialized = json.dumps(event, ensure_ascii=False, default=str)
    with LOCK:
        try:
            with open(LOG_FILE, "a", encoding="utf-8") as f:
                f.write(serialized + "\n")
        except OSError as e:
            logger.debug("Failed to write local event: %s", e)


def _forward(event: dict):
    headers = {"x-api-key": LANGFUSE_API_KEY, "Content-Type": "application/json"}
    try:
        requests.post(f"{LANGFUSE_API_URL.rstrip('/')}/events", headers=headers, json=event, timeout=2)
    except requests.RequestException as e:
        logger.debug("Langfuse emit failed: %s", e)


def emit_event(name: str, payload: dict):
    event = {
        "time": datetime.now(timezone.utc).isoformat(),
        "name": name,
        "payload": payload,
    }
    if LOCAL_SINK_ENABLED:
        _write_local(event)
    if LANGFUSE_API_KEY and LANGFUSE_API_URL:
        _forward(event)
    return event

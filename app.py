from dotenv import load_dotenv
load_dotenv()

import logging
import traceback
from typing import Any, Dict

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from observability import emit_event
from planner import TaskPlanner
from task_parser import is_confident_parse, parse_tasks_from_ai_response, validate_task

logger = logging.getLogger("task_planner_api")
logging.basicConfig(level=logging.INFO)

app = FastAPI(title="Task Plan Parser")

planner = TaskPlanner()


class TextRequest(BaseModel):
    text: str = ""


class ValidateRequest(BaseModel):
    task: Dict[str, Any]


def _internal_error(where: str, e: Exception) -> dict:
    logger.exception("Unhandled exception in %s: %s", where, e)
    emit_event("error", {"where": where, "error": str(e), "trace": traceback.format_exc()})
    return {"status": "error", "message": "Internal server error."}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/tasks/parse")
async def parse_tasks(req: TextRequest):
    try:
        tasks = parse_tasks_from_ai_response(req.text)
        emit_event("tasks_parsed", {"count": len(tasks)})
        items = [dict(t.to_dict(), valid=validate_task(t)) for t in tasks]
        return {"status": "ok", "result": {"tasks": items, "confident": is_confident_parse(tasks)}}
    except Exception as e:
        return _internal_error("/tasks/parse", e)


@app.post("/tasks/validate")
async def validate(req: ValidateRequest):
    return {"status": "ok", "result": {"valid": validate_task(req.task)}}


@app.post("/tasks/plan")
async def plan(req: TextRequest):
    try:
        result = planner.plan(req.text)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        return _internal_error("/tasks/plan", e)
    return {"status": "ok", "result": result}

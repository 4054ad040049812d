import logging
from typing import Callable, Dict, List, Optional

from llm_nlu import refine_tasks
from observability import emit_event
from task_parser import ParsedTask, is_confident_parse, parse_tasks_from_ai_response

logger = logging.getLogger("planner")
logger.setLevel(logging.INFO)

NO_TASKS_MESSAGE = "Could not parse tasks. Please be more specific about times and priorities."


class TaskPlanner:
    def __init__(self, refiner: Callable[..., List[ParsedTask]] = None, default_priority: str = "medium"):
        self.refiner = refiner or refine_tasks
        self.default_priority = default_priority

    def _to_plan_item(self, task: ParsedTask) -> Dict:
        item = task.to_dict()
        item.setdefault("priority", self.default_priority)
        item.setdefault("sync_to_calendar", False)
        return item

    def plan(self, text: Optional[str]) -> Dict:
        """Local parse first; only ask the model when the local result looks thin."""
        if not text or not text.strip():
            raise ValueError("Please enter your priorities for today.")

        local = parse_tasks_from_ai_response(text)
        confident = is_confident_parse(local)
        if confident:
            tasks, source = local, "local"
        else:
            tasks = self.refiner(text, locally_parsed=local)
            source = "fallback" if tasks == local else "llm"

        logger.info(f"Planned {len(tasks)} task(s) from {source} parse")
        emit_event("plan_parsed", {"source": source, "count": len(tasks), "confident": confident})
        result = {
            "tasks": [self._to_plan_item(t) for t in tasks],
            "source": source,
            "confident": confident,
        }
        if not tasks:
            result["message"] = NO_TASKS_MESSAGE
        return result

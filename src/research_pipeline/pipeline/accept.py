"""Accept path: validate a research request, record it, queue it."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable
from uuid import uuid4

from research_pipeline.lifecycle import TaskStatus
from research_pipeline.pipeline.status import mark_failed
from research_pipeline.storage.base import TaskStorage
from research_pipeline.work_queue.base import WorkQueue
from research_pipeline.work_queue.models import WorkItem

logger = logging.getLogger(__name__)

INVALID_JSON = "Invalid JSON in request body"
MISSING_TOPIC = "Missing required field: topic (must be a string)"
CREATE_FAILED = "Failed to create task record"
PUBLISH_FAILED = "Failed to place work item on queue"
ACCEPTED_MESSAGE = "Research task queued for processing"


@dataclass(frozen=True)
class AcceptResult:
    status_code: int
    body: dict[str, Any] = field(default_factory=dict)


def _error(status_code: int, message: str) -> AcceptResult:
    return AcceptResult(status_code=status_code, body={"error": message})


class AcceptHandler:
    """Stateless request handler; all effects go to the task store and the queue."""

    def __init__(
        self,
        storage: TaskStorage,
        queue: WorkQueue,
        *,
        topic_max_length: int = 500,
        id_factory: Callable[[], str] = lambda: str(uuid4()),
    ) -> None:
        self.storage = storage
        self.queue = queue
        self.topic_max_length = topic_max_length
        self.id_factory = id_factory

    def accept(self, raw_body: str | bytes | None) -> AcceptResult:
        # 1) Validation has no side effects.
        try:
            payload = json.loads(raw_body or "{}")
        except (json.JSONDecodeError, UnicodeDecodeError):
            return _error(400, INVALID_JSON)

        topic = payload.get("topic") if isinstance(payload, dict) else None
        if not isinstance(topic, str) or not topic:
            return _error(400, MISSING_TOPIC)
        if len(topic) > self.topic_max_length:
            return _error(400, f"topic must be {self.topic_max_length} characters or fewer")

        # 2) The record must exist before any work item points at it.
        task_id = self.id_factory()
        try:
            self.storage.create_task(task_id, topic)
        except Exception:  # noqa: BLE001
            logger.exception("research_accept event=create_failed task_id=%s", task_id)
            return _error(500, CREATE_FAILED)

        # 3) Publish; if that fails, don't leave a pending task nobody will pick up.
        try:
            self.queue.publish(WorkItem(task_id=task_id, topic=topic).to_body())
        except Exception:  # noqa: BLE001
            logger.exception("research_accept event=publish_failed task_id=%s", task_id)
            outcome = mark_failed(self.storage, task_id, PUBLISH_FAILED)
            if not outcome.recorded:
                logger.error(
                    "research_accept event=orphaned_pending task_id=%s", task_id
                )
            return _error(500, PUBLISH_FAILED)

        logger.info("research_accept event=queued task_id=%s", task_id)
        return AcceptResult(
            status_code=202,
            body={
                "taskId": task_id,
                "status": TaskStatus.PENDING.value,
                "message": ACCEPTED_MESSAGE,
            },
        )

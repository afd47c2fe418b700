"""In-memory storage backend for tests and local runs."""

from __future__ import annotations

import threading
from datetime import UTC, datetime

from research_pipeline.errors import TaskNotFoundError
from research_pipeline.lifecycle import TaskStatus, check_transition
from research_pipeline.storage.models import TaskPatch, TaskRecord


class InMemoryTaskStorage:
    """Dict-backed implementation with the same conditional-update rules as Postgres."""

    def __init__(self) -> None:
        self._tasks: dict[str, TaskRecord] = {}
        self._lock = threading.Lock()

    def migrate(self) -> None:
        return None

    def create_task(self, task_id: str, topic: str) -> TaskRecord:
        now = datetime.now(UTC)
        record = TaskRecord(
            task_id=task_id,
            status=TaskStatus.PENDING,
            topic=topic,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            if task_id in self._tasks:
                raise ValueError(f"Task {task_id} already exists")
            self._tasks[task_id] = record
        return record.model_copy()

    def get_task(self, task_id: str) -> TaskRecord | None:
        with self._lock:
            record = self._tasks.get(task_id)
        return record.model_copy() if record else None

    def apply_patch(self, task_id: str, patch: TaskPatch) -> TaskRecord:
        with self._lock:
            current = self._tasks.get(task_id)
            if current is None:
                raise TaskNotFoundError(task_id)
            check_transition(current.status, patch.status)
            updated = current.model_copy(
                update={**patch.changes(), "updated_at": datetime.now(UTC)}
            )
            self._tasks[task_id] = updated
        return updated.model_copy()

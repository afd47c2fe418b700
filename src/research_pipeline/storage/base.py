"""Storage interface for the research task lifecycle."""

from __future__ import annotations

from typing import Protocol

from research_pipeline.storage.models import TaskPatch, TaskRecord


class TaskStorage(Protocol):
    def migrate(self) -> None: ...

    def create_task(self, task_id: str, topic: str) -> TaskRecord: ...

    def get_task(self, task_id: str) -> TaskRecord | None: ...

    def apply_patch(self, task_id: str, patch: TaskPatch) -> TaskRecord:
        """Apply ``patch`` if the current status may move to ``patch.status``.

        Raises TaskNotFoundError for an unknown id and InvalidTransitionError
        when the lifecycle forbids the change.
        """
        ...

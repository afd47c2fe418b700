"""Status updates shared by the accept and worker paths."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, TypeVar

from research_pipeline.lifecycle import TaskStatus
from research_pipeline.storage.base import TaskStorage
from research_pipeline.storage.models import TaskPatch, TaskRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ERROR_CHARS = 1000


@dataclass(frozen=True)
class FailureRecord:
    """Result of trying to record a failure on a task.

    ``recorded`` is False when the store write itself failed; the secondary
    error is kept here for logging and is never raised.
    """

    recorded: bool
    secondary_error: Exception | None = None


def advance(
    storage: TaskStorage,
    task_id: str,
    status: TaskStatus,
    *,
    s3_key: str | None = None,
    error: str | None = None,
) -> TaskRecord:
    return storage.apply_patch(task_id, TaskPatch(status=status, s3_key=s3_key, error=error))


def describe_error(exc: BaseException) -> str:
    message = str(exc).strip() or type(exc).__name__
    if len(message) > MAX_ERROR_CHARS:
        return message[: MAX_ERROR_CHARS - 3] + "..."
    return message


def mark_failed(storage: TaskStorage, task_id: str, message: str) -> FailureRecord:
    """Best-effort write of ``failed`` with a short diagnostic."""
    try:
        advance(storage, task_id, TaskStatus.FAILED, error=message[:MAX_ERROR_CHARS])
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "task_status event=mark_failed_error task_id=%s reason=%s",
            task_id,
            describe_error(exc),
        )
        return FailureRecord(recorded=False, secondary_error=exc)
    logger.info("task_status event=marked_failed task_id=%s", task_id)
    return FailureRecord(recorded=True)


def run_or_mark_failed(storage: TaskStorage, task_id: str, step: Callable[[], T]) -> T:
    """Run ``step``; on failure record it on the task, then re-raise the original error.

    The compensation write can fail too. That outcome is logged by
    ``mark_failed`` and never replaces the exception raised by ``step``.
    """
    try:
        return step()
    except Exception as exc:
        mark_failed(storage, task_id, describe_error(exc))
        raise

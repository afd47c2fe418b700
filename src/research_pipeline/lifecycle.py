"""Task status state machine.

pending -> researching -> researched
pending | researching -> failed

Redelivery adds two edges the happy path never takes: ``researching`` may be
re-entered after a lost lease, and ``failed`` may move back to ``researching``
when the queue retries an item whose failure was recorded. ``researched`` is
never left, and repeating a terminal write is a no-op rather than an error.
"""

from __future__ import annotations

from enum import StrEnum

from research_pipeline.errors import InvalidTransitionError


class TaskStatus(StrEnum):
    PENDING = "pending"
    RESEARCHING = "researching"
    RESEARCHED = "researched"
    FAILED = "failed"


# target -> statuses it may be written over
_ALLOWED_SOURCES: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset(),
    TaskStatus.RESEARCHING: frozenset(
        {TaskStatus.PENDING, TaskStatus.RESEARCHING, TaskStatus.FAILED}
    ),
    TaskStatus.RESEARCHED: frozenset({TaskStatus.RESEARCHING, TaskStatus.RESEARCHED}),
    TaskStatus.FAILED: frozenset(
        {TaskStatus.PENDING, TaskStatus.RESEARCHING, TaskStatus.FAILED}
    ),
}

TERMINAL_STATUSES = frozenset({TaskStatus.RESEARCHED, TaskStatus.FAILED})


def allowed_sources(target: TaskStatus | str) -> frozenset[TaskStatus]:
    return _ALLOWED_SOURCES[TaskStatus(target)]


def can_transition(current: TaskStatus | str, target: TaskStatus | str) -> bool:
    return TaskStatus(current) in allowed_sources(target)


def check_transition(current: TaskStatus | str, target: TaskStatus | str) -> TaskStatus:
    """Return ``target`` as a TaskStatus, or raise if ``current`` cannot reach it."""
    if not can_transition(current, target):
        raise InvalidTransitionError(str(current), str(target))
    return TaskStatus(target)


def is_terminal(status: TaskStatus | str) -> bool:
    return TaskStatus(status) in TERMINAL_STATUSES

"""Exception types shared by the accept and worker paths."""

from __future__ import annotations


class ResearchPipelineError(Exception):
    """Base class for pipeline errors."""


class PoisonMessageError(ResearchPipelineError):
    """A work item that cannot be tied to a task record.

    Raised so the queue's redelivery and dead-letter policy captures the
    message for inspection. No task record is written for these.
    """


class TaskNotFoundError(ResearchPipelineError, KeyError):
    def __init__(self, task_id: str) -> None:
        super().__init__(task_id)
        self.task_id = task_id

    def __str__(self) -> str:
        return f"Task {self.task_id} does not exist"


class InvalidTransitionError(ResearchPipelineError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Illegal task status transition: {current} -> {target}")
        self.current = current
        self.target = target


class ProviderRequestError(ResearchPipelineError):
    """Transport or HTTP failure talking to the research provider."""


class ProviderContractError(ResearchPipelineError):
    """The provider answered, but not with anything usable as an artifact."""


class SecretUnavailableError(ResearchPipelineError):
    """The provider credential could not be loaded."""

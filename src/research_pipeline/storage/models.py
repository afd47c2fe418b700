"""Storage models shared by the API, the worker and persistence backends."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from research_pipeline.lifecycle import TaskStatus


class TaskRecord(BaseModel):
    """Persisted task record, serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    task_id: str
    status: TaskStatus
    topic: str
    created_at: datetime
    updated_at: datetime
    s3_key: str | None = None
    error: str | None = None


class TaskPatch(BaseModel):
    """Targeted field update for one task.

    Only ``status`` and the fields set here are written; ``updated_at`` is
    refreshed by the backend. Everything else on the record is left alone,
    except that reaching ``researched`` clears any earlier ``error``.
    """

    model_config = ConfigDict(frozen=True)

    status: TaskStatus
    s3_key: str | None = None
    error: str | None = None

    def changes(self) -> dict[str, object]:
        fields: dict[str, object] = {"status": self.status}
        if self.s3_key is not None:
            fields["s3_key"] = self.s3_key
        if self.error is not None:
            fields["error"] = self.error
        elif self.clears_error():
            fields["error"] = None
        return fields

    def clears_error(self) -> bool:
        return self.error is None and self.status == TaskStatus.RESEARCHED

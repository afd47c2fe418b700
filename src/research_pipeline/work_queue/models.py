"""Queue payload and delivery models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WorkItem(BaseModel):
    """Queue message body: ``{"taskId": ..., "topic": ...}``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    task_id: str = Field(min_length=1)
    topic: str

    def to_body(self) -> str:
        return self.model_dump_json(by_alias=True)


class QueueMessage(BaseModel):
    """One leased delivery of a queued body."""

    message_id: str
    body: str
    receive_count: int


class DeadLetter(BaseModel):
    message_id: str
    body: str
    receive_count: int
    last_error: str | None = None
    dead_lettered_at: datetime

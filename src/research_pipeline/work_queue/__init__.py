"""At-least-once work queue backends."""

from research_pipeline.work_queue.base import WorkQueue
from research_pipeline.work_queue.memory import InMemoryWorkQueue
from research_pipeline.work_queue.models import DeadLetter, QueueMessage, WorkItem
from research_pipeline.work_queue.postgres import PostgresWorkQueue

__all__ = [
    "DeadLetter",
    "InMemoryWorkQueue",
    "PostgresWorkQueue",
    "QueueMessage",
    "WorkItem",
    "WorkQueue",
]

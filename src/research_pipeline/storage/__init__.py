"""Task storage backends and models."""

from research_pipeline.storage.base import TaskStorage
from research_pipeline.storage.memory import InMemoryTaskStorage
from research_pipeline.storage.models import TaskPatch, TaskRecord
from research_pipeline.storage.postgres import PostgresTaskStorage

__all__ = [
    "InMemoryTaskStorage",
    "PostgresTaskStorage",
    "TaskPatch",
    "TaskRecord",
    "TaskStorage",
]

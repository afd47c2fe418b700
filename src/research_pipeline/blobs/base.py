"""Blob store interface and artifact key convention."""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel

MARKDOWN_CONTENT_TYPE = "text/markdown"


class StoredBlob(BaseModel):
    key: str
    body: str
    content_type: str


class BlobStore(Protocol):
    def put(self, key: str, body: str, *, content_type: str) -> None: ...

    def get(self, key: str) -> StoredBlob | None: ...


def artifact_key(task_id: str, *, prefix: str = "research/") -> str:
    """Deterministic artifact location, reproducible from the task id alone."""
    if not task_id:
        raise ValueError("task_id is required to derive an artifact key")
    return f"{prefix}{task_id}.md"

"""Artifact blob stores."""

from research_pipeline.blobs.base import (
    MARKDOWN_CONTENT_TYPE,
    BlobStore,
    StoredBlob,
    artifact_key,
)
from research_pipeline.blobs.filesystem import FilesystemBlobStore
from research_pipeline.blobs.memory import InMemoryBlobStore

__all__ = [
    "MARKDOWN_CONTENT_TYPE",
    "BlobStore",
    "FilesystemBlobStore",
    "InMemoryBlobStore",
    "StoredBlob",
    "artifact_key",
]

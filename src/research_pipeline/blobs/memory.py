"""In-memory blob store for tests."""

from __future__ import annotations

import threading

from research_pipeline.blobs.base import StoredBlob


class InMemoryBlobStore:
    def __init__(self) -> None:
        self._blobs: dict[str, StoredBlob] = {}
        self._lock = threading.Lock()

    def put(self, key: str, body: str, *, content_type: str) -> None:
        with self._lock:
            self._blobs[key] = StoredBlob(key=key, body=body, content_type=content_type)

    def get(self, key: str) -> StoredBlob | None:
        with self._lock:
            return self._blobs.get(key)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._blobs)

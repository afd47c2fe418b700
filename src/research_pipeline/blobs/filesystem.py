"""Filesystem blob store.

Objects are written to ``<root>/<key>``; the content type lives next to the
object in ``<key>.meta.json``. Writes go through a temporary file and an
atomic rename, so a reader never sees a half-written artifact and a repeated
write of the same key simply replaces the previous object.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from research_pipeline.blobs.base import StoredBlob

_META_SUFFIX = ".meta.json"


class FilesystemBlobStore:
    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()

    def put(self, key: str, body: str, *, content_type: str) -> None:
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        _atomic_write(path, body)
        meta_path = path.with_name(path.name + _META_SUFFIX)
        _atomic_write(meta_path, json.dumps({"content_type": content_type}))

    def get(self, key: str) -> StoredBlob | None:
        path = self._path_for(key)
        if not path.is_file():
            return None
        meta_path = path.with_name(path.name + _META_SUFFIX)
        content_type = "application/octet-stream"
        if meta_path.is_file():
            meta = json.loads(meta_path.read_text(encoding="utf-8"))
            content_type = str(meta.get("content_type", content_type))
        return StoredBlob(
            key=key,
            body=path.read_text(encoding="utf-8"),
            content_type=content_type,
        )

    def _path_for(self, key: str) -> Path:
        if not key or key.startswith("/"):
            raise ValueError(f"Invalid blob key: {key!r}")
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root):
            raise ValueError(f"Blob key escapes store root: {key!r}")
        return path


def _atomic_write(path: Path, text: str) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

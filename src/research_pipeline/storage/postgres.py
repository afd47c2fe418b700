"""PostgreSQL-backed task storage with automatic table migration."""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from typing import Any

from research_pipeline.errors import InvalidTransitionError, TaskNotFoundError
from research_pipeline.lifecycle import TaskStatus, allowed_sources
from research_pipeline.storage.models import TaskPatch, TaskRecord


class PostgresTaskStorage:
    """Persist research tasks in PostgreSQL."""

    def __init__(self, database_url: str) -> None:
        if not database_url:
            raise ValueError("RESEARCH_PIPELINE_DATABASE_URL is required")
        self.database_url = database_url
        self._lock = threading.Lock()
        self._psycopg, self._dict_row = self._load_psycopg()

    def migrate(self) -> None:
        with self._lock, self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS research_tasks (
                    task_id TEXT PRIMARY KEY,
                    status TEXT NOT NULL,
                    topic TEXT NOT NULL,
                    s3_key TEXT,
                    error TEXT,
                    created_at TIMESTAMPTZ NOT NULL,
                    updated_at TIMESTAMPTZ NOT NULL
                )
                """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_research_tasks_status
                ON research_tasks(status)
                """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_research_tasks_updated_at
                ON research_tasks(updated_at DESC)
                """)
            conn.commit()

    def create_task(self, task_id: str, topic: str) -> TaskRecord:
        now = datetime.now(tz=UTC)
        with self._lock, self._connect() as conn:
            row = conn.execute(
                """
                INSERT INTO research_tasks (
                    task_id,
                    status,
                    topic,
                    s3_key,
                    error,
                    created_at,
                    updated_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s)
                RETURNING *
                """,
                (task_id, TaskStatus.PENDING.value, topic, None, None, now, now),
            ).fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError("Failed to load created task")
        return self._row_to_task(row)

    def get_task(self, task_id: str) -> TaskRecord | None:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM research_tasks WHERE task_id = %s",
                (task_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    def apply_patch(self, task_id: str, patch: TaskPatch) -> TaskRecord:
        sources = sorted(status.value for status in allowed_sources(patch.status))
        updated_at = datetime.now(tz=UTC)
        current = None
        with self._lock, self._connect() as conn:
            # Field-level write guarded by the lifecycle: concurrent writers never
            # erase each other's columns, and a finished task cannot be regressed.
            row = conn.execute(
                """
                UPDATE research_tasks
                SET status = %s,
                    s3_key = COALESCE(%s, s3_key),
                    error = CASE
                        WHEN %s THEN NULL
                        ELSE COALESCE(%s, error)
                    END,
                    updated_at = %s
                WHERE task_id = %s
                  AND status = ANY(%s)
                RETURNING *
                """,
                (
                    patch.status.value,
                    patch.s3_key,
                    patch.clears_error(),
                    patch.error,
                    updated_at,
                    task_id,
                    sources,
                ),
            ).fetchone()
            if row is None:
                current = conn.execute(
                    "SELECT status FROM research_tasks WHERE task_id = %s",
                    (task_id,),
                ).fetchone()
            conn.commit()

        if row is not None:
            return self._row_to_task(row)
        if current is None:
            raise TaskNotFoundError(task_id)
        raise InvalidTransitionError(str(current["status"]), patch.status.value)

    def _connect(self) -> Any:
        return self._psycopg.connect(self.database_url, row_factory=self._dict_row)

    @staticmethod
    def _load_psycopg() -> tuple[Any, Any]:
        try:
            import psycopg
            from psycopg.rows import dict_row
        except ImportError as exc:  # pragma: no cover
            raise RuntimeError(
                "PostgreSQL storage requires psycopg. "
                'Install with: python -m pip install "psycopg[binary]>=3.2,<4.0"'
            ) from exc
        return psycopg, dict_row

    @staticmethod
    def _parse_datetime(raw: Any) -> datetime:
        if isinstance(raw, datetime):
            return raw
        if isinstance(raw, str):
            return datetime.fromisoformat(raw)
        raise TypeError(f"Unsupported datetime value: {type(raw)!r}")

    @classmethod
    def _row_to_task(cls, row: Any) -> TaskRecord:
        return TaskRecord(
            task_id=str(row["task_id"]),
            status=TaskStatus(row["status"]),
            topic=row["topic"],
            s3_key=row.get("s3_key"),
            error=row.get("error"),
            created_at=cls._parse_datetime(row["created_at"]),
            updated_at=cls._parse_datetime(row["updated_at"]),
        )

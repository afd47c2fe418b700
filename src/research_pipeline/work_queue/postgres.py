"""PostgreSQL-backed work queue using row leases."""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from research_pipeline.work_queue.models import DeadLetter, QueueMessage

logger = logging.getLogger(__name__)


class PostgresWorkQueue:
    """Lease rows with ``FOR UPDATE SKIP LOCKED`` so workers never share a delivery."""

    def __init__(
        self,
        database_url: str,
        *,
        queue_name: str = "research",
        visibility_timeout_s: float = 900.0,
        max_receive_count: int = 2,
        retry_delay_s: float = 0.0,
    ) -> None:
        if not database_url:
            raise ValueError("RESEARCH_PIPELINE_DATABASE_URL is required")
        self.database_url = database_url
        self.queue_name = queue_name
        self.visibility_timeout_s = visibility_timeout_s
        self.max_receive_count = max_receive_count
        self.retry_delay_s = retry_delay_s
        self._lock = threading.Lock()
        self._psycopg, self._dict_row = self._load_psycopg()

    def migrate(self) -> None:
        with self._lock, self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS research_queue (
                    message_id UUID PRIMARY KEY,
                    queue_name TEXT NOT NULL,
                    body TEXT NOT NULL,
                    receive_count INTEGER NOT NULL DEFAULT 0,
                    visible_at TIMESTAMPTZ NOT NULL,
                    last_error TEXT,
                    dead_lettered_at TIMESTAMPTZ,
                    created_at TIMESTAMPTZ NOT NULL
                )
                """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_research_queue_visible
                ON research_queue(queue_name, visible_at)
                WHERE dead_lettered_at IS NULL
                """)
            conn.commit()

    def publish(self, body: str) -> str:
        message_id = uuid.uuid4()
        now = datetime.now(tz=UTC)
        with self._lock, self._connect() as conn:
            conn.execute(
                """
                INSERT INTO research_queue (
                    message_id,
                    queue_name,
                    body,
                    receive_count,
                    visible_at,
                    created_at
                ) VALUES (%s, %s, %s, %s, %s, %s)
                """,
                (message_id, self.queue_name, body, 0, now, now),
            )
            conn.commit()
        return str(message_id)

    def receive(self) -> QueueMessage | None:
        now = datetime.now(tz=UTC)
        lease_until = now + timedelta(seconds=self.visibility_timeout_s)
        with self._lock, self._connect() as conn:
            # Leases that expired on their last allowed attempt go to the dead-letter channel.
            expired = conn.execute(
                """
                UPDATE research_queue
                SET dead_lettered_at = %s
                WHERE queue_name = %s
                  AND dead_lettered_at IS NULL
                  AND visible_at <= %s
                  AND receive_count >= %s
                RETURNING message_id
                """,
                (now, self.queue_name, now, self.max_receive_count),
            ).fetchall()
            row = conn.execute(
                """
                UPDATE research_queue
                SET receive_count = receive_count + 1,
                    visible_at = %s
                WHERE message_id = (
                    SELECT message_id
                    FROM research_queue
                    WHERE queue_name = %s
                      AND dead_lettered_at IS NULL
                      AND visible_at <= %s
                    ORDER BY created_at
                    LIMIT 1
                    FOR UPDATE SKIP LOCKED
                )
                RETURNING message_id, body, receive_count
                """,
                (lease_until, self.queue_name, now),
            ).fetchone()
            conn.commit()

        for item in expired:
            logger.warning(
                "work_queue event=dead_lettered message_id=%s reason=lease_expired",
                item["message_id"],
            )
        if row is None:
            return None
        return QueueMessage(
            message_id=str(row["message_id"]),
            body=row["body"],
            receive_count=int(row["receive_count"]),
        )

    def ack(self, message_id: str) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(
                "DELETE FROM research_queue WHERE message_id::text = %s",
                (message_id,),
            )
            conn.commit()

    def release(self, message_id: str, *, error: str | None = None) -> None:
        now = datetime.now(tz=UTC)
        visible_at = now + timedelta(seconds=self.retry_delay_s)
        with self._lock, self._connect() as conn:
            row = conn.execute(
                """
                UPDATE research_queue
                SET last_error = %s,
                    visible_at = %s,
                    dead_lettered_at = CASE
                        WHEN receive_count >= %s THEN %s
                        ELSE NULL
                    END
                WHERE message_id::text = %s
                  AND dead_lettered_at IS NULL
                RETURNING receive_count, dead_lettered_at
                """,
                (error, visible_at, self.max_receive_count, now, message_id),
            ).fetchone()
            conn.commit()
        if row is not None and row["dead_lettered_at"] is not None:
            logger.warning(
                "work_queue event=dead_lettered message_id=%s receive_count=%d",
                message_id,
                int(row["receive_count"]),
            )

    def dead_letters(self) -> list[DeadLetter]:
        with self._lock, self._connect() as conn:
            rows = conn.execute(
                """
                SELECT message_id, body, receive_count, last_error, dead_lettered_at
                FROM research_queue
                WHERE queue_name = %s
                  AND dead_lettered_at IS NOT NULL
                ORDER BY dead_lettered_at
                """,
                (self.queue_name,),
            ).fetchall()
        return [
            DeadLetter(
                message_id=str(row["message_id"]),
                body=row["body"],
                receive_count=int(row["receive_count"]),
                last_error=row["last_error"],
                dead_lettered_at=row["dead_lettered_at"],
            )
            for row in rows
        ]

    def _connect(self) -> Any:
        return self._psycopg.connect(self.database_url, row_factory=self._dict_row)

    @staticmethod
    def _load_psycopg() -> tuple[Any, Any]:
        try:
            import psycopg
            from psycopg.rows import dict_row
        except ImportError as exc:  # pragma: no cover
            raise RuntimeError(
                "PostgreSQL queue requires psycopg. "
                'Install with: python -m pip install "psycopg[binary]>=3.2,<4.0"'
            ) from exc
        return psycopg, dict_row

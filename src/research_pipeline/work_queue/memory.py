"""Thread-safe in-memory work queue for tests and local runs."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Callable
from uuid import uuid4

from research_pipeline.work_queue.models import DeadLetter, QueueMessage

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    message_id: str
    body: str
    visible_at: float
    receive_count: int = 0
    last_error: str | None = None


class InMemoryWorkQueue:
    def __init__(
        self,
        *,
        visibility_timeout_s: float = 900.0,
        max_receive_count: int = 2,
        retry_delay_s: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.visibility_timeout_s = visibility_timeout_s
        self.max_receive_count = max_receive_count
        self.retry_delay_s = retry_delay_s
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._dead: list[DeadLetter] = []
        self._lock = threading.Lock()

    def migrate(self) -> None:
        return None

    def publish(self, body: str) -> str:
        message_id = str(uuid4())
        with self._lock:
            self._entries[message_id] = _Entry(
                message_id=message_id,
                body=body,
                visible_at=self._clock(),
            )
        return message_id

    def receive(self) -> QueueMessage | None:
        now = self._clock()
        with self._lock:
            for entry in list(self._entries.values()):
                if entry.visible_at > now:
                    continue
                if entry.receive_count >= self.max_receive_count:
                    self._dead_letter(entry)
                    continue
                entry.receive_count += 1
                entry.visible_at = now + self.visibility_timeout_s
                return QueueMessage(
                    message_id=entry.message_id,
                    body=entry.body,
                    receive_count=entry.receive_count,
                )
        return None

    def ack(self, message_id: str) -> None:
        with self._lock:
            self._entries.pop(message_id, None)

    def release(self, message_id: str, *, error: str | None = None) -> None:
        with self._lock:
            entry = self._entries.get(message_id)
            if entry is None:
                return
            entry.last_error = error
            if entry.receive_count >= self.max_receive_count:
                self._dead_letter(entry)
                return
            entry.visible_at = self._clock() + self.retry_delay_s

    def dead_letters(self) -> list[DeadLetter]:
        with self._lock:
            return list(self._dead)

    def pending_count(self) -> int:
        with self._lock:
            return len(self._entries)

    def _dead_letter(self, entry: _Entry) -> None:
        self._entries.pop(entry.message_id, None)
        self._dead.append(
            DeadLetter(
                message_id=entry.message_id,
                body=entry.body,
                receive_count=entry.receive_count,
                last_error=entry.last_error,
                dead_lettered_at=datetime.now(UTC),
            )
        )
        logger.warning(
            "work_queue event=dead_lettered message_id=%s receive_count=%d",
            entry.message_id,
            entry.receive_count,
        )

"""Work queue interface with at-least-once delivery."""

from __future__ import annotations

from typing import Protocol

from research_pipeline.work_queue.models import DeadLetter, QueueMessage


class WorkQueue(Protocol):
    """At-least-once channel with leases and a bounded receive count.

    ``receive`` hides the message for the visibility timeout. If it is neither
    acked nor released before then, it becomes visible again. A message that
    has already been received ``max_receive_count`` times is moved to the
    dead-letter channel instead of being handed out again.
    """

    def migrate(self) -> None: ...

    def publish(self, body: str) -> str: ...

    def receive(self) -> QueueMessage | None: ...

    def ack(self, message_id: str) -> None: ...

    def release(self, message_id: str, *, error: str | None = None) -> None: ...

    def dead_letters(self) -> list[DeadLetter]: ...

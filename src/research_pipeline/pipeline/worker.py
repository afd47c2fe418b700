"""Worker path: consume one work item and drive its task to a terminal status.

Error contract with the queue:
- returning normally acknowledges the item and the queue deletes it;
- raising makes the queue redeliver it, up to its receive limit, after which
  it lands in the dead-letter channel.

So every failure after the task is known is recorded on the task and then
re-raised. Swallowing it would make the queue drop the item.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from research_pipeline.blobs.base import BlobStore
from research_pipeline.credentials import CachedSecret
from research_pipeline.errors import InvalidTransitionError, PoisonMessageError
from research_pipeline.lifecycle import TaskStatus
from research_pipeline.pipeline.graph import ResearchSteps, build_research_graph
from research_pipeline.pipeline.status import advance, run_or_mark_failed
from research_pipeline.providers.base import ResearchProvider
from research_pipeline.storage.base import TaskStorage
from research_pipeline.work_queue.models import WorkItem

logger = logging.getLogger(__name__)

MALFORMED_BODY = "Malformed work item body"
MISSING_TASK_ID = "Missing taskId in work item"
MISSING_TOPIC = "Missing topic in work item"

OutcomeStatus = Literal["researched", "already_researched", "failed"]


class WorkerOutcome(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    task_id: str
    status: OutcomeStatus
    artifact_key: str | None = None
    error: str | None = None


class ResearchWorker:
    def __init__(
        self,
        *,
        storage: TaskStorage,
        blobs: BlobStore,
        secret: CachedSecret,
        provider: ResearchProvider,
        artifact_prefix: str = "research/",
    ) -> None:
        self.storage = storage
        self._graph = build_research_graph(
            ResearchSteps(
                storage=storage,
                blobs=blobs,
                secret=secret,
                provider=provider,
                artifact_prefix=artifact_prefix,
            )
        )

    def handle_event(self, event: dict[str, Any]) -> list[WorkerOutcome] | None:
        """Process a runtime batch envelope ``{"Records": [{"body": ...}, ...]}``."""
        records = event.get("Records") if isinstance(event, dict) else None
        if not records:
            logger.error("research_worker event=empty_batch")
            return None
        return [self.process(record.get("body")) for record in records]

    def process(self, body: str | bytes | None) -> WorkerOutcome:
        payload = _parse_body(body)

        task_id = payload.get("taskId")
        if not isinstance(task_id, str) or not task_id:
            logger.error("research_worker event=poison_message reason=missing_task_id")
            raise PoisonMessageError(MISSING_TASK_ID)

        topic = payload.get("topic")
        if not isinstance(topic, str) or not topic:
            # Redelivery cannot repair the payload: record the failure and ack.
            logger.warning("research_worker event=missing_topic task_id=%s", task_id)
            try:
                advance(self.storage, task_id, TaskStatus.FAILED, error=MISSING_TOPIC)
            except InvalidTransitionError:
                record = self.storage.get_task(task_id)
                if record is None or record.status != TaskStatus.RESEARCHED:
                    raise
                logger.info("research_worker event=duplicate_delivery task_id=%s", task_id)
                return WorkerOutcome(
                    task_id=task_id,
                    status="already_researched",
                    artifact_key=record.s3_key,
                )
            return WorkerOutcome(
                task_id=task_id,
                status=TaskStatus.FAILED.value,
                error=MISSING_TOPIC,
            )

        item = WorkItem(task_id=task_id, topic=topic)
        logger.info("research_worker event=start task_id=%s", item.task_id)
        result = run_or_mark_failed(
            self.storage,
            item.task_id,
            lambda: self._graph.invoke({"task_id": item.task_id, "topic": item.topic}),
        )

        if result.get("duplicate"):
            return WorkerOutcome(
                task_id=item.task_id,
                status="already_researched",
                artifact_key=result.get("artifact_key"),
            )

        logger.info(
            "research_worker event=completed task_id=%s artifact_key=%s",
            item.task_id,
            result["artifact_key"],
        )
        return WorkerOutcome(
            task_id=item.task_id,
            status=TaskStatus.RESEARCHED.value,
            artifact_key=result["artifact_key"],
        )


def _parse_body(body: str | bytes | None) -> dict[str, Any]:
    if body is None:
        raise PoisonMessageError(MALFORMED_BODY)
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.error("research_worker event=poison_message reason=malformed_body")
        raise PoisonMessageError(MALFORMED_BODY) from exc
    if not isinstance(payload, dict):
        logger.error("research_worker event=poison_message reason=not_an_object")
        raise PoisonMessageError(MALFORMED_BODY)
    return payload

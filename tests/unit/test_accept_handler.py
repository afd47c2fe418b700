import json

import pytest

from research_pipeline.lifecycle import TaskStatus
from research_pipeline.pipeline.accept import AcceptHandler
from research_pipeline.work_queue.memory import InMemoryWorkQueue


def _handler(storage, queue) -> AcceptHandler:
    return AcceptHandler(storage, queue, id_factory=lambda: "test-task-id-1234")


def _queued_bodies(queue: InMemoryWorkQueue) -> list[dict]:
    bodies = []
    while (message := queue.receive()) is not None:
        bodies.append(json.loads(message.body))
    return bodies


def test_valid_request_creates_pending_task_and_queues_work(
    storage, queue: InMemoryWorkQueue
) -> None:
    result = _handler(storage, queue).accept('{"topic": "test topic"}')

    assert result.status_code == 202
    assert result.body["taskId"] == "test-task-id-1234"
    assert result.body["status"] == "pending"
    assert result.body["message"]

    record = storage.get_task("test-task-id-1234")
    assert record is not None
    assert record.status == TaskStatus.PENDING
    assert record.topic == "test topic"
    assert record.created_at == record.updated_at

    assert _queued_bodies(queue) == [{"taskId": "test-task-id-1234", "topic": "test topic"}]


def test_record_is_written_before_publish(
    storage, queue: InMemoryWorkQueue
) -> None:
    published_after: list[list[str]] = []

    class ObservingQueue(InMemoryWorkQueue):
        def publish(self, body: str) -> str:
            published_after.append(list(storage.calls))
            return super().publish(body)

    _handler(storage, ObservingQueue()).accept('{"topic": "ordering"}')

    assert published_after == [["create"]]


def test_generates_fresh_ids_by_default(
    storage, queue: InMemoryWorkQueue
) -> None:
    handler = AcceptHandler(storage, queue)

    first = handler.accept('{"topic": "a"}').body["taskId"]
    second = handler.accept('{"topic": "b"}').body["taskId"]

    assert first != second


def test_topic_of_exactly_max_length_is_accepted(
    storage, queue: InMemoryWorkQueue
) -> None:
    result = _handler(storage, queue).accept(json.dumps({"topic": "a" * 500}))
    assert result.status_code == 202


@pytest.mark.parametrize(
    ("raw_body", "error_fragment"),
    [
        ("not json{", "Invalid JSON"),
        (None, "topic"),
        ("", "topic"),
        ("{}", "topic"),
        ('{"topic": 123}', "string"),
        ('{"topic": ""}', "topic"),
        ('["topic"]', "topic"),
        (json.dumps({"topic": "a" * 501}), "500"),
    ],
)
def test_invalid_requests_are_rejected_without_side_effects(
    storage,
    queue: InMemoryWorkQueue,
    raw_body,
    error_fragment: str,
) -> None:
    result = _handler(storage, queue).accept(raw_body)

    assert result.status_code == 400
    assert error_fragment in result.body["error"]
    assert storage.calls == []
    assert queue.pending_count() == 0


def test_accepts_bytes_body(storage, queue: InMemoryWorkQueue) -> None:
    result = _handler(storage, queue).accept(b'{"topic": "bytes body"}')
    assert result.status_code == 202


def test_store_failure_returns_500_and_never_publishes(
    storage, queue: InMemoryWorkQueue
) -> None:
    storage.fail_create = ConnectionError("store down")

    result = _handler(storage, queue).accept('{"topic": "test"}')

    assert result.status_code == 500
    assert "Failed to create task record" in result.body["error"]
    assert queue.pending_count() == 0


def test_publish_failure_marks_task_failed(storage, failing_queue) -> None:
    result = _handler(storage, failing_queue).accept('{"topic": "test"}')

    assert result.status_code == 500
    assert "queue" in result.body["error"]
    assert storage.calls == ["create", "patch:failed"]

    record = storage.get_task("test-task-id-1234")
    assert record is not None
    assert record.status == TaskStatus.FAILED
    assert record.error == "Failed to place work item on queue"


def test_publish_failure_still_returns_500_when_compensation_fails(
    storage, failing_queue
) -> None:
    storage.fail_patch[TaskStatus.FAILED] = ConnectionError("store down too")

    result = _handler(storage, failing_queue).accept('{"topic": "test"}')

    assert result.status_code == 500
    record = storage.get_task("test-task-id-1234")
    assert record is not None
    assert record.status == TaskStatus.PENDING

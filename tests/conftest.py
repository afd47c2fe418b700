from __future__ import annotations

from typing import Any

import pytest

from research_pipeline.blobs.memory import InMemoryBlobStore
from research_pipeline.credentials import CachedSecret
from research_pipeline.lifecycle import TaskStatus
from research_pipeline.pipeline.worker import ResearchWorker
from research_pipeline.providers.base import ContentBlock, ProviderResponse
from research_pipeline.storage.memory import InMemoryTaskStorage
from research_pipeline.storage.models import TaskPatch, TaskRecord
from research_pipeline.work_queue.memory import InMemoryWorkQueue


class RecordingTaskStorage(InMemoryTaskStorage):
    """In-memory store that logs calls and can be told to fail."""

    def __init__(self, calls: list[str] | None = None) -> None:
        super().__init__()
        self.calls = calls if calls is not None else []
        self.fail_create: Exception | None = None
        self.fail_patch: dict[TaskStatus, Exception] = {}

    def create_task(self, task_id: str, topic: str) -> TaskRecord:
        self.calls.append("create")
        if self.fail_create is not None:
            raise self.fail_create
        return super().create_task(task_id, topic)

    def get_task(self, task_id: str) -> TaskRecord | None:
        self.calls.append("get")
        return super().get_task(task_id)

    def apply_patch(self, task_id: str, patch: TaskPatch) -> TaskRecord:
        self.calls.append(f"patch:{patch.status.value}")
        failure = self.fail_patch.get(patch.status)
        if failure is not None:
            raise failure
        return super().apply_patch(task_id, patch)

    def seed(self, task_id: str, topic: str, status: TaskStatus = TaskStatus.PENDING) -> None:
        """Create a record directly, bypassing the call log."""
        InMemoryTaskStorage.create_task(self, task_id, topic)
        if status == TaskStatus.RESEARCHED:
            InMemoryTaskStorage.apply_patch(self, task_id, TaskPatch(status=TaskStatus.RESEARCHING))
            InMemoryTaskStorage.apply_patch(
                self,
                task_id,
                TaskPatch(status=TaskStatus.RESEARCHED, s3_key=f"research/{task_id}.md"),
            )
        elif status != TaskStatus.PENDING:
            InMemoryTaskStorage.apply_patch(self, task_id, TaskPatch(status=status))


class RecordingBlobStore(InMemoryBlobStore):
    def __init__(self, calls: list[str]) -> None:
        super().__init__()
        self.calls = calls
        self.fail_put: Exception | None = None

    def put(self, key: str, body: str, *, content_type: str) -> None:
        self.calls.append("put")
        if self.fail_put is not None:
            raise self.fail_put
        super().put(key, body, content_type=content_type)


class CountingSecretProvider:
    def __init__(self, calls: list[str], value: str = "sk-ant-test-key") -> None:
        self.calls = calls
        self.value = value
        self.fetches = 0

    def get_secret(self) -> str:
        self.calls.append("secret")
        self.fetches += 1
        return self.value


class FakeProvider:
    """Scripted provider: returns ``blocks`` or raises ``error``."""

    def __init__(self, calls: list[str]) -> None:
        self.calls = calls
        self.requests: list[dict[str, Any]] = []
        self.blocks: list[dict[str, Any]] = [
            {"type": "text", "text": "# Research Results\n\nTest research content"}
        ]
        self.error: Exception | None = None

    def create_message(self, *, api_key: str, system: str, prompt: str) -> ProviderResponse:
        self.calls.append("provider")
        self.requests.append({"api_key": api_key, "system": system, "prompt": prompt})
        if self.error is not None:
            raise self.error
        return ProviderResponse(content=[ContentBlock.model_validate(b) for b in self.blocks])


class FailingPublishQueue(InMemoryWorkQueue):
    def publish(self, body: str) -> str:
        raise ConnectionError("queue unavailable")


@pytest.fixture
def calls() -> list[str]:
    return []


@pytest.fixture
def storage(calls: list[str]) -> RecordingTaskStorage:
    return RecordingTaskStorage(calls)


@pytest.fixture
def blobs(calls: list[str]) -> RecordingBlobStore:
    return RecordingBlobStore(calls)


@pytest.fixture
def secret_provider(calls: list[str]) -> CountingSecretProvider:
    return CountingSecretProvider(calls)


@pytest.fixture
def provider(calls: list[str]) -> FakeProvider:
    return FakeProvider(calls)


@pytest.fixture
def queue() -> InMemoryWorkQueue:
    return InMemoryWorkQueue(visibility_timeout_s=60.0, max_receive_count=2)


@pytest.fixture
def worker(
    storage: RecordingTaskStorage,
    blobs: RecordingBlobStore,
    secret_provider: CountingSecretProvider,
    provider: FakeProvider,
) -> ResearchWorker:
    return ResearchWorker(
        storage=storage,
        blobs=blobs,
        secret=CachedSecret(secret_provider),
        provider=provider,
    )


@pytest.fixture
def failing_queue() -> FailingPublishQueue:
    return FailingPublishQueue()

"""Builders that turn Settings into concrete backends."""

from __future__ import annotations

from research_pipeline.blobs.filesystem import FilesystemBlobStore
from research_pipeline.config.settings import Settings
from research_pipeline.credentials import (
    CachedSecret,
    EnvSecretProvider,
    FileSecretProvider,
    SecretProvider,
    StaticSecretProvider,
)
from research_pipeline.pipeline.accept import AcceptHandler
from research_pipeline.pipeline.worker import ResearchWorker
from research_pipeline.providers.anthropic_messages import AnthropicMessagesProvider
from research_pipeline.storage.base import TaskStorage
from research_pipeline.storage.postgres import PostgresTaskStorage
from research_pipeline.work_queue.base import WorkQueue
from research_pipeline.work_queue.postgres import PostgresWorkQueue


def _require_database_url(settings: Settings) -> str:
    database_url = settings.resolved_database_url()
    if not database_url:
        raise RuntimeError(
            "Missing database URL. Set RESEARCH_PIPELINE_DATABASE_URL "
            "or DATABASE_URL before starting."
        )
    return database_url


def build_task_storage(settings: Settings) -> TaskStorage:
    return PostgresTaskStorage(_require_database_url(settings))


def build_work_queue(settings: Settings) -> WorkQueue:
    return PostgresWorkQueue(
        _require_database_url(settings),
        queue_name=settings.queue_name,
        visibility_timeout_s=settings.queue_visibility_timeout_s,
        max_receive_count=settings.queue_max_receive_count,
        retry_delay_s=settings.queue_retry_delay_s,
    )


def build_blob_store(settings: Settings) -> FilesystemBlobStore:
    return FilesystemBlobStore(settings.blob_root)


def build_secret_provider(settings: Settings) -> SecretProvider:
    if settings.secret_file is not None:
        return FileSecretProvider(settings.secret_file)
    if settings.anthropic_api_key:
        return StaticSecretProvider(settings.anthropic_api_key)
    return EnvSecretProvider("ANTHROPIC_API_KEY")


def build_provider(settings: Settings) -> AnthropicMessagesProvider:
    return AnthropicMessagesProvider(
        model=settings.anthropic_model,
        max_tokens=settings.anthropic_max_tokens,
        base_url=settings.anthropic_base_url,
        api_version=settings.anthropic_version,
        timeout_s=settings.anthropic_timeout_s,
    )


def build_accept_handler(
    settings: Settings, *, storage: TaskStorage, queue: WorkQueue
) -> AcceptHandler:
    return AcceptHandler(storage, queue, topic_max_length=settings.topic_max_length)


def build_worker(settings: Settings, *, storage: TaskStorage) -> ResearchWorker:
    return ResearchWorker(
        storage=storage,
        blobs=build_blob_store(settings),
        secret=CachedSecret(build_secret_provider(settings)),
        provider=build_provider(settings),
        artifact_prefix=settings.artifact_prefix,
    )

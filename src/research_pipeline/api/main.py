"""FastAPI app entrypoint for the research pipeline."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse

from research_pipeline.blobs.base import BlobStore
from research_pipeline.config.settings import Settings, get_settings
from research_pipeline.lifecycle import TaskStatus
from research_pipeline.pipeline.accept import AcceptHandler
from research_pipeline.runtime import (
    build_accept_handler,
    build_blob_store,
    build_task_storage,
    build_work_queue,
)
from research_pipeline.storage.base import TaskStorage
from research_pipeline.storage.models import TaskRecord
from research_pipeline.work_queue.base import WorkQueue


def _ensure_runtime_state(
    app: FastAPI,
    *,
    settings: Settings,
    storage_override: TaskStorage | None,
    queue_override: WorkQueue | None,
    blobs_override: BlobStore | None,
) -> None:
    if not hasattr(app.state, "storage"):
        app.state.storage = storage_override or build_task_storage(settings)
        app.state.storage.migrate()

    if not hasattr(app.state, "queue"):
        app.state.queue = queue_override or build_work_queue(settings)
        app.state.queue.migrate()

    if not hasattr(app.state, "blobs"):
        app.state.blobs = blobs_override or build_blob_store(settings)

    if not hasattr(app.state, "accept_handler"):
        app.state.accept_handler = build_accept_handler(
            settings, storage=app.state.storage, queue=app.state.queue
        )

    if not hasattr(app.state, "settings"):
        app.state.settings = settings


def create_app(
    *,
    storage: TaskStorage | None = None,
    queue: WorkQueue | None = None,
    blobs: BlobStore | None = None,
    settings_override: Settings | None = None,
) -> FastAPI:
    settings = settings_override or get_settings()
    injected = storage is not None and queue is not None

    def _ensure(app: FastAPI) -> None:
        _ensure_runtime_state(
            app,
            settings=settings,
            storage_override=storage,
            queue_override=queue,
            blobs_override=blobs,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _ensure(app)
        yield

    app = FastAPI(title=settings.app_name, lifespan=None if injected else lifespan)

    # Keep test paths reliable when lifespan is not executed by the client.
    if injected:
        _ensure(app)

    def _runtime(request: Request) -> FastAPI:
        if not hasattr(request.app.state, "accept_handler"):
            _ensure(request.app)
        return request.app

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "service": settings.app_name}

    @app.post("/research", status_code=202)
    async def accept_research(request: Request) -> JSONResponse:
        handler: AcceptHandler = _runtime(request).state.accept_handler
        raw_body = await request.body()
        result = await run_in_threadpool(handler.accept, raw_body)
        return JSONResponse(status_code=result.status_code, content=result.body)

    @app.get(
        "/research/{task_id}",
        response_model=TaskRecord,
        response_model_exclude_none=True,
    )
    def get_research_task(task_id: str, request: Request) -> TaskRecord:
        task_storage: TaskStorage = _runtime(request).state.storage
        record = task_storage.get_task(task_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Task not found")
        return record

    @app.get("/research/{task_id}/artifact", response_class=PlainTextResponse)
    def get_research_artifact(task_id: str, request: Request) -> PlainTextResponse:
        state = _runtime(request).state
        record = state.storage.get_task(task_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Task not found")
        if record.status != TaskStatus.RESEARCHED or not record.s3_key:
            raise HTTPException(
                status_code=404,
                detail=f"Research artifact not available (status={record.status.value})",
            )
        blob = state.blobs.get(record.s3_key)
        if blob is None:
            raise HTTPException(status_code=404, detail="Research artifact not found")
        return PlainTextResponse(blob.body, media_type=blob.content_type)

    return app


# Module-level app for `uvicorn research_pipeline.api.main:app`.
app = create_app()

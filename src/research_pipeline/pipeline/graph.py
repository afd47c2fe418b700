"""LangGraph workflow for one research attempt.

guard -> start -> research -> persist -> finalize

``guard`` and ``start`` can short-circuit to END when the task turns out to be
finished already; that is how a redelivered item is acknowledged without a
second provider call. Node exceptions propagate out of ``invoke`` unchanged.
"""

from __future__ import annotations

import logging
from typing import TypedDict

from langgraph.graph import END, StateGraph

from research_pipeline.blobs.base import MARKDOWN_CONTENT_TYPE, BlobStore, artifact_key
from research_pipeline.credentials import CachedSecret
from research_pipeline.errors import InvalidTransitionError, TaskNotFoundError
from research_pipeline.lifecycle import TaskStatus
from research_pipeline.pipeline.status import advance
from research_pipeline.providers.base import ResearchProvider, extract_text
from research_pipeline.providers.prompts import RESEARCH_SYSTEM_PROMPT, research_prompt
from research_pipeline.storage.base import TaskStorage

logger = logging.getLogger(__name__)


class ResearchState(TypedDict, total=False):
    task_id: str
    topic: str
    duplicate: bool
    content: str
    artifact_key: str | None
    status: str


class ResearchSteps:
    """Graph nodes bound to the collaborators of one worker process."""

    def __init__(
        self,
        *,
        storage: TaskStorage,
        blobs: BlobStore,
        secret: CachedSecret,
        provider: ResearchProvider,
        artifact_prefix: str = "research/",
        system_prompt: str = RESEARCH_SYSTEM_PROMPT,
    ) -> None:
        self.storage = storage
        self.blobs = blobs
        self.secret = secret
        self.provider = provider
        self.artifact_prefix = artifact_prefix
        self.system_prompt = system_prompt

    def guard(self, state: ResearchState) -> ResearchState:
        task_id = state["task_id"]
        record = self.storage.get_task(task_id)
        if record is None:
            raise TaskNotFoundError(task_id)
        if record.status == TaskStatus.RESEARCHED:
            logger.info("research_worker event=duplicate_delivery task_id=%s", task_id)
            return {"duplicate": True, "artifact_key": record.s3_key}
        return {"duplicate": False}

    def start(self, state: ResearchState) -> ResearchState:
        # Progress marker, not a lock: a concurrent attempt may be here too.
        task_id = state["task_id"]
        try:
            advance(self.storage, task_id, TaskStatus.RESEARCHING)
        except InvalidTransitionError:
            record = self.storage.get_task(task_id)
            if record is None or record.status != TaskStatus.RESEARCHED:
                raise
            logger.info("research_worker event=finished_concurrently task_id=%s", task_id)
            return {"duplicate": True, "artifact_key": record.s3_key}
        return {"status": TaskStatus.RESEARCHING.value}

    def research(self, state: ResearchState) -> ResearchState:
        api_key = self.secret.get()
        response = self.provider.create_message(
            api_key=api_key,
            system=self.system_prompt,
            prompt=research_prompt(state["topic"]),
        )
        return {"content": extract_text(response)}

    def persist(self, state: ResearchState) -> ResearchState:
        key = artifact_key(state["task_id"], prefix=self.artifact_prefix)
        self.blobs.put(key, state["content"], content_type=MARKDOWN_CONTENT_TYPE)
        return {"artifact_key": key}

    def finalize(self, state: ResearchState) -> ResearchState:
        advance(
            self.storage,
            state["task_id"],
            TaskStatus.RESEARCHED,
            s3_key=state["artifact_key"],
        )
        return {"status": TaskStatus.RESEARCHED.value}


def build_research_graph(steps: ResearchSteps):
    def _continue_unless_duplicate(state: ResearchState) -> str:
        return "done" if state.get("duplicate") else "continue"

    graph = StateGraph(ResearchState)

    graph.add_node("guard", steps.guard)
    graph.add_node("start", steps.start)
    graph.add_node("research", steps.research)
    graph.add_node("persist", steps.persist)
    graph.add_node("finalize", steps.finalize)

    graph.set_entry_point("guard")
    graph.add_conditional_edges(
        "guard", _continue_unless_duplicate, {"continue": "start", "done": END}
    )
    graph.add_conditional_edges(
        "start", _continue_unless_duplicate, {"continue": "research", "done": END}
    )
    graph.add_edge("research", "persist")
    graph.add_edge("persist", "finalize")
    graph.add_edge("finalize", END)

    return graph.compile()

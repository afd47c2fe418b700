"""Research provider interface and response models."""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

from research_pipeline.errors import ProviderContractError


class ContentBlock(BaseModel):
    """One typed segment of a provider reply; only ``text`` blocks carry prose."""

    model_config = ConfigDict(extra="allow")

    type: str
    text: str | None = None


class ProviderResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    content: list[ContentBlock] = Field(default_factory=list)
    model: str | None = None
    stop_reason: str | None = None


class ResearchProvider(Protocol):
    def create_message(self, *, api_key: str, system: str, prompt: str) -> ProviderResponse: ...


def extract_text(response: ProviderResponse) -> str:
    """Return the first text block's content, skipping tool-use and other blocks."""
    for block in response.content:
        if block.type == "text" and block.text is not None:
            return block.text
    raise ProviderContractError("Provider returned no text content")

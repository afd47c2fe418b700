"""Research content providers."""

from research_pipeline.providers.anthropic_messages import AnthropicMessagesProvider
from research_pipeline.providers.base import (
    ContentBlock,
    ProviderResponse,
    ResearchProvider,
    extract_text,
)
from research_pipeline.providers.prompts import RESEARCH_SYSTEM_PROMPT, research_prompt

__all__ = [
    "RESEARCH_SYSTEM_PROMPT",
    "AnthropicMessagesProvider",
    "ContentBlock",
    "ProviderResponse",
    "ResearchProvider",
    "extract_text",
    "research_prompt",
]

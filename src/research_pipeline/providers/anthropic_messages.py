"""Anthropic Messages API provider using the REST endpoint directly."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib import error, request

from pydantic import ValidationError

from research_pipeline.errors import ProviderContractError, ProviderRequestError
from research_pipeline.providers.base import ProviderResponse

logger = logging.getLogger(__name__)


class AnthropicMessagesProvider:
    """Single-shot Messages API client.

    There is no retry here: a failed call fails the task, and the queue's
    redelivery is the retry.
    """

    def __init__(
        self,
        *,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 4096,
        base_url: str = "https://api.anthropic.com",
        api_version: str = "2023-06-01",
        timeout_s: float = 120.0,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.timeout_s = timeout_s

    def create_message(self, *, api_key: str, system: str, prompt: str) -> ProviderResponse:
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": system,
            "messages": [{"role": "user", "content": prompt}],
        }
        response_json = self._request(payload, api_key=api_key)
        try:
            return ProviderResponse.model_validate(response_json)
        except ValidationError as exc:
            raise ProviderContractError(f"Provider response did not match schema: {exc}") from exc

    def _request(self, payload: dict[str, Any], *, api_key: str) -> dict[str, Any]:
        url = f"{self.base_url}/v1/messages"
        logger.info("provider request model=%s url=%s timeout_s=%s", self.model, url, self.timeout_s)
        req = request.Request(
            url=url,
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={
                "x-api-key": api_key,
                "anthropic-version": self.api_version,
                "content-type": "application/json",
            },
        )
        try:
            with request.urlopen(req, timeout=self.timeout_s) as response:
                raw = response.read().decode("utf-8")
        except error.HTTPError as exc:
            message = exc.read().decode("utf-8", errors="replace")
            raise ProviderRequestError(
                f"Provider request failed with status {exc.code}: {message[:400]}"
            ) from exc
        except error.URLError as exc:
            raise ProviderRequestError(f"Provider request failed: {exc.reason}") from exc
        except TimeoutError as exc:
            raise ProviderRequestError(
                f"Provider request timed out after {self.timeout_s:.0f}s"
            ) from exc

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ProviderContractError("Provider returned non-JSON response") from exc
        if not isinstance(parsed, dict):
            raise ProviderContractError("Provider response must be a JSON object")
        return parsed

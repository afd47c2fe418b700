"""Provider credential sources and the per-process credential cache."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol

from research_pipeline.errors import SecretUnavailableError

logger = logging.getLogger(__name__)


class SecretProvider(Protocol):
    def get_secret(self) -> str: ...


class EnvSecretProvider:
    def __init__(self, env_var: str = "ANTHROPIC_API_KEY") -> None:
        self.env_var = env_var

    def get_secret(self) -> str:
        value = os.getenv(self.env_var, "").strip()
        if not value:
            raise SecretUnavailableError(f"{self.env_var} is not set")
        return value


class FileSecretProvider:
    """Read a mounted secret file (for example a container secret)."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def get_secret(self) -> str:
        try:
            value = self.path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise SecretUnavailableError(f"Cannot read secret file {self.path}: {exc}") from exc
        if not value:
            raise SecretUnavailableError(f"Secret file {self.path} is empty")
        return value


class StaticSecretProvider:
    def __init__(self, value: str) -> None:
        self.value = value

    def get_secret(self) -> str:
        if not self.value:
            raise SecretUnavailableError("Static secret is empty")
        return self.value


class CachedSecret:
    """Fetch the credential once and share it for the life of the process.

    No lock: two callers racing on the first read both fetch the same
    immutable value, and whichever assignment lands last is equivalent.
    """

    def __init__(self, provider: SecretProvider) -> None:
        self._provider = provider
        self._value: str | None = None

    def get(self) -> str:
        value = self._value
        if value is None:
            value = self._provider.get_secret()
            self._value = value
            logger.info("credentials event=loaded source=%s", type(self._provider).__name__)
        return value

    @property
    def loaded(self) -> bool:
        return self._value is not None

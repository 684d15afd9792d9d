"""
Pytest configuration and fixtures for thesis scout tests.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import replace
from pathlib import Path
from typing import Any, AsyncGenerator, Callable, Generator
from unittest.mock import patch

import pytest

from scout.config import Settings, clear_settings_cache
from scout.llm.base import LLMRequest, LLMResponse
from scout.store.thesis_store import ThesisStore
from scout.types import Candidate, ProviderKind


class FakeLLMClient:
    """LLM client that replays scripted responses in order.

    A scripted item may be a string (returned as content) or an exception
    instance (raised). Setting ``delay`` makes every call sleep first.
    """

    provider = "fake"

    def __init__(self, responses: list[Any]) -> None:
        self.responses = list(responses)
        self.requests: list[LLMRequest] = []
        self.thinking_budgets: list[int | None] = []
        self.closed = False
        self.delay = 0.0

    def _next(self, request: LLMRequest, budget: int | None) -> LLMResponse:
        self.requests.append(request)
        self.thinking_budgets.append(budget)
        if not self.responses:
            raise AssertionError("FakeLLMClient ran out of scripted responses")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return LLMResponse(content=item, model=request.model, provider=self.provider)

    async def complete(self, request: LLMRequest) -> LLMResponse:
        if self.delay:
            await asyncio.sleep(self.delay)
        return self._next(request, None)

    async def complete_with_thinking(self, request: LLMRequest, budget_tokens: int = 4000) -> LLMResponse:
        if self.delay:
            await asyncio.sleep(self.delay)
        return self._next(request, budget_tokens)

    async def close(self) -> None:
        self.closed = True

    @property
    def calls(self) -> int:
        return len(self.requests)

    def prompt(self, index: int) -> str:
        """User prompt of the index-th request."""
        return self.requests[index].messages[-1]["content"]


class StubSource:
    """Candidate source returning canned candidates per query."""

    def __init__(
        self,
        name: str,
        results: dict[str, list[Candidate]] | list[Candidate] | None = None,
        available: bool = True,
        error: Exception | None = None,
    ) -> None:
        self._name = name
        self._results = results or []
        self._available = available
        self._error = error
        self.queries: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def available(self) -> bool:
        return self._available

    async def search(self, query: str, limit: int = 10) -> list[Candidate]:
        self.queries.append(query)
        if self._error is not None:
            raise self._error
        if isinstance(self._results, dict):
            found = self._results.get(query, [])
        else:
            found = self._results
        return [replace(c, citations=list(c.citations)) for c in found[:limit]]


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def mock_env_vars(temp_dir: Path) -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing."""
    env_vars = {
        "ANTHROPIC_API_KEY": "sk-ant-REDACTED",
        "CRUNCHBASE_API_KEY": "cb-test-key",
        "BRAVE_API_KEY": "brave-test-key",
        "DATABASE_PATH": str(temp_dir / "scout.db"),
        "LOG_LEVEL": "DEBUG",
        "FIT_SCORE_THRESHOLD": "5",
        "MAX_ANALYZED_COMPANIES": "8",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def make_settings(temp_dir: Path) -> Callable[..., Settings]:
    """Factory for Settings that ignores the environment's .env file."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "ANTHROPIC_API_KEY": "sk-ant-REDACTED",
            "CRUNCHBASE_API_KEY": None,
            "BRAVE_API_KEY": None,
            "DATABASE_PATH": temp_dir / "scout.db",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(make_settings: Callable[..., Settings]) -> Settings:
    """Default test settings (LLM configured, no discovery keys)."""
    return make_settings()


@pytest.fixture
def make_llm() -> Callable[..., FakeLLMClient]:
    """Factory for a scripted fake LLM client."""

    def _make(*responses: Any) -> FakeLLMClient:
        return FakeLLMClient(list(responses))

    return _make


@pytest.fixture
def make_source() -> Callable[..., StubSource]:
    """Factory for stub candidate sources."""
    return StubSource


@pytest.fixture
def make_candidate() -> Callable[..., Candidate]:
    """Factory for candidates with sensible defaults."""

    def _make(name: str, **kwargs: Any) -> Candidate:
        kwargs.setdefault("source", ProviderKind.CRUNCHBASE)
        kwargs.setdefault("description", f"{name} builds software")
        return Candidate(name=name, **kwargs)

    return _make


@pytest.fixture
async def store(temp_dir: Path) -> AsyncGenerator[ThesisStore, None]:
    """Initialized thesis store on a temp database."""
    thesis_store = ThesisStore(temp_dir / "scout.db")
    await thesis_store.init()
    yield thesis_store
    await thesis_store.close()


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()

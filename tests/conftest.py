"""Shared fixtures: a fast retry policy, router and executor builders."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from storybook.ai.backoff import RetryPolicy
from storybook.ai.router import ProviderMode, ProviderRouter
from storybook.jobs.registry import JobRegistry
from storybook.jobs.worker import BackgroundExecutor
from tests.fakes import FakeProvider


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def fast_retry() -> RetryPolicy:
  return RetryPolicy(max_retries=2, initial_delay=0.0, max_delay=0.0)


@pytest.fixture
def make_router(fast_retry: RetryPolicy) -> Callable[..., ProviderRouter]:
  """Build a router whose active backend is the given fake provider."""

  def _make(provider: FakeProvider | None = None, *, mode: ProviderMode = ProviderMode.OPENROUTER) -> ProviderRouter:
    provider = provider or FakeProvider(mode.value)
    other_mode = ProviderMode.GOOGLE if mode is ProviderMode.OPENROUTER else ProviderMode.OPENROUTER
    providers = {mode: provider, other_mode: FakeProvider(other_mode.value, configured=False)}
    return ProviderRouter(providers, mode=mode, retry_policy=fast_retry)

  return _make


@pytest.fixture
def registry() -> JobRegistry:
  return JobRegistry()


@pytest.fixture
def make_executor(registry: JobRegistry) -> Callable[..., BackgroundExecutor]:
  def _make(router: ProviderRouter, *, concurrency_limit: int | None = None) -> BackgroundExecutor:
    return BackgroundExecutor(registry=registry, router=router, concurrency_limit=concurrency_limit)

  return _make

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Callable

import httpx
import pytest

from storybook.ai.backoff import RetryPolicy
from storybook.ai.router import ProviderMode, ProviderRouter
from storybook.core.lifespan import ServiceContainer
from storybook.jobs.registry import JobRegistry
from storybook.jobs.worker import BackgroundExecutor
from storybook.services.story import StoryService
from storybook.services.strategy import StrategySelector
from tests.fakes import FakeProvider

# Ensure required settings are available before importing the app.
os.environ["STORYBOOK_ALLOWED_ORIGINS"] = "http://localhost"

from storybook.main import app  # noqa: E402


async def _no_sleep(delay: float) -> None:
  return None


@pytest.fixture
def build_container() -> Callable[..., ServiceContainer]:
  """Build the process services around scripted providers."""

  def _build(openrouter: FakeProvider | None = None, google: FakeProvider | None = None, *, preferred: str = "parallel") -> ServiceContainer:
    providers = {ProviderMode.OPENROUTER: openrouter or FakeProvider("openrouter"), ProviderMode.GOOGLE: google or FakeProvider("google", configured=False)}
    router = ProviderRouter(providers, mode=ProviderMode.OPENROUTER, retry_policy=RetryPolicy(max_retries=1, initial_delay=0.0, max_delay=0.0))
    registry = JobRegistry()
    executor = BackgroundExecutor(registry=registry, router=router)
    selector = StrategySelector(router=router, preferred=preferred, sleep=_no_sleep)
    return ServiceContainer(registry=registry, router=router, executor=executor, selector=selector, story_service=StoryService(router=router, selector=selector))

  return _build


@pytest.fixture
async def client_for() -> AsyncIterator[Callable[[ServiceContainer], httpx.AsyncClient]]:
  """Return a factory for clients bound to the app with the given services installed."""
  clients: list[httpx.AsyncClient] = []
  previous = getattr(app.state, "services", None)

  def _client(services: ServiceContainer) -> httpx.AsyncClient:
    app.state.services = services
    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
    clients.append(client)
    return client

  yield _client

  for client in clients:
    await client.aclose()
  app.state.services = previous

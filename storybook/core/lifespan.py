import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI

from storybook.ai.router import ProviderRouter
from storybook.config import Settings
from storybook.core.logging import _initialize_logging
from storybook.jobs.registry import JobRegistry
from storybook.jobs.worker import BackgroundExecutor
from storybook.services.story import StoryService
from storybook.services.strategy import StrategySelector
from storybook.services.tasks.factory import get_job_backend


@dataclass
class ServiceContainer:
  """Process-wide services shared by every request."""

  registry: JobRegistry
  router: ProviderRouter
  executor: BackgroundExecutor
  selector: StrategySelector
  story_service: StoryService


def build_services(settings: Settings) -> ServiceContainer:
  """Wire the registry, provider router, executor, and story pipeline together."""
  registry = JobRegistry(default_retention_seconds=settings.sync_job_ttl_seconds)
  router = ProviderRouter.from_settings(settings)
  executor = BackgroundExecutor(registry=registry, router=router, concurrency_limit=settings.image_concurrency_limit)
  job_backend = get_job_backend(settings, registry, executor) if settings.background_available else None
  selector = StrategySelector.from_settings(settings, router, job_backend)
  return ServiceContainer(registry=registry, router=router, executor=executor, selector=selector, story_service=StoryService(router=router, selector=selector))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and process-wide services, then let running jobs finish on shutdown."""
  from storybook.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("storybook.core.lifespan")

  try:
    _initialize_logging(settings)
    logger.info("Startup complete - logging verified.")
  except RuntimeError:
    # Fall back to stderr logging; the service can still answer requests.
    logger.warning("Initial logging setup failed.", exc_info=True)

  services = build_services(settings)
  app.state.services = services
  provider_status = services.router.describe()
  logger.info("Provider %s ready=%s strategy=%s", provider_status["current"], provider_status["hasKey"], services.selector.choose().value)

  yield

  if services.executor.in_flight:
    logger.info("Waiting for %d in-flight job(s) before shutdown", services.executor.in_flight)
  await services.executor.drain()

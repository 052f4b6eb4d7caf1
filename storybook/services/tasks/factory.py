from __future__ import annotations

from storybook.config import Settings
from storybook.jobs.registry import JobRegistry
from storybook.jobs.worker import BackgroundExecutor
from storybook.services.tasks.http import HttpJobBackend
from storybook.services.tasks.interface import JobBackend
from storybook.services.tasks.local import LocalJobBackend


def get_job_backend(settings: Settings, registry: JobRegistry, executor: BackgroundExecutor) -> JobBackend:
  """Factory to get the configured job backend."""
  if settings.base_url:
    return HttpJobBackend(settings.base_url)
  return LocalJobBackend(registry=registry, executor=executor, retention_seconds=settings.background_job_ttl_seconds)

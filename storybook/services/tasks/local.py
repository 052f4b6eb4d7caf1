from __future__ import annotations

import logging

from storybook.jobs.registry import JobRegistry
from storybook.jobs.worker import BackgroundExecutor
from storybook.services.tasks.interface import BackgroundStartError, JobBackend, JobRequest, JobSnapshot

logger = logging.getLogger(__name__)


class LocalJobBackend(JobBackend):
  """Runs background jobs in this process through the shared registry and executor."""

  def __init__(self, *, registry: JobRegistry, executor: BackgroundExecutor, retention_seconds: int) -> None:
    self._registry = registry
    self._executor = executor
    self._retention_seconds = retention_seconds

  async def start(self, request: JobRequest) -> str:
    """Register the job and hand it to the executor without waiting for it."""
    await self._registry.sweep()
    job_id = await self._registry.create(retention_seconds=self._retention_seconds, total=len(request.prompts))
    try:
      self._executor.submit(job_id, request.prompts, request.context, request.reference_photo, request.subject_name)
    except RuntimeError as exc:
      await self._registry.update(job_id, status="failed", error=f"Failed to start background job: {exc}")
      raise BackgroundStartError(f"Failed to start background job: {exc}") from exc
    logger.info("Started local background job %s images=%d", job_id, len(request.prompts))
    return job_id

  async def status(self, job_id: str) -> JobSnapshot:
    await self._registry.sweep()
    record = await self._registry.get(job_id)
    return JobSnapshot.from_record(record)

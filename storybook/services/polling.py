"""Client-side waiting for background illustration jobs."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

import httpx

from storybook.jobs.models import PageResult
from storybook.jobs.progress import rescale_progress
from storybook.jobs.registry import JobNotFoundError
from storybook.services.tasks.interface import JobBackend

ProgressCallback = Callable[[int, str], None]

logger = logging.getLogger(__name__)


class JobFailedError(RuntimeError):
  """Raised when a polled job reaches the failed state."""

  def __init__(self, job_id: str, error: str | None) -> None:
    super().__init__(error or "Background job failed")
    self.job_id = job_id
    self.error = error


class PollingTimeoutError(TimeoutError):
  """Raised when a job does not reach a terminal state within the wait ceiling."""

  def __init__(self, job_id: str, waited_seconds: float) -> None:
    super().__init__(f"Image generation timed out after {waited_seconds:.0f}s waiting for job {job_id}")
    self.job_id = job_id
    self.waited_seconds = waited_seconds


class PollingClient:
  """Poll a job backend until the job is terminal or the wait ceiling passes."""

  def __init__(self, backend: JobBackend, *, interval_seconds: float = 2.0, timeout_seconds: float = 900.0, window: tuple[int, int] = (30, 95), clock: Callable[[], float] = time.monotonic, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
    self._backend = backend
    self._interval = interval_seconds
    self._timeout = timeout_seconds
    self._window = window
    self._clock = clock
    self._sleep = sleep

  async def await_job(self, job_id: str, on_progress: ProgressCallback | None = None) -> list[PageResult]:
    """Return the ordered results of a completed job.

    Raises ``JobFailedError`` when the job fails and ``PollingTimeoutError`` once the
    ceiling passes. Status reads that miss (not found, transport errors) are logged
    and retried at the next interval.
    """
    started = self._clock()
    last_progress = -1

    while self._clock() - started < self._timeout:
      await self._sleep(self._interval)

      try:
        snapshot = await self._backend.status(job_id)
      except JobNotFoundError:
        logger.warning("Status check for job %s returned not found; retrying", job_id)
        continue
      except httpx.HTTPError as exc:
        logger.warning("Status check for job %s failed: %s", job_id, exc)
        continue

      if on_progress is not None and snapshot.progress >= last_progress:
        last_progress = snapshot.progress
        on_progress(rescale_progress(snapshot.progress, self._window), snapshot.message)

      logger.debug("Job %s status=%s progress=%d", job_id, snapshot.status, snapshot.progress)

      if snapshot.status == "completed":
        results = list(snapshot.result or [])
        logger.info("Job %s completed with %d result(s)", job_id, len(results))
        return results

      if snapshot.status == "failed":
        raise JobFailedError(job_id, snapshot.error)

    raise PollingTimeoutError(job_id, self._clock() - started)

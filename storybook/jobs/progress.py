"""Progress tracking for batch illustration jobs."""

from __future__ import annotations

import asyncio

from storybook.jobs.models import JobRecord
from storybook.jobs.registry import JobRegistry

COMPLETED_MESSAGE = "All images generated!"


def rescale_progress(progress: float, window: tuple[int, int]) -> int:
  """Map a 0-100 job progress value linearly into the caller's ``(start, end)`` window."""

  start, end = window
  bounded = min(max(progress, 0), 100)
  return round(start + (end - start) * bounded / 100)


def progress_message(completed: int, total: int) -> str:
  return f"Generated {completed} of {total} images..."


class JobProgressTracker:
  """Count settled sub-tasks and publish progress for one job."""

  def __init__(self, *, job_id: str, registry: JobRegistry, total: int) -> None:
    self._job_id = job_id
    self._registry = registry
    self._total = max(total, 1)
    self._completed = 0
    self._lock = asyncio.Lock()

  def _progress_percent(self, completed: int) -> int:
    return min(round(100 * completed / self._total), 100)

  async def start(self) -> JobRecord:
    """Move the job to processing before fan-out."""

    return await self._registry.update(self._job_id, status="processing", progress=0, total=self._total, message=progress_message(0, self._total))

  async def complete_one(self) -> JobRecord:
    """Record one settled sub-task, successful or not."""

    # The counter and the registry write happen under one lock so updates land in count order.
    async with self._lock:
      self._completed = min(self._completed + 1, self._total)
      completed = self._completed
      return await self._registry.update(self._job_id, progress=self._progress_percent(completed), message=progress_message(completed, self._total))

  async def finish(self, results) -> JobRecord:
    return await self._registry.update(self._job_id, status="completed", progress=100, message=COMPLETED_MESSAGE, result=results)

  async def fail(self, error: str) -> JobRecord:
    """Set the job to a failed state."""

    return await self._registry.update(self._job_id, status="failed", message="Image generation failed", error=error)

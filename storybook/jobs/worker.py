"""Background processor for batch illustration jobs."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Sequence

from storybook.ai.pipeline.contracts import ConsistencyContext, ImagePrompt
from storybook.ai.router import ProviderRouter
from storybook.jobs.models import PageResult
from storybook.jobs.progress import JobProgressTracker
from storybook.jobs.registry import JobNotFoundError, JobRegistry

logger = logging.getLogger(__name__)


async def generate_page_result(router: ProviderRouter, prompt: ImagePrompt, context: ConsistencyContext | None, reference_photo: str | None, subject_name: str) -> PageResult:
  """Run one illustration call and fold any failure into the page result."""
  try:
    image = await router.generate_image(prompt, context, reference_photo, subject_name)
  except Exception as exc:  # noqa: BLE001
    logger.warning("Page %d illustration failed: %s", prompt.page_number, exc)
    return PageResult(page_number=prompt.page_number, text=prompt.text, error=str(exc) or type(exc).__name__, is_cover=prompt.is_cover)
  return PageResult(page_number=prompt.page_number, text=prompt.text, image=image, is_cover=prompt.is_cover)


class BackgroundExecutor:
  """Fan a batch of illustration prompts out concurrently and report through the registry."""

  def __init__(self, *, registry: JobRegistry, router: ProviderRouter, concurrency_limit: int | None = None) -> None:
    self._registry = registry
    self._router = router
    self._concurrency_limit = concurrency_limit
    self._tasks: set[asyncio.Task] = set()

  @property
  def in_flight(self) -> int:
    return len(self._tasks)

  async def run(self, job_id: str, prompts: Sequence[ImagePrompt], context: ConsistencyContext | None = None, reference_photo: str | None = None, subject_name: str = "") -> None:
    """Generate every prompt of the job; outcomes are written to the registry only."""
    tracker = JobProgressTracker(job_id=job_id, registry=self._registry, total=len(prompts))

    # Startup checks fail the whole job; after fan-out, failures stay per page.
    if not prompts:
      await tracker.fail("No image prompts provided")
      return
    if not self._router.is_ready:
      await tracker.fail(f"{self._router.provider.info.label} API key is not configured")
      return

    await tracker.start()
    logger.info("Job %s processing %d image(s) provider=%s", job_id, len(prompts), self._router.mode.value)

    semaphore = asyncio.Semaphore(self._concurrency_limit) if self._concurrency_limit else None

    async def _one(prompt: ImagePrompt) -> PageResult:
      guard = semaphore if semaphore is not None else contextlib.nullcontext()
      async with guard:
        result = await generate_page_result(self._router, prompt, context, reference_photo, subject_name)
      await tracker.complete_one()
      return result

    # gather keeps results in prompt order regardless of completion order.
    results = await asyncio.gather(*(_one(prompt) for prompt in prompts))
    await tracker.finish(results)

    failures = sum(1 for result in results if not result.succeeded)
    logger.info("Job %s completed images=%d failed=%d", job_id, len(results) - failures, failures)

  def submit(self, job_id: str, prompts: Sequence[ImagePrompt], context: ConsistencyContext | None = None, reference_photo: str | None = None, subject_name: str = "") -> asyncio.Task:
    """Start ``run`` as a supervised task and return immediately."""
    task = asyncio.create_task(self.run(job_id, list(prompts), context, reference_photo, subject_name), name=f"illustration-job-{job_id}")
    self._tasks.add(task)
    task.add_done_callback(lambda done: self._on_task_done(job_id, done))
    return task

  def _on_task_done(self, job_id: str, task: asyncio.Task) -> None:
    self._tasks.discard(task)
    if task.cancelled():
      error: BaseException = asyncio.CancelledError(f"Job {job_id} was cancelled")
    else:
      error = task.exception()
      if error is None:
        return

    logger.error("Job %s crashed outside page handling", job_id, exc_info=error)
    follow_up = asyncio.ensure_future(self._record_crash(job_id, error))
    self._tasks.add(follow_up)
    follow_up.add_done_callback(self._tasks.discard)

  async def _record_crash(self, job_id: str, error: BaseException) -> None:
    try:
      await self._registry.update(job_id, status="failed", message="Image generation failed", error=str(error) or type(error).__name__)
    except JobNotFoundError:
      logger.warning("Job %s was evicted before its failure could be recorded", job_id)

  async def drain(self) -> None:
    """Wait for every submitted job to settle."""
    while self._tasks:
      await asyncio.gather(*list(self._tasks), return_exceptions=True)
      # Let done-callbacks run so crash follow-ups join the set.
      await asyncio.sleep(0)

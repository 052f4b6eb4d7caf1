"""Execution-strategy selection for illustration batches."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from storybook.ai.pipeline.contracts import ConsistencyContext, ImagePrompt
from storybook.ai.router import ProviderRouter
from storybook.config import Settings
from storybook.jobs.models import PageResult
from storybook.jobs.progress import progress_message, rescale_progress
from storybook.jobs.worker import generate_page_result
from storybook.services.polling import JobFailedError, PollingClient, ProgressCallback
from storybook.services.tasks.interface import BackgroundStartError, JobBackend, JobRequest

logger = logging.getLogger(__name__)


class Strategy(str, Enum):
  """How a batch of illustrations is executed."""

  PARALLEL = "parallel"
  SEQUENTIAL = "sequential"
  BACKGROUND = "background"


@dataclass(frozen=True)
class BatchOutcome:
  """Ordered page results and the strategy that produced them."""

  strategy: Strategy
  results: list[PageResult]
  fell_back: bool = False


def _high_water(on_progress: ProgressCallback | None) -> ProgressCallback | None:
  """Wrap a progress callback so the reported percentage never goes down."""
  if on_progress is None:
    return None
  highest = 0

  def _report(percent: int, message: str) -> None:
    nonlocal highest
    highest = max(highest, percent)
    on_progress(highest, message)

  return _report


class StrategySelector:
  """Pick an execution strategy and run a batch with it, falling back to sequential."""

  def __init__(
    self,
    *,
    router: ProviderRouter,
    preferred: str = "auto",
    execution_ceiling_seconds: float | None = None,
    background_available: bool = False,
    estimated_batch_seconds: float = 120.0,
    per_call_ceiling_seconds: float = 25.0,
    page_delay_seconds: float = 1.0,
    window: tuple[int, int] = (30, 95),
    job_backend: JobBackend | None = None,
    polling: PollingClient | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
  ) -> None:
    if preferred != "auto":
      Strategy(preferred)
    self._router = router
    self._preferred = preferred
    self._ceiling = execution_ceiling_seconds
    self._background_available = background_available
    self._estimated_batch_seconds = estimated_batch_seconds
    self._per_call_ceiling = per_call_ceiling_seconds
    self._page_delay = page_delay_seconds
    self._window = window
    self._job_backend = job_backend
    self._polling = polling
    self._sleep = sleep

  @classmethod
  def from_settings(cls, settings: Settings, router: ProviderRouter, job_backend: JobBackend | None = None) -> StrategySelector:
    polling = None
    if job_backend is not None:
      polling = PollingClient(job_backend, interval_seconds=settings.poll_interval_seconds, timeout_seconds=settings.poll_timeout_seconds, window=settings.poll_progress_window)
    return cls(
      router=router,
      preferred=settings.generation_strategy,
      execution_ceiling_seconds=settings.execution_ceiling_seconds,
      background_available=settings.background_available and job_backend is not None,
      estimated_batch_seconds=settings.estimated_batch_seconds,
      per_call_ceiling_seconds=settings.per_call_ceiling_seconds,
      page_delay_seconds=settings.sequential_page_delay_seconds,
      window=settings.poll_progress_window,
      job_backend=job_backend,
      polling=polling,
    )

  def choose(self) -> Strategy:
    """Return the configured strategy, or derive one from the deployment's limits."""
    if self._preferred != "auto":
      return Strategy(self._preferred)
    if self._background_available:
      return Strategy.BACKGROUND
    if self._ceiling is None or self._ceiling >= self._estimated_batch_seconds:
      return Strategy.PARALLEL
    return Strategy.SEQUENTIAL

  async def generate(self, prompts: Sequence[ImagePrompt], context: ConsistencyContext | None = None, reference_photo: str | None = None, subject_name: str = "", on_progress: ProgressCallback | None = None) -> BatchOutcome:
    """Illustrate every prompt and return results in prompt order."""
    strategy = self.choose()
    on_progress = _high_water(on_progress)
    logger.info("Generating %d illustration(s) strategy=%s provider=%s", len(prompts), strategy.value, self._router.mode.value)

    if strategy is Strategy.PARALLEL:
      return BatchOutcome(strategy, await self._run_parallel(prompts, context, reference_photo, subject_name, on_progress))
    if strategy is Strategy.SEQUENTIAL:
      return BatchOutcome(strategy, await self._run_sequential(prompts, context, reference_photo, subject_name, on_progress))

    try:
      results = await self._run_background(prompts, context, reference_photo, subject_name, on_progress)
      return BatchOutcome(strategy, results)
    except (BackgroundStartError, JobFailedError) as exc:
      logger.warning("Background generation unavailable, falling back to sequential: %s", exc)
      if on_progress is not None:
        on_progress(self._window[0], "Switching to page-by-page generation...")
      results = await self._run_sequential(prompts, context, reference_photo, subject_name, on_progress)
      return BatchOutcome(Strategy.SEQUENTIAL, results, fell_back=True)

  def _report(self, on_progress: ProgressCallback | None, completed: int, total: int) -> None:
    if on_progress is None:
      return
    on_progress(rescale_progress(round(100 * completed / max(total, 1)), self._window), progress_message(completed, total))

  async def _run_parallel(self, prompts: Sequence[ImagePrompt], context: ConsistencyContext | None, reference_photo: str | None, subject_name: str, on_progress: ProgressCallback | None) -> list[PageResult]:
    total = len(prompts)
    completed = 0

    async def _one(prompt: ImagePrompt) -> PageResult:
      nonlocal completed
      result = await generate_page_result(self._router, prompt, context, reference_photo, subject_name)
      completed += 1
      self._report(on_progress, completed, total)
      return result

    return list(await asyncio.gather(*(_one(prompt) for prompt in prompts)))

  async def _run_sequential(self, prompts: Sequence[ImagePrompt], context: ConsistencyContext | None, reference_photo: str | None, subject_name: str, on_progress: ProgressCallback | None) -> list[PageResult]:
    results: list[PageResult] = []
    total = len(prompts)

    for index, prompt in enumerate(prompts):
      try:
        # Each call stays under the platform ceiling on its own.
        result = await asyncio.wait_for(generate_page_result(self._router, prompt, context, reference_photo, subject_name), timeout=self._per_call_ceiling)
      except asyncio.TimeoutError:
        logger.warning("Page %d illustration timed out after %.0fs", prompt.page_number, self._per_call_ceiling)
        result = PageResult(page_number=prompt.page_number, text=prompt.text, error=f"Image generation timed out after {self._per_call_ceiling:.0f}s", is_cover=prompt.is_cover)

      results.append(result)
      self._report(on_progress, index + 1, total)

      if self._page_delay > 0 and index < total - 1:
        await self._sleep(self._page_delay)

    return results

  async def _run_background(self, prompts: Sequence[ImagePrompt], context: ConsistencyContext | None, reference_photo: str | None, subject_name: str, on_progress: ProgressCallback | None) -> list[PageResult]:
    if self._job_backend is None or self._polling is None:
      raise BackgroundStartError("Background execution is not configured")

    job_id = await self._job_backend.start(JobRequest(prompts=list(prompts), context=context, reference_photo=reference_photo, subject_name=subject_name))
    if on_progress is not None:
      on_progress(self._window[0], "Illustrations queued...")
    return await self._polling.await_job(job_id, on_progress)

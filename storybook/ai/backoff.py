"""Retry logic with capped exponential backoff and injectable error classification."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from storybook.ai.errors import ErrorClass, classify_provider_error

T = TypeVar("T")
Classifier = Callable[[BaseException], ErrorClass]
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
  """Retry configuration for external calls.

  ``max_retries`` counts retries, so the operation runs at most ``max_retries + 1`` times.
  """

  max_retries: int = 2
  initial_delay: float = 1.0
  max_delay: float = 5.0

  def backoff_delay(self, attempt: int) -> float:
    """Return the delay after the 0-based ``attempt`` failed."""
    return min(self.initial_delay * (2**attempt), self.max_delay)

  async def execute(self, operation: Callable[[], Awaitable[T]], classify: Classifier = classify_provider_error, *, label: str = "operation") -> T:
    """Run ``operation`` and retry failures the classifier marks as retryable.

    The last error is re-raised unchanged once retries are exhausted or a failure is
    classified as permanent.
    """
    attempt = 0
    while True:
      try:
        result = await operation()
        if attempt > 0:
          logger.info("%s succeeded after retry attempt=%d/%d", label, attempt + 1, self.max_retries + 1)
        return result
      except Exception as exc:
        error_class = classify(exc)

        # Permanent failures never burn another attempt.
        if not error_class.retryable:
          logger.warning("%s failed with %s error, not retrying: %s", label, error_class.value, exc)
          raise

        if attempt >= self.max_retries:
          logger.error("%s failed after %d attempts: %s", label, attempt + 1, exc)
          raise

        delay = self.backoff_delay(attempt)
        logger.warning("%s failed with %s error, retrying in %.1fs (attempt %d/%d): %s", label, error_class.value, delay, attempt + 1, self.max_retries, exc)
        await asyncio.sleep(delay)
        attempt += 1


"""Process-local, memory-resident job registry with time-based eviction."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from storybook.jobs.models import STATUS_RANK, JobRecord

DEFAULT_RETENTION_SECONDS = 1800

_UPDATABLE_FIELDS = frozenset({"status", "progress", "message", "total", "result", "error"})


class JobNotFoundError(LookupError):
  """Raised when a job id is unknown or its record has been evicted."""

  def __init__(self, job_id: str) -> None:
    super().__init__(f"Job {job_id} not found or expired")
    self.job_id = job_id


class JobRegistry:
  """Holds job records for one process; every mutation goes through ``update``."""

  def __init__(self, *, default_retention_seconds: int = DEFAULT_RETENTION_SECONDS, clock: Callable[[], float] = time.time) -> None:
    self._jobs: dict[str, JobRecord] = {}
    self._lock = asyncio.Lock()
    self._default_retention = default_retention_seconds
    self._clock = clock
    self._logger = logging.getLogger(__name__)

  def __len__(self) -> int:
    return len(self._jobs)

  async def create(self, *, retention_seconds: int | None = None, message: str = "Job queued", total: int = 0) -> str:
    """Register a queued job and return its id."""
    job_id = str(uuid.uuid4())
    now = self._clock()
    record = JobRecord(job_id=job_id, status="queued", created_at=now, updated_at=now, retention_seconds=retention_seconds if retention_seconds is not None else self._default_retention, message=message, total=total)
    async with self._lock:
      self._jobs[job_id] = record
    self._logger.debug("Created job %s retention=%ss", job_id, record.retention_seconds)
    return job_id

  async def get(self, job_id: str) -> JobRecord:
    """Return the current record; records are immutable so callers get a stable snapshot."""
    async with self._lock:
      record = self._jobs.get(job_id)
    if record is None:
      raise JobNotFoundError(job_id)
    return record

  async def update(self, job_id: str, **fields: Any) -> JobRecord:
    """Merge ``fields`` into the job and bump ``updated_at``.

    Terminal jobs are left untouched. Status never moves backwards and progress is
    clamped so it never decreases.
    """
    unknown = set(fields) - _UPDATABLE_FIELDS
    if unknown:
      raise ValueError(f"Unsupported job fields: {sorted(unknown)}")

    async with self._lock:
      current = self._jobs.get(job_id)
      if current is None:
        raise JobNotFoundError(job_id)
      if current.is_terminal:
        return current

      status = fields.get("status", current.status)
      if STATUS_RANK[status] < STATUS_RANK[current.status]:
        self._logger.warning("Ignoring backwards status move for job %s: %s -> %s", job_id, current.status, status)
        fields["status"] = current.status

      if "progress" in fields:
        fields["progress"] = min(max(int(fields["progress"]), current.progress), 100)

      if "result" in fields and fields["result"] is not None:
        fields["result"] = tuple(fields["result"])

      updated = replace(current, updated_at=self._clock(), **fields)
      self._jobs[job_id] = updated
      return updated

  async def sweep(self, max_age: float | None = None) -> int:
    """Evict jobs older than ``max_age`` seconds, or their own retention when omitted."""
    now = self._clock()
    async with self._lock:
      expired = [job_id for job_id, record in self._jobs.items() if now - record.created_at > (max_age if max_age is not None else record.retention_seconds)]
      for job_id in expired:
        del self._jobs[job_id]
    if expired:
      self._logger.info("Swept %d expired job(s)", len(expired))
    return len(expired)

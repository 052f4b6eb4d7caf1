from __future__ import annotations

import pytest

from storybook.jobs.models import PageResult
from storybook.jobs.registry import JobNotFoundError, JobRegistry


class FakeClock:
  def __init__(self, now: float = 1_000.0) -> None:
    self.now = now

  def __call__(self) -> float:
    return self.now


@pytest.mark.anyio
async def test_create_returns_unique_queued_jobs() -> None:
  registry = JobRegistry()
  first = await registry.create()
  second = await registry.create()

  assert first != second
  record = await registry.get(first)
  assert record.status == "queued"
  assert record.progress == 0
  assert record.result is None


@pytest.mark.anyio
async def test_get_unknown_job_raises_not_found() -> None:
  with pytest.raises(JobNotFoundError):
    await JobRegistry().get("missing")


@pytest.mark.anyio
async def test_update_merges_fields_and_bumps_updated_at() -> None:
  clock = FakeClock()
  registry = JobRegistry(clock=clock)
  job_id = await registry.create()

  clock.now += 5
  record = await registry.update(job_id, status="processing", progress=20, message="Generated 1 of 5 images...")

  assert record.status == "processing"
  assert record.progress == 20
  assert record.updated_at == record.created_at + 5


@pytest.mark.anyio
async def test_progress_never_decreases() -> None:
  registry = JobRegistry()
  job_id = await registry.create()
  await registry.update(job_id, status="processing", progress=60)

  record = await registry.update(job_id, progress=40)

  assert record.progress == 60


@pytest.mark.anyio
async def test_status_never_moves_backwards() -> None:
  registry = JobRegistry()
  job_id = await registry.create()
  await registry.update(job_id, status="processing")

  record = await registry.update(job_id, status="queued")

  assert record.status == "processing"


@pytest.mark.anyio
async def test_terminal_job_is_not_modified_again() -> None:
  registry = JobRegistry()
  job_id = await registry.create()
  results = [PageResult(page_number=1, image="https://img/1.png")]
  completed = await registry.update(job_id, status="completed", progress=100, result=results)

  after = await registry.update(job_id, status="failed", error="late failure", progress=10)

  assert after == completed
  first_read = await registry.get(job_id)
  second_read = await registry.get(job_id)
  assert first_read.result == second_read.result == tuple(results)
  assert first_read.error is None


@pytest.mark.anyio
async def test_update_rejects_unknown_fields() -> None:
  registry = JobRegistry()
  job_id = await registry.create()
  with pytest.raises(ValueError):
    await registry.update(job_id, created_at=0.0)


@pytest.mark.anyio
async def test_sweep_evicts_jobs_past_their_own_retention() -> None:
  clock = FakeClock()
  registry = JobRegistry(clock=clock)
  short_lived = await registry.create(retention_seconds=1800)
  long_lived = await registry.create(retention_seconds=3600)

  clock.now += 1801
  removed = await registry.sweep()

  assert removed == 1
  with pytest.raises(JobNotFoundError):
    await registry.get(short_lived)
  assert (await registry.get(long_lived)).job_id == long_lived


@pytest.mark.anyio
async def test_sweep_with_explicit_max_age() -> None:
  clock = FakeClock()
  registry = JobRegistry(clock=clock)
  job_id = await registry.create(retention_seconds=3600)

  clock.now += 61
  assert await registry.sweep(max_age=60) == 1
  with pytest.raises(JobNotFoundError):
    await registry.get(job_id)


@pytest.mark.anyio
async def test_expired_job_reads_as_not_found_even_when_completed() -> None:
  clock = FakeClock()
  registry = JobRegistry(clock=clock)
  job_id = await registry.create(retention_seconds=1800)
  await registry.update(job_id, status="completed", progress=100, result=[])

  clock.now += 1800 + 1
  await registry.sweep()

  with pytest.raises(JobNotFoundError):
    await registry.get(job_id)


@pytest.mark.anyio
async def test_zero_retention_is_kept_not_replaced_by_default() -> None:
  clock = FakeClock()
  registry = JobRegistry(default_retention_seconds=1800, clock=clock)
  job_id = await registry.create(retention_seconds=0)

  assert (await registry.get(job_id)).retention_seconds == 0

  clock.now += 1
  assert await registry.sweep() == 1

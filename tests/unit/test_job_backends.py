from __future__ import annotations

import json

import httpx
import pytest

from storybook.ai.pipeline.contracts import ConsistencyContext
from storybook.jobs.registry import JobNotFoundError
from storybook.services.polling import PollingClient
from storybook.services.tasks.http import HttpJobBackend
from storybook.services.tasks.interface import BackgroundStartError, JobRequest
from storybook.services.tasks.local import LocalJobBackend
from tests.fakes import FakeProvider, make_prompts


def _backend(handler) -> HttpJobBackend:
  return HttpJobBackend("https://jobs.example/", transport=httpx.MockTransport(handler))


@pytest.mark.anyio
async def test_http_start_posts_camel_case_payload() -> None:
  captured: list[httpx.Request] = []

  def handler(request: httpx.Request) -> httpx.Response:
    captured.append(request)
    return httpx.Response(202, json={"jobId": "job-9", "status": "queued", "message": "Generating 2 images in background"})

  request = JobRequest(prompts=make_prompts(2), context=ConsistencyContext(outfit="blue overalls"), reference_photo="data:image/png;base64,AAAA", subject_name="Mia")
  job_id = await _backend(handler).start(request)

  assert job_id == "job-9"
  assert captured[0].url == "https://jobs.example/v1/jobs"
  body = json.loads(captured[0].content)
  assert body["subjectName"] == "Mia"
  assert body["consistencyContext"]["characterOutfit"] == "blue overalls"
  assert [prompt["pageNumber"] for prompt in body["imagePrompts"]] == [1, 2]


@pytest.mark.anyio
async def test_http_start_failure_raises_background_start_error() -> None:
  with pytest.raises(BackgroundStartError, match="503"):
    await _backend(lambda request: httpx.Response(503, text="unavailable")).start(JobRequest(prompts=make_prompts(1)))


@pytest.mark.anyio
async def test_http_start_transport_failure_raises_background_start_error() -> None:
  def handler(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("refused", request=request)

  with pytest.raises(BackgroundStartError):
    await _backend(handler).start(JobRequest(prompts=make_prompts(1)))


@pytest.mark.anyio
async def test_http_status_parses_results() -> None:
  payload = {"jobId": "job-9", "status": "completed", "progress": 100, "message": "All images generated!", "result": [{"pageNumber": 1, "image": "https://img/1.png"}, {"pageNumber": 2, "error": "Insufficient credits (402)"}]}

  snapshot = await _backend(lambda request: httpx.Response(200, json=payload)).status("job-9")

  assert snapshot.status == "completed"
  assert snapshot.result[0].image == "https://img/1.png"
  assert snapshot.result[1].error == "Insufficient credits (402)"


@pytest.mark.anyio
async def test_http_status_404_is_not_found() -> None:
  with pytest.raises(JobNotFoundError):
    await _backend(lambda request: httpx.Response(404, json={"detail": "Job not found or expired"})).status("job-9")


@pytest.mark.anyio
async def test_local_backend_runs_job_in_process(make_router, make_executor, registry) -> None:
  executor = make_executor(make_router(FakeProvider()))
  backend = LocalJobBackend(registry=registry, executor=executor, retention_seconds=3600)

  job_id = await backend.start(JobRequest(prompts=make_prompts(3), subject_name="Mia"))
  await executor.drain()
  snapshot = await backend.status(job_id)

  assert snapshot.status == "completed"
  assert [page.page_number for page in snapshot.result] == [1, 2, 3]
  assert (await registry.get(job_id)).retention_seconds == 3600


@pytest.mark.anyio
async def test_local_backend_unknown_job(make_router, make_executor, registry) -> None:
  backend = LocalJobBackend(registry=registry, executor=make_executor(make_router()), retention_seconds=60)
  with pytest.raises(JobNotFoundError):
    await backend.status("nope")


@pytest.mark.anyio
async def test_http_status_unreadable_body_is_an_httpx_error() -> None:
  with pytest.raises(httpx.DecodingError):
    await _backend(lambda request: httpx.Response(200, text="<html>upstream hiccup</html>")).status("job-9")

  with pytest.raises(httpx.DecodingError):
    await _backend(lambda request: httpx.Response(200, json={"jobId": "job-9", "status": "exploded"})).status("job-9")


@pytest.mark.anyio
async def test_polling_survives_an_unreadable_status_body() -> None:
  bodies = [
    httpx.Response(200, text="<html>upstream hiccup</html>"),
    httpx.Response(200, json={"jobId": "job-9", "status": "completed", "progress": 100, "result": [{"pageNumber": 1, "image": "https://img/1.png"}]}),
  ]
  calls = 0

  def handler(request: httpx.Request) -> httpx.Response:
    nonlocal calls
    calls += 1
    return bodies.pop(0)

  async def _no_sleep(delay: float) -> None:
    return None

  results = await PollingClient(_backend(handler), sleep=_no_sleep).await_job("job-9")

  assert calls == 2
  assert [page.image for page in results] == ["https://img/1.png"]

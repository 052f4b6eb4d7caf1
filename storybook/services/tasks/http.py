from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from storybook.api.models import JobCreateResponse, JobStatusResponse
from storybook.jobs.registry import JobNotFoundError
from storybook.services.tasks.interface import BackgroundStartError, JobBackend, JobRequest, JobSnapshot

logger = logging.getLogger(__name__)


class HttpJobBackend(JobBackend):
  """Starts and reads jobs on a remote service through its ``/v1/jobs`` endpoints."""

  def __init__(self, base_url: str, *, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
    self._base_url = base_url.rstrip("/")
    self._timeout = timeout
    self._transport = transport

  def _build_client(self) -> httpx.AsyncClient:
    # Never trust environment proxy variables for service-to-service calls.
    return httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout, transport=self._transport, trust_env=False)

  async def start(self, request: JobRequest) -> str:
    try:
      async with self._build_client() as client:
        response = await client.post("/v1/jobs", json=request.to_payload())
        response.raise_for_status()
        created = JobCreateResponse.model_validate(response.json())
    except httpx.HTTPStatusError as exc:
      logger.error("Background job start returned %s: %s", exc.response.status_code, exc.response.text[:200])
      raise BackgroundStartError(f"Failed to start background job ({exc.response.status_code})") from exc
    except httpx.RequestError as exc:
      logger.error("Background job start failed: %s", exc)
      raise BackgroundStartError(f"Failed to start background job: {exc}") from exc
    except (ValueError, ValidationError) as exc:
      raise BackgroundStartError("Background job start returned an unreadable response") from exc

    logger.info("Started remote background job %s", created.job_id)
    return created.job_id

  async def status(self, job_id: str) -> JobSnapshot:
    async with self._build_client() as client:
      response = await client.get(f"/v1/jobs/{job_id}")
    if response.status_code == 404:
      raise JobNotFoundError(job_id)
    response.raise_for_status()

    try:
      payload = JobStatusResponse.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
      # Pollers retry httpx errors at the next interval.
      raise httpx.DecodingError(f"Unreadable status body for job {job_id}: {exc}", request=response.request) from exc
    result = [page.to_result() for page in payload.result] if payload.result is not None else None
    return JobSnapshot(job_id=payload.job_id, status=payload.status, progress=payload.progress, message=payload.message, result=result, error=payload.error)

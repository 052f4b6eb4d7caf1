import logging

from fastapi import HTTPException, status

from storybook.api.models import JobCreateRequest, JobCreateResponse, JobStatusResponse, PageResultModel
from storybook.jobs.models import JobRecord
from storybook.jobs.registry import JobNotFoundError, JobRegistry
from storybook.jobs.worker import BackgroundExecutor

logger = logging.getLogger(__name__)

_JOB_NOT_FOUND_MSG = "Job not found or expired"


def _job_status_from_record(record: JobRecord) -> JobStatusResponse:
  result = [PageResultModel.from_result(page) for page in record.result] if record.result is not None else None
  return JobStatusResponse(job_id=record.job_id, status=record.status, progress=record.progress, message=record.message, total=record.total, result=result, error=record.error)


async def create_job(request: JobCreateRequest, registry: JobRegistry, executor: BackgroundExecutor, *, retention_seconds: int) -> JobCreateResponse:
  """Register a background illustration job and dispatch it without waiting."""
  await registry.sweep()
  job_id = await registry.create(retention_seconds=retention_seconds, total=len(request.image_prompts))
  executor.submit(job_id, request.image_prompts, request.consistency_context, request.reference_photo, request.subject_name)
  logger.info("Accepted job %s images=%d subject=%s", job_id, len(request.image_prompts), request.subject_name or "-")

  # The task may already have moved the job forward; report what the registry holds now.
  record = await registry.get(job_id)
  message = record.message if record.status != "queued" else f"Generating {len(request.image_prompts)} images in background"
  return JobCreateResponse(job_id=job_id, status=record.status, message=message)


async def get_job_status(job_id: str, registry: JobRegistry) -> JobStatusResponse:
  """Fetch the status and result of a background job."""
  await registry.sweep()
  try:
    record = await registry.get(job_id)
  except JobNotFoundError as exc:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG) from exc
  return _job_status_from_record(record)

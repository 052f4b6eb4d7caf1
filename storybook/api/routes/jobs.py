import logging

from fastapi import APIRouter, Depends, status

from storybook.api.deps import get_executor, get_registry
from storybook.api.models import JobCreateRequest, JobCreateResponse, JobStatusResponse
from storybook.config import Settings, get_settings
from storybook.jobs.registry import JobRegistry
from storybook.jobs.worker import BackgroundExecutor
from storybook.services import jobs as job_service

router = APIRouter()
logger = logging.getLogger("storybook.api.routes.jobs")


@router.post("", response_model=JobCreateResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_job(  # noqa: B008
  request: JobCreateRequest,
  settings: Settings = Depends(get_settings),  # noqa: B008
  registry: JobRegistry = Depends(get_registry),  # noqa: B008
  executor: BackgroundExecutor = Depends(get_executor),  # noqa: B008
) -> JobCreateResponse:
  """Start a background illustration job and return its id immediately."""
  return await job_service.create_job(request, registry, executor, retention_seconds=settings.background_job_ttl_seconds)


@router.get("/{job_id}", response_model=JobStatusResponse)
async def get_job_status(  # noqa: B008
  job_id: str,
  registry: JobRegistry = Depends(get_registry),  # noqa: B008
) -> JobStatusResponse:
  """Fetch the status and result of a background job."""
  return await job_service.get_job_status(job_id, registry)

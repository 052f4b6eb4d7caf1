import logging

from fastapi import APIRouter, Depends

from storybook.ai.router import ProviderRouter
from storybook.api.deps import get_registry, get_router
from storybook.api.models import ProviderInfoResponse, ProviderSelectRequest
from storybook.jobs.registry import JobRegistry

router = APIRouter()
logger = logging.getLogger("storybook.api.routes.providers")


@router.get("", response_model=ProviderInfoResponse)
async def get_provider_info(  # noqa: B008
  registry: JobRegistry = Depends(get_registry),  # noqa: B008
  provider_router: ProviderRouter = Depends(get_router),  # noqa: B008
) -> ProviderInfoResponse:
  """Report the active provider and both backends' details."""
  await registry.sweep()
  return ProviderInfoResponse.model_validate(provider_router.describe())


@router.put("/current", response_model=ProviderInfoResponse)
async def select_provider(  # noqa: B008
  request: ProviderSelectRequest,
  registry: JobRegistry = Depends(get_registry),  # noqa: B008
  provider_router: ProviderRouter = Depends(get_router),  # noqa: B008
) -> ProviderInfoResponse:
  """Switch the process-wide provider for every subsequent call."""
  await registry.sweep()
  provider_router.select(request.provider)
  logger.info("Provider selected via API: %s", request.provider)
  return ProviderInfoResponse.model_validate(provider_router.describe())

import logging

from fastapi import APIRouter, Depends

from storybook.ai.pipeline.contracts import CharacterDescription
from storybook.api.deps import get_registry, get_story_service
from storybook.api.models import PageResultModel, PhotoAnalysisRequest, StoryCreateRequest, StoryResponse
from storybook.jobs.registry import JobRegistry
from storybook.services.story import StoryService

router = APIRouter()
logger = logging.getLogger("storybook.api.routes.stories")


@router.post("", response_model=StoryResponse)
async def create_story(  # noqa: B008
  request: StoryCreateRequest,
  registry: JobRegistry = Depends(get_registry),  # noqa: B008
  story_service: StoryService = Depends(get_story_service),  # noqa: B008
) -> StoryResponse:
  """Generate a complete illustrated story and wait for it."""
  await registry.sweep()

  def _log_progress(percent: int, message: str) -> None:
    logger.debug("Story progress subject=%s %d%% %s", request.subject_name, percent, message)

  story = await story_service.create_story(request.subject_name, request.theme, request.page_count, request.reference_photo, _log_progress, subject_age=request.subject_age)
  cover = PageResultModel.from_result(story.cover) if story.cover is not None else None
  return StoryResponse(title=story.title, cover=cover, pages=[PageResultModel.from_result(page) for page in story.pages], strategy=story.strategy.value, character=story.character)


@router.post("/analyze-photo", response_model=CharacterDescription)
async def analyze_photo(  # noqa: B008
  request: PhotoAnalysisRequest,
  registry: JobRegistry = Depends(get_registry),  # noqa: B008
  story_service: StoryService = Depends(get_story_service),  # noqa: B008
) -> CharacterDescription:
  """Describe the subject of a reference photo for consistent illustrations."""
  await registry.sweep()
  return await story_service.analyze_photo(request.reference_photo, request.subject_name)

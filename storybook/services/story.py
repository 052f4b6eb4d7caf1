"""End-to-end story pipeline: photo analysis, structure, illustrations, assembly."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from storybook.ai.pipeline.contracts import CharacterDescription, StoryRequest
from storybook.ai.prompts import build_consistency_context, build_image_prompts
from storybook.ai.router import ProviderRouter
from storybook.jobs.models import PageResult
from storybook.services.polling import ProgressCallback
from storybook.services.strategy import Strategy, StrategySelector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Story:
  """Assembled story ready for presentation."""

  title: str
  cover: PageResult | None
  pages: list[PageResult]
  strategy: Strategy
  character: CharacterDescription | None = None


def _noop_progress(percent: int, message: str) -> None:
  return None


class StoryService:
  """Coordinates the collaborators that turn a theme and a photo into a story."""

  def __init__(self, *, router: ProviderRouter, selector: StrategySelector) -> None:
    self._router = router
    self._selector = selector

  async def analyze_photo(self, reference_photo: str, subject_name: str) -> CharacterDescription:
    return await self._router.analyze_reference_photo(reference_photo, subject_name)

  async def create_story(self, subject_name: str, theme: str, page_count: int, reference_photo: str | None = None, on_progress: ProgressCallback | None = None, *, subject_age: str | None = None) -> Story:
    """Run the full pipeline and return the assembled story."""
    report = on_progress or _noop_progress
    character: CharacterDescription | None = None

    if reference_photo:
      report(5, f"Analyzing {subject_name}'s photo...")
      character = await self.analyze_photo(reference_photo, subject_name)
      report(15, "Photo analyzed")

    report(15, "Writing the story...")
    structure = await self._router.generate_story(StoryRequest(subject_name=subject_name, theme=theme, page_count=page_count, subject_age=subject_age))
    report(30, "Story written, illustrating pages...")

    prompts = build_image_prompts(structure, subject_name)
    context = build_consistency_context(structure, character)
    outcome = await self._selector.generate(prompts, context, reference_photo, subject_name, on_progress=report)

    cover = next((result for result in outcome.results if result.is_cover), None)
    pages = sorted((result for result in outcome.results if not result.is_cover), key=lambda result: result.page_number)
    failed = sum(1 for result in outcome.results if not result.succeeded)
    if failed:
      logger.warning("Story for %s finished with %d missing illustration(s)", subject_name, failed)

    report(100, "Your story is ready!")
    return Story(title=f"{subject_name}'s {structure.title}", cover=cover, pages=pages, strategy=outcome.strategy, character=character)

"""Provider routing for story, photo-analysis, and illustration calls."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import ValidationError

from storybook.ai.backoff import RetryPolicy
from storybook.ai.errors import ModelOutputError, ProviderError, classify_image_error, classify_story_error
from storybook.ai.json_parser import parse_model_json
from storybook.ai.pipeline.contracts import CharacterDescription, ConsistencyContext, ImagePrompt, StoryRequest, StoryStructure
from storybook.ai.prompts import render_image_prompt, render_photo_analysis_prompt, render_story_prompt
from storybook.ai.providers.base import Provider
from storybook.ai.providers.gemini import GeminiProvider
from storybook.ai.providers.openrouter import OpenRouterProvider
from storybook.config import Settings

logger = logging.getLogger(__name__)


class ProviderMode(str, Enum):
  """Supported generative backends."""

  GOOGLE = "google"
  OPENROUTER = "openrouter"


class ProviderRouter:
  """Dispatch every generation call to the currently selected backend."""

  def __init__(self, providers: dict[ProviderMode, Provider], *, mode: ProviderMode | str = ProviderMode.OPENROUTER, retry_policy: RetryPolicy | None = None) -> None:
    if not providers:
      raise ValueError("ProviderRouter needs at least one provider.")
    self._providers = dict(providers)
    self._retry = retry_policy or RetryPolicy()
    self._mode = ProviderMode.OPENROUTER
    self.select(mode)

  @classmethod
  def from_settings(cls, settings: Settings) -> ProviderRouter:
    """Build both backends and the retry policy from settings."""
    providers: dict[ProviderMode, Provider] = {
      ProviderMode.GOOGLE: GeminiProvider(settings.gemini_api_key),
      ProviderMode.OPENROUTER: OpenRouterProvider(settings.openrouter_api_key, base_url=settings.openrouter_base_url, http_referer=settings.openrouter_http_referer, title=settings.openrouter_title),
    }
    policy = RetryPolicy(max_retries=settings.retry_max_retries, initial_delay=settings.retry_initial_delay_seconds, max_delay=settings.retry_max_delay_seconds)
    return cls(providers, mode=settings.ai_provider, retry_policy=policy)

  @property
  def mode(self) -> ProviderMode:
    return self._mode

  @property
  def provider(self) -> Provider:
    return self._providers[self._mode]

  @property
  def is_ready(self) -> bool:
    return self.provider.is_configured

  def select(self, mode: ProviderMode | str) -> ProviderMode:
    """Switch the process-wide backend."""
    try:
      resolved = ProviderMode(mode)
    except ValueError as exc:
      raise ValueError(f"Unknown provider '{mode}'. Expected one of {[m.value for m in ProviderMode]}.") from exc
    if resolved not in self._providers:
      raise ValueError(f"Provider '{resolved.value}' is not registered.")
    if resolved is not self._mode:
      logger.info("AI provider switched %s -> %s", self._mode.value, resolved.value)
    self._mode = resolved
    return resolved

  def describe(self) -> dict[str, Any]:
    """Return the current provider, its key status, and static backend details."""
    return {
      "current": self._mode.value,
      "hasKey": self.provider.is_configured,
      "details": self.provider.info.to_dict(),
      "available": [provider.info.to_dict() | {"hasKey": provider.is_configured} for provider in self._providers.values()],
    }

  async def generate_story(self, request: StoryRequest) -> StoryStructure:
    """Generate the title, page texts, and consistency seed data for a story."""
    prompt = render_story_prompt(request)
    provider = self.provider

    async def _call() -> StoryStructure:
      raw = await provider.generate_text(prompt)
      try:
        return StoryStructure.model_validate(parse_model_json(raw))
      except ValidationError as exc:
        raise ModelOutputError(f"Story structure did not match the expected shape: {exc.error_count()} error(s)") from exc

    structure = await self._retry.execute(_call, classify_story_error, label=f"{provider.name} story")
    logger.info("Story structure generated provider=%s pages=%d", provider.name, len(structure.pages))
    return structure

  async def analyze_reference_photo(self, photo: str, subject_name: str) -> CharacterDescription:
    """Extract an appearance record from the reference photo."""
    prompt = render_photo_analysis_prompt(subject_name)
    provider = self.provider

    async def _call() -> CharacterDescription:
      raw = await provider.generate_text(prompt, image=photo)
      try:
        return CharacterDescription.model_validate(parse_model_json(raw))
      except ValidationError as exc:
        raise ModelOutputError(f"Photo analysis did not match the expected shape: {exc.error_count()} error(s)") from exc

    return await self._retry.execute(_call, classify_story_error, label=f"{provider.name} photo analysis")

  async def generate_image(self, prompt: ImagePrompt, context: ConsistencyContext | None = None, reference_photo: str | None = None, subject_name: str = "") -> str:
    """Generate one illustration and return its image reference."""
    provider = self.provider
    if not provider.is_configured:
      raise ProviderError(f"{provider.info.label} API key is not configured (401)", status_code=401, provider=provider.name)
    enriched = render_image_prompt(prompt, context, subject_name)

    async def _call() -> str:
      return await provider.generate_image(enriched, reference_photo=reference_photo)

    return await self._retry.execute(_call, classify_image_error, label=f"{provider.name} image page={prompt.page_number}")

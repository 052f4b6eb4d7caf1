"""OpenRouter provider implementation using the openai SDK."""

from __future__ import annotations

import logging
from typing import Any, Final

import openai
from openai import AsyncOpenAI

from storybook.ai.errors import MissingImageError, ProviderError
from storybook.ai.providers.base import Provider, ProviderInfo

OPENROUTER_INFO: Final[ProviderInfo] = ProviderInfo(
  name="openrouter",
  label="OpenRouter",
  text_model="google/gemini-2.5-flash",
  image_model="google/gemini-2.5-flash-image",
  timeout_seconds=90.0,
  notes="Longer timeout budget; suited to background generation of large batches.",
)

_IMAGE_EXTRA_BODY: Final[dict[str, Any]] = {"modalities": ["image", "text"], "image_config": {"aspect_ratio": "4:3"}}

logger = logging.getLogger(__name__)


def _extract_image_reference(message: dict[str, Any]) -> str | None:
  """Pull the image URL out of a chat completion message.

  Checks ``images[0].image_url.url`` first, then ``image_url`` items of a content
  array, then a bare ``data:image`` content string.
  """
  images = message.get("images") or []
  if images:
    url = ((images[0] or {}).get("image_url") or {}).get("url")
    if url:
      return url

  content = message.get("content")
  if isinstance(content, list):
    for item in content:
      if isinstance(item, dict) and item.get("type") == "image_url":
        url = (item.get("image_url") or {}).get("url")
        if url:
          return url

  if isinstance(content, str) and content.startswith("data:image"):
    return content

  return None


def _user_message(prompt: str, image: str | None) -> dict[str, Any]:
  if image is None:
    return {"role": "user", "content": prompt}
  return {"role": "user", "content": [{"type": "image_url", "image_url": {"url": image}}, {"type": "text", "text": prompt}]}


class OpenRouterProvider(Provider):
  """OpenRouter provider routed through the OpenAI-compatible chat completions API."""

  def __init__(self, api_key: str | None = None, *, base_url: str = "https://openrouter.ai/api/v1", http_referer: str | None = None, title: str | None = None, client: AsyncOpenAI | None = None) -> None:
    self.name: str = "openrouter"
    self.info = OPENROUTER_INFO
    self._api_key = api_key
    self._base_url = base_url
    self._http_referer = http_referer
    self._title = title
    self._client = client

  @property
  def is_configured(self) -> bool:
    return bool(self._api_key) or self._client is not None

  def _get_client(self) -> AsyncOpenAI:
    if self._client is not None:
      return self._client
    if not self._api_key:
      raise ProviderError("OpenRouter API key is not configured (401)", status_code=401, provider=self.name)

    # OpenRouter uses the OpenAI-compatible API; we add optional attribution headers.
    default_headers = {}
    if self._http_referer:
      default_headers["HTTP-Referer"] = self._http_referer
    if self._title:
      default_headers["X-Title"] = self._title

    # Retries are owned by RetryPolicy, so the SDK must not retry on its own.
    self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url, default_headers=default_headers or None, timeout=self.timeout_seconds, max_retries=0)
    return self._client

  async def _complete(self, model: str, prompt: str, *, image: str | None, extra_body: dict[str, Any] | None = None) -> dict[str, Any]:
    client = self._get_client()
    try:
      response = await client.chat.completions.create(model=model, messages=[_user_message(prompt, image)], extra_body=extra_body)
    except openai.APIStatusError as exc:
      raise ProviderError(f"OpenRouter API error ({exc.status_code}): {str(exc.message)[:200]}", status_code=exc.status_code, provider=self.name) from exc
    except openai.APITimeoutError as exc:
      raise ProviderError("OpenRouter request timeout", provider=self.name) from exc
    except openai.APIConnectionError as exc:
      raise ProviderError(f"OpenRouter network error: {exc}", provider=self.name) from exc

    if not response.choices:
      raise ProviderError("OpenRouter returned no choices (500)", status_code=500, provider=self.name)

    # model_dump keeps non-standard fields such as ``images``.
    return response.choices[0].message.model_dump()

  async def generate_text(self, prompt: str, *, image: str | None = None) -> str:
    """Generate text with the OpenRouter text model."""
    message = await self._complete(self.info.text_model, prompt, image=image)
    content = message.get("content") or ""
    logger.debug("OpenRouter text response length=%d", len(content))
    return content if isinstance(content, str) else str(content)

  async def generate_image(self, prompt: str, *, reference_photo: str | None = None) -> str:
    """Generate one illustration and return its URL or ``data:`` URL."""
    message = await self._complete(self.info.image_model, prompt, image=reference_photo, extra_body=_IMAGE_EXTRA_BODY)
    reference = _extract_image_reference(message)
    if reference is None:
      raise MissingImageError("No image in OpenRouter response", provider=self.name)
    logger.info("OpenRouter image extracted type=%s", "base64" if reference.startswith("data:") else "http")
    return reference

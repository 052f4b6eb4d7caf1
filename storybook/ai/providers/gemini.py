"""Gemini provider implementation using the google-genai SDK."""

from __future__ import annotations

import base64
import binascii
import logging
import warnings
from typing import Any, Final

import httpx
from pydantic.warnings import ArbitraryTypeWarning

with warnings.catch_warnings():
  warnings.filterwarnings("ignore", message=r"<built-in function any> is not a Python type.*", category=ArbitraryTypeWarning)
  from google import genai
  from google.genai import errors as genai_errors
  from google.genai import types

from storybook.ai.errors import MissingImageError, ProviderError
from storybook.ai.providers.base import Provider, ProviderInfo

GEMINI_INFO: Final[ProviderInfo] = ProviderInfo(
  name="google",
  label="Google AI Studio",
  text_model="gemini-2.5-flash",
  image_model="gemini-2.5-flash-image",
  timeout_seconds=26.0,
  notes="Fast responses; short timeout budget suits parallel or sequential generation.",
)

logger = logging.getLogger(__name__)


def _split_data_url(data_url: str) -> tuple[str, bytes]:
  """Return ``(mime_type, raw_bytes)`` for a base64 ``data:`` URL."""
  if not data_url.startswith("data:") or ";base64," not in data_url:
    raise ProviderError("Reference photo must be a base64 data URL (400 invalid request)", status_code=400, provider="google")
  header, _, payload = data_url.partition(";base64,")
  try:
    return header[len("data:") :] or "image/jpeg", base64.b64decode(payload)
  except (binascii.Error, ValueError) as exc:
    raise ProviderError("Reference photo is not valid base64 (400 invalid request)", status_code=400, provider="google") from exc


def _extract_inline_image(response: Any) -> str | None:
  """Return the first inline image of a response as a ``data:`` URL."""
  for candidate in getattr(response, "candidates", None) or []:
    content = getattr(candidate, "content", None)
    for part in getattr(content, "parts", None) or []:
      inline = getattr(part, "inline_data", None)
      if inline is not None and inline.data:
        mime_type = inline.mime_type or "image/png"
        return f"data:{mime_type};base64,{base64.b64encode(inline.data).decode('ascii')}"
  return None


class GeminiProvider(Provider):
  """Google AI Studio provider."""

  def __init__(self, api_key: str | None = None, *, client: genai.Client | None = None) -> None:
    self.name: str = "google"
    self.info = GEMINI_INFO
    self._api_key = api_key
    self._client = client

  @property
  def is_configured(self) -> bool:
    return bool(self._api_key) or self._client is not None

  def _get_client(self) -> genai.Client:
    if self._client is not None:
      return self._client
    if not self._api_key:
      raise ProviderError("Google API key is not configured (401)", status_code=401, provider=self.name)
    # HttpOptions timeout is expressed in milliseconds.
    self._client = genai.Client(api_key=self._api_key, http_options=types.HttpOptions(timeout=int(self.timeout_seconds * 1000)))
    return self._client

  def _contents(self, prompt: str, image: str | None) -> list[Any]:
    contents: list[Any] = []
    if image is not None:
      mime_type, data = _split_data_url(image)
      contents.append(types.Part.from_bytes(data=data, mime_type=mime_type))
    contents.append(prompt)
    return contents

  async def _generate(self, model: str, contents: list[Any], config: types.GenerateContentConfig | None = None) -> Any:
    client = self._get_client()
    try:
      # Use the async client to avoid blocking the asyncio event loop.
      return await client.aio.models.generate_content(model=model, contents=contents, config=config)
    except genai_errors.APIError as exc:
      raise ProviderError(f"Google API error ({exc.code}): {str(exc.message)[:200]}", status_code=exc.code, provider=self.name) from exc
    except httpx.TimeoutException as exc:
      raise ProviderError("Google request timeout", provider=self.name) from exc
    except httpx.TransportError as exc:
      raise ProviderError(f"Google network error: {exc}", provider=self.name) from exc

  async def generate_text(self, prompt: str, *, image: str | None = None) -> str:
    """Generate text with the Gemini text model."""
    response = await self._generate(self.info.text_model, self._contents(prompt, image))
    text = response.text or ""
    logger.debug("Gemini text response length=%d", len(text))
    return text

  async def generate_image(self, prompt: str, *, reference_photo: str | None = None) -> str:
    """Generate one illustration and return it as a ``data:`` URL."""
    config = types.GenerateContentConfig(response_modalities=["TEXT", "IMAGE"], image_config=types.ImageConfig(aspect_ratio="4:3"))
    response = await self._generate(self.info.image_model, self._contents(prompt, reference_photo), config)
    reference = _extract_inline_image(response)
    if reference is None:
      raise MissingImageError("No image in Google response", provider=self.name)
    return reference

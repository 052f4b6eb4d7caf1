"""Provider error type and retry classification helpers."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Iterable


class ErrorClass(str, Enum):
  """Retry classification of a failed external call."""

  PERMANENT = "permanent"
  TRANSIENT = "transient"
  UNKNOWN = "unknown"

  @property
  def retryable(self) -> bool:
    return self is not ErrorClass.PERMANENT


class ProviderError(Exception):
  """Uniform error raised by every provider backend.

  The message always embeds the HTTP status code when one exists so string based
  classifiers can work on errors from either backend.
  """

  def __init__(self, message: str, *, status_code: int | None = None, provider: str | None = None) -> None:
    super().__init__(message)
    self.message = message
    self.status_code = status_code
    self.provider = provider


class MissingImageError(ProviderError):
  """Provider answered successfully but returned no image payload."""


class ModelOutputError(ValueError):
  """Model text could not be parsed into the expected JSON structure."""


_PERMANENT_HINTS: tuple[str, ...] = (
  "402",
  "credits",
  "401",
  "api key",
  "403",
  "forbidden",
  "400",
  "invalid",
)

_TRANSIENT_HINTS: tuple[str, ...] = (
  "429",
  "rate limit",
  "timeout",
  "timed out",
  "503",
  "502",
  "network",
  "connection",
)

_PERMANENT_STATUS = {400, 401, 402, 403}
_TRANSIENT_STATUS = {408, 429, 502, 503, 504}


def _match_hint(message: str, hints: Iterable[str]) -> bool:
  """Return True when any hint appears in the message."""
  for hint in hints:
    if hint in message:
      return True
  return False


def _classify_by_status(status_code: int | None) -> ErrorClass | None:
  if status_code is None:
    return None
  if status_code in _PERMANENT_STATUS:
    return ErrorClass.PERMANENT
  if status_code in _TRANSIENT_STATUS:
    return ErrorClass.TRANSIENT
  if status_code >= 500:
    return ErrorClass.UNKNOWN
  return ErrorClass.PERMANENT


def classify_provider_error(exc: BaseException) -> ErrorClass:
  """Classify an exception raised by a provider call.

  Status codes win when the error carries one. Otherwise the message is scanned:
  permanent hints first, then transient hints, then a bare ``500`` counts as
  unknown. Anything left over (unrecognised 4xx, programming errors) is permanent.
  """
  if isinstance(exc, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
    return ErrorClass.TRANSIENT

  by_status = _classify_by_status(getattr(exc, "status_code", None))
  if by_status is not None:
    return by_status

  message = str(exc).lower()
  if _match_hint(message, _PERMANENT_HINTS):
    return ErrorClass.PERMANENT
  if _match_hint(message, _TRANSIENT_HINTS):
    return ErrorClass.TRANSIENT
  if "500" in message:
    return ErrorClass.UNKNOWN
  return ErrorClass.PERMANENT


def classify_image_error(exc: BaseException) -> ErrorClass:
  """Classifier for illustration calls; an empty image answer is worth another try."""
  if isinstance(exc, MissingImageError):
    return ErrorClass.TRANSIENT
  return classify_provider_error(exc)


def classify_story_error(exc: BaseException) -> ErrorClass:
  """Classifier for story and photo-analysis calls; unparseable JSON is retried."""
  if isinstance(exc, ModelOutputError):
    return ErrorClass.TRANSIENT
  return classify_provider_error(exc)

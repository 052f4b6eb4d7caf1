"""Base interface shared by the generative AI backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ProviderInfo:
  """Static description of a backend for provider-info surfaces."""

  name: str
  label: str
  text_model: str
  image_model: str
  timeout_seconds: float
  notes: str

  def to_dict(self) -> dict[str, Any]:
    return {"name": self.name, "label": self.label, "textModel": self.text_model, "imageModel": self.image_model, "timeoutSeconds": self.timeout_seconds, "notes": self.notes}


class Provider(ABC):
  """Abstract base class for story and illustration backends.

  Implementations return plain text or an image reference (http URL or ``data:`` URL)
  and raise ``ProviderError`` for every failure.
  """

  name: str
  info: ProviderInfo

  @property
  def timeout_seconds(self) -> float:
    return self.info.timeout_seconds

  @property
  @abstractmethod
  def is_configured(self) -> bool:
    """Return True when the backend has the credential it needs."""

  @abstractmethod
  async def generate_text(self, prompt: str, *, image: str | None = None) -> str:
    """Generate text, optionally grounded on a ``data:`` URL image."""

  @abstractmethod
  async def generate_image(self, prompt: str, *, reference_photo: str | None = None) -> str:
    """Generate one illustration and return its image reference."""

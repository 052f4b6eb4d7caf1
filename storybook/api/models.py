from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator
from pydantic.alias_generators import to_camel

from storybook.ai.pipeline.contracts import CharacterDescription, ConsistencyContext, ImagePrompt
from storybook.jobs.models import JobStatus, PageResult

MAX_PHOTO_CHARS = 12_000_000
LENGTH_PRESETS: dict[str, int] = {"short": 5, "medium": 8, "long": 12}

_API_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class PageResultModel(BaseModel):
  """Wire form of one illustration outcome."""

  page_number: int
  text: str = ""
  image: str | None = None
  error: str | None = None
  is_cover: bool = False
  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

  @classmethod
  def from_result(cls, result: PageResult) -> PageResultModel:
    return cls(page_number=result.page_number, text=result.text, image=result.image, error=result.error, is_cover=result.is_cover)

  def to_result(self) -> PageResult:
    return PageResult(page_number=self.page_number, text=self.text, image=self.image, error=self.error, is_cover=self.is_cover)


class JobCreateRequest(BaseModel):
  """Request payload for starting a batch illustration job."""

  image_prompts: list[ImagePrompt] = Field(min_length=1, max_length=20, description="Prompts in page order; the cover uses page number 0.")
  consistency_context: ConsistencyContext | None = Field(default=None, description="Appearance, outfit, character, and location facts echoed into every image prompt.")
  reference_photo: StrictStr | None = Field(default=None, max_length=MAX_PHOTO_CHARS, description="Optional reference photo as a data URL.")
  subject_name: StrictStr = Field(default="", max_length=80, description="Name of the story's main character.")
  model_config = _API_CONFIG


class JobCreateResponse(BaseModel):
  """Response payload for job creation."""

  job_id: StrictStr
  status: JobStatus
  message: str
  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobStatusResponse(BaseModel):
  """Status payload for a background job."""

  job_id: StrictStr
  status: JobStatus
  progress: int = Field(ge=0, le=100)
  message: str = ""
  total: int = Field(default=0, ge=0, description="Number of illustrations in the job.")
  result: list[PageResultModel] | None = None
  error: str | None = None
  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StoryCreateRequest(BaseModel):
  """Request payload for the synchronous story pipeline."""

  subject_name: StrictStr = Field(min_length=1, max_length=80, examples=["Mia"])
  theme: StrictStr = Field(min_length=1, max_length=500, examples=["A space explorer discovering a planet made of candy"])
  length: Literal["short", "medium", "long"] | int = Field(default="short", description="Preset (short=5, medium=8, long=12) or an explicit page count from 1 to 12.")
  reference_photo: StrictStr | None = Field(default=None, max_length=MAX_PHOTO_CHARS, description="Reference photo as a data URL.")
  subject_age: StrictStr | None = Field(default=None, max_length=40)
  model_config = _API_CONFIG

  @field_validator("length")
  @classmethod
  def validate_length(cls, value: Any) -> Any:
    if isinstance(value, int) and not 1 <= value <= 12:
      raise ValueError("Page count must be between 1 and 12.")
    return value

  @property
  def page_count(self) -> int:
    if isinstance(self.length, int):
      return self.length
    return LENGTH_PRESETS[self.length]


class StoryResponse(BaseModel):
  """Assembled story with its illustrations."""

  title: str
  cover: PageResultModel | None = None
  pages: list[PageResultModel]
  strategy: str
  character: CharacterDescription | None = None
  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PhotoAnalysisRequest(BaseModel):
  """Request payload for reference-photo analysis."""

  reference_photo: StrictStr = Field(min_length=1, max_length=MAX_PHOTO_CHARS)
  subject_name: StrictStr = Field(min_length=1, max_length=80)
  model_config = _API_CONFIG


class ProviderSelectRequest(BaseModel):
  """Request payload for switching the active provider."""

  provider: Literal["google", "openrouter"]
  model_config = _API_CONFIG


class ProviderInfoResponse(BaseModel):
  """Current provider, key status, and static backend details."""

  current: str
  has_key: bool
  details: dict[str, Any]
  available: list[dict[str, Any]]
  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

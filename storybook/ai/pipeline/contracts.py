"""Shared data contracts for the story and illustration pipeline."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CharacterDescription(BaseModel):
  """Appearance record extracted from the reference photo."""

  character_description: str | None = None
  skin_tone: str | None = None
  hair_color: str | None = None
  hair_style: str | None = None
  hair_length: str | None = None
  hair_texture: str | None = None
  eye_color: str | None = None
  approximate_age: str | None = None
  distinctive_features: str | None = None
  model_config = _CAMEL


class ConsistencyContext(BaseModel):
  """Facts echoed verbatim into every image prompt of one job."""

  character: CharacterDescription | None = Field(default=None, alias="characterDescription")
  outfit: str | None = Field(default=None, alias="characterOutfit")
  characters: dict[str, str] = Field(default_factory=dict)
  locations: dict[str, str] = Field(default_factory=dict)
  model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ImagePrompt(BaseModel):
  """One illustration request inside a batch."""

  prompt: str = Field(min_length=1)
  page_number: int = Field(ge=0)
  text: str = ""
  is_cover: bool = False
  location: str | None = None
  model_config = _CAMEL


class StoryPage(BaseModel):
  """One page of the generated story structure."""

  page_number: int = Field(ge=1)
  text: str
  location: str | None = None
  characters_present: list[str] = Field(default_factory=list)
  image_prompt: str
  model_config = _CAMEL


class StoryStructure(BaseModel):
  """Title, page texts, and consistency seed data returned by the story generator."""

  title: str
  character_outfit: str | None = None
  characters: dict[str, str] = Field(default_factory=dict)
  locations: dict[str, str] = Field(default_factory=dict)
  pages: list[StoryPage] = Field(min_length=1)
  model_config = _CAMEL


class StoryRequest(BaseModel):
  """Inputs for the story-structure generator."""

  subject_name: str = Field(min_length=1)
  theme: str = Field(min_length=1)
  page_count: int = Field(ge=1, le=12)
  subject_age: str | None = None

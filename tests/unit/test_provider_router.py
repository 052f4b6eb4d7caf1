from __future__ import annotations

import json

import pytest

from storybook.ai.errors import ModelOutputError, ProviderError
from storybook.ai.pipeline.contracts import ImagePrompt, StoryRequest
from storybook.ai.router import ProviderMode, ProviderRouter
from tests.fakes import FakeProvider

STORY_JSON = json.dumps(
  {
    "title": "The Moonlit Meadow",
    "characterOutfit": "yellow raincoat and red boots",
    "characters": {"Mia": "main character", "Pip": "tiny grey mouse"},
    "locations": {"meadow": "silver grass under a full moon"},
    "pages": [
      {"pageNumber": 1, "text": "Mia found a door.", "location": "meadow", "charactersPresent": ["Mia"], "imagePrompt": "Mia opening a tiny door"},
      {"pageNumber": 2, "text": "Pip waved hello.", "location": "meadow", "charactersPresent": ["Mia", "Pip"], "imagePrompt": "Pip waving at Mia"},
    ],
  }
)


def test_select_switches_and_rejects_unknown_modes(make_router) -> None:
  router = make_router()
  assert router.mode is ProviderMode.OPENROUTER

  assert router.select("google") is ProviderMode.GOOGLE
  assert router.provider.name == "google"

  with pytest.raises(ValueError):
    router.select("anthropic")
  assert router.mode is ProviderMode.GOOGLE


def test_describe_reports_key_status_per_backend(make_router) -> None:
  description = make_router().describe()

  assert description["current"] == "openrouter"
  assert description["hasKey"] is True
  assert description["details"]["name"] == "openrouter"
  by_name = {entry["name"]: entry["hasKey"] for entry in description["available"]}
  assert by_name == {"openrouter": True, "google": False}


def test_router_requires_a_provider() -> None:
  with pytest.raises(ValueError):
    ProviderRouter({})


@pytest.mark.anyio
async def test_generate_story_parses_fenced_json(make_router) -> None:
  provider = FakeProvider(text_responses=[f"```json\n{STORY_JSON}\n```"])

  structure = await make_router(provider).generate_story(StoryRequest(subject_name="Mia", theme="a moonlit adventure", page_count=2))

  assert structure.title == "The Moonlit Meadow"
  assert [page.page_number for page in structure.pages] == [1, 2]
  assert structure.pages[1].characters_present == ["Mia", "Pip"]
  assert "exactly 2 pages" in provider.text_prompts[0]


@pytest.mark.anyio
async def test_generate_story_retries_unparseable_output(make_router) -> None:
  provider = FakeProvider(text_responses=["Once upon a time...", STORY_JSON])

  structure = await make_router(provider).generate_story(StoryRequest(subject_name="Mia", theme="space", page_count=2))

  assert structure.title == "The Moonlit Meadow"
  assert len(provider.text_prompts) == 2


@pytest.mark.anyio
async def test_generate_story_gives_up_after_retries(make_router) -> None:
  provider = FakeProvider(text_responses=['{"title": "No pages"}'] * 3)

  with pytest.raises(ModelOutputError):
    await make_router(provider).generate_story(StoryRequest(subject_name="Mia", theme="space", page_count=2))

  assert len(provider.text_prompts) == 3


@pytest.mark.anyio
async def test_generate_story_does_not_retry_permanent_errors(make_router) -> None:
  provider = FakeProvider(text_responses=[ProviderError("OpenRouter API error (402): Insufficient credits", status_code=402)])

  with pytest.raises(ProviderError):
    await make_router(provider).generate_story(StoryRequest(subject_name="Mia", theme="space", page_count=2))

  assert len(provider.text_prompts) == 1


@pytest.mark.anyio
async def test_analyze_reference_photo_sends_the_photo(make_router) -> None:
  provider = FakeProvider(text_responses=['{"hairColor": "auburn", "eyeColor": "green"}'])

  character = await make_router(provider).analyze_reference_photo("data:image/jpeg;base64,AAAA", "Mia")

  assert character.hair_color == "auburn"
  assert character.eye_color == "green"
  assert provider.text_images == ["data:image/jpeg;base64,AAAA"]


@pytest.mark.anyio
async def test_generate_image_without_key_is_unauthorized(make_router) -> None:
  router = make_router()
  router.select(ProviderMode.GOOGLE)

  with pytest.raises(ProviderError) as excinfo:
    await router.generate_image(ImagePrompt(prompt="a cat", page_number=1))

  assert excinfo.value.status_code == 401


@pytest.mark.anyio
async def test_generate_image_retries_missing_image(make_router) -> None:
  from storybook.ai.errors import MissingImageError

  outcomes = [MissingImageError("No image in OpenRouter response"), "https://img/1.png"]

  def _behavior(prompt: str) -> str:
    outcome = outcomes.pop(0)
    if isinstance(outcome, Exception):
      raise outcome
    return outcome

  provider = FakeProvider(image_behavior=_behavior)
  image = await make_router(provider).generate_image(ImagePrompt(prompt="a cat", page_number=1), subject_name="Mia")

  assert image == "https://img/1.png"
  assert len(provider.image_prompts) == 2
  assert provider.image_prompts[0].startswith("Create a children's book illustration: a cat")


@pytest.mark.anyio
async def test_analyze_reference_photo_retries_off_shape_output(make_router) -> None:
  provider = FakeProvider(text_responses=['{"hairColor": ["brown", "black"]}', '{"hairColor": "brown"}'])

  character = await make_router(provider).analyze_reference_photo("data:image/jpeg;base64,AAAA", "Mia")

  assert character.hair_color == "brown"
  assert len(provider.text_prompts) == 2


@pytest.mark.anyio
async def test_analyze_reference_photo_off_shape_output_surfaces_as_model_error(make_router) -> None:
  provider = FakeProvider(text_responses=['{"eyeColor": 7}'] * 3)

  with pytest.raises(ModelOutputError):
    await make_router(provider).analyze_reference_photo("data:image/jpeg;base64,AAAA", "Mia")

  assert len(provider.text_prompts) == 3

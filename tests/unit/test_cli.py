from __future__ import annotations

import argparse
import json

import pytest

from storybook import cli
from storybook.config import get_settings
from storybook.core.lifespan import ServiceContainer
from storybook.services.story import StoryService
from storybook.services.strategy import StrategySelector
from tests.fakes import FakeProvider

STORY = {"title": "Snow Fort", "pages": [{"pageNumber": 1, "text": "Ada built a fort.", "imagePrompt": "Ada building a snow fort"}]}


@pytest.mark.parametrize(("raw", "expected"), [("short", 5), ("medium", 8), ("long", 12), ("3", 3)])
def test_page_count_accepts_presets_and_numbers(raw: str, expected: int) -> None:
  assert cli._page_count(raw) == expected


@pytest.mark.parametrize("raw", ["0", "13", "huge"])
def test_page_count_rejects_out_of_range(raw: str) -> None:
  with pytest.raises(argparse.ArgumentTypeError):
    cli._page_count(raw)


@pytest.fixture(autouse=True)
def _default_settings(monkeypatch):
  for name in ("STORYBOOK_AI_PROVIDER", "STORYBOOK_GENERATION_STRATEGY", "STORYBOOK_BASE_URL"):
    monkeypatch.delenv(name, raising=False)
  get_settings.cache_clear()
  yield
  get_settings.cache_clear()


def _container(make_router, make_executor, registry, provider: FakeProvider) -> ServiceContainer:
  router = make_router(provider)
  selector = StrategySelector(router=router, preferred="parallel")
  return ServiceContainer(registry=registry, router=router, executor=make_executor(router), selector=selector, story_service=StoryService(router=router, selector=selector))


def test_main_writes_story_json(monkeypatch, tmp_path, make_router, make_executor, registry) -> None:
  container = _container(make_router, make_executor, registry, FakeProvider(text_responses=[json.dumps(STORY)]))
  monkeypatch.setattr(cli, "build_services", lambda settings: container)
  output = tmp_path / "story.json"

  with pytest.raises(SystemExit) as excinfo:
    cli.main(["--name", "Ada", "--theme", "snow day", "--length", "1", "--output", str(output)])

  assert excinfo.value.code == 0
  story = json.loads(output.read_text(encoding="utf-8"))
  assert story["title"] == "Ada's Snow Fort"
  assert story["strategy"] == "parallel"
  assert story["cover"]["is_cover"] is True
  assert [page["page_number"] for page in story["pages"]] == [1]


def test_main_exits_when_provider_has_no_key(monkeypatch, tmp_path, make_router, make_executor, registry) -> None:
  container = _container(make_router, make_executor, registry, FakeProvider(configured=False))
  monkeypatch.setattr(cli, "build_services", lambda settings: container)

  with pytest.raises(SystemExit) as excinfo:
    cli.main(["--name", "Ada", "--theme", "snow day", "--output", str(tmp_path / "story.json")])

  assert excinfo.value.code == 2
  assert not (tmp_path / "story.json").exists()

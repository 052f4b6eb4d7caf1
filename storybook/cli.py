"""Generate an illustrated story from the command line and write it as JSON."""

from __future__ import annotations

import argparse
import asyncio
import base64
import dataclasses
import json
import logging
import mimetypes
import sys
from pathlib import Path

from storybook.api.models import LENGTH_PRESETS
from storybook.config import get_settings
from storybook.core.lifespan import build_services

logger = logging.getLogger(__name__)


def _page_count(raw: str) -> int:
  """Accept a length preset or an explicit page count."""
  if raw in LENGTH_PRESETS:
    return LENGTH_PRESETS[raw]
  try:
    value = int(raw)
  except ValueError as exc:
    raise argparse.ArgumentTypeError(f"Length must be one of {sorted(LENGTH_PRESETS)} or a number from 1 to 12, got '{raw}'.") from exc
  if not 1 <= value <= 12:
    raise argparse.ArgumentTypeError("Page count must be between 1 and 12.")
  return value


def _photo_data_url(path: Path) -> str:
  mime_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
  return f"data:{mime_type};base64,{base64.b64encode(path.read_bytes()).decode('ascii')}"


def _build_parser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(description="Generate a personalized illustrated storybook.")
  parser.add_argument("--name", required=True, help="Name of the story's main character.")
  parser.add_argument("--theme", required=True, help="What the story should be about.")
  parser.add_argument("--length", type=_page_count, default=LENGTH_PRESETS["short"], help="short, medium, long, or a page count (default: short).")
  parser.add_argument("--photo", type=Path, default=None, help="Reference photo of the main character.")
  parser.add_argument("--provider", choices=["google", "openrouter"], default=None, help="Override STORYBOOK_AI_PROVIDER.")
  parser.add_argument("--strategy", choices=["auto", "parallel", "sequential", "background"], default=None, help="Override STORYBOOK_GENERATION_STRATEGY.")
  parser.add_argument("--output", type=Path, default=Path("story.json"), help="Where to write the story JSON (default: story.json).")
  return parser


async def _run(args: argparse.Namespace) -> int:
  settings = get_settings()
  overrides = {}
  if args.provider:
    overrides["ai_provider"] = args.provider
  if args.strategy:
    overrides["generation_strategy"] = args.strategy
  # The CLI runs everything in this process, never against a remote service.
  settings = dataclasses.replace(settings, base_url=None, **overrides)

  services = build_services(settings)
  if not services.router.is_ready:
    logger.error("No API key configured for provider %s", services.router.mode.value)
    return 2

  reference_photo = _photo_data_url(args.photo) if args.photo else None

  def _on_progress(percent: int, message: str) -> None:
    logger.info("[%3d%%] %s", percent, message)

  story = await services.story_service.create_story(args.name, args.theme, args.length, reference_photo, _on_progress)
  await services.executor.drain()

  payload = {
    "title": story.title,
    "strategy": story.strategy.value,
    "cover": story.cover.to_dict() if story.cover else None,
    "pages": [page.to_dict() for page in story.pages],
    "character": story.character.model_dump(by_alias=True) if story.character else None,
  }
  args.output.write_text(json.dumps(payload, indent=2), encoding="utf-8")

  missing = sum(1 for page in story.pages if not page.succeeded)
  logger.info("Wrote %s (%d pages, %d missing illustrations)", args.output, len(story.pages), missing)
  return 0


def main(argv: list[str] | None = None) -> None:
  """Parse arguments and run the story pipeline."""
  logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S")
  args = _build_parser().parse_args(argv)
  sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
  main()

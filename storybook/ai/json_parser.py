"""Lenient JSON parsing for model text output."""

from __future__ import annotations

import json
import re
from typing import Any

from storybook.ai.errors import ModelOutputError

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def strip_json_fences(raw: str) -> str:
  """Remove a surrounding markdown code fence, if any."""
  return _FENCE_RE.sub("", raw.strip())


def _first_object(raw: str) -> str | None:
  """Return the first balanced ``{...}`` span, honoring string escapes."""
  start: int | None = None
  depth = 0
  in_string = False
  escape = False

  for index, char in enumerate(raw):
    if start is None:
      if char == "{":
        start = index
        depth = 1
      continue

    if in_string:
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      continue

    if char == '"':
      in_string = True
    elif char == "{":
      depth += 1
    elif char == "}":
      depth -= 1
      if depth == 0:
        return raw[start : index + 1]

  return None


def parse_model_json(raw: str | None) -> dict[str, Any]:
  """Parse a JSON object out of model text.

  Tries the text as-is, then without code fences, then the first ``{...}`` span
  (with trailing commas dropped). Raises ``ModelOutputError`` when nothing parses.
  """
  if not raw or not raw.strip():
    raise ModelOutputError("Model returned an empty response.")

  candidates = [raw, strip_json_fences(raw)]
  block = _first_object(raw)
  if block is not None:
    candidates.extend([block, _TRAILING_COMMA_RE.sub(r"\1", block)])

  last_error: json.JSONDecodeError | None = None
  for candidate in candidates:
    try:
      parsed = json.loads(candidate)
    except json.JSONDecodeError as exc:
      last_error = exc
      continue
    if isinstance(parsed, dict):
      return parsed

  raise ModelOutputError(f"Model returned invalid JSON: {last_error or 'expected an object'}")

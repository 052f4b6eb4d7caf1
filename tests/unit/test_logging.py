from __future__ import annotations

import sys

import pytest

from storybook.config import get_settings
from storybook.core import logging as storybook_logging
from storybook.core.logging import TruncatedFormatter, _rotated_name


def _nested_failure(depth: int) -> None:
  if depth == 0:
    raise RuntimeError("deep failure")
  _nested_failure(depth - 1)


def test_truncated_formatter_keeps_header_and_innermost_frames() -> None:
  try:
    _nested_failure(10)
  except RuntimeError:
    exc_info = sys.exc_info()

  text = TruncatedFormatter().formatException(exc_info)

  assert text.startswith("Traceback")
  assert "    ...\n" in text
  assert text.rstrip().endswith("RuntimeError: deep failure")


@pytest.mark.parametrize(("name", "expected"), [("storybook.log.1", "storybook.log-1"), ("storybook.log", "storybook.log")])
def test_rotated_name(name: str, expected: str) -> None:
  assert _rotated_name(name) == expected


def test_initialize_logging_runs_once(monkeypatch, tmp_path) -> None:
  calls: list[object] = []

  def _fake_setup(settings) -> object:
    calls.append(settings)
    return tmp_path / "storybook.log"

  monkeypatch.setattr(storybook_logging, "_log_file_path", None)
  monkeypatch.setattr(storybook_logging, "setup_logging", _fake_setup)

  storybook_logging._initialize_logging(get_settings())
  storybook_logging._initialize_logging(get_settings())

  assert len(calls) == 1

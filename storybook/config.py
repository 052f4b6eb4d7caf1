"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parents[1] / ".env", override=False)

_PROVIDERS = {"google", "openrouter"}
_STRATEGIES = {"auto", "parallel", "sequential", "background"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the storybook service."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  ai_provider: str
  gemini_api_key: str | None
  openrouter_api_key: str | None
  openrouter_base_url: str
  openrouter_http_referer: str | None
  openrouter_title: str | None
  generation_strategy: str
  execution_ceiling_seconds: float | None
  background_available: bool
  estimated_batch_seconds: float
  per_call_ceiling_seconds: float
  sequential_page_delay_seconds: float
  image_concurrency_limit: int | None
  retry_max_retries: int
  retry_initial_delay_seconds: float
  retry_max_delay_seconds: float
  sync_job_ttl_seconds: int
  background_job_ttl_seconds: int
  poll_interval_seconds: float
  poll_timeout_seconds: float
  poll_progress_window: tuple[int, int]
  base_url: str | None


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ("http://localhost:5173",)

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("STORYBOOK_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("STORYBOOK_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _non_negative_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value < 0:
    raise ValueError(f"{name} must be zero or a positive number.")
  return value


def _optional_positive_float(name: str) -> float | None:
  raw = _optional_str(os.getenv(name))
  if raw is None or raw.lower() in {"none", "unlimited"}:
    return None
  value = float(raw)
  if value <= 0:
    raise ValueError(f"{name} must be positive when provided.")
  return value


def _optional_positive_int(name: str) -> int | None:
  raw = _optional_str(os.getenv(name))
  if raw is None:
    return None
  value = int(raw)
  if value <= 0:
    raise ValueError(f"{name} must be positive when provided.")
  return value


def _parse_window(raw: str | None) -> tuple[int, int]:
  """Parse a 'start,end' progress window such as '30,95'."""
  if not raw:
    return (30, 95)
  parts = [part.strip() for part in raw.split(",")]
  if len(parts) != 2:
    raise ValueError("STORYBOOK_POLL_PROGRESS_WINDOW must look like 'start,end'.")
  start, end = int(parts[0]), int(parts[1])
  if not 0 <= start <= end <= 100:
    raise ValueError("STORYBOOK_POLL_PROGRESS_WINDOW must satisfy 0 <= start <= end <= 100.")
  return (start, end)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("STORYBOOK_ENV", "development").lower()
  debug = _parse_bool(os.getenv("STORYBOOK_DEBUG"))

  log_max_bytes = _positive_int("STORYBOOK_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("STORYBOOK_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("STORYBOOK_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # The selected provider is process-wide; callers never branch on it.
  ai_provider = (os.getenv("STORYBOOK_AI_PROVIDER") or "openrouter").strip().lower()
  if ai_provider not in _PROVIDERS:
    raise ValueError(f"STORYBOOK_AI_PROVIDER must be one of {sorted(_PROVIDERS)}.")

  generation_strategy = (os.getenv("STORYBOOK_GENERATION_STRATEGY") or "auto").strip().lower()
  if generation_strategy not in _STRATEGIES:
    raise ValueError(f"STORYBOOK_GENERATION_STRATEGY must be one of {sorted(_STRATEGIES)}.")

  retry_max_retries = int(os.getenv("STORYBOOK_RETRY_MAX_RETRIES", "2"))
  if retry_max_retries < 0:
    raise ValueError("STORYBOOK_RETRY_MAX_RETRIES must be zero or a positive integer.")

  poll_interval_seconds = float(os.getenv("STORYBOOK_POLL_INTERVAL_SECONDS", "2"))
  if poll_interval_seconds <= 0:
    raise ValueError("STORYBOOK_POLL_INTERVAL_SECONDS must be positive.")

  per_call_ceiling_seconds = float(os.getenv("STORYBOOK_PER_CALL_CEILING_SECONDS", "25"))
  if per_call_ceiling_seconds <= 0:
    raise ValueError("STORYBOOK_PER_CALL_CEILING_SECONDS must be positive.")

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("STORYBOOK_ALLOWED_ORIGINS")),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("STORYBOOK_LOG_HTTP_4XX")),
    ai_provider=ai_provider,
    gemini_api_key=_optional_str(os.getenv("GEMINI_API_KEY")),
    openrouter_api_key=_optional_str(os.getenv("OPENROUTER_API_KEY")),
    openrouter_base_url=(os.getenv("OPENROUTER_BASE_URL") or "https://openrouter.ai/api/v1").strip(),
    openrouter_http_referer=_optional_str(os.getenv("OPENROUTER_HTTP_REFERER")),
    openrouter_title=_optional_str(os.getenv("OPENROUTER_TITLE")) or "StoryBook Magic",
    generation_strategy=generation_strategy,
    execution_ceiling_seconds=_optional_positive_float("STORYBOOK_EXECUTION_CEILING_SECONDS"),
    background_available=_parse_bool(os.getenv("STORYBOOK_BACKGROUND_AVAILABLE", "true")),
    estimated_batch_seconds=float(os.getenv("STORYBOOK_ESTIMATED_BATCH_SECONDS", "120")),
    per_call_ceiling_seconds=per_call_ceiling_seconds,
    sequential_page_delay_seconds=_non_negative_float("STORYBOOK_SEQUENTIAL_PAGE_DELAY_SECONDS", "1"),
    image_concurrency_limit=_optional_positive_int("STORYBOOK_IMAGE_CONCURRENCY_LIMIT"),
    retry_max_retries=retry_max_retries,
    retry_initial_delay_seconds=_non_negative_float("STORYBOOK_RETRY_INITIAL_DELAY_SECONDS", "1"),
    retry_max_delay_seconds=_non_negative_float("STORYBOOK_RETRY_MAX_DELAY_SECONDS", "5"),
    sync_job_ttl_seconds=_positive_int("STORYBOOK_SYNC_JOB_TTL_SECONDS", "1800"),
    background_job_ttl_seconds=_positive_int("STORYBOOK_BACKGROUND_JOB_TTL_SECONDS", "3600"),
    poll_interval_seconds=poll_interval_seconds,
    poll_timeout_seconds=float(os.getenv("STORYBOOK_POLL_TIMEOUT_SECONDS", "900")),
    poll_progress_window=_parse_window(os.getenv("STORYBOOK_POLL_PROGRESS_WINDOW")),
    base_url=_optional_str(os.getenv("STORYBOOK_BASE_URL")),
  )

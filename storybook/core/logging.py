import logging
import logging.handlers
import sys
import time
import traceback
from pathlib import Path

from storybook.config import Settings

LOG_LINE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

# SDK loggers echo full request bodies (base64 photos) at DEBUG.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "google_genai")

_log_file_path: Path | None = None


class TruncatedFormatter(logging.Formatter):
  """Keep the exception header and the innermost frames on the console."""

  def formatException(self, ei) -> str:  # noqa: N802
    lines = traceback.format_exception(*ei)
    if len(lines) > 6:
      return "".join([lines[0], "    ...\n", *lines[-5:]])
    return "".join(lines)


def _rotated_name(default_name: str) -> str:
  """Name backups ``storybook.log-1`` instead of ``storybook.log.1``."""
  base, _, num = default_name.rpartition(".")
  return f"{base}-{num}" if num.isdigit() else default_name


def _file_handler(settings: Settings) -> tuple[logging.Handler, Path]:
  log_dir = Path(__file__).resolve().parents[2] / "logs"
  try:
    log_dir.mkdir(parents=True, exist_ok=True)
  except OSError as exc:
    raise RuntimeError(f"Failed to create log directory at {log_dir}: {exc}") from exc

  log_path = log_dir / f"storybook_{time.strftime('%Y%m%d_%H%M%S')}.log"
  handler = logging.handlers.RotatingFileHandler(log_path, encoding="utf-8", maxBytes=settings.log_max_bytes, backupCount=settings.log_backup_count)
  handler.namer = _rotated_name
  handler.setFormatter(logging.Formatter(LOG_LINE_FORMAT, datefmt=LOG_DATE_FORMAT))
  return handler, log_path


def setup_logging(settings: Settings) -> Path:
  """Send root logging to stdout and a rotating file under ``logs/``."""
  stream = logging.StreamHandler(sys.stdout)
  stream.setFormatter(TruncatedFormatter(LOG_LINE_FORMAT, datefmt=LOG_DATE_FORMAT))
  file_handler, log_path = _file_handler(settings)

  logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO, handlers=[stream, file_handler], force=True)
  for logger_name in _NOISY_LOGGERS:
    logging.getLogger(logger_name).setLevel(logging.WARNING)
  return log_path


def _initialize_logging(settings: Settings) -> None:
  """Configure logging once per process."""
  global _log_file_path
  if _log_file_path is not None:
    return
  _log_file_path = setup_logging(settings)
  logger = logging.getLogger("storybook.core.logging")
  logger.info("Logging initialized. Writing to %s", _log_file_path)
  logger.info("Runtime environment=%s provider=%s strategy=%s", settings.environment, settings.ai_provider, settings.generation_strategy)

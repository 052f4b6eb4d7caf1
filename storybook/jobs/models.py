"""Domain models for illustration jobs."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Literal

JobStatus = Literal["queued", "processing", "completed", "failed"]

# Forward-only ordering; terminal states share the highest rank.
STATUS_RANK: dict[str, int] = {"queued": 0, "processing": 1, "completed": 2, "failed": 2}
TERMINAL_STATUSES = frozenset({"completed", "failed"})


@dataclass(frozen=True)
class PageResult:
  """Outcome of one illustration: an image reference or a per-page error, never both."""

  page_number: int
  text: str = ""
  image: str | None = None
  error: str | None = None
  is_cover: bool = False

  def __post_init__(self) -> None:
    if self.image is not None and self.error is not None:
      raise ValueError("PageResult cannot carry both an image and an error.")

  @property
  def succeeded(self) -> bool:
    return self.image is not None

  def to_dict(self) -> dict[str, Any]:
    return asdict(self)


@dataclass(frozen=True)
class JobRecord:
  """Represents one batch illustration job held by the registry."""

  job_id: str
  status: JobStatus
  created_at: float
  updated_at: float
  retention_seconds: int
  progress: int = 0
  message: str = ""
  total: int = 0
  result: tuple[PageResult, ...] | None = None
  error: str | None = None

  @property
  def is_terminal(self) -> bool:
    return self.status in TERMINAL_STATUSES

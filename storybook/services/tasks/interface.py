from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from storybook.ai.pipeline.contracts import ConsistencyContext, ImagePrompt
from storybook.jobs.models import JobRecord, JobStatus, PageResult


class BackgroundStartError(RuntimeError):
  """Raised when a background job could not be started."""


@dataclass(frozen=True)
class JobRequest:
  """Everything a background job needs to illustrate one batch."""

  prompts: list[ImagePrompt]
  context: ConsistencyContext | None = None
  reference_photo: str | None = None
  subject_name: str = ""

  def to_payload(self) -> dict[str, Any]:
    """Serialize to the camelCase body accepted by ``POST /v1/jobs``."""
    return {
      "imagePrompts": [prompt.model_dump(by_alias=True) for prompt in self.prompts],
      "consistencyContext": self.context.model_dump(by_alias=True) if self.context is not None else None,
      "referencePhoto": self.reference_photo,
      "subjectName": self.subject_name,
    }


@dataclass(frozen=True)
class JobSnapshot:
  """Point-in-time view of a job, independent of where it runs."""

  job_id: str
  status: JobStatus
  progress: int = 0
  message: str = ""
  result: list[PageResult] | None = None
  error: str | None = None

  @classmethod
  def from_record(cls, record: JobRecord) -> JobSnapshot:
    result = list(record.result) if record.result is not None else None
    return cls(job_id=record.job_id, status=record.status, progress=record.progress, message=record.message, result=result, error=record.error)


class JobBackend(Protocol):
  """Interface for starting and reading background illustration jobs."""

  async def start(self, request: JobRequest) -> str:
    """Start a job and return its id."""
    ...

  async def status(self, job_id: str) -> JobSnapshot:
    """Return the current snapshot or raise ``JobNotFoundError``."""
    ...

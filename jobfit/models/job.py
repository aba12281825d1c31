"""Job Pydantic models."""

from datetime import datetime, timezone
from typing import Any, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from jobfit.models.analysis import JobAnalysis

JobStatusValue = Literal["queued_created", "analyzing", "completed", "failed"]

PENDING_STATUSES: frozenset[str] = frozenset({"queued_created", "analyzing"})
TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class JobSource(BaseModel):
    """Where a job's content comes from: a posting URL or pasted text."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["url", "text"]
    value: str = Field(min_length=1)

    @field_validator("value")
    @classmethod
    def not_whitespace(cls, v: str) -> str:
        """Validate that value is not only whitespace."""
        if not v.strip():
            raise ValueError("source value cannot be only whitespace")
        return v

    @classmethod
    def url(cls, value: str) -> "JobSource":
        return cls(kind="url", value=value.strip())

    @classmethod
    def text(cls, value: str) -> "JobSource":
        return cls(kind="text", value=value)


class Job(BaseModel):
    """A submitted analysis request and its lifecycle record."""

    id: str = Field(default_factory=lambda: str(uuid4()), min_length=1)
    source: JobSource
    captured_text: Optional[str] = None
    status: JobStatusValue = "queued_created"
    result: Optional[JobAnalysis] = None
    error_message: Optional[str] = None
    identity_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def check_result_invariant(self) -> "Job":
        """A completed job carries its result and text; a failed one carries no result."""
        if self.status == "completed":
            if self.result is None:
                raise ValueError("completed job must have a result")
            if self.captured_text is None:
                raise ValueError("completed job must have captured_text")
        if self.status == "failed" and self.result is not None:
            raise ValueError("failed job cannot have a result")
        return self

    @property
    def is_pending(self) -> bool:
        return self.status in PENDING_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def transition(self, status: JobStatusValue, **changes: Any) -> "Job":
        """Return a validated copy of this job in ``status``."""
        data = dict(self)
        data.update(changes)
        data["status"] = status
        data["updated_at"] = utc_now()
        return Job(**data)

"""Attempt-related Pydantic models."""
import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class AttemptStatus(str, enum.Enum):
    """Status of a test attempt."""

    STARTED = "started"
    IN_PROGRESS = "in_progress"
    INTERRUPTED = "interrupted"
    EXPIRED = "expired"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

    @property
    def is_open(self) -> bool:
        """Attempt is still being taken."""
        return self in (AttemptStatus.STARTED, AttemptStatus.IN_PROGRESS)

    @property
    def is_resumable(self) -> bool:
        return self.is_open or self is AttemptStatus.INTERRUPTED

    @property
    def is_final(self) -> bool:
        return self in (
            AttemptStatus.EXPIRED,
            AttemptStatus.COMPLETED,
            AttemptStatus.ABANDONED,
        )


class TestAttempt(BaseModel):
    """One run of a test by a user."""

    __test__ = False

    id: str = Field(..., min_length=1)
    assignmentId: str
    attemptNumber: int = Field(1, ge=1)
    startedAt: datetime
    completedAt: datetime | None = None
    status: AttemptStatus = AttemptStatus.STARTED
    score: float | None = None
    passed: bool | None = None
    answers: dict[str, Any] = Field(default_factory=dict)


class AttemptSyncRequest(BaseModel):
    """Upsert of changed answers for an attempt in progress."""

    questionId: str | None = None
    chapterId: str | None = None
    answers: dict[str, Any] = Field(default_factory=dict)
    currentPage: int | None = Field(None, ge=0)
    timeSpentSeconds: int | None = Field(None, ge=0)
    status: AttemptStatus | None = None


class AttemptCompleteRequest(BaseModel):
    """Final submission of an attempt."""

    score: float = 0
    answers: dict[str, Any] = Field(default_factory=dict)

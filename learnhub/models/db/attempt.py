"""
Attempt and AttemptAnswer database models for test sessions.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from learnhub.database import Base
from learnhub.models.attempts import AttemptStatus

if TYPE_CHECKING:
    from learnhub.models.db.assignment import Assignment


class Attempt(Base):
    """
    Test attempt record.
    One run of an assigned test; numbered per (assignment, user).
    """

    __tablename__ = "attempts"
    __table_args__ = (
        UniqueConstraint(
            "assignment_id", "attempt_number", name="uq_assignment_attempt_number"
        ),
    )

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: uuid.uuid4().hex
    )
    assignment_id: Mapped[str] = mapped_column(
        ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    attempt_number: Mapped[int] = mapped_column(default=1, nullable=False)

    # Timing
    started_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    current_page: Mapped[int] = mapped_column(default=0, nullable=False)
    time_spent_seconds: Mapped[int] = mapped_column(default=0, nullable=False)

    # Status and results
    status: Mapped[str] = mapped_column(
        String(20), default=AttemptStatus.STARTED.value, nullable=False
    )
    score: Mapped[float | None] = mapped_column(nullable=True)
    passed: Mapped[bool | None] = mapped_column(nullable=True)

    assignment: Mapped["Assignment"] = relationship(
        "Assignment", back_populates="attempts"
    )
    answers: Mapped[list["AttemptAnswer"]] = relationship(
        "AttemptAnswer", back_populates="attempt", cascade="all, delete-orphan"
    )

    @property
    def answers_map(self) -> dict[str, Any]:
        return {answer.question_id: answer.value for answer in self.answers}

    @property
    def is_completed(self) -> bool:
        """Check if attempt is completed."""
        return self.status == AttemptStatus.COMPLETED.value


class AttemptAnswer(Base):
    """
    Latest answer to one question within an attempt.
    Upserted on every sync, keyed by (attempt, question).
    """

    __tablename__ = "attempt_answers"
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_attempt_question"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    attempt_id: Mapped[str] = mapped_column(
        ForeignKey("attempts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id: Mapped[str] = mapped_column(String(64), nullable=False)
    value_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    answered_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    attempt: Mapped["Attempt"] = relationship("Attempt", back_populates="answers")

    @property
    def value(self) -> Any:
        """Parse answer value from JSON."""
        if self.value_json is None:
            return None
        try:
            return json.loads(self.value_json)
        except (json.JSONDecodeError, TypeError):
            return None

    @value.setter
    def value(self, value: Any) -> None:
        self.value_json = None if value is None else json.dumps(value)

"""
Test definition, question and assignment database models.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from learnhub.config import DEFAULT_MAX_ATTEMPTS
from learnhub.database import Base
from learnhub.models.assignments import QuestionType

if TYPE_CHECKING:
    from learnhub.models.db.attempt import Attempt


def _new_id() -> str:
    return uuid.uuid4().hex


class TestDefinition(Base):
    """
    Authored test.
    Created by the authoring tools; read-only to the session engine.
    """

    __tablename__ = "tests"
    __test__ = False

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    passing_score: Mapped[float] = mapped_column(default=0, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(default=0, nullable=False)
    max_attempts: Mapped[int] = mapped_column(
        default=DEFAULT_MAX_ATTEMPTS, nullable=False
    )

    questions: Mapped[list["TestQuestion"]] = relationship(
        "TestQuestion",
        back_populates="test",
        cascade="all, delete-orphan",
        order_by="TestQuestion.order_index",
    )


class TestQuestion(Base):
    """Question of a test with its answer key."""

    __tablename__ = "test_questions"
    __test__ = False

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    test_id: Mapped[str] = mapped_column(
        ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[str] = mapped_column(
        String(20), default=QuestionType.SINGLE.value, nullable=False
    )
    order_index: Mapped[int] = mapped_column(default=0, nullable=False)
    points: Mapped[float] = mapped_column(default=1, nullable=False)

    # Stored as JSON
    options_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    correct_answer_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    test: Mapped["TestDefinition"] = relationship(
        "TestDefinition", back_populates="questions"
    )

    @property
    def options(self) -> list[str]:
        """Parse options from JSON."""
        if not self.options_json:
            return []
        try:
            return json.loads(self.options_json)
        except (json.JSONDecodeError, TypeError):
            return []

    @options.setter
    def options(self, value: list[str] | None) -> None:
        self.options_json = json.dumps(value) if value else None

    @property
    def correct_answer(self) -> Any:
        """Parse answer key from JSON."""
        if self.correct_answer_json is None:
            return None
        try:
            return json.loads(self.correct_answer_json)
        except (json.JSONDecodeError, TypeError):
            return None

    @correct_answer.setter
    def correct_answer(self, value: Any) -> None:
        self.correct_answer_json = None if value is None else json.dumps(value)


class Assignment(Base):
    """
    Binding of a course and/or test to one user.
    Course chapters are tracked through ChapterProgress, test runs through Attempt.
    """

    __tablename__ = "assignments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    test_id: Mapped[str | None] = mapped_column(
        ForeignKey("tests.id", ondelete="CASCADE"), nullable=True, index=True
    )
    course_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )

    # Overrides the test's default when set
    max_attempts_override: Mapped[int | None] = mapped_column(nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    deadline_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    test: Mapped["TestDefinition | None"] = relationship("TestDefinition")
    attempts: Mapped[list["Attempt"]] = relationship(
        "Attempt", back_populates="assignment", cascade="all, delete-orphan"
    )

    @property
    def max_attempts(self) -> int:
        if self.max_attempts_override is not None:
            return self.max_attempts_override
        if self.test is not None:
            return self.test.max_attempts
        return DEFAULT_MAX_ATTEMPTS

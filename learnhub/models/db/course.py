"""
Course chapter and chapter progress database models.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any

import sqlalchemy as sa
from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from learnhub.database import Base
from learnhub.models.progress import ChapterType


class CourseChapter(Base):
    """Ordered chapter of a course."""

    __tablename__ = "course_chapters"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: uuid.uuid4().hex
    )
    course_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    chapter_type: Mapped[str] = mapped_column(
        String(20), default=ChapterType.DOCUMENT.value, nullable=False
    )
    order_index: Mapped[int] = mapped_column(default=0, nullable=False)
    content_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def content(self) -> dict[str, Any] | None:
        if not self.content_json:
            return None
        try:
            return json.loads(self.content_json)
        except (json.JSONDecodeError, TypeError):
            return None

    @content.setter
    def content(self, value: dict[str, Any] | None) -> None:
        self.content_json = json.dumps(value) if value else None


class ChapterProgress(Base):
    """
    Learner progress on one chapter of an assigned course.
    Keyed by (assignment, chapter).
    """

    __tablename__ = "chapter_progress"
    __table_args__ = (
        UniqueConstraint("assignment_id", "chapter_id", name="uq_assignment_chapter"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    assignment_id: Mapped[str] = mapped_column(
        ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    chapter_id: Mapped[str] = mapped_column(
        ForeignKey("course_chapters.id", ondelete="CASCADE"), nullable=False
    )
    is_completed: Mapped[bool] = mapped_column(default=False, nullable=False)
    current_page: Mapped[int] = mapped_column(default=0, nullable=False)
    time_spent_seconds: Mapped[int] = mapped_column(default=0, nullable=False)
    last_viewed_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=True,
    )

    # Saved quiz answers (stored as JSON list)
    answers_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def answers(self) -> list[dict[str, Any]] | None:
        if not self.answers_json:
            return None
        try:
            return json.loads(self.answers_json)
        except (json.JSONDecodeError, TypeError):
            return None

    @answers.setter
    def answers(self, value: list[dict[str, Any]] | None) -> None:
        self.answers_json = json.dumps(value) if value else None

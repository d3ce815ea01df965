"""Assignment and question Pydantic models."""
import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class QuestionType(str, enum.Enum):
    """How a question is answered and scored."""

    SINGLE = "single"
    MULTIPLE = "multiple"
    TEXT = "text"
    OPEN = "open"


class Question(BaseModel):
    """A test question. Immutable once fetched."""

    model_config = {"frozen": True}

    id: str = Field(..., min_length=1)
    text: str
    type: QuestionType = QuestionType.SINGLE
    options: list[str] = Field(default_factory=list)
    correctAnswer: Any = None
    correctOptionIndex: int | None = None
    points: float = 1

    @property
    def is_auto_scored(self) -> bool:
        return self.type in (QuestionType.SINGLE, QuestionType.MULTIPLE)


class TestInfo(BaseModel):
    """Test definition embedded in an assignment."""

    __test__ = False
    model_config = {"frozen": True}

    title: str
    passingScore: float = 0
    durationMinutes: int = Field(0, ge=0)
    questionsCount: int = Field(0, ge=0)
    questions: list[Question] = Field(default_factory=list)


class TestAssignment(BaseModel):
    """Binding of a test to a user with a deadline and attempt budget."""

    __test__ = False
    model_config = {"frozen": True}

    id: str = Field(..., min_length=1)
    testId: str
    courseId: str | None = None
    userId: str
    maxAttempts: int = Field(1, ge=1)
    deadlineDate: datetime | None = None
    test: TestInfo

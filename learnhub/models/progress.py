"""Course chapter and progress Pydantic models."""
import enum
from typing import Any

from pydantic import BaseModel, Field


class ChapterType(str, enum.Enum):
    """Kind of content a chapter holds."""

    VIDEO = "video"
    SLIDE = "slide"
    QUIZ = "quiz"
    DOCUMENT = "document"


class ChapterStatus(str, enum.Enum):
    """Accessibility of a chapter in the course player."""

    LOCKED = "locked"
    UNLOCKED = "unlocked"
    COMPLETED = "completed"


class Chapter(BaseModel):
    """A course chapter."""

    id: str = Field(..., min_length=1)
    title: str = ""
    type: ChapterType = ChapterType.DOCUMENT
    order: int = 0
    content: dict[str, Any] | None = None


class PlayerChapter(Chapter):
    """Chapter annotated with its derived status."""

    status: ChapterStatus
    savedAnswers: Any = None


class ProgressItem(BaseModel):
    """Progress of one chapter within an assignment."""

    chapterId: str
    title: str = ""
    type: ChapterType = ChapterType.DOCUMENT
    order: int = 0
    isCompleted: bool = False
    currentPage: int = 0
    timeSpentSeconds: int = 0
    answers: Any = None


class ProgressResponse(BaseModel):
    """Progress of a whole course assignment."""

    assignmentId: str
    overallPercentage: int = 0
    completedItems: int = 0
    totalItems: int = 0
    canComplete: bool = False
    items: list[ProgressItem] = Field(default_factory=list)


class ProgressUpdateRequest(BaseModel):
    """Chapter progress upsert."""

    chapterId: str = Field(..., min_length=1)
    currentPage: int = Field(0, ge=0)
    timeSpentSeconds: int = Field(0, ge=0)
    answers: list[dict[str, Any]] | None = None


class ProgressUpdateResponse(BaseModel):
    """Result of a chapter progress upsert."""

    success: bool = True
    chapterId: str
    currentPage: int
    isCompleted: bool = False

"""Pydantic models."""
from learnhub.models.assignments import (
    Question,
    QuestionType,
    TestAssignment,
    TestInfo,
)
from learnhub.models.attempts import (
    AttemptCompleteRequest,
    AttemptStatus,
    AttemptSyncRequest,
    TestAttempt,
)
from learnhub.models.progress import (
    Chapter,
    ChapterStatus,
    ChapterType,
    PlayerChapter,
    ProgressItem,
    ProgressResponse,
    ProgressUpdateRequest,
    ProgressUpdateResponse,
)

__all__ = [
    "AttemptCompleteRequest",
    "AttemptStatus",
    "AttemptSyncRequest",
    "Chapter",
    "ChapterStatus",
    "ChapterType",
    "PlayerChapter",
    "ProgressItem",
    "ProgressResponse",
    "ProgressUpdateRequest",
    "ProgressUpdateResponse",
    "Question",
    "QuestionType",
    "TestAssignment",
    "TestAttempt",
    "TestInfo",
]

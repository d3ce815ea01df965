"""Database models."""
from learnhub.models.db.assignment import Assignment, TestDefinition, TestQuestion
from learnhub.models.db.attempt import Attempt, AttemptAnswer
from learnhub.models.db.course import ChapterProgress, CourseChapter

__all__ = [
    "Assignment",
    "Attempt",
    "AttemptAnswer",
    "ChapterProgress",
    "CourseChapter",
    "TestDefinition",
    "TestQuestion",
]

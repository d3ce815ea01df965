"""Which chapters of a course a learner may open."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from learnhub.models import Chapter, ChapterStatus, PlayerChapter, ProgressResponse


def _is_completed(entry: Any) -> bool:
    if isinstance(entry, bool):
        return entry
    if isinstance(entry, Mapping):
        return bool(entry.get("isCompleted"))
    return bool(getattr(entry, "isCompleted", False))


def _saved_answers(entry: Any) -> Any:
    if isinstance(entry, Mapping):
        return entry.get("answers")
    return getattr(entry, "answers", None)


def resolve_chapters(
    chapters: Iterable[Chapter],
    progress: Mapping[str, Any],
) -> list[PlayerChapter]:
    """
    Annotate chapters with locked/unlocked/completed.

    ``progress`` maps chapter id to a completion flag or a progress item.
    Chapters are ordered by ``order`` (stable for ties). A chapter is
    unlocked when every chapter before it is completed; the first chapter is
    never locked.
    """
    resolved = []
    prior_completed = True
    for chapter in sorted(chapters, key=lambda ch: ch.order):
        entry = progress.get(chapter.id)
        if entry is not None and _is_completed(entry):
            status = ChapterStatus.COMPLETED
        elif prior_completed:
            status = ChapterStatus.UNLOCKED
        else:
            status = ChapterStatus.LOCKED
        if status is not ChapterStatus.COMPLETED:
            prior_completed = False
        resolved.append(
            PlayerChapter(
                **chapter.model_dump(exclude={"status", "savedAnswers"}),
                status=status,
                savedAnswers=_saved_answers(entry) if entry is not None else None,
            )
        )
    return resolved


def resolve_from_progress(progress: ProgressResponse) -> list[PlayerChapter]:
    """Resolve chapters straight from a progress service response."""
    chapters = [
        Chapter(id=item.chapterId, title=item.title, type=item.type, order=item.order)
        for item in progress.items
    ]
    return resolve_chapters(chapters, {item.chapterId: item for item in progress.items})


def first_playable(chapters: list[PlayerChapter]) -> PlayerChapter | None:
    """Where to resume: the first unlocked chapter, else the first chapter."""
    for chapter in chapters:
        if chapter.status is ChapterStatus.UNLOCKED:
            return chapter
    return chapters[0] if chapters else None


@dataclass(frozen=True)
class ProgressSummary:
    completed: int
    total: int

    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 0
        return round(self.completed / self.total * 100)

    @property
    def can_complete(self) -> bool:
        return self.total > 0 and self.completed == self.total


def progress_summary(chapters: Iterable[PlayerChapter]) -> ProgressSummary:
    chapters = list(chapters)
    completed = sum(1 for ch in chapters if ch.status is ChapterStatus.COMPLETED)
    return ProgressSummary(completed=completed, total=len(chapters))

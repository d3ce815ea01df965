"""Service layer for course chapters and chapter progress."""
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session as DBSession

from learnhub.models import (
    ChapterType,
    ProgressItem,
    ProgressResponse,
    ProgressUpdateRequest,
    ProgressUpdateResponse,
)
from learnhub.models.db.assignment import Assignment
from learnhub.models.db.course import ChapterProgress, CourseChapter

log = logging.getLogger(__name__)


def add_chapter(
    db: DBSession,
    course_id: str,
    title: str,
    chapter_type: ChapterType = ChapterType.DOCUMENT,
    order: int = 0,
    content: dict[str, Any] | None = None,
    chapter_id: str | None = None,
) -> CourseChapter:
    chapter = CourseChapter(
        course_id=course_id,
        title=title,
        chapter_type=ChapterType(chapter_type).value,
        order_index=order,
    )
    if chapter_id:
        chapter.id = chapter_id
    chapter.content = content
    db.add(chapter)
    db.commit()
    db.refresh(chapter)
    return chapter


def get_chapters(db: DBSession, course_id: str) -> list[CourseChapter]:
    """Chapters of a course in play order."""
    return list(
        db.execute(
            select(CourseChapter)
            .where(CourseChapter.course_id == course_id)
            .order_by(CourseChapter.order_index, CourseChapter.id)
        ).scalars().all()
    )


def _progress_rows(db: DBSession, assignment_id: str) -> dict[str, ChapterProgress]:
    rows = db.execute(
        select(ChapterProgress).where(ChapterProgress.assignment_id == assignment_id)
    ).scalars().all()
    return {row.chapter_id: row for row in rows}


def _course_chapter(db: DBSession, assignment: Assignment, chapter_id: str) -> CourseChapter:
    chapter = db.get(CourseChapter, chapter_id)
    if chapter is None or chapter.course_id != assignment.course_id:
        raise HTTPException(status_code=404, detail="Chapter not found in this course")
    return chapter


def _get_or_create_row(
    db: DBSession, assignment: Assignment, chapter_id: str
) -> ChapterProgress:
    row = db.execute(
        select(ChapterProgress).where(
            ChapterProgress.assignment_id == assignment.id,
            ChapterProgress.chapter_id == chapter_id,
        )
    ).scalar_one_or_none()
    if row is None:
        row = ChapterProgress(assignment_id=assignment.id, chapter_id=chapter_id)
        db.add(row)
    return row


def get_progress(db: DBSession, assignment: Assignment) -> ProgressResponse:
    """Per-chapter progress of a course assignment and its overall percentage."""
    if not assignment.course_id:
        raise HTTPException(status_code=404, detail="No course assigned")

    chapters = get_chapters(db, assignment.course_id)
    rows = _progress_rows(db, assignment.id)

    items = []
    for chapter in chapters:
        row = rows.get(chapter.id)
        items.append(
            ProgressItem(
                chapterId=chapter.id,
                title=chapter.title,
                type=ChapterType(chapter.chapter_type),
                order=chapter.order_index,
                isCompleted=bool(row and row.is_completed),
                currentPage=row.current_page if row else 0,
                timeSpentSeconds=row.time_spent_seconds if row else 0,
                answers=row.answers if row else None,
            )
        )

    completed = sum(1 for item in items if item.isCompleted)
    total = len(items)
    return ProgressResponse(
        assignmentId=assignment.id,
        overallPercentage=round(completed / total * 100) if total else 0,
        completedItems=completed,
        totalItems=total,
        canComplete=total > 0 and completed == total,
        items=items,
    )


def update_progress(
    db: DBSession, assignment: Assignment, payload: ProgressUpdateRequest
) -> ProgressUpdateResponse:
    """
    Upsert progress on a chapter.

    Time spent accumulates across updates; saved quiz answers replace the
    previous ones when present.
    """
    _course_chapter(db, assignment, payload.chapterId)
    row = _get_or_create_row(db, assignment, payload.chapterId)

    row.current_page = payload.currentPage
    row.time_spent_seconds = (row.time_spent_seconds or 0) + payload.timeSpentSeconds
    row.last_viewed_at = datetime.now(timezone.utc)
    if payload.answers is not None:
        row.answers = payload.answers

    db.commit()
    db.refresh(row)
    return ProgressUpdateResponse(
        chapterId=row.chapter_id,
        currentPage=row.current_page,
        isCompleted=row.is_completed,
    )


def complete_chapter(
    db: DBSession, assignment: Assignment, chapter_id: str
) -> ProgressResponse:
    """Mark a chapter completed and return the updated course progress."""
    _course_chapter(db, assignment, chapter_id)
    row = _get_or_create_row(db, assignment, chapter_id)
    if not row.is_completed:
        row.is_completed = True
        row.last_viewed_at = datetime.now(timezone.utc)
        db.commit()
        log.info("Assignment %s: chapter %s completed", assignment.id, chapter_id)
    return get_progress(db, assignment)

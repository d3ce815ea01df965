"""Course progress endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from learnhub.database import get_db
from learnhub.dependencies import get_caller_id
from learnhub.models import ProgressResponse, ProgressUpdateRequest, ProgressUpdateResponse
from learnhub.services.assignment_service import get_owned_assignment
from learnhub.services.progress_service import (
    complete_chapter,
    get_progress,
    update_progress,
)
from learnhub.utils import validate_id

router = APIRouter(prefix="/api/progress/{assignment_id}", tags=["progress"])


@router.get("", response_model=ProgressResponse)
def read_progress(
    assignment_id: str,
    caller_id: Annotated[str, Depends(get_caller_id)],
    db: Annotated[DbSession, Depends(get_db)],
) -> ProgressResponse:
    assignment = get_owned_assignment(db, validate_id("assignmentId", assignment_id), caller_id)
    return get_progress(db, assignment)


@router.post("", response_model=ProgressUpdateResponse)
def save_progress(
    assignment_id: str,
    payload: ProgressUpdateRequest,
    caller_id: Annotated[str, Depends(get_caller_id)],
    db: Annotated[DbSession, Depends(get_db)],
) -> ProgressUpdateResponse:
    """Save the page reached, time spent and quiz answers of a chapter."""
    assignment = get_owned_assignment(db, validate_id("assignmentId", assignment_id), caller_id)
    return update_progress(db, assignment, payload)


@router.post("/chapters/{chapter_id}/complete", response_model=ProgressResponse)
def mark_chapter_complete(
    assignment_id: str,
    chapter_id: str,
    caller_id: Annotated[str, Depends(get_caller_id)],
    db: Annotated[DbSession, Depends(get_db)],
) -> ProgressResponse:
    assignment = get_owned_assignment(db, validate_id("assignmentId", assignment_id), caller_id)
    return complete_chapter(db, assignment, validate_id("chapterId", chapter_id))

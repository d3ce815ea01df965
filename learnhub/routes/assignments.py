"""Assignment endpoints: fetching the assigned test and starting attempts."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from learnhub.database import get_db
from learnhub.dependencies import get_caller_id
from learnhub.models import TestAssignment, TestAttempt
from learnhub.services.assignment_service import assignment_to_model, get_owned_assignment
from learnhub.services.attempt_service import attempt_to_model, start_attempt
from learnhub.utils import validate_id

router = APIRouter(prefix="/api/assignments/{assignment_id}", tags=["assignments"])


@router.get("", response_model=TestAssignment)
def get_assignment(
    assignment_id: str,
    caller_id: Annotated[str, Depends(get_caller_id)],
    db: Annotated[DbSession, Depends(get_db)],
) -> TestAssignment:
    """Get an assignment with its test and answer key."""
    assignment_id = validate_id("assignmentId", assignment_id)
    assignment = get_owned_assignment(db, assignment_id, caller_id)
    return assignment_to_model(assignment)


@router.post("/attempts", response_model=TestAttempt)
def create_attempt(
    assignment_id: str,
    caller_id: Annotated[str, Depends(get_caller_id)],
    db: Annotated[DbSession, Depends(get_db)],
) -> TestAttempt:
    """Resume the open attempt or start a new one.

    Returns 409 when every allowed attempt is used.
    """
    assignment_id = validate_id("assignmentId", assignment_id)
    assignment = get_owned_assignment(db, assignment_id, caller_id)
    return attempt_to_model(start_attempt(db, assignment))

"""Attempt endpoints: answer sync and completion."""
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session as DbSession

from learnhub.database import get_db
from learnhub.dependencies import get_caller_id
from learnhub.models import AttemptCompleteRequest, AttemptSyncRequest, TestAttempt
from learnhub.services.attempt_service import (
    attempt_to_model,
    complete_attempt,
    get_owned_attempt,
    sync_attempt,
)
from learnhub.utils import validate_id

router = APIRouter(prefix="/api/attempts/{attempt_id}", tags=["attempts"])


@router.post("/sync", status_code=status.HTTP_204_NO_CONTENT)
def sync(
    attempt_id: str,
    payload: AttemptSyncRequest,
    caller_id: Annotated[str, Depends(get_caller_id)],
    db: Annotated[DbSession, Depends(get_db)],
) -> Response:
    """Upsert answers changed since the last sync."""
    attempt_id = validate_id("attemptId", attempt_id)
    attempt = get_owned_attempt(db, attempt_id, caller_id)
    sync_attempt(db, attempt, payload)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/complete", response_model=TestAttempt)
def complete(
    attempt_id: str,
    payload: AttemptCompleteRequest,
    caller_id: Annotated[str, Depends(get_caller_id)],
    db: Annotated[DbSession, Depends(get_db)],
) -> TestAttempt:
    """Finalize an attempt. Completing twice returns the stored result."""
    attempt_id = validate_id("attemptId", attempt_id)
    attempt = get_owned_attempt(db, attempt_id, caller_id)
    return attempt_to_model(complete_attempt(db, attempt, payload))

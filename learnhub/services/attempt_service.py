"""Service layer for test attempts."""
import logging
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session as DBSession

from learnhub.models import (
    AttemptCompleteRequest,
    AttemptStatus,
    AttemptSyncRequest,
    TestAttempt,
)
from learnhub.models.db.assignment import Assignment
from learnhub.models.db.attempt import Attempt, AttemptAnswer
from learnhub.services.assignment_service import get_assigned_test, questions_for
from learnhub.session.scoring import score_answers
from learnhub.utils.time_utils import as_utc

log = logging.getLogger(__name__)

# Statuses a client may report through sync
_REPORTABLE = {AttemptStatus.INTERRUPTED, AttemptStatus.EXPIRED}


def _status(attempt: Attempt) -> AttemptStatus:
    return AttemptStatus(attempt.status)


def time_budget_exhausted(attempt: Attempt, now: datetime | None = None) -> bool:
    """Whether the attempt's time limit has passed. Untimed tests never run out."""
    duration = attempt.assignment.test.duration_minutes if attempt.assignment.test else 0
    if duration <= 0:
        return False
    now = now or datetime.now(timezone.utc)
    return as_utc(attempt.started_at) + timedelta(minutes=duration) <= now


def get_attempts(db: DBSession, assignment_id: str) -> list[Attempt]:
    """All attempts of an assignment, oldest first."""
    return list(
        db.execute(
            select(Attempt)
            .where(Attempt.assignment_id == assignment_id)
            .order_by(Attempt.attempt_number)
        ).scalars().all()
    )


def start_attempt(db: DBSession, assignment: Assignment) -> Attempt:
    """
    Resume the caller's open attempt or start the next one.

    An open or interrupted attempt with time left is resumed. One whose time
    ran out is marked expired first. A new attempt is only created while the
    assignment's attempt budget allows it.

    Raises:
        HTTPException: 409 when every attempt is used up.
    """
    get_assigned_test(assignment)
    attempts = get_attempts(db, assignment.id)

    latest = attempts[-1] if attempts else None
    if latest is not None and _status(latest).is_resumable:
        if not time_budget_exhausted(latest):
            latest.status = AttemptStatus.IN_PROGRESS.value
            db.commit()
            db.refresh(latest)
            log.info("Resuming attempt %s of assignment %s", latest.id, assignment.id)
            return latest
        latest.status = AttemptStatus.EXPIRED.value
        db.commit()
        log.info("Attempt %s ran out of time while away", latest.id)

    if len(attempts) >= assignment.max_attempts:
        raise HTTPException(
            status_code=409,
            detail=f"All {assignment.max_attempts} attempts used",
        )

    attempt = Attempt(
        assignment_id=assignment.id,
        user_id=assignment.user_id,
        attempt_number=(latest.attempt_number if latest else 0) + 1,
        status=AttemptStatus.STARTED.value,
    )
    db.add(attempt)
    db.commit()
    db.refresh(attempt)
    log.info(
        "Started attempt %s (#%d) of assignment %s",
        attempt.id,
        attempt.attempt_number,
        assignment.id,
    )
    return attempt


def get_owned_attempt(db: DBSession, attempt_id: str, user_id: str) -> Attempt:
    attempt = db.get(Attempt, attempt_id)
    if attempt is None:
        raise HTTPException(status_code=404, detail="Attempt not found")
    if attempt.user_id != user_id:
        raise HTTPException(status_code=403, detail="Attempt not owned by caller")
    return attempt


def _upsert_answers(attempt: Attempt, answers: dict[str, object]) -> None:
    existing = {answer.question_id: answer for answer in attempt.answers}
    now = datetime.now(timezone.utc)
    for question_id, value in answers.items():
        answer = existing.get(question_id)
        if answer is None:
            answer = AttemptAnswer(attempt_id=attempt.id, question_id=question_id)
            attempt.answers.append(answer)
        answer.value = value
        answer.answered_at = now


def sync_attempt(db: DBSession, attempt: Attempt, payload: AttemptSyncRequest) -> Attempt:
    """
    Upsert changed answers and progress of an attempt.

    Repeating the same payload leaves the attempt unchanged. Syncs arriving
    after the attempt was finalized are ignored.
    """
    status = _status(attempt)
    if status.is_final:
        log.info(
            "Ignoring sync for %s attempt %s (%d answers)",
            status.value,
            attempt.id,
            len(payload.answers),
        )
        return attempt

    _upsert_answers(attempt, payload.answers)
    if payload.currentPage is not None:
        attempt.current_page = payload.currentPage
    if payload.timeSpentSeconds is not None:
        attempt.time_spent_seconds = max(attempt.time_spent_seconds, payload.timeSpentSeconds)

    if payload.status in _REPORTABLE:
        attempt.status = payload.status.value
        log.info("Attempt %s reported %s", attempt.id, payload.status.value)
    elif status is AttemptStatus.STARTED:
        attempt.status = AttemptStatus.IN_PROGRESS.value

    db.commit()
    db.refresh(attempt)
    return attempt


def complete_attempt(
    db: DBSession, attempt: Attempt, payload: AttemptCompleteRequest
) -> Attempt:
    """
    Finalize an attempt and score it against the answer key.

    Completing an already completed attempt returns it unchanged.

    Raises:
        HTTPException: 409 if the attempt expired or was abandoned.
    """
    status = _status(attempt)
    if status is AttemptStatus.COMPLETED:
        return attempt
    if status.is_final:
        raise HTTPException(status_code=409, detail=f"Attempt is {status.value}")

    _upsert_answers(attempt, payload.answers)
    db.flush()

    test = get_assigned_test(attempt.assignment)
    result = score_answers(questions_for(test), attempt.answers_map, test.passing_score)
    if result.score != payload.score:
        log.warning(
            "Attempt %s: client reported score %s, answer key gives %s",
            attempt.id,
            payload.score,
            result.score,
        )

    attempt.status = AttemptStatus.COMPLETED.value
    attempt.completed_at = datetime.now(timezone.utc)
    attempt.score = result.score
    attempt.passed = result.passed

    db.commit()
    db.refresh(attempt)
    return attempt


def attempt_to_model(attempt: Attempt) -> TestAttempt:
    return TestAttempt(
        id=attempt.id,
        assignmentId=attempt.assignment_id,
        attemptNumber=attempt.attempt_number,
        startedAt=as_utc(attempt.started_at),
        completedAt=as_utc(attempt.completed_at) if attempt.completed_at else None,
        status=_status(attempt),
        score=attempt.score,
        passed=attempt.passed,
        answers=attempt.answers_map,
    )

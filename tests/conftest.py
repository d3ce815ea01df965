import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session as DbSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from learnhub.app import app
from learnhub.database import get_db, init_db
from learnhub.models import (
    AttemptCompleteRequest,
    AttemptStatus,
    AttemptSyncRequest,
    Question,
    TestAssignment,
    TestAttempt,
    TestInfo,
)
from learnhub.models.progress import ChapterType
from learnhub.services.assignment_service import assign_course, assign_test, create_test
from learnhub.services.progress_service import add_chapter

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
USER_ID = "learner-1"

QUESTIONS = [
    {
        "id": "q1",
        "text": "2 + 2 = ?",
        "type": "single",
        "options": ["3", "4", "5"],
        "correctOptionIndex": 1,
    },
    {
        "id": "q2",
        "text": "Pick the vowels",
        "type": "multiple",
        "options": ["b", "a", "e", "k"],
        "correctAnswer": [1, 2],
        "points": 2,
    },
    {"id": "q3", "text": "Explain the rule", "type": "open"},
]


# --- database and API -------------------------------------------------------


@pytest.fixture
def db_factory() -> Iterator[sessionmaker]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_factory: sessionmaker) -> Iterator[DbSession]:
    db = db_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(db_factory: sessionmaker) -> Iterator[TestClient]:
    def override_get_db():
        db = db_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"X-User-Id": USER_ID}


@pytest.fixture
def assigned_test(db_session: DbSession):
    """A one-attempt, one-minute test assigned to USER_ID."""
    test = create_test(
        db_session,
        "Arithmetic",
        QUESTIONS,
        passing_score=2,
        duration_minutes=1,
        max_attempts=1,
    )
    return assign_test(db_session, USER_ID, test.id, assignment_id="asg-1")


@pytest.fixture
def assigned_course(db_session: DbSession):
    """A three-chapter course assigned to USER_ID."""
    for order, (chapter_id, chapter_type) in enumerate(
        [("ch-1", ChapterType.VIDEO), ("ch-2", ChapterType.SLIDE), ("ch-3", ChapterType.QUIZ)]
    ):
        add_chapter(
            db_session,
            "course-1",
            f"Chapter {order + 1}",
            chapter_type=chapter_type,
            order=order,
            chapter_id=chapter_id,
        )
    return assign_course(db_session, USER_ID, "course-1", assignment_id="asg-course")


# --- session engine ---------------------------------------------------------


def make_assignment(
    duration_minutes: int = 10,
    max_attempts: int = 1,
    passing_score: float = 2,
) -> TestAssignment:
    questions = [Question(**data) for data in QUESTIONS]
    return TestAssignment(
        id="asg-1",
        testId="test-1",
        userId=USER_ID,
        maxAttempts=max_attempts,
        test=TestInfo(
            title="Arithmetic",
            passingScore=passing_score,
            durationMinutes=duration_minutes,
            questionsCount=len(questions),
            questions=questions,
        ),
    )


def make_attempt(
    status: AttemptStatus = AttemptStatus.STARTED,
    started_at: datetime = NOW,
    answers: dict[str, Any] | None = None,
) -> TestAttempt:
    return TestAttempt(
        id="att-1",
        assignmentId="asg-1",
        attemptNumber=1,
        startedAt=started_at,
        status=status,
        answers=answers or {},
    )


class FakeRemote:
    """In-memory RemoteProgressClient recording every call."""

    def __init__(self, assignment: TestAssignment, attempt: TestAttempt) -> None:
        self.assignment = assignment
        self.attempt = attempt
        self.get_error: Exception | None = None
        self.start_error: Exception | None = None
        self.complete_error: Exception | None = None
        self.sync_errors: list[Exception] = []
        # When set, sync calls block until the event fires
        self.gate: asyncio.Event | None = None
        self.sync_calls: list[AttemptSyncRequest] = []
        self.complete_calls: list[AttemptCompleteRequest] = []

    async def get_assignment(self, assignment_id: str) -> TestAssignment:
        if self.get_error is not None:
            raise self.get_error
        return self.assignment

    async def start_attempt(self, assignment_id: str) -> TestAttempt:
        if self.start_error is not None:
            raise self.start_error
        return self.attempt

    async def sync_attempt(self, attempt_id: str, payload: AttemptSyncRequest) -> None:
        self.sync_calls.append(payload)
        if self.gate is not None:
            await self.gate.wait()
        if self.sync_errors:
            raise self.sync_errors.pop(0)

    async def complete_attempt(
        self, attempt_id: str, payload: AttemptCompleteRequest
    ) -> TestAttempt:
        self.complete_calls.append(payload)
        if self.complete_error is not None:
            raise self.complete_error
        return self.attempt.model_copy(
            update={
                "status": AttemptStatus.COMPLETED,
                "completedAt": NOW,
                "score": payload.score,
                "answers": payload.answers,
            }
        )


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote(make_assignment(), make_attempt())


def started_minutes_ago(minutes: float) -> datetime:
    return NOW - timedelta(minutes=minutes)

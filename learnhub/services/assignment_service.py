"""Service layer for tests and their assignments."""
import logging
from datetime import datetime
from typing import Any

from fastapi import HTTPException
from sqlalchemy.orm import Session as DBSession

from learnhub.config import DEFAULT_MAX_ATTEMPTS
from learnhub.models import Question, QuestionType, TestAssignment, TestInfo
from learnhub.models.db.assignment import Assignment, TestDefinition, TestQuestion
from learnhub.utils.time_utils import as_utc

log = logging.getLogger(__name__)


def create_test(
    db: DBSession,
    title: str,
    questions: list[dict[str, Any]],
    passing_score: float = 0,
    duration_minutes: int = 0,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> TestDefinition:
    """
    Create a test with its questions.

    Each question dict uses the wire field names: ``text``, ``type``,
    ``options``, ``correctAnswer`` or ``correctOptionIndex`` and ``points``.
    An explicit ``id`` is kept.
    """
    test = TestDefinition(
        title=title,
        passing_score=passing_score,
        duration_minutes=duration_minutes,
        max_attempts=max_attempts,
    )
    for index, q_data in enumerate(questions):
        correct = q_data.get("correctAnswer")
        if correct is None:
            correct = q_data.get("correctOptionIndex")
        question = TestQuestion(
            text=q_data.get("text", ""),
            question_type=QuestionType(q_data.get("type", QuestionType.SINGLE.value)).value,
            order_index=index,
            points=q_data.get("points", 1),
        )
        if q_data.get("id"):
            question.id = str(q_data["id"])
        question.options = q_data.get("options")
        question.correct_answer = correct
        test.questions.append(question)

    db.add(test)
    db.commit()
    db.refresh(test)
    return test


def assign_test(
    db: DBSession,
    user_id: str,
    test_id: str,
    deadline: datetime | None = None,
    max_attempts: int | None = None,
    course_id: str | None = None,
    assignment_id: str | None = None,
) -> Assignment:
    """Assign a test (and optionally the course it belongs to) to a user."""
    if db.get(TestDefinition, test_id) is None:
        raise HTTPException(status_code=404, detail="Test not found")

    assignment = Assignment(
        user_id=user_id,
        test_id=test_id,
        course_id=course_id,
        deadline_at=deadline,
        max_attempts_override=max_attempts,
    )
    if assignment_id:
        assignment.id = assignment_id
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    return assignment


def assign_course(
    db: DBSession,
    user_id: str,
    course_id: str,
    assignment_id: str | None = None,
) -> Assignment:
    """Assign a course without a test."""
    assignment = Assignment(user_id=user_id, course_id=course_id)
    if assignment_id:
        assignment.id = assignment_id
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    return assignment


def get_owned_assignment(db: DBSession, assignment_id: str, user_id: str) -> Assignment:
    """
    Get an assignment owned by the caller.

    Raises:
        HTTPException: 404 if unknown, 403 if it belongs to someone else.
    """
    assignment = db.get(Assignment, assignment_id)
    if assignment is None:
        raise HTTPException(status_code=404, detail="Assignment not found")
    if assignment.user_id != user_id:
        log.info(
            "User %s tried to open assignment %s of user %s",
            user_id,
            assignment_id,
            assignment.user_id,
        )
        raise HTTPException(status_code=403, detail="Assignment not owned by caller")
    return assignment


def get_assigned_test(assignment: Assignment) -> TestDefinition:
    if assignment.test is None:
        raise HTTPException(status_code=404, detail="No test assigned")
    return assignment.test


def question_to_model(question: TestQuestion) -> Question:
    correct = question.correct_answer
    question_type = QuestionType(question.question_type)
    return Question(
        id=question.id,
        text=question.text,
        type=question_type,
        options=question.options,
        correctAnswer=correct,
        correctOptionIndex=correct
        if question_type is QuestionType.SINGLE and isinstance(correct, int)
        else None,
        points=question.points,
    )


def questions_for(test: TestDefinition) -> list[Question]:
    return [question_to_model(question) for question in test.questions]


def assignment_to_model(assignment: Assignment) -> TestAssignment:
    """Build the wire representation of a test assignment."""
    test = get_assigned_test(assignment)
    questions = questions_for(test)
    return TestAssignment(
        id=assignment.id,
        testId=test.id,
        courseId=assignment.course_id,
        userId=assignment.user_id,
        maxAttempts=assignment.max_attempts,
        deadlineDate=as_utc(assignment.deadline_at) if assignment.deadline_at else None,
        test=TestInfo(
            title=test.title,
            passingScore=test.passing_score,
            durationMinutes=test.duration_minutes,
            questionsCount=len(questions),
            questions=questions,
        ),
    )

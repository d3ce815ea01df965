"""
Test session states and the pure transition function between them.

    idle -> initializing -> active -> submitting -> finished
                 |            |-> interrupted
                 v            '-> expired
               failed

``transition`` never performs I/O. Events that do not apply in the current
status leave the state untouched and the same object is returned.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Union

from learnhub.models import AttemptStatus, Question, TestAssignment, TestAttempt
from learnhub.session.scoring import ScoreResult


class SessionStatus(str, enum.Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    ACTIVE = "active"
    SUBMITTING = "submitting"
    INTERRUPTED = "interrupted"
    EXPIRED = "expired"
    FINISHED = "finished"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (
            SessionStatus.INTERRUPTED,
            SessionStatus.EXPIRED,
            SessionStatus.FINISHED,
            SessionStatus.FAILED,
        )

    @property
    def can_init(self) -> bool:
        return self is SessionStatus.IDLE or self.is_terminal


@dataclass(frozen=True)
class SessionState:
    status: SessionStatus = SessionStatus.IDLE
    assignment_id: str | None = None
    current_question_index: int = 0
    answers: Mapping[str, Any] = field(default_factory=dict)
    time_remaining_seconds: int | None = None
    current_attempt: TestAttempt | None = None
    assignment: TestAssignment | None = None
    error: str | None = None
    result: ScoreResult | None = None

    @property
    def is_session_active(self) -> bool:
        return self.status is SessionStatus.ACTIVE

    @property
    def questions(self) -> list[Question]:
        if self.assignment is None:
            return []
        return self.assignment.test.questions

    @property
    def questions_count(self) -> int:
        if self.assignment is None:
            return 0
        return self.assignment.test.questionsCount or len(self.assignment.test.questions)

    @property
    def current_question(self) -> Question | None:
        questions = self.questions
        if 0 <= self.current_question_index < len(questions):
            return questions[self.current_question_index]
        return None


# Events


@dataclass(frozen=True)
class Init:
    assignment_id: str


@dataclass(frozen=True)
class Ready:
    assignment: TestAssignment
    attempt: TestAttempt
    time_remaining_seconds: int | None = None


@dataclass(frozen=True)
class InitFailed:
    message: str


@dataclass(frozen=True)
class Answer:
    question_id: str
    value: Any


@dataclass(frozen=True)
class Navigate:
    index: int


@dataclass(frozen=True)
class Tick:
    time_remaining_seconds: int


@dataclass(frozen=True)
class TimerExpired:
    pass


@dataclass(frozen=True)
class FinishRequested:
    pass


@dataclass(frozen=True)
class Finished:
    attempt: TestAttempt
    result: ScoreResult


@dataclass(frozen=True)
class Interrupt:
    pass


@dataclass(frozen=True)
class SetError:
    message: str


@dataclass(frozen=True)
class ClearError:
    pass


SessionEvent = Union[
    Init,
    Ready,
    InitFailed,
    Answer,
    Navigate,
    Tick,
    TimerExpired,
    FinishRequested,
    Finished,
    Interrupt,
    SetError,
    ClearError,
]


def _with_attempt_status(state: SessionState, status: AttemptStatus) -> TestAttempt | None:
    if state.current_attempt is None:
        return None
    return state.current_attempt.model_copy(
        update={"status": status, "answers": dict(state.answers)}
    )


def clamp_index(index: int, count: int) -> int:
    """Keep a question index within ``0 <= index < count``."""
    if count <= 0:
        return 0
    return max(0, min(index, count - 1))


def transition(state: SessionState, event: SessionEvent) -> SessionState:
    status = state.status

    if isinstance(event, SetError):
        return replace(state, error=event.message)
    if isinstance(event, ClearError):
        return state if state.error is None else replace(state, error=None)

    if isinstance(event, Init):
        if not status.can_init:
            return state
        return SessionState(
            status=SessionStatus.INITIALIZING, assignment_id=event.assignment_id
        )

    if isinstance(event, Ready):
        if status is not SessionStatus.INITIALIZING:
            return state
        answers = dict(event.attempt.answers)
        attempt = event.attempt
        if attempt.status is not AttemptStatus.IN_PROGRESS:
            attempt = attempt.model_copy(update={"status": AttemptStatus.IN_PROGRESS})
        return replace(
            state,
            status=SessionStatus.ACTIVE,
            assignment=event.assignment,
            current_attempt=attempt,
            answers=answers,
            current_question_index=0,
            time_remaining_seconds=event.time_remaining_seconds,
            error=None,
        )

    if isinstance(event, InitFailed):
        if status is not SessionStatus.INITIALIZING:
            return state
        return replace(state, status=SessionStatus.FAILED, error=event.message)

    if isinstance(event, Answer):
        if status is not SessionStatus.ACTIVE:
            return state
        return replace(state, answers={**state.answers, event.question_id: event.value})

    if isinstance(event, Navigate):
        if status is not SessionStatus.ACTIVE:
            return state
        index = clamp_index(event.index, state.questions_count)
        if index == state.current_question_index:
            return state
        return replace(state, current_question_index=index)

    if isinstance(event, Tick):
        if status not in (SessionStatus.ACTIVE, SessionStatus.SUBMITTING):
            return state
        return replace(state, time_remaining_seconds=max(0, event.time_remaining_seconds))

    if isinstance(event, TimerExpired):
        if status is not SessionStatus.ACTIVE:
            return state
        return replace(
            state,
            status=SessionStatus.EXPIRED,
            time_remaining_seconds=0,
            current_attempt=_with_attempt_status(state, AttemptStatus.EXPIRED),
        )

    if isinstance(event, FinishRequested):
        if status is not SessionStatus.ACTIVE:
            return state
        return replace(state, status=SessionStatus.SUBMITTING)

    if isinstance(event, Finished):
        if status is not SessionStatus.SUBMITTING:
            return state
        return replace(
            state,
            status=SessionStatus.FINISHED,
            current_attempt=event.attempt,
            result=event.result,
        )

    if isinstance(event, Interrupt):
        if status is not SessionStatus.ACTIVE:
            return state
        return replace(
            state,
            status=SessionStatus.INTERRUPTED,
            current_attempt=_with_attempt_status(state, AttemptStatus.INTERRUPTED),
        )

    raise TypeError(f"Unknown session event: {event!r}")

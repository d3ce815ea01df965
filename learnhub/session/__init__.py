"""Client-side engine for timed test sessions."""
from learnhub.session.answer_store import AnswerStore
from learnhub.session.client import HttpProgressClient, RemoteProgressClient
from learnhub.session.engine import TestSession
from learnhub.session.errors import (
    AttemptsExhausted,
    Forbidden,
    LearnhubError,
    NotFound,
    RemoteError,
    RemoteUnavailable,
    SessionInitError,
    SessionNotActive,
    SyncError,
)
from learnhub.session.machine import SessionState, SessionStatus, transition
from learnhub.session.scheduler import LoopScheduler, ManualScheduler, Scheduler
from learnhub.session.scoring import ScoreResult, ScoringInconsistency, score_answers
from learnhub.session.sync import SyncCoordinator
from learnhub.session.timer import Countdown, CountdownState, QuizCountdown
from learnhub.session.unlock import first_playable, progress_summary, resolve_chapters

__all__ = [
    "AnswerStore",
    "AttemptsExhausted",
    "Countdown",
    "CountdownState",
    "Forbidden",
    "HttpProgressClient",
    "LearnhubError",
    "LoopScheduler",
    "ManualScheduler",
    "NotFound",
    "QuizCountdown",
    "RemoteError",
    "RemoteProgressClient",
    "RemoteUnavailable",
    "Scheduler",
    "ScoreResult",
    "ScoringInconsistency",
    "SessionInitError",
    "SessionNotActive",
    "SessionState",
    "SessionStatus",
    "SyncCoordinator",
    "SyncError",
    "TestSession",
    "first_playable",
    "progress_summary",
    "resolve_chapters",
    "score_answers",
    "transition",
]

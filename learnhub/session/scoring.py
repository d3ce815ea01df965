"""Scoring of submitted answers against a test's answer key."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from learnhub.models import Question, QuestionType

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringInconsistency:
    """An answer that could not be matched to the test and was ignored."""

    question_id: str
    reason: str


@dataclass(frozen=True)
class ScoreResult:
    score: float
    max_score: float
    passing_score: float
    correct: frozenset[str] = frozenset()
    pending_review: frozenset[str] = frozenset()
    inconsistencies: tuple[ScoringInconsistency, ...] = field(default_factory=tuple)

    @property
    def passed(self) -> bool:
        return self.score >= self.passing_score

    @property
    def percent(self) -> int:
        """Score as a rounded percentage of the auto-scored points."""
        if self.max_score <= 0:
            return 0
        return round(self.score / self.max_score * 100)


def _answer_key(question: Question) -> Any:
    if question.correctAnswer is not None:
        return question.correctAnswer
    return question.correctOptionIndex


def _as_selection(value: Any) -> frozenset | None:
    if value is None:
        return frozenset()
    if isinstance(value, (list, tuple, set, frozenset)):
        if any(isinstance(item, bool) for item in value):
            return None
        try:
            return frozenset(value)
        except TypeError:
            return None
    return None


def is_correct(question: Question, answer: Any) -> bool | None:
    """
    Whether ``answer`` is right. ``None`` for questions that need manual
    review (``text``/``open``).
    """
    if not question.is_auto_scored:
        return None
    key = _answer_key(question)
    if key is None or answer is None:
        return False
    # True == 1 in Python; a flag is never an option index
    if isinstance(answer, bool) or isinstance(key, bool):
        return False

    if question.type is QuestionType.MULTIPLE:
        expected = _as_selection(key)
        selected = _as_selection(answer)
        return expected is not None and selected is not None and selected == expected

    # single choice: the key may be an option index or the option text
    if answer == key:
        return True
    if isinstance(key, int) and isinstance(answer, str) and 0 <= key < len(question.options):
        return answer == question.options[key]
    return False


def score_answers(
    questions: Iterable[Question],
    answers: Mapping[str, Any],
    passing_score: float = 0,
) -> ScoreResult:
    """
    Sum the points of correctly answered questions.

    ``text``/``open`` questions contribute nothing and are left out of
    ``max_score``; they are listed in ``pending_review``. Answers to
    questions the test does not contain are ignored.
    """
    by_id = {question.id: question for question in questions}
    score = 0.0
    max_score = 0.0
    correct: set[str] = set()
    pending_review: set[str] = set()

    for question in by_id.values():
        if not question.is_auto_scored:
            pending_review.add(question.id)
            continue
        max_score += question.points
        if is_correct(question, answers.get(question.id)):
            score += question.points
            correct.add(question.id)

    inconsistencies = tuple(
        ScoringInconsistency(qid, "question not in test")
        for qid in answers
        if qid not in by_id
    )
    for item in inconsistencies:
        log.warning("Ignoring answer to unknown question %s", item.question_id)

    return ScoreResult(
        score=score,
        max_score=max_score,
        passing_score=passing_score,
        correct=frozenset(correct),
        pending_review=frozenset(pending_review),
        inconsistencies=inconsistencies,
    )

import pytest

from conftest import QUESTIONS
from learnhub.models import Question
from learnhub.session.scoring import is_correct, score_answers

questions = [Question(**data) for data in QUESTIONS]
single, multiple, open_question = questions


@pytest.mark.parametrize(
    "answer, expected",
    [
        ([1, 2], True),
        ([2, 1], True),
        ([1], False),
        ([1, 2, 3], False),
        ([], False),
        (None, False),
        (1, False),
    ],
)
def test_multiple_choice_needs_exact_selection(answer, expected) -> None:
    assert is_correct(multiple, answer) is expected


def test_single_choice_by_index_or_option_text() -> None:
    assert is_correct(single, 1) is True
    assert is_correct(single, "4") is True
    assert is_correct(single, 0) is False
    assert is_correct(single, None) is False


def test_open_questions_are_not_auto_scored() -> None:
    assert is_correct(open_question, "anything") is None


def test_score_sums_points_of_correct_answers() -> None:
    result = score_answers(questions, {"q1": 1, "q2": [2, 1], "q3": "essay"}, passing_score=3)
    assert result.score == 3
    assert result.max_score == 3
    assert result.correct == {"q1", "q2"}
    assert result.pending_review == {"q3"}
    assert result.passed is True
    assert result.percent == 100


def test_pass_threshold() -> None:
    result = score_answers(questions, {"q1": 1}, passing_score=2)
    assert result.score == 1
    assert result.passed is False
    assert result.percent == 33


def test_unknown_questions_are_reported_not_scored() -> None:
    result = score_answers(questions, {"q1": 1, "ghost": 0})
    assert result.score == 1
    assert [item.question_id for item in result.inconsistencies] == ["ghost"]


def test_empty_test_scores_zero() -> None:
    result = score_answers([], {})
    assert result.score == 0
    assert result.percent == 0
    assert result.passed is True


def test_boolean_answers_never_match_an_index() -> None:
    assert is_correct(single, True) is False
    assert is_correct(multiple, [True, 2]) is False

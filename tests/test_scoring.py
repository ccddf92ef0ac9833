from types import SimpleNamespace

import pytest

from tippr.utils.errors import InvalidStateError
from tippr.utils.scoring import (
    ScoringRules,
    calculate_match_points,
    is_correct_bonus_answer,
    resolve_bonus_prediction,
)

DEFAULT_RULES = ScoringRules()


@pytest.mark.parametrize(
    "predicted, actual, expected",
    [
        ((2, 1), (2, 1), 7),  # exact score only
        ((0, 0), (0, 0), 7),
        ((1, 0), (2, 1), 3),  # outcome
        ((2, 0), (3, 1), 3),
        ((2, 0), (2, 1), 5),  # outcome + home goals
        ((3, 1), (2, 1), 5),  # outcome + away goals
        ((1, 1), (2, 2), 3),  # draw
        ((0, 1), (2, 1), 2),  # goals only
        ((0, 3), (2, 1), 0),
        ((2, 2), (3, 0), 0),
    ],
)
def test_match_points_table(predicted, actual, expected):
    assert calculate_match_points(*predicted, *actual, DEFAULT_RULES) == expected


def test_goals_bonus_counted_once():
    rules = ScoringRules(points_correct_score=10, points_correct_outcome=0, points_correct_goals=4)
    # Both sides right would be an exact score, so one right side is the maximum here
    assert calculate_match_points(1, 5, 1, 2, rules) == 4


def test_exact_score_is_exclusive():
    rules = ScoringRules(points_correct_score=1, points_correct_outcome=5, points_correct_goals=5)
    assert calculate_match_points(2, 1, 2, 1, rules) == 1


def test_rules_snapshot_from_settings_row():
    row = SimpleNamespace(points_correct_score=10, points_correct_outcome=4, points_correct_goals=1)
    rules = ScoringRules.from_settings(row)

    row.points_correct_score = 0

    assert rules == ScoringRules(10, 4, 1)
    assert calculate_match_points(1, 0, 1, 0, rules) == 10


def _question(**kwargs):
    defaults = {"id": 1, "is_resolved": True, "points": 20, "answer_team_id": None, "answer_text": None}
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


def _answer(team_id=None, text=None):
    return SimpleNamespace(answer_team_id=team_id, answer_text=text)


def test_bonus_team_answer_compares_ids():
    question = _question(answer_team_id=5)

    assert resolve_bonus_prediction(_answer(team_id=5), question) == 20
    assert resolve_bonus_prediction(_answer(team_id=6), question) == 0
    assert resolve_bonus_prediction(_answer(text="5"), question) == 0


def test_bonus_text_answer_ignores_case_and_blanks():
    question = _question(answer_text="Kylian Mbappé", points=15)

    assert resolve_bonus_prediction(_answer(text="  kylian mbappé "), question) == 15
    assert resolve_bonus_prediction(_answer(text="Mbappé"), question) == 0
    assert resolve_bonus_prediction(_answer(), question) == 0


def test_blank_prediction_never_matches():
    assert is_correct_bonus_answer(_answer(text="   "), _question(answer_text="Brazil")) is False
    assert is_correct_bonus_answer(_answer(text=""), _question(answer_text="")) is False


def test_unresolved_question_cannot_be_scored():
    with pytest.raises(InvalidStateError) as exc_info:
        resolve_bonus_prediction(_answer(team_id=1), _question(is_resolved=False))

    assert exc_info.value.code == "bonus_question.not_resolved"
    assert exc_info.value.status == 409

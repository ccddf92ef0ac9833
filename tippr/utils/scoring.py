"""
Scoring rules for Tippr predictions

This module holds the two pure scoring functions every trigger path shares:
match predictions (exact score / outcome / goals) and bonus predictions.
Aggregation into league standings lives in app services, see
tippr/services/aggregation.py and tippr/services/ranking.py
"""

from dataclasses import dataclass

from tippr.utils.errors import InvalidStateError


@dataclass(frozen=True)
class ScoringRules:
    """Point values for match predictions, snapshotted for one scoring pass"""

    points_correct_score: int = 7
    points_correct_outcome: int = 3
    points_correct_goals: int = 2

    @classmethod
    def from_settings(cls, settings):
        return cls(
            points_correct_score=settings.points_correct_score,
            points_correct_outcome=settings.points_correct_outcome,
            points_correct_goals=settings.points_correct_goals,
        )


def _outcome(home, away):
    """1 for a home win, -1 for an away win, 0 for a draw"""
    return (home > away) - (home < away)


def calculate_match_points(predicted_home, predicted_away, actual_home, actual_away, settings):
    """
    Calculate points for a single match prediction.

    An exact score earns ``points_correct_score`` and nothing else.
    Otherwise the prediction collects ``points_correct_outcome`` for the
    right win/draw/loss and ``points_correct_goals`` (once) when at least one
    side's goal count is right.

    Args:
        predicted_home, predicted_away: the user's predicted score
        actual_home, actual_away: the final score
        settings: LeagueSettings row or ScoringRules

    Returns:
        int: points earned, 0 when nothing matched
    """
    if predicted_home == actual_home and predicted_away == actual_away:
        return settings.points_correct_score

    points = 0

    if _outcome(predicted_home, predicted_away) == _outcome(actual_home, actual_away):
        points += settings.points_correct_outcome

    if predicted_home == actual_home or predicted_away == actual_away:
        points += settings.points_correct_goals

    return points


def _normalize_answer(text):
    return text.strip().casefold() if text else ""


def is_correct_bonus_answer(prediction, question):
    """Team answers compare by id, text answers ignore case and surrounding blanks"""
    if question.answer_team_id is not None:
        return prediction.answer_team_id == question.answer_team_id

    expected = _normalize_answer(question.answer_text)
    if not expected:
        return False
    return _normalize_answer(prediction.answer_text) == expected


def resolve_bonus_prediction(prediction, question):
    """
    Award points for a bonus prediction against a resolved question.

    Returns:
        int: ``question.points`` for a correct answer, otherwise 0
    """
    if not question.is_resolved:
        raise InvalidStateError(
            f"Bonus question {question.id} is not resolved",
            "bonus_question.not_resolved",
        )
    return question.points if is_correct_bonus_answer(prediction, question) else 0

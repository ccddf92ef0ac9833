"""
Result-version bookkeeping for match predictions.

A prediction is up to date for a match when it was scored against the
match's current ``result_version``. Everything that needs to know whether a
prediction must be (re-)scored asks ``score_state`` instead of comparing
nullable integers by hand.
"""

import enum

from tippr.utils.errors import InvalidStateError


class ScoreState(enum.Enum):
    UNSCORED = "unscored"
    CURRENT = "current"
    STALE = "stale"


def score_state(prediction, match):
    if not prediction.is_scored or prediction.scored_result_version is None:
        return ScoreState.UNSCORED
    if prediction.scored_result_version == match.result_version:
        return ScoreState.CURRENT
    return ScoreState.STALE


def needs_scoring(prediction, match):
    return score_state(prediction, match) is not ScoreState.CURRENT


def ensure_scorable(match, result_version):
    """
    Reject a scoring request for a match that is not finished, has no final
    score, or whose result has moved on since ``result_version`` was issued.
    """
    if not match.is_finished:
        raise InvalidStateError(
            f"Match {match.id} is not finished (status {match.status.value})",
            "match.not_finished",
        )
    if not match.has_score:
        raise InvalidStateError(
            f"Match {match.id} has no final score", "match.missing_score"
        )
    if result_version != match.result_version:
        raise InvalidStateError(
            f"Match {match.id} is at result version {match.result_version}, "
            f"scoring was requested for version {result_version}",
            "match.stale_result_version",
        )

"""
Standings aggregation: per-member point totals recomputed from prediction rows.

Totals are never maintained incrementally. Every call sums the stored
``points_earned`` values again, so a repaired prediction row is reflected the
next time any trigger touches its league.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import func

from tippr import db
from tippr.models import BonusPrediction, LeagueMember, LeagueStanding, Prediction

logger = logging.getLogger(__name__)


@dataclass
class StandingTotals:
    match_points: int = 0
    bonus_points: int = 0

    @property
    def total_points(self):
        return self.match_points + self.bonus_points


def aggregate_league_totals(league_id):
    """
    Sum match and bonus points for every member of a league.

    Members without any predictions get zero totals. Predictions of users who
    are no longer members are ignored.

    Returns:
        dict: user_id -> StandingTotals
    """
    member_ids = [
        user_id
        for (user_id,) in db.session.query(LeagueMember.user_id).filter(
            LeagueMember.league_id == league_id
        )
    ]
    totals = {user_id: StandingTotals() for user_id in member_ids}

    match_sums = (
        db.session.query(Prediction.user_id, func.coalesce(func.sum(Prediction.points_earned), 0))
        .filter(Prediction.league_id == league_id, Prediction.is_scored.is_(True))
        .group_by(Prediction.user_id)
        .all()
    )
    for user_id, points in match_sums:
        if user_id in totals:
            totals[user_id].match_points = int(points)

    # SUM skips NULL, so unresolved bonus predictions count as zero
    bonus_sums = (
        db.session.query(
            BonusPrediction.user_id, func.coalesce(func.sum(BonusPrediction.points_earned), 0)
        )
        .filter(BonusPrediction.league_id == league_id)
        .group_by(BonusPrediction.user_id)
        .all()
    )
    for user_id, points in bonus_sums:
        if user_id in totals:
            totals[user_id].bonus_points = int(points)

    return totals


def apply_totals(league_id, totals):
    """
    Write aggregated totals to the league's standing rows.

    Creates rows for members that have none and deletes rows of users that
    are no longer members. Ranks are left to ``apply_ranks``.
    """
    existing = {
        standing.user_id: standing
        for standing in LeagueStanding.query.filter_by(league_id=league_id)
    }

    for user_id, standing in existing.items():
        if user_id not in totals:
            logger.info(f"Dropping standing of former member {user_id} in league {league_id}")
            db.session.delete(standing)

    for user_id, member_totals in totals.items():
        standing = existing.get(user_id)
        if standing is None:
            standing = LeagueStanding(league_id=league_id, user_id=user_id)
            db.session.add(standing)
        standing.match_points = member_totals.match_points
        standing.bonus_points = member_totals.bonus_points
        standing.total_points = member_totals.total_points

    db.session.flush()
    return totals


def refresh_league_totals(league_id):
    """Aggregate and write in one step"""
    return apply_totals(league_id, aggregate_league_totals(league_id))

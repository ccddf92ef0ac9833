"""
Competition ranking for league standings.

Equal totals share a rank and the next distinct total skips ahead by the
number of members in front of it (10, 10, 8 -> 1, 1, 3). Join order only
decides the listing order inside a shared rank.
"""

import logging
from datetime import timezone
from typing import List, NamedTuple, Optional

from tippr import db
from tippr.models import LeagueMember, LeagueStanding

logger = logging.getLogger(__name__)


class RankCandidate(NamedTuple):
    user_id: int
    total_points: int
    joined_at: object
    member_id: int


class RankedEntry(NamedTuple):
    user_id: int
    total_points: int
    rank: int


def _as_naive_utc(value):
    # Rows read back from the database are naive, freshly added ones may not be
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _listing_key(candidate):
    return (-candidate.total_points, _as_naive_utc(candidate.joined_at), candidate.member_id)


def assign_competition_ranks(entries) -> List[RankedEntry]:
    """Rank candidates by total points, listed in join order within a tie"""
    ordered = sorted(entries, key=_listing_key)

    ranked = []
    current_rank: Optional[int] = None
    previous_total: Optional[int] = None
    for position, candidate in enumerate(ordered, start=1):
        if candidate.total_points != previous_total:
            current_rank = position
            previous_total = candidate.total_points
        ranked.append(RankedEntry(candidate.user_id, candidate.total_points, current_rank))
    return ranked


def apply_ranks(league_id):
    """
    Recompute ranks for every standing row of a league.

    The rank each row held before is moved to ``previous_rank`` first, so
    ``rank_change`` describes the movement caused by this computation.

    Returns:
        list[RankedEntry]: the new ranking in listing order
    """
    rows = (
        db.session.query(LeagueStanding, LeagueMember)
        .join(
            LeagueMember,
            (LeagueMember.league_id == LeagueStanding.league_id)
            & (LeagueMember.user_id == LeagueStanding.user_id),
        )
        .filter(LeagueStanding.league_id == league_id)
        .all()
    )

    standings = {}
    candidates = []
    for standing, member in rows:
        standings[standing.user_id] = standing
        candidates.append(
            RankCandidate(
                user_id=standing.user_id,
                total_points=standing.total_points or 0,
                joined_at=member.joined_at,
                member_id=member.id,
            )
        )

    ranked = assign_competition_ranks(candidates)
    for entry in ranked:
        standing = standings[entry.user_id]
        standing.previous_rank = standing.rank
        standing.rank = entry.rank

    db.session.flush()
    logger.debug(f"Ranked {len(ranked)} members in league {league_id}")
    return ranked

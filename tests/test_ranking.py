from datetime import datetime, timedelta

from tippr.models import LeagueStanding
from tippr.services.ranking import RankCandidate, apply_ranks, assign_competition_ranks

T0 = datetime(2026, 6, 1)


def _candidates(*totals):
    return [
        RankCandidate(user_id=i + 1, total_points=total, joined_at=T0 + timedelta(minutes=i), member_id=i + 1)
        for i, total in enumerate(totals)
    ]


def test_competition_ranking_shares_and_skips():
    ranked = assign_competition_ranks(_candidates(10, 10, 8))
    assert [entry.rank for entry in ranked] == [1, 1, 3]

    ranked = assign_competition_ranks(_candidates(3, 9, 7, 7))
    assert [(entry.total_points, entry.rank) for entry in ranked] == [(9, 1), (7, 2), (7, 2), (3, 4)]

    ranked = assign_competition_ranks(_candidates(0, 0, 0))
    assert [entry.rank for entry in ranked] == [1, 1, 1]

    assert assign_competition_ranks([]) == []


def test_tie_listed_by_join_order_without_splitting_rank():
    late = RankCandidate(user_id=1, total_points=10, joined_at=T0 + timedelta(days=2), member_id=1)
    early = RankCandidate(user_id=2, total_points=10, joined_at=T0, member_id=2)
    same_time = RankCandidate(user_id=3, total_points=10, joined_at=T0, member_id=3)

    ranked = assign_competition_ranks([late, same_time, early])

    assert [entry.user_id for entry in ranked] == [2, 3, 1]
    assert {entry.rank for entry in ranked} == {1}


def _league_with_standings(factory, session, totals):
    league = factory.league(factory.tournament())
    users = []
    for total in totals:
        user = factory.user()
        factory.member(league, user)
        session.add(LeagueStanding(league_id=league.id, user_id=user.id, total_points=total))
        users.append(user)
    session.commit()
    return league, users


def _standing(league, user):
    return LeagueStanding.query.filter_by(league_id=league.id, user_id=user.id).one()


def test_first_computation_leaves_previous_rank_empty(factory, session):
    league, users = _league_with_standings(factory, session, [5, 12, 5])

    apply_ranks(league.id)
    session.commit()

    assert [_standing(league, u).rank for u in users] == [2, 1, 2]
    assert all(_standing(league, u).previous_rank is None for u in users)
    assert all(_standing(league, u).rank_change is None for u in users)


def test_rank_delta_after_climb(factory, session):
    league, users = _league_with_standings(factory, session, [40, 30, 20, 10])
    apply_ranks(league.id)
    session.commit()

    _standing(league, users[3]).total_points = 50
    session.commit()
    apply_ranks(league.id)
    session.commit()

    climber = _standing(league, users[3])
    assert climber.previous_rank == 4
    assert climber.rank == 1
    assert climber.rank_change == 3

    leader = _standing(league, users[0])
    assert (leader.previous_rank, leader.rank, leader.rank_change) == (1, 2, -1)


def test_fifth_to_second(factory, session):
    league, users = _league_with_standings(factory, session, [50, 40, 30, 20, 10])
    apply_ranks(league.id)
    session.commit()

    _standing(league, users[4]).total_points = 45
    session.commit()
    apply_ranks(league.id)
    session.commit()

    moved = _standing(league, users[4])
    assert (moved.previous_rank, moved.rank, moved.rank_change) == (5, 2, 3)

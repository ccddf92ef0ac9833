from datetime import datetime, timedelta

import pytest

from tippr import create_app, db
from tippr.models import (
    BonusPrediction,
    BonusQuestion,
    BonusQuestionType,
    League,
    LeagueMember,
    LeagueSettings,
    Match,
    MatchStatus,
    Prediction,
    Team,
    Tournament,
    User,
)


@pytest.fixture
def app():
    app = create_app("testing")
    ctx = app.app_context()
    ctx.push()
    yield app
    db.session.remove()
    db.drop_all()
    ctx.pop()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def session(app):
    return db.session


class Factory:
    """Builds committed rows with predictable join order"""

    def __init__(self):
        self._counter = 0
        self._join_clock = datetime(2020, 6, 1, 12, 0, 0)

    def _next(self):
        self._counter += 1
        return self._counter

    def user(self, username=None, **kwargs):
        n = self._next()
        username = username or f"user{n}"
        user = User(username=username, email=f"{username}@example.com", **kwargs)
        db.session.add(user)
        db.session.commit()
        return user

    def tournament(self, name="World Cup 2026"):
        tournament = Tournament(name=name, is_active=True)
        db.session.add(tournament)
        db.session.commit()
        return tournament

    def team(self, tournament, name=None, code=None):
        n = self._next()
        team = Team(tournament_id=tournament.id, name=name or f"Team {n}", code=code)
        db.session.add(team)
        db.session.commit()
        return team

    def match(self, tournament, home_team=None, away_team=None):
        home_team = home_team or self.team(tournament)
        away_team = away_team or self.team(tournament)
        match = Match(
            tournament_id=tournament.id,
            home_team_id=home_team.id,
            away_team_id=away_team.id,
            status=MatchStatus.SCHEDULED,
        )
        db.session.add(match)
        db.session.commit()
        return match

    def finished_match(self, tournament, home_score, away_score):
        match = self.match(tournament)
        match.apply_result(home_score, away_score, MatchStatus.FULL_TIME)
        db.session.commit()
        return match

    def league(self, tournament, name=None, with_settings=True, **settings):
        n = self._next()
        league = League(name=name or f"League {n}", tournament_id=tournament.id)
        db.session.add(league)
        db.session.flush()
        if with_settings:
            db.session.add(LeagueSettings(league_id=league.id, **settings))
        db.session.commit()
        return league

    def member(self, league, user, joined_at=None):
        self._join_clock += timedelta(minutes=1)
        member = LeagueMember(
            league_id=league.id, user_id=user.id, joined_at=joined_at or self._join_clock
        )
        db.session.add(member)
        db.session.commit()
        return member

    def prediction(self, league, user, match, home_score, away_score):
        prediction = Prediction(
            league_id=league.id,
            user_id=user.id,
            match_id=match.id,
            home_score=home_score,
            away_score=away_score,
        )
        db.session.add(prediction)
        db.session.commit()
        return prediction

    def bonus_question(self, tournament, points=20, question_type=BonusQuestionType.WINNER):
        question = BonusQuestion(
            tournament_id=tournament.id,
            question_type=question_type,
            question=f"{question_type.value}?",
            points=points,
        )
        db.session.add(question)
        db.session.commit()
        return question

    def bonus_prediction(self, league, user, question, answer_team=None, answer_text=None):
        prediction = BonusPrediction(
            league_id=league.id,
            user_id=user.id,
            bonus_question_id=question.id,
            answer_team_id=answer_team.id if answer_team else None,
            answer_text=answer_text,
        )
        db.session.add(prediction)
        db.session.commit()
        return prediction


@pytest.fixture
def factory(app):
    return Factory()

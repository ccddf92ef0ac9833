"""
Tippr Standings Service

Every path that changes points goes through this module: match results,
bonus question resolutions, league rebuilds and membership changes. Each
trigger is one unit of work. Predictions are scored, the touched leagues are
re-aggregated and re-ranked, and the whole thing commits or rolls back as one.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone

from flask import current_app

from tippr import db
from tippr.models import (
    BonusPrediction,
    BonusQuestion,
    League,
    LeagueMember,
    LeagueSettings,
    LeagueStanding,
    Match,
    Prediction,
    Team,
    Tournament,
    User,
)
from tippr.services.aggregation import refresh_league_totals
from tippr.services.league_locks import league_locks
from tippr.services.ranking import apply_ranks
from tippr.services.version_guard import ScoreState, ensure_scorable, score_state
from tippr.utils.cache_utils import cached_standings, invalidate_league_standings
from tippr.utils.errors import (
    ConfigurationError,
    InvalidStateError,
    NotFoundError,
    ScoringError,
    ValidationError,
)
from tippr.utils.performance import PerformanceMonitor, timer
from tippr.utils.scoring import (
    ScoringRules,
    calculate_match_points,
    resolve_bonus_prediction,
)
from tippr.utils.transaction import unit_of_work

logger = logging.getLogger(__name__)


@dataclass
class ScoringOutcome:
    """What a single trigger did"""

    scored: int = 0
    affected_league_ids: list = field(default_factory=list)
    skipped_league_ids: list = field(default_factory=list)
    # Bonus predictions that earned points
    awarded: int = 0

    def to_dict(self):
        return {
            "scored": self.scored,
            "affected_league_ids": list(self.affected_league_ids),
            "skipped_league_ids": list(self.skipped_league_ids),
            "awarded": self.awarded,
        }


@dataclass
class MatchResultUpdate:
    match_id: int
    result_version: int
    version_bumped: bool
    outcome: ScoringOutcome = None

    def to_dict(self):
        return {
            "match_id": self.match_id,
            "result_version": self.result_version,
            "version_bumped": self.version_bumped,
            "scoring": self.outcome.to_dict() if self.outcome else None,
        }


@dataclass
class TournamentRecalculation:
    tournament_id: int
    outcomes: dict = field(default_factory=dict)
    failures: dict = field(default_factory=dict)

    @property
    def succeeded(self):
        return not self.failures

    def to_dict(self):
        return {
            "tournament_id": self.tournament_id,
            "succeeded": self.succeeded,
            "leagues": {
                str(league_id): outcome.to_dict()
                for league_id, outcome in sorted(self.outcomes.items())
            },
            "failures": {
                str(league_id): {
                    "error": getattr(error, "message", str(error)),
                    "code": getattr(error, "code", "scoring.failed"),
                }
                for league_id, error in sorted(self.failures.items())
            },
        }


def _get_or_raise(model, object_id, label):
    obj = db.session.get(model, object_id)
    if obj is None:
        raise NotFoundError(
            f"{label.replace('_', ' ').capitalize()} {object_id} not found", f"{label}.not_found"
        )
    return obj


def _ensure_unresolved(question):
    if question.is_resolved:
        raise InvalidStateError(
            f"Bonus question {question.id} is already resolved",
            "bonus_question.already_resolved",
        )


def _tournament_league_ids(tournament_id):
    return [
        league_id
        for (league_id,) in db.session.query(League.id)
        .filter(League.tournament_id == tournament_id)
        .order_by(League.id)
    ]


def _rules_by_league(league_ids):
    """Snapshot scoring settings for a set of leagues, missing leagues are absent"""
    if not league_ids:
        return {}
    rows = LeagueSettings.query.filter(LeagueSettings.league_id.in_(league_ids)).all()
    return {row.league_id: ScoringRules.from_settings(row) for row in rows}


@cached_standings
def _load_league_standings(league_id):
    _get_or_raise(League, league_id, "league")
    rows = (
        db.session.query(LeagueStanding)
        .join(
            LeagueMember,
            (LeagueMember.league_id == LeagueStanding.league_id)
            & (LeagueMember.user_id == LeagueStanding.user_id),
        )
        .filter(LeagueStanding.league_id == league_id)
        .order_by(
            LeagueStanding.rank.is_(None),
            LeagueStanding.rank,
            LeagueMember.joined_at,
            LeagueMember.id,
        )
        .all()
    )
    return [standing.to_dict() for standing in rows]


class StandingsService:
    """Scoring coordinator for all standings triggers"""

    def __init__(self, locks=None):
        self.locks = locks if locks is not None else league_locks

    # ------------------------------------------------------------------
    # Match scoring
    # ------------------------------------------------------------------

    @timer
    def score_predictions_for_match(self, match_id, result_version):
        """
        Score every prediction of a finished match against ``result_version``.

        Predictions already scored against that version are left untouched,
        so repeating the call changes nothing.
        """
        match = _get_or_raise(Match, match_id, "match")
        ensure_scorable(match, result_version)
        league_ids = _tournament_league_ids(match.tournament_id)

        with self.locks.hold(league_ids):
            with unit_of_work(f"score match {match_id} v{result_version}"):
                # A correction may have committed while we waited for the locks
                db.session.refresh(match)
                ensure_scorable(match, result_version)
                outcome = self._score_match(match, result_version, league_ids)

        invalidate_league_standings(outcome.affected_league_ids)
        logger.info(
            f"Scored {outcome.scored} predictions for match {match_id} "
            f"v{result_version}, leagues {outcome.affected_league_ids}"
        )
        return outcome

    def _score_match(self, match, result_version, league_ids):
        outcome = ScoringOutcome()
        rules_by_league = _rules_by_league(league_ids)

        predictions = (
            Prediction.query.filter(
                Prediction.match_id == match.id,
                Prediction.league_id.in_(league_ids),
            )
            .order_by(Prediction.id)
            .all()
            if league_ids
            else []
        )

        scored_at = datetime.now(timezone.utc)
        affected = set()
        skipped = set()
        for prediction in predictions:
            if score_state(prediction, match) is ScoreState.CURRENT:
                continue

            rules = rules_by_league.get(prediction.league_id)
            if rules is None:
                skipped.add(prediction.league_id)
                continue

            points = calculate_match_points(
                prediction.home_score,
                prediction.away_score,
                match.home_score,
                match.away_score,
                rules,
            )
            prediction.mark_scored(points, result_version, scored_at)
            outcome.scored += 1
            affected.add(prediction.league_id)

        for league_id in sorted(skipped):
            logger.warning(
                f"League {league_id} has no scoring settings, "
                f"skipped predictions for match {match.id}"
            )

        for league_id in sorted(affected):
            self._refresh_league(league_id)

        outcome.affected_league_ids = sorted(affected)
        outcome.skipped_league_ids = sorted(skipped)
        return outcome

    @timer
    def update_match_result(self, match_id, home_score, away_score, status):
        """
        Store a match result and score it when the final result changed.

        Returns:
            MatchResultUpdate
        """
        match = _get_or_raise(Match, match_id, "match")
        league_ids = _tournament_league_ids(match.tournament_id)

        with self.locks.hold(league_ids):
            with unit_of_work(f"update result of match {match_id}"):
                db.session.refresh(match)
                bumped = match.apply_result(home_score, away_score, status)
                outcome = None
                if bumped:
                    outcome = self._score_match(match, match.result_version, league_ids)
                update = MatchResultUpdate(
                    match_id=match.id,
                    result_version=match.result_version,
                    version_bumped=bumped,
                    outcome=outcome,
                )

        if outcome is not None:
            invalidate_league_standings(outcome.affected_league_ids)
        logger.info(
            f"Match {match_id} result {home_score}-{away_score} ({update.result_version}), "
            f"rescored: {bumped}"
        )
        return update

    # ------------------------------------------------------------------
    # Bonus scoring
    # ------------------------------------------------------------------

    @timer
    def score_bonus_predictions(self, bonus_question_id):
        """Evaluate every bonus prediction of a resolved question"""
        question = _get_or_raise(BonusQuestion, bonus_question_id, "bonus_question")
        if not question.is_resolved:
            raise InvalidStateError(
                f"Bonus question {bonus_question_id} is not resolved",
                "bonus_question.not_resolved",
            )
        league_ids = _tournament_league_ids(question.tournament_id)

        with self.locks.hold(league_ids):
            with unit_of_work(f"score bonus question {bonus_question_id}"):
                outcome = self._score_bonus(question, league_ids)

        invalidate_league_standings(outcome.affected_league_ids)
        logger.info(
            f"Evaluated {outcome.scored} bonus predictions for question "
            f"{bonus_question_id}, {outcome.awarded} awarded"
        )
        return outcome

    def _score_bonus(self, question, league_ids):
        outcome = ScoringOutcome()
        if not league_ids:
            return outcome

        predictions = (
            BonusPrediction.query.filter(
                BonusPrediction.bonus_question_id == question.id,
                BonusPrediction.league_id.in_(league_ids),
            )
            .order_by(BonusPrediction.id)
            .all()
        )

        affected = set()
        for prediction in predictions:
            points = resolve_bonus_prediction(prediction, question)
            outcome.scored += 1
            if points > 0:
                outcome.awarded += 1
            if prediction.points_earned != points:
                prediction.points_earned = points
                affected.add(prediction.league_id)

        for league_id in sorted(affected):
            self._refresh_league(league_id)

        outcome.affected_league_ids = sorted(affected)
        return outcome

    @timer
    def resolve_bonus_question(self, bonus_question_id, answer_team_id=None, answer_text=None):
        """Set the canonical answer of a bonus question and score it"""
        question = _get_or_raise(BonusQuestion, bonus_question_id, "bonus_question")
        _ensure_unresolved(question)
        if answer_team_id is None and not (answer_text and answer_text.strip()):
            raise InvalidStateError(
                "A team or a text answer is required", "bonus_question.answer_required"
            )
        if answer_team_id is not None:
            team = _get_or_raise(Team, answer_team_id, "team")
            if team.tournament_id != question.tournament_id:
                raise ValidationError(
                    f"Team {answer_team_id} does not play in tournament {question.tournament_id}",
                    "bonus_question.team_mismatch",
                )
        league_ids = _tournament_league_ids(question.tournament_id)

        with self.locks.hold(league_ids):
            with unit_of_work(f"resolve bonus question {bonus_question_id}"):
                db.session.refresh(question)
                _ensure_unresolved(question)
                question.resolve(answer_team_id=answer_team_id, answer_text=answer_text)
                outcome = self._score_bonus(question, league_ids)

        invalidate_league_standings(outcome.affected_league_ids)
        logger.info(
            f"Resolved bonus question {bonus_question_id}, "
            f"{outcome.awarded}/{outcome.scored} predictions awarded"
        )
        return outcome

    # ------------------------------------------------------------------
    # League rebuilds
    # ------------------------------------------------------------------

    @timer
    def recalculate_standings_for_league(self, league_id):
        """
        Rebuild a league from scratch.

        Every prediction is scored again against its match regardless of the
        version it was scored at. Predictions of matches without a final
        result go back to unscored. This is the repair path for leagues whose
        rows drifted.
        """
        league = _get_or_raise(League, league_id, "league")
        if league.settings is None:
            raise ConfigurationError(
                f"League {league_id} has no scoring settings", league_id=league_id
            )

        with self.locks.hold([league_id]):
            with unit_of_work(f"recalculate league {league_id}"):
                outcome = self._rebuild_league(league)

        invalidate_league_standings([league_id])
        logger.info(
            f"Recalculated league {league_id}: {outcome.scored} predictions scored, "
            f"{outcome.awarded} bonus answers awarded"
        )
        return outcome

    def _rebuild_league(self, league):
        outcome = ScoringOutcome(affected_league_ids=[league.id])
        rules = ScoringRules.from_settings(league.settings)
        scored_at = datetime.now(timezone.utc)

        rows = (
            db.session.query(Prediction, Match)
            .join(Match, Match.id == Prediction.match_id)
            .filter(Prediction.league_id == league.id)
            .order_by(Prediction.id)
            .all()
        )
        for prediction, match in rows:
            if not match.is_scorable:
                prediction.reset_score()
                continue
            points = calculate_match_points(
                prediction.home_score,
                prediction.away_score,
                match.home_score,
                match.away_score,
                rules,
            )
            prediction.mark_scored(points, match.result_version, scored_at)
            outcome.scored += 1

        bonus_rows = (
            db.session.query(BonusPrediction, BonusQuestion)
            .join(BonusQuestion, BonusQuestion.id == BonusPrediction.bonus_question_id)
            .filter(BonusPrediction.league_id == league.id)
            .order_by(BonusPrediction.id)
            .all()
        )
        for prediction, question in bonus_rows:
            if not question.is_resolved:
                prediction.points_earned = None
                continue
            points = resolve_bonus_prediction(prediction, question)
            prediction.points_earned = points
            outcome.scored += 1
            if points > 0:
                outcome.awarded += 1

        self._refresh_league(league.id)
        return outcome

    @timer
    def recalculate_ranks_for_league(self, league_id):
        """Re-aggregate stored points and re-rank, without scoring anything"""
        _get_or_raise(League, league_id, "league")

        with self.locks.hold([league_id]):
            with unit_of_work(f"recalculate ranks of league {league_id}"):
                self._refresh_league(league_id)

        invalidate_league_standings([league_id])
        logger.info(f"Recalculated ranks for league {league_id}")
        return ScoringOutcome(affected_league_ids=[league_id])

    def recalculate_standings_for_tournament(self, tournament_id):
        """
        Rebuild every league of a tournament.

        Leagues are independent units of work spread over at most
        ``STANDINGS_MAX_WORKERS`` threads. A failing league is reported in
        ``failures`` and does not stop the others.
        """
        _get_or_raise(Tournament, tournament_id, "tournament")
        league_ids = _tournament_league_ids(tournament_id)
        result = TournamentRecalculation(tournament_id=tournament_id)
        max_workers = current_app.config.get("STANDINGS_MAX_WORKERS", 4)

        with PerformanceMonitor(f"recalculate tournament {tournament_id}", log_threshold=1.0):
            if max_workers <= 1 or len(league_ids) <= 1:
                for league_id in league_ids:
                    self._collect(result, league_id, self.recalculate_standings_for_league, league_id)
            else:
                app = current_app._get_current_object()
                with ThreadPoolExecutor(
                    max_workers=min(max_workers, len(league_ids)),
                    thread_name_prefix="standings",
                ) as executor:
                    futures = {
                        executor.submit(self._recalculate_in_context, app, league_id): league_id
                        for league_id in league_ids
                    }
                    for future in as_completed(futures):
                        self._collect(result, futures[future], future.result)

        if result.failures:
            logger.warning(
                f"Tournament {tournament_id} recalculation: "
                f"{len(result.outcomes)} leagues rebuilt, failed: {sorted(result.failures)}"
            )
        else:
            logger.info(
                f"Tournament {tournament_id} recalculation: {len(result.outcomes)} leagues rebuilt"
            )
        return result

    def _recalculate_in_context(self, app, league_id):
        with app.app_context():
            return self.recalculate_standings_for_league(league_id)

    @staticmethod
    def _collect(result, league_id, func, *args):
        try:
            result.outcomes[league_id] = func(*args)
        except ScoringError as e:
            logger.warning(f"League {league_id} not recalculated [{e.code}]: {e.message}")
            result.failures[league_id] = e
        except Exception as e:
            logger.exception(f"League {league_id} recalculation failed: {e}")
            result.failures[league_id] = e

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    @timer
    def add_league_member(self, league_id, user_id):
        """
        Join a user to a league and give them a standing row.

        Joining twice returns the existing membership.
        """
        league = _get_or_raise(League, league_id, "league")
        _get_or_raise(User, user_id, "user")

        with self.locks.hold([league_id]):
            existing = LeagueMember.query.filter_by(league_id=league_id, user_id=user_id).first()
            if existing is not None:
                return existing
            if league.is_full():
                raise InvalidStateError(f"League {league_id} is full", "league.full")

            with unit_of_work(f"add user {user_id} to league {league_id}"):
                member = LeagueMember(league_id=league_id, user_id=user_id)
                db.session.add(member)
                db.session.flush()
                self._refresh_league(league_id)

        invalidate_league_standings([league_id])
        logger.info(f"User {user_id} joined league {league_id}")
        return member

    @timer
    def remove_league_member(self, league_id, user_id):
        """Remove a member along with everything they predicted in the league"""
        _get_or_raise(League, league_id, "league")
        member = LeagueMember.query.filter_by(league_id=league_id, user_id=user_id).first()
        if member is None:
            raise NotFoundError(
                f"User {user_id} is not a member of league {league_id}",
                "league_member.not_found",
            )

        with self.locks.hold([league_id]):
            with unit_of_work(f"remove user {user_id} from league {league_id}"):
                Prediction.query.filter_by(league_id=league_id, user_id=user_id).delete()
                BonusPrediction.query.filter_by(league_id=league_id, user_id=user_id).delete()
                LeagueStanding.query.filter_by(league_id=league_id, user_id=user_id).delete()
                db.session.delete(member)
                db.session.flush()
                self._refresh_league(league_id)

        invalidate_league_standings([league_id])
        logger.info(f"User {user_id} left league {league_id}")

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_league_standings(self, league_id):
        """Standings of a league in rank order, served from the cache when warm"""
        return _load_league_standings(league_id)

    def _refresh_league(self, league_id):
        refresh_league_totals(league_id)
        apply_ranks(league_id)


standings_service = StandingsService()

#!/usr/bin/env python3
"""
Tippr Management CLI

This script provides command-line management for the Tippr standings engine.
"""

import logging
import os

import click
from flask.cli import with_appcontext
from flask_migrate import init, migrate, upgrade
from sqlalchemy.exc import SQLAlchemyError

from tippr import create_app, db
from tippr.models import League, Match, MatchStatus, Prediction, Tournament, User
from tippr.services.standings_service import standings_service
from tippr.utils.errors import ScoringError

logger = logging.getLogger("tippr.manage")


def _fail(action, error):
    if isinstance(error, ScoringError):
        click.echo(f"❌ {action} failed [{error.code}]: {error.message}")
    else:
        click.echo(f"❌ Database error during {action}: {str(error)}")
    logger.error(f"{action} failed: {error}")
    raise click.exceptions.Exit(1)


@click.group()
def cli():
    """Tippr Management CLI"""
    pass


# Standings Commands
@cli.group()
def standings():
    """Scoring and standings commands"""
    pass


@standings.command("score-match")
@click.argument("match_id", type=int)
@click.option(
    "--result-version",
    type=int,
    help="Result version to score against (defaults to the match's current one)",
)
@with_appcontext
def score_match(match_id, result_version):
    """Score all predictions for a finished match"""
    try:
        if result_version is None:
            match = db.session.get(Match, match_id)
            if match is None:
                click.echo(f"❌ Match {match_id} not found!")
                raise click.exceptions.Exit(1)
            result_version = match.result_version

        outcome = standings_service.score_predictions_for_match(match_id, result_version)
        click.echo(
            f"✅ Scored {outcome.scored} predictions for match {match_id} "
            f"(version {result_version})"
        )
        if outcome.affected_league_ids:
            click.echo(f"   Leagues updated: {outcome.affected_league_ids}")
        if outcome.skipped_league_ids:
            click.echo(f"⚠️  Leagues without settings: {outcome.skipped_league_ids}")
    except (ScoringError, SQLAlchemyError) as e:
        _fail("Scoring match", e)


@standings.command("score-bonus")
@click.argument("question_id", type=int)
@with_appcontext
def score_bonus(question_id):
    """Score all predictions for a resolved bonus question"""
    try:
        outcome = standings_service.score_bonus_predictions(question_id)
        click.echo(
            f"✅ Evaluated {outcome.scored} bonus predictions, {outcome.awarded} awarded"
        )
    except (ScoringError, SQLAlchemyError) as e:
        _fail("Scoring bonus question", e)


@standings.command("recalc-league")
@click.argument("league_id", type=int)
@with_appcontext
def recalc_league(league_id):
    """Rebuild a league's scores and standings from scratch"""
    try:
        outcome = standings_service.recalculate_standings_for_league(league_id)
        click.echo(f"✅ League {league_id} rebuilt ({outcome.scored} predictions scored)")
    except (ScoringError, SQLAlchemyError) as e:
        _fail("League recalculation", e)


@standings.command("recalc-ranks")
@click.argument("league_id", type=int)
@with_appcontext
def recalc_ranks(league_id):
    """Re-aggregate totals and re-rank a league without rescoring"""
    try:
        standings_service.recalculate_ranks_for_league(league_id)
        click.echo(f"✅ Ranks recalculated for league {league_id}")
    except (ScoringError, SQLAlchemyError) as e:
        _fail("Rank recalculation", e)


@standings.command("recalc-tournament")
@click.argument("tournament_id", type=int)
@with_appcontext
def recalc_tournament(tournament_id):
    """Rebuild every league of a tournament"""
    try:
        result = standings_service.recalculate_standings_for_tournament(tournament_id)
    except (ScoringError, SQLAlchemyError) as e:
        _fail("Tournament recalculation", e)

    click.echo(f"✅ {len(result.outcomes)} leagues rebuilt for tournament {tournament_id}")
    for league_id, error in sorted(result.failures.items()):
        click.echo(f"❌ League {league_id}: {getattr(error, 'message', str(error))}")
    if result.failures:
        raise click.exceptions.Exit(1)


@standings.command("show")
@click.argument("league_id", type=int)
@with_appcontext
def show(league_id):
    """Print the standings of a league"""
    try:
        rows = standings_service.get_league_standings(league_id)
    except ScoringError as e:
        _fail("Loading standings", e)

    if not rows:
        click.echo("No standings yet.")
        return

    click.echo(f"{'#':>3}  {'Player':<20} {'Match':>6} {'Bonus':>6} {'Total':>6}  +/-")
    for row in rows:
        rank = row["rank"] if row["rank"] is not None else "-"
        change = row["rank_change"]
        change_str = "" if change is None else f"{change:+d}"
        click.echo(
            f"{rank:>3}  {row['display_name'] or '':<20} {row['match_points']:>6} "
            f"{row['bonus_points']:>6} {row['total_points']:>6}  {change_str}"
        )


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command()
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error initializing database: {str(e)}")
        logger.error(f"Database initialization failed: {e}")


@db_cmd.command()
@with_appcontext
def reset():
    """⚠️  DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        click.echo("✅ Database reset successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error resetting database: {str(e)}")
        logger.error(f"Database reset failed: {e}")


def _require_migrations(directory):
    if not os.path.isdir(directory):
        click.echo(
            f"❌ No migrations directory '{directory}', run 'db-migrate init-migrations' first"
        )
        raise click.exceptions.Exit(1)


# Database Migration Commands
@cli.group()
def db_migrate():
    """Database migration commands"""
    pass


@db_migrate.command()
@click.option("--directory", default="migrations", show_default=True, help="Migrations directory")
@with_appcontext
def init_migrations(directory):
    """Initialize the migrations repository"""
    if os.path.exists(directory):
        click.echo(f"❌ Migrations directory '{directory}' already exists!")
        raise click.exceptions.Exit(1)

    init(directory=directory)
    click.echo(f"✅ Migrations repository initialized in {directory}")
    click.echo("   Set AUTO_CREATE_TABLES=False to let migrations own the schema")


@db_migrate.command()
@click.option("-m", "--message", required=True, help="Migration message")
@click.option("--directory", default="migrations", show_default=True, help="Migrations directory")
@with_appcontext
def create_migration(message, directory):
    """Create a new migration"""
    _require_migrations(directory)
    migrate(directory=directory, message=message)
    click.echo(f"✅ Migration created: {message}")


@db_migrate.command()
@click.option("--revision", default="head", help="Revision to upgrade to")
@click.option("--directory", default="migrations", show_default=True, help="Migrations directory")
@with_appcontext
def apply_migrations(revision, directory):
    """Apply migrations to database"""
    _require_migrations(directory)
    upgrade(directory=directory, revision=revision)
    click.echo(f"✅ Migrations applied to {revision}")


# Info Commands
@cli.command()
@with_appcontext
def status():
    """Show scoring status"""
    click.echo("📊 Tippr Status")
    click.echo("=" * 30)

    click.echo(f"🏆 Tournaments: {Tournament.query.count()}")
    click.echo(f"👥 Users: {User.query.filter_by(is_active=True).count()}")
    click.echo(f"📋 Leagues: {League.query.count()}")

    finished = Match.query.filter_by(status=MatchStatus.FULL_TIME).count()
    click.echo(f"⚽ Matches: {finished}/{Match.query.count()} finished")

    pending = (
        Prediction.query.join(Match, Match.id == Prediction.match_id)
        .filter(Match.status == MatchStatus.FULL_TIME, Prediction.is_scored.is_(False))
        .count()
    )
    if pending:
        click.echo(f"⚠️  Unscored predictions on finished matches: {pending}")
    else:
        click.echo("✅ All finished matches are scored")


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        cli()

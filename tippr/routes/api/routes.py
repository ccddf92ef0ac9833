from flask import jsonify

from tippr import db
from tippr.models import League
from tippr.routes.api import bp
from tippr.services.standings_service import standings_service
from tippr.utils.errors import NotFoundError


@bp.route("/leagues/<int:league_id>/standings")
def league_standings(league_id):
    """Get the ranked standings of a league"""
    league = db.session.get(League, league_id)
    if league is None:
        raise NotFoundError(f"League {league_id} not found", "league.not_found")

    standings = standings_service.get_league_standings(league_id)

    return jsonify(
        {
            "league": {"id": league.id, "name": league.name},
            "standings": standings,
        }
    )

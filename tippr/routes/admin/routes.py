from functools import wraps

from flask import abort, current_app, jsonify, request
from flask_login import current_user, login_required

from tippr import db, limiter
from tippr.models import Match
from tippr.routes.admin import bp
from tippr.services.standings_service import standings_service
from tippr.utils.errors import NotFoundError, ValidationError


def admin_required(f):
    """Restrict a view to site admins"""

    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if current_app.config.get("LOGIN_DISABLED"):
            return f(*args, **kwargs)
        if not getattr(current_user, "is_admin", False):
            current_app.logger.warning(
                f"Non-admin user {current_user.get_id()} tried {request.method} {request.path}"
            )
            abort(403)
        return f(*args, **kwargs)

    return decorated_function


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", "request.invalid_body")
    return data


def _optional_int(data, key):
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{key} must be an integer", f"request.{key}.invalid")
    return value


@bp.route("/matches/<int:match_id>/result", methods=["PUT"])
@limiter.limit("60 per minute")
@admin_required
def update_match_result(match_id):
    """Store a match result and rescore when the final score changed"""
    data = _json_body()
    if "status" not in data:
        raise ValidationError("status is required", "request.status.missing")

    update = standings_service.update_match_result(
        match_id, data.get("home_score"), data.get("away_score"), data["status"]
    )
    return jsonify(update.to_dict())


@bp.route("/matches/<int:match_id>/score", methods=["POST"])
@limiter.limit("60 per minute")
@admin_required
def score_match(match_id):
    """Score a finished match, by default against its current result version"""
    data = _json_body()
    result_version = _optional_int(data, "result_version")
    if result_version is None:
        match = db.session.get(Match, match_id)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found", "match.not_found")
        result_version = match.result_version

    outcome = standings_service.score_predictions_for_match(match_id, result_version)
    return jsonify(outcome.to_dict())


@bp.route("/bonus-questions/<int:question_id>/resolve", methods=["POST"])
@limiter.limit("30 per minute")
@admin_required
def resolve_bonus_question(question_id):
    data = _json_body()
    answer_text = data.get("answer_text")
    if answer_text is not None and not isinstance(answer_text, str):
        raise ValidationError("answer_text must be a string", "request.answer_text.invalid")

    outcome = standings_service.resolve_bonus_question(
        question_id,
        answer_team_id=_optional_int(data, "answer_team_id"),
        answer_text=answer_text,
    )
    return jsonify(outcome.to_dict())


@bp.route("/bonus-questions/<int:question_id>/score", methods=["POST"])
@limiter.limit("30 per minute")
@admin_required
def score_bonus_question(question_id):
    outcome = standings_service.score_bonus_predictions(question_id)
    return jsonify(outcome.to_dict())


@bp.route("/leagues/<int:league_id>/recalculate", methods=["POST"])
@limiter.limit("20 per minute")
@admin_required
def recalculate_league(league_id):
    """Rebuild a league's predictions and standings from scratch"""
    outcome = standings_service.recalculate_standings_for_league(league_id)
    return jsonify(outcome.to_dict())


@bp.route("/leagues/<int:league_id>/ranks", methods=["POST"])
@limiter.limit("20 per minute")
@admin_required
def recalculate_league_ranks(league_id):
    outcome = standings_service.recalculate_ranks_for_league(league_id)
    return jsonify(outcome.to_dict())


@bp.route("/tournaments/<int:tournament_id>/recalculate", methods=["POST"])
@limiter.limit("5 per minute")
@admin_required
def recalculate_tournament(tournament_id):
    """Rebuild every league of a tournament, failures are reported per league"""
    result = standings_service.recalculate_standings_for_tournament(tournament_id)
    status = 200 if result.succeeded else 207
    return jsonify(result.to_dict()), status

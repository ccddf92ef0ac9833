import logging

import pytest

from tippr import cache
from tippr.utils.cache_utils import standings_cache_key


@pytest.fixture
def setup(factory):
    tournament = factory.tournament()
    league = factory.league(tournament, name="Office")
    alice, bob = factory.user("alice"), factory.user("bob")
    factory.member(league, alice)
    factory.member(league, bob)
    match = factory.match(tournament)
    factory.prediction(league, alice, match, 2, 1)
    factory.prediction(league, bob, match, 0, 0)
    return tournament, league, match


def test_result_update_and_standings(client, setup):
    _, league, match = setup

    response = client.put(
        f"/api/admin/matches/{match.id}/result",
        json={"home_score": 2, "away_score": 1, "status": "full_time"},
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["version_bumped"] is True
    assert body["result_version"] == 1
    assert body["scoring"]["scored"] == 2

    response = client.get(f"/api/leagues/{league.id}/standings")
    assert response.status_code == 200
    body = response.get_json()
    assert body["league"]["name"] == "Office"
    assert [(row["username"], row["rank"], row["total_points"]) for row in body["standings"]] == [
        ("alice", 1, 7),
        ("bob", 2, 0),
    ]


def test_score_defaults_to_current_version(client, setup, session):
    _, _, match = setup
    match.apply_result(2, 1, "full_time")
    session.commit()

    response = client.post(f"/api/admin/matches/{match.id}/score")

    assert response.status_code == 200
    assert response.get_json()["scored"] == 2


def test_stale_version_is_conflict(client, setup, session):
    _, _, match = setup
    match.apply_result(2, 1, "full_time")
    session.commit()

    response = client.post(f"/api/admin/matches/{match.id}/score", json={"result_version": 0})

    assert response.status_code == 409
    assert response.get_json()["code"] == "match.stale_result_version"


def test_bad_payloads(client, setup):
    _, _, match = setup

    response = client.put(f"/api/admin/matches/{match.id}/result", json={"home_score": 1})
    assert response.status_code == 400
    assert response.get_json()["code"] == "request.status.missing"

    response = client.put(
        f"/api/admin/matches/{match.id}/result",
        json={"home_score": 1, "away_score": 0, "status": "halftime"},
    )
    assert response.status_code == 400
    assert response.get_json()["code"] == "match.status.invalid"

    response = client.post(f"/api/admin/matches/{match.id}/score", json={"result_version": "1"})
    assert response.status_code == 400


def test_missing_objects_are_404(client, app):
    response = client.post("/api/admin/leagues/999/recalculate")
    assert response.status_code == 404
    assert response.get_json() == {"error": "League 999 not found", "code": "league.not_found"}

    response = client.get("/api/leagues/999/standings")
    assert response.status_code == 404


def test_cached_standings_of_deleted_league_are_404(client, app):
    cache.set(standings_cache_key(999), [{"user_id": 1, "rank": 1}])

    response = client.get("/api/leagues/999/standings")

    assert response.status_code == 404
    assert response.get_json()["code"] == "league.not_found"


def test_bonus_resolution_endpoint(client, setup, factory):
    tournament, league, _ = setup
    question = factory.bonus_question(tournament, points=20)
    carol = factory.user("carol")
    factory.member(league, carol)
    factory.bonus_prediction(league, carol, question, answer_text="Spain")

    response = client.post(
        f"/api/admin/bonus-questions/{question.id}/resolve", json={"answer_text": "spain"}
    )
    assert response.status_code == 200
    assert response.get_json()["awarded"] == 1

    response = client.post(f"/api/admin/bonus-questions/{question.id}/score")
    assert response.status_code == 200
    assert response.get_json()["affected_league_ids"] == []

    response = client.post(
        f"/api/admin/bonus-questions/{question.id}/resolve", json={"answer_text": "Italy"}
    )
    assert response.status_code == 409


def test_league_and_tournament_recalculation(client, setup, factory):
    tournament, league, _ = setup

    response = client.post(f"/api/admin/leagues/{league.id}/recalculate")
    assert response.status_code == 200
    assert response.get_json()["affected_league_ids"] == [league.id]

    response = client.post(f"/api/admin/leagues/{league.id}/ranks")
    assert response.status_code == 200

    response = client.post(f"/api/admin/tournaments/{tournament.id}/recalculate")
    assert response.status_code == 200
    assert response.get_json()["succeeded"] is True

    bare = factory.league(tournament, with_settings=False)
    response = client.post(f"/api/admin/tournaments/{tournament.id}/recalculate")
    assert response.status_code == 207
    body = response.get_json()
    assert list(body["failures"]) == [str(bare.id)]
    assert str(league.id) in body["leagues"]


def test_slow_request_logs_timed_operations(app, client, setup, caplog):
    tournament, _, _ = setup
    app.config["SLOW_REQUEST_THRESHOLD"] = -1

    with caplog.at_level(logging.INFO, logger="tippr.utils.performance"):
        response = client.post(f"/api/admin/tournaments/{tournament.id}/recalculate")

    assert response.status_code == 200
    assert f"Slow request: POST /api/admin/tournaments/{tournament.id}/recalculate" in caplog.text
    assert f"recalculate tournament {tournament.id}: " in caplog.text


def test_admin_endpoints_require_login(app, client, setup):
    _, league, _ = setup
    app.config["LOGIN_DISABLED"] = False

    response = client.post(f"/api/admin/leagues/{league.id}/ranks")

    assert response.status_code == 401


def test_non_admin_is_forbidden(app, client, setup, factory):
    _, league, _ = setup
    user = factory.user("mallory")
    app.config["LOGIN_DISABLED"] = False

    with client.session_transaction() as sess:
        sess["_user_id"] = str(user.id)
        sess["_fresh"] = True

    response = client.post(f"/api/admin/leagues/{league.id}/ranks")

    assert response.status_code == 403

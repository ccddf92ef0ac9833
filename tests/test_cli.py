import pytest

from manage import cli


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def scored_league(factory):
    tournament = factory.tournament()
    league = factory.league(tournament)
    alice = factory.user("alice", display_name="Alice A.")
    factory.member(league, alice)
    match = factory.match(tournament)
    factory.prediction(league, alice, match, 1, 1)
    return tournament, league, match


def test_score_match_and_show(runner, scored_league, session):
    _, league, match = scored_league
    match.apply_result(1, 1, "full_time")
    session.commit()

    result = runner.invoke(cli, ["standings", "score-match", str(match.id)])
    assert result.exit_code == 0, result.output
    assert "Scored 1 predictions" in result.output

    result = runner.invoke(cli, ["standings", "show", str(league.id)])
    assert result.exit_code == 0, result.output
    assert "Alice A." in result.output
    assert "7" in result.output


def test_score_unfinished_match_fails(runner, scored_league):
    _, _, match = scored_league

    result = runner.invoke(cli, ["standings", "score-match", str(match.id)])

    assert result.exit_code == 1
    assert "match.not_finished" in result.output


def test_recalc_commands(runner, scored_league):
    tournament, league, _ = scored_league

    for args in (
        ["standings", "recalc-league", str(league.id)],
        ["standings", "recalc-ranks", str(league.id)],
        ["standings", "recalc-tournament", str(tournament.id)],
    ):
        result = runner.invoke(cli, args)
        assert result.exit_code == 0, result.output


def test_recalc_tournament_reports_failures(runner, scored_league, factory):
    tournament, _, _ = scored_league
    bare = factory.league(tournament, with_settings=False)

    result = runner.invoke(cli, ["standings", "recalc-tournament", str(tournament.id)])

    assert result.exit_code == 1
    assert f"League {bare.id}" in result.output


def test_score_bonus_requires_resolution(runner, scored_league, factory):
    tournament, _, _ = scored_league
    question = factory.bonus_question(tournament)

    result = runner.invoke(cli, ["standings", "score-bonus", str(question.id)])

    assert result.exit_code == 1
    assert "bonus_question.not_resolved" in result.output


def test_status(runner, scored_league):
    result = runner.invoke(cli, ["status"])

    assert result.exit_code == 0, result.output
    assert "Leagues: 1" in result.output


def test_init_migrations_creates_repository(runner, tmp_path):
    directory = tmp_path / "migrations"
    args = ["db-migrate", "init-migrations", "--directory", str(directory)]

    result = runner.invoke(cli, args)
    assert result.exit_code == 0, result.output
    assert (directory / "env.py").is_file()
    assert (directory / "versions").is_dir()

    result = runner.invoke(cli, args)
    assert result.exit_code == 1
    assert "already exists" in result.output


def test_migration_commands_need_a_repository(runner, tmp_path):
    missing = str(tmp_path / "nowhere")

    for args in (
        ["db-migrate", "create-migration", "-m", "initial", "--directory", missing],
        ["db-migrate", "apply-migrations", "--directory", missing],
    ):
        result = runner.invoke(cli, args)
        assert result.exit_code == 1
        assert "init-migrations" in result.output

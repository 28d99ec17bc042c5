import os, sys
import random
from dataclasses import replace
from datetime import datetime, timezone

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))
from palapoint.scoring import engine
from palapoint.scoring.effects import Effect, InvalidTeam, ScoreEvent
from palapoint.scoring.state import (
    MatchConfig,
    NormalGame,
    TeamPair,
    Tiebreak,
    create_match_state,
    other_team,
)

pytestmark = pytest.mark.no_db

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def _new(policy="golden_point", sets_to_win=1, tiebreak_at=6, serving="a"):
    return create_match_state(
        "m1",
        "court-1",
        MatchConfig(policy, sets_to_win, tiebreak_at),
        serving_team=serving,
    )


def _point(state, team):
    return engine.apply(state, ScoreEvent(team), now=NOW)


def _score(state, teams):
    effects = []
    for team in teams:
        state, effects = _point(state, team)
    return state, effects


def _score_game(state, team):
    return _score(state, [team] * 4)


def _score_games(state, teams):
    for team in teams:
        state, _ = _score_game(state, team)
    return state


def _to_six_all(state):
    return _score_games(state, ["a", "b"] * 6)


def _types(effects):
    return [e.type for e in effects]


def test_first_point_starts_match():
    state = _new()
    assert state.status == "setup"

    state, effects = _point(state, "a")

    assert state.status == "in_progress"
    assert state.started_at == NOW
    assert state.points == TeamPair(1, 0)
    assert effects == [Effect("point_scored", team="a")]


def test_love_game_rotates_server():
    state, effects = _score_game(_new(serving="a"), "a")

    assert state.games == TeamPair(1, 0)
    assert state.points == TeamPair(0, 0)
    assert state.serving_team == "b"
    assert _types(effects) == ["point_scored", "game_won"]
    assert effects[-1].team == "a"


def test_engine_does_not_touch_version_or_input():
    state = _new()
    before = replace(state)

    new_state, _ = _point(state, "b")

    assert state == before
    assert new_state.version == state.version


def test_traditional_deuce_and_advantage():
    state, effects = _score(_new("traditional"), ["a", "a", "a", "b", "b", "b"])
    assert state.points == TeamPair(3, 3)
    assert state.deuce_count == 1
    assert _types(effects) == ["point_scored", "deuce"]

    state, effects = _point(state, "a")
    assert state.games == TeamPair(0, 0)
    assert effects[-1] == Effect("advantage", team="a")

    state, effects = _point(state, "b")
    assert state.deuce_count == 2
    assert _types(effects) == ["point_scored", "deuce"]

    state, effects = _score(state, ["a", "a"])
    assert state.games == TeamPair(1, 0)
    assert state.points == TeamPair(0, 0)
    assert state.deuce_count == 0


def test_traditional_long_deuce_needs_two_clear_points():
    state, _ = _score(_new("traditional"), ["a", "b"] * 6)
    assert state.points == TeamPair(6, 6)
    assert state.deuce_count == 4

    state, _ = _point(state, "b")
    assert state.games == TeamPair(0, 0)
    state, _ = _point(state, "b")
    assert state.games == TeamPair(0, 1)


@pytest.mark.parametrize("winner", ["a", "b"])
def test_golden_point_wins_from_deuce(winner):
    state, _ = _score(_new("golden_point"), ["a", "a", "a", "b", "b", "b"])
    assert state.points == TeamPair(3, 3)

    state, effects = _point(state, winner)

    assert state.games.get(winner) == 1
    assert state.games.get(other_team(winner)) == 0
    assert state.points == TeamPair(0, 0)
    assert "advantage" not in _types(effects)
    assert effects[-1] == Effect("game_won", team=winner)


def test_silver_point_first_deuce_only_grants_advantage():
    state, _ = _score(_new("silver_point"), ["a", "a", "a", "b", "b", "b"])
    assert state.deuce_count == 1

    state, effects = _point(state, "a")

    assert state.games == TeamPair(0, 0)
    assert state.points == TeamPair(4, 3)
    assert effects[-1] == Effect("advantage", team="a")


def test_silver_point_second_deuce_is_sudden_death():
    state, _ = _score(_new("silver_point"), ["a", "a", "a", "b", "b", "b", "a", "b"])
    assert state.points == TeamPair(4, 4)
    assert state.deuce_count == 2

    state, effects = _point(state, "b")

    assert state.games == TeamPair(0, 1)
    assert state.points == TeamPair(0, 0)
    assert effects[-1] == Effect("game_won", team="b")


def test_silver_point_advantage_converted_before_second_deuce():
    state, _ = _score(_new("silver_point"), ["a", "a", "a", "b", "b", "b", "a", "a"])
    assert state.games == TeamPair(1, 0)


def test_six_love_set_wins_single_set_match():
    state = _score_games(_new(sets_to_win=1), ["a"] * 5)
    assert state.status == "in_progress"

    state, effects = _score_game(state, "a")

    assert _types(effects) == ["point_scored", "game_won", "set_won", "match_won"]
    assert state.status == "completed"
    assert state.winner == "a"
    assert state.completed_at == NOW
    assert state.set_scores == (TeamPair(6, 0),)
    assert state.games == TeamPair(6, 0)


def test_set_win_starts_next_set_and_rotates_server():
    state = _score_games(_new(sets_to_win=2, serving="a"), ["b"] * 5)
    server_before = state.serving_team

    state, effects = _score_game(state, "b")

    assert _types(effects) == ["point_scored", "game_won", "set_won", "set_started"]
    assert effects[-1] == Effect("set_started", set_number=2)
    assert state.status == "in_progress"
    assert state.current_set == 2
    assert state.games == TeamPair(0, 0)
    assert state.set_scores == (TeamPair(0, 6),)
    assert state.serving_team == other_team(server_before)


def test_seven_five_set_without_tiebreak():
    state = _score_games(_new(), ["a", "b"] * 5)
    assert state.games == TeamPair(5, 5)

    state = _score_games(state, ["a"])
    assert state.set_scores == ()
    state = _score_games(state, ["a"])

    assert state.set_scores == (TeamPair(7, 5),)
    assert state.status == "completed"


def test_tiebreak_starts_at_six_all_without_rotating_server():
    state = _score_games(_new(), ["a", "b"] * 5 + ["a"])
    server_before = state.serving_team

    state, effects = _score_game(state, "b")

    assert state.games == TeamPair(6, 6)
    assert state.is_tiebreak is True
    assert state.tiebreak_points == TeamPair(0, 0)
    assert state.tiebreak_starting_server == server_before
    assert state.serving_team == server_before
    assert _types(effects) == ["point_scored", "game_won", "tiebreak_started"]


def test_tiebreak_fip_serve_rotation():
    state = _to_six_all(_new())
    start = state.tiebreak_starting_server

    servers = []
    for team in ["a", "b", "a", "b", "a", "b", "a"]:
        servers.append(state.serving_team)
        state, _ = _point(state, team)

    other = other_team(start)
    assert servers == [start, other, other, start, start, other, other]
    assert state.is_tiebreak is True
    assert state.tiebreak_points == TeamPair(4, 3)


@pytest.mark.parametrize(
    "played, expected",
    [(0, "a"), (1, "b"), (2, "b"), (3, "a"), (4, "a"), (5, "b"), (6, "b"), (7, "a")],
)
def test_tiebreak_server_formula(played, expected):
    assert engine.tiebreak_server("a", played) == expected


def test_tiebreak_points_do_not_touch_game_points():
    state = _to_six_all(_new())
    state, effects = _point(state, "a")

    assert state.points == TeamPair(0, 0)
    assert state.tiebreak_points == TeamPair(1, 0)
    assert _types(effects) == ["point_scored"]


def test_tiebreak_win_by_two_past_seven():
    state = _to_six_all(_new(sets_to_win=1))
    state, _ = _score(state, ["a", "b"] * 6)
    assert state.tiebreak_points == TeamPair(6, 6)

    state, _ = _point(state, "a")
    assert state.is_tiebreak is True
    assert state.tiebreak_points == TeamPair(7, 6)

    state, effects = _point(state, "a")

    assert _types(effects) == ["point_scored", "game_won", "set_won", "match_won"]
    assert state.is_tiebreak is False
    assert state.tiebreak_points is None
    assert state.tiebreak_starting_server is None
    assert state.set_scores == (TeamPair(7, 6),)
    assert state.winner == "a"


def test_tiebreak_win_in_first_set_of_three():
    state = _to_six_all(_new(sets_to_win=2))
    server = state.serving_team

    state, effects = _score(state, ["b"] * 7)

    assert _types(effects) == [
        "point_scored",
        "game_won",
        "set_won",
        "set_started",
    ]
    assert state.set_scores == (TeamPair(6, 7),)
    assert state.current_set == 2
    assert state.games == TeamPair(0, 0)
    assert isinstance(state.game, NormalGame)
    # Next set rotates away from whoever served the last tiebreak point.
    assert server is not None
    assert state.serving_team == other_team(engine.tiebreak_server(server, 6))


def test_tiebreak_threshold_seven():
    state = _score_games(_new(tiebreak_at=7), ["a", "b"] * 6)
    assert state.games == TeamPair(6, 6)
    assert state.is_tiebreak is False

    state = _score_games(state, ["a", "b"])
    assert state.games == TeamPair(7, 7)
    assert state.is_tiebreak is True

    state, _ = _score(state, ["b"] * 7)
    assert state.set_scores == (TeamPair(7, 8),)
    assert state.winner == "b"


def test_best_of_three_match():
    state = _new(sets_to_win=2)
    state = _score_games(state, ["a"] * 6)
    state = _score_games(state, ["b"] * 6)
    assert state.status == "in_progress"
    assert state.current_set == 3

    state = _score_games(state, ["a"] * 6)

    assert state.status == "completed"
    assert state.winner == "a"
    assert state.set_scores == (TeamPair(6, 0), TeamPair(0, 6), TeamPair(6, 0))


@pytest.mark.parametrize("status", ["completed", "abandoned"])
@pytest.mark.parametrize("team", ["a", "b"])
def test_terminal_state_is_a_noop(status, team):
    state = _new()
    if status == "completed":
        state = _score_games(state, ["a"] * 6)
    else:
        state = replace(_score_games(state, ["a"]), status="abandoned")

    new_state, effects = _point(state, team)

    assert new_state is state
    assert effects == []


def test_invalid_team_is_rejected_before_engine():
    with pytest.raises(InvalidTeam):
        ScoreEvent("c")


def test_starting_server_falls_back_when_unassigned():
    state = replace(_score_games(_new(), ["a", "b"] * 5 + ["a"]), serving_team=None)

    state, _ = _score_game(state, "b")

    assert state.tiebreak_starting_server == "a"


@pytest.mark.parametrize("policy", ["traditional", "golden_point", "silver_point"])
@pytest.mark.parametrize("sets_to_win", [1, 2])
@pytest.mark.parametrize("tiebreak_at", [6, 7])
def test_random_matches_keep_invariants(policy, sets_to_win, tiebreak_at):
    rng = random.Random(f"{policy}-{sets_to_win}-{tiebreak_at}")
    state = _new(policy, sets_to_win, tiebreak_at)

    for _ in range(2000):
        team = rng.choice(["a", "b"])
        new_state, effects = _point(state, team)
        if state.status == "completed":
            assert effects == []
            break

        kinds = _types(effects)
        assert kinds[0] == "point_scored"
        assert len(new_state.set_scores) >= len(state.set_scores)
        assert (new_state.winner is not None) == (new_state.status == "completed")

        if "set_won" in kinds:
            assert len(new_state.set_scores) == len(state.set_scores) + 1
        elif "game_won" in kinds:
            assert new_state.games.total == state.games.total + 1
            assert new_state.points == TeamPair(0, 0)
        elif isinstance(state.game, Tiebreak):
            assert new_state.tiebreak_points.get(team) == state.tiebreak_points.get(team) + 1
            assert new_state.games == state.games
        else:
            assert new_state.points.get(team) == state.points.get(team) + 1
            assert new_state.points.get(other_team(team)) == state.points.get(other_team(team))
            assert new_state.games == state.games

        state = new_state

    assert state.status == "completed"

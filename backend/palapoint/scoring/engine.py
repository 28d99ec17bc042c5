"""Padel scoring engine.

Tracks points -> games -> sets -> match with golden/silver point deuce
policies and FIP tiebreak serve rotation.  :func:`apply` is pure: it never
mutates its input and returns the new state together with the effects the
point produced.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

from ..time_utils import utcnow
from . import effects as fx
from .effects import Effect, ScoreEvent
from .state import (
    MatchState,
    NormalGame,
    Team,
    TeamPair,
    Tiebreak,
    other_team,
    sets_won,
)

GAME_POINTS_TO_WIN = 4
SET_GAMES_TO_WIN = 6
TIEBREAK_POINTS_TO_WIN = 7
WIN_MARGIN = 2

ScoreResult = tuple[MatchState, list[Effect]]


def apply(
    state: MatchState, event: ScoreEvent, *, now: Optional[datetime] = None
) -> ScoreResult:
    """Apply one point to ``state``.

    Scoring a finished or abandoned match is a no-op: the input state is
    returned unchanged with no effects.
    """

    if state.is_terminal:
        return state, []

    if state.status == "setup":
        state = replace(state, status="in_progress", started_at=now or utcnow())

    effects: list[Effect] = [fx.point_scored(event.team)]
    if isinstance(state.game, Tiebreak):
        return _score_tiebreak_point(state, state.game, event.team, effects, now)
    return _score_game_point(state, state.game, event.team, effects, now)


def _is_deuce(points: TeamPair) -> bool:
    return points.a >= 3 and points.b >= 3 and points.a == points.b


def _won_by_margin(score: int, opponent: int, target: int) -> bool:
    return score >= target and score - opponent >= WIN_MARGIN


def _game_winner(
    state: MatchState, points: TeamPair, was_deuce: bool, deuce_count: int, team: Team
) -> Optional[Team]:
    policy = state.config.deuce_policy
    if was_deuce and policy == "golden_point":
        return team
    # Silver point plays one advantage round; the second deuce is sudden death.
    if was_deuce and policy == "silver_point" and deuce_count >= 2:
        return team

    if _won_by_margin(points.a, points.b, GAME_POINTS_TO_WIN):
        return "a"
    if _won_by_margin(points.b, points.a, GAME_POINTS_TO_WIN):
        return "b"
    return None


def set_winner(games: TeamPair) -> Optional[Team]:
    """Return the team that has taken the set on games, if any.

    The 6-games/lead-of-2 rule is independent of the configured tiebreak
    threshold; a set closed by a tiebreak is decided in the tiebreak path.
    """

    if _won_by_margin(games.a, games.b, SET_GAMES_TO_WIN):
        return "a"
    if _won_by_margin(games.b, games.a, SET_GAMES_TO_WIN):
        return "b"
    return None


def tiebreak_winner(points: TeamPair) -> Optional[Team]:
    if _won_by_margin(points.a, points.b, TIEBREAK_POINTS_TO_WIN):
        return "a"
    if _won_by_margin(points.b, points.a, TIEBREAK_POINTS_TO_WIN):
        return "b"
    return None


def _score_game_point(
    state: MatchState,
    game: NormalGame,
    team: Team,
    effects: list[Effect],
    now: Optional[datetime],
) -> ScoreResult:
    was_deuce = _is_deuce(game.points)
    points = game.points.incremented(team)

    winner = _game_winner(state, points, was_deuce, game.deuce_count, team)
    if winner:
        return _game_won(state, winner, effects, now)

    deuce_count = game.deuce_count
    if _is_deuce(points):
        deuce_count += 1
        effects.append(fx.deuce())
    elif points.a >= 3 and points.b >= 3 and abs(points.a - points.b) == 1:
        effects.append(fx.advantage(points.leader()))

    return replace(state, game=NormalGame(points, deuce_count)), effects


def _game_won(
    state: MatchState, winner: Team, effects: list[Effect], now: Optional[datetime]
) -> ScoreResult:
    effects.append(fx.game_won(winner))
    games = state.games.incremented(winner)
    state = replace(state, games=games, game=NormalGame())

    tiebreak_at = state.config.tiebreak_at
    if games.a == tiebreak_at and games.b == tiebreak_at:
        effects.append(fx.tiebreak_started())
        starting_server = state.serving_team or "a"
        # Service does not rotate into the tiebreak.
        return replace(state, game=Tiebreak(starting_server=starting_server)), effects

    if set_winner(games) == winner:
        return _set_won(state, winner, effects, now)

    return replace(state, serving_team=_rotate(state.serving_team)), effects


def tiebreak_server(starting_server: Team, points_played: int) -> Team:
    """Server of the next tiebreak point after ``points_played`` points.

    The starting server serves the first point alone, then service changes
    every two points: 1-2 opponent, 3-4 starting server, 5-6 opponent, ...
    """

    if points_played == 0:
        return starting_server
    pair = (points_played - 1) // 2
    return other_team(starting_server) if pair % 2 == 0 else starting_server


def _score_tiebreak_point(
    state: MatchState,
    game: Tiebreak,
    team: Team,
    effects: list[Effect],
    now: Optional[datetime],
) -> ScoreResult:
    points = game.points.incremented(team)

    winner = tiebreak_winner(points)
    if winner:
        # The tiebreak counts as one game: a set tied 6-6 is recorded 7-6.
        games = state.games.incremented(winner)
        state = replace(state, games=games, game=NormalGame())
        effects.append(fx.game_won(winner))
        return _set_won(state, winner, effects, now)

    return (
        replace(
            state,
            game=replace(game, points=points),
            serving_team=tiebreak_server(game.starting_server, points.total),
        ),
        effects,
    )


def _set_won(
    state: MatchState, winner: Team, effects: list[Effect], now: Optional[datetime]
) -> ScoreResult:
    effects.append(fx.set_won(winner))
    state = replace(state, set_scores=state.set_scores + (state.games,))

    if sets_won(state).get(winner) >= state.config.sets_to_win:
        effects.append(fx.match_won(winner))
        return (
            replace(
                state,
                status="completed",
                winner=winner,
                completed_at=now or utcnow(),
            ),
            effects,
        )

    next_set = state.current_set + 1
    state = replace(
        state,
        current_set=next_set,
        games=TeamPair(),
        game=NormalGame(),
        serving_team=_rotate(state.serving_team),
    )
    effects.append(fx.set_started(next_set))
    return state, effects


def _rotate(serving_team: Optional[Team]) -> Optional[Team]:
    if serving_team is None:
        return None
    return other_team(serving_team)

"""Detect decisive points (set point, match point, golden/silver point)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

from .engine import set_winner
from .state import NormalGame, MatchState, Team, TEAMS, Tiebreak, other_team, sets_won

SituationKind = Literal["set_point", "match_point", "golden_point", "silver_point"]


@dataclass(frozen=True)
class PointSituation:
    kind: SituationKind
    team: Optional[Team] = None

    def to_dict(self) -> dict[str, Optional[str]]:
        return {"kind": self.kind, "team": self.team}


def _closing_kind(state: MatchState, team: Team) -> SituationKind:
    one_set_away = sets_won(state).get(team) == state.config.sets_to_win - 1
    return "match_point" if one_set_away else "set_point"


def _game_wins_set(state: MatchState, team: Team) -> bool:
    return set_winner(state.games.incremented(team)) == team


def _deciding_deuce(state: MatchState, game: NormalGame) -> Optional[SituationKind]:
    points = game.points
    if not (points.a >= 3 and points.a == points.b):
        return None
    if state.config.deuce_policy == "golden_point":
        return "golden_point"
    if state.config.deuce_policy == "silver_point" and game.deuce_count >= 2:
        return "silver_point"
    return None


def get_point_situation(state: MatchState) -> Optional[PointSituation]:
    """Describe what the next point decides, or ``None`` if nothing special."""

    if state.is_terminal:
        return None

    game = state.game
    if isinstance(game, Tiebreak):
        for team in TEAMS:
            score, opponent = game.points.get(team), game.points.get(other_team(team))
            if score >= 6 and score > opponent:
                return PointSituation(_closing_kind(state, team), team)
        return None

    deciding = _deciding_deuce(state, game)
    if deciding:
        for team in TEAMS:
            if _game_wins_set(state, team):
                return PointSituation(_closing_kind(state, team), team)
        return PointSituation(deciding)

    for team in TEAMS:
        score, opponent = game.points.get(team), game.points.get(other_team(team))
        if score >= 3 and score > opponent and _game_wins_set(state, team):
            return PointSituation(_closing_kind(state, team), team)
    return None

"""Observational effects emitted by the rules engine.

Effects carry no state; callers use them to drive notifications and
animations (set-win overlays, deuce banners and so on).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Optional

from .state import TEAMS, Team

EffectType = Literal[
    "point_scored",
    "game_won",
    "set_won",
    "match_won",
    "tiebreak_started",
    "deuce",
    "advantage",
    "set_started",
]


class InvalidTeam(ValueError):
    """Raised when an event names a team other than ``a`` or ``b``."""

    def __init__(self, team: Any) -> None:
        super().__init__(f"invalid team: {team!r}")
        self.team = team


@dataclass(frozen=True)
class ScoreEvent:
    team: Team
    type: Literal["point"] = "point"

    def __post_init__(self) -> None:
        if self.team not in TEAMS:
            raise InvalidTeam(self.team)
        if self.type != "point":
            raise ValueError(f"unsupported score event type: {self.type!r}")


@dataclass(frozen=True)
class Effect:
    type: EffectType
    team: Optional[Team] = None
    set_number: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.team is not None:
            data["team"] = self.team
        if self.set_number is not None:
            data["set_number"] = self.set_number
        return data


def point_scored(team: Team) -> Effect:
    return Effect("point_scored", team=team)


def game_won(team: Team) -> Effect:
    return Effect("game_won", team=team)


def set_won(team: Team) -> Effect:
    return Effect("set_won", team=team)


def match_won(team: Team) -> Effect:
    return Effect("match_won", team=team)


def tiebreak_started() -> Effect:
    return Effect("tiebreak_started")


def deuce() -> Effect:
    return Effect("deuce")


def advantage(team: Team) -> Effect:
    return Effect("advantage", team=team)


def set_started(set_number: int) -> Effect:
    return Effect("set_started", set_number=set_number)

"""Match state value types.

A :class:`MatchState` is an immutable snapshot of one match on one court.
Every transition builds a new value with :func:`dataclasses.replace`; nothing
in this module performs I/O.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Literal, Mapping, Optional, Sequence, Union

from ..time_utils import coerce_utc

Team = Literal["a", "b"]
DeucePolicy = Literal["traditional", "golden_point", "silver_point"]
MatchStatus = Literal["setup", "in_progress", "completed", "abandoned"]

TEAMS: tuple[Team, ...] = ("a", "b")
DEUCE_POLICIES: tuple[DeucePolicy, ...] = (
    "traditional",
    "golden_point",
    "silver_point",
)
MATCH_STATUSES: tuple[MatchStatus, ...] = (
    "setup",
    "in_progress",
    "completed",
    "abandoned",
)
ACTIVE_STATUSES: tuple[MatchStatus, ...] = ("setup", "in_progress")
TERMINAL_STATUSES: tuple[MatchStatus, ...] = ("completed", "abandoned")

SETS_TO_WIN_OPTIONS = (1, 2)
TIEBREAK_AT_OPTIONS = (6, 7)

DEFAULT_DEUCE_POLICY: DeucePolicy = "golden_point"
DEFAULT_SETS_TO_WIN = 1
DEFAULT_TIEBREAK_AT = 6


def other_team(team: Team) -> Team:
    return "b" if team == "a" else "a"


@dataclass(frozen=True)
class TeamPair:
    """A pair of non-negative counters, one per team."""

    a: int = 0
    b: int = 0

    def __post_init__(self) -> None:
        if self.a < 0 or self.b < 0:
            raise ValueError("team counters cannot be negative")

    def get(self, team: Team) -> int:
        return self.a if team == "a" else self.b

    def incremented(self, team: Team) -> "TeamPair":
        if team == "a":
            return replace(self, a=self.a + 1)
        return replace(self, b=self.b + 1)

    def with_value(self, team: Team, value: int) -> "TeamPair":
        if team == "a":
            return replace(self, a=value)
        return replace(self, b=value)

    @property
    def total(self) -> int:
        return self.a + self.b

    def leader(self) -> Optional[Team]:
        if self.a > self.b:
            return "a"
        if self.b > self.a:
            return "b"
        return None

    def to_dict(self) -> dict[str, int]:
        return {"team_a": self.a, "team_b": self.b}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "TeamPair":
        if not data:
            return cls()
        return cls(int(data.get("team_a") or 0), int(data.get("team_b") or 0))


@dataclass(frozen=True)
class NormalGame:
    """A regular game scored 0/15/30/40 with deuce tracking."""

    points: TeamPair = field(default_factory=TeamPair)
    deuce_count: int = 0

    def __post_init__(self) -> None:
        if self.deuce_count < 0:
            raise ValueError("deuce_count cannot be negative")


@dataclass(frozen=True)
class Tiebreak:
    """A tiebreak game scored in raw points.

    ``starting_server`` is the team that served the first tiebreak point and
    drives the serve rotation for the rest of the tiebreak.
    """

    points: TeamPair = field(default_factory=TeamPair)
    starting_server: Team = "a"


Game = Union[NormalGame, Tiebreak]


@dataclass(frozen=True)
class MatchConfig:
    deuce_policy: DeucePolicy = DEFAULT_DEUCE_POLICY
    sets_to_win: int = DEFAULT_SETS_TO_WIN
    tiebreak_at: int = DEFAULT_TIEBREAK_AT

    def __post_init__(self) -> None:
        if self.deuce_policy not in DEUCE_POLICIES:
            raise ValueError(f"unsupported deuce policy: {self.deuce_policy!r}")
        if self.sets_to_win not in SETS_TO_WIN_OPTIONS:
            raise ValueError(f"sets_to_win must be one of {SETS_TO_WIN_OPTIONS}")
        if self.tiebreak_at not in TIEBREAK_AT_OPTIONS:
            raise ValueError(f"tiebreak_at must be one of {TIEBREAK_AT_OPTIONS}")


@dataclass(frozen=True)
class MatchState:
    id: str
    court_id: str
    config: MatchConfig
    version: int = 1
    status: MatchStatus = "setup"
    current_set: int = 1
    game: Game = field(default_factory=NormalGame)
    games: TeamPair = field(default_factory=TeamPair)
    set_scores: tuple[TeamPair, ...] = ()
    serving_team: Optional[Team] = None
    winner: Optional[Team] = None
    team_a_players: tuple[str, ...] = ()
    team_b_players: tuple[str, ...] = ()
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.status not in MATCH_STATUSES:
            raise ValueError(f"unknown match status: {self.status!r}")
        if (self.winner is not None) != (self.status == "completed"):
            raise ValueError("winner must be set if and only if the match is completed")

    @property
    def is_tiebreak(self) -> bool:
        return isinstance(self.game, Tiebreak)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def points(self) -> TeamPair:
        """Current-game points; always zero while a tiebreak is in progress."""
        if isinstance(self.game, NormalGame):
            return self.game.points
        return TeamPair()

    @property
    def deuce_count(self) -> int:
        if isinstance(self.game, NormalGame):
            return self.game.deuce_count
        return 0

    @property
    def tiebreak_points(self) -> Optional[TeamPair]:
        if isinstance(self.game, Tiebreak):
            return self.game.points
        return None

    @property
    def tiebreak_starting_server(self) -> Optional[Team]:
        if isinstance(self.game, Tiebreak):
            return self.game.starting_server
        return None

    def players(self, team: Team) -> tuple[str, ...]:
        return self.team_a_players if team == "a" else self.team_b_players


def sets_won(state: MatchState) -> TeamPair:
    """Count the completed sets won by each team."""

    a = sum(1 for s in state.set_scores if s.a > s.b)
    b = sum(1 for s in state.set_scores if s.b > s.a)
    return TeamPair(a, b)


def _clean_players(players: Sequence[str | None] | None) -> tuple[str, ...]:
    return tuple(p.strip() for p in (players or ()) if p and p.strip())


def create_match_state(
    match_id: str,
    court_id: str,
    config: MatchConfig | None = None,
    *,
    serving_team: Team | None = None,
    team_a_players: Sequence[str | None] | None = None,
    team_b_players: Sequence[str | None] | None = None,
    rng: random.Random | None = None,
) -> MatchState:
    """Build a fresh ``setup`` state at version 1.

    When ``serving_team`` is omitted the first server is drawn from ``rng``
    (a module-level :class:`random.Random` when not supplied).
    """

    if serving_team is None:
        serving_team = (rng or random.Random()).choice(TEAMS)
    elif serving_team not in TEAMS:
        raise ValueError(f"invalid serving team: {serving_team!r}")

    return MatchState(
        id=match_id,
        court_id=court_id,
        config=config or MatchConfig(),
        serving_team=serving_team,
        team_a_players=_clean_players(team_a_players),
        team_b_players=_clean_players(team_b_players),
    )


def _iso(value: datetime | None) -> str | None:
    value = coerce_utc(value)
    return value.isoformat() if value else None


def _parse_dt(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return coerce_utc(value)
    return coerce_utc(datetime.fromisoformat(str(value)))


def state_to_dict(state: MatchState) -> dict[str, Any]:
    """Serialize ``state`` into the flat snapshot format.

    This is the shape stored in undo-log snapshots and returned to clients.
    Tiebreak fields are ``None`` outside a tiebreak.
    """

    tiebreak = state.tiebreak_points
    return {
        "id": state.id,
        "court_id": state.court_id,
        "version": state.version,
        "game_mode": state.config.deuce_policy,
        "sets_to_win": state.config.sets_to_win,
        "tiebreak_at": state.config.tiebreak_at,
        "status": state.status,
        "current_set": state.current_set,
        "is_tiebreak": state.is_tiebreak,
        "team_a_points": state.points.a,
        "team_b_points": state.points.b,
        "team_a_games": state.games.a,
        "team_b_games": state.games.b,
        "set_scores": [s.to_dict() for s in state.set_scores],
        "tiebreak_scores": tiebreak.to_dict() if tiebreak else None,
        "tiebreak_starting_server": state.tiebreak_starting_server,
        "deuce_count": state.deuce_count,
        "serving_team": state.serving_team,
        "winner": state.winner,
        "team_a_players": list(state.team_a_players),
        "team_b_players": list(state.team_b_players),
        "started_at": _iso(state.started_at),
        "completed_at": _iso(state.completed_at),
    }


def state_from_dict(data: Mapping[str, Any]) -> MatchState:
    """Rebuild a :class:`MatchState` from :func:`state_to_dict` output."""

    config = MatchConfig(
        deuce_policy=data.get("game_mode") or DEFAULT_DEUCE_POLICY,
        sets_to_win=int(data.get("sets_to_win") or DEFAULT_SETS_TO_WIN),
        tiebreak_at=int(data.get("tiebreak_at") or DEFAULT_TIEBREAK_AT),
    )
    serving_team = data.get("serving_team") or None

    game: Game
    if data.get("is_tiebreak"):
        game = Tiebreak(
            points=TeamPair.from_dict(data.get("tiebreak_scores")),
            starting_server=data.get("tiebreak_starting_server") or serving_team or "a",
        )
    else:
        game = NormalGame(
            points=TeamPair(
                int(data.get("team_a_points") or 0),
                int(data.get("team_b_points") or 0),
            ),
            deuce_count=int(data.get("deuce_count") or 0),
        )

    return MatchState(
        id=str(data["id"]),
        court_id=str(data["court_id"]),
        config=config,
        version=int(data.get("version") or 1),
        status=data.get("status") or "setup",
        current_set=int(data.get("current_set") or 1),
        game=game,
        games=TeamPair(
            int(data.get("team_a_games") or 0),
            int(data.get("team_b_games") or 0),
        ),
        set_scores=tuple(TeamPair.from_dict(s) for s in data.get("set_scores") or ()),
        serving_team=serving_team,
        winner=data.get("winner") or None,
        team_a_players=_clean_players(data.get("team_a_players")),
        team_b_players=_clean_players(data.get("team_b_players")),
        started_at=_parse_dt(data.get("started_at")),
        completed_at=_parse_dt(data.get("completed_at")),
    )

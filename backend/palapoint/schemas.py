from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict, field_validator

from .scoring.state import MatchState, state_to_dict

MAX_PLAYERS_PER_TEAM = 2

ScoreSource = Literal["button_a", "button_b", "control_panel"]


def _normalize_team(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


class MatchCreate(BaseModel):
    """Configuration snapshot for a new match on a court."""

    game_mode: Literal["traditional", "golden_point", "silver_point"] = "golden_point"
    sets_to_win: Literal[1, 2] = 1
    tiebreak_at: Literal[6, 7] = 6
    serving_team: Optional[Literal["a", "b"]] = None
    team_a_players: List[str] = Field(default_factory=list)
    team_b_players: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @field_validator("serving_team", mode="before")
    @classmethod
    def _normalize_serving_team(cls, value: Any) -> Any:
        value = _normalize_team(value)
        return value or None

    @field_validator("team_a_players", "team_b_players", mode="before")
    @classmethod
    def _normalize_players(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise TypeError("players must be a list of names")
        names = []
        for raw in value:
            if raw is None:
                continue
            if not isinstance(raw, str):
                raise TypeError("player names must be strings")
            trimmed = raw.strip()
            if trimmed:
                names.append(trimmed)
        if len(names) > MAX_PLAYERS_PER_TEAM:
            raise ValueError(
                f"a team has at most {MAX_PLAYERS_PER_TEAM} players"
            )
        return names


class ScoreIn(BaseModel):
    court_id: str = Field(..., min_length=1, max_length=100)
    # Checked by the engine's event type so unknown teams surface as invalid_team.
    team: str
    source: ScoreSource
    event_id: Optional[str] = Field(default=None, max_length=200)

    @field_validator("team", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> Any:
        return _normalize_team(value)

    @field_validator("court_id", mode="before")
    @classmethod
    def _strip_court(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("event_id", mode="before")
    @classmethod
    def _blank_event_id(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


class TeamScoreOut(BaseModel):
    team_a: int
    team_b: int


class MatchStateOut(BaseModel):
    """Full live match record as stored and restored by undo."""

    id: str
    court_id: str
    version: int
    game_mode: str
    sets_to_win: int
    tiebreak_at: int
    status: str
    current_set: int
    is_tiebreak: bool
    team_a_points: int
    team_b_points: int
    team_a_games: int
    team_b_games: int
    set_scores: List[TeamScoreOut] = Field(default_factory=list)
    tiebreak_scores: Optional[TeamScoreOut] = None
    tiebreak_starting_server: Optional[str] = None
    deuce_count: int
    serving_team: Optional[str] = None
    winner: Optional[str] = None
    team_a_players: List[str] = Field(default_factory=list)
    team_b_players: List[str] = Field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_state(cls, state: MatchState) -> "MatchStateOut":
        return cls.model_validate(state_to_dict(state))


class ScoreOut(BaseModel):
    success: bool = True
    match_id: str
    new_state: MatchStateOut
    effects: List[Dict[str, Any]] = Field(default_factory=list)
    idempotent: bool = False
    terminal: bool = False
    message: Optional[str] = None


class MatchActionOut(BaseModel):
    success: bool = True
    action: Literal["create", "status", "end", "undo"]
    match: Optional[MatchStateOut] = None


class PointSituationOut(BaseModel):
    kind: str
    team: Optional[str] = None


class DisplayOut(BaseModel):
    match_id: str
    version: int
    points: Dict[str, str]
    games: Dict[str, int]
    sets_won: Dict[str, int]
    serving_team: Optional[str] = None
    is_tiebreak: bool
    is_deuce: bool
    advantage_team: Optional[str] = None
    status: str
    winner: Optional[str] = None
    team_names: Dict[str, str]
    set_scores: List[TeamScoreOut] = Field(default_factory=list)
    situation: Optional[PointSituationOut] = None
    duration: str

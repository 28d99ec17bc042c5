"""Renderer-friendly projection of a match state."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..time_utils import coerce_utc, utcnow
from .state import MatchState, Team, sets_won

POINT_LABELS = ("0", "15", "30", "40")
TEAM_FALLBACK_NAMES = {"a": "Team A", "b": "Team B"}


def build_team_name(players: Sequence[str | None], fallback: str) -> str:
    names = [p for p in players if p]
    if not names:
        return fallback
    return " / ".join(names)


def _point_labels(state: MatchState) -> tuple[dict[str, str], bool, Optional[Team]]:
    tiebreak = state.tiebreak_points
    if tiebreak is not None:
        return {"a": str(tiebreak.a), "b": str(tiebreak.b)}, False, None

    pa, pb = state.points.a, state.points.b
    if pa >= 3 and pb >= 3:
        if pa == pb:
            return {"a": "40", "b": "40"}, True, None
        leader: Team = "a" if pa > pb else "b"
        labels = {"a": "40", "b": "40"}
        labels[leader] = "Ad"
        return labels, False, leader

    return {"a": POINT_LABELS[min(pa, 3)], "b": POINT_LABELS[min(pb, 3)]}, False, None


def format_display(state: MatchState) -> dict[str, Any]:
    """Project ``state`` into the scoreboard model. Never mutates ``state``."""

    points, is_deuce, advantage_team = _point_labels(state)
    won = sets_won(state)
    return {
        "points": points,
        "games": {"a": state.games.a, "b": state.games.b},
        "sets_won": {"a": won.a, "b": won.b},
        "serving_team": state.serving_team,
        "is_tiebreak": state.is_tiebreak,
        "is_deuce": is_deuce,
        "advantage_team": advantage_team,
        "status": state.status,
        "winner": state.winner,
        "team_names": {
            team: build_team_name(state.players(team), fallback)
            for team, fallback in TEAM_FALLBACK_NAMES.items()
        },
        "set_scores": [s.to_dict() for s in state.set_scores],
    }


def score_parts(state: MatchState, team: Team) -> list[int | str]:
    """Horizontal spectator row for ``team``: completed sets, games, points."""

    parts: list[int | str] = [s.get(team) for s in state.set_scores]
    parts.append(state.games.get(team))
    points, _, _ = _point_labels(state)
    parts.append(points[team])
    return parts


def format_duration(
    started_at: datetime | None,
    ended_at: datetime | None = None,
    now: datetime | None = None,
) -> str:
    """Elapsed match time as ``M:SS``; ``0:00`` before the first point."""

    if started_at is None:
        return "0:00"
    start = coerce_utc(started_at)
    end = coerce_utc(ended_at) or coerce_utc(now) or utcnow()
    elapsed = max(0, int((end - start).total_seconds()))
    minutes, seconds = divmod(elapsed, 60)
    return f"{minutes}:{seconds:02d}"

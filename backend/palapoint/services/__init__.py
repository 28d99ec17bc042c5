"""Persistence-facing match services (async, SQLAlchemy sessions)."""

from .concurrency import ScoreOutcome, apply_point, retry_on_conflict, score_point
from .live_matches import (
    create_match,
    end_match,
    find_current_match,
    get_current_match,
    state_from_row,
)
from .undo_log import undo_for_court, undo_last

__all__ = [
    "ScoreOutcome",
    "apply_point",
    "retry_on_conflict",
    "score_point",
    "create_match",
    "end_match",
    "find_current_match",
    "get_current_match",
    "state_from_row",
    "undo_for_court",
    "undo_last",
]

from sqlalchemy import (
    Column,
    String,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Boolean,
    Index,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import text

from .db import Base
from .time_utils import utcnow


class LiveMatch(Base):
    """One match on one court.

    Columns mirror :class:`palapoint.scoring.state.MatchState`; ``version`` is
    the optimistic-concurrency guard for every write.
    """

    __tablename__ = "live_match"
    id = Column(String, primary_key=True)
    court_id = Column(String, nullable=False)
    version = Column(Integer, nullable=False, default=1)

    game_mode = Column(String, nullable=False)  # traditional | golden_point | silver_point
    sets_to_win = Column(Integer, nullable=False, default=1)
    tiebreak_at = Column(Integer, nullable=False, default=6)

    status = Column(String, nullable=False, default="setup")
    current_set = Column(Integer, nullable=False, default=1)
    is_tiebreak = Column(Boolean, nullable=False, default=False)
    team_a_points = Column(Integer, nullable=False, default=0)
    team_b_points = Column(Integer, nullable=False, default=0)
    team_a_games = Column(Integer, nullable=False, default=0)
    team_b_games = Column(Integer, nullable=False, default=0)
    set_scores = Column(
        JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list
    )
    tiebreak_scores = Column(JSON, nullable=True)
    tiebreak_starting_server = Column(String(1), nullable=True)
    deuce_count = Column(Integer, nullable=False, default=0)
    serving_team = Column(String(1), nullable=True)
    winner = Column(String(1), nullable=True)

    team_a_players = Column(JSON, nullable=False, default=list)
    team_b_players = Column(JSON, nullable=False, default=list)

    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_live_match_court_id_created_at", "court_id", "created_at"),
        # At most one setup/in_progress match per court.
        Index(
            "uq_live_match_active_court",
            "court_id",
            unique=True,
            postgresql_where=text("status IN ('setup', 'in_progress')"),
            sqlite_where=text("status IN ('setup', 'in_progress')"),
        ),
    )


class UndoEntry(Base):
    """Undo log entry: the full match state captured before one point."""

    __tablename__ = "score_event"
    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(
        String, ForeignKey("live_match.id", ondelete="CASCADE"), nullable=False
    )
    event_type = Column(String, nullable=False)  # point_a | point_b
    source = Column(String, nullable=False)
    event_id = Column(String, nullable=True)
    state_before = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("match_id", "event_id", name="uq_score_event_match_id_event_id"),
        Index("ix_score_event_match_id_created_at", "match_id", "created_at"),
    )

"""live match and undo log tables

Revision ID: 0001_live_match_and_undo_log
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_live_match_and_undo_log"
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_STATUS_CLAUSE = "status IN ('setup', 'in_progress')"


def _json():
    return sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade():
    op.create_table(
        "live_match",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("court_id", sa.String(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("game_mode", sa.String(), nullable=False),
        sa.Column("sets_to_win", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("tiebreak_at", sa.Integer(), nullable=False, server_default="6"),
        sa.Column("status", sa.String(), nullable=False, server_default="setup"),
        sa.Column("current_set", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_tiebreak", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("team_a_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("team_b_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("team_a_games", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("team_b_games", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("set_scores", _json(), nullable=False),
        sa.Column("tiebreak_scores", sa.JSON(), nullable=True),
        sa.Column("tiebreak_starting_server", sa.String(length=1), nullable=True),
        sa.Column("deuce_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("serving_team", sa.String(length=1), nullable=True),
        sa.Column("winner", sa.String(length=1), nullable=True),
        sa.Column("team_a_players", sa.JSON(), nullable=False),
        sa.Column("team_b_players", sa.JSON(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_live_match_court_id_created_at",
        "live_match",
        ["court_id", "created_at"],
    )
    op.create_index(
        "uq_live_match_active_court",
        "live_match",
        ["court_id"],
        unique=True,
        postgresql_where=sa.text(ACTIVE_STATUS_CLAUSE),
        sqlite_where=sa.text(ACTIVE_STATUS_CLAUSE),
    )

    op.create_table(
        "score_event",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "match_id",
            sa.String(),
            sa.ForeignKey("live_match.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("event_id", sa.String(), nullable=True),
        sa.Column("state_before", _json(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "match_id", "event_id", name="uq_score_event_match_id_event_id"
        ),
    )
    op.create_index(
        "ix_score_event_match_id_created_at",
        "score_event",
        ["match_id", "created_at"],
    )


def downgrade():
    op.drop_index("ix_score_event_match_id_created_at", table_name="score_event")
    op.drop_table("score_event")
    op.drop_index("uq_live_match_active_court", table_name="live_match")
    op.drop_index("ix_live_match_court_id_created_at", table_name="live_match")
    op.drop_table("live_match")

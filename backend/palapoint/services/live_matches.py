"""Live match rows: mapping to :class:`MatchState`, lifecycle, guarded writes."""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import ActiveMatchExists, MatchNotFound, NoActiveMatch, VersionConflict
from ..models import LiveMatch
from ..scoring.state import (
    ACTIVE_STATUSES,
    MatchConfig,
    MatchState,
    Team,
    create_match_state,
    state_from_dict,
    state_to_dict,
)
from ..time_utils import utcnow

logger = logging.getLogger(__name__)

_IMMUTABLE_COLUMNS = {"id", "court_id", "created_at"}


def row_values(state: MatchState) -> dict[str, Any]:
    """Column values for ``state``; timestamps stay ``datetime`` objects."""

    values = state_to_dict(state)
    values["started_at"] = state.started_at
    values["completed_at"] = state.completed_at
    return values


def state_from_row(row: LiveMatch) -> MatchState:
    data = {column.name: getattr(row, column.name) for column in LiveMatch.__table__.columns}
    return state_from_dict(data)


async def get_match(session: AsyncSession, match_id: str) -> LiveMatch:
    row = await session.get(LiveMatch, match_id, populate_existing=True)
    if row is None:
        raise MatchNotFound(match_id)
    return row


async def find_current_match(
    session: AsyncSession, court_id: str
) -> Optional[LiveMatch]:
    """Most recently created match on the court, whatever its status."""

    stmt = (
        select(LiveMatch)
        .where(LiveMatch.court_id == court_id)
        .order_by(LiveMatch.created_at.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def get_current_match(session: AsyncSession, court_id: str) -> LiveMatch:
    row = await find_current_match(session, court_id)
    if row is None:
        raise NoActiveMatch(court_id)
    return row


async def find_active_match(
    session: AsyncSession, court_id: str
) -> Optional[LiveMatch]:
    stmt = (
        select(LiveMatch)
        .where(
            LiveMatch.court_id == court_id,
            LiveMatch.status.in_(ACTIVE_STATUSES),
        )
        .order_by(LiveMatch.created_at.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def compare_and_swap(
    session: AsyncSession, expected_version: int, new_state: MatchState
) -> None:
    """Write ``new_state`` only if the row is still at ``expected_version``.

    Raises :class:`VersionConflict` when another writer got there first. The
    caller owns the transaction.
    """

    values = {
        key: value
        for key, value in row_values(new_state).items()
        if key not in _IMMUTABLE_COLUMNS
    }
    result = await session.execute(
        update(LiveMatch)
        .where(
            LiveMatch.id == new_state.id,
            LiveMatch.version == expected_version,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise VersionConflict(new_state.id, expected_version)


async def create_match(
    session: AsyncSession,
    court_id: str,
    config: MatchConfig | None = None,
    *,
    serving_team: Team | None = None,
    team_a_players: Sequence[str | None] | None = None,
    team_b_players: Sequence[str | None] | None = None,
    rng: random.Random | None = None,
) -> MatchState:
    """Insert a fresh ``setup`` match for ``court_id``.

    Only one ``setup``/``in_progress`` match may exist per court; a second
    create raises :class:`ActiveMatchExists`.
    """

    existing = await find_active_match(session, court_id)
    if existing is not None:
        raise ActiveMatchExists(court_id, existing.id)

    state = create_match_state(
        uuid.uuid4().hex,
        court_id,
        config,
        serving_team=serving_team,
        team_a_players=team_a_players,
        team_b_players=team_b_players,
        rng=rng,
    )
    session.add(LiveMatch(**row_values(state)))
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        winner = await find_active_match(session, court_id)
        if winner is None:
            raise
        raise ActiveMatchExists(court_id, winner.id)

    logger.info(
        "Created match %s on court %s (%s, sets_to_win=%d, tiebreak_at=%d)",
        state.id,
        court_id,
        state.config.deuce_policy,
        state.config.sets_to_win,
        state.config.tiebreak_at,
    )
    return state


async def end_match(
    session: AsyncSession, court_id: str, *, now: datetime | None = None
) -> MatchState:
    """Abandon the court's active match. No winner is recorded."""

    row = await find_active_match(session, court_id)
    if row is None:
        raise NoActiveMatch(court_id)

    state = state_from_row(row)
    ended = replace(
        state,
        status="abandoned",
        completed_at=now or utcnow(),
        version=state.version + 1,
    )
    await compare_and_swap(session, state.version, ended)
    await session.commit()
    logger.info("Match %s on court %s abandoned at version %d", state.id, court_id, ended.version)
    return ended

"""Append-only per-match history of pre-point snapshots.

Each accepted point records the full match state as it was *before* the
point. Undo restores the newest snapshot and deletes its entry, so repeated
calls step back one point at a time. There is no redo.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import MatchAlreadyTerminal, NothingToUndo
from ..models import UndoEntry
from ..scoring.state import MatchState, Team, state_from_dict, state_to_dict
from .live_matches import compare_and_swap, get_current_match, get_match, state_from_row

logger = logging.getLogger(__name__)


def record(
    session: AsyncSession,
    state_before: MatchState,
    *,
    team: Team,
    source: str,
    event_id: Optional[str] = None,
) -> UndoEntry:
    """Stage an entry in the caller's transaction."""

    entry = UndoEntry(
        match_id=state_before.id,
        event_type=f"point_{team}",
        source=source,
        event_id=event_id,
        state_before=state_to_dict(state_before),
    )
    session.add(entry)
    return entry


async def has_event(session: AsyncSession, match_id: str, event_id: str) -> bool:
    stmt = select(UndoEntry.id).where(
        UndoEntry.match_id == match_id,
        UndoEntry.event_id == event_id,
    )
    return (await session.execute(stmt)).first() is not None


async def count_entries(session: AsyncSession, match_id: str) -> int:
    stmt = select(func.count()).select_from(UndoEntry).where(UndoEntry.match_id == match_id)
    return (await session.execute(stmt)).scalar_one()


async def latest_entry(session: AsyncSession, match_id: str) -> Optional[UndoEntry]:
    stmt = (
        select(UndoEntry)
        .where(UndoEntry.match_id == match_id)
        .order_by(UndoEntry.created_at.desc(), UndoEntry.id.desc())
        .limit(1)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def undo_last(session: AsyncSession, match_id: str) -> MatchState:
    """Restore the snapshot taken before the most recent point.

    The live row is overwritten with the snapshot's full contents, including
    its version, under the version guard of the row as read here.
    """

    row = await get_match(session, match_id)
    if row.status == "abandoned":
        raise MatchAlreadyTerminal(match_id, row.status)

    entry = await latest_entry(session, match_id)
    if entry is None:
        raise NothingToUndo(match_id)

    current = state_from_row(row)
    restored = state_from_dict(entry.state_before)
    await compare_and_swap(session, current.version, restored)
    await session.delete(entry)
    await session.commit()

    logger.info(
        "Undid %s on match %s: version %d -> %d",
        entry.event_type,
        match_id,
        current.version,
        restored.version,
    )
    return restored


async def undo_for_court(session: AsyncSession, court_id: str) -> MatchState:
    row = await get_current_match(session, court_id)
    return await undo_last(session, row.id)

"""Multi-writer safe scoring around the pure rules engine.

Every point is read -> apply -> compare-and-swap on ``version``. The first
writer holding the current version wins; everyone else gets a
:class:`VersionConflict` and must re-read and re-apply. Idempotency keys are
checked before the engine runs so a client resending a point after a dropped
acknowledgement never double-counts it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from .. import config
from ..exceptions import VersionConflict
from ..scoring import engine
from ..scoring.effects import Effect, ScoreEvent
from ..scoring.state import MatchState
from . import undo_log
from .live_matches import compare_and_swap, get_current_match, state_from_row

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ScoreOutcome:
    match_id: str
    state: MatchState
    effects: list[Effect] = field(default_factory=list)
    idempotent: bool = False
    # Soft "match already finished" signal: nothing was written.
    terminal: bool = False


async def apply_point(
    session: AsyncSession,
    court_id: str,
    team: str,
    source: str,
    event_id: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> ScoreOutcome:
    """Score one point for ``team`` on the court's current match, once.

    Raises :class:`VersionConflict` if the match changed between the read and
    the write; see :func:`score_point` for the retrying variant.
    """

    event = ScoreEvent(team=team)
    row = await get_current_match(session, court_id)
    state = state_from_row(row)

    if event_id and await undo_log.has_event(session, state.id, event_id):
        logger.info(
            "Duplicate point %s for match %s ignored at version %d",
            event_id,
            state.id,
            state.version,
        )
        return ScoreOutcome(state.id, state, idempotent=True)

    new_state, effects = engine.apply(state, event, now=now)
    if not effects:
        return ScoreOutcome(state.id, state, terminal=True)

    new_state = replace(new_state, version=state.version + 1)
    await compare_and_swap(session, state.version, new_state)
    undo_log.record(session, state, team=event.team, source=source, event_id=event_id)
    await session.commit()

    logger.debug(
        "Point %s on match %s from %s: version %d -> %d",
        event.team,
        state.id,
        source,
        state.version,
        new_state.version,
    )
    return ScoreOutcome(state.id, new_state, effects)


async def retry_on_conflict(
    session: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: Optional[int] = None,
) -> T:
    """Run ``operation`` until it stops losing version races.

    The session is rolled back between attempts so the next read sees the
    winning writer's row. The last :class:`VersionConflict` propagates once
    ``attempts`` (default ``SCORE_MAX_RETRIES``) are used up.
    """

    attempts = attempts or config.SCORE_MAX_RETRIES
    attempt = 1
    while True:
        try:
            return await operation()
        except VersionConflict as exc:
            await session.rollback()
            if attempt >= attempts:
                logger.warning(
                    "Match %s still conflicting after %d attempts; giving up",
                    exc.match_id,
                    attempts,
                )
                raise
            logger.info(
                "Version conflict on match %s at version %d (attempt %d/%d); retrying",
                exc.match_id,
                exc.expected_version,
                attempt,
                attempts,
            )
            attempt += 1


async def score_point(
    session: AsyncSession,
    court_id: str,
    team: str,
    source: str,
    event_id: Optional[str] = None,
    *,
    max_retries: Optional[int] = None,
    now: Optional[datetime] = None,
) -> ScoreOutcome:
    return await retry_on_conflict(
        session,
        lambda: apply_point(session, court_id, team, source, event_id, now=now),
        attempts=max_retries,
    )

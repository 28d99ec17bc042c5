# backend/palapoint/routers/courts.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..schemas import (
    DisplayOut,
    MatchActionOut,
    MatchCreate,
    MatchStateOut,
    PointSituationOut,
)
from ..scoring.display import format_display, format_duration
from ..scoring.situation import get_point_situation
from ..scoring.state import MatchConfig
from ..services import (
    create_match,
    end_match,
    find_current_match,
    get_current_match,
    retry_on_conflict,
    state_from_row,
    undo_for_court,
)

# Resource-only prefix; versioning is added in main.py
router = APIRouter(prefix="/courts/{court_id}", tags=["courts"])


# POST /api/v0/courts/{court_id}/match
@router.post("/match", response_model=MatchActionOut)
async def create_match_route(
    court_id: str,
    body: MatchCreate,
    session: AsyncSession = Depends(get_session),
) -> MatchActionOut:
    state = await create_match(
        session,
        court_id,
        MatchConfig(
            deuce_policy=body.game_mode,
            sets_to_win=body.sets_to_win,
            tiebreak_at=body.tiebreak_at,
        ),
        serving_team=body.serving_team,
        team_a_players=body.team_a_players,
        team_b_players=body.team_b_players,
    )
    return MatchActionOut(action="create", match=MatchStateOut.from_state(state))


# GET /api/v0/courts/{court_id}/match
@router.get("/match", response_model=MatchActionOut)
async def match_status(
    court_id: str, session: AsyncSession = Depends(get_session)
) -> MatchActionOut:
    row = await find_current_match(session, court_id)
    match = MatchStateOut.from_state(state_from_row(row)) if row else None
    return MatchActionOut(action="status", match=match)


# POST /api/v0/courts/{court_id}/match/end
@router.post("/match/end", response_model=MatchActionOut)
async def end_match_route(
    court_id: str, session: AsyncSession = Depends(get_session)
) -> MatchActionOut:
    state = await retry_on_conflict(session, lambda: end_match(session, court_id))
    return MatchActionOut(action="end", match=MatchStateOut.from_state(state))


# POST /api/v0/courts/{court_id}/undo
@router.post("/undo", response_model=MatchActionOut)
async def undo_route(
    court_id: str, session: AsyncSession = Depends(get_session)
) -> MatchActionOut:
    state = await retry_on_conflict(session, lambda: undo_for_court(session, court_id))
    return MatchActionOut(action="undo", match=MatchStateOut.from_state(state))


# GET /api/v0/courts/{court_id}/display
@router.get("/display", response_model=DisplayOut)
async def display_route(
    court_id: str, session: AsyncSession = Depends(get_session)
) -> DisplayOut:
    state = state_from_row(await get_current_match(session, court_id))
    situation = get_point_situation(state)
    return DisplayOut(
        match_id=state.id,
        version=state.version,
        situation=PointSituationOut(**situation.to_dict()) if situation else None,
        duration=format_duration(state.started_at, state.completed_at),
        **format_display(state),
    )

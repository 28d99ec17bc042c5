# backend/palapoint/routers/score.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..rate_limit import limiter, score_rate_limit
from ..schemas import MatchStateOut, ScoreIn, ScoreOut
from ..services import score_point

# Resource-only prefix; versioning is added in main.py
router = APIRouter(tags=["score"])

TERMINAL_MESSAGE = "match already finished; point not recorded"


# POST /api/v0/score
@router.post("/score", response_model=ScoreOut)
@limiter.limit(score_rate_limit)
async def score_route(
    request: Request,
    body: ScoreIn,
    session: AsyncSession = Depends(get_session),
) -> ScoreOut:
    outcome = await score_point(
        session,
        body.court_id,
        body.team,
        body.source,
        body.event_id,
    )
    return ScoreOut(
        match_id=outcome.match_id,
        new_state=MatchStateOut.from_state(outcome.state),
        effects=[effect.to_dict() for effect in outcome.effects],
        idempotent=outcome.idempotent,
        terminal=outcome.terminal,
        message=TERMINAL_MESSAGE if outcome.terminal else None,
    )

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from .. import config
from ..db import get_session
from ..exceptions import ProblemDetail, http_problem
from ..models import Match
from ..schemas import (
    MatchCreate,
    MatchListOut,
    MatchOut,
    RatingPreviewOut,
    TeamMemberOut,
)
from ..services import (
    ValidationError,
    apply_match,
    get_match,
    list_matches,
    preview_match,
    reverse_match,
)
from ..services.rating import RatingBreakdown

router = APIRouter(
    prefix="/matches",
    tags=["matches"],
    responses={
        404: {"model": ProblemDetail},
        409: {"model": ProblemDetail},
        422: {"model": ProblemDetail},
    },
)


def _match_validation_problem(exc: ValidationError):
    return http_problem(
        status_code=422, detail=exc.detail, code="match_validation_error"
    )


def _members(snapshot) -> list[TeamMemberOut]:
    return [TeamMemberOut(**member) for member in snapshot or []]


def match_out(m: Match) -> MatchOut:
    return MatchOut(
        id=m.id,
        groupId=m.group_id,
        sport=m.sport,
        season=m.season_number,
        homeScore=m.home_score,
        awayScore=m.away_score,
        homeTeam=_members(m.home_team),
        awayTeam=_members(m.away_team),
        playedAt=m.played_at,
        details=m.details,
    )


def preview_out(breakdown: RatingBreakdown) -> RatingPreviewOut:
    return RatingPreviewOut(
        sport=breakdown.sport,
        adjustedHomeScore=breakdown.adjusted_home_score,
        adjustedAwayScore=breakdown.adjusted_away_score,
        referenceWinner="home" if breakdown.home_is_reference_winner else "away",
        RD=breakdown.rd,
        ES=breakdown.es,
        goalDiff=breakdown.goal_diff,
        goalRatio=breakdown.goal_ratio,
        RGD=breakdown.rgd,
        GV=breakdown.gv,
        TV=breakdown.tv,
        changes=dict(breakdown.deltas),
    )


# POST /api/v0/matches
@router.post("", response_model=MatchOut, status_code=201)
async def create_match(
    body: MatchCreate,
    session: AsyncSession = Depends(get_session),
):
    try:
        m = await apply_match(
            session,
            body.groupId,
            body.sport,
            body.homeTeam,
            body.awayTeam,
            body.homeScore,
            body.awayScore,
            played_at=body.playedAt,
        )
    except ValidationError as exc:
        raise _match_validation_problem(exc) from exc
    return match_out(m)


# POST /api/v0/matches/preview
@router.post("/preview", response_model=RatingPreviewOut)
async def preview_match_result(
    body: MatchCreate,
    session: AsyncSession = Depends(get_session),
):
    try:
        breakdown = await preview_match(
            session,
            body.groupId,
            body.sport,
            body.homeTeam,
            body.awayTeam,
            body.homeScore,
            body.awayScore,
        )
    except ValidationError as exc:
        raise _match_validation_problem(exc) from exc
    return preview_out(breakdown)


# GET /api/v0/matches?groupId=...&sport=...&season=...
@router.get("", response_model=MatchListOut)
async def list_group_matches(
    group_id: str = Query(..., alias="groupId", min_length=1),
    sport: str = config.DEFAULT_SPORT,
    season: Optional[int] = Query(None, ge=1),
    limit: int = Query(50, ge=1, le=200),
    session: AsyncSession = Depends(get_session),
):
    try:
        rows = await list_matches(session, group_id, sport, season, limit=limit)
    except ValidationError as exc:
        raise _match_validation_problem(exc) from exc
    if season is None and rows:
        season = rows[0].season_number
    return MatchListOut(
        matches=[match_out(m) for m in rows],
        season=season,
        sport=sport.strip().lower(),
    )


# GET /api/v0/matches/{mid}
@router.get("/{mid}", response_model=MatchOut)
async def read_match(mid: str, session: AsyncSession = Depends(get_session)):
    return match_out(await get_match(session, mid))


# DELETE /api/v0/matches/{mid}
@router.delete("/{mid}", status_code=204)
async def delete_match(mid: str, session: AsyncSession = Depends(get_session)):
    await reverse_match(session, mid)
    return Response(status_code=204)

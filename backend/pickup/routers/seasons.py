from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from .. import config
from ..db import get_session
from ..exceptions import ProblemDetail, SeasonNotFound, http_problem
from ..models import Season
from ..schemas import SeasonCreate, SeasonOut, SeasonStartOut, SeasonStatsOut
from ..services import (
    ValidationError,
    get_active_season,
    get_season,
    list_seasons,
    season_summary,
    start_new_season,
)
from ..services.validation import validate_sport

router = APIRouter(
    prefix="/seasons",
    tags=["seasons"],
    responses={404: {"model": ProblemDetail}, 422: {"model": ProblemDetail}},
)


def season_out(s: Season) -> SeasonOut:
    return SeasonOut(
        id=s.id,
        groupId=s.group_id,
        sport=s.sport,
        number=s.number,
        isActive=s.is_active,
        startDate=s.start_date,
        endDate=s.end_date,
        totalMatches=s.total_matches,
        totalPlayers=s.total_players,
    )


def _sport_or_problem(sport: str) -> str:
    try:
        return validate_sport(sport)
    except ValidationError as exc:
        raise http_problem(
            status_code=422, detail=exc.detail, code="season_validation_error"
        ) from exc


async def _summary_out(session: AsyncSession, season: Season) -> SeasonStatsOut:
    summary = await season_summary(session, season)
    return SeasonStatsOut(
        season=season_out(summary["season"]),
        topPlayers=summary["topPlayers"],
    )


# POST /api/v0/seasons
@router.post("", response_model=SeasonStartOut, status_code=201)
async def start_season(
    body: SeasonCreate,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    sport = _sport_or_problem(body.sport)
    rollover = await start_new_season(session, body.groupId, sport)
    if not rollover.created:
        response.status_code = 200
    return SeasonStartOut(
        season=season_out(rollover.season),
        created=rollover.created,
        playersCarriedOver=rollover.players_carried_over,
        closedSeason=rollover.closed_season.number if rollover.closed_season else None,
    )


# GET /api/v0/seasons?groupId=...&sport=...
@router.get("", response_model=list[SeasonOut])
async def list_group_seasons(
    group_id: str = Query(..., alias="groupId", min_length=1),
    sport: str = config.DEFAULT_SPORT,
    session: AsyncSession = Depends(get_session),
):
    sport = _sport_or_problem(sport)
    return [season_out(s) for s in await list_seasons(session, group_id, sport)]


@router.get("/current", response_model=SeasonStatsOut)
async def read_current_season(
    group_id: str = Query(..., alias="groupId", min_length=1),
    sport: str = config.DEFAULT_SPORT,
    session: AsyncSession = Depends(get_session),
):
    sport = _sport_or_problem(sport)
    season = await get_active_season(session, group_id, sport)
    if season is None:
        raise SeasonNotFound(sport)
    return await _summary_out(session, season)


@router.get("/{number}", response_model=SeasonStatsOut)
async def read_season(
    number: int,
    group_id: str = Query(..., alias="groupId", min_length=1),
    sport: str = config.DEFAULT_SPORT,
    session: AsyncSession = Depends(get_session),
):
    sport = _sport_or_problem(sport)
    season = await get_season(session, group_id, sport, number)
    return await _summary_out(session, season)

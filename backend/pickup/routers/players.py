from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from .. import config
from ..db import get_session
from ..exceptions import ProblemDetail, http_problem
from ..models import Player
from ..schemas import (
    PlayerCreate,
    PlayerListOut,
    PlayerOut,
    PlayerRename,
    PlayerStatsOut,
)
from ..services import (
    ValidationError,
    add_player,
    get_player,
    list_players,
    player_stats,
    remove_player,
    rename_player,
)

router = APIRouter(
    prefix="/players",
    tags=["players"],
    responses={
        404: {"model": ProblemDetail},
        409: {"model": ProblemDetail},
        422: {"model": ProblemDetail},
    },
)


def _player_validation_problem(exc: ValidationError):
    return http_problem(
        status_code=422, detail=exc.detail, code="player_validation_error"
    )


def player_out(p: Player) -> PlayerOut:
    return PlayerOut(
        id=p.id,
        groupId=p.group_id,
        sport=p.sport,
        name=p.name,
        rating=p.rating,
        seasonStartRating=p.season_start_rating,
        matchesPlayed=p.matches_played,
        wins=p.wins,
        draws=p.draws,
        losses=p.losses,
        goalsScored=p.goals_scored,
        goalsConceded=p.goals_conceded,
        lastRatingChange=p.last_rating_change,
    )


# POST /api/v0/players
@router.post("", response_model=PlayerOut, status_code=201)
async def create_player(
    body: PlayerCreate,
    session: AsyncSession = Depends(get_session),
):
    try:
        p = await add_player(session, body.groupId, body.sport, body.name, body.rating)
    except ValidationError as exc:
        raise _player_validation_problem(exc) from exc
    return player_out(p)


# GET /api/v0/players?groupId=...&sport=...
@router.get("", response_model=PlayerListOut)
async def list_group_players(
    group_id: str = Query(..., alias="groupId", min_length=1),
    sport: str = config.DEFAULT_SPORT,
    session: AsyncSession = Depends(get_session),
):
    try:
        rows = await list_players(session, group_id, sport)
    except ValidationError as exc:
        raise _player_validation_problem(exc) from exc
    return PlayerListOut(
        players=[player_out(p) for p in rows],
        total=len(rows),
        sport=sport.strip().lower(),
    )


@router.get("/{player_id}", response_model=PlayerOut)
async def read_player(player_id: str, session: AsyncSession = Depends(get_session)):
    return player_out(await get_player(session, player_id))


@router.get("/{player_id}/stats", response_model=PlayerStatsOut)
async def read_player_stats(player_id: str, session: AsyncSession = Depends(get_session)):
    p = await get_player(session, player_id)
    return PlayerStatsOut(**player_stats(p))


@router.patch("/{player_id}", response_model=PlayerOut)
async def update_player_name(
    player_id: str,
    body: PlayerRename,
    session: AsyncSession = Depends(get_session),
):
    try:
        p = await rename_player(session, player_id, body.name)
    except ValidationError as exc:
        raise _player_validation_problem(exc) from exc
    return player_out(p)


@router.delete("/{player_id}", status_code=204)
async def delete_player(player_id: str, session: AsyncSession = Depends(get_session)):
    await remove_player(session, player_id)
    return Response(status_code=204)

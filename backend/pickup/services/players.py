"""Player registry: creation, renaming and soft deletion within a group+sport."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import config
from ..db_errors import is_unique_violation
from ..exceptions import PlayerAlreadyExists, PlayerNotFound
from ..models import Player
from ..time_utils import utcnow
from .seasons import ensure_active_season
from .validation import validate_player_name, validate_rating, validate_sport

logger = logging.getLogger(__name__)

PLAYER_NAME_INDEX = "uq_player_scope_name_lower"


async def _name_taken(
    session: AsyncSession,
    group_id: str,
    sport: str,
    name: str,
    exclude_id: str | None = None,
) -> bool:
    stmt = select(Player.id).where(
        Player.group_id == group_id,
        Player.sport == sport,
        Player.deleted_at.is_(None),
        func.lower(Player.name) == name.lower(),
    )
    if exclude_id is not None:
        stmt = stmt.where(Player.id != exclude_id)
    return (await session.execute(stmt.limit(1))).first() is not None


def _is_name_conflict(exc: IntegrityError) -> bool:
    return is_unique_violation(exc, PLAYER_NAME_INDEX)


async def get_player(
    session: AsyncSession, player_id: str, *, include_removed: bool = False
) -> Player:
    player = await session.get(Player, player_id)
    if player is None or (player.deleted_at is not None and not include_removed):
        raise PlayerNotFound(player_id)
    return player


async def list_players(session: AsyncSession, group_id: str, sport: str) -> list[Player]:
    """Return the active players of a group+sport, strongest first."""

    sport = validate_sport(sport)
    rows = (
        await session.execute(
            select(Player)
            .where(
                Player.group_id == group_id,
                Player.sport == sport,
                Player.deleted_at.is_(None),
            )
            .order_by(Player.rating.desc(), Player.name)
        )
    ).scalars().all()
    return list(rows)


async def add_player(
    session: AsyncSession,
    group_id: str,
    sport: str,
    name: str,
    rating: Optional[int] = None,
) -> Player:
    """Create a player with ``rating`` (default 1500) as current and season-start rating.

    Names are unique case-insensitively among the active players of the
    group+sport. The active season is created on first use and its
    ``total_players`` counter includes the new player.
    """

    sport = validate_sport(sport)
    trimmed = validate_player_name(name)
    initial = validate_rating(config.DEFAULT_RATING if rating is None else rating)

    if await _name_taken(session, group_id, sport, trimmed):
        raise PlayerAlreadyExists(trimmed)

    season, _ = await ensure_active_season(session, group_id, sport)

    player = Player(
        id=uuid.uuid4().hex,
        group_id=group_id,
        sport=sport,
        name=trimmed,
        rating=initial,
        season_start_rating=initial,
        matches_played=0,
        wins=0,
        draws=0,
        losses=0,
        goals_scored=0,
        goals_conceded=0,
        last_rating_change=0,
        created_at=utcnow(),
    )
    session.add(player)
    season.total_players = (season.total_players or 0) + 1
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if _is_name_conflict(exc):
            raise PlayerAlreadyExists(trimmed) from exc
        raise
    logger.info("Added player %s (%s) to group %s (%s)", player.id, trimmed, group_id, sport)
    return player


async def rename_player(session: AsyncSession, player_id: str, new_name: str) -> Player:
    trimmed = validate_player_name(new_name)
    player = await get_player(session, player_id)
    if await _name_taken(session, player.group_id, player.sport, trimmed, exclude_id=player.id):
        raise PlayerAlreadyExists(trimmed)

    player.name = trimmed
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if _is_name_conflict(exc):
            raise PlayerAlreadyExists(trimmed) from exc
        raise
    return player


async def remove_player(session: AsyncSession, player_id: str) -> None:
    """Soft-delete a player. Recorded matches keep their snapshots."""

    player = await get_player(session, player_id)
    player.deleted_at = utcnow()
    await session.commit()
    logger.info("Removed player %s from group %s (%s)", player.id, player.group_id, player.sport)

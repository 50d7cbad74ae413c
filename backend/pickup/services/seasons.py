"""Season lifecycle: first-season get-or-create and season rollover.

Rollover policy: counters are reset in place on the existing player records
and ``season_start_rating`` takes the current rating. Ratings themselves carry
over untouched and players are never duplicated per season.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db_errors import is_unique_violation
from ..exceptions import SeasonConflict, SeasonNotFound
from ..models import Player, Season
from ..time_utils import utcnow
from .validation import validate_sport

logger = logging.getLogger(__name__)

SEASON_COUNTER_FIELDS = (
    "matches_played",
    "wins",
    "draws",
    "losses",
    "goals_scored",
    "goals_conceded",
    "last_rating_change",
)


@dataclass
class SeasonRollover:
    season: Season
    created: bool
    players_carried_over: int = 0
    closed_season: Optional[Season] = None


async def get_active_season(
    session: AsyncSession, group_id: str, sport: str
) -> Season | None:
    return (
        await session.execute(
            select(Season).where(
                Season.group_id == group_id,
                Season.sport == sport,
                Season.is_active.is_(True),
            )
        )
    ).scalar_one_or_none()


async def get_season(
    session: AsyncSession, group_id: str, sport: str, number: int
) -> Season:
    season = (
        await session.execute(
            select(Season).where(
                Season.group_id == group_id,
                Season.sport == sport,
                Season.number == number,
            )
        )
    ).scalar_one_or_none()
    if season is None:
        raise SeasonNotFound(sport, number)
    return season


async def list_seasons(session: AsyncSession, group_id: str, sport: str) -> list[Season]:
    rows = (
        await session.execute(
            select(Season)
            .where(Season.group_id == group_id, Season.sport == sport)
            .order_by(Season.number.desc())
        )
    ).scalars().all()
    return list(rows)


async def _latest_season_number(session: AsyncSession, group_id: str, sport: str) -> int:
    latest = (
        await session.execute(
            select(func.max(Season.number)).where(
                Season.group_id == group_id, Season.sport == sport
            )
        )
    ).scalar()
    return int(latest or 0)


def _new_season(group_id: str, sport: str, number: int, total_players: int = 0) -> Season:
    return Season(
        id=uuid.uuid4().hex,
        group_id=group_id,
        sport=sport,
        number=number,
        is_active=True,
        start_date=utcnow(),
        total_matches=0,
        total_players=total_players,
    )


async def _resolve_lost_race(
    session: AsyncSession, group_id: str, sport: str, number: int
) -> Season:
    """Return the season opened by whichever concurrent caller won.

    Closed seasons are history and are never reopened; if no season is active
    after the conflict the caller gets ``SeasonConflict``.
    """

    existing = await get_active_season(session, group_id, sport)
    if existing is not None:
        return existing
    raise SeasonConflict(sport, number)


async def ensure_active_season(
    session: AsyncSession, group_id: str, sport: str
) -> tuple[Season, bool]:
    """Return the active season for ``group_id``/``sport``, creating it if needed.

    The second element is ``True`` only when this call inserted the season.
    Concurrent first-run callers converge on one record: the loser's insert
    violates the unique season number, its transaction is rolled back and the
    winner's season is returned instead of an error.
    """

    sport = validate_sport(sport)
    season = await get_active_season(session, group_id, sport)
    if season is not None:
        return season, False

    number = await _latest_season_number(session, group_id, sport) + 1
    season = _new_season(group_id, sport, number)
    session.add(season)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if not is_unique_violation(exc):
            raise
        logger.warning(
            "Season %s for group %s (%s) was created concurrently; using existing record",
            number,
            group_id,
            sport,
        )
        return await _resolve_lost_race(session, group_id, sport, number), False

    logger.info("Opened season %s for group %s (%s)", number, group_id, sport)
    return season, True


async def start_new_season(
    session: AsyncSession, group_id: str, sport: str
) -> SeasonRollover:
    """Close the active season and open the next one.

    Every active player keeps their rating, gets it copied into
    ``season_start_rating`` and has all per-season counters zeroed. The close,
    the player resets and the new season are committed together.
    """

    sport = validate_sport(sport)
    current = await get_active_season(session, group_id, sport)
    if current is None:
        season, created = await ensure_active_season(session, group_id, sport)
        return SeasonRollover(season=season, created=created)

    next_number = current.number + 1
    try:
        current.is_active = False
        current.end_date = utcnow()
        # Free the single-active slot before the next season is inserted.
        await session.flush()

        players = (
            await session.execute(
                select(Player)
                .where(
                    Player.group_id == group_id,
                    Player.sport == sport,
                    Player.deleted_at.is_(None),
                )
                .order_by(Player.name)
            )
        ).scalars().all()
        for player in players:
            player.season_start_rating = player.rating
            for name in SEASON_COUNTER_FIELDS:
                setattr(player, name, 0)

        new_season = _new_season(group_id, sport, next_number, total_players=len(players))
        session.add(new_season)
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if not is_unique_violation(exc):
            raise
        logger.warning(
            "Season %s for group %s (%s) was opened concurrently; using existing record",
            next_number,
            group_id,
            sport,
        )
        season = await _resolve_lost_race(session, group_id, sport, next_number)
        return SeasonRollover(season=season, created=False)
    except Exception:
        await session.rollback()
        raise

    logger.info(
        "Closed season %s and opened season %s for group %s (%s); %d players carried over",
        current.number,
        next_number,
        group_id,
        sport,
        len(players),
    )
    return SeasonRollover(
        season=new_season,
        created=True,
        players_carried_over=len(players),
        closed_season=current,
    )

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Player, Season


def win_rate(wins: int, matches_played: int) -> float:
    """Return the win percentage rounded to one decimal, 0 when nothing was played."""
    if not matches_played:
        return 0.0
    return round(wins / matches_played * 100, 1)


def player_stats(player: Player) -> Dict[str, Any]:
    return {
        "id": player.id,
        "name": player.name,
        "rating": player.rating,
        "seasonStartRating": player.season_start_rating,
        "seasonRatingChange": player.rating - player.season_start_rating,
        "matchesPlayed": player.matches_played,
        "wins": player.wins,
        "draws": player.draws,
        "losses": player.losses,
        "goalsScored": player.goals_scored,
        "goalsConceded": player.goals_conceded,
        "goalDifference": player.goals_scored - player.goals_conceded,
        "winRate": win_rate(player.wins, player.matches_played),
        "lastRatingChange": player.last_rating_change,
    }


async def top_players(
    session: AsyncSession, group_id: str, sport: str, limit: int = 10
) -> list[Player]:
    rows = (
        await session.execute(
            select(Player)
            .where(
                Player.group_id == group_id,
                Player.sport == sport,
                Player.deleted_at.is_(None),
            )
            .order_by(Player.rating.desc(), Player.name)
            .limit(limit)
        )
    ).scalars().all()
    return list(rows)


async def season_summary(
    session: AsyncSession, season: Season, limit: int = 10
) -> Dict[str, Any]:
    """Summarize a season with its leading players.

    Ratings carry across seasons, so the leaderboard is only meaningful for
    the active season; closed seasons report their counters without it.
    """
    leaders: list[Player] = []
    if season.is_active:
        leaders = await top_players(session, season.group_id, season.sport, limit)
    return {
        "season": season,
        "topPlayers": [player_stats(p) for p in leaders],
    }

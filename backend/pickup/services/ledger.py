"""Match ledger: applying a result to player ratings and reversing it.

Every recorded match keeps a full per-player snapshot (rating before/after,
delta, outcome, goals and the previous ``last_rating_change``) so reversal
restores state from the record instead of recomputing the formula.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import MatchNotFound, MatchNotReversible, PlayerNotFound
from ..models import Match, Player, Season
from ..time_utils import to_storage, utcnow
from .rating import RatingBreakdown, Team, compute_breakdown
from .seasons import ensure_active_season, get_active_season
from .validation import validate_score, validate_sport, validate_teams

logger = logging.getLogger(__name__)

RESULT_COUNTERS = {"win": "wins", "draw": "draws", "loss": "losses"}


def match_outcome(goals_for: int, goals_against: int) -> str:
    if goals_for > goals_against:
        return "win"
    if goals_for < goals_against:
        return "loss"
    return "draw"


def _validate_result(
    sport: str,
    home_ids: Sequence[str],
    away_ids: Sequence[str],
    home_score: Any,
    away_score: Any,
) -> tuple[str, list[str], list[str], int, int]:
    sport = validate_sport(sport)
    home, away = validate_teams(home_ids, away_ids)
    home_score = validate_score(home_score, label="Home score")
    away_score = validate_score(away_score, label="Away score")
    return sport, home, away, home_score, away_score


async def _scope_players(session: AsyncSession, group_id: str, sport: str) -> dict[str, Player]:
    rows = (
        await session.execute(
            select(Player).where(
                Player.group_id == group_id,
                Player.sport == sport,
                Player.deleted_at.is_(None),
            )
        )
    ).scalars().all()
    return {p.id: p for p in rows}


def _require_players(players: Mapping[str, Player], ids: Iterable[str]) -> None:
    missing = [pid for pid in ids if pid not in players]
    if missing:
        raise PlayerNotFound(", ".join(missing))


def _assemble_teams(
    players: Mapping[str, Player], home: Sequence[str], away: Sequence[str]
) -> tuple[Team, Team]:
    ratings = {pid: player.rating for pid, player in players.items()}
    return Team.assemble(home, ratings), Team.assemble(away, ratings)


async def _next_sequence(session: AsyncSession, group_id: str, sport: str) -> int:
    latest = (
        await session.execute(
            select(func.max(Match.sequence)).where(
                Match.group_id == group_id, Match.sport == sport
            )
        )
    ).scalar()
    return int(latest or 0) + 1


def _apply_member(player: Player, delta: int, goals_for: int, goals_against: int) -> dict[str, Any]:
    result = match_outcome(goals_for, goals_against)
    before = player.rating
    snapshot = {
        "playerId": player.id,
        "playerName": player.name,
        "ratingBefore": before,
        "ratingAfter": before + delta,
        "ratingChange": delta,
        "result": result,
        "goalsFor": goals_for,
        "goalsAgainst": goals_against,
        "lastRatingChangeBefore": player.last_rating_change or 0,
    }
    counter = RESULT_COUNTERS[result]
    player.rating = before + delta
    player.last_rating_change = delta
    player.matches_played = (player.matches_played or 0) + 1
    setattr(player, counter, (getattr(player, counter) or 0) + 1)
    player.goals_scored = (player.goals_scored or 0) + goals_for
    player.goals_conceded = (player.goals_conceded or 0) + goals_against
    return snapshot


async def preview_match(
    session: AsyncSession,
    group_id: str,
    sport: str,
    home_ids: Sequence[str],
    away_ids: Sequence[str],
    home_score: int,
    away_score: int,
) -> RatingBreakdown:
    """Run validation and the formula against current ratings without saving."""

    sport, home, away, home_score, away_score = _validate_result(
        sport, home_ids, away_ids, home_score, away_score
    )
    players = await _scope_players(session, group_id, sport)
    _require_players(players, home + away)
    home_team, away_team = _assemble_teams(players, home, away)
    return compute_breakdown(home_team, away_team, home_score, away_score, sport=sport)


async def apply_match(
    session: AsyncSession,
    group_id: str,
    sport: str,
    home_ids: Sequence[str],
    away_ids: Sequence[str],
    home_score: int,
    away_score: int,
    played_at: Optional[datetime] = None,
) -> Match:
    """Record a match and apply its rating deltas in one commit.

    Involved players get their rating, ``last_rating_change``, match count,
    outcome counter and goal totals updated. Every other active player of the
    group+sport has ``last_rating_change`` reset to 0; previous non-zero values
    are kept in ``details["resetLastChanges"]`` so reversal can restore them.
    """

    sport, home, away, home_score, away_score = _validate_result(
        sport, home_ids, away_ids, home_score, away_score
    )
    # Reject unknown players before a first season can be opened.
    _require_players(await _scope_players(session, group_id, sport), home + away)
    season, _ = await ensure_active_season(session, group_id, sport)

    try:
        players = await _scope_players(session, group_id, sport)
        _require_players(players, home + away)
        home_team, away_team = _assemble_teams(players, home, away)
        breakdown = compute_breakdown(
            home_team, away_team, home_score, away_score, sport=sport
        )

        involved = set(home) | set(away)
        reset_last_changes: dict[str, int] = {}
        for pid, player in players.items():
            if pid not in involved and player.last_rating_change:
                reset_last_changes[pid] = player.last_rating_change
                player.last_rating_change = 0

        home_snapshot = [
            _apply_member(players[pid], breakdown.deltas[pid], home_score, away_score)
            for pid in home
        ]
        away_snapshot = [
            _apply_member(players[pid], breakdown.deltas[pid], away_score, home_score)
            for pid in away
        ]

        details = breakdown.as_details()
        details["resetLastChanges"] = reset_last_changes
        match = Match(
            id=uuid.uuid4().hex,
            group_id=group_id,
            sport=sport,
            season_id=season.id,
            season_number=season.number,
            sequence=await _next_sequence(session, group_id, sport),
            home_score=home_score,
            away_score=away_score,
            home_team=home_snapshot,
            away_team=away_snapshot,
            details=details,
            played_at=to_storage(played_at) or utcnow(),
            created_at=utcnow(),
        )
        session.add(match)
        season.total_matches = (season.total_matches or 0) + 1
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(
        "Recorded match %s (%s %d:%d) in group %s, season %s: TV=%.2f",
        match.id,
        sport,
        home_score,
        away_score,
        group_id,
        season.number,
        breakdown.tv,
    )
    return match


async def get_match(session: AsyncSession, match_id: str) -> Match:
    match = await session.get(Match, match_id)
    if match is None:
        raise MatchNotFound(match_id)
    return match


async def list_matches(
    session: AsyncSession,
    group_id: str,
    sport: str,
    season_number: Optional[int] = None,
    limit: int = 50,
) -> list[Match]:
    """Return matches of a season, newest first. Defaults to the active season."""

    sport = validate_sport(sport)
    if season_number is None:
        season = await get_active_season(session, group_id, sport)
        if season is None:
            return []
        season_number = season.number
    rows = (
        await session.execute(
            select(Match)
            .where(
                Match.group_id == group_id,
                Match.sport == sport,
                Match.season_number == season_number,
            )
            .order_by(Match.sequence.desc())
            .limit(limit)
        )
    ).scalars().all()
    return list(rows)


async def _check_reversible(session: AsyncSession, match: Match) -> Season | None:
    season = await session.get(Season, match.season_id)
    if season is not None and not season.is_active:
        raise MatchNotReversible(match.id, "its season is closed")
    latest = (
        await session.execute(
            select(func.max(Match.sequence)).where(
                Match.group_id == match.group_id, Match.sport == match.sport
            )
        )
    ).scalar()
    if latest is not None and match.sequence != latest:
        raise MatchNotReversible(match.id, "only the most recent match can be deleted")
    return season


def _restored_rating(player: Player, member: Mapping[str, Any]) -> int:
    before = member.get("ratingBefore")
    if before is not None:
        return int(before)

    after = member.get("ratingAfter")
    change = member.get("ratingChange")
    if after is not None and change is not None:
        logger.warning(
            "Match snapshot for player %s lacks ratingBefore; using ratingAfter - ratingChange",
            player.id,
        )
        return int(after - change)

    logger.warning(
        "Match snapshot for player %s lacks ratingBefore and ratingAfter; "
        "using current rating - ratingChange",
        player.id,
    )
    return int(player.rating - (change or 0))


def _revert_member(player: Player, member: Mapping[str, Any], goals_for: int, goals_against: int) -> None:
    restored = _restored_rating(player, member)
    change = member.get("ratingChange")
    if change is None:
        change = player.rating - restored

    player.rating = restored
    player.matches_played = max(0, (player.matches_played or 0) - 1)

    counter = RESULT_COUNTERS.get(member.get("result"))
    if counter is None:
        # Legacy snapshots carry no outcome; infer it from the delta sign.
        if change > 0:
            counter = "wins"
        elif change < 0:
            counter = "losses"
    if counter is not None:
        setattr(player, counter, max(0, (getattr(player, counter) or 0) - 1))

    goals_for = member.get("goalsFor", goals_for)
    goals_against = member.get("goalsAgainst", goals_against)
    player.goals_scored = max(0, (player.goals_scored or 0) - int(goals_for or 0))
    player.goals_conceded = max(0, (player.goals_conceded or 0) - int(goals_against or 0))
    player.last_rating_change = int(member.get("lastRatingChangeBefore") or 0)


async def reverse_match(session: AsyncSession, match_id: str) -> None:
    """Delete a match and restore every player it touched.

    Only the most recent match of a group+sport, within a still-active season,
    can be reversed; anything else raises ``MatchNotReversible`` because later
    matches were computed from the ratings this one produced.
    """

    match = await get_match(session, match_id)
    season = await _check_reversible(session, match)

    try:
        sides = [
            (member, match.home_score, match.away_score) for member in match.home_team or []
        ] + [
            (member, match.away_score, match.home_score) for member in match.away_team or []
        ]
        resets: Mapping[str, Any] = (match.details or {}).get("resetLastChanges") or {}
        ids = {m.get("playerId") for m, _, _ in sides if m.get("playerId")} | set(resets)
        players: dict[str, Player] = {}
        if ids:
            rows = (
                await session.execute(select(Player).where(Player.id.in_(ids)))
            ).scalars().all()
            players = {p.id: p for p in rows}

        for member, goals_for, goals_against in sides:
            player = players.get(member.get("playerId"))
            if player is None:
                logger.warning(
                    "Player %s from match %s no longer exists; skipping rollback",
                    member.get("playerId"),
                    match.id,
                )
                continue
            _revert_member(player, member, goals_for, goals_against)

        for pid, previous in resets.items():
            player = players.get(pid)
            if player is not None:
                player.last_rating_change = int(previous)

        if season is not None:
            season.total_matches = max(0, (season.total_matches or 0) - 1)
        await session.delete(match)
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info("Deleted match %s and restored %d player(s)", match_id, len(sides))

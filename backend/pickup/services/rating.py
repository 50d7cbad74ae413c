"""Team rating-adjustment formula.

Converts a team-vs-team result into per-player rating deltas. Everything in
this module is pure arithmetic: no I/O, no session, no mutation of the
inputs, so identical inputs always yield identical deltas.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Mapping, Sequence

from .validation import ValidationError, validate_score, validate_sport

DRAW_REMAP_SCORE = 1
GOAL_RATIO_PIVOT = 0.8


@dataclass(frozen=True)
class Team:
    """An ordered roster with the ratings captured when it was assembled.

    The value object never refers back to player records, so a breakdown
    computed from it is unaffected by later rating changes.
    """

    members: tuple[tuple[str, int], ...]

    @classmethod
    def assemble(cls, player_ids: Sequence[str], ratings: Mapping[str, int]) -> "Team":
        missing = [pid for pid in player_ids if pid not in ratings]
        if missing:
            raise ValidationError("Unknown players: " + ", ".join(missing))
        return cls(members=tuple((pid, int(ratings[pid])) for pid in player_ids))

    @property
    def player_ids(self) -> list[str]:
        return [pid for pid, _ in self.members]

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def total_rating(self) -> int:
        return sum(rating for _, rating in self.members)

    @property
    def average_rating(self) -> float:
        return self.total_rating / self.size if self.members else 0.0


@dataclass(frozen=True)
class SportFormula:
    """Sport-specific pieces of the formula.

    ``rating_gap`` returns RD from the (winner, loser) teams, ``expected_score``
    maps RD and the combined roster size to ES, and ``goal_value`` maps the
    roster size to GV.
    """

    rating_gap: Callable[[Team, Team], float]
    expected_score: Callable[[float, int], float]
    goal_value: Callable[[int], float]


SPORT_FORMULAS: dict[str, SportFormula] = {
    "football": SportFormula(
        rating_gap=lambda winner, loser: winner.total_rating - loser.total_rating,
        expected_score=lambda rd, n: (rd / (n / 2)) / 200 * 6,
        goal_value=lambda n: 7 * ((12 - n) / 10 + 1),
    ),
    # Basketball compares average ratings and values each point far less.
    "basketball": SportFormula(
        rating_gap=lambda winner, loser: winner.average_rating - loser.average_rating,
        expected_score=lambda rd, n: rd / 10,
        goal_value=lambda n: 3 * ((10 - n) / 10 + 1),
    ),
}


@dataclass(frozen=True)
class RatingBreakdown:
    sport: str
    home_score: int
    away_score: int
    adjusted_home_score: int
    adjusted_away_score: int
    home_is_reference_winner: bool
    rd: float
    es: float
    goal_diff: int
    goal_ratio: float
    rgd: float
    gv: float
    tv: float
    deltas: dict[str, int] = field(default_factory=dict)

    def as_details(self) -> dict[str, object]:
        """Return the JSON payload stored alongside a match."""

        return {
            "sport": self.sport,
            "adjustedScore": {
                "home": self.adjusted_home_score,
                "away": self.adjusted_away_score,
            },
            "referenceWinner": "home" if self.home_is_reference_winner else "away",
            "RD": self.rd,
            "ES": self.es,
            "goalDiff": self.goal_diff,
            "goalRatio": self.goal_ratio,
            "RGD": self.rgd,
            "GV": self.gv,
            "TV": self.tv,
        }


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded towards +infinity."""

    return math.floor(value + 0.5)


def _check_teams(home: Team, away: Team) -> None:
    if not home.members or not away.members:
        raise ValidationError("Both teams must include at least one player.")
    overlap = sorted(set(home.player_ids) & set(away.player_ids))
    if overlap:
        raise ValidationError("Players cannot be on both teams: " + ", ".join(overlap))
    for team in (home, away):
        if team.total_rating <= 0:
            raise ValidationError("Team aggregate rating must be positive.")


def compute_breakdown(
    home: Team,
    away: Team,
    home_score: int,
    away_score: int,
    *,
    sport: str = "football",
) -> RatingBreakdown:
    """Return every intermediate value of the formula plus per-player deltas.

    A 0-0 result is treated as 1-1. The side with the higher adjusted score is
    the reference winner; equal scores resolve to the home side. Winners gain
    and losers lose ``TV`` split by each player's share of their own team's
    aggregate rating. ``TV`` may be negative, in which case the reference
    winner loses rating.
    """

    sport = validate_sport(sport)
    home_score = validate_score(home_score, label="Home score", max_value=None)
    away_score = validate_score(away_score, label="Away score", max_value=None)
    _check_teams(home, away)
    formula = SPORT_FORMULAS[sport]

    adj_home, adj_away = home_score, away_score
    if adj_home == 0 and adj_away == 0:
        adj_home = adj_away = DRAW_REMAP_SCORE

    home_wins = adj_home >= adj_away
    winner, loser = (home, away) if home_wins else (away, home)
    winner_score, loser_score = (adj_home, adj_away) if home_wins else (adj_away, adj_home)

    total_players = home.size + away.size
    rd = formula.rating_gap(winner, loser)
    es = formula.expected_score(rd, total_players)

    goal_diff = winner_score - loser_score
    goal_ratio = loser_score / winner_score
    rgd = goal_diff * ((GOAL_RATIO_PIVOT - goal_ratio) + 1)

    gv = formula.goal_value(total_players)
    tv = (total_players / 2) * gv * (rgd - es)

    deltas: dict[str, int] = {}
    winner_total = winner.total_rating
    loser_total = loser.total_rating
    for pid, rating in winner.members:
        deltas[pid] = round_half_up(tv * rating / winner_total)
    for pid, rating in loser.members:
        deltas[pid] = -round_half_up(tv * rating / loser_total)

    return RatingBreakdown(
        sport=sport,
        home_score=home_score,
        away_score=away_score,
        adjusted_home_score=adj_home,
        adjusted_away_score=adj_away,
        home_is_reference_winner=home_wins,
        rd=rd,
        es=es,
        goal_diff=goal_diff,
        goal_ratio=goal_ratio,
        rgd=rgd,
        gv=gv,
        tv=tv,
        deltas=deltas,
    )


def compute_deltas(
    home: Team,
    away: Team,
    home_score: int,
    away_score: int,
    *,
    sport: str = "football",
) -> dict[str, int]:
    """Return the rating delta for every player of both teams."""

    return compute_breakdown(home, away, home_score, away_score, sport=sport).deltas

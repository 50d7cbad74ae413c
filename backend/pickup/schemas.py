from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator, ConfigDict

from . import config
from .time_utils import require_utc


class SportOut(BaseModel):
    id: str
    name: str


class PlayerCreate(BaseModel):
    groupId: str = Field(..., min_length=1, max_length=100)
    sport: str = config.DEFAULT_SPORT
    name: str = Field(..., min_length=1, max_length=config.MAX_NAME_LENGTH)
    rating: Optional[int] = Field(
        default=None, ge=config.RATING_MIN, le=config.RATING_MAX
    )

    model_config = ConfigDict(extra="forbid")

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        if not isinstance(value, str):
            raise TypeError("name must be a string")
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("name must not be empty")
        return trimmed


class PlayerRename(BaseModel):
    name: str = Field(..., min_length=1, max_length=config.MAX_NAME_LENGTH)

    model_config = ConfigDict(extra="forbid")

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        if not isinstance(value, str):
            raise TypeError("name must be a string")
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("name must not be empty")
        return trimmed


class PlayerOut(BaseModel):
    id: str
    groupId: str
    sport: str
    name: str
    rating: int
    seasonStartRating: int
    matchesPlayed: int
    wins: int
    draws: int
    losses: int
    goalsScored: int
    goalsConceded: int
    lastRatingChange: int


class PlayerListOut(BaseModel):
    players: List[PlayerOut]
    total: int
    sport: str


class PlayerStatsOut(BaseModel):
    id: str
    name: str
    rating: int
    seasonStartRating: int
    seasonRatingChange: int
    matchesPlayed: int
    wins: int
    draws: int
    losses: int
    goalsScored: int
    goalsConceded: int
    goalDifference: int
    winRate: float
    lastRatingChange: int


class MatchCreate(BaseModel):
    groupId: str = Field(..., min_length=1, max_length=100)
    sport: str = config.DEFAULT_SPORT
    homeTeam: List[str]
    awayTeam: List[str]
    homeScore: int
    awayScore: int
    playedAt: Optional[datetime] = None

    @field_validator("playedAt")
    def _normalize_played_at(cls, v: datetime | None) -> datetime | None:
        return require_utc(v, field_name="playedAt")


class TeamMemberOut(BaseModel):
    playerId: str
    playerName: Optional[str] = None
    ratingBefore: Optional[int] = None
    ratingAfter: Optional[int] = None
    ratingChange: Optional[int] = None
    result: Optional[Literal["win", "draw", "loss"]] = None


class MatchOut(BaseModel):
    """Detailed match information returned by the API."""

    id: str
    groupId: str
    sport: str
    season: int
    homeScore: int
    awayScore: int
    homeTeam: List[TeamMemberOut] = Field(default_factory=list)
    awayTeam: List[TeamMemberOut] = Field(default_factory=list)
    playedAt: Optional[datetime] = None
    details: Optional[Dict[str, Any]] = None


class MatchListOut(BaseModel):
    matches: List[MatchOut]
    season: Optional[int] = None
    sport: str


class RatingPreviewOut(BaseModel):
    """Formula breakdown for a prospective result; nothing is saved."""

    sport: str
    adjustedHomeScore: int
    adjustedAwayScore: int
    referenceWinner: Literal["home", "away"]
    RD: float
    ES: float
    goalDiff: int
    goalRatio: float
    RGD: float
    GV: float
    TV: float
    changes: Dict[str, int]


class SeasonCreate(BaseModel):
    groupId: str = Field(..., min_length=1, max_length=100)
    sport: str = config.DEFAULT_SPORT


class SeasonOut(BaseModel):
    id: str
    groupId: str
    sport: str
    number: int
    isActive: bool
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    totalMatches: int
    totalPlayers: int


class SeasonStartOut(BaseModel):
    season: SeasonOut
    created: bool
    playersCarriedOver: int
    closedSeason: Optional[int] = None


class SeasonStatsOut(BaseModel):
    season: SeasonOut
    topPlayers: List[PlayerStatsOut] = Field(default_factory=list)

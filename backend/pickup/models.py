from sqlalchemy import (
    Column,
    String,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Boolean,
    Index,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from .db import Base
from .time_utils import utcnow


class Season(Base):
    __tablename__ = "season"
    id = Column(String, primary_key=True)
    group_id = Column(String, nullable=False)
    sport = Column(String, nullable=False)
    number = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    start_date = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())
    end_date = Column(DateTime, nullable=True)
    total_matches = Column(Integer, nullable=False, default=0)
    total_players = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint(
            "group_id", "sport", "number", name="uq_season_group_sport_number"
        ),
        # Exactly one open season per group and sport.
        Index(
            "uq_season_active",
            "group_id",
            "sport",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )


class Player(Base):
    __tablename__ = "player"
    id = Column(String, primary_key=True)
    group_id = Column(String, nullable=False, index=True)
    sport = Column(String, nullable=False)
    name = Column(String, nullable=False)
    rating = Column(Integer, nullable=False, default=1500)
    season_start_rating = Column(Integer, nullable=False, default=1500)
    matches_played = Column(Integer, nullable=False, default=0)
    wins = Column(Integer, nullable=False, default=0)
    draws = Column(Integer, nullable=False, default=0)
    losses = Column(Integer, nullable=False, default=0)
    goals_scored = Column(Integer, nullable=False, default=0)
    goals_conceded = Column(Integer, nullable=False, default=0)
    last_rating_change = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())
    deleted_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index(
            "uq_player_scope_name_lower",
            group_id,
            sport,
            func.lower(name),
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )


class Match(Base):
    __tablename__ = "match"
    id = Column(String, primary_key=True)
    group_id = Column(String, nullable=False)
    sport = Column(String, nullable=False)
    season_id = Column(String, ForeignKey("season.id"), nullable=False)
    season_number = Column(Integer, nullable=False)
    sequence = Column(Integer, nullable=False)
    home_score = Column(Integer, nullable=False)
    away_score = Column(Integer, nullable=False)
    # Per-member snapshots: ratingBefore/ratingAfter/ratingChange and counters.
    home_team = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    away_team = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    details = Column(JSON, nullable=True)
    played_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())

    __table_args__ = (
        UniqueConstraint(
            "group_id", "sport", "sequence", name="uq_match_group_sport_sequence"
        ),
        Index("ix_match_group_sport_season", "group_id", "sport", "season_number"),
    )

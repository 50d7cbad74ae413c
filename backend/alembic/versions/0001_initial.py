from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _json():
    return sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade():
    op.create_table(
        "season",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("group_id", sa.String(), nullable=False),
        sa.Column("sport", sa.String(), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("start_date", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        sa.Column("total_matches", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_players", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint(
            "group_id", "sport", "number", name="uq_season_group_sport_number"
        ),
    )
    op.create_index(
        "uq_season_active",
        "season",
        ["group_id", "sport"],
        unique=True,
        sqlite_where=sa.text("is_active = 1"),
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "player",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("group_id", sa.String(), nullable=False),
        sa.Column("sport", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False, server_default="1500"),
        sa.Column("season_start_rating", sa.Integer(), nullable=False, server_default="1500"),
        sa.Column("matches_played", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("wins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("draws", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("losses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("goals_scored", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("goals_conceded", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_rating_change", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_player_group_id", "player", ["group_id"])
    op.create_index(
        "uq_player_scope_name_lower",
        "player",
        ["group_id", "sport", sa.text("lower(name)")],
        unique=True,
        sqlite_where=sa.text("deleted_at IS NULL"),
        postgresql_where=sa.text("deleted_at IS NULL"),
    )

    op.create_table(
        "match",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("group_id", sa.String(), nullable=False),
        sa.Column("sport", sa.String(), nullable=False),
        sa.Column("season_id", sa.String(), sa.ForeignKey("season.id"), nullable=False),
        sa.Column("season_number", sa.Integer(), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("home_score", sa.Integer(), nullable=False),
        sa.Column("away_score", sa.Integer(), nullable=False),
        sa.Column("home_team", _json(), nullable=False),
        sa.Column("away_team", _json(), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("played_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint(
            "group_id", "sport", "sequence", name="uq_match_group_sport_sequence"
        ),
    )
    op.create_index(
        "ix_match_group_sport_season", "match", ["group_id", "sport", "season_number"]
    )


def downgrade():
    op.drop_index("ix_match_group_sport_season", table_name="match")
    op.drop_table("match")
    op.drop_index("uq_player_scope_name_lower", table_name="player")
    op.drop_index("ix_player_group_id", table_name="player")
    op.drop_table("player")
    op.drop_index("uq_season_active", table_name="season")
    op.drop_table("season")

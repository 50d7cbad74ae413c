"""Rating engine services: formula, player registry, match ledger and seasons."""

from .validation import ValidationError
from .rating import Team, RatingBreakdown, compute_breakdown, compute_deltas
from .players import add_player, rename_player, remove_player, get_player, list_players
from .ledger import apply_match, reverse_match, preview_match, get_match, list_matches
from .seasons import (
    SeasonRollover,
    ensure_active_season,
    get_active_season,
    get_season,
    list_seasons,
    start_new_season,
)
from .stats import win_rate, player_stats, season_summary

__all__ = [
    "ValidationError",
    "Team",
    "RatingBreakdown",
    "compute_breakdown",
    "compute_deltas",
    "add_player",
    "rename_player",
    "remove_player",
    "get_player",
    "list_players",
    "apply_match",
    "reverse_match",
    "preview_match",
    "get_match",
    "list_matches",
    "SeasonRollover",
    "ensure_active_season",
    "get_active_season",
    "get_season",
    "list_seasons",
    "start_new_season",
    "win_rate",
    "player_stats",
    "season_summary",
]

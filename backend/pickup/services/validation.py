from typing import Any, Optional, Sequence

from .. import config


class ValidationError(Exception):
    """Raised when submitted players, teams or scores are invalid."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


def validate_sport(sport: Any) -> str:
    if not isinstance(sport, str) or not sport.strip():
        raise ValidationError("Sport is required.")
    normalized = sport.strip().lower()
    if normalized not in config.SUPPORTED_SPORTS:
        formatted = ", ".join(config.SUPPORTED_SPORTS)
        raise ValidationError(f"Unsupported sport '{sport}'. Expected one of: {formatted}.")
    return normalized


def validate_player_name(name: Any, *, max_length: int = config.MAX_NAME_LENGTH) -> str:
    """Return the trimmed player name or raise ``ValidationError``."""

    if not isinstance(name, str):
        raise ValidationError("Player name must be a string.")
    trimmed = name.strip()
    if not trimmed:
        raise ValidationError("Player name is required.")
    if len(trimmed) > max_length:
        raise ValidationError(f"Player name must be at most {max_length} characters.")
    return trimmed


def validate_rating(
    rating: Any,
    *,
    min_value: int = config.RATING_MIN,
    max_value: int = config.RATING_MAX,
) -> int:
    if isinstance(rating, bool):
        raise ValidationError("Rating must be an integer (not a boolean).")
    try:
        value = int(rating)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("Rating must be an integer.")
    if isinstance(rating, float) and not rating.is_integer():
        raise ValidationError("Rating must be a whole number.")
    if value < min_value or value > max_value:
        raise ValidationError(
            f"Rating must be between {min_value} and {max_value}."
        )
    return value


def validate_score(
    raw: Any,
    *,
    label: str,
    max_value: Optional[int] = config.MAX_SCORE,
) -> int:
    # Reject booleans explicitly (bool is a subclass of int in Python)
    if isinstance(raw, bool):
        raise ValidationError(f"{label} must be an integer (not a boolean).")
    try:
        value = int(raw)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{label} must be an integer.")
    if isinstance(raw, float) and not raw.is_integer():
        raise ValidationError(f"{label} must be a whole number.")
    if value < 0:
        raise ValidationError(f"{label} must be >= 0.")
    if max_value is not None and value > max_value:
        raise ValidationError(f"{label} must be <= {max_value}.")
    return value


def validate_teams(
    home_ids: Sequence[str], away_ids: Sequence[str]
) -> tuple[list[str], list[str]]:
    """Validate two rosters and return them as lists.

    Rules:
    - Each team needs at least one player
    - A player may appear only once within a team
    - A player may not appear in both teams
    """

    teams: list[list[str]] = []
    for label, ids in (("Home", home_ids), ("Away", away_ids)):
        if isinstance(ids, (str, bytes)) or not isinstance(ids, Sequence):
            raise ValidationError(f"{label} team must be a list of player ids.")
        members = [pid for pid in ids]
        if not members:
            raise ValidationError(f"{label} team must include at least one player.")
        if any(not isinstance(pid, str) or not pid for pid in members):
            raise ValidationError(f"{label} team player ids must be non-empty strings.")
        if len(set(members)) != len(members):
            raise ValidationError(f"{label} team lists the same player more than once.")
        teams.append(members)

    home, away = teams
    overlap = sorted(set(home) & set(away))
    if overlap:
        raise ValidationError(
            "Players cannot be on both teams: " + ", ".join(overlap)
        )
    return home, away

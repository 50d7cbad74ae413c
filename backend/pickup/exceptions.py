from fastapi import HTTPException
from pydantic import BaseModel
from typing import Optional


class ProblemDetail(BaseModel):
    """RFC 7807 compliant error response."""

    type: str = "about:blank"
    title: str
    detail: Optional[str] = None
    status: int
    instance: Optional[str] = None
    code: str


class DomainException(Exception):
    """Base class for domain-specific exceptions."""

    def __init__(
        self,
        status_code: int,
        title: str,
        *,
        code: str,
        detail: str | None = None,
        type_: str = "about:blank",
    ) -> None:
        super().__init__(detail or title)
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type = type_
        self.code = code


class PlayerAlreadyExists(DomainException):
    def __init__(self, name: str) -> None:
        super().__init__(
            status_code=409,
            title="Player exists",
            detail=f"player name '{name}' already exists",
            code="player_exists",
        )


class PlayerNotFound(DomainException):
    def __init__(self, player_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Player not found",
            detail=f"player '{player_id}' not found",
            code="player_not_found",
        )


class MatchNotFound(DomainException):
    def __init__(self, match_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Match not found",
            detail=f"match '{match_id}' not found",
            code="match_not_found",
        )


class MatchNotReversible(DomainException):
    """Raised when deleting a match other than the latest one of an open season."""

    def __init__(self, match_id: str, reason: str) -> None:
        super().__init__(
            status_code=409,
            title="Match cannot be deleted",
            detail=f"match '{match_id}' cannot be deleted: {reason}",
            code="match_not_reversible",
        )


class SeasonNotFound(DomainException):
    def __init__(self, sport: str, number: int | None = None) -> None:
        label = f"season {number}" if number is not None else "active season"
        super().__init__(
            status_code=404,
            title="Season not found",
            detail=f"{label} for '{sport}' not found",
            code="season_not_found",
        )


class SeasonConflict(DomainException):
    """Raised when a season number is taken but no season is active to return."""

    def __init__(self, sport: str, number: int) -> None:
        super().__init__(
            status_code=409,
            title="Season conflict",
            detail=f"season {number} for '{sport}' already exists and is closed",
            code="season_conflict",
        )


def http_problem(
    status_code: int,
    detail: str,
    code: str,
    *,
    headers: Optional[dict[str, str]] = None,
) -> HTTPException:
    """Create an HTTPException with an attached problem code."""

    exc = HTTPException(status_code=status_code, detail=detail, headers=headers)
    setattr(exc, "code", code)
    return exc

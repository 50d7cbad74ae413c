from __future__ import annotations

from fastapi import APIRouter

from .. import config
from ..schemas import SportOut

router = APIRouter(prefix="/sports", tags=["sports"])


SPORT_NAMES: dict[str, str] = {
    "football": "Football",
    "basketball": "Basketball",
}


def _sport_name(sport_id: str) -> str:
    name = SPORT_NAMES.get(sport_id)
    if name:
        return name
    return sport_id.replace("_", " ").replace("-", " ").strip().title() or sport_id


# GET /api/v0/sports
@router.get("", response_model=list[SportOut])
async def list_sports() -> list[SportOut]:
    return [
        SportOut(id=sport_id, name=_sport_name(sport_id))
        for sport_id in config.SUPPORTED_SPORTS
    ]

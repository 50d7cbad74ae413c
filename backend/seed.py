import asyncio
import os
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from pickup.db import normalize_database_url
from pickup.services import add_player, list_players

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL environment variable is required")
DATABASE_URL = normalize_database_url(DATABASE_URL)

engine = create_async_engine(DATABASE_URL, echo=False, pool_pre_ping=True)
Session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

DEMO_GROUP = os.getenv("SEED_GROUP_ID", "demo-group")

DEMO_PLAYERS = {
    "football": [
        ("Alex Ruiz", 1500),
        ("Bella Fernandez", 1550),
        ("Carlos Mendez", 1450),
        ("Diana Soto", 1600),
        ("Eli Vasquez", 1400),
        ("Fiona Castro", 1500),
    ],
    "basketball": [
        ("Alex Ruiz", 1500),
        ("Diana Soto", 1520),
        ("Fiona Castro", 1480),
    ],
}


async def main():
    async with Session() as s:
        for sport, roster in DEMO_PLAYERS.items():
            have = {p.name.lower() for p in await list_players(s, DEMO_GROUP, sport)}
            for name, rating in roster:
                if name.lower() not in have:
                    await add_player(s, DEMO_GROUP, sport, name, rating)
    await engine.dispose()

if __name__ == "__main__":
    asyncio.run(main())

import os
import sys
import asyncio

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))


@pytest.fixture(scope="session")
def session_loop():
    """Single event loop for all sync fixtures that need to run async DB code."""

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    yield loop
    loop.close()

# Ensure all SQLAlchemy models are registered with the declarative Base so
# metadata.create_all creates every table when the test database is initialised.
from pickup import db, models  # noqa: F401

# main.py refuses to start without explicit CORS origins
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost")
# Honour any externally provided DATABASE_URL (e.g. CI may set a file-backed DB)
# but fall back to an in-memory SQLite database so local runs remain isolated.
DEFAULT_DB_URL = os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest.fixture(autouse=True, scope="session")
def ensure_database(session_loop):
    """Ensure the test database starts clean and honours DATABASE_URL."""

    mp = pytest.MonkeyPatch()
    desired_url = os.getenv("DATABASE_URL") or DEFAULT_DB_URL
    mp.setenv("DATABASE_URL", desired_url)

    if desired_url.startswith("sqlite") and ":memory:" not in desired_url:
        path = desired_url.split("///")[-1]
        if os.path.exists(path):
            os.remove(path)

    db.engine = None
    db.AsyncSessionLocal = None
    yield
    if db.engine is not None:
        session_loop.run_until_complete(db.engine.dispose())
        db.engine = None

    if db.AsyncSessionLocal is not None:
        db.AsyncSessionLocal = None
    mp.undo()


async def _reset_schema(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(db.Base.metadata.drop_all)
        await conn.run_sync(db.Base.metadata.create_all)


@pytest.fixture(autouse=True)
def reset_schema(request, session_loop):
    """Reset the schema before each test unless preserved via marker."""

    if request.node.get_closest_marker("preserve_schema"):
        yield
        return

    engine = db.engine or db.get_engine()
    session_loop.run_until_complete(_reset_schema(engine))
    yield


@pytest.fixture
def run_db():
    """Run ``scenario(session)`` against a fresh in-memory database.

    Each call gets its own engine so the scenario, its schema and its event
    loop live and die together.
    """

    def runner(scenario):
        async def _main():
            engine = create_async_engine(
                "sqlite+aiosqlite:///:memory:",
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
            async_session_maker = sessionmaker(
                engine, expire_on_commit=False, class_=AsyncSession
            )
            try:
                async with engine.begin() as conn:
                    await conn.run_sync(db.Base.metadata.create_all)
                async with async_session_maker() as session:
                    return await scenario(session)
            finally:
                await engine.dispose()

        return asyncio.run(_main())

    return runner

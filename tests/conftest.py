import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

sys.path.append(str(Path(__file__).parents[1] / "src"))

from app.db.session import build_engine, build_sessionmaker, get_db
from app.jobs.engine import ReclassifyJobEngine
from app.jobs.store import JobStore
from app.main import create_app
from app.models.base import Base
from app.models.calendar_event import CalendarEvent

BASE_TIME = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def _make_event(index: int, **fields) -> CalendarEvent:
    fields.setdefault("calendar_id", "clinic")
    fields.setdefault("event_id", f"evt-{index}")
    created = BASE_TIME + timedelta(minutes=index)
    return CalendarEvent(created_at=created, updated_at=created, **fields)


@pytest.fixture
def make_event():
    """Build an unsaved event; ``index`` fixes both its key and its creation order."""
    return _make_event


@pytest.fixture
async def sqlite_engine(tmp_path):
    """File-backed SQLite database per test, so no Postgres is needed."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'calendar.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine):
    return build_sessionmaker(sqlite_engine)


@pytest.fixture
async def db_session(session_factory):
    """Provide test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def seed_events(session_factory):
    """Insert events and return them (attributes stay loaded after commit)."""

    async def _seed(*events: CalendarEvent) -> list[CalendarEvent]:
        async with session_factory() as session:
            session.add_all(events)
            await session.commit()
        return list(events)

    return _seed


@pytest.fixture
async def job_engine(session_factory):
    engine = ReclassifyJobEngine(session_factory, JobStore(), batch_size=2, progress_every=1)
    yield engine
    await engine.shutdown()


@pytest.fixture
async def client(session_factory, job_engine):
    """Provide test client wired to the SQLite database and a fresh job engine."""
    app = create_app(job_engine=job_engine)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def load_event(session_factory):
    """Re-read an event by key from a fresh session."""
    from app.repositories.calendar_event import CalendarEventRepository

    async def _load(event_id: str, calendar_id: str = "clinic") -> CalendarEvent | None:
        async with session_factory() as session:
            return await CalendarEventRepository(session).get_by_key(calendar_id, event_id)

    return _load


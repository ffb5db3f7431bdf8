"""
Shared fixtures.

The database is created and seeded through a synchronous SQLite engine so
fixtures never touch an event loop; services and the app then open the
same file through aiosqlite.
"""

import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import Session, SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from linkbio.core.setting import Settings
from linkbio.db import models
from linkbio.db.session import get_session
from linkbio.db.sqlite_adapter import SQLiteAdapter
from linkbio.main import create_app


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def seed(session: Session) -> None:
    session.add_all([
        models.Profile(id="user-alice", handle="alice", display_name="Alice",
                       rich_text="## Hi\nI make **music**.\n\n- [tour](https://example.com/tour)",
                       badges=["pro"]),
        models.Profile(id="user-bob", handle="bob", display_name="  "),
        models.Profile(id="user-carol", handle="carol", display_name="Carol C"),
        models.Profile(id="user-staff", handle="staff_one", is_admin=True, badges=["staff"]),
        models.Profile(id="user-hidden", handle="hidden", is_public=False),
        models.Profile(id="user-quiet", handle="quiet", comments_enabled=False),
    ])
    session.flush()
    session.add_all([
        models.Link(id="link-yt", user_id="user-alice", title="Channel",
                    url="https://www.youtube.com/@alice", sort_order=1),
        models.Link(id="link-sc", user_id="user-alice", title="Sets",
                    url="https://soundcloud.com/alice", icon="SC", sort_order=0),
        models.MusicTrack(id="track-mp3", user_id="user-alice", title="Demo",
                          embed_url="https://files.catbox.moe/demo.mp3", sort_order=0),
        models.MusicTrack(id="track-spotify", user_id="user-alice", title="Single",
                          embed_url="https://open.spotify.com/intl-fr/track/xyz", sort_order=1),
        models.MusicTrack(id="track-off", user_id="user-alice", title="Old",
                          embed_url="https://files.catbox.moe/old.mp3", is_active=False),
    ])
    session.commit()


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "linkbio-test.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    SQLModel.metadata.create_all(sync_engine)
    with Session(sync_engine) as session:
        seed(session)
    sync_engine.dispose()
    return path


@pytest.fixture
def sync_session(db_path):
    """Plain session for asserting on what endpoints and services wrote."""
    engine = create_engine(f"sqlite:///{db_path}")
    with Session(engine) as session:
        yield session
    engine.dispose()


@pytest.fixture
def async_engine(db_path):
    engine = SQLiteAdapter().create_engine(f"sqlite+aiosqlite:///{db_path}")
    yield engine
    engine.sync_engine.dispose()


@pytest_asyncio.fixture
async def session(async_engine):
    maker = async_sessionmaker(async_engine, class_=SQLModelAsyncSession, expire_on_commit=False)
    async with maker() as db_session:
        yield db_session


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def test_settings():
    return Settings(
        COMMENT_RATE_CAPACITY=2,
        COMMENT_RATE_REFILL=2,
        COMMENT_RATE_WINDOW_SECONDS=60,
        AI_RATE_CAPACITY=1,
        AI_RATE_REFILL=1,
        AI_RATE_WINDOW_SECONDS=60,
        TRACKING_RATE_CAPACITY=3,
        TRACKING_RATE_REFILL=3,
        TRACKING_RATE_WINDOW_SECONDS=60,
        GROQ_API_KEY=None,
    )


@pytest.fixture
def app(async_engine, clock, test_settings):
    application = create_app(test_settings, clock=clock)
    maker = async_sessionmaker(async_engine, class_=SQLModelAsyncSession, expire_on_commit=False)

    async def override_session():
        async with maker() as db_session:
            try:
                yield db_session
                await db_session.commit()
            except Exception:
                await db_session.rollback()
                raise

    application.dependency_overrides[get_session] = override_session
    return application

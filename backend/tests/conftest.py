"""Shared fixtures: a throwaway SQLite database and upload root per test."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from keyshare.core.config import Settings
from keyshare.core.database import Base
from keyshare.main import create_app
from keyshare.models import User
from keyshare.services.gates import Principal
from keyshare.services.lifecycle import FileLifecycleManager
from keyshare.services.metadata_store import MetadataStore
from tests.helpers import BASE_URL, RecordingPurger


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        BASE_URL=BASE_URL,
        UPLOAD_DIRECTORY=str(tmp_path / "uploads"),
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'keyshare.db'}",
    )


@pytest.fixture
def purger(settings: Settings) -> RecordingPurger:
    return RecordingPurger(settings)


@pytest_asyncio.fixture
async def app(settings: Settings, purger: RecordingPurger):
    app = create_app(settings, purger=purger)
    async with app.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    app.state.object_store.ensure_root()
    async with app.state.session_factory() as session:
        session.add_all([User(id=1, key="k1"), User(id=2, key="k2")])
        await session.commit()
    yield app
    await app.state.engine.dispose()


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def db(app):
    async with app.state.session_factory() as session:
        yield session


@pytest.fixture
def object_store(app):
    return app.state.object_store


@pytest.fixture
def lifecycle(app, db, object_store, purger) -> FileLifecycleManager:
    return FileLifecycleManager(app.state.settings, MetadataStore(db), object_store, purger)


@pytest.fixture
def owner() -> Principal:
    return Principal(user_id=1, key="k1", target_path="report.pdf")

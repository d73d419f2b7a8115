"""Shared fixtures: a throwaway SQLite database per test, seeded users, and an
ASGI client whose auth dependencies are swapped for a settable viewer."""
import os
import tempfile

# settings and the auth backend read these at import time
TEST_KEY = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"
TEST_IV = "0f1e2d3c4b5a69788796a5b4c3d2e1f0"
os.environ.setdefault("SECRET", "test-secret-not-for-production")
os.environ.setdefault("ENCRYPTION_KEY", TEST_KEY)
os.environ.setdefault("ENCRYPTION_IV", TEST_IV)
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STORAGE_ROOT", tempfile.mkdtemp(prefix="sharebook-storage-"))

import httpx
import pytest
import pytest_asyncio

from sharebook.database import init_db, make_engine, make_session_maker
from sharebook.encryption import KeyCipher
from sharebook.models import Project, User, Visibility
from sharebook.settings.config import Settings


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'sharebook.db'}"


@pytest_asyncio.fixture
async def engine(db_url):
    engine = make_engine(db_url)
    await init_db(engine, create_all=True)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return make_session_maker(engine)


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def key_material():
    return TEST_KEY, TEST_IV


@pytest.fixture
def cipher(key_material):
    return KeyCipher(*key_material)


async def _make_user(db, email, display_name=None):
    user = User(
        email=email,
        hashed_password="not-a-real-hash",
        is_active=True,
        is_superuser=False,
        is_verified=True,
        display_name=display_name,
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def owner(db):
    return await _make_user(db, "owner@example.com", display_name="Olive Owner")


@pytest_asyncio.fixture
async def stranger(db):
    return await _make_user(db, "stranger@example.com")


@pytest_asyncio.fixture
async def public_project(db, owner):
    project = Project(title="Open Book", description="Anyone can read", user_id=owner.id,
                      visibility=Visibility.public)
    db.add(project)
    await db.commit()
    return project


@pytest_asyncio.fixture
async def private_project(db, owner):
    project = Project(title="Secret Diary", user_id=owner.id, visibility=Visibility.private)
    db.add(project)
    await db.commit()
    return project


# ---------- HTTP ----------

class Viewer:
    """Whoever the auth dependencies resolve to; None means anonymous."""

    def __init__(self):
        self.user = None


@pytest.fixture
def app_settings(db_url, tmp_path):
    return Settings(
        DATABASE_URL=db_url,
        SECRET="test-secret-not-for-production",
        ENCRYPTION_KEY=TEST_KEY,
        ENCRYPTION_IV=TEST_IV,
        STORAGE_ROOT=str(tmp_path / "storage"),
        STORAGE_PUBLIC_URL="/storage",
        OPENAI_BASE_URL="https://llm.test/v1",
    )


@pytest.fixture
def viewer():
    return Viewer()


@pytest_asyncio.fixture
async def app(app_settings, engine, viewer):
    from fastapi import HTTPException

    from sharebook.main import create_app
    from sharebook.users import current_active_user, current_optional_user

    application = create_app(app_settings)

    def _required():
        if viewer.user is None:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return viewer.user

    application.dependency_overrides[current_active_user] = _required
    application.dependency_overrides[current_optional_user] = lambda: viewer.user
    yield application
    await application.state.engine.dispose()


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

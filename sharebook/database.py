from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base

Base = declarative_base()


def make_engine(url: str) -> AsyncEngine:
    engine = create_async_engine(url, echo=False, future=True)

    if url.startswith("sqlite"):
        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_conn, connection_record):
            # chapter rows rely on ON DELETE CASCADE from projects
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def make_session_maker(engine: AsyncEngine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


async def get_db(request: Request):
    async with request.app.state.session_maker() as session:
        yield session


async def init_db(engine: AsyncEngine, create_all: bool = False):
    # Only run create_all in dev/tests, never in prod with Alembic
    if create_all:
        from . import models  # noqa: F401  registers tables on Base
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

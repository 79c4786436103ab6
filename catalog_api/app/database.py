"""SQLAlchemy async engine, session, and dependency."""

from __future__ import annotations

from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from app.config import get_settings


def build_engine(dsn: str) -> AsyncEngine:
    """Create the async engine; SQLite (tests, local runs) shares one connection."""
    if dsn.startswith("sqlite"):
        engine = create_async_engine(
            dsn,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )

        # the driver defers BEGIN until the first DML, which breaks SAVEPOINT
        @event.listens_for(engine.sync_engine, "connect")
        def _disable_driver_begin(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

        return engine
    return create_async_engine(
        dsn,
        pool_size=20,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=300,
        echo=False,
    )


settings = get_settings()

engine = build_engine(settings.database_dsn)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

"""Database connection and session management using SQLAlchemy async ORM"""
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from knowloop.errors import UpstreamError

logger = logging.getLogger(__name__)

# Base class for declarative models
Base = declarative_base()


def _engine_options(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        # In-memory SQLite must share one connection across sessions
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    # pool_size=20: Keep 20 connections alive in the pool
    # max_overflow=30: Allow 30 additional connections under load (total 50 max)
    # pool_recycle=3600: Recycle connections every hour to prevent stale connections
    return {
        "pool_size": 20,
        "max_overflow": 30,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
    }


class Database:
    """
    Explicitly constructed storage handle.

    Opened once at application startup and closed at shutdown; every
    service receives sessions from it instead of reaching for a global engine.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    async def open(self) -> None:
        if self._engine is not None:
            return
        self._engine = create_async_engine(self.url, echo=self.echo, **_engine_options(self.url))
        self._sessionmaker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info(f"Database engine opened ({self._engine.dialect.name})")

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Database engine closed")

    async def create_all(self) -> None:
        """Create every table known to Base.metadata (tests and first-run bootstrap)"""
        # Register all models on the metadata before creating tables
        import knowloop.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        import knowloop.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Transactional unit of work.

        Commits when the block exits cleanly, rolls back on any exception.
        Storage failures are re-raised as UpstreamError.
        """
        if self._sessionmaker is None:
            raise RuntimeError("Database is not open")
        async with self._sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Storage failure: {e}", exc_info=True)
                raise UpstreamError("Storage operation failed", code="STORAGE_ERROR") from e
            except Exception:
                await session.rollback()
                raise


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for FastAPI endpoints to get database session.

    Usage in FastAPI:
        @router.get("/items")
        async def read_items(db: AsyncSession = Depends(get_db)):
            result = await db.execute(select(Item))
            return result.scalars().all()
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from starlette.requests import Request
from typing import AsyncGenerator, Optional

from studentdesk.core.config import settings

# Create base class for models (can be defined before engine)
Base = declarative_base()


def normalize_database_url(db_url: str) -> str:
    """Get properly formatted async database URL"""
    if db_url.startswith("postgresql://"):
        db_url = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif db_url.startswith("sqlite:///"):
        db_url = db_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return db_url


class Database:
    """
    Store client handle.

    Owns the engine and the session factory. Created once by the application
    lifespan (or by a script / test fixture), connected explicitly and
    disconnected on shutdown. Request handlers receive sessions through
    the ``get_db`` dependency, never through a module global.
    """

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        self.url = normalize_database_url(url or settings.DATABASE_URL)
        self.echo = settings.DB_ECHO if echo is None else echo
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    async def connect(self) -> None:
        """
        Create the engine and session factory.

        Connection pooling strategy:
        - SQLite: NullPool (required for thread safety)
        - PostgreSQL: default QueuePool with pre-ping
        """
        if self._engine is not None:
            return

        if "sqlite" in self.url:
            self._engine = create_async_engine(
                self.url,
                echo=self.echo,
                connect_args={"check_same_thread": False},
                poolclass=NullPool,
            )
        else:
            self._engine = create_async_engine(
                self.url,
                echo=self.echo,
                pool_pre_ping=True,  # Verify connections before use
            )

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False
        )

    async def disconnect(self) -> None:
        """Dispose the engine"""
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_factory = None

    async def create_all(self) -> None:
        """Create tables and unique indexes"""
        import studentdesk.models  # noqa: F401 - register models on the metadata

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def ping(self) -> bool:
        """Run a trivial query against the store"""
        async with self.session() as session:
            await session.execute(text("SELECT 1"))
        return True

    def session(self) -> AsyncSession:
        """Create a new async session"""
        if self._session_factory is None:
            raise RuntimeError("Database is not connected")
        return self._session_factory()


# Dependency to get DB session
async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session from the application's store handle"""
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
            # Only commit if there are pending changes (new, dirty, or deleted objects)
            if session.new or session.dirty or session.deleted:
                await session.commit()
        except Exception:
            await session.rollback()
            raise

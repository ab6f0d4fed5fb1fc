from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from contentdesk.config import Settings
import os
import logging
import asyncio

logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()


def create_engine_for_database(settings: Settings) -> AsyncEngine:
    """Create the appropriate async engine based on database configuration."""
    if settings.use_sqlite:
        # SQLite configuration (for local development and testing)
        is_memory = ":memory:" in settings.database_url
        if not is_memory:
            database = make_url(settings.database_url).database
            if database:
                os.makedirs(os.path.dirname(os.path.abspath(database)), exist_ok=True)
        logger.info("Using SQLite database for local development")
        engine_kwargs = dict(
            echo=settings.app_debug,
            connect_args={
                "check_same_thread": False,
            },
        )
        if is_memory:
            # In-memory SQLite needs StaticPool so all connections share
            # the same database (otherwise each connection gets its own).
            engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["connect_args"]["timeout"] = 30
        engine = create_async_engine(settings.database_url, **engine_kwargs)

        @event.listens_for(engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            if not is_memory:
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA busy_timeout=30000")
                cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

        return engine

    # PostgreSQL configuration (production)
    logger.info(f"Connecting to PostgreSQL at {settings.postgres_host}:{settings.postgres_port}")
    return create_async_engine(
        settings.database_url,
        echo=settings.app_debug,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_pre_ping=True,  # Verify connections before using
        pool_recycle=settings.db_pool_recycle,
    )


class Database:
    """Owns the engine (and its connection pool) for one application instance.

    Sessions are handed out per operation; ``async with db.session()`` always
    returns the connection to the pool, including on error paths.
    """

    def __init__(self, settings: Settings, engine: AsyncEngine | None = None):
        self.settings = settings
        self.engine = engine or create_engine_for_database(settings)
        self._session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def session(self) -> AsyncSession:
        """Get a new async session.

        Usage: async with db.session() as session: ...
        """
        return self._session_maker()

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def init_schema(self) -> None:
        """Create missing tables with retry logic.

        Only ever adds tables; existing tables are left as they are.
        """
        # Register every model on the metadata
        import contentdesk.models  # noqa: F401

        max_retries = self.settings.db_init_max_retries
        base_delay = 2

        for attempt in range(max_retries):
            try:
                async with self.engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
                logger.info("Database tables initialized")
                return
            except Exception as e:
                if attempt < max_retries - 1:
                    delay = base_delay * (2 ** attempt)
                    logger.warning(f"Database connection attempt {attempt + 1}/{max_retries} failed: {e}. Retrying in {delay}s...")
                    await asyncio.sleep(delay)
                else:
                    logger.error(f"Database initialization failed after {max_retries} attempts: {e}")
                    raise

    async def dispose(self) -> None:
        await self.engine.dispose()

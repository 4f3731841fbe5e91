# crudcore/storage/database/db_connector.py
from collections.abc import AsyncGenerator
from typing import Union

from pydantic import SecretStr
from sqlalchemy.engine.url import make_url, URL
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from crudcore.core.logger import get_logger

logger = get_logger(__name__)


def _raw_url(database_url: Union[str, SecretStr]) -> str:
    if isinstance(database_url, SecretStr):
        return database_url.get_secret_value()
    return database_url


def build_engine(database_url: Union[str, SecretStr], *, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine for a database URL.

    PostgreSQL URLs are rebuilt without their query string and forced onto the
    asyncpg driver (sslmode/channel_binding must not reach asyncpg.connect()).
    In-memory SQLite shares one connection across the whole engine.
    """
    u = make_url(_raw_url(database_url))

    if u.get_backend_name() == "postgresql":
        sslmode = u.query.get("sslmode")
        clean_url: URL = URL.create(
            drivername="postgresql+asyncpg",
            username=u.username,
            password=u.password,
            host=u.host,
            port=u.port,
            database=u.database,
        )
        logger.debug("[db] postgres engine host=%s db=%s", u.host, u.database)
        return create_async_engine(
            clean_url.render_as_string(hide_password=False),
            echo=echo,
            poolclass=NullPool,
            pool_pre_ping=True,
            execution_options={"isolation_level": "READ COMMITTED"},
            connect_args={
                "ssl": sslmode not in (None, "disable"),
                "statement_cache_size": 0,   # PgBouncer: sin prepared statements
            },
        )

    if u.get_backend_name() == "sqlite" and u.database in (None, "", ":memory:"):
        logger.debug("[db] in-memory sqlite engine")
        return create_async_engine(
            u,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

    return create_async_engine(u, echo=echo, pool_pre_ping=True)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False, class_=AsyncSession)


async def open_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    session: AsyncSession = session_factory()
    try:
        yield session
    finally:
        await session.close()

"""
Tests for settings, engine wiring and the DI container.
"""

import logging

import pytest
from pydantic import SecretStr, ValidationError
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.pool import NullPool, StaticPool

from crudcore.containers import CoreContainer
from crudcore.core.logger import configure_logging, get_logger
from crudcore.core.settings import Settings
from crudcore.repositories import BaseRepository
from crudcore.services import BaseService
from crudcore.storage.database import build_engine, open_session
from crudcore.utils.tx import maybe_begin
from tests.models import Customer, CustomerDTO


class TestSettings:
    """Test configuration validation."""

    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.DEFAULT_PAGE_SIZE == 25
        assert s.DEFAULT_BATCH_SIZE > 0

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, LOG_LEVEL=" debug ").LOG_LEVEL == "DEBUG"

    def test_empty_database_url_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, DATABASE_URL="")

    def test_page_size_above_max_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, DEFAULT_PAGE_SIZE=50, MAX_PAGE_SIZE=10)

    def test_non_positive_batch_size_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, DEFAULT_BATCH_SIZE=0)


class TestBuildEngine:
    """Test engine construction per backend."""

    @pytest.mark.asyncio
    async def test_postgres_url_uses_asyncpg_without_query(self):
        engine = build_engine(SecretStr("postgresql://user:pw@db.example.com:5432/app?sslmode=require"))
        try:
            assert engine.url.drivername == "postgresql+asyncpg"
            assert engine.url.database == "app"
            assert dict(engine.url.query) == {}
            assert isinstance(engine.pool, NullPool)
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_in_memory_sqlite_shares_connection(self):
        engine = build_engine("sqlite+aiosqlite:///:memory:")
        try:
            assert isinstance(engine.pool, StaticPool)
            async with engine.connect() as conn:
                assert (await conn.execute(text("select 1"))).scalar() == 1
        finally:
            await engine.dispose()


class TestCoreContainer:
    """Test dependency-injector wiring."""

    @pytest.mark.asyncio
    async def test_engine_and_session_factory_from_settings(self):
        container = CoreContainer()
        container.settings.override(Settings(_env_file=None, DATABASE_URL="sqlite+aiosqlite:///:memory:"))

        engine = container.engine()
        try:
            assert isinstance(engine, AsyncEngine)
            assert container.engine() is engine

            sessions = open_session(container.session_factory())
            session = await sessions.__anext__()
            assert (await session.execute(text("select 1"))).scalar() == 1
            await sessions.aclose()
        finally:
            await engine.dispose()
            container.settings.reset_override()

    def test_repository_and_service_factories(self):
        container = CoreContainer()
        repo = container.repository(Customer)
        service = container.service(repo, CustomerDTO)

        assert isinstance(repo, BaseRepository)
        assert repo.model is Customer
        assert isinstance(service, BaseService)
        assert service.repository is repo
        assert service.dto_type is CustomerDTO


class TestLogging:
    """Test package logger helpers."""

    def test_get_logger_nests_under_package(self):
        assert get_logger("crudcore.services.base_service").name == "crudcore.services.base_service"
        assert get_logger("billing").name == "crudcore.billing"

    def test_configure_logging_is_idempotent(self):
        root = configure_logging("WARNING")
        handlers = list(root.handlers)
        assert configure_logging("DEBUG") is root
        assert root.handlers == handlers
        assert root.level == logging.DEBUG
        configure_logging()


class TestMaybeBegin:
    """Test transaction joining."""

    @pytest.mark.asyncio
    async def test_opens_and_commits_when_idle(self, session):
        async with maybe_begin(session) as owned:
            assert owned is True
            session.add(Customer(name="tx"))
        assert not session.in_transaction()

    @pytest.mark.asyncio
    async def test_joins_caller_transaction(self, session):
        await session.begin()
        async with maybe_begin(session) as owned:
            assert owned is False
        assert session.in_transaction()
        await session.rollback()

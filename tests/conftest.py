"""
Test configuration and fixtures
"""

import pytest
import pytest_asyncio

from crudcore.repositories import BaseRepository
from crudcore.storage.database import build_engine, build_session_factory
from tests.models import Base, Customer, CustomerDTO, CustomerService

# In-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database with all tables for each test."""
    engine = build_engine(SQLALCHEMY_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    factory = build_session_factory(engine)
    async with factory() as s:
        yield s


@pytest.fixture
def customer_repository():
    return BaseRepository[Customer, int](Customer)


@pytest.fixture
def customer_service(customer_repository):
    return CustomerService(customer_repository, CustomerDTO)

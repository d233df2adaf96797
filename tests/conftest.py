"""
Shared fixtures.

- ``ledger``: in-memory reader, empty
- ``db_session``: AsyncSession on a fresh in-memory SQLite database
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from splitledger.db.session import Base
from splitledger.services.memory_ledger_reader import InMemoryLedgerReader
from splitledger.services.sql_ledger_reader import SqlLedgerReader  # noqa: F401  registers models


@pytest.fixture
def ledger() -> InMemoryLedgerReader:
    return InMemoryLedgerReader()


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

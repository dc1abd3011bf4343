"""
Shared fixtures: an in-memory SQLite database with the full schema.

SQLite only enforces foreign keys (and ON DELETE CASCADE) when asked to, so
every connection turns the pragma on unless a test opts out.
"""

import datetime

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.pool import StaticPool

from discord_clone.adapter import SQLAlchemyAdapter
from discord_clone.database import Database

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def make_database(enforce_foreign_keys: bool = True) -> Database:
    # StaticPool keeps the single in-memory database alive across sessions
    database = Database(TEST_DATABASE_URL, poolclass=StaticPool, connect_args={"check_same_thread": False})

    if enforce_foreign_keys:
        @event.listens_for(database.engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return database


@pytest_asyncio.fixture
async def database():
    database = make_database()
    await database.create_all()
    yield database
    await database.dispose()


@pytest_asyncio.fixture
async def db(database):
    async with database.session() as session:
        yield session


@pytest_asyncio.fixture
async def adapter(database):
    return SQLAlchemyAdapter(database)


@pytest.fixture
def expires() -> datetime.datetime:
    now = datetime.datetime.now(datetime.timezone.utc)
    return now + datetime.timedelta(days=30)

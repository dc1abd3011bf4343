import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from discord_clone.models import Base
from discord_clone.settings import Settings

logger = logging.getLogger(__name__)


class Database:
    """Pooled connection to the relational store.

    One instance is created per process (see ``main.create_app``) and handed
    to everything that talks to the database. ``dispose()`` closes the pool.
    """

    def __init__(self, url: str, *, echo: bool = False, **engine_kwargs):
        self.engine = create_async_engine(url, echo=echo, **engine_kwargs)
        self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False, class_=AsyncSession)
        logger.info("Database engine created for %s", self.engine.url.render_as_string(hide_password=True))

    @classmethod
    def from_settings(cls, settings: Settings, **engine_kwargs) -> "Database":
        return cls(settings.DATABASE_URL, echo=settings.DATABASE_ECHO, pool_pre_ping=True, **engine_kwargs)

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def ping(self) -> bool:
        async with self.engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            return result.scalar() == 1

    # Schema changes normally go through migrations; these are for dev and tests.
    async def create_all(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self):
        await self.engine.dispose()
        logger.info("Database engine disposed")

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException

from discord_clone.adapter import SQLAlchemyAdapter
from discord_clone.auth import build_auth_options
from discord_clone.database import Database
from discord_clone.deps import get_database
from discord_clone.logging_config import setup_logging
from discord_clone.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_settings = settings or get_settings()
        setup_logging(app_settings.LOG_LEVEL)

        database = Database.from_settings(app_settings)
        if app_settings.DATABASE_CREATE_TABLES:
            await database.create_all()
            logger.info("Database tables created")

        adapter = SQLAlchemyAdapter(database)
        app.state.database = database
        app.state.adapter = adapter
        app.state.auth_options = build_auth_options(app_settings, adapter)
        try:
            yield
        finally:
            await database.dispose()

    app = FastAPI(title="Discord Clone Auth & Persistence", lifespan=lifespan)

    @app.get("/")
    def read_root():
        return {"message": "Welcome to the Discord Clone API"}

    @app.get("/health")
    async def health(database: Database = Depends(get_database)):
        try:
            await database.ping()
        except Exception as exc:
            logger.exception("Database health check failed")
            raise HTTPException(status_code=503, detail="Database unavailable") from exc
        return {"status": "ok"}

    return app


app = create_app()

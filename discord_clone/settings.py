from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

# Plain mysql:// URLs are pointed at the async driver
ASYNC_DRIVERS = {
    "mysql": "mysql+aiomysql",
    "mariadb": "mariadb+aiomysql",
}

class Settings(BaseSettings):
    DATABASE_URL: str
    DATABASE_ECHO: bool = False
    # Tables normally come from migrations; set for local development only
    DATABASE_CREATE_TABLES: bool = False
    LOG_LEVEL: str = "INFO"

    AUTH_GITHUB_ID: Optional[str] = None
    AUTH_GITHUB_SECRET: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("DATABASE_URL is empty")
        try:
            url = make_url(value.strip())
        except ArgumentError as exc:
            raise ValueError(f"DATABASE_URL is not a valid database URL: {exc}") from exc
        drivername = ASYNC_DRIVERS.get(url.drivername, url.drivername)
        return url.set(drivername=drivername).render_as_string(hide_password=False)

@lru_cache
def get_settings() -> Settings:
    return Settings()

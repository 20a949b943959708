"""
Application configuration using pydantic-settings.
All config is loaded from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel
from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL, make_url


class DatabaseConfig(BaseModel):
    """Everything the engine factory needs to build the connection pool."""

    url: str
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    echo: bool = False

    model_config = {"frozen": True}


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Booking Graph API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8084
    GRAPHIQL_ENABLED: Optional[bool] = None

    # Database. DATABASE_URL wins over the PG_* parts when set.
    DATABASE_URL: Optional[str] = None
    PG_HOST: str = "localhost"
    PG_PORT: int = 5432
    PG_DATABASE: str = "bookings"
    PG_USER: str = "postgres"
    PG_PASSWORD: str = "postgres"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 minutes

    # JWT Auth
    SECRET_KEY: str = "super-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Roles allowed to accept or reject bookings
    ACCEPT_ROLES: list[str] = ["admin"]

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
    }

    @property
    def graphiql_enabled(self) -> bool:
        if self.GRAPHIQL_ENABLED is not None:
            return self.GRAPHIQL_ENABLED
        return self.ENVIRONMENT == "development"

    def database_url(self, sync: bool = False) -> str:
        """Async (asyncpg) URL for the app, sync (psycopg2) URL for migrations."""
        driver = "postgresql+psycopg2" if sync else "postgresql+asyncpg"
        if self.DATABASE_URL:
            url = make_url(self.DATABASE_URL)
            if url.get_backend_name() == "postgresql":
                url = url.set(drivername=driver)
            return url.render_as_string(hide_password=False)
        return URL.create(
            driver,
            username=self.PG_USER,
            password=self.PG_PASSWORD,
            host=self.PG_HOST,
            port=self.PG_PORT,
            database=self.PG_DATABASE,
        ).render_as_string(hide_password=False)

    def database_config(self) -> DatabaseConfig:
        return DatabaseConfig(
            url=self.database_url(),
            pool_size=self.DB_POOL_SIZE,
            max_overflow=self.DB_MAX_OVERFLOW,
            pool_timeout=self.DB_POOL_TIMEOUT,
            pool_recycle=self.DB_POOL_RECYCLE,
            echo=self.DEBUG,
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings()

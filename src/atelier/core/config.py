import logging
import os
from pathlib import Path
from typing import ClassVar, Optional, Union

from dotenv import load_dotenv
from pydantic import ConfigDict, Field, validator
from pydantic_settings import BaseSettings

log_format = logging.Formatter("%(asctime)s : %(levelname)s - %(message)s")

# root logger
root_logger = logging.getLogger()
root_logger.setLevel(logging.INFO)

# standard stream handler
stream_handler = logging.StreamHandler()
stream_handler.setFormatter(log_format)
root_logger.addHandler(stream_handler)

logger = logging.getLogger(__name__)

# Load .env file from docker/server directory
env_path = Path("./docker/server/.env")
if env_path.exists():
    load_dotenv(dotenv_path=env_path)
    logger.info(f"Loaded environment from {env_path}")
else:
    logger.warning(f"No .env file found at {env_path}, using process environment")


class Settings(BaseSettings):
    ENV: str = Field(
        default_factory=lambda: os.getenv("ENV", "development"),
        description="development, test or production"
    )
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "atelier-api"

    # Supabase Configuration
    SUPABASE_URL: Optional[str] = Field(
        default_factory=lambda: os.getenv("SUPABASE_URL"),
        description="Supabase project URL"
    )
    SUPABASE_KEY: Optional[str] = Field(
        default_factory=lambda: os.getenv("SUPABASE_KEY"),
        description="Supabase anon/public key"
    )
    SUPABASE_SERVICE_KEY: Optional[str] = Field(
        default_factory=lambda: os.getenv("SUPABASE_SERVICE_KEY"),
        description="Supabase service role key, used for admin auth operations"
    )
    SUPABASE_JWT_SECRET: Optional[str] = Field(
        default_factory=lambda: os.getenv("SUPABASE_JWT_SECRET"),
        description="When set, access tokens are verified locally instead of via the auth API"
    )
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str = "authenticated"

    # Database Configuration
    DATABASE_URL: str = Field(
        default_factory=lambda: os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./atelier.db"),
        description="Async database URL (postgresql+asyncpg or sqlite+aiosqlite)"
    )

    # Guard / authorization
    SESSION_CACHE_TTL_SECONDS: int = 0
    SESSION_COOKIE_NAME: str = "sb-access-token"
    POLICIES_PATH: Optional[str] = None

    # Server Configuration
    SERVER_PORT: int = 8001
    BACKEND_CORS_ORIGINS: Union[str, list[str]] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"
    INCLUDE_ERROR_DETAILS: bool = False

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, list[str]]) -> list[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, list):
            return v
        elif isinstance(v, str):
            return [v]
        raise ValueError(v)

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    @property
    def include_error_details(self) -> bool:
        return self.INCLUDE_ERROR_DETAILS and not self.is_production

    Config: ClassVar[ConfigDict] = ConfigDict(arbitrary_types_allowed=True)


settings = Settings()

root_logger.setLevel(settings.LOG_LEVEL.upper())


def validate_production_settings() -> None:
    """Fail fast when a production deployment is missing its collaborators."""
    if not settings.is_production:
        return
    if not settings.SUPABASE_URL:
        raise ValueError("SUPABASE_URL environment variable is required")
    if not settings.SUPABASE_KEY:
        raise ValueError("SUPABASE_KEY environment variable is required")
    if settings.DATABASE_URL.startswith("sqlite"):
        raise ValueError("DATABASE_URL must point to PostgreSQL in production")

"""
Portfolio CMS - Configuration Module
====================================
All configuration is loaded from environment variables.
No secrets are hardcoded; the JWT secret is the Supabase project secret.
"""

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env."""

    # App
    app_name: str = "Portfolio CMS"
    app_env: str = "development"
    app_debug: bool = True
    app_port: int = 8000

    # Auth (tokens are issued by Supabase Auth and only verified here)
    jwt_secret: str = Field(..., min_length=32)
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "postgres"
    postgres_user: str = "postgres"
    postgres_password: str = Field(..., min_length=8)

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def database_url_sync(self) -> str:
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Write path: transient storage retries
    storage_retry_attempts: int = 3
    storage_retry_min_wait_seconds: float = 0.2
    storage_retry_max_wait_seconds: float = 2.0

    # Write path: read-after-write confirmation
    confirm_attempts: int = 3
    confirm_wait_seconds: float = 0.25
    confirm_timeout_seconds: float = 3.0

    # Search projection
    search_config: str = "english"
    search_default_limit: int = 20

    # Listing
    list_max_per_page: int = 100

    # CORS
    cors_origins: str = "http://localhost:3003,http://localhost:8000"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        env_prefix = "PORTFOLIO_CMS_"


def _load_dotenv_pairs(dotenv_path: str = ".env") -> dict[str, str]:
    path = Path(dotenv_path)
    if not path.exists():
        return {}

    values: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            values[key] = value
    return values


# Supabase tooling writes these names; map them onto our prefixed fields.
_SUPABASE_ALIASES = {
    "SUPABASE_JWT_SECRET": "JWT_SECRET",
    "SUPABASE_DB_HOST": "POSTGRES_HOST",
    "SUPABASE_DB_PASSWORD": "POSTGRES_PASSWORD",
}


def _bootstrap_prefixed_env() -> None:
    """Populate PORTFOLIO_CMS_ vars from unprefixed or Supabase keys."""
    dotenv_pairs = _load_dotenv_pairs(".env")
    prefix = "PORTFOLIO_CMS_"

    for field_name in Settings.model_fields.keys():
        legacy_key = field_name.upper()
        prefixed_key = f"{prefix}{legacy_key}"

        if os.getenv(prefixed_key):
            continue

        legacy_value = os.getenv(legacy_key)
        if legacy_value is not None:
            os.environ[prefixed_key] = legacy_value
            continue

        if legacy_key in dotenv_pairs:
            os.environ[prefixed_key] = dotenv_pairs[legacy_key]

    for alias, target in _SUPABASE_ALIASES.items():
        prefixed_key = f"{prefix}{target}"
        if os.getenv(prefixed_key):
            continue
        alias_value = os.getenv(alias) or dotenv_pairs.get(alias)
        if alias_value:
            os.environ[prefixed_key] = alias_value


_bootstrap_prefixed_env()


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()

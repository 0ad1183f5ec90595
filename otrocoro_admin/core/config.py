"""
Application configuration

SECURITY: Defaults are fail-safe for production.
- DEBUG defaults to False
- DATABASE_URL has no default (will fail if not set outside development)
- Runtime validation catches insecure configurations
"""
import json
import os
import logging
from typing import List, Union
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Default CORS origins (admin frontend dev servers)
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]

DEVELOPMENT_DATABASE_URL = "sqlite+aiosqlite:///./otrocoro_admin.db"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App - defaults are PRODUCTION safe
    APP_NAME: str = "Otrocoro Admin"
    DEBUG: bool = False  # SECURE DEFAULT: off in production
    ENVIRONMENT: str = "production"  # Explicit env marker
    LOG_LEVEL: str = "INFO"

    # Database - NO DEFAULT (will fail if not set)
    DATABASE_URL: str

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def convert_database_url(cls, v):
        """Convert plain postgres:// URLs to the asyncpg driver format."""
        if not v:
            return v
        if v.startswith("postgres://"):
            v = v.replace("postgres://", "postgresql+asyncpg://", 1)
        elif v.startswith("postgresql://") and "+asyncpg" not in v:
            v = v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    # Document store backend: "sql" (SQLAlchemy JSON documents) or "memory"
    DOCUMENT_STORE_BACKEND: str = "sql"

    @field_validator("DOCUMENT_STORE_BACKEND")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("sql", "memory"):
            raise ValueError("DOCUMENT_STORE_BACKEND must be 'sql' or 'memory'")
        return v

    # Database Pool Configuration (ignored for SQLite)
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 3600  # 1 hour

    # CORS - accepts JSON array or comma-separated string
    CORS_ORIGINS: Union[str, List[str]] = DEFAULT_CORS_ORIGINS

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            if not v or v.strip() == "":
                return DEFAULT_CORS_ORIGINS
            # Try JSON first
            if v.startswith("["):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            # Fallback to comma-separated
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # Collections
    BUNDLES_COLLECTION: str = "bundles"
    PRODUCTS_COLLECTION: str = "products"

    # Bundle rules
    BUNDLE_MIN_ITEMS: int = 2
    BUNDLE_NAME_MIN_LENGTH: int = 3
    BUNDLE_MAX_ITEMS_WARNING: int = 10

    # Pagination
    PAGINATION_DEFAULT_LIMIT: int = 20
    PAGINATION_MAX_LIMIT: int = 100

    @model_validator(mode="after")
    def validate_production_config(self):
        """Runtime validation to catch insecure production configurations."""
        if self.ENVIRONMENT == "production":
            errors = []

            if self.DEBUG:
                errors.append(
                    "DEBUG=True is forbidden in production. "
                    "Set DEBUG=false or ENVIRONMENT=development"
                )

            if self.DATABASE_URL.startswith("sqlite"):
                errors.append(
                    "SQLite DATABASE_URL detected in production. "
                    "Configure a PostgreSQL connection."
                )

            if self.DOCUMENT_STORE_BACKEND == "memory":
                errors.append(
                    "In-memory document store is forbidden in production "
                    "(data would be lost on restart)."
                )

            for origin in self.CORS_ORIGINS:
                if origin == "*":
                    errors.append("Wildcard '*' CORS origin is forbidden in production")

            if errors:
                raise ValueError(
                    "PRODUCTION CONFIGURATION VIOLATIONS:\n" + "\n".join(f"  - {e}" for e in errors)
                )

        return self


# Try to load settings, provide helpful error on failure
try:
    settings = Settings()
except Exception:
    # In development, allow fallback defaults
    if os.getenv("ENVIRONMENT", "development") == "development":
        logger.warning(
            "Settings validation failed, using development defaults. "
            "Set DATABASE_URL in .env file."
        )
        os.environ.setdefault("DATABASE_URL", DEVELOPMENT_DATABASE_URL)
        os.environ.setdefault("ENVIRONMENT", "development")
        settings = Settings()
    else:
        raise

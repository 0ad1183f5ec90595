"""
Database configuration and session management

Configurable connection pooling for production vs local dev. SQLite (local
development and tests) does not take pool sizing arguments.
"""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from otrocoro_admin.core.config import settings

Base = declarative_base()


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine with pool settings matching the environment."""
    if database_url.startswith("sqlite"):
        pool_config = {}
    elif settings.ENVIRONMENT == "production":
        # Production: Use connection pooling with configured limits
        pool_config = {
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_recycle": settings.DB_POOL_RECYCLE,
            "pool_pre_ping": True,  # Verify connections before use
        }
    else:
        # Development: Simpler pool for local development
        pool_config = {
            "pool_size": 2,
            "max_overflow": 5,
            "pool_pre_ping": True,
        }

    return create_async_engine(database_url, echo=echo, future=True, **pool_config)


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_models(bind: AsyncEngine = engine) -> None:
    """Create tables that do not exist yet."""
    # Import models to register them with SQLAlchemy
    from otrocoro_admin.models import document  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

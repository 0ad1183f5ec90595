"""
Otrocoro Admin Backend
FastAPI application entry point

- Bundle (combo) administration under /admin/bundles
- Document store selected by DOCUMENT_STORE_BACKEND (sql | memory)
- Structured error bodies for AdminBaseError, sanitized 500s otherwise
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from otrocoro_admin import __version__
from otrocoro_admin.api.routes import admin_bundles
from otrocoro_admin.core.config import settings
from otrocoro_admin.core.database import AsyncSessionLocal, engine, init_models
from otrocoro_admin.core.document_store import DocumentStore
from otrocoro_admin.core.error_handler import register_error_handlers
from otrocoro_admin.core.memory_store import InMemoryDocumentStore
from otrocoro_admin.core.sql_store import SqlDocumentStore

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

logger = logging.getLogger(__name__)


def build_document_store() -> DocumentStore:
    """Create the store configured by DOCUMENT_STORE_BACKEND."""
    if settings.DOCUMENT_STORE_BACKEND == "memory":
        logger.warning("Using in-memory document store - data is lost on restart")
        return InMemoryDocumentStore()
    return SqlDocumentStore(AsyncSessionLocal)


def create_app(document_store: Optional[DocumentStore] = None) -> FastAPI:
    """
    Build the application.

    Args:
        document_store: Store to use instead of the configured one (tests)
    """
    store = document_store or build_document_store()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if isinstance(store, SqlDocumentStore):
            await init_models()
            logger.info("Document tables ready")

        yield

        await store.close()
        if isinstance(store, SqlDocumentStore):
            await engine.dispose()
            logger.info("Database engine disposed")

    app = FastAPI(
        lifespan=lifespan,
        title=f"{settings.APP_NAME} API",
        description="Back-office API for bundle (combo) pricing and administration.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.document_store = store

    register_error_handlers(app)

    # CORS - adjust origins for production
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(admin_bundles.router)

    @app.get("/", tags=["Health"])
    async def root():
        return {
            "message": settings.APP_NAME,
            "version": __version__,
            "status": "operational",
        }

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "document_store": settings.DOCUMENT_STORE_BACKEND,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()

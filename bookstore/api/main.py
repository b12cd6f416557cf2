"""
FastAPI Main Application
Entry point for the bookstore search API.

Run with: uvicorn bookstore.api.main:app
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import get_settings
from ..ml.config import get_ml_config
from ..ml.embeddings import get_embedding_generator
from ..ml.llm import get_language_model
from .errors import setup_error_handlers
from .middleware import RequestLoggingMiddleware
from .routers import admin_router, health_router, recommend_router, search_router

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Resolve configuration and provider strategies once per process."""
    get_ml_config()
    llm = get_language_model()
    generator = get_embedding_generator()

    logger.info("=" * 60)
    logger.info(f"Bookstore search API ready: embeddings={generator.name}")
    logger.info(f"Language model: {llm.name if llm is not None else 'not configured (fallbacks active)'}")
    logger.info("=" * 60)

    yield

    logger.info("Bookstore search API stopped")


def create_app() -> FastAPI:
    """
    Build the FastAPI application.

    Returns:
        App with CORS, request logging, error handlers and all routers
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=settings.description,
        version=settings.version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    setup_error_handlers(app)

    for router in (health_router, search_router, recommend_router, admin_router):
        app.include_router(router)

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "name": settings.app_name,
            "version": settings.version,
            "search": "/api/v1/search",
            "recommendations": "/api/v1/books/{book_id}/recommendations",
            "indexing": "/api/v1/admin/indexing/stats",
            "docs": "/docs",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "bookstore.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )

"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - ``create_app`` builds the layers and stores them in app.state
    - The lifespan reports their health at startup and releases them at shutdown
    - Dependency functions retrieve them from request.app.state
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from eshop_api.handlers import CacheHandler
from eshop_api.repositories import Database
from eshop_api.services import ResponseCacheService

logger = logging.getLogger(__name__)


def get_cache_handler(request: Request) -> CacheHandler:
    """Dependency injection for CacheHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The CacheHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "cache_handler", None)
    if handler is None:
        raise RuntimeError("CacheHandler not initialized. Check create_app setup.")
    return handler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Args:
        app: The FastAPI application instance

    Yields:
        None

    Cleanup:
        Closes the cache store and disposes the database pool on shutdown
    """
    settings = app.state.settings
    cache_service: ResponseCacheService = app.state.cache_service
    database: Database = app.state.database

    logger.info("Starting eShop API on %s:%s", settings.api_host, settings.api_port)
    logger.info("Cache backend: %s, TTL: %ss", settings.cache_backend, cache_service.ttl)

    if database.health_check():
        logger.info("Database connection successful")
    else:
        logger.warning("Database connection failed, requests will error until it is reachable")

    if not cache_service.is_healthy():
        logger.warning("Cache backend is not reachable")

    yield

    cache_service.close()
    database.dispose()
    logger.info("eShop API shut down")


# Type alias for cleaner dependency injection
CacheHandlerDep = Annotated[CacheHandler, Depends(get_cache_handler)]

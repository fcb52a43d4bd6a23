"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from wardrobe_cache.config import settings
from wardrobe_cache.handlers import CacheHandler
from wardrobe_cache.repositories import GeminiResponseGenerator, RedisCacheRepository
from wardrobe_cache.services import CacheService, CacheWarmer

logger = logging.getLogger(__name__)


def get_handler(request: Request) -> CacheHandler:
    """Dependency injection for CacheHandler from app.state.

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "cache_handler", None)
    if handler is None:
        raise RuntimeError("CacheHandler not initialized. Check lifespan setup.")
    return handler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Initializes all layers and stores in app.state:
    1. Repository (Redis) and generator (Gemini) - created explicitly
    2. Service (business logic) - stored in app.state.cache_service
    3. Warmer - started when WARMING_ENABLED is true
    4. Handler (HTTP endpoints) - stored in app.state.cache_handler
    """
    repository = RedisCacheRepository.create()
    generator = GeminiResponseGenerator.create()

    cache_service = CacheService.create(repository=repository)
    warmer = CacheWarmer(service=cache_service, generator=generator)
    cache_handler = CacheHandler(
        cache_service=cache_service,
        generator=generator,
        warmer=warmer,
        maintenance_secret=settings.maintenance_secret_key,
    )

    app.state.repository = repository
    app.state.generator = generator
    app.state.cache_service = cache_service
    app.state.warmer = warmer
    app.state.cache_handler = cache_handler

    logger.info(f"Cache service initialized (strategy: {cache_service.default_strategy})")
    logger.info(f"Redis healthy: {await cache_service.is_healthy()}")
    if not settings.has_gemini:
        logger.warning("GEMINI_API_KEY is not set; /cache/suggestions will fail")

    if settings.warming_enabled:
        warmer.start()

    yield

    await warmer.stop()
    await generator.close()

    del app.state.cache_handler
    del app.state.warmer
    del app.state.cache_service
    del app.state.generator
    del app.state.repository
    logger.info("Cache service shut down")


# Type alias for cleaner dependency injection
HandlerDep = Annotated[CacheHandler, Depends(get_handler)]

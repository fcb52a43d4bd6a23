import logging
from typing import Annotated, Any

from fastapi import FastAPI, Header
from fastapi.middleware.cors import CORSMiddleware

from wardrobe_cache.api.dependencies import HandlerDep, lifespan
from wardrobe_cache.config import settings
from wardrobe_cache.dto import (
    CacheKeyRequest,
    CacheKeyResponse,
    CacheLookupRequest,
    CacheLookupResponse,
    CacheStatsResponse,
    CacheStoreRequest,
    CacheStoreResponse,
    HealthCheckResponse,
    MaintenanceResponse,
    SuggestionRequest,
    SuggestionResponse,
    WarmCacheRequest,
    WarmCacheResponse,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Wardrobe Cache API",
    description="Context-aware caching of AI wardrobe responses using Redis",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,  # type: ignore[arg-type]
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "name": "Wardrobe Cache API",
        "version": "0.1.0",
        "description": "Context-aware caching of AI wardrobe responses using Redis",
        "endpoints": {
            "key": "/cache/key",
            "lookup": "/cache/lookup",
            "store": "/cache/store",
            "suggestions": "/cache/suggestions",
            "warm": "/cache/warm",
            "maintenance": "/cache/maintenance",
            "stats": "/cache/stats",
            "health": "/health",
            "docs": "/docs",
        },
    }


@app.get("/health", response_model=HealthCheckResponse)
async def health(handler: HandlerDep) -> HealthCheckResponse:
    """Health check endpoint."""
    return await handler.health_check()


@app.post("/cache/key", response_model=CacheKeyResponse)
async def compose_key(request: CacheKeyRequest, handler: HandlerDep) -> CacheKeyResponse:
    """Compose the context-aware cache key for a request."""
    return await handler.compose_key(request)


@app.post("/cache/lookup", response_model=CacheLookupResponse)
async def lookup(request: CacheLookupRequest, handler: HandlerDep) -> CacheLookupResponse:
    """Serve a cached response if one exists and is still valid."""
    return await handler.lookup(request)


@app.post("/cache/store", response_model=CacheStoreResponse)
async def store(request: CacheStoreRequest, handler: HandlerDep) -> CacheStoreResponse:
    """Store a freshly generated response."""
    return await handler.store(request)


@app.post("/cache/suggestions", response_model=SuggestionResponse)
async def suggestions(request: SuggestionRequest, handler: HandlerDep) -> SuggestionResponse:
    """Return a cached response, or generate, cache and return a new one."""
    return await handler.suggestions(request)


@app.post("/cache/warm", response_model=WarmCacheResponse)
async def warm(request: WarmCacheRequest, handler: HandlerDep) -> WarmCacheResponse:
    """Pre-generate responses for explicit request patterns."""
    return await handler.warm(request)


@app.post("/cache/maintenance", response_model=MaintenanceResponse)
async def maintenance(
    handler: HandlerDep,
    authorization: Annotated[str | None, Header()] = None,
) -> MaintenanceResponse:
    """Run age-based eviction and smart cleanup. Requires the maintenance bearer token."""
    return await handler.maintenance(authorization)


@app.get("/cache/stats", response_model=CacheStatsResponse)
async def get_stats(handler: HandlerDep) -> CacheStatsResponse:
    """Get cache statistics."""
    return await handler.get_stats()


def main() -> None:
    import uvicorn

    uvicorn.run(
        "wardrobe_cache.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )


if __name__ == "__main__":
    main()

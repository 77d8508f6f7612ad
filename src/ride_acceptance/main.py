"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import acceptance, distance, health
from .config import Settings, settings
from .services.acceptance.engine import AcceptanceEngine
from .services.acceptance.models import AcceptanceOptions
from .services.distance.cache import DistanceCache
from .services.distance.maps_client import DistanceMatrixClient
from .services.distance.resolver import DistanceCapability, DistanceResolver

logger = logging.getLogger(__name__)


def build_resolver(config: Settings, maps_client: DistanceCapability | None = None) -> DistanceResolver:
    """Create the process-wide cache and resolver."""
    cache = DistanceCache(
        expiry_days=config.distance_cache_expiry_days,
        max_size=config.distance_cache_max_size,
    )
    if maps_client is None and config.google_maps_api_key:
        maps_client = DistanceMatrixClient(
            api_key=config.google_maps_api_key,
            base_url=config.maps_base_url,
            timeout=config.maps_timeout_seconds,
            max_retries=config.maps_max_retries,
            backoff_seconds=config.maps_backoff_seconds,
            max_parallel_requests=config.processing_batch_size,
        )
    if maps_client is None:
        logger.warning("Google Maps API key not configured; distances will be estimated.")
    return DistanceResolver(
        cache,
        maps_client,
        fallback_min_miles=config.fallback_min_miles,
        fallback_max_miles=config.fallback_max_miles,
        fallback_minutes_per_mile=config.fallback_minutes_per_mile,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    client = app.state.resolver.client
    if isinstance(client, DistanceMatrixClient):
        await client.aclose()


def create_app(config: Settings | None = None, maps_client: DistanceCapability | None = None) -> FastAPI:
    config = config or settings
    app = FastAPI(title=config.app_name, lifespan=lifespan)
    if config.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(config.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    resolver = build_resolver(config, maps_client)
    app.state.settings = config
    app.state.resolver = resolver
    app.state.engine = AcceptanceEngine(resolver, AcceptanceOptions.from_settings(config))

    # Root endpoint for diagnostics
    @app.get("/")
    def root():
        return {
            "service": config.app_name,
            "status": "running",
            "api_prefix": config.api_prefix,
            "health": f"{config.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=config.api_prefix)
    app.include_router(acceptance.router, prefix=config.api_prefix)
    app.include_router(distance.router, prefix=config.api_prefix)
    return app


app = create_app()

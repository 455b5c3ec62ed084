"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, CORS, a
lifespan that builds the HubSpot transport, lead search, permit service and
repositories, and the v1 API router.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from src.prospector.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.prospector.api.v1.router import router as v1_router
from src.prospector.config import get_settings
from src.prospector.core.monitoring import MetricsMiddleware, get_metrics_response
from src.prospector.crm.hubspot import HubSpotTransport
from src.prospector.crm.service import HubSpotSyncService
from src.prospector.permits.service import PermitService, StaticPermitSource
from src.prospector.repositories import (
    InMemoryCompanyRepository,
    InMemoryContactRepository,
    InMemoryLeadRepository,
    InMemoryPermitRepository,
)
from src.prospector.search.serpapi import SerpAPIClient


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build services on startup, close HTTP clients on shutdown."""
    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()

    app.state.leads = InMemoryLeadRepository()
    app.state.companies = InMemoryCompanyRepository()
    app.state.contacts = InMemoryContactRepository()
    app.state.permits = InMemoryPermitRepository()

    # Permit source (static file in development; empty when unset)
    try:
        source = (
            StaticPermitSource.from_file(settings.PERMIT_DATA_FILE)
            if settings.PERMIT_DATA_FILE
            else StaticPermitSource()
        )
    except (OSError, ValueError):
        log.warning("startup.permit_source_failed", path=settings.PERMIT_DATA_FILE, exc_info=True)
        source = StaticPermitSource()
    app.state.permit_service = PermitService(
        source,
        repository=app.state.permits,
        ttl_seconds=settings.PERMIT_CACHE_TTL_SECONDS,
    )

    # HubSpot sync (disabled without an access token)
    transport = None
    hubspot_config = settings.hubspot_config()
    if hubspot_config is not None:
        transport = HubSpotTransport(hubspot_config)
        app.state.sync_service = HubSpotSyncService(
            transport,
            leads=app.state.leads,
            companies=app.state.companies,
            contacts=app.state.contacts,
            permits=app.state.permits,
            bulk_delay_seconds=settings.BULK_SYNC_DELAY_SECONDS,
        )
        log.info("startup.hubspot_sync_initialized", portal_id=hubspot_config.portal_id)
    else:
        app.state.sync_service = None
        log.warning("startup.hubspot_not_configured")

    # Lead search (disabled without a SerpAPI key)
    lead_search = None
    if settings.SERPAPI_API_KEY:
        lead_search = SerpAPIClient(
            api_key=settings.SERPAPI_API_KEY,
            base_url=settings.SERPAPI_BASE_URL,
            result_count=settings.SERPAPI_RESULT_COUNT,
        )
        log.info("startup.lead_search_initialized")
    else:
        log.warning("startup.serpapi_not_configured")
    app.state.lead_search = lead_search

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    if transport is not None:
        await transport.aclose()
    if lead_search is not None:
        await lead_search.aclose()
    log.info("shutdown.complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Permit Prospector API",
        version="0.1.0",
        description="Oil and gas lead sourcing, permit tracking and HubSpot sync",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    # CORS middleware
    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    app.include_router(v1_router, prefix="/api/v1")

    # Prometheus metrics endpoint (infrastructure route, outside v1 router)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()

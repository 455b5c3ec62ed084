"""FastAPI dependencies resolving the services built at startup.

The lifespan handler in main.py stores every service on ``app.state``. A
service left as None (for example HubSpot without an access token) makes
the endpoints that need it answer 503.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request, status

from src.prospector.crm.service import HubSpotSyncService
from src.prospector.permits.service import PermitService
from src.prospector.repositories import CompanyRepository, LeadRepository, PermitRepository
from src.prospector.search.serpapi import SerpAPIClient


def _from_state(request: Request, name: str, detail: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
    return value


def get_sync_service(request: Request) -> HubSpotSyncService:
    return _from_state(request, "sync_service", "HubSpot sync not configured")


def get_lead_search(request: Request) -> SerpAPIClient:
    return _from_state(request, "lead_search", "Lead search not configured")


def get_permit_service(request: Request) -> PermitService:
    return _from_state(request, "permit_service", "Permit search not initialized")


def get_lead_repository(request: Request) -> LeadRepository:
    return _from_state(request, "leads", "Lead storage not initialized")


def get_company_repository(request: Request) -> CompanyRepository:
    return _from_state(request, "companies", "Company storage not initialized")


def get_permit_repository(request: Request) -> PermitRepository:
    return _from_state(request, "permits", "Permit storage not initialized")

"""REST endpoints for pushing leads, companies, contacts and permit deals to HubSpot.

Every sync endpoint answers 200 with a SyncSummary, including when the sync
itself failed: ``success`` and ``errors`` carry the outcome. 503 means
HubSpot is not configured at all.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.prospector.api.deps import get_sync_service
from src.prospector.crm.schemas import BulkSyncSummary, SyncSummary
from src.prospector.crm.service import HubSpotSyncService

router = APIRouter(prefix="/sync", tags=["sync"])


class BulkSyncRequest(BaseModel):
    """Leads to sync in order. Omit ``lead_ids`` to sync every unsynced lead."""

    lead_ids: list[str] | None = None


class BulkRecordSyncRequest(BaseModel):
    """Records to sync in order. Omit ``ids`` to sync every tracked record."""

    ids: list[str] | None = None


class ConnectionResponse(BaseModel):
    connected: bool


# Declared before /leads/{lead_id} so "bulk" is not taken as an ID.
@router.post("/leads/bulk", response_model=BulkSyncSummary)
async def bulk_sync_leads(
    body: BulkSyncRequest,
    service: HubSpotSyncService = Depends(get_sync_service),
) -> BulkSyncSummary:
    return await service.bulk_sync(body.lead_ids)


@router.post("/leads/{lead_id}", response_model=SyncSummary)
async def sync_lead(
    lead_id: str,
    service: HubSpotSyncService = Depends(get_sync_service),
) -> SyncSummary:
    return await service.sync_lead_to_hubspot(lead_id)


# Bulk routes precede the {id} routes for the same reason.
@router.post("/companies/bulk", response_model=BulkSyncSummary)
async def bulk_sync_companies(
    body: BulkRecordSyncRequest,
    service: HubSpotSyncService = Depends(get_sync_service),
) -> BulkSyncSummary:
    return await service.bulk_sync_companies(body.ids)


@router.post("/contacts/bulk", response_model=BulkSyncSummary)
async def bulk_sync_contacts(
    body: BulkRecordSyncRequest,
    service: HubSpotSyncService = Depends(get_sync_service),
) -> BulkSyncSummary:
    return await service.bulk_sync_contacts(body.ids)


@router.post("/companies/{company_id}", response_model=SyncSummary)
async def sync_company(
    company_id: str,
    service: HubSpotSyncService = Depends(get_sync_service),
) -> SyncSummary:
    return await service.sync_company(company_id)


@router.post("/contacts/{contact_id}", response_model=SyncSummary)
async def sync_contact(
    contact_id: str,
    service: HubSpotSyncService = Depends(get_sync_service),
) -> SyncSummary:
    return await service.sync_contact(contact_id)


@router.post("/permits/{permit_id}/deal", response_model=SyncSummary)
async def create_deal_from_permit(
    permit_id: str,
    service: HubSpotSyncService = Depends(get_sync_service),
) -> SyncSummary:
    return await service.create_deal_from_permit(permit_id)


@router.get("/connection", response_model=ConnectionResponse)
async def test_connection(
    service: HubSpotSyncService = Depends(get_sync_service),
) -> ConnectionResponse:
    return ConnectionResponse(connected=await service.test_connection())

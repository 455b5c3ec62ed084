"""Lead search endpoints -- SerpAPI local search into the lead store."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from src.prospector.api.deps import get_lead_repository, get_lead_search
from src.prospector.repositories import LeadRepository
from src.prospector.schemas.records import Lead, ProspectState
from src.prospector.search.serpapi import SearchError, SerpAPIClient

router = APIRouter(prefix="/leads", tags=["leads"])


class LeadSearchRequest(BaseModel):
    state: ProspectState


@router.post("/search", response_model=list[Lead])
async def search_leads(
    body: LeadSearchRequest,
    search: SerpAPIClient = Depends(get_lead_search),
    leads: LeadRepository = Depends(get_lead_repository),
) -> list[Lead]:
    """Search for operators in a state and store the deduplicated leads."""
    try:
        found = await search.search_oil_gas_companies(body.state)
    except SearchError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    await leads.add_many(found)
    return found


@router.get("", response_model=list[Lead])
async def list_leads(leads: LeadRepository = Depends(get_lead_repository)) -> list[Lead]:
    return await leads.list()

"""Permit endpoints -- filtered search, weekly/monthly stats, operator companies."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.prospector.api.deps import (
    get_company_repository,
    get_permit_repository,
    get_permit_service,
)
from src.prospector.permits.service import (
    PermitSearchParams,
    PermitService,
    PermitStats,
    companies_from_permits,
    permit_stats,
)
from src.prospector.repositories import CompanyRepository, PermitRepository
from src.prospector.schemas.records import CompanyRecord, PermitRecord

router = APIRouter(prefix="/permits", tags=["permits"])


class PermitSearchResponse(BaseModel):
    permits: list[PermitRecord]
    companies_created: list[CompanyRecord]


@router.post("/search", response_model=PermitSearchResponse)
async def search_permits(
    params: PermitSearchParams,
    service: PermitService = Depends(get_permit_service),
    companies: CompanyRepository = Depends(get_company_repository),
) -> PermitSearchResponse:
    """Fetch matching permits and track any operator not seen before as a company."""
    permits = await service.fetch(params)
    existing = [company.name for company in await companies.list()]
    created = companies_from_permits(permits, existing, date.today())
    await companies.add_many(created)
    return PermitSearchResponse(permits=permits, companies_created=created)


@router.get("/stats", response_model=PermitStats)
async def get_permit_stats(
    permits: PermitRepository = Depends(get_permit_repository),
) -> PermitStats:
    return permit_stats(await permits.list(), date.today())


@router.get("/companies", response_model=list[CompanyRecord])
async def list_companies(
    companies: CompanyRepository = Depends(get_company_repository),
) -> list[CompanyRecord]:
    return await companies.list()

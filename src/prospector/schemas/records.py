"""Pydantic schemas for prospecting records -- leads, permits, companies, contacts.

These records are owned by the repositories and the search/permit collaborators.
The CRM sync layer only reads them to build property sets.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class ProspectState(str, Enum):
    """States covered by lead search and permit aggregation."""

    OKLAHOMA = "Oklahoma"
    KANSAS = "Kansas"


# ── Leads ───────────────────────────────────────────────────────────────────


class LeadContact(BaseModel):
    """Contact person attached to a sourced lead."""

    name: str
    title: str = ""
    email: str | None = None
    phone: str | None = None
    linkedin_url: str | None = None


class SerpApiData(BaseModel):
    """Extra attributes carried over from a SerpAPI local result."""

    place_id: str | None = None
    rating: float | None = None
    reviews: int | None = None
    type: str | None = None


class Lead(BaseModel):
    """A company found by lead search, pending export to the CRM."""

    id: str
    company_name: str
    website: str | None = None
    industry: str = "Oil & Gas"
    location: str = ""
    size: str | None = None
    description: str | None = None
    contact: LeadContact | None = None
    linkedin_url: str | None = None
    source: str = "SerpAPI search"
    found_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    synced_to_hubspot: bool = False
    hubspot_id: str | None = None
    serpapi_data: SerpApiData | None = None


# ── Permits ─────────────────────────────────────────────────────────────────


class PermitLocation(BaseModel):
    """Public Land Survey System location of a permitted well."""

    county: str
    state: str
    section: str = ""
    township: str = ""
    range: str = ""


class PermitRecord(BaseModel):
    """A drilling permit filing from a state regulator."""

    id: str
    permit_number: str
    operator_name: str
    location: PermitLocation
    status: str
    filing_date: date
    well_type: str
    formation: str | None = None
    depth: int | None = None
    api_number: str | None = None
    source_url: str | None = None
    company_id: str | None = None


# ── Companies and contacts ──────────────────────────────────────────────────


class CompanyRecord(BaseModel):
    """An operator tracked locally, usually derived from permit filings."""

    id: str
    name: str
    size: str = "Small (10-100 employees)"
    primary_formation: str = "Unknown"
    recent_permits_count: int = 0
    last_permit_date: date | None = None
    drilling_activity_level: str = "Low"
    geological_staff_size: int = 1
    state: str = ""
    status: str = "Active"
    website: str | None = None
    phone: str | None = None
    city: str | None = None


class ContactRecord(BaseModel):
    """A person at a tracked company."""

    id: str
    company_id: str
    name: str
    title: str = ""
    email: str
    phone: str | None = None
    expertise: list[str] = Field(default_factory=list)
    years_experience: int | None = None
    education: str | None = None
    last_contact_date: date | None = None

"""Shared fixtures for CRM sync, search and API tests.

Provides:
- FakeObjectStore: in-memory ObjectStoreTransport with configurable rejections
- Factories for leads, permits, companies and contacts
- In-memory repositories and a HubSpotSyncService wired to the fake store
"""

from __future__ import annotations

import itertools
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import pytest

from src.prospector.crm.errors import RejectedPropertyError, TransportError
from src.prospector.crm.schemas import FieldValue, RecordType, RelationKind
from src.prospector.crm.service import HubSpotSyncService
from src.prospector.crm.transport import ObjectStoreTransport
from src.prospector.repositories import (
    InMemoryCompanyRepository,
    InMemoryContactRepository,
    InMemoryLeadRepository,
    InMemoryPermitRepository,
)
from src.prospector.schemas.records import (
    CompanyRecord,
    ContactRecord,
    Lead,
    LeadContact,
    PermitLocation,
    PermitRecord,
)

FIXED_NOW = datetime(2026, 3, 2, 15, 30, tzinfo=timezone.utc)


class FakeObjectStore(ObjectStoreTransport):
    """In-memory object store that records every call.

    Args:
        rejected: Property names the schema refuses; any write containing
            one of them raises RejectedPropertyError.
    """

    def __init__(self, rejected: set[str] | None = None) -> None:
        self.rejected = set(rejected or ())
        self.records: dict[str, tuple[RecordType, dict[str, FieldValue]]] = {}
        self.notes: list[tuple[str, RecordType, str]] = []
        self.associations: list[tuple[str, str, RelationKind]] = []
        self.writes: list[tuple[str, dict[str, FieldValue]]] = []
        self.fail_associations = False
        self.fail_notes = False
        self.fail_creates: set[RecordType] = set()
        self.fail_ping = False
        self._ids = itertools.count(1001)

    def _check(self, properties: dict[str, FieldValue]) -> None:
        refused = [name for name in properties if name in self.rejected]
        if refused:
            raise RejectedPropertyError(
                f"Property {refused[0]} does not exist", properties=refused
            )

    async def create(self, record_type: RecordType, properties: dict[str, FieldValue]) -> str:
        self.writes.append(("create", dict(properties)))
        if record_type in self.fail_creates:
            raise TransportError("service unavailable", status_code=503)
        self._check(properties)
        record_id = str(next(self._ids))
        self.records[record_id] = (record_type, dict(properties))
        return record_id

    async def update(
        self, record_type: RecordType, record_id: str, properties: dict[str, FieldValue]
    ) -> None:
        self.writes.append(("update", dict(properties)))
        self._check(properties)
        self.records[record_id][1].update(properties)

    async def search(self, record_type: RecordType, field: str, value: str) -> list[dict]:
        return [
            {"id": record_id, "properties": props}
            for record_id, (kind, props) in self.records.items()
            if kind is record_type and props.get(field) == value
        ]

    async def create_association(self, from_id: str, to_id: str, kind: RelationKind) -> None:
        if self.fail_associations:
            raise TransportError("association rejected", status_code=400)
        self.associations.append((from_id, to_id, kind))

    async def create_note(self, body: str, attached_to_type: RecordType, attached_to_id: str) -> str:
        if self.fail_notes:
            raise TransportError("notes unavailable", status_code=503)
        self.notes.append((body, attached_to_type, attached_to_id))
        return str(next(self._ids))

    async def ping(self) -> None:
        if self.fail_ping:
            raise TransportError("unauthorized", status_code=401)

    def records_of(self, record_type: RecordType) -> dict[str, dict[str, FieldValue]]:
        return {rid: props for rid, (kind, props) in self.records.items() if kind is record_type}


# ── Factories ──────────────────────────────────────────────────────────────


def make_lead(**overrides) -> Lead:
    defaults = {
        "id": "lead-1",
        "company_name": "Sooner State Energy LLC",
        "website": "https://www.soonerstateenergy.com",
        "location": "Oklahoma City, OK",
        "description": "Independent E&P focused on the STACK play.",
        "contact": LeadContact(
            name="Sarah Johnson",
            title="Chief Geologist",
            email="sarah@soonerstateenergy.com",
            phone="(405) 555-0123",
        ),
        "found_at": FIXED_NOW,
    }
    defaults.update(overrides)
    return Lead(**defaults)


def make_permit(**overrides) -> PermitRecord:
    defaults = {
        "id": "permit-001",
        "permit_number": "OK-2026-001234",
        "operator_name": "Sooner State Energy LLC",
        "location": PermitLocation(
            county="Canadian", state="Oklahoma", section="12", township="13N", range="7W"
        ),
        "status": "Approved",
        "filing_date": date(2026, 2, 15),
        "well_type": "Horizontal",
        "formation": "Woodford Shale",
        "depth": 12500,
        "api_number": "35-017-12345",
    }
    defaults.update(overrides)
    return PermitRecord(**defaults)


def make_company(**overrides) -> CompanyRecord:
    defaults = {
        "id": "company-1",
        "name": "Sooner State Energy LLC",
        "state": "Oklahoma",
        "primary_formation": "Woodford Shale",
        "recent_permits_count": 4,
        "drilling_activity_level": "Medium",
    }
    defaults.update(overrides)
    return CompanyRecord(**defaults)


def make_contact(**overrides) -> ContactRecord:
    defaults = {
        "id": "contact-1",
        "company_id": "company-1",
        "name": "Michael Chen",
        "title": "Senior Geologist",
        "email": "mchen@soonerstateenergy.com",
        "expertise": ["Woodford", "Petrophysics"],
    }
    defaults.update(overrides)
    return ContactRecord(**defaults)


# ── Fixtures ───────────────────────────────────────────────────────────────


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def leads() -> InMemoryLeadRepository:
    return InMemoryLeadRepository([make_lead()])


@pytest.fixture
def companies() -> InMemoryCompanyRepository:
    return InMemoryCompanyRepository([make_company()])


@pytest.fixture
def contacts() -> InMemoryContactRepository:
    return InMemoryContactRepository([make_contact()])


@pytest.fixture
def permits() -> InMemoryPermitRepository:
    return InMemoryPermitRepository([make_permit()])


@pytest.fixture
def sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def service(store, leads, companies, contacts, permits, sleep) -> HubSpotSyncService:
    return HubSpotSyncService(
        store,
        leads=leads,
        companies=companies,
        contacts=contacts,
        permits=permits,
        bulk_delay_seconds=0.5,
        sleep=sleep,
        clock=lambda: FIXED_NOW,
    )

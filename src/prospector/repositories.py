"""Read accessors for leads, companies, contacts and permits.

The sync service receives these at construction time. The Protocols allow
any storage behind them; the in-memory implementations back the API process
and the tests.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Generic, Protocol, TypeVar

from pydantic import BaseModel

from src.prospector.schemas.records import CompanyRecord, ContactRecord, Lead, PermitRecord


class LeadRepository(Protocol):
    """Lead storage used by lead search and lead sync."""

    async def get(self, lead_id: str) -> Lead | None: ...
    async def list(self) -> list[Lead]: ...
    async def add_many(self, leads: Iterable[Lead]) -> None: ...
    async def mark_as_synced(self, lead_id: str, hubspot_id: str) -> None: ...


class CompanyRepository(Protocol):
    """Operator companies tracked locally."""

    async def get(self, company_id: str) -> CompanyRecord | None: ...
    async def list(self) -> list[CompanyRecord]: ...
    async def add_many(self, companies: Iterable[CompanyRecord]) -> None: ...
    async def find_by_operator(self, operator_name: str) -> CompanyRecord | None: ...


class ContactRepository(Protocol):
    """People at tracked companies."""

    async def get(self, contact_id: str) -> ContactRecord | None: ...
    async def list(self) -> list[ContactRecord]: ...
    async def list_for_company(self, company_id: str) -> list[ContactRecord]: ...


class PermitRepository(Protocol):
    """Permit filings already fetched from the state regulators."""

    async def get(self, permit_id: str) -> PermitRecord | None: ...
    async def list(self) -> list[PermitRecord]: ...
    async def add_many(self, permits: Iterable[PermitRecord]) -> None: ...


RecordT = TypeVar("RecordT", bound=BaseModel)


class _InMemoryStore(Generic[RecordT]):
    """Insertion-ordered dict of records keyed by ``id``."""

    def __init__(self, records: Iterable[RecordT] = ()) -> None:
        self._records: dict[str, RecordT] = {}
        for record in records:
            self._records[record.id] = record  # type: ignore[attr-defined]

    async def get(self, record_id: str) -> RecordT | None:
        return self._records.get(record_id)

    async def list(self) -> list[RecordT]:
        return list(self._records.values())

    async def add_many(self, records: Iterable[RecordT]) -> None:
        for record in records:
            self._records[record.id] = record  # type: ignore[attr-defined]


class InMemoryLeadRepository(_InMemoryStore[Lead]):
    async def mark_as_synced(self, lead_id: str, hubspot_id: str) -> None:
        lead = self._records.get(lead_id)
        if lead is None:
            return
        self._records[lead_id] = lead.model_copy(
            update={"synced_to_hubspot": True, "hubspot_id": hubspot_id}
        )


class InMemoryCompanyRepository(_InMemoryStore[CompanyRecord]):
    async def find_by_operator(self, operator_name: str) -> CompanyRecord | None:
        """Company named ``operator_name`` (case-insensitive), else the first
        whose name contains, or is contained in, it."""
        needle = operator_name.strip().lower()
        if not needle:
            return None
        for company in self._records.values():
            if company.name.strip().lower() == needle:
                return company
        for company in self._records.values():
            name = company.name.lower()
            if name in needle or needle in name:
                return company
        return None


class InMemoryContactRepository(_InMemoryStore[ContactRecord]):
    async def list_for_company(self, company_id: str) -> list[ContactRecord]:
        return [c for c in self._records.values() if c.company_id == company_id]


class InMemoryPermitRepository(_InMemoryStore[PermitRecord]):
    pass

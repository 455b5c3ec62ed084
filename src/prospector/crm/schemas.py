"""Pydantic schemas for CRM sync -- candidate writes, outcomes, and summaries.

Defines:
- Enums: RecordType, RelationKind
- FieldValue: the tagged scalar types a property may hold
- CandidateRecord: a pending write, independent of any remote schema
- SyncOutcome: result of one field-fallback write
- SyncSummary / BulkSyncSummary: aggregate results returned by the orchestration layer
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Union

from pydantic import BaseModel, Field, model_validator

FieldValue = Union[str, int, float, date, datetime]


class RecordType(str, Enum):
    """Remote object types written by the sync layer."""

    COMPANY = "companies"
    CONTACT = "contacts"
    DEAL = "deals"
    NOTE = "notes"

    @property
    def label(self) -> str:
        """Singular human-readable name (e.g. 'Company')."""
        return {
            RecordType.COMPANY: "Company",
            RecordType.CONTACT: "Contact",
            RecordType.DEAL: "Deal",
            RecordType.NOTE: "Note",
        }[self]


class RelationKind(str, Enum):
    """Directed association types between remote records."""

    CONTACT_TO_COMPANY = "contact_to_company"
    DEAL_TO_COMPANY = "deal_to_company"
    DEAL_TO_CONTACT = "deal_to_contact"

    @property
    def from_type(self) -> RecordType:
        return RecordType.CONTACT if self is RelationKind.CONTACT_TO_COMPANY else RecordType.DEAL

    @property
    def to_type(self) -> RecordType:
        return RecordType.CONTACT if self is RelationKind.DEAL_TO_CONTACT else RecordType.COMPANY


class CandidateRecord(BaseModel):
    """A proposed write to the external store.

    ``core_field_names`` is ordered by priority: the first entry is the
    essential field used for the last-resort minimal write.
    """

    record_type: RecordType
    desired_properties: dict[str, FieldValue]
    core_field_names: list[str] = Field(min_length=1)

    @model_validator(mode="after")
    def _core_fields_are_desired(self) -> CandidateRecord:
        missing = [f for f in self.core_field_names if f not in self.desired_properties]
        if missing:
            raise ValueError(f"core fields not in desired properties: {', '.join(missing)}")
        return self

    @property
    def core_properties(self) -> dict[str, FieldValue]:
        return {name: self.desired_properties[name] for name in self.core_field_names}

    @property
    def remaining_properties(self) -> dict[str, FieldValue]:
        core = set(self.core_field_names)
        return {k: v for k, v in self.desired_properties.items() if k not in core}


class SyncOutcome(BaseModel):
    """Result of one field-fallback sync attempt."""

    success: bool
    record_id: str | None = None
    failed_fields: dict[str, FieldValue] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _success_has_id(self) -> SyncOutcome:
        if self.success and not self.record_id:
            raise ValueError("a successful outcome must carry a record_id")
        return self


class SyncSummary(BaseModel):
    """Aggregate result of an orchestration operation."""

    success: bool
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    hubspot_id: str | None = None


class BulkSyncSummary(BaseModel):
    """Counters and per-record outcomes of a sequential bulk sync run."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    warnings: int = 0
    outcomes: list[SyncSummary] = Field(default_factory=list)

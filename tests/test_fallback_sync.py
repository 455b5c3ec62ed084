"""Unit tests for the field-fallback sync engine and candidate construction.

The engine is driven with plain write_op callables and with the in-memory
FakeObjectStore, never a real CRM.
"""

from __future__ import annotations

from datetime import date
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from conftest import FakeObjectStore, make_permit
from src.prospector.crm.errors import RejectedPropertyError
from src.prospector.crm.field_mapping import (
    build_candidate,
    custom_fields,
    employee_bucket,
    permit_deal_properties,
    split_name,
)
from src.prospector.crm.schemas import CandidateRecord, RecordType, SyncOutcome
from src.prospector.crm.sync import FieldFallbackSyncEngine


def _company_candidate(**extra) -> CandidateRecord:
    properties = {"name": "Acme Energy", "industry": "Oil & Gas", "state": "Oklahoma"}
    properties.update(extra)
    return build_candidate(RecordType.COMPANY, properties)


# ── Schemas ────────────────────────────────────────────────────────────────


class TestCandidateRecord:
    def test_core_fields_must_be_desired(self):
        with pytest.raises(ValidationError):
            CandidateRecord(
                record_type=RecordType.COMPANY,
                desired_properties={"name": "Acme"},
                core_field_names=["name", "industry"],
            )

    def test_core_fields_must_not_be_empty(self):
        with pytest.raises(ValidationError):
            CandidateRecord(
                record_type=RecordType.COMPANY,
                desired_properties={"name": "Acme"},
                core_field_names=[],
            )

    def test_success_requires_record_id(self):
        with pytest.raises(ValidationError):
            SyncOutcome(success=True)


class TestBuildCandidate:
    def test_core_fields_ordered_first(self):
        candidate = build_candidate(
            RecordType.COMPANY,
            {"website": "https://acme.com", "state": "Kansas", "name": "Acme", "industry": "Oil"},
        )
        assert list(candidate.desired_properties) == ["name", "industry", "state", "website"]
        assert candidate.core_field_names == ["name", "industry", "state"]
        assert candidate.remaining_properties == {"website": "https://acme.com"}

    def test_empty_values_dropped(self):
        candidate = _company_candidate(website=None, phone="")
        assert "website" not in candidate.desired_properties
        assert "phone" not in candidate.desired_properties

    def test_unknown_property_rejected(self):
        with pytest.raises(ValueError, match="unknown Company properties: favourite_color"):
            _company_candidate(favourite_color="blue")

    def test_missing_essential_field_rejected(self):
        with pytest.raises(ValueError, match="requires 'email'"):
            build_candidate(RecordType.CONTACT, {"firstname": "Ann", "lastname": "Lee"})

    def test_custom_fields_subset(self):
        candidate = _company_candidate(primary_formation="Woodford", website="https://a.com")
        assert custom_fields(RecordType.COMPANY, candidate.desired_properties) == {
            "primary_formation": "Woodford"
        }


class TestMappingHelpers:
    def test_split_name(self):
        assert split_name("Mary Ann Smith") == ("Mary", "Ann Smith")
        assert split_name("Cher") == ("Cher", "")
        assert split_name("") == ("", "")

    def test_employee_bucket(self):
        assert employee_bucket("Small (10-100 employees)") == "1-10"
        assert employee_bucket("Medium (100-500 employees)") == "11-50"
        assert employee_bucket("Large (500+ employees)") == "51-200"
        assert employee_bucket(None) is None

    def test_permit_deal_properties(self):
        properties = permit_deal_properties(make_permit(), date(2026, 3, 2))
        assert properties["dealname"] == "Sooner State Energy LLC - Woodford Shale Opportunity"
        assert properties["dealstage"] == "appointmentscheduled"
        assert properties["pipeline"] == "default"
        assert properties["closedate"] == date(2026, 5, 31)
        assert properties["permit_location"] == "Canadian County, Oklahoma"

    def test_deal_name_without_formation(self):
        properties = permit_deal_properties(make_permit(formation=None), date(2026, 3, 2))
        assert properties["dealname"] == "Sooner State Energy LLC - Drilling Opportunity"


# ── Engine: three scenarios ────────────────────────────────────────────────


class TestFieldFallbackSyncEngine:
    @pytest.fixture
    def engine(self) -> FieldFallbackSyncEngine:
        return FieldFallbackSyncEngine()

    async def test_everything_accepted(self, engine):
        store = FakeObjectStore()
        candidate = _company_candidate(website="https://acme.com", city="Tulsa")

        outcome = await engine.sync(store, candidate)

        assert outcome.success is True
        assert outcome.failed_fields == {}
        assert outcome.errors == []
        assert store.records[outcome.record_id][1] == candidate.desired_properties
        # one core batch plus one write per remaining field
        assert len(store.writes) == 3

    async def test_core_batch_rejected_essential_accepted(self, engine):
        store = FakeObjectStore(rejected={"state"})
        candidate = _company_candidate(website="https://acme.com")

        outcome = await engine.sync(store, candidate)

        assert outcome.success is True
        assert outcome.record_id is not None
        assert outcome.failed_fields == {"industry": "Oil & Gas", "state": "Oklahoma"}
        assert store.records[outcome.record_id][1] == {
            "name": "Acme Energy",
            "website": "https://acme.com",
        }
        assert any("core field write failed" in e for e in outcome.errors)

    async def test_essential_rejected_fails_everything(self, engine):
        store = FakeObjectStore(rejected={"name"})
        candidate = _company_candidate(website="https://acme.com")

        outcome = await engine.sync(store, candidate)

        assert outcome.success is False
        assert outcome.record_id is None
        assert outcome.failed_fields == candidate.desired_properties
        assert len(outcome.errors) == 2
        assert store.records == {}

    async def test_sweep_continues_after_rejection(self, engine):
        store = FakeObjectStore(rejected={"primary_formation"})
        candidate = _company_candidate(
            primary_formation="Woodford", website="https://acme.com", city="Tulsa"
        )

        outcome = await engine.sync(store, candidate)

        assert outcome.success is True
        assert outcome.failed_fields == {"primary_formation": "Woodford"}
        assert outcome.errors == [
            "Field 'primary_formation' could not be saved: Property primary_formation does not exist"
        ]
        saved = store.records[outcome.record_id][1]
        assert saved["website"] == "https://acme.com"
        assert saved["city"] == "Tulsa"

    async def test_update_targets_existing_record(self, engine):
        write_op = AsyncMock(side_effect=lambda props, record_id: record_id)
        candidate = _company_candidate(website="https://acme.com")

        outcome = await engine.sync_with_fallback(
            candidate, write_op, is_update=True, record_id="hs-42"
        )

        assert outcome.success is True
        assert outcome.record_id == "hs-42"
        assert all(call.args[1] == "hs-42" for call in write_op.call_args_list)

    async def test_update_essential_failure_keeps_record_id(self, engine):
        write_op = AsyncMock(side_effect=RejectedPropertyError("nope"))
        outcome = await engine.sync_with_fallback(
            _company_candidate(), write_op, is_update=True, record_id="hs-42"
        )
        assert outcome.success is False
        assert outcome.record_id == "hs-42"

    async def test_update_without_record_id_is_an_error(self, engine):
        with pytest.raises(ValueError):
            await engine.sync_with_fallback(_company_candidate(), AsyncMock(), is_update=True)

    async def test_failed_fields_keep_original_values(self, engine):
        store = FakeObjectStore(rejected={"last_permit_date"})
        candidate = _company_candidate(last_permit_date=date(2026, 1, 5))

        outcome = await engine.sync(store, candidate)

        assert outcome.failed_fields == {"last_permit_date": date(2026, 1, 5)}

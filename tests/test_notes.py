"""Unit tests for note bodies attached to CRM records."""

from __future__ import annotations

from datetime import date

from conftest import FIXED_NOW, make_lead, make_permit
from src.prospector.crm.notes import (
    format_failed_fields_note,
    format_lead_source_note,
    format_permit_note,
    title_case_field,
)


class TestFailedFieldsNote:
    def test_empty_input_gives_empty_note(self):
        assert format_failed_fields_note({}, "Company") == ""

    def test_one_bullet_per_field(self):
        note = format_failed_fields_note(
            {"primary_formation": "Woodford Shale", "geological_staff_size": 3},
            "Company",
            now=FIXED_NOW,
        )
        lines = note.splitlines()
        assert lines[0] == "Additional Company data (fields not available in the CRM):"
        assert "• Primary Formation: Woodford Shale" in lines
        assert "• Geological Staff Size: 3" in lines
        assert lines[-1] == f"Recorded: {FIXED_NOW.isoformat()}"
        assert sum(1 for line in lines if line.startswith("• ")) == 2

    def test_dates_render_as_iso(self):
        note = format_failed_fields_note({"last_permit_date": date(2026, 1, 5)}, "Company")
        assert "• Last Permit Date: 2026-01-05" in note

    def test_title_case_field(self):
        assert title_case_field("hs_lead_status") == "Hs Lead Status"
        assert title_case_field("email") == "Email"


class TestPermitNote:
    def test_full_permit_details(self):
        note = format_permit_note(make_permit(), now=FIXED_NOW)
        assert note.startswith("Drilling permit filed by Sooner State Energy LLC")
        assert "Permit Number: OK-2026-001234" in note
        assert "API Number: 35-017-12345" in note
        assert "Location: Canadian County, Oklahoma" in note
        assert "Legal Description: Section 12-13N-7W" in note
        assert "Filing Date: 2026-02-15" in note
        assert "Depth: 12,500 ft" in note
        assert "Fields not stored on the deal:" not in note

    def test_rendered_without_failed_fields_or_optional_data(self):
        permit = make_permit(formation=None, depth=None, api_number=None)
        note = format_permit_note(permit, failed_fields={}, now=FIXED_NOW)
        assert "Formation: Not specified" in note
        assert "Depth" not in note
        assert "API Number" not in note

    def test_failed_fields_section(self):
        note = format_permit_note(
            make_permit(), failed_fields={"formation_target": "Woodford Shale"}, now=FIXED_NOW
        )
        assert "Fields not stored on the deal:\n• Formation Target: Woodford Shale" in note


class TestLeadSourceNote:
    def test_provenance(self):
        note = format_lead_source_note(make_lead())
        assert note.splitlines()[0] == "Lead sourced from SerpAPI search on 2026-03-02."
        assert "Website: https://www.soonerstateenergy.com" in note

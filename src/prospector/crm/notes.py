"""Note bodies attached to CRM records.

- format_failed_fields_note: reconciliation note for properties the schema refused
- format_permit_note: permit details attached to every deal created from a permit
- format_lead_source_note: provenance note attached to a company synced from a lead
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, timezone

from src.prospector.crm.schemas import FieldValue
from src.prospector.schemas.records import Lead, PermitRecord


def title_case_field(name: str) -> str:
    """``primary_formation`` -> ``Primary Formation``."""
    return " ".join(part.capitalize() for part in name.split("_") if part)


def _render_value(value: FieldValue) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _bullets(fields: Mapping[str, FieldValue]) -> list[str]:
    return [f"• {title_case_field(name)}: {_render_value(value)}" for name, value in fields.items()]


def format_failed_fields_note(
    failed_fields: Mapping[str, FieldValue],
    record_label: str,
    now: datetime | None = None,
) -> str:
    """Render refused properties as note text; empty input gives ``""``."""
    if not failed_fields:
        return ""
    now = now or datetime.now(timezone.utc)
    lines = [f"Additional {record_label} data (fields not available in the CRM):"]
    lines.extend(_bullets(failed_fields))
    lines.append(f"Recorded: {now.isoformat()}")
    return "\n".join(lines)


def format_permit_note(
    permit: PermitRecord,
    failed_fields: Mapping[str, FieldValue] | None = None,
    now: datetime | None = None,
) -> str:
    """Render the full permit record, plus any refused deal properties."""
    now = now or datetime.now(timezone.utc)
    location = permit.location
    lines = [
        f"Drilling permit filed by {permit.operator_name}",
        f"Permit Number: {permit.permit_number}",
    ]
    if permit.api_number:
        lines.append(f"API Number: {permit.api_number}")
    lines.append(f"Well Type: {permit.well_type}")
    lines.append(f"Location: {location.county} County, {location.state}")
    if location.section or location.township or location.range:
        lines.append(
            f"Legal Description: Section {location.section}-{location.township}-{location.range}"
        )
    lines.append(f"Filing Date: {permit.filing_date.isoformat()}")
    lines.append(f"Formation: {permit.formation or 'Not specified'}")
    if permit.depth is not None:
        lines.append(f"Depth: {permit.depth:,} ft")
    lines.append(f"Status: {permit.status}")
    if permit.source_url:
        lines.append(f"Source: {permit.source_url}")

    if failed_fields:
        lines.append("")
        lines.append("Fields not stored on the deal:")
        lines.extend(_bullets(failed_fields))

    lines.append(f"Recorded: {now.isoformat()}")
    return "\n".join(lines)


def format_lead_source_note(lead: Lead) -> str:
    lines = [
        f"Lead sourced from {lead.source} on {lead.found_at.date().isoformat()}.",
        f"Industry: {lead.industry or 'Oil & Gas'}",
        f"Location: {lead.location or 'Unknown'}",
    ]
    if lead.description:
        lines.append(f"Description: {lead.description}")
    if lead.website:
        lines.append(f"Website: {lead.website}")
    return "\n".join(lines)

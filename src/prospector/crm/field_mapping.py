"""HubSpot property catalog and record-to-candidate mappings.

Defines:
- FieldKind / PROPERTY_CATALOG: which HubSpot properties are standard and
  which are custom portal properties that may not exist in every portal.
- CORE_FIELDS: per record type, the core fields in priority order. The first
  entry is the essential field used for the last-resort minimal write.
- build_candidate(): validates names against the catalog and orders core fields first.
- *_properties(): map leads, companies, contacts and permits to property dicts.

Field names are validated here, at the orchestration boundary, so the
fallback engine stays schema-agnostic.
"""

from __future__ import annotations

from datetime import date, timedelta
from enum import Enum

from src.prospector.crm.schemas import CandidateRecord, FieldValue, RecordType
from src.prospector.schemas.records import CompanyRecord, ContactRecord, Lead, PermitRecord
from src.prospector.search.dedup import normalize_domain


class FieldKind(str, Enum):
    """Whether a property ships with every HubSpot portal."""

    STANDARD = "standard"
    CUSTOM = "custom"


# ── Property Catalog ───────────────────────────────────────────────────────

PROPERTY_CATALOG: dict[RecordType, dict[str, FieldKind]] = {
    RecordType.COMPANY: {
        "name": FieldKind.STANDARD,
        "industry": FieldKind.STANDARD,
        "state": FieldKind.STANDARD,
        "domain": FieldKind.STANDARD,
        "website": FieldKind.STANDARD,
        "numberofemployees": FieldKind.STANDARD,
        "city": FieldKind.STANDARD,
        "phone": FieldKind.STANDARD,
        "description": FieldKind.STANDARD,
        "primary_formation": FieldKind.CUSTOM,
        "drilling_activity_level": FieldKind.CUSTOM,
        "geological_staff_size": FieldKind.CUSTOM,
        "recent_permits_count": FieldKind.CUSTOM,
        "last_permit_date": FieldKind.CUSTOM,
        "status": FieldKind.CUSTOM,
    },
    RecordType.CONTACT: {
        "email": FieldKind.STANDARD,
        "firstname": FieldKind.STANDARD,
        "lastname": FieldKind.STANDARD,
        "jobtitle": FieldKind.STANDARD,
        "company": FieldKind.STANDARD,
        "phone": FieldKind.STANDARD,
        "hs_lead_status": FieldKind.STANDARD,
        "geological_expertise": FieldKind.CUSTOM,
        "years_experience": FieldKind.CUSTOM,
        "education": FieldKind.CUSTOM,
        "last_contact_date": FieldKind.CUSTOM,
    },
    RecordType.DEAL: {
        "dealname": FieldKind.STANDARD,
        "dealstage": FieldKind.STANDARD,
        "pipeline": FieldKind.STANDARD,
        "closedate": FieldKind.STANDARD,
        "amount": FieldKind.STANDARD,
        "description": FieldKind.STANDARD,
        "deal_type": FieldKind.CUSTOM,
        "formation_target": FieldKind.CUSTOM,
        "permit_location": FieldKind.CUSTOM,
    },
}

CORE_FIELDS: dict[RecordType, list[str]] = {
    RecordType.COMPANY: ["name", "industry", "state"],
    RecordType.CONTACT: ["email", "firstname", "lastname"],
    RecordType.DEAL: ["dealname", "dealstage", "pipeline"],
}

DEFAULT_INDUSTRY = "Oil & Gas"
DEAL_STAGE = "appointmentscheduled"
DEAL_PIPELINE = "default"
DEAL_CLOSE_DAYS = 90


def build_candidate(
    record_type: RecordType,
    properties: dict[str, FieldValue | None],
) -> CandidateRecord:
    """Build a CandidateRecord, dropping empty values and rejecting unknown names.

    Core fields come first in priority order, followed by the remaining
    properties in the order given.

    Raises:
        ValueError: A property is not in the catalog, or no core field has a value.
    """
    catalog = PROPERTY_CATALOG[record_type]
    unknown = [name for name in properties if name not in catalog]
    if unknown:
        raise ValueError(f"unknown {record_type.label} properties: {', '.join(unknown)}")

    present = {k: v for k, v in properties.items() if v is not None and v != ""}
    core = [name for name in CORE_FIELDS[record_type] if name in present]
    if not core or core[0] != CORE_FIELDS[record_type][0]:
        raise ValueError(
            f"{record_type.label} requires '{CORE_FIELDS[record_type][0]}' to be set"
        )

    ordered: dict[str, FieldValue] = {name: present[name] for name in core}
    ordered.update({k: v for k, v in present.items() if k not in ordered})
    return CandidateRecord(
        record_type=record_type,
        desired_properties=ordered,
        core_field_names=core,
    )


def custom_fields(record_type: RecordType, properties: dict[str, FieldValue]) -> dict[str, FieldValue]:
    """The subset of ``properties`` that are custom portal properties."""
    catalog = PROPERTY_CATALOG[record_type]
    return {k: v for k, v in properties.items() if catalog.get(k) is FieldKind.CUSTOM}


def split_name(full_name: str) -> tuple[str, str]:
    """Split "First Middle Last" into ("First", "Middle Last")."""
    parts = full_name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def employee_bucket(size: str | None) -> str | None:
    """Map a company size label to a HubSpot employee-count range."""
    if not size:
        return None
    lowered = size.lower()
    if lowered.startswith("small"):
        return "1-10"
    if lowered.startswith("medium"):
        return "11-50"
    if lowered.startswith("large"):
        return "51-200"
    return size


# ── Record Mappings ────────────────────────────────────────────────────────


def lead_company_properties(lead: Lead) -> dict[str, FieldValue | None]:
    return {
        "name": lead.company_name,
        "industry": lead.industry or DEFAULT_INDUSTRY,
        "state": lead.location or "Unknown",
        "domain": normalize_domain(lead.website) or None,
        "website": lead.website,
        "numberofemployees": lead.size,
        "phone": lead.contact.phone if lead.contact else None,
        "description": lead.description,
    }


def lead_contact_properties(lead: Lead) -> dict[str, FieldValue | None]:
    contact = lead.contact
    if contact is None:
        raise ValueError(f"lead {lead.id} has no contact")
    firstname, lastname = split_name(contact.name)
    return {
        "email": contact.email,
        "firstname": firstname,
        "lastname": lastname,
        "jobtitle": contact.title or "Unknown",
        "company": lead.company_name,
        "phone": contact.phone,
        "hs_lead_status": "NEW",
    }


def company_record_properties(company: CompanyRecord) -> dict[str, FieldValue | None]:
    return {
        "name": company.name,
        "industry": DEFAULT_INDUSTRY,
        "state": company.state or "Unknown",
        "numberofemployees": employee_bucket(company.size),
        "website": company.website,
        "domain": normalize_domain(company.website) or None,
        "phone": company.phone,
        "city": company.city,
        "primary_formation": company.primary_formation,
        "drilling_activity_level": company.drilling_activity_level,
        "geological_staff_size": company.geological_staff_size,
        "recent_permits_count": company.recent_permits_count,
        "last_permit_date": company.last_permit_date,
        "status": company.status,
    }


def contact_record_properties(
    contact: ContactRecord, company_name: str | None
) -> dict[str, FieldValue | None]:
    firstname, lastname = split_name(contact.name)
    return {
        "email": contact.email,
        "firstname": firstname,
        "lastname": lastname,
        "jobtitle": contact.title,
        "company": company_name,
        "phone": contact.phone,
        "hs_lead_status": "NEW",
        "geological_expertise": ", ".join(contact.expertise) or None,
        "years_experience": contact.years_experience,
        "education": contact.education,
        "last_contact_date": contact.last_contact_date,
    }


def deal_name_for_permit(permit: PermitRecord) -> str:
    return f"{permit.operator_name} - {permit.formation or 'Drilling'} Opportunity"


def permit_deal_properties(permit: PermitRecord, today: date) -> dict[str, FieldValue | None]:
    location = permit.location
    return {
        "dealname": deal_name_for_permit(permit),
        "dealstage": DEAL_STAGE,
        "pipeline": DEAL_PIPELINE,
        "closedate": today + timedelta(days=DEAL_CLOSE_DAYS),
        "deal_type": "New Permit Opportunity",
        "formation_target": permit.formation,
        "permit_location": f"{location.county} County, {location.state}",
    }

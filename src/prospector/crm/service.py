"""HubSpot sync orchestration -- leads, companies, contacts and permit deals.

Composes the field-fallback engine, note formatter and association manager
into the operations the API exposes. Only the primary create/update of each
operation can make it fail; lookups, notes, contacts and associations after
that point degrade to warnings. No exception escapes an operation: every
failure comes back inside a SyncSummary.

Exports:
    HubSpotSyncService: Orchestrator for all CRM sync operations.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timezone

import structlog

from src.prospector.core.monitoring import bulk_sync_records_total
from src.prospector.crm.associations import AssociationManager
from src.prospector.crm.errors import CRMError, RecordNotFoundError
from src.prospector.crm.field_mapping import (
    build_candidate,
    company_record_properties,
    contact_record_properties,
    custom_fields,
    lead_company_properties,
    lead_contact_properties,
    permit_deal_properties,
)
from src.prospector.crm.notes import (
    format_failed_fields_note,
    format_lead_source_note,
    format_permit_note,
)
from src.prospector.crm.schemas import (
    BulkSyncSummary,
    CandidateRecord,
    RecordType,
    RelationKind,
    SyncOutcome,
    SyncSummary,
)
from src.prospector.crm.sync import FieldFallbackSyncEngine, transport_write_op
from src.prospector.crm.transport import ObjectStoreTransport
from src.prospector.repositories import (
    CompanyRepository,
    ContactRepository,
    LeadRepository,
    PermitRepository,
)
from src.prospector.schemas.records import CompanyRecord, ContactRecord, Lead, PermitRecord

logger = structlog.get_logger(__name__)


def pick_primary_contact(contacts: Sequence[ContactRecord]) -> ContactRecord | None:
    """Prefer an executive ("Chief" or "VP" in the title), else the first contact."""
    for contact in contacts:
        if "Chief" in contact.title or "VP" in contact.title:
            return contact
    return contacts[0] if contacts else None


class HubSpotSyncService:
    """Pushes locally held prospecting records into HubSpot.

    Args:
        transport: Object store to write to.
        leads: Lead accessor; also receives the synced mark.
        companies: Company accessor.
        contacts: Contact accessor.
        permits: Permit accessor.
        engine: Field-fallback engine (a fresh one by default).
        bulk_delay_seconds: Pause between records in bulk runs.
        sleep: Awaitable sleep, replaced in tests.
        clock: Current time source, replaced in tests.
    """

    def __init__(
        self,
        transport: ObjectStoreTransport,
        leads: LeadRepository,
        companies: CompanyRepository,
        contacts: ContactRepository,
        permits: PermitRepository,
        engine: FieldFallbackSyncEngine | None = None,
        bulk_delay_seconds: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._transport = transport
        self._leads = leads
        self._companies = companies
        self._contacts = contacts
        self._permits = permits
        self._engine = engine or FieldFallbackSyncEngine()
        self._associations = AssociationManager(transport)
        self._bulk_delay = bulk_delay_seconds
        self._sleep = sleep
        self._clock = clock

    # ── Shared steps ──────────────────────────────────────────────────────

    async def _find_id(self, record_type: RecordType, field: str, value: str) -> str | None:
        results = await self._transport.search(record_type, field, value)
        return str(results[0]["id"]) if results else None

    async def _write(
        self,
        candidate: CandidateRecord,
        existing_id: str | None,
        warnings: list[str],
    ) -> SyncOutcome:
        """Fallback-write ``candidate`` and reconcile refused fields into a note."""
        outcome = await self._engine.sync(self._transport, candidate, record_id=existing_id)
        label = candidate.record_type.label
        if outcome.success and outcome.failed_fields:
            warnings.append(
                f"Some {label.lower()} data stored as notes due to field restrictions: "
                f"{', '.join(outcome.failed_fields)}"
            )
            body = format_failed_fields_note(outcome.failed_fields, label, now=self._clock())
            try:
                await self._transport.create_note(body, candidate.record_type, outcome.record_id)
            except Exception as exc:
                warnings.append(f"{label} synced but field note creation failed: {exc}")
        return outcome

    async def _attach_note(
        self,
        body: str,
        record_type: RecordType,
        record_id: str,
        failure_prefix: str,
        warnings: list[str],
    ) -> None:
        try:
            await self._transport.create_note(body, record_type, record_id)
        except Exception as exc:
            logger.warning(
                "hubspot_sync.note_failed",
                record_type=record_type.value,
                record_id=record_id,
                error=str(exc),
            )
            warnings.append(f"{failure_prefix} but note creation failed: {exc}")

    # ── Leads ─────────────────────────────────────────────────────────────

    async def sync_lead_to_hubspot(self, lead_id: str) -> SyncSummary:
        """Sync one lead as a company (plus contact and provenance note).

        Steps:
        1. Find the company by exact name; update it or create it (fallback write).
        2. If the lead's contact has an email and is not in HubSpot yet, create
           it and associate it with the company.
        3. Attach a note describing where the lead came from.
        4. Mark the lead synced locally.
        """
        try:
            lead = await self._leads.get(lead_id)
            if lead is None:
                raise RecordNotFoundError("Lead", lead_id)

            warnings: list[str] = []
            errors: list[str] = []

            existing_id = await self._find_id(RecordType.COMPANY, "name", lead.company_name)
            candidate = build_candidate(RecordType.COMPANY, lead_company_properties(lead))
            outcome = await self._write(candidate, existing_id, warnings)
            errors.extend(outcome.errors)
            if not outcome.success:
                logger.warning("hubspot_sync.lead_company_failed", lead_id=lead_id)
                return SyncSummary(success=False, warnings=warnings, errors=errors)

            company_id = outcome.record_id
            if lead.contact is not None and lead.contact.email:
                await self._sync_lead_contact(lead, company_id, warnings, errors)

            await self._attach_note(
                format_lead_source_note(lead),
                RecordType.COMPANY,
                company_id,
                "Lead synced",
                warnings,
            )

            try:
                await self._leads.mark_as_synced(lead_id, company_id)
            except Exception:
                logger.error("hubspot_sync.mark_synced_failed", lead_id=lead_id, exc_info=True)

            logger.info(
                "hubspot_sync.lead_synced",
                lead_id=lead_id,
                hubspot_id=company_id,
                warnings=len(warnings),
            )
            return SyncSummary(success=True, warnings=warnings, errors=errors, hubspot_id=company_id)

        except RecordNotFoundError as exc:
            logger.warning("hubspot_sync.lead_not_found", lead_id=lead_id)
            return SyncSummary(success=False, errors=[str(exc)])
        except Exception as exc:
            logger.error("hubspot_sync.lead_failed", lead_id=lead_id, error=str(exc), exc_info=True)
            return SyncSummary(success=False, errors=[f"Failed to sync lead: {exc}"])

    async def _sync_lead_contact(
        self,
        lead: Lead,
        company_id: str,
        warnings: list[str],
        errors: list[str],
    ) -> None:
        try:
            existing_id = await self._find_id(RecordType.CONTACT, "email", lead.contact.email)
            if existing_id is not None:
                return
            candidate = build_candidate(RecordType.CONTACT, lead_contact_properties(lead))
            outcome = await self._write(candidate, None, warnings)
            errors.extend(outcome.errors)
            if not outcome.success:
                warnings.append("Company synced but contact creation failed")
                return
            warning = await self._associations.try_associate(
                outcome.record_id, company_id, RelationKind.CONTACT_TO_COMPANY, "Contact"
            )
            if warning:
                warnings.append(warning)
        except Exception as exc:
            logger.warning("hubspot_sync.lead_contact_failed", lead_id=lead.id, error=str(exc))
            warnings.append(f"Company synced but contact creation failed: {exc}")

    # ── Companies and contacts ────────────────────────────────────────────

    async def sync_company(self, company_id: str) -> SyncSummary:
        """Create or update a locally tracked company."""
        try:
            company = await self._companies.get(company_id)
            if company is None:
                raise RecordNotFoundError("Company", company_id)

            warnings: list[str] = []
            existing_id = await self._find_id(RecordType.COMPANY, "name", company.name)
            candidate = build_candidate(RecordType.COMPANY, company_record_properties(company))
            outcome = await self._write(candidate, existing_id, warnings)
            return SyncSummary(
                success=outcome.success,
                warnings=warnings,
                errors=outcome.errors,
                hubspot_id=outcome.record_id,
            )
        except RecordNotFoundError as exc:
            return SyncSummary(success=False, errors=[str(exc)])
        except Exception as exc:
            logger.error("hubspot_sync.company_failed", company_id=company_id, error=str(exc))
            return SyncSummary(success=False, errors=[f"Failed to sync company: {exc}"])

    async def sync_contact(self, contact_id: str) -> SyncSummary:
        """Create or update a locally tracked contact.

        A newly created contact is associated with its company when that
        company already exists in HubSpot.
        """
        try:
            contact = await self._contacts.get(contact_id)
            if contact is None:
                raise RecordNotFoundError("Contact", contact_id)
            company = await self._companies.get(contact.company_id)

            warnings: list[str] = []
            existing_id = await self._find_id(RecordType.CONTACT, "email", contact.email)
            candidate = build_candidate(
                RecordType.CONTACT,
                contact_record_properties(contact, company.name if company else None),
            )
            outcome = await self._write(candidate, existing_id, warnings)

            if outcome.success and existing_id is None and company is not None:
                try:
                    hubspot_company_id = await self._find_id(RecordType.COMPANY, "name", company.name)
                except Exception as exc:
                    warnings.append(f"Contact synced but association failed: {exc}")
                else:
                    if hubspot_company_id is not None:
                        warning = await self._associations.try_associate(
                            outcome.record_id,
                            hubspot_company_id,
                            RelationKind.CONTACT_TO_COMPANY,
                            "Contact",
                        )
                        if warning:
                            warnings.append(warning)

            return SyncSummary(
                success=outcome.success,
                warnings=warnings,
                errors=outcome.errors,
                hubspot_id=outcome.record_id,
            )
        except RecordNotFoundError as exc:
            return SyncSummary(success=False, errors=[str(exc)])
        except Exception as exc:
            logger.error("hubspot_sync.contact_failed", contact_id=contact_id, error=str(exc))
            return SyncSummary(success=False, errors=[f"Failed to sync contact: {exc}"])

    # ── Permits ───────────────────────────────────────────────────────────

    async def create_deal_from_permit(self, permit_id: str) -> SyncSummary:
        """Create a deal for a permit filing and link it to the operator.

        Steps:
        1. Create the deal with its standard properties -- fatal on failure.
        2. Write custom deal properties one at a time; refusals go into the note.
        3. Attach the permit note.
        4. Find or create the operator company and associate it.
        5. Associate the company's primary contact, if HubSpot knows them.
        """
        try:
            permit = await self._permits.get(permit_id)
            if permit is None:
                raise RecordNotFoundError("Permit", permit_id)

            warnings: list[str] = []
            candidate = build_candidate(
                RecordType.DEAL, permit_deal_properties(permit, self._clock().date())
            )
            custom = custom_fields(RecordType.DEAL, candidate.desired_properties)
            standard = {k: v for k, v in candidate.desired_properties.items() if k not in custom}

            deal_id = await self._transport.create(RecordType.DEAL, standard)

            failed, field_errors = await self._engine.write_fields_individually(
                RecordType.DEAL,
                custom,
                transport_write_op(self._transport, RecordType.DEAL),
                deal_id,
            )
            if failed:
                warnings.append(
                    "Some deal data stored as notes due to field restrictions: "
                    f"{', '.join(failed)}"
                )

            await self._attach_note(
                format_permit_note(permit, failed, now=self._clock()),
                RecordType.DEAL,
                deal_id,
                "Deal created",
                warnings,
            )

            try:
                company = await self._local_company_for(permit)
            except Exception as exc:
                logger.warning(
                    "hubspot_sync.deal_company_lookup_failed", permit_id=permit_id, error=str(exc)
                )
                warnings.append(f"Deal created but company lookup failed: {exc}")
                company = None
            await self._associate_deal_company(deal_id, permit, company, warnings)
            if company is not None:
                await self._associate_deal_contact(deal_id, company, warnings)

            logger.info(
                "hubspot_sync.deal_created",
                permit_id=permit_id,
                deal_id=deal_id,
                warnings=len(warnings),
            )
            return SyncSummary(
                success=True, warnings=warnings, errors=field_errors, hubspot_id=deal_id
            )

        except RecordNotFoundError as exc:
            return SyncSummary(success=False, errors=[str(exc)])
        except Exception as exc:
            logger.error("hubspot_sync.deal_failed", permit_id=permit_id, error=str(exc))
            return SyncSummary(success=False, errors=[f"Failed to create deal: {exc}"])

    async def _local_company_for(self, permit: PermitRecord) -> CompanyRecord | None:
        if permit.company_id:
            company = await self._companies.get(permit.company_id)
            if company is not None:
                return company
        return await self._companies.find_by_operator(permit.operator_name)

    async def _associate_deal_company(
        self,
        deal_id: str,
        permit: PermitRecord,
        company: CompanyRecord | None,
        warnings: list[str],
    ) -> None:
        name = company.name if company else permit.operator_name
        try:
            company_id = await self._find_id(RecordType.COMPANY, "name", name)
            if company_id is None:
                properties = (
                    company_record_properties(company)
                    if company
                    else {"name": name, "industry": "Oil & Gas", "state": permit.location.state}
                )
                outcome = await self._write(
                    build_candidate(RecordType.COMPANY, properties), None, warnings
                )
                if not outcome.success:
                    warnings.append(
                        f"Deal created but operator company could not be created: "
                        f"{'; '.join(outcome.errors)}"
                    )
                    return
                company_id = outcome.record_id
            await self._associations.associate(deal_id, company_id, RelationKind.DEAL_TO_COMPANY)
        except Exception as exc:
            logger.warning("hubspot_sync.deal_company_failed", deal_id=deal_id, error=str(exc))
            warnings.append(f"Deal created but company association failed: {exc}")

    async def _associate_deal_contact(
        self,
        deal_id: str,
        company: CompanyRecord,
        warnings: list[str],
    ) -> None:
        try:
            contact = pick_primary_contact(await self._contacts.list_for_company(company.id))
            if contact is None:
                return
            contact_id = await self._find_id(RecordType.CONTACT, "email", contact.email)
            if contact_id is None:
                logger.info("hubspot_sync.deal_contact_not_in_crm", email=contact.email)
                return
            await self._associations.associate(deal_id, contact_id, RelationKind.DEAL_TO_CONTACT)
        except Exception as exc:
            logger.warning("hubspot_sync.deal_contact_failed", deal_id=deal_id, error=str(exc))
            warnings.append(f"Deal created but contact association failed: {exc}")

    # ── Bulk ──────────────────────────────────────────────────────────────

    async def bulk_sync(self, lead_ids: Sequence[str] | None = None) -> BulkSyncSummary:
        """Sync leads one after another, pausing between calls.

        With no ``lead_ids`` every lead not yet synced is processed. One lead
        failing (or raising) never stops the run; outcomes keep input order.
        """
        if lead_ids is None:
            lead_ids = [lead.id for lead in await self._leads.list() if not lead.synced_to_hubspot]
        return await self._run_bulk("Lead", lead_ids, self.sync_lead_to_hubspot)

    async def bulk_sync_companies(
        self, company_ids: Sequence[str] | None = None
    ) -> BulkSyncSummary:
        """Sync tracked companies one after another; all of them by default."""
        if company_ids is None:
            company_ids = [company.id for company in await self._companies.list()]
        return await self._run_bulk("Company", company_ids, self.sync_company)

    async def bulk_sync_contacts(
        self, contact_ids: Sequence[str] | None = None
    ) -> BulkSyncSummary:
        """Sync tracked contacts one after another; all of them by default."""
        if contact_ids is None:
            contact_ids = [contact.id for contact in await self._contacts.list()]
        return await self._run_bulk("Contact", contact_ids, self.sync_contact)

    async def _run_bulk(
        self,
        label: str,
        record_ids: Sequence[str],
        operation: Callable[[str], Awaitable[SyncSummary]],
    ) -> BulkSyncSummary:
        summary = BulkSyncSummary(total=len(record_ids))
        for index, record_id in enumerate(record_ids):
            try:
                outcome = await operation(record_id)
            except Exception as exc:
                logger.error(
                    "hubspot_sync.bulk_record_failed",
                    record_type=label,
                    record_id=record_id,
                    error=str(exc),
                )
                outcome = SyncSummary(success=False, errors=[f"{label} {record_id}: {exc}"])

            summary.outcomes.append(outcome)
            if outcome.success:
                summary.successful += 1
            else:
                summary.failed += 1
            summary.warnings += len(outcome.warnings)
            bulk_sync_records_total.labels(
                record_type=label, status="ok" if outcome.success else "failed"
            ).inc()

            if index < len(record_ids) - 1:
                await self._sleep(self._bulk_delay)

        logger.info(
            "hubspot_sync.bulk_complete",
            record_type=label,
            total=summary.total,
            successful=summary.successful,
            failed=summary.failed,
            warnings=summary.warnings,
        )
        return summary

    async def test_connection(self) -> bool:
        """Return True when HubSpot answers an authenticated read."""
        try:
            await self._transport.ping()
        except CRMError as exc:
            logger.warning("hubspot_sync.connection_failed", error=str(exc))
            return False
        return True

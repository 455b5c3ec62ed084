"""Field-fallback sync engine -- best-effort writes against a schema we cannot inspect.

The target CRM may reject unknown or custom properties without saying which
ones, so writes degrade in three tiers:

1. Core attempt: one write with the candidate's core fields, in priority order.
2. Essential-only: if the core batch fails, one write with just the first core
   field. If that fails too the sync fails and every desired property is
   reported as failed. If it succeeds, the other core fields are marked failed
   without an individual retry.
3. Remaining-field sweep: every non-core property is written on its own
   against the record ID. A rejection adds the field to failed_fields and the
   sweep continues.

The engine is schema-agnostic: it never looks at field names beyond the
candidate's core/non-core split.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog

from src.prospector.core.monitoring import crm_failed_fields_total, crm_write_attempts_total
from src.prospector.crm.schemas import CandidateRecord, FieldValue, RecordType, SyncOutcome
from src.prospector.crm.transport import ObjectStoreTransport

logger = structlog.get_logger(__name__)

# write_op(properties, record_id) creates when record_id is None, otherwise updates,
# and returns the ID of the record written.
WriteOp = Callable[[dict[str, FieldValue], "str | None"], Awaitable[str]]


def transport_write_op(transport: ObjectStoreTransport, record_type: RecordType) -> WriteOp:
    """Build a create-or-update primitive for one record type over a transport."""

    async def write(properties: dict[str, FieldValue], record_id: str | None) -> str:
        if record_id is None:
            return await transport.create(record_type, properties)
        await transport.update(record_type, record_id, properties)
        return record_id

    return write


class FieldFallbackSyncEngine:
    """Runs the three-tier degrade-and-retry write protocol."""

    async def sync_with_fallback(
        self,
        candidate: CandidateRecord,
        write_op: WriteOp,
        is_update: bool = False,
        record_id: str | None = None,
    ) -> SyncOutcome:
        """Write ``candidate`` through ``write_op``, degrading when properties are rejected.

        Args:
            candidate: The properties to write and their core/essential priority.
            write_op: Create-or-update primitive supplied by the caller.
            is_update: True when ``record_id`` names an existing record.
            record_id: Existing remote ID; required when ``is_update`` is set.

        Returns:
            SyncOutcome. ``success`` is False only when even the essential
            field could not be written.
        """
        if is_update and not record_id:
            raise ValueError("record_id is required for an update")

        record_type = candidate.record_type.value
        target_id = record_id if is_update else None
        label = candidate.record_type.label
        failed_fields: dict[str, FieldValue] = {}
        errors: list[str] = []

        # ── Tier 1: core batch ────────────────────────────────────────────
        try:
            written_id = await write_op(candidate.core_properties, target_id)
            crm_write_attempts_total.labels(record_type=record_type, tier="core", status="ok").inc()
        except Exception as core_exc:
            crm_write_attempts_total.labels(record_type=record_type, tier="core", status="error").inc()
            errors.append(f"{label} core field write failed: {core_exc}")
            logger.warning(
                "crm_sync.core_write_failed",
                record_type=record_type,
                fields=candidate.core_field_names,
                error=str(core_exc),
            )

            # ── Tier 2: essential field only ──────────────────────────────
            essential = candidate.core_field_names[0]
            try:
                written_id = await write_op(
                    {essential: candidate.desired_properties[essential]}, target_id
                )
                crm_write_attempts_total.labels(
                    record_type=record_type, tier="essential", status="ok"
                ).inc()
            except Exception as essential_exc:
                crm_write_attempts_total.labels(
                    record_type=record_type, tier="essential", status="error"
                ).inc()
                errors.append(f"{label} essential field '{essential}' write failed: {essential_exc}")
                logger.error(
                    "crm_sync.essential_write_failed",
                    record_type=record_type,
                    field=essential,
                    error=str(essential_exc),
                )
                crm_failed_fields_total.labels(record_type=record_type).inc(
                    len(candidate.desired_properties)
                )
                return SyncOutcome(
                    success=False,
                    record_id=record_id,
                    failed_fields=dict(candidate.desired_properties),
                    errors=errors,
                )

            for name in candidate.core_field_names[1:]:
                failed_fields[name] = candidate.desired_properties[name]

        # ── Tier 3: one write per remaining field ─────────────────────────
        sweep_failed, sweep_errors = await self.write_fields_individually(
            candidate.record_type, candidate.remaining_properties, write_op, written_id
        )
        failed_fields.update(sweep_failed)
        errors.extend(sweep_errors)

        if failed_fields:
            crm_failed_fields_total.labels(record_type=record_type).inc(len(failed_fields))

        logger.info(
            "crm_sync.complete",
            record_type=record_type,
            record_id=written_id,
            is_update=is_update,
            failed_fields=list(failed_fields.keys()),
        )
        return SyncOutcome(
            success=True,
            record_id=written_id,
            failed_fields=failed_fields,
            errors=errors,
        )

    async def write_fields_individually(
        self,
        record_type: RecordType,
        properties: dict[str, FieldValue],
        write_op: WriteOp,
        record_id: str,
    ) -> tuple[dict[str, FieldValue], list[str]]:
        """Update ``record_id`` one property at a time.

        Returns the properties that were refused (original values) and one
        error string per refusal. A refusal never stops the remaining writes.
        """
        failed: dict[str, FieldValue] = {}
        errors: list[str] = []
        for name, value in properties.items():
            try:
                await write_op({name: value}, record_id)
                crm_write_attempts_total.labels(
                    record_type=record_type.value, tier="field", status="ok"
                ).inc()
            except Exception as field_exc:
                crm_write_attempts_total.labels(
                    record_type=record_type.value, tier="field", status="error"
                ).inc()
                failed[name] = value
                errors.append(f"Field '{name}' could not be saved: {field_exc}")
                logger.info(
                    "crm_sync.field_rejected",
                    record_type=record_type.value,
                    record_id=record_id,
                    field=name,
                    error=str(field_exc),
                )
        return failed, errors

    async def sync(
        self,
        transport: ObjectStoreTransport,
        candidate: CandidateRecord,
        record_id: str | None = None,
    ) -> SyncOutcome:
        """Create (no ``record_id``) or update a record through ``transport``."""
        return await self.sync_with_fallback(
            candidate,
            transport_write_op(transport, candidate.record_type),
            is_update=record_id is not None,
            record_id=record_id,
        )

"""Best-effort links between created CRM records.

A failed association never invalidates the primary write: callers either
catch AssociationError or use try_associate, which hands back a warning.
"""

from __future__ import annotations

import structlog

from src.prospector.crm.errors import AssociationError
from src.prospector.crm.schemas import RelationKind
from src.prospector.crm.transport import ObjectStoreTransport

logger = structlog.get_logger(__name__)


class AssociationManager:
    """Creates typed associations through an object-store transport.

    Args:
        transport: The store holding both records.
    """

    def __init__(self, transport: ObjectStoreTransport) -> None:
        self._transport = transport

    async def associate(self, from_id: str, to_id: str, kind: RelationKind) -> None:
        """Link two records, raising AssociationError on any failure."""
        try:
            await self._transport.create_association(from_id, to_id, kind)
        except Exception as exc:
            raise AssociationError(str(exc)) from exc

    async def try_associate(
        self,
        from_id: str,
        to_id: str,
        kind: RelationKind,
        label: str,
    ) -> str | None:
        """Link two records; return a warning instead of raising on failure.

        Args:
            label: What was created, used in the warning (e.g. "Contact").
        """
        try:
            await self.associate(from_id, to_id, kind)
        except AssociationError as exc:
            logger.warning(
                "crm_associations.failed",
                from_id=from_id,
                to_id=to_id,
                kind=kind.value,
                error=str(exc),
            )
            return f"{label} created but association failed: {exc}"
        return None

"""CRM sync layer -- best-effort writes of prospecting records into HubSpot.

Provides:
- ObjectStoreTransport: abstract create/update/search/associate/note interface
- HubSpotTransport: HubSpot CRM v3 implementation over httpx
- FieldFallbackSyncEngine: three-tier degrade-and-retry write protocol
- AssociationManager: best-effort record links that never fail the primary write
- HubSpotSyncService: lead, company, contact, permit-deal and bulk orchestration

Architecture: the engine knows nothing about HubSpot property names. Field
names are validated in field_mapping before a CandidateRecord reaches it,
and the transport is injected so tests can run against an in-memory store.
"""

from src.prospector.crm.associations import AssociationManager
from src.prospector.crm.errors import (
    AssociationError,
    CRMError,
    RecordNotFoundError,
    RejectedPropertyError,
    TransportError,
)
from src.prospector.crm.hubspot import HubSpotTransport
from src.prospector.crm.service import HubSpotSyncService
from src.prospector.crm.sync import FieldFallbackSyncEngine
from src.prospector.crm.transport import ObjectStoreTransport

__all__ = [
    "ObjectStoreTransport",
    "HubSpotTransport",
    "FieldFallbackSyncEngine",
    "AssociationManager",
    "HubSpotSyncService",
    "CRMError",
    "RejectedPropertyError",
    "TransportError",
    "AssociationError",
    "RecordNotFoundError",
]

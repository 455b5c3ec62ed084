"""Object-store transport abstract base class -- the interface the sync core writes through.

Every CRM backend (HubSpot today) implements this ABC. The field-fallback
engine and the orchestration layer only ever talk to a transport, so tests
substitute an in-memory fake.

Failure contract:
    create/update raise RejectedPropertyError when the schema refuses a
    property and TransportError on network/auth/rate-limit problems.
    search returns an empty list on no match and propagates transport errors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from src.prospector.crm.schemas import FieldValue, RecordType, RelationKind


class ObjectStoreTransport(ABC):
    """Abstract interface for CRM object-store operations.

    Methods:
        create: Create a record, return its remote ID.
        update: Update properties of an existing record.
        search: Exact-match search on one property.
        create_association: Link two records with a typed relation.
        create_note: Create a note attached to a record, return its remote ID.
        ping: Cheap authenticated read used for connection checks.
    """

    @abstractmethod
    async def create(self, record_type: RecordType, properties: dict[str, FieldValue]) -> str:
        """Create a record, return its remote ID."""
        ...

    @abstractmethod
    async def update(
        self, record_type: RecordType, record_id: str, properties: dict[str, FieldValue]
    ) -> None:
        """Update properties of an existing record."""
        ...

    @abstractmethod
    async def search(
        self, record_type: RecordType, field: str, value: str
    ) -> list[dict[str, Any]]:
        """Return records whose ``field`` equals ``value`` (each with an ``id`` key)."""
        ...

    @abstractmethod
    async def create_association(self, from_id: str, to_id: str, kind: RelationKind) -> None:
        """Link ``from_id`` to ``to_id``."""
        ...

    @abstractmethod
    async def create_note(
        self, body: str, attached_to_type: RecordType, attached_to_id: str
    ) -> str:
        """Create a note attached to a record, return the note's remote ID."""
        ...

    @abstractmethod
    async def ping(self) -> None:
        """Raise if the store cannot be reached with the configured credentials."""
        ...

"""Exception hierarchy for the CRM sync layer."""

from __future__ import annotations


class CRMError(Exception):
    """Base class for failures talking to the CRM object store."""


class RejectedPropertyError(CRMError):
    """The remote schema refused one or more properties.

    ``properties`` lists the rejected names when the store reports them; it is
    empty when the store only says the payload was invalid.
    """

    def __init__(self, message: str, properties: list[str] | None = None) -> None:
        super().__init__(message)
        self.properties = properties or []


class TransportError(CRMError):
    """Network, authentication or rate-limit failure."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AssociationError(CRMError):
    """A link between two remote records could not be created."""


class RecordNotFoundError(CRMError):
    """A caller referenced a local lead, permit, company or contact that does not exist."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id

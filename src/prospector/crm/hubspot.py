"""HubSpot CRM v3 transport -- ObjectStoreTransport over the HubSpot REST API.

Key implementation details:
- Explicit HubSpotConfig passed at construction (no process-wide service object)
- Requests retried with tenacity (3 attempts, exponential backoff 1-10s) on
  rate limiting, 5xx responses, connection errors and timeouts
- 400 validation responses become RejectedPropertyError, naming the rejected
  properties when HubSpot reports them; everything else becomes TransportError
- Property values are serialized to strings (dates as ISO-8601)
"""

from __future__ import annotations

import json
import re
from datetime import date, datetime, timezone
from typing import Any

import httpx
import structlog
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from src.prospector.config import HubSpotConfig
from src.prospector.crm.errors import RejectedPropertyError, TransportError
from src.prospector.crm.schemas import FieldValue, RecordType, RelationKind
from src.prospector.crm.transport import ObjectStoreTransport

logger = structlog.get_logger(__name__)

# HUBSPOT_DEFINED association type IDs for note -> object
NOTE_ASSOCIATION_TYPE_IDS: dict[RecordType, int] = {
    RecordType.COMPANY: 190,
    RecordType.CONTACT: 202,
    RecordType.DEAL: 214,
}

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}
_MISSING_PROPERTY_RE = re.compile(r'Property \\?"?([A-Za-z0-9_]+)\\?"? does not exist')


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, (httpx.ConnectError, httpx.TimeoutException)):
        return True
    return isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code in _RETRYABLE_STATUS


_hubspot_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception(_is_retryable),
    reraise=True,
)


def serialize_properties(properties: dict[str, FieldValue]) -> dict[str, str]:
    """Render property values the way the HubSpot API expects them."""
    serialized: dict[str, str] = {}
    for name, value in properties.items():
        if isinstance(value, (date, datetime)):
            serialized[name] = value.isoformat()
        else:
            serialized[name] = str(value)
    return serialized


def _rejected_property_names(body: dict[str, Any]) -> list[str]:
    names: list[str] = []
    for error in body.get("errors") or []:
        context = error.get("context") or {}
        for name in context.get("propertyName") or []:
            if name not in names:
                names.append(name)
        if error.get("name") and error["name"] not in names:
            names.append(error["name"])
    for name in _MISSING_PROPERTY_RE.findall(body.get("message") or ""):
        if name not in names:
            names.append(name)
    return names


def _error_detail(response: httpx.Response) -> tuple[str, dict[str, Any]]:
    try:
        body = response.json()
    except (json.JSONDecodeError, ValueError):
        return response.text[:500], {}
    if not isinstance(body, dict):
        return str(body)[:500], {}
    detail = body.get("message", "")
    if body.get("errors"):
        messages = [e.get("message", str(e)) for e in body["errors"]]
        detail = f"{detail}: {'; '.join(messages)}"
    return detail, body


def _created_id(data: dict[str, Any], what: str) -> str:
    if not data.get("id"):
        raise TransportError(f"HubSpot returned no id for the created {what}")
    return str(data["id"])


class HubSpotTransport(ObjectStoreTransport):
    """HubSpot CRM v3 implementation of ObjectStoreTransport.

    Args:
        config: Access token, portal and base URL.
        client: Optional pre-built httpx.AsyncClient (tests inject a
            MockTransport-backed client here).
    """

    def __init__(self, config: HubSpotConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url,
            headers={
                "Authorization": f"Bearer {config.access_token}",
                "Content-Type": "application/json",
            },
            timeout=config.timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    @_hubspot_retry
    async def _send(
        self,
        method: str,
        endpoint: str,
        json_data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        response = await self._client.request(method, endpoint, json=json_data, params=params)
        if response.status_code in _RETRYABLE_STATUS:
            logger.warning(
                "hubspot.retryable_status",
                endpoint=endpoint,
                status_code=response.status_code,
            )
            response.raise_for_status()
        return response

    async def _request(
        self,
        method: str,
        endpoint: str,
        json_data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send one request and translate failures into the CRM error taxonomy."""
        try:
            response = await self._send(method, endpoint, json_data=json_data, params=params)
        except httpx.HTTPStatusError as exc:
            detail, _ = _error_detail(exc.response)
            raise TransportError(
                f"HubSpot API error: {exc.response.status_code} - {detail}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"HubSpot request failed: {exc}") from exc

        if response.status_code == 400:
            detail, body = _error_detail(response)
            raise RejectedPropertyError(
                f"HubSpot API error: 400 - {detail}",
                properties=_rejected_property_names(body),
            )
        if response.status_code >= 400:
            detail, _ = _error_detail(response)
            raise TransportError(
                f"HubSpot API error: {response.status_code} - {detail}",
                status_code=response.status_code,
            )
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    async def create(self, record_type: RecordType, properties: dict[str, FieldValue]) -> str:
        data = await self._request(
            "POST",
            f"/crm/v3/objects/{record_type.value}",
            json_data={"properties": serialize_properties(properties)},
        )
        record_id = _created_id(data, record_type.label.lower())
        logger.info(
            "hubspot.record_created",
            record_type=record_type.value,
            record_id=record_id,
            fields=list(properties.keys()),
        )
        return record_id

    async def update(
        self, record_type: RecordType, record_id: str, properties: dict[str, FieldValue]
    ) -> None:
        await self._request(
            "PATCH",
            f"/crm/v3/objects/{record_type.value}/{record_id}",
            json_data={"properties": serialize_properties(properties)},
        )
        logger.info(
            "hubspot.record_updated",
            record_type=record_type.value,
            record_id=record_id,
            fields=list(properties.keys()),
        )

    async def search(
        self, record_type: RecordType, field: str, value: str
    ) -> list[dict[str, Any]]:
        data = await self._request(
            "POST",
            f"/crm/v3/objects/{record_type.value}/search",
            json_data={
                "filterGroups": [
                    {"filters": [{"propertyName": field, "operator": "EQ", "value": value}]}
                ]
            },
        )
        return list(data.get("results") or [])

    async def create_association(self, from_id: str, to_id: str, kind: RelationKind) -> None:
        data = await self._request(
            "POST",
            f"/crm/v3/associations/{kind.from_type.value}/{kind.to_type.value}/batch/create",
            json_data={
                "inputs": [{"from": {"id": from_id}, "to": {"id": to_id}, "type": kind.value}]
            },
        )
        if data.get("numErrors"):
            messages = [e.get("message", str(e)) for e in data.get("errors") or []]
            raise TransportError(f"HubSpot association failed: {'; '.join(messages)}")
        logger.info(
            "hubspot.association_created",
            from_id=from_id,
            to_id=to_id,
            kind=kind.value,
        )

    async def create_note(
        self, body: str, attached_to_type: RecordType, attached_to_id: str
    ) -> str:
        data = await self._request(
            "POST",
            f"/crm/v3/objects/{RecordType.NOTE.value}",
            json_data={
                "properties": {
                    "hs_note_body": body,
                    "hs_timestamp": datetime.now(timezone.utc).isoformat(),
                },
                "associations": [
                    {
                        "to": {"id": attached_to_id},
                        "types": [
                            {
                                "associationCategory": "HUBSPOT_DEFINED",
                                "associationTypeId": NOTE_ASSOCIATION_TYPE_IDS[attached_to_type],
                            }
                        ],
                    }
                ],
            },
        )
        note_id = _created_id(data, "note")
        logger.info(
            "hubspot.note_created",
            note_id=note_id,
            attached_to_type=attached_to_type.value,
            attached_to_id=attached_to_id,
        )
        return note_id

    async def ping(self) -> None:
        await self._request("GET", f"/crm/v3/objects/{RecordType.COMPANY.value}", params={"limit": 1})

"""Tests for HubSpotTransport against httpx.MockTransport -- no network calls."""

from __future__ import annotations

import json
from datetime import date

import httpx
import pytest
from tenacity import wait_none

from src.prospector.config import HubSpotConfig
from src.prospector.crm.errors import RejectedPropertyError, TransportError
from src.prospector.crm.hubspot import HubSpotTransport, serialize_properties
from src.prospector.crm.schemas import RecordType, RelationKind


def _transport(handler) -> HubSpotTransport:
    config = HubSpotConfig(access_token="test-token")
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url=config.base_url,
        headers={"Authorization": "Bearer test-token"},
    )
    return HubSpotTransport(config, client=client)


@pytest.fixture(autouse=True)
def _no_retry_wait(monkeypatch):
    monkeypatch.setattr(HubSpotTransport._send.retry, "wait", wait_none())


def test_serialize_properties():
    assert serialize_properties({"closedate": date(2026, 5, 31), "count": 3, "name": "A"}) == {
        "closedate": "2026-05-31",
        "count": "3",
        "name": "A",
    }


async def test_create_posts_properties_and_returns_id():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": "501", "properties": {}})

    transport = _transport(handler)
    record_id = await transport.create(RecordType.COMPANY, {"name": "Acme", "recent_permits_count": 4})

    assert record_id == "501"
    assert seen["path"] == "/crm/v3/objects/companies"
    assert seen["auth"] == "Bearer test-token"
    assert seen["body"] == {"properties": {"name": "Acme", "recent_permits_count": "4"}}


async def test_update_patches_record():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "PATCH"
        assert request.url.path == "/crm/v3/objects/deals/77"
        return httpx.Response(200, json={"id": "77"})

    await _transport(handler).update(RecordType.DEAL, "77", {"deal_type": "New Permit Opportunity"})


async def test_search_uses_eq_filter():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert request.url.path == "/crm/v3/objects/contacts/search"
        assert body["filterGroups"][0]["filters"] == [
            {"propertyName": "email", "operator": "EQ", "value": "a@b.com"}
        ]
        return httpx.Response(200, json={"total": 1, "results": [{"id": "9"}]})

    results = await _transport(handler).search(RecordType.CONTACT, "email", "a@b.com")
    assert results == [{"id": "9"}]


async def test_search_no_match_is_empty():
    transport = _transport(lambda request: httpx.Response(200, json={"total": 0, "results": []}))
    assert await transport.search(RecordType.COMPANY, "name", "Nobody") == []


async def test_validation_error_names_rejected_property():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={
                "status": "error",
                "message": "Property values were not valid",
                "category": "VALIDATION_ERROR",
                "errors": [
                    {
                        "message": 'Property "primary_formation" does not exist',
                        "code": "PROPERTY_DOESNT_EXIST",
                        "context": {"propertyName": ["primary_formation"]},
                    }
                ],
            },
        )

    with pytest.raises(RejectedPropertyError) as exc_info:
        await _transport(handler).update(RecordType.COMPANY, "1", {"primary_formation": "Woodford"})

    assert exc_info.value.properties == ["primary_formation"]
    assert "400" in str(exc_info.value)


async def test_auth_failure_is_transport_error():
    transport = _transport(lambda request: httpx.Response(401, json={"message": "Authentication credentials not found"}))

    with pytest.raises(TransportError) as exc_info:
        await transport.ping()

    assert exc_info.value.status_code == 401


async def test_rate_limit_is_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(429, json={"message": "rate limited"})
        return httpx.Response(201, json={"id": "8"})

    assert await _transport(handler).create(RecordType.COMPANY, {"name": "Acme"}) == "8"
    assert len(calls) == 3


async def test_persistent_server_error_gives_up():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, text="unavailable")

    with pytest.raises(TransportError) as exc_info:
        await _transport(handler).create(RecordType.COMPANY, {"name": "Acme"})

    assert exc_info.value.status_code == 503
    assert len(calls) == 3


async def test_connection_error_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransportError, match="HubSpot request failed"):
        await _transport(handler).ping()


async def test_association_batch_create():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"status": "COMPLETE", "results": []})

    await _transport(handler).create_association("d-1", "c-1", RelationKind.DEAL_TO_CONTACT)

    assert seen["path"] == "/crm/v3/associations/deals/contacts/batch/create"
    assert seen["body"]["inputs"] == [
        {"from": {"id": "d-1"}, "to": {"id": "c-1"}, "type": "deal_to_contact"}
    ]


async def test_association_partial_errors_raise():
    transport = _transport(
        lambda request: httpx.Response(
            207, json={"numErrors": 1, "errors": [{"message": "Invalid to id"}]}
        )
    )
    with pytest.raises(TransportError, match="Invalid to id"):
        await transport.create_association("c-1", "x", RelationKind.CONTACT_TO_COMPANY)


async def test_create_without_id_is_transport_error():
    transport = _transport(lambda request: httpx.Response(201))
    with pytest.raises(TransportError, match="no id for the created company"):
        await transport.create(RecordType.COMPANY, {"name": "Acme"})


async def test_note_without_id_is_transport_error():
    transport = _transport(lambda request: httpx.Response(200, json={"properties": {}}))
    with pytest.raises(TransportError, match="no id for the created note"):
        await transport.create_note("hello", RecordType.COMPANY, "42")


@pytest.mark.parametrize(
    "record_type, type_id",
    [(RecordType.COMPANY, 190), (RecordType.CONTACT, 202), (RecordType.DEAL, 214)],
)
async def test_note_association_type_ids(record_type, type_id):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": "n-1"})

    note_id = await _transport(handler).create_note("hello", record_type, "42")

    assert note_id == "n-1"
    assert seen["body"]["properties"]["hs_note_body"] == "hello"
    [association] = seen["body"]["associations"]
    assert association["to"] == {"id": "42"}
    assert association["types"][0] == {
        "associationCategory": "HUBSPOT_DEFINED",
        "associationTypeId": type_id,
    }

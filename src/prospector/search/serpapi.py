"""SerpAPI client for local-business lead search.

Queries Google local results for oil and gas operators in a state, collapses
duplicate listings, and maps what survives to Lead records.

Key implementation details:
- API key passed at construction, never read from module state
- Requests retried with tenacity (3 attempts, exponential backoff 1-10s)
- HTTP failures and API-reported errors raise SearchError; an empty result
  set is a normal empty list
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Mapping
from typing import Any

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.prospector.schemas.records import Lead, LeadContact, ProspectState, SerpApiData
from src.prospector.search.dedup import deduplicate

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://serpapi.com/search.json"

_CONTACT_PATTERNS = [
    re.compile(rf"{role}:?\s*([A-Z][a-z]+\s+[A-Z][a-z]+)", re.IGNORECASE)
    for role in ("Contact", "Manager", "President", "CEO")
]


class SearchError(Exception):
    """Raised when the search provider cannot be reached or reports an error."""


def extract_contact_info(result: Mapping[str, Any]) -> LeadContact:
    """Pull a named contact out of a listing snippet.

    Looks for "Contact: First Last" style mentions (also Manager, President
    and CEO). Listings without one get a generic company representative.
    """
    snippet = result.get("snippet") or ""
    for pattern in _CONTACT_PATTERNS:
        match = pattern.search(snippet)
        if match:
            title = match.group(0).split(":")[0].split()[0] or "Contact"
            return LeadContact(name=match.group(1), title=title, phone=result.get("phone"))

    company = result.get("title") or "Company"
    return LeadContact(
        name=f"{company.split(' ')[0]} Representative",
        title="Business Contact",
        phone=result.get("phone"),
    )


def result_to_lead(result: Mapping[str, Any], state: ProspectState) -> Lead:
    """Map one SerpAPI local result to a Lead."""
    return Lead(
        id=f"serp-{uuid.uuid4().hex[:12]}",
        company_name=result.get("title") or "Unknown Company",
        website=result.get("link") or result.get("website"),
        location=result.get("address") or f"{state.value}, USA",
        description=result.get("snippet"),
        contact=extract_contact_info(result),
        serpapi_data=SerpApiData(
            place_id=result.get("place_id"),
            rating=result.get("rating"),
            reviews=result.get("reviews"),
            type=result.get("type"),
        ),
    )


class SerpAPIClient:
    """Async SerpAPI client.

    Args:
        api_key: SerpAPI key.
        base_url: search.json endpoint.
        result_count: Results requested per search.
        client: Optional pre-built httpx.AsyncClient (tests inject one).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        result_count: int = 20,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._result_count = result_count
        self._client = client or httpx.AsyncClient(timeout=30.0)

    async def aclose(self) -> None:
        await self._client.aclose()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
        reraise=True,
    )
    async def _get(self, params: dict[str, str]) -> dict[str, Any]:
        response = await self._client.get(self._base_url, params=params)
        response.raise_for_status()
        return response.json()

    async def search_oil_gas_companies(self, state: ProspectState) -> list[Lead]:
        """Search for oil and gas companies in ``state`` and return unique leads."""
        if not self._api_key:
            raise SearchError("SerpAPI key is not configured")

        params = {
            "api_key": self._api_key,
            "engine": "google",
            "q": f"Oil and Gas companies in {state.value}",
            "tbm": "lcl",
            "num": str(self._result_count),
        }
        try:
            data = await self._get(params)
        except httpx.HTTPStatusError as exc:
            raise SearchError(
                f"SerpAPI request failed: {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise SearchError(f"SerpAPI request failed: {exc}") from exc

        if data.get("error"):
            raise SearchError(f"SerpAPI error: {data['error']}")

        raw_results = data.get("local_results") or []
        unique = deduplicate(raw_results)
        logger.info(
            "serpapi.search_complete",
            state=state.value,
            raw_results=len(raw_results),
            unique_results=len(unique),
        )
        return [result_to_lead(result, state) for result in unique]

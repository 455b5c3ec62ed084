"""Permit lookup with a short-lived cache, plus stats and operator aggregation.

Permit filings come from a PermitSource (a state regulator feed, or a static
file in development). PermitService caches each distinct search for a fixed
TTL and applies the search filters itself, so a source may ignore them.
"""

from __future__ import annotations

import calendar
import json
import re
import time
from collections.abc import Callable, Iterable, Sequence
from datetime import date, timedelta
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import BaseModel, TypeAdapter

from src.prospector.repositories import PermitRepository
from src.prospector.schemas.records import CompanyRecord, PermitRecord, ProspectState

logger = structlog.get_logger(__name__)

RECENT_PERMIT_MONTHS = 6


class PermitSearchParams(BaseModel):
    """Filters for a permit search. Unset fields do not filter."""

    state: ProspectState | None = None
    operator: str | None = None
    county: str | None = None
    start_date: date | None = None
    end_date: date | None = None

    def cache_key(self) -> str:
        return self.model_dump_json()

    def matches(self, permit: PermitRecord) -> bool:
        if self.state is not None and permit.location.state != self.state.value:
            return False
        if self.operator and self.operator.lower() not in permit.operator_name.lower():
            return False
        if self.county and self.county.lower() not in permit.location.county.lower():
            return False
        if self.start_date is not None and permit.filing_date < self.start_date:
            return False
        if self.end_date is not None and permit.filing_date > self.end_date:
            return False
        return True


class PermitStats(BaseModel):
    oklahoma: int = 0
    kansas: int = 0
    total: int = 0
    this_week: int = 0
    this_month: int = 0


class PermitSource(Protocol):
    """Where permit filings come from."""

    async def fetch(self, params: PermitSearchParams) -> list[PermitRecord]: ...


class StaticPermitSource:
    """Serves a fixed list of permits, optionally loaded from a JSON file."""

    def __init__(self, permits: Iterable[PermitRecord] = ()) -> None:
        self._permits = list(permits)

    @classmethod
    def from_file(cls, path: str | Path) -> StaticPermitSource:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        permits = TypeAdapter(list[PermitRecord]).validate_python(raw)
        logger.info("permits.static_source_loaded", path=str(path), permits=len(permits))
        return cls(permits)

    async def fetch(self, params: PermitSearchParams) -> list[PermitRecord]:
        return list(self._permits)


class PermitService:
    """Cached, filtered permit search.

    Args:
        source: Upstream permit feed.
        repository: When given, every fetched permit is stored here so deals
            can later be created from it by ID.
        ttl_seconds: How long one search result stays cached.
        clock: Monotonic time source in seconds, replaced in tests.
    """

    def __init__(
        self,
        source: PermitSource,
        repository: PermitRepository | None = None,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._repository = repository
        self._ttl = ttl_seconds
        self._clock = clock
        self._cache: dict[str, tuple[float, list[PermitRecord]]] = {}

    async def fetch(self, params: PermitSearchParams) -> list[PermitRecord]:
        key = params.cache_key()
        cached = self._cache.get(key)
        if cached is not None and self._clock() - cached[0] < self._ttl:
            logger.debug("permits.cache_hit", params=key)
            return list(cached[1])

        try:
            permits = [p for p in await self._source.fetch(params) if params.matches(p)]
        except Exception as exc:
            logger.error("permits.fetch_failed", params=key, error=str(exc))
            raise

        now = self._clock()
        self._evict_expired(now)
        self._cache[key] = (now, permits)
        if self._repository is not None:
            await self._repository.add_many(permits)
        logger.info("permits.fetched", params=key, permits=len(permits))
        return list(permits)

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, (stored_at, _) in self._cache.items() if now - stored_at >= self._ttl]
        for key in expired:
            del self._cache[key]

    def clear_cache(self) -> None:
        self._cache.clear()


# ── Aggregation ───────────────────────────────────────────────────────────


def months_before(day: date, months: int) -> date:
    """Same day ``months`` calendar months earlier, clamped to the month's end."""
    month_index = day.year * 12 + day.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def permit_stats(permits: Sequence[PermitRecord], today: date) -> PermitStats:
    """Counts per state plus filings in the last 7 and 30 days."""
    oklahoma = sum(1 for p in permits if p.location.state == ProspectState.OKLAHOMA.value)
    kansas = sum(1 for p in permits if p.location.state == ProspectState.KANSAS.value)
    week_start = today - timedelta(days=7)
    month_start = today - timedelta(days=30)
    return PermitStats(
        oklahoma=oklahoma,
        kansas=kansas,
        total=oklahoma + kansas,
        this_week=sum(1 for p in permits if p.filing_date >= week_start),
        this_month=sum(1 for p in permits if p.filing_date >= month_start),
    )


def activity_level(recent_count: int) -> str:
    if recent_count >= 10:
        return "High"
    if recent_count >= 3:
        return "Medium"
    return "Low"


def size_bucket(permit_count: int) -> str:
    if permit_count >= 50:
        return "Large (500+ employees)"
    if permit_count >= 20:
        return "Medium (100-500 employees)"
    return "Small (10-100 employees)"


def _company_id(operator_name: str) -> str:
    return "permit-" + re.sub(r"\s+", "-", operator_name.strip()).lower()


def companies_from_permits(
    permits: Sequence[PermitRecord],
    existing_names: Iterable[str],
    today: date,
) -> list[CompanyRecord]:
    """Derive one company per operator not already tracked.

    Operators are matched to ``existing_names`` case-insensitively. A permit
    is recent when filed within the last six months; an operator with none
    is Dormant.
    """
    known = {name.lower() for name in existing_names}
    by_operator: dict[str, list[PermitRecord]] = {}
    for permit in permits:
        by_operator.setdefault(permit.operator_name, []).append(permit)

    recent_cutoff = months_before(today, RECENT_PERMIT_MONTHS)
    companies: list[CompanyRecord] = []
    for operator, filings in by_operator.items():
        if operator.lower() in known:
            continue
        filings = sorted(filings, key=lambda p: p.filing_date, reverse=True)
        recent = [p for p in filings if p.filing_date >= recent_cutoff]
        formations = [p.formation for p in filings if p.formation]
        states = {p.location.state for p in filings}

        companies.append(
            CompanyRecord(
                id=_company_id(operator),
                name=operator,
                size=size_bucket(len(filings)),
                primary_formation=formations[0] if formations else "Unknown",
                recent_permits_count=len(recent),
                last_permit_date=filings[0].filing_date,
                drilling_activity_level=activity_level(len(recent)),
                geological_staff_size=max(1, len(filings) // 10),
                state="Both" if len(states) > 1 else next(iter(states)),
                status="Active" if recent else "Dormant",
            )
        )
        known.add(operator.lower())

    logger.info("permits.companies_derived", operators=len(by_operator), created=len(companies))
    return companies

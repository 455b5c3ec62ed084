"""Drilling permit filings -- cached search, stats, and operator company derivation."""

from src.prospector.permits.service import (
    PermitSearchParams,
    PermitService,
    PermitSource,
    PermitStats,
    StaticPermitSource,
    companies_from_permits,
    permit_stats,
)

__all__ = [
    "PermitSearchParams",
    "PermitService",
    "PermitSource",
    "PermitStats",
    "StaticPermitSource",
    "companies_from_permits",
    "permit_stats",
]

"""Collapse duplicate search results before they become leads.

Each raw result is keyed by the first available of its normalized phone,
normalized website domain, or normalized company name. The first result seen
under a key wins and claims all of its keys; a later result whose own key is
already claimed is dropped.
"""

from __future__ import annotations

import re
import string
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import urlparse

RawResult = Mapping[str, Any]

_NON_DIGITS = re.compile(r"\D")
_WHITESPACE = re.compile(r"\s+")
_PUNCTUATION = str.maketrans("", "", string.punctuation)
_COMPANY_SUFFIXES = re.compile(
    r"\b(?:inc|llc|corp|corporation|company|co|ltd|limited)\b"
)


def normalize_phone(phone: str | None) -> str:
    """Return the 10-digit US number, or "" when the input is not one."""
    if not phone:
        return ""
    digits = _NON_DIGITS.sub("", phone)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    return digits if len(digits) == 10 else ""


def normalize_domain(link: str | None) -> str:
    """Return the lowercased host of ``link`` without a leading ``www.``."""
    if not link or not link.strip():
        return ""
    link = link.strip()
    if "://" not in link:
        link = f"https://{link}"
    try:
        host = urlparse(link).hostname or ""
    except ValueError:
        return ""
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def normalize_name(name: str | None) -> str:
    """Lowercase, drop punctuation and corporate suffixes, collapse whitespace."""
    if not name:
        return ""
    cleaned = name.lower().translate(_PUNCTUATION)
    cleaned = _COMPANY_SUFFIXES.sub(" ", cleaned)
    return _WHITESPACE.sub(" ", cleaned).strip()


def dedup_keys(result: RawResult) -> list[str]:
    """Every key ``result`` can be matched under, in priority order."""
    keys = []
    phone = normalize_phone(result.get("phone"))
    if phone:
        keys.append(f"phone:{phone}")
    domain = normalize_domain(result.get("link") or result.get("website"))
    if domain:
        keys.append(f"domain:{domain}")
    name = normalize_name(result.get("title") or result.get("name"))
    if name:
        keys.append(f"name:{name}")
    return keys


def dedup_key(result: RawResult) -> str | None:
    """Key for ``result`` by phone, then domain, then name; None if it has none of them."""
    keys = dedup_keys(result)
    return keys[0] if keys else None


def deduplicate(
    results: Sequence[RawResult],
    collapse_unidentified: bool = False,
) -> list[RawResult]:
    """Drop later duplicates from ``results``, preserving first-occurrence order.

    A result is dropped when its own key matches any key of a result already
    kept, so a later entry with only a domain collapses into an earlier one
    that also carries a phone.

    Results with no usable phone, domain or name are kept as distinct entries.
    With ``collapse_unidentified`` they share one combined key instead, so only
    the first of them survives.
    """
    seen: set[str] = set()
    unique: list[RawResult] = []
    for index, result in enumerate(results):
        keys = dedup_keys(result)
        if not keys:
            keys = ["combined:||" if collapse_unidentified else f"unidentified:{index}"]
        if keys[0] in seen:
            continue
        seen.update(keys)
        unique.append(result)
    return unique

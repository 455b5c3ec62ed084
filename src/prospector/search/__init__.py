"""Lead search -- SerpAPI local results, deduplicated into Lead records."""

from src.prospector.search.dedup import deduplicate, dedup_key
from src.prospector.search.serpapi import SearchError, SerpAPIClient

__all__ = ["SerpAPIClient", "SearchError", "deduplicate", "dedup_key"]

"""
Autocomplete across regions, localities, stations and landmarks.

The four catalogs are queried concurrently, each capped at a small
per-type limit so one type cannot crowd out the others. A sub-query that
fails or does not finish within the timeout contributes no suggestions;
the rest are still returned.
"""

from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable

from hotel_geosearch.config import CacheSettings, SearchSettings, settings
from hotel_geosearch.data.cache import CacheService
from hotel_geosearch.data.repository import LocationRepository
from hotel_geosearch.logging_config import get_logger

logger = get_logger(__name__)

MIN_QUERY_LENGTH = 2

# Output order and per-type caps.
SUGGESTION_TYPES: tuple[tuple[str, int], ...] = (
    ("region", 3),
    ("locality", 4),
    ("station", 3),
    ("landmark", 3),
)


def _region_suggestion(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "region",
        "id": row["id"],
        "name": row["name"],
        "localized_name": row["localized_name"],
        "display_name": row["name"],
    }


def _locality_suggestion(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "locality",
        "id": row["id"],
        "name": row["name"],
        "localized_name": row["localized_name"],
        "display_name": f"{row['name']} ({row['parent_name']})",
    }


def _station_suggestion(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "station",
        "id": row["id"],
        "name": row["name"],
        "localized_name": row["localized_name"],
        "display_name": f"{row['name']} Station ({row['parent_name']})",
    }


def _landmark_suggestion(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "landmark",
        "id": row["id"],
        "name": row["name"],
        "localized_name": row["localized_name"],
        "category": row.get("category"),
        "display_name": f"{row['name']} ({row['parent_name']})",
    }


class SuggestionAggregator:
    """
    Fan-out/fan-in autocomplete.

    Usage:
        aggregator = SuggestionAggregator(repo, CacheService())
        aggregator.suggest("shin", limit=10)
    """

    def __init__(
        self,
        repository: LocationRepository,
        cache: CacheService,
        search_settings: SearchSettings | None = None,
        cache_settings: CacheSettings | None = None,
        timeout: float | None = None,
    ):
        self.repository = repository
        self.cache = cache
        self.search_settings = search_settings or settings.search
        self.cache_settings = cache_settings or settings.cache
        self.timeout = timeout if timeout is not None else self.search_settings.suggestion_timeout

    def _sub_queries(self) -> dict[str, tuple[Callable[[str, int], list[dict]], Callable[[dict], dict]]]:
        return {
            "region": (self.repository.match_regions, _region_suggestion),
            "locality": (self.repository.match_localities, _locality_suggestion),
            "station": (self.repository.match_stations, _station_suggestion),
            "landmark": (self.repository.match_landmarks, _landmark_suggestion),
        }

    def suggest(self, query: str, limit: int | None = None) -> list[dict[str, Any]]:
        """
        Suggestions for a partial name, in region → locality → station → landmark order.

        Queries shorter than two characters return [] without touching the
        datastore or the cache.
        """
        if not isinstance(query, str):
            return []
        term = query.strip()
        if len(term) < MIN_QUERY_LENGTH:
            return []
        limit = self.search_settings.suggestion_limit if limit is None else limit
        if limit < 1:
            return []

        key = CacheService.build_key("search:suggest", query=term.lower(), limit=limit)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        by_type, complete = self._fan_out(term)
        suggestions = [s for kind, _ in SUGGESTION_TYPES for s in by_type.get(kind, [])][:limit]

        # Partial results are not cached, so a recovered sub-query is seen next time
        if complete:
            self.cache.set(key, suggestions, ttl_seconds=self.cache_settings.suggestion_ttl)
        return suggestions

    def _fan_out(self, term: str) -> tuple[dict[str, list[dict[str, Any]]], bool]:
        """Run all sub-queries concurrently. Returns (suggestions by type, all succeeded)."""
        sub_queries = self._sub_queries()
        by_type: dict[str, list[dict[str, Any]]] = {}
        complete = True

        executor = ThreadPoolExecutor(max_workers=len(SUGGESTION_TYPES), thread_name_prefix="suggest")
        try:
            futures = {
                kind: executor.submit(sub_queries[kind][0], term, cap)
                for kind, cap in SUGGESTION_TYPES
            }
            done, _ = wait(futures.values(), timeout=self.timeout)

            for kind, future in futures.items():
                if future not in done:
                    logger.warning("Suggestion sub-query '%s' timed out after %.2fs", kind, self.timeout)
                    complete = False
                    continue
                try:
                    rows = future.result()
                except Exception as e:  # one entity type failing must not sink the rest
                    logger.warning("Suggestion sub-query '%s' failed: %s", kind, e)
                    complete = False
                    continue
                to_suggestion = sub_queries[kind][1]
                by_type[kind] = [to_suggestion(row) for row in rows]
        finally:
            # Don't wait for stragglers; they finish in the background and are discarded
            executor.shutdown(wait=False, cancel_futures=True)

        return by_type, complete

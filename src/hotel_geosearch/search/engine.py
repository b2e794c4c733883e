"""
Hotel search engine.

Answers "hotels near X" questions (by coordinate, station or landmark) and
produces the price-bracket histogram and popular-area ranking. All
operations are read-only and never raise to the caller: invalid input and
datastore failures are logged and degrade to an empty result, and an
unknown anchor yields a structured not-found result.
"""

import math
from typing import Any, NamedTuple, Optional

from sqlalchemy.exc import SQLAlchemyError

from hotel_geosearch.config import CacheSettings, SearchSettings, settings
from hotel_geosearch.data.cache import CacheService
from hotel_geosearch.data.repository import LocationRepository
from hotel_geosearch.exceptions import (
    AnchorNotFoundError,
    DatabaseError,
    InvalidCoordinatesError,
    ValidationError,
)
from hotel_geosearch.logging_config import get_logger
from hotel_geosearch.search.geo import (
    bounding_box,
    haversine_distance_km,
    is_valid_coordinate,
    normalize_coordinate,
    overall_access_score,
    round_half_up,
)
from hotel_geosearch.search.pricing import PriceTable

logger = get_logger(__name__)

DATASTORE_ERRORS = (SQLAlchemyError, DatabaseError)


class LocationQuery(NamedTuple):
    """Normalized search filter; also the cache key material."""

    region_id: Optional[int]
    locality_id: Optional[int]
    area_id: Optional[int]
    price_bracket: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    radius_km: Optional[float]
    limit: int
    offset: int

    @property
    def has_center(self) -> bool:
        return self.latitude is not None


class HotelSearchService:
    """
    Location-based hotel search backed by a repository and a TTL cache.

    Usage:
        repo = LocationRepository(create_session_factory())
        service = HotelSearchService(repo, CacheService())
        service.search_by_location(region_id=13, price_bracket="budget")
    """

    def __init__(
        self,
        repository: LocationRepository,
        cache: CacheService,
        search_settings: SearchSettings | None = None,
        cache_settings: CacheSettings | None = None,
    ):
        self.repository = repository
        self.cache = cache
        self.search_settings = search_settings or settings.search
        self.cache_settings = cache_settings or settings.cache
        self.price_table: PriceTable = self.search_settings.price_table()

    # ─── Reference data ─────────────────────────────────────

    def list_regions(self) -> list[dict[str, Any]]:
        """All regions ordered by id."""
        key = "search:ref:regions"
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        try:
            regions = self.repository.list_regions()
        except DATASTORE_ERRORS as e:
            logger.error("Failed to list regions: %s", e)
            return []
        self.cache.set(key, regions, ttl_seconds=self.cache_settings.reference_ttl)
        return regions

    def list_localities(self, region_id: int) -> list[dict[str, Any]]:
        """Localities of a region, major ones first."""
        key = CacheService.build_key("search:ref:localities", region_id=region_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        try:
            localities = self.repository.list_localities(region_id)
        except DATASTORE_ERRORS as e:
            logger.error("Failed to list localities for region %s: %s", region_id, e)
            return []
        self.cache.set(key, localities, ttl_seconds=self.cache_settings.reference_ttl)
        return localities

    # ─── Location search ────────────────────────────────────

    def search_by_location(
        self,
        region_id: int | None = None,
        locality_id: int | None = None,
        area_id: int | None = None,
        price_bracket: str | None = None,
        latitude: float | None = None,
        longitude: float | None = None,
        radius_km: float | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """
        Search hotels by administrative filters, price bracket and/or distance.

        When a center is given, the bounding box is pushed to the datastore
        and each row is then checked against the exact great-circle
        distance; ``radius_km`` defaults to the "area" radius. Results are
        ordered by tourist access score (highest first) and paginated.

        Returns:
            List of hotel dicts, each annotated with ``distance_km`` (None
            without a center), ``price_bracket``, ``price_bracket_label`` and
            ``access_scores.overall``. Empty on invalid input or datastore error.
        """
        try:
            query = self._normalize(
                region_id, locality_id, area_id, price_bracket,
                latitude, longitude, radius_km, limit, offset,
            )
        except ValidationError as e:
            logger.warning("Rejected location search: %s", e.message)
            return []

        key = CacheService.build_key("search:location", **query._asdict())
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            hotels = self._run_location_query(query)
        except DATASTORE_ERRORS as e:
            logger.error("Error searching hotels by location: %s", e)
            return []

        self.cache.set(key, hotels, ttl_seconds=self.cache_settings.search_ttl)
        return hotels

    def _normalize(
        self, region_id, locality_id, area_id, price_bracket,
        latitude, longitude, radius_km, limit, offset,
    ) -> LocationQuery:
        if price_bracket is not None:
            self.price_table.get(price_bracket)  # raises UnknownPriceBracketError

        lat = lon = radius = None
        if latitude is not None or longitude is not None:
            if not is_valid_coordinate(latitude, longitude):
                raise InvalidCoordinatesError(latitude, longitude, radius_km)
            radius = self.search_settings.area_radius_km if radius_km is None else radius_km
            try:
                radius = float(radius)
            except (TypeError, ValueError):
                raise InvalidCoordinatesError(latitude, longitude, radius_km) from None
            if not (radius > 0 and math.isfinite(radius)):
                raise InvalidCoordinatesError(latitude, longitude, radius_km)
            lat = normalize_coordinate(latitude)
            lon = normalize_coordinate(longitude)

        limit = self.search_settings.default_limit if limit is None else limit
        if limit < 1 or offset < 0:
            raise ValidationError(
                f"Invalid pagination limit={limit} offset={offset}",
                details={"limit": limit, "offset": offset},
            )

        return LocationQuery(
            region_id=region_id,
            locality_id=locality_id,
            area_id=area_id,
            price_bracket=price_bracket,
            latitude=lat,
            longitude=lon,
            radius_km=radius,
            limit=int(limit),
            offset=int(offset),
        )

    def _run_location_query(self, query: LocationQuery) -> list[dict[str, Any]]:
        price_min = price_below = None
        if query.price_bracket is not None:
            price_min, price_below = self.price_table.price_range(query.price_bracket)

        filters = dict(
            region_id=query.region_id,
            locality_id=query.locality_id,
            area_id=query.area_id,
            price_min=price_min,
            price_below=price_below,
        )

        if not query.has_center:
            rows = self.repository.find_hotels(**filters, limit=query.limit, offset=query.offset)
            return [self._annotate(row, distance_km=None) for row in rows]

        box = bounding_box(query.latitude, query.longitude, query.radius_km)
        # The box over-includes, so paginate only after the exact distance check
        rows = self.repository.find_hotels(**filters, box=box)
        within = []
        for row in rows:
            distance = haversine_distance_km(query.latitude, query.longitude, row["latitude"], row["longitude"])
            if distance <= query.radius_km:
                within.append(self._annotate(row, distance_km=distance))
        logger.debug(
            "Bounding box matched %d hotels, %d within %.2f km",
            len(rows), len(within), query.radius_km,
        )
        return within[query.offset:query.offset + query.limit]

    def _annotate(self, row: dict[str, Any], distance_km: float | None) -> dict[str, Any]:
        bracket = self.price_table.classify(row["price"]["current_average"])
        scores = row["access_scores"]
        return {
            **row,
            "distance_km": distance_km,
            "price_bracket": bracket.code,
            "price_bracket_label": bracket.label,
            "access_scores": {
                **scores,
                "overall": overall_access_score(scores["tourist"], scores["business"], scores["transport"]),
            },
        }

    # ─── Anchor search ──────────────────────────────────────

    def search_by_station(
        self,
        station_id: int,
        max_distance_km: float | None = None,
        price_bracket: str | None = None,
        limit: int | None = None,
    ) -> dict[str, Any]:
        """
        Hotels within walking distance of a transit stop.

        Returns:
            ``{"station", "hotels", "params"}``; when the station does not
            resolve, ``station`` is None, ``hotels`` is empty and ``error``
            describes why.
        """
        return self._anchor_search(
            "station", self.repository.get_station, station_id,
            max_distance_km, self.search_settings.walkable_radius_km, price_bracket, limit,
        )

    def search_by_landmark(
        self,
        landmark_id: int,
        max_distance_km: float | None = None,
        price_bracket: str | None = None,
        limit: int | None = None,
    ) -> dict[str, Any]:
        """Hotels within the "accessible" radius of a tourist landmark. Same shape as search_by_station."""
        return self._anchor_search(
            "landmark", self.repository.get_landmark, landmark_id,
            max_distance_km, self.search_settings.accessible_radius_km, price_bracket, limit,
        )

    def _anchor_search(
        self, kind, resolve, anchor_id, max_distance_km, default_radius, price_bracket, limit,
    ) -> dict[str, Any]:
        radius = default_radius if max_distance_km is None else max_distance_km
        params = {"max_distance_km": radius, "price_bracket": price_bracket}

        try:
            anchor = resolve(anchor_id)
        except AnchorNotFoundError as e:
            logger.info("%s", e.message)
            return {kind: None, "hotels": [], "params": params, "error": e.message}
        except DATASTORE_ERRORS as e:
            logger.error("Error resolving %s %s: %s", kind, anchor_id, e)
            return {kind: None, "hotels": [], "params": params, "error": f"Could not look up {kind}"}

        hotels = self.search_by_location(
            latitude=anchor["latitude"],
            longitude=anchor["longitude"],
            radius_km=radius,
            price_bracket=price_bracket,
            limit=limit,
        )
        return {kind: anchor, "hotels": hotels, "params": params}

    # ─── Aggregates ─────────────────────────────────────────

    def price_statistics(
        self, region_id: int | None = None, locality_id: int | None = None
    ) -> list[dict[str, Any]]:
        """
        Hotel count per price category, cheapest first.

        Categories without matching hotels are omitted.
        """
        key = CacheService.build_key("search:stats:prices", region_id=region_id, locality_id=locality_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            rows = self.repository.price_category_counts(region_id=region_id, locality_id=locality_id)
        except DATASTORE_ERRORS as e:
            logger.error("Error getting price statistics: %s", e)
            return []

        stats = [
            {
                "bracket": row["code"],
                "label": row["name"],
                "min": row["min_price"],
                "max": row["max_price"],
                "count": row["hotel_count"],
            }
            for row in rows
            if row["hotel_count"] > 0
        ]
        self.cache.set(key, stats, ttl_seconds=self.cache_settings.statistics_ttl)
        return stats

    def popular_areas(self, region_id: int | None = None, limit: int = 10) -> list[dict[str, Any]]:
        """Localities ranked by hotel count (descending), with their mean hotel price."""
        if limit < 1:
            return []

        key = CacheService.build_key("search:stats:areas", region_id=region_id, limit=limit)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            rows = self.repository.locality_hotel_totals(region_id=region_id)
        except DATASTORE_ERRORS as e:
            logger.error("Error getting popular areas: %s", e)
            return []

        # Grouping only yields localities with at least one hotel
        areas = [
            {
                "locality_id": row["locality_id"],
                "name": row["name"],
                "localized_name": row["localized_name"],
                "is_major": row["is_major"],
                "hotel_count": row["hotel_count"],
                "avg_price": round_half_up(row["total_price"] / row["hotel_count"]),
            }
            for row in rows
        ]
        areas.sort(key=lambda a: (-a["hotel_count"], a["locality_id"]))
        areas = areas[:limit]

        self.cache.set(key, areas, ttl_seconds=self.cache_settings.statistics_ttl)
        return areas

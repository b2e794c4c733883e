"""
Repository layer — every read query the search core issues.

LocationRepository is the datastore-access interface injected into the
search services. Each method opens its own short-lived session, so a
single repository can serve concurrent threads (the suggestion fan-out
runs four of these methods at once). Results are returned as plain dicts
so they can be cached and serialized without touching the ORM again.
"""

from typing import Any, Callable, Optional

from sqlalchemy import select, func, or_
from sqlalchemy.orm import Session

from hotel_geosearch.data.models import (
    Region,
    Locality,
    Area,
    TransitStop,
    PointOfInterest,
    HotelLocation,
    PriceCategory,
    PriceAnalysis,
)
from hotel_geosearch.exceptions import StationNotFoundError, LandmarkNotFoundError
from hotel_geosearch.logging_config import get_logger
from hotel_geosearch.search.geo import BoundingBox

logger = get_logger(__name__)


def _like_pattern(term: str) -> str:
    """Build a substring LIKE pattern, escaping LIKE metacharacters."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _name_matches(model, term: str):
    pattern = _like_pattern(term)
    return or_(
        model.name.ilike(pattern, escape="\\"),
        model.localized_name.ilike(pattern, escape="\\"),
    )


class LocationRepository:
    """
    Read-only queries over the hotel location catalog.

    Usage:
        session_factory = create_session_factory()
        repo = LocationRepository(session_factory)
        repo.find_hotels(region_id=13, limit=20)
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    # --- Reference data ---

    def list_regions(self) -> list[dict[str, Any]]:
        """All regions ordered by id."""
        with self._session_factory() as session:
            regions = session.scalars(select(Region).order_by(Region.id))
            return [self._region_to_dict(r) for r in regions]

    def list_localities(self, region_id: int) -> list[dict[str, Any]]:
        """Localities of a region, major localities first, then by name."""
        stmt = (
            select(Locality)
            .where(Locality.region_id == region_id)
            .order_by(Locality.is_major.desc(), Locality.name)
        )
        with self._session_factory() as session:
            return [self._locality_to_dict(loc) for loc in session.scalars(stmt)]

    # --- Anchors ---

    def get_station(self, stop_id: int) -> dict[str, Any]:
        """Resolve a transit stop. Raises StationNotFoundError."""
        with self._session_factory() as session:
            stop = session.get(TransitStop, stop_id)
            if stop is None:
                raise StationNotFoundError(stop_id)
            return {
                "id": stop.id,
                "name": stop.name,
                "localized_name": stop.localized_name,
                "latitude": stop.latitude,
                "longitude": stop.longitude,
                "locality_id": stop.locality_id,
                "line_name": stop.line_name,
            }

    def get_landmark(self, poi_id: int) -> dict[str, Any]:
        """Resolve a point of interest. Raises LandmarkNotFoundError."""
        with self._session_factory() as session:
            poi = session.get(PointOfInterest, poi_id)
            if poi is None:
                raise LandmarkNotFoundError(poi_id)
            return {
                "id": poi.id,
                "name": poi.name,
                "localized_name": poi.localized_name,
                "category": poi.category,
                "latitude": poi.latitude,
                "longitude": poi.longitude,
                "rating": poi.rating,
                "locality_id": poi.locality_id,
            }

    # --- Hotel search ---

    def find_hotels(
        self,
        region_id: int | None = None,
        locality_id: int | None = None,
        area_id: int | None = None,
        price_min: float | None = None,
        price_below: float | None = None,
        box: BoundingBox | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """
        Hotels joined with their price analysis and ancestry.

        Only hotels that have a price analysis row are returned. The price
        filter is half-open, ``price_min <= price < price_below``, and
        excludes unpriced hotels. Ordered by tourist access score (highest
        first), then hotel id.
        """
        stmt = (
            select(HotelLocation, PriceAnalysis, Region, Locality, Area, TransitStop, PriceCategory)
            .join(PriceAnalysis, PriceAnalysis.hotel_id == HotelLocation.hotel_id)
            .join(Region, Region.id == HotelLocation.region_id)
            .join(Locality, Locality.id == HotelLocation.locality_id)
            .outerjoin(Area, Area.id == HotelLocation.area_id)
            .outerjoin(TransitStop, TransitStop.id == HotelLocation.nearest_stop_id)
            .outerjoin(PriceCategory, PriceCategory.id == PriceAnalysis.price_category_id)
        )

        if region_id is not None:
            stmt = stmt.where(HotelLocation.region_id == region_id)
        if locality_id is not None:
            stmt = stmt.where(HotelLocation.locality_id == locality_id)
        if area_id is not None:
            stmt = stmt.where(HotelLocation.area_id == area_id)
        if price_min is not None or price_below is not None:
            # Unpriced hotels (<= 0) belong to no bracket
            stmt = stmt.where(PriceAnalysis.current_average_price > 0)
        if price_min is not None:
            stmt = stmt.where(PriceAnalysis.current_average_price >= price_min)
        if price_below is not None:
            stmt = stmt.where(PriceAnalysis.current_average_price < price_below)
        if box is not None:
            stmt = stmt.where(
                HotelLocation.latitude.between(box.lat_min, box.lat_max),
                HotelLocation.longitude.between(box.lon_min, box.lon_max),
            )

        stmt = stmt.order_by(HotelLocation.tourist_access_score.desc(), HotelLocation.hotel_id)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        with self._session_factory() as session:
            rows = session.execute(stmt).all()
            return [self._hotel_row_to_dict(*row) for row in rows]

    # --- Aggregates ---

    def price_category_counts(
        self, region_id: int | None = None, locality_id: int | None = None
    ) -> list[dict[str, Any]]:
        """Hotel count per price category, cheapest category first. Empty categories are absent."""
        hotel_count = func.count(PriceAnalysis.hotel_id)
        stmt = (
            select(
                PriceCategory.code,
                PriceCategory.name,
                PriceCategory.min_price,
                PriceCategory.max_price,
                hotel_count,
            )
            .join(PriceAnalysis, PriceAnalysis.price_category_id == PriceCategory.id)
            .join(HotelLocation, HotelLocation.hotel_id == PriceAnalysis.hotel_id)
        )
        if region_id is not None:
            stmt = stmt.where(HotelLocation.region_id == region_id)
        if locality_id is not None:
            stmt = stmt.where(HotelLocation.locality_id == locality_id)
        stmt = stmt.group_by(
            PriceCategory.id, PriceCategory.code, PriceCategory.name,
            PriceCategory.min_price, PriceCategory.max_price,
        ).order_by(PriceCategory.min_price)

        with self._session_factory() as session:
            return [
                {
                    "code": code,
                    "name": name,
                    "min_price": min_price,
                    "max_price": max_price,
                    "hotel_count": count,
                }
                for code, name, min_price, max_price, count in session.execute(stmt)
            ]

    def locality_hotel_totals(self, region_id: int | None = None) -> list[dict[str, Any]]:
        """Per-locality hotel count and summed average price (missing prices count as 0)."""
        hotel_count = func.count(HotelLocation.hotel_id)
        total_price = func.sum(func.coalesce(PriceAnalysis.current_average_price, 0))
        stmt = (
            select(
                Locality.id,
                Locality.name,
                Locality.localized_name,
                Locality.is_major,
                hotel_count,
                total_price,
            )
            .join(HotelLocation, HotelLocation.locality_id == Locality.id)
            .join(PriceAnalysis, PriceAnalysis.hotel_id == HotelLocation.hotel_id)
        )
        if region_id is not None:
            stmt = stmt.where(HotelLocation.region_id == region_id)
        stmt = stmt.group_by(Locality.id, Locality.name, Locality.localized_name, Locality.is_major)

        with self._session_factory() as session:
            return [
                {
                    "locality_id": loc_id,
                    "name": name,
                    "localized_name": localized_name,
                    "is_major": bool(is_major),
                    "hotel_count": count,
                    "total_price": float(total or 0),
                }
                for loc_id, name, localized_name, is_major, count, total in session.execute(stmt)
            ]

    # --- Autocomplete ---

    def match_regions(self, term: str, limit: int) -> list[dict[str, Any]]:
        stmt = select(Region).where(_name_matches(Region, term)).order_by(Region.id).limit(limit)
        with self._session_factory() as session:
            return [self._region_to_dict(r) for r in session.scalars(stmt)]

    def match_localities(self, term: str, limit: int) -> list[dict[str, Any]]:
        stmt = (
            select(Locality, Region.name)
            .join(Region, Region.id == Locality.region_id)
            .where(_name_matches(Locality, term))
            .order_by(Locality.is_major.desc(), Locality.id)
            .limit(limit)
        )
        with self._session_factory() as session:
            return [
                {**self._locality_to_dict(loc), "parent_name": region_name}
                for loc, region_name in session.execute(stmt)
            ]

    def match_stations(self, term: str, limit: int) -> list[dict[str, Any]]:
        stmt = (
            select(TransitStop, Locality.name)
            .join(Locality, Locality.id == TransitStop.locality_id)
            .where(_name_matches(TransitStop, term))
            .order_by(TransitStop.id)
            .limit(limit)
        )
        with self._session_factory() as session:
            return [
                {
                    "id": stop.id,
                    "name": stop.name,
                    "localized_name": stop.localized_name,
                    "line_name": stop.line_name,
                    "parent_name": locality_name,
                }
                for stop, locality_name in session.execute(stmt)
            ]

    def match_landmarks(self, term: str, limit: int) -> list[dict[str, Any]]:
        stmt = (
            select(PointOfInterest, Locality.name)
            .join(Locality, Locality.id == PointOfInterest.locality_id)
            .where(_name_matches(PointOfInterest, term))
            .order_by(PointOfInterest.rating.desc(), PointOfInterest.id)
            .limit(limit)
        )
        with self._session_factory() as session:
            return [
                {
                    "id": poi.id,
                    "name": poi.name,
                    "localized_name": poi.localized_name,
                    "category": poi.category,
                    "parent_name": locality_name,
                }
                for poi, locality_name in session.execute(stmt)
            ]

    # --- Row mapping ---

    @staticmethod
    def _region_to_dict(region: Region) -> dict[str, Any]:
        return {
            "id": region.id,
            "name": region.name,
            "localized_name": region.localized_name,
            "parent_region_id": region.parent_region_id,
        }

    @staticmethod
    def _locality_to_dict(locality: Locality) -> dict[str, Any]:
        return {
            "id": locality.id,
            "name": locality.name,
            "localized_name": locality.localized_name,
            "latitude": locality.latitude,
            "longitude": locality.longitude,
            "is_major": bool(locality.is_major),
            "region_id": locality.region_id,
        }

    @staticmethod
    def _hotel_row_to_dict(
        hotel: HotelLocation,
        price: PriceAnalysis,
        region: Region,
        locality: Locality,
        area: Optional[Area],
        stop: Optional[TransitStop],
        category: Optional[PriceCategory],
    ) -> dict[str, Any]:
        return {
            "hotel_id": hotel.hotel_id,
            "region_id": hotel.region_id,
            "locality_id": hotel.locality_id,
            "area_id": hotel.area_id,
            "address": hotel.address,
            "latitude": hotel.latitude,
            "longitude": hotel.longitude,
            "region": {"id": region.id, "name": region.name, "localized_name": region.localized_name},
            "locality": {"id": locality.id, "name": locality.name, "localized_name": locality.localized_name},
            "area": (
                {"id": area.id, "name": area.name, "localized_name": area.localized_name}
                if area is not None else None
            ),
            "nearest_stop": (
                {
                    "id": stop.id,
                    "name": stop.name,
                    "line_name": stop.line_name,
                    "distance_m": hotel.distance_to_stop_m,
                    "walk_minutes": hotel.walk_minutes_to_stop,
                }
                if stop is not None else None
            ),
            "price": {
                "current_average": price.current_average_price,
                "min": price.min_price,
                "max": price.max_price,
                "category_code": category.code if category is not None else None,
            },
            "access_scores": {
                "tourist": hotel.tourist_access_score,
                "business": hotel.business_access_score,
                "transport": hotel.transport_access_score,
            },
        }

"""
Read-only HTTP endpoints. Each handler only maps query parameters onto a
service call; filtering, caching and error degradation live in the services.
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, Request

from hotel_geosearch.api.schemas import (
    HotelResult,
    LandmarkSearchResponse,
    LocalityOut,
    PopularArea,
    PriceStatistic,
    RegionOut,
    StationSearchResponse,
    Suggestion,
)
from hotel_geosearch.logging_config import get_logger
from hotel_geosearch.search.engine import HotelSearchService
from hotel_geosearch.search.suggestions import SuggestionAggregator

logger = get_logger(__name__)

router = APIRouter()


def _search_service(request: Request) -> HotelSearchService:
    service = request.app.state.search_service
    if service is None:
        raise HTTPException(status_code=503, detail="Search service is offline.")
    return service


def _suggestion_service(request: Request) -> SuggestionAggregator:
    service = request.app.state.suggestion_service
    if service is None:
        raise HTTPException(status_code=503, detail="Suggestion service is offline.")
    return service


@router.get("/regions", response_model=List[RegionOut])
def list_regions(request: Request):
    return _search_service(request).list_regions()


@router.get("/regions/{region_id}/localities", response_model=List[LocalityOut])
def list_localities(region_id: int, request: Request):
    return _search_service(request).list_localities(region_id)


@router.get("/hotels/search", response_model=List[HotelResult])
def search_hotels(
    request: Request,
    region_id: Optional[int] = None,
    locality_id: Optional[int] = None,
    area_id: Optional[int] = None,
    price_bracket: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    radius_km: Optional[float] = None,
    limit: Optional[int] = Query(None, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    return _search_service(request).search_by_location(
        region_id=region_id,
        locality_id=locality_id,
        area_id=area_id,
        price_bracket=price_bracket,
        latitude=latitude,
        longitude=longitude,
        radius_km=radius_km,
        limit=limit,
        offset=offset,
    )


@router.get("/hotels/near-station/{station_id}", response_model=StationSearchResponse)
def hotels_near_station(
    station_id: int,
    request: Request,
    max_distance_km: Optional[float] = Query(None, gt=0),
    price_bracket: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=100),
):
    result = _search_service(request).search_by_station(
        station_id, max_distance_km=max_distance_km, price_bracket=price_bracket, limit=limit,
    )
    if result["station"] is None:
        raise HTTPException(status_code=404, detail=result.get("error", "Station not found"))
    return result


@router.get("/hotels/near-landmark/{landmark_id}", response_model=LandmarkSearchResponse)
def hotels_near_landmark(
    landmark_id: int,
    request: Request,
    max_distance_km: Optional[float] = Query(None, gt=0),
    price_bracket: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=100),
):
    result = _search_service(request).search_by_landmark(
        landmark_id, max_distance_km=max_distance_km, price_bracket=price_bracket, limit=limit,
    )
    if result["landmark"] is None:
        raise HTTPException(status_code=404, detail=result.get("error", "Landmark not found"))
    return result


@router.get("/statistics/prices", response_model=List[PriceStatistic])
def price_statistics(request: Request, region_id: Optional[int] = None, locality_id: Optional[int] = None):
    return _search_service(request).price_statistics(region_id=region_id, locality_id=locality_id)


@router.get("/statistics/popular-areas", response_model=List[PopularArea])
def popular_areas(request: Request, region_id: Optional[int] = None, limit: int = Query(10, ge=1, le=100)):
    return _search_service(request).popular_areas(region_id=region_id, limit=limit)


@router.get("/suggestions", response_model=List[Suggestion])
def suggestions(request: Request, q: str = "", limit: Optional[int] = Query(None, ge=1, le=50)):
    return _suggestion_service(request).suggest(q, limit=limit)

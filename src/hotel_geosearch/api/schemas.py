from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class NamedRef(BaseModel):
    id: int
    name: str
    localized_name: Optional[str] = None


class RegionOut(NamedRef):
    parent_region_id: Optional[int] = None


class LocalityOut(NamedRef):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_major: bool = False
    region_id: int


class NearestStop(BaseModel):
    id: int
    name: str
    line_name: Optional[str] = None
    distance_m: Optional[int] = None
    walk_minutes: Optional[int] = None


class PriceInfo(BaseModel):
    current_average: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    category_code: Optional[str] = None


class AccessScores(BaseModel):
    tourist: int
    business: int
    transport: int
    overall: int


class HotelResult(BaseModel):
    """A hotel matched by a location search."""
    hotel_id: int
    region_id: int
    locality_id: int
    area_id: Optional[int] = None
    address: Optional[str] = None
    latitude: float
    longitude: float
    region: NamedRef
    locality: NamedRef
    area: Optional[NamedRef] = None
    nearest_stop: Optional[NearestStop] = None
    price: PriceInfo
    access_scores: AccessScores
    distance_km: Optional[float] = Field(None, description="Great-circle distance from the search center.")
    price_bracket: str
    price_bracket_label: str


class SearchParams(BaseModel):
    max_distance_km: float
    price_bracket: Optional[str] = None


class StationSearchResponse(BaseModel):
    station: Dict[str, Any]
    hotels: List[HotelResult]
    params: SearchParams


class LandmarkSearchResponse(BaseModel):
    landmark: Dict[str, Any]
    hotels: List[HotelResult]
    params: SearchParams


class PriceStatistic(BaseModel):
    bracket: str
    label: str
    min: float
    max: Optional[float] = None
    count: int


class PopularArea(BaseModel):
    locality_id: int
    name: str
    localized_name: Optional[str] = None
    is_major: bool
    hotel_count: int
    avg_price: int


class Suggestion(BaseModel):
    """One autocomplete entry."""
    type: str
    id: int
    name: str
    localized_name: Optional[str] = None
    display_name: str
    category: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "locality",
                "id": 101,
                "name": "Shinjuku",
                "localized_name": "新宿区",
                "display_name": "Shinjuku (Tokyo)",
            }
        }
    )

"""Search layer — geo helpers, price brackets, search engine and autocomplete.

Only the pure modules are re-exported here; import HotelSearchService and
SuggestionAggregator from their own modules (they depend on config).
"""

from hotel_geosearch.search.geo import (
    BoundingBox, bounding_box, haversine_distance_km, overall_access_score,
)
from hotel_geosearch.search.pricing import (
    PriceBracket, PriceTable, UNSET_BRACKET, DEFAULT_PRICE_BRACKETS, classify_price,
)

__all__ = [
    "BoundingBox", "bounding_box", "haversine_distance_km", "overall_access_score",
    "PriceBracket", "PriceTable", "UNSET_BRACKET", "DEFAULT_PRICE_BRACKETS", "classify_price",
]

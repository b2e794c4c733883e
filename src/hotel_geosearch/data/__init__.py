"""Data layer — database engine, ORM models, caching, and repository."""

from hotel_geosearch.data.database import Base, create_db_engine, create_session_factory, init_db
from hotel_geosearch.data.models import (
    Region, Locality, Area, TransitStop, PointOfInterest,
    HotelLocation, PriceCategory, PriceAnalysis,
)
from hotel_geosearch.data.cache import CacheBackend, InMemoryBackend, RedisBackend, CacheService
from hotel_geosearch.data.repository import LocationRepository

__all__ = [
    "Base", "create_db_engine", "create_session_factory", "init_db",
    "Region", "Locality", "Area", "TransitStop", "PointOfInterest",
    "HotelLocation", "PriceCategory", "PriceAnalysis",
    "CacheBackend", "InMemoryBackend", "RedisBackend", "CacheService",
    "LocationRepository",
]

"""
Shared fixtures: a seeded SQLite catalog, repository, cache and services.

The database is a file under tmp_path (not :memory:) so that concurrent
suggestion sub-queries each get their own connection.
"""

import pytest

from hotel_geosearch.config import CacheSettings, SearchSettings
from hotel_geosearch.data.cache import CacheService, InMemoryBackend
from hotel_geosearch.data.database import create_db_engine, create_session_factory, init_db
from hotel_geosearch.data.models import (
    Region, Locality, Area, TransitStop, PointOfInterest,
    HotelLocation, PriceCategory, PriceAnalysis,
)
from hotel_geosearch.data.repository import LocationRepository
from hotel_geosearch.search.engine import HotelSearchService
from hotel_geosearch.search.pricing import PriceTable
from hotel_geosearch.search.suggestions import SuggestionAggregator

TOKYO = 13
OSAKA = 27

SHINJUKU = 101
CHIYODA = 102
TAITO = 103
OSAKA_CITY = 201

SHINJUKU_STATION = 1
SHIN_OSAKA_STATION = 2
SENSOJI = 1
OSAKA_CASTLE = 2

_PRICE_TABLE = PriceTable()
_CATEGORY_IDS = {bracket.code: idx for idx, bracket in enumerate(_PRICE_TABLE, start=1)}


class FakeClock:
    """Controllable monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def add_hotel(
    session,
    hotel_id,
    region_id,
    locality_id,
    latitude,
    longitude,
    price,
    tourist=50,
    business=50,
    transport=50,
    area_id=None,
    nearest_stop_id=None,
):
    """Insert a hotel and (when price is not None) its price analysis row."""
    session.add(HotelLocation(
        hotel_id=hotel_id,
        region_id=region_id,
        locality_id=locality_id,
        area_id=area_id,
        address=f"{hotel_id} Test Street",
        latitude=latitude,
        longitude=longitude,
        nearest_stop_id=nearest_stop_id,
        distance_to_stop_m=400 if nearest_stop_id else None,
        walk_minutes_to_stop=5 if nearest_stop_id else None,
        tourist_access_score=tourist,
        business_access_score=business,
        transport_access_score=transport,
    ))
    if price is not None:
        session.add(PriceAnalysis(
            hotel_id=hotel_id,
            current_average_price=price,
            min_price=price * 0.8,
            max_price=price * 1.3,
            price_category_id=_CATEGORY_IDS.get(_PRICE_TABLE.classify(price).code),
        ))


@pytest.fixture
def engine(tmp_path):
    """SQLite file database with all tables created."""
    eng = create_db_engine(f"sqlite:///{tmp_path / 'catalog.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def catalog(session_factory):
    """
    Seed a small catalog.

    Shinjuku station sits at (35.0, 139.0):
        hotel 1 is 0.80 km due north
        hotel 2 is 1.20 km north-east (inside the 1 km bounding box)
    Senso-ji sits at (35.1, 139.1), on top of hotel 6.
    Hotel 9 has no price analysis and never appears in results.
    """
    with session_factory() as session:
        for idx, bracket in enumerate(_PRICE_TABLE, start=1):
            session.add(PriceCategory(
                id=idx, code=bracket.code, name=bracket.label,
                min_price=bracket.min_price, max_price=bracket.max_price,
            ))

        session.add_all([
            Region(id=TOKYO, name="Tokyo", localized_name="東京都"),
            Region(id=OSAKA, name="Osaka", localized_name="大阪府"),
        ])
        session.flush()
        session.add_all([
            Locality(id=SHINJUKU, name="Shinjuku", localized_name="新宿区",
                     latitude=35.69, longitude=139.70, is_major=True, region_id=TOKYO),
            Locality(id=CHIYODA, name="Chiyoda", localized_name="千代田区",
                     latitude=35.69, longitude=139.75, is_major=True, region_id=TOKYO),
            Locality(id=TAITO, name="Taito", localized_name="台東区",
                     latitude=35.71, longitude=139.78, is_major=False, region_id=TOKYO),
            Locality(id=OSAKA_CITY, name="Osaka City", localized_name="大阪市",
                     latitude=34.69, longitude=135.50, is_major=True, region_id=OSAKA),
        ])
        session.flush()
        session.add_all([
            Area(id=1, name="Nishi-Shinjuku", localized_name="西新宿", locality_id=SHINJUKU),
            TransitStop(id=SHINJUKU_STATION, name="Shinjuku", localized_name="新宿",
                        latitude=35.0, longitude=139.0, locality_id=SHINJUKU, line_name="JR Yamanote Line"),
            TransitStop(id=SHIN_OSAKA_STATION, name="Shin-Osaka", localized_name="新大阪",
                        latitude=34.7335, longitude=135.5003, locality_id=OSAKA_CITY, line_name="Tokaido Shinkansen"),
            PointOfInterest(id=SENSOJI, name="Senso-ji", localized_name="浅草寺", category="temple",
                            latitude=35.1, longitude=139.1, rating=4.6, locality_id=TAITO),
            PointOfInterest(id=OSAKA_CASTLE, name="Osaka Castle", localized_name="大阪城", category="historic",
                            latitude=34.6873, longitude=135.5262, rating=4.4, locality_id=OSAKA_CITY),
        ])
        session.flush()

        add_hotel(session, 1, TOKYO, SHINJUKU, 35.0071946, 139.0, 12000,
                  tourist=70, business=50, transport=85, area_id=1, nearest_stop_id=SHINJUKU_STATION)
        add_hotel(session, 2, TOKYO, SHINJUKU, 35.0076309, 139.0093155, 25000,
                  tourist=90, business=70, transport=80, nearest_stop_id=SHINJUKU_STATION)
        add_hotel(session, 3, TOKYO, SHINJUKU, 35.0, 138.95, 45000, tourist=50)
        add_hotel(session, 4, TOKYO, CHIYODA, 35.05, 139.05, 8000, tourist=80)
        add_hotel(session, 5, TOKYO, CHIYODA, 35.051, 139.052, 70000, tourist=60)
        add_hotel(session, 6, TOKYO, TAITO, 35.1, 139.1, 14000, tourist=95)
        add_hotel(session, 7, OSAKA, OSAKA_CITY, 34.7, 135.5, 9000, tourist=85)
        add_hotel(session, 8, OSAKA, OSAKA_CITY, 34.701, 135.501, 16000, tourist=40)
        add_hotel(session, 9, TOKYO, TAITO, 35.1001, 139.1001, None, tourist=99)
        session.commit()
    return session_factory


@pytest.fixture
def repo(catalog):
    return LocationRepository(catalog)


@pytest.fixture
def cache_settings():
    return CacheSettings(redis_url=None, max_entries=100)


@pytest.fixture
def search_settings():
    return SearchSettings()


@pytest.fixture
def cache(cache_settings):
    return CacheService(backend=InMemoryBackend(max_entries=100), cache_settings=cache_settings)


@pytest.fixture
def service(repo, cache, search_settings, cache_settings):
    return HotelSearchService(repo, cache, search_settings=search_settings, cache_settings=cache_settings)


@pytest.fixture
def aggregator(repo, cache, search_settings, cache_settings):
    return SuggestionAggregator(repo, cache, search_settings=search_settings, cache_settings=cache_settings)

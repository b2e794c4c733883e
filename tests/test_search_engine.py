"""
Tests for HotelSearchService: location / station / landmark search and aggregates.
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from hotel_geosearch.config import SearchSettings
from hotel_geosearch.search.engine import HotelSearchService

from conftest import (
    CHIYODA, OSAKA, OSAKA_CITY, SENSOJI, SHINJUKU, SHINJUKU_STATION, TAITO, TOKYO,
    add_hotel,
)


def _ids(hotels):
    return [h["hotel_id"] for h in hotels]


@pytest.fixture
def spy_repo(repo):
    """Repository wrapper that records calls while running the real queries."""
    return MagicMock(wraps=repo)


@pytest.fixture
def spied_service(spy_repo, cache, search_settings, cache_settings):
    return HotelSearchService(spy_repo, cache, search_settings=search_settings, cache_settings=cache_settings)


@pytest.fixture
def failing_service(cache, search_settings, cache_settings):
    repo = MagicMock()
    error = OperationalError("SELECT 1", {}, Exception("database is locked"))
    for method in (
        "find_hotels", "get_station", "get_landmark", "price_category_counts",
        "locality_hotel_totals", "list_regions", "list_localities",
    ):
        getattr(repo, method).side_effect = error
    return HotelSearchService(repo, cache, search_settings=search_settings, cache_settings=cache_settings)


# ─── Location search ────────────────────────────────────────


class TestSearchByLocation:
    """Tests for administrative and price filtering."""

    def test_region_and_bracket(self, service):
        """Budget hotels in Tokyo, best tourist access first."""
        hotels = service.search_by_location(region_id=TOKYO, price_bracket="budget")
        assert _ids(hotels) == [6, 4, 1]
        assert all(h["price_bracket"] == "budget" for h in hotels)

    def test_no_filters_orders_by_tourist_score(self, service):
        assert _ids(service.search_by_location(region_id=TOKYO)) == [6, 2, 4, 1, 5, 3]

    def test_locality_filter(self, service):
        assert _ids(service.search_by_location(locality_id=OSAKA_CITY)) == [7, 8]

    def test_area_filter(self, service):
        assert _ids(service.search_by_location(area_id=1)) == [1]

    def test_hotels_without_price_are_excluded(self, service):
        """Hotel 9 has the highest tourist score but no price analysis."""
        assert 9 not in _ids(service.search_by_location(locality_id=TAITO))

    def test_pagination(self, service):
        hotels = service.search_by_location(region_id=TOKYO, limit=2, offset=1)
        assert _ids(hotels) == [2, 4]

    def test_default_limit(self, repo, cache, cache_settings):
        service = HotelSearchService(
            repo, cache, search_settings=SearchSettings(default_limit=3), cache_settings=cache_settings,
        )
        assert len(service.search_by_location()) == 3

    def test_result_annotations(self, service):
        hotel = service.search_by_location(area_id=1)[0]
        assert hotel["distance_km"] is None
        assert hotel["price_bracket"] == "budget"
        assert hotel["price_bracket_label"] == "up to 15,000"
        # (70 + 50 + 85) / 3 = 68.33
        assert hotel["access_scores"]["overall"] == 68
        assert hotel["access_scores"]["tourist"] == 70
        assert hotel["locality"]["name"] == "Shinjuku"

    def test_no_match_is_empty(self, service):
        assert service.search_by_location(region_id=999) == []


class TestSearchByLocationWithCenter:
    """Tests for the bounding box + exact distance filter."""

    def test_exact_distance_trims_box(self, service):
        """Hotel 2 is inside the 1 km box but 1.20 km away, so it is dropped."""
        hotels = service.search_by_location(latitude=35.0, longitude=139.0, radius_km=1)
        assert _ids(hotels) == [1]
        assert hotels[0]["distance_km"] == pytest.approx(0.80, abs=0.01)

    def test_every_result_within_radius(self, service):
        for radius in (0.5, 1, 3, 10, 25):
            hotels = service.search_by_location(latitude=35.0, longitude=139.0, radius_km=radius)
            assert all(h["distance_km"] <= radius for h in hotels)

    def test_center_with_filters(self, service):
        hotels = service.search_by_location(
            latitude=35.0, longitude=139.0, radius_km=3, price_bracket="standard",
        )
        assert _ids(hotels) == [2]

    def test_pagination_after_distance_filter(self, service):
        """Offsets count hotels inside the circle, not rows inside the box."""
        hotels = service.search_by_location(latitude=35.0, longitude=139.0, radius_km=3, limit=1, offset=1)
        assert _ids(hotels) == [1]

    def test_default_radius_is_area_radius(self, service):
        """Without radius_km the 25 km area radius applies: Tokyo hotels yes, Osaka no."""
        hotels = service.search_by_location(latitude=35.0, longitude=139.0)
        assert set(_ids(hotels)) == {1, 2, 3, 4, 5, 6}

    @pytest.mark.parametrize("kwargs", [
        {"latitude": 95.0, "longitude": 139.0},
        {"latitude": 35.0, "longitude": 181.0},
        {"latitude": 35.0},
        {"longitude": 139.0},
        {"latitude": 35.0, "longitude": 139.0, "radius_km": 0},
        {"latitude": 35.0, "longitude": 139.0, "radius_km": -1},
        {"latitude": 35.0, "longitude": 139.0, "radius_km": float("inf")},
        {"latitude": 35.0, "longitude": 139.0, "radius_km": "far"},
    ])
    def test_invalid_center_returns_empty(self, spied_service, spy_repo, kwargs):
        """Malformed centers never raise and never reach the datastore."""
        assert spied_service.search_by_location(**kwargs) == []
        spy_repo.find_hotels.assert_not_called()


class TestPriceBracketFilter:
    """The bracket filter and the bracket label must agree for every price."""

    BRACKETS = ["budget", "standard", "premium", "luxury", "ultra"]

    @pytest.fixture
    def odd_prices(self, catalog):
        with catalog() as session:
            add_hotel(session, 50, TOKYO, TAITO, 35.71, 139.78, 15000.5)
            add_hotel(session, 51, TOKYO, TAITO, 35.71, 139.78, 30000.99)
            add_hotel(session, 52, TOKYO, TAITO, 35.71, 139.78, 0)
            session.commit()

    def _found_in(self, service, hotel_id):
        return [
            code for code in self.BRACKETS
            if hotel_id in _ids(service.search_by_location(locality_id=TAITO, price_bracket=code))
        ]

    @pytest.mark.parametrize("hotel_id,bracket", [(50, "budget"), (51, "standard")])
    def test_fractional_price_found_in_its_labelled_bracket(self, service, odd_prices, hotel_id, bracket):
        """A price between integer bounds is returned by exactly the bracket its label names."""
        assert self._found_in(service, hotel_id) == [bracket]
        hotel = next(h for h in service.search_by_location(locality_id=TAITO) if h["hotel_id"] == hotel_id)
        assert hotel["price_bracket"] == bracket

    def test_zero_price_in_no_bracket(self, service, odd_prices):
        """A zero price is labelled unset and matched by no bracket filter."""
        assert self._found_in(service, 52) == []
        hotel = next(h for h in service.search_by_location(locality_id=TAITO) if h["hotel_id"] == 52)
        assert hotel["price_bracket"] == "unset"


class TestSearchValidation:
    """Tests for rejected input."""

    def test_unknown_bracket(self, spied_service, spy_repo):
        assert spied_service.search_by_location(region_id=TOKYO, price_bracket="cheap") == []
        spy_repo.find_hotels.assert_not_called()

    @pytest.mark.parametrize("limit,offset", [(0, 0), (-5, 0), (10, -1)])
    def test_bad_pagination(self, service, limit, offset):
        assert service.search_by_location(region_id=TOKYO, limit=limit, offset=offset) == []


class TestSearchCaching:
    """Tests for cache-aside behaviour."""

    def test_repeat_query_hits_cache(self, spied_service, spy_repo):
        first = spied_service.search_by_location(region_id=TOKYO, price_bracket="budget")
        second = spied_service.search_by_location(region_id=TOKYO, price_bracket="budget")
        assert first == second
        assert spy_repo.find_hotels.call_count == 1

    def test_empty_result_is_cached(self, spied_service, spy_repo):
        spied_service.search_by_location(region_id=999)
        spied_service.search_by_location(region_id=999)
        assert spy_repo.find_hotels.call_count == 1

    def test_nearby_coordinates_share_an_entry(self, spied_service, spy_repo):
        """Centers equal to four decimals (~11 m) reuse the same cached result."""
        spied_service.search_by_location(latitude=35.00001, longitude=139.00001, radius_km=1)
        spied_service.search_by_location(latitude=35.00002, longitude=139.00002, radius_km=1)
        assert spy_repo.find_hotels.call_count == 1

    def test_invalidate_search_forces_requery(self, spied_service, spy_repo, cache):
        spied_service.search_by_location(region_id=TOKYO)
        cache.invalidate_search()
        spied_service.search_by_location(region_id=TOKYO)
        assert spy_repo.find_hotels.call_count == 2

    def test_datastore_error_returns_empty_and_is_not_cached(self, cache, search_settings, cache_settings, repo):
        flaky = MagicMock(wraps=repo)
        flaky.find_hotels.side_effect = [SQLAlchemyError("connection lost"), repo.find_hotels(region_id=TOKYO)]
        service = HotelSearchService(flaky, cache, search_settings=search_settings, cache_settings=cache_settings)

        assert service.search_by_location(region_id=TOKYO) == []
        assert _ids(service.search_by_location(region_id=TOKYO)) == [6, 2, 4, 1, 5, 3]


# ─── Anchor search ──────────────────────────────────────────


class TestSearchByStation:
    """Tests for station-anchored search."""

    def test_default_walkable_radius(self, service):
        result = service.search_by_station(SHINJUKU_STATION)
        assert result["station"]["id"] == SHINJUKU_STATION
        assert result["params"] == {"max_distance_km": 3.0, "price_bracket": None}
        assert _ids(result["hotels"]) == [2, 1]
        assert "error" not in result

    def test_explicit_radius(self, service):
        result = service.search_by_station(SHINJUKU_STATION, max_distance_km=1)
        assert _ids(result["hotels"]) == [1]
        assert result["params"]["max_distance_km"] == 1

    def test_with_bracket(self, service):
        result = service.search_by_station(SHINJUKU_STATION, price_bracket="budget")
        assert _ids(result["hotels"]) == [1]

    def test_not_found(self, service):
        result = service.search_by_station(404)
        assert result["station"] is None
        assert result["hotels"] == []
        assert result["error"] == "Station 404 not found"

    def test_datastore_error(self, failing_service):
        result = failing_service.search_by_station(SHINJUKU_STATION)
        assert result["station"] is None
        assert result["hotels"] == []
        assert "error" in result


class TestSearchByLandmark:
    """Tests for landmark-anchored search."""

    def test_default_accessible_radius(self, service):
        """Hotel 6 sits on Senso-ji; hotels 4 and 5 are ~7 km away; hotel 2 is just past 10 km."""
        result = service.search_by_landmark(SENSOJI)
        assert result["landmark"]["name"] == "Senso-ji"
        assert result["params"]["max_distance_km"] == 10.0
        assert _ids(result["hotels"]) == [6, 4, 5]
        assert result["hotels"][0]["distance_km"] == 0.0

    def test_limit(self, service):
        result = service.search_by_landmark(SENSOJI, limit=1)
        assert _ids(result["hotels"]) == [6]

    def test_not_found(self, service):
        result = service.search_by_landmark(404)
        assert result["landmark"] is None
        assert result["hotels"] == []
        assert result["error"] == "Landmark 404 not found"


# ─── Aggregates ─────────────────────────────────────────────


class TestPriceStatistics:
    """Tests for the price-bracket histogram."""

    def test_all_regions(self, service):
        stats = service.price_statistics()
        assert [(s["bracket"], s["count"]) for s in stats] == [
            ("budget", 4), ("standard", 2), ("premium", 1), ("luxury", 1),
        ]

    def test_bounds_and_label(self, service):
        budget = service.price_statistics()[0]
        assert budget["min"] == 0
        assert budget["max"] == 15000
        assert budget["label"] == "up to 15,000"

    def test_empty_brackets_omitted(self, service):
        stats = service.price_statistics(region_id=OSAKA)
        assert [(s["bracket"], s["count"]) for s in stats] == [("budget", 1), ("standard", 1)]

    def test_locality_filter(self, service):
        stats = service.price_statistics(locality_id=CHIYODA)
        assert [s["bracket"] for s in stats] == ["budget", "luxury"]

    def test_counts_sum_to_priced_hotels(self, service):
        assert sum(s["count"] for s in service.price_statistics(region_id=TOKYO)) == 6

    def test_cached(self, spied_service, spy_repo):
        spied_service.price_statistics(region_id=TOKYO)
        spied_service.price_statistics(region_id=TOKYO)
        assert spy_repo.price_category_counts.call_count == 1

    def test_datastore_error(self, failing_service):
        assert failing_service.price_statistics() == []


class TestPopularAreas:
    """Tests for the locality ranking."""

    def test_ranked_by_count(self, service):
        areas = service.popular_areas(region_id=TOKYO)
        assert [a["locality_id"] for a in areas] == [SHINJUKU, CHIYODA, TAITO]
        assert [a["hotel_count"] for a in areas] == [3, 2, 1]

    def test_average_price_rounded(self, service):
        areas = {a["locality_id"]: a for a in service.popular_areas(region_id=TOKYO)}
        # (12000 + 25000 + 45000) / 3 = 27333.33
        assert areas[SHINJUKU]["avg_price"] == 27333
        assert areas[CHIYODA]["avg_price"] == 39000
        assert areas[TAITO]["avg_price"] == 14000

    def test_limit(self, catalog, service):
        with catalog() as session:
            add_hotel(session, 20, TOKYO, SHINJUKU, 35.69, 139.70, 10000)
            add_hotel(session, 21, TOKYO, SHINJUKU, 35.69, 139.70, 10000)
            add_hotel(session, 22, TOKYO, CHIYODA, 35.69, 139.75, 10000)
            session.commit()

        areas = service.popular_areas(region_id=TOKYO, limit=2)
        assert [(a["locality_id"], a["hotel_count"]) for a in areas] == [(SHINJUKU, 5), (CHIYODA, 3)]

    def test_ties_broken_by_locality_id(self, service):
        """Chiyoda and Osaka City both have two hotels."""
        areas = service.popular_areas()
        assert [a["locality_id"] for a in areas] == [SHINJUKU, CHIYODA, OSAKA_CITY, TAITO]

    def test_non_positive_limit(self, spied_service, spy_repo):
        assert spied_service.popular_areas(limit=0) == []
        spy_repo.locality_hotel_totals.assert_not_called()

    def test_datastore_error(self, failing_service):
        assert failing_service.popular_areas() == []


class TestReferenceData:
    """Tests for region / locality listings."""

    def test_list_regions(self, service):
        assert [r["name"] for r in service.list_regions()] == ["Tokyo", "Osaka"]

    def test_list_localities(self, service):
        assert [loc["id"] for loc in service.list_localities(TOKYO)] == [CHIYODA, SHINJUKU, TAITO]

    def test_cached(self, spied_service, spy_repo):
        spied_service.list_regions()
        spied_service.list_regions()
        assert spy_repo.list_regions.call_count == 1

    def test_datastore_error(self, failing_service):
        assert failing_service.list_regions() == []
        assert failing_service.list_localities(TOKYO) == []

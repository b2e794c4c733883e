"""
Create the schema and load a small Tokyo/Kyoto demo catalog.

Usage:
    DATABASE_URL=sqlite:///./data/hotel_geosearch.db python scripts/seed_demo_data.py
"""

from hotel_geosearch.config import settings
from hotel_geosearch.data.database import create_db_engine, create_session_factory, init_db
from hotel_geosearch.data.models import (
    Region, Locality, Area, TransitStop, PointOfInterest,
    HotelLocation, PriceCategory, PriceAnalysis,
)

REGIONS = [
    (13, "Tokyo", "東京都"),
    (26, "Kyoto", "京都府"),
]

# id, name, localized, lat, lon, is_major, region_id
LOCALITIES = [
    (1301, "Shinjuku", "新宿区", 35.6938, 139.7034, True, 13),
    (1302, "Chiyoda", "千代田区", 35.6940, 139.7536, True, 13),
    (1303, "Taito", "台東区", 35.7126, 139.7800, False, 13),
    (2601, "Kyoto City", "京都市", 35.0116, 135.7681, True, 26),
]

AREAS = [
    (1, "Nishi-Shinjuku", "西新宿", 1301),
    (2, "Asakusa", "浅草", 1303),
]

# id, name, localized, lat, lon, locality_id, line
STOPS = [
    (1, "Shinjuku", "新宿", 35.6896, 139.7006, 1301, "JR Yamanote Line"),
    (2, "Tokyo", "東京", 35.6812, 139.7671, 1302, "JR Yamanote Line"),
    (3, "Asakusa", "浅草", 35.7111, 139.7966, 1303, "Ginza Line"),
    (4, "Kyoto", "京都", 34.9858, 135.7588, 2601, "JR Tokaido Line"),
]

# id, name, localized, category, lat, lon, rating, locality_id
LANDMARKS = [
    (1, "Senso-ji", "浅草寺", "temple", 35.7148, 139.7967, 4.6, 1303),
    (2, "Imperial Palace", "皇居", "historic", 35.6852, 139.7528, 4.5, 1302),
    (3, "Fushimi Inari Taisha", "伏見稲荷大社", "shrine", 34.9671, 135.7727, 4.8, 2601),
]

# hotel_id, region, locality, area, address, lat, lon, stop, dist_m, walk_min, tourist, business, transport, price
HOTELS = [
    (1, 13, 1301, 1, "2-2-1 Nishi-Shinjuku", 35.6905, 139.6920, 1, 700, 9, 78, 92, 95, 28000),
    (2, 13, 1301, None, "3-4-1 Shinjuku", 35.6916, 139.7065, 1, 450, 6, 80, 85, 96, 12000),
    (3, 13, 1302, None, "1-1-1 Marunouchi", 35.6822, 139.7640, 2, 300, 4, 88, 97, 98, 65000),
    (4, 13, 1302, None, "2-1-1 Otemachi", 35.6870, 139.7630, 2, 650, 8, 82, 95, 94, 120000),
    (5, 13, 1303, 2, "1-2-3 Asakusa", 35.7120, 139.7960, 3, 200, 3, 94, 60, 85, 9800),
    (6, 13, 1303, 2, "2-5-8 Asakusa", 35.7135, 139.7940, 3, 350, 5, 90, 55, 82, 14500),
    (7, 26, 2601, None, "Higashi-Shiokoji", 34.9870, 135.7600, 4, 150, 2, 85, 80, 97, 22000),
    (8, 26, 2601, None, "Fukakusa", 34.9690, 135.7700, None, None, None, 92, 40, 70, 41000),
]


def seed(session) -> None:
    table = settings.search.price_table()
    categories = {}
    for idx, bracket in enumerate(table, start=1):
        cat = PriceCategory(
            id=idx, code=bracket.code, name=bracket.label,
            min_price=bracket.min_price, max_price=bracket.max_price,
        )
        categories[bracket.code] = cat
        session.add(cat)

    for rid, name, local in REGIONS:
        session.add(Region(id=rid, name=name, localized_name=local))
    for lid, name, local, lat, lon, major, rid in LOCALITIES:
        session.add(Locality(
            id=lid, name=name, localized_name=local, latitude=lat, longitude=lon,
            is_major=major, region_id=rid,
        ))
    for aid, name, local, lid in AREAS:
        session.add(Area(id=aid, name=name, localized_name=local, locality_id=lid))
    for sid, name, local, lat, lon, lid, line in STOPS:
        session.add(TransitStop(
            id=sid, name=name, localized_name=local, latitude=lat, longitude=lon,
            locality_id=lid, line_name=line,
        ))
    for pid, name, local, cat, lat, lon, rating, lid in LANDMARKS:
        session.add(PointOfInterest(
            id=pid, name=name, localized_name=local, category=cat,
            latitude=lat, longitude=lon, rating=rating, locality_id=lid,
        ))
    session.flush()

    for (hid, rid, lid, aid, address, lat, lon, stop, dist, walk,
         tourist, business, transport, price) in HOTELS:
        session.add(HotelLocation(
            hotel_id=hid, region_id=rid, locality_id=lid, area_id=aid, address=address,
            latitude=lat, longitude=lon, nearest_stop_id=stop, distance_to_stop_m=dist,
            walk_minutes_to_stop=walk, tourist_access_score=tourist,
            business_access_score=business, transport_access_score=transport,
        ))
        session.add(PriceAnalysis(
            hotel_id=hid, current_average_price=price,
            min_price=round(price * 0.8), max_price=round(price * 1.3),
            price_category_id=categories[table.classify(price).code].id,
        ))


def main() -> None:
    settings.setup()
    engine = create_db_engine()
    init_db(engine)
    SessionLocal = create_session_factory(engine)
    with SessionLocal() as session:
        if session.get(Region, REGIONS[0][0]) is not None:
            print("Demo data already present — nothing to do.")
            return
        seed(session)
        session.commit()
    print(f"Seeded {len(REGIONS)} regions, {len(LOCALITIES)} localities, {len(HOTELS)} hotels.")


if __name__ == "__main__":
    main()

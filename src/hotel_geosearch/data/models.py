"""
SQLAlchemy ORM models for the hotel location catalog.

These tables are read-mostly: they are loaded by an external ingest job
and the search core only ever issues SELECTs against them.
"""

from typing import Optional

from sqlalchemy import (
    String, Integer, Float, Boolean,
    ForeignKey, Index, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hotel_geosearch.data.database import Base


# --- Administrative hierarchy ---


class Region(Base):
    """Administrative region (country subdivision)."""
    __tablename__ = "regions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), index=True)
    localized_name: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    parent_region_id: Mapped[Optional[int]] = mapped_column(ForeignKey("regions.id"))

    localities: Mapped[list["Locality"]] = relationship(back_populates="region")

    def __repr__(self) -> str:
        return f"<Region(id={self.id}, name='{self.name}')>"


class Locality(Base):
    """A city or town within a region."""
    __tablename__ = "localities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), index=True)
    localized_name: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)
    is_major: Mapped[bool] = mapped_column(Boolean, default=False)
    region_id: Mapped[int] = mapped_column(ForeignKey("regions.id"), index=True)

    region: Mapped["Region"] = relationship(back_populates="localities")

    def __repr__(self) -> str:
        return f"<Locality(id={self.id}, name='{self.name}', region_id={self.region_id})>"


class Area(Base):
    """Named district inside a locality (e.g. a shopping or station area)."""
    __tablename__ = "areas"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    localized_name: Mapped[Optional[str]] = mapped_column(String(100))
    locality_id: Mapped[int] = mapped_column(ForeignKey("localities.id"), index=True)


# --- Landmarks ---


class TransitStop(Base):
    """Railway / subway station."""
    __tablename__ = "transit_stops"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), index=True)
    localized_name: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    latitude: Mapped[float] = mapped_column(Float)
    longitude: Mapped[float] = mapped_column(Float)
    locality_id: Mapped[int] = mapped_column(ForeignKey("localities.id"), index=True)
    line_name: Mapped[Optional[str]] = mapped_column(String(100))

    locality: Mapped["Locality"] = relationship()


class PointOfInterest(Base):
    """Tourist landmark."""
    __tablename__ = "points_of_interest"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(150), index=True)
    localized_name: Mapped[Optional[str]] = mapped_column(String(150), index=True)
    category: Mapped[Optional[str]] = mapped_column(String(50))
    latitude: Mapped[float] = mapped_column(Float)
    longitude: Mapped[float] = mapped_column(Float)
    rating: Mapped[Optional[float]] = mapped_column(Float)
    locality_id: Mapped[int] = mapped_column(ForeignKey("localities.id"), index=True)

    locality: Mapped["Locality"] = relationship()


# --- Hotels ---


class HotelLocation(Base):
    """Where a hotel is and how convenient it is to reach."""
    __tablename__ = "hotel_locations"

    hotel_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    region_id: Mapped[int] = mapped_column(ForeignKey("regions.id"), index=True)
    locality_id: Mapped[int] = mapped_column(ForeignKey("localities.id"), index=True)
    area_id: Mapped[Optional[int]] = mapped_column(ForeignKey("areas.id"), index=True)
    address: Mapped[Optional[str]] = mapped_column(String(255))
    latitude: Mapped[float] = mapped_column(Float)
    longitude: Mapped[float] = mapped_column(Float)
    nearest_stop_id: Mapped[Optional[int]] = mapped_column(ForeignKey("transit_stops.id"))
    distance_to_stop_m: Mapped[Optional[int]] = mapped_column(Integer)
    walk_minutes_to_stop: Mapped[Optional[int]] = mapped_column(Integer)
    tourist_access_score: Mapped[int] = mapped_column(Integer, default=0)
    business_access_score: Mapped[int] = mapped_column(Integer, default=0)
    transport_access_score: Mapped[int] = mapped_column(Integer, default=0)

    price_analysis: Mapped[Optional["PriceAnalysis"]] = relationship(back_populates="hotel", uselist=False)

    __table_args__ = (
        CheckConstraint("tourist_access_score BETWEEN 0 AND 100", name="ck_tourist_score_range"),
        CheckConstraint("business_access_score BETWEEN 0 AND 100", name="ck_business_score_range"),
        CheckConstraint("transport_access_score BETWEEN 0 AND 100", name="ck_transport_score_range"),
        Index("ix_hotel_locations_lat_lon", "latitude", "longitude"),
    )

    def __repr__(self) -> str:
        return f"<HotelLocation(hotel_id={self.hotel_id}, lat={self.latitude}, lon={self.longitude})>"


class PriceCategory(Base):
    """Persisted copy of a price bracket, referenced by PriceAnalysis."""
    __tablename__ = "price_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(20), unique=True)
    name: Mapped[str] = mapped_column(String(50))
    min_price: Mapped[float] = mapped_column(Float)
    max_price: Mapped[Optional[float]] = mapped_column(Float)


class PriceAnalysis(Base):
    """Current price summary for a hotel (1:1 with HotelLocation)."""
    __tablename__ = "hotel_price_analysis"

    hotel_id: Mapped[int] = mapped_column(ForeignKey("hotel_locations.hotel_id"), primary_key=True)
    current_average_price: Mapped[Optional[float]] = mapped_column(Float, index=True)
    min_price: Mapped[Optional[float]] = mapped_column(Float)
    max_price: Mapped[Optional[float]] = mapped_column(Float)
    price_category_id: Mapped[Optional[int]] = mapped_column(ForeignKey("price_categories.id"), index=True)

    hotel: Mapped["HotelLocation"] = relationship(back_populates="price_analysis")
    price_category: Mapped[Optional["PriceCategory"]] = relationship()

    def __repr__(self) -> str:
        return f"<PriceAnalysis(hotel_id={self.hotel_id}, avg={self.current_average_price})>"

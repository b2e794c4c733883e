"""
Custom exception hierarchy for hotel geosearch.

Data and cache layers raise these; the search services catch them at their
boundary and degrade to empty or default results.
"""


class HotelSearchError(Exception):
    """Base exception for all hotel geosearch errors."""

    def __init__(self, message: str = "", details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# --- Database Exceptions ---


class DatabaseError(HotelSearchError):
    """Base exception for datastore errors."""
    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when the database connection fails."""
    pass


# --- Cache Exceptions ---


class CacheError(HotelSearchError):
    """Base exception for cache errors."""
    pass


class CacheBackendUnavailableError(CacheError):
    """Raised when the networked cache cannot be reached or times out."""
    pass


class CacheSerializationError(CacheError):
    """Raised when a value cannot be encoded to or decoded from the cache."""
    pass


# --- Anchor Exceptions ---


class AnchorNotFoundError(HotelSearchError):
    """Base exception for a named search anchor that does not resolve."""

    kind = "anchor"

    def __init__(self, anchor_id: int):
        self.anchor_id = anchor_id
        super().__init__(
            message=f"{self.kind.replace('_', ' ').capitalize()} {anchor_id} not found",
            details={"kind": self.kind, "id": anchor_id},
        )


class StationNotFoundError(AnchorNotFoundError):
    """Raised when a transit stop id does not resolve."""

    kind = "station"


class LandmarkNotFoundError(AnchorNotFoundError):
    """Raised when a point-of-interest id does not resolve."""

    kind = "landmark"


# --- Validation Exceptions ---


class ValidationError(HotelSearchError):
    """Base exception for input validation errors."""
    pass


class InvalidCoordinatesError(ValidationError):
    """Raised when a latitude/longitude/radius triple is malformed."""

    def __init__(self, latitude, longitude, radius_km=None):
        super().__init__(
            message=f"Invalid search center ({latitude}, {longitude}) radius={radius_km}",
            details={"latitude": latitude, "longitude": longitude, "radius_km": radius_km},
        )


class UnknownPriceBracketError(ValidationError):
    """Raised when a price bracket code is not in the configured table."""
    pass


class InvalidPriceTableError(ValidationError):
    """Raised when the configured price brackets break the table invariants."""
    pass

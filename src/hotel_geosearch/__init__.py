"""Location-based hotel search with ranking, autocomplete and a TTL cache."""

__version__ = "1.0.0"

"""HTTP surface — FastAPI app and read-only routes."""

"""FastAPI preview server."""

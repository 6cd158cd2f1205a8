"""HTTP API for the editor front-end (FastAPI)."""

"""HTTP API - health and worker status endpoints."""

from cleanplay.api.routers import api_router

__all__ = ["api_router"]

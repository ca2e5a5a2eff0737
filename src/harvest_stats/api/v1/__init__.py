"""Version 1 API endpoints."""

from .endpoints import harvest_router, system_router

__all__ = ["harvest_router", "system_router"]

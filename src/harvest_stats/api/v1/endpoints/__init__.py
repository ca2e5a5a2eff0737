"""API endpoint modules for version 1."""

from .harvest import router as harvest_router
from .system import router as system_router

__all__ = ["harvest_router", "system_router"]

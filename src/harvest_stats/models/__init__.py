"""In-memory models for the harvest statistics cache."""

from .harvest_data import HarvestRecord, HarvestSnapshot, current_millis

__all__ = ["HarvestRecord", "HarvestSnapshot", "current_millis"]

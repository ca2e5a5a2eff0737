"""Harvest statistics cache with write-behind database persistence."""

__version__ = "0.1.0"

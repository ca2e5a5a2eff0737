"""Database engine construction for the harvest storage backends."""

from .engine import create_pooled_engine, create_sqlite_engine

__all__ = ["create_pooled_engine", "create_sqlite_engine"]

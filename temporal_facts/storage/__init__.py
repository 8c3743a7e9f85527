# temporal_facts/storage/__init__.py

from .sqlite_store import DEFAULT_DB_PATH, FactStore

__all__ = ["DEFAULT_DB_PATH", "FactStore"]

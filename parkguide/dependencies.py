"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging

from parkguide.config import Settings, get_settings
from parkguide.db import InMemoryParkStore, ParkStore, SqlParkStore

logger = logging.getLogger(__name__)

_park_store: ParkStore | None = None


def build_park_store(settings: Settings) -> ParkStore:
    """
    Pick the storage backend from configuration.

    A database URL selects the SQL store; without one the in-memory store is
    used. There is no fallback between the two once chosen.
    """
    if settings.database_url:
        logger.info("DATABASE_URL set, using SQL storage")
        return SqlParkStore(settings.database_url)
    logger.warning("DATABASE_URL not set, using in-memory storage")
    return InMemoryParkStore()


def get_park_store() -> ParkStore:
    """
    Return a singleton store so records persist across requests.
    """
    global _park_store
    if _park_store:
        return _park_store

    _park_store = build_park_store(get_settings())
    return _park_store


def storage_kind(store: ParkStore) -> str:
    return "sql" if isinstance(store, SqlParkStore) else "memory"

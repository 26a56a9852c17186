"""
MongoDB client management.

One ``MongoClient`` per process (it owns a connection pool); databases and
collections are cheap handles taken from it.
"""

from functools import lru_cache

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from shared.config.settings import settings


@lru_cache
def get_mongo_client() -> MongoClient:
    """Get the process-wide client for ``settings.mongo_url``."""
    return MongoClient(settings.mongo_url, tz_aware=True)


def get_mongo_database(name: str | None = None) -> Database:
    """Database handle; ``name`` defaults to ``settings.mongo_database``."""
    return get_mongo_client()[name or settings.mongo_database]


def get_mongo_db() -> Database:
    """
    FastAPI dependency returning the configured database.

    Usage:
        def get_bar_service(db: Database = Depends(get_mongo_db)) -> BarService:
            return BarService(db["bars"])
    """
    return get_mongo_database()


def get_collection(name: str, database: str | None = None) -> Collection:
    """Collection handle from the configured database."""
    return get_mongo_database(database)[name]


def close_mongo_client() -> None:
    """Close the cached client (application shutdown)."""
    if get_mongo_client.cache_info().currsize:
        get_mongo_client().close()
        get_mongo_client.cache_clear()

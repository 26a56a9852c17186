"""
Infrastructure module: database sessions, MongoDB client, correlation ids.
"""

from shared.infrastructure.db import (
    engine,
    SessionLocal,
    get_db,
    get_db_context,
    safe_commit,
)
from shared.infrastructure.mongo import (
    get_mongo_client,
    get_mongo_database,
    get_mongo_db,
    get_collection,
    close_mongo_client,
)
from shared.infrastructure.correlation import (
    CorrelationIdMiddleware,
    CorrelationIdFilter,
    get_request_id,
)

__all__ = [
    # db
    "engine",
    "SessionLocal",
    "get_db",
    "get_db_context",
    "safe_commit",
    # mongo
    "get_mongo_client",
    "get_mongo_database",
    "get_mongo_db",
    "get_collection",
    "close_mongo_client",
    # correlation
    "CorrelationIdMiddleware",
    "CorrelationIdFilter",
    "get_request_id",
]

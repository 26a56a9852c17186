"""
Generic CRUD layer for FastAPI applications.

Plug an entity and a DTO into a service and get paging, text search, RSQL
filtering, lookups, counts, existence checks, create, update and delete,
with authorization, hooks and transactions around every call. Routers
expose the service over HTTP; SQLAlchemy and MongoDB stores persist it.
"""

__version__ = "0.1.0"

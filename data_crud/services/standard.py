"""
Services bound to a storage backend at construction time.

Usage:
    def get_foo_service(db: Session = Depends(get_db)) -> SqlAlchemyCrudService:
        return SqlAlchemyCrudService(db, Foo, FooInput)

    def get_bar_service() -> MongoCrudService:
        return MongoCrudService(get_collection("bars"), Bar, BarInput)
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel
from pymongo.collection import Collection
from sqlalchemy.orm import Session

from data_crud.repositories.mongo import MongoStore
from data_crud.repositories.sql import SqlAlchemyStore

from .authorization import AuthorizationManager
from .base import CrudService, Mapper, ReadService, WriteService
from .hooks import CrudHooks, ReadHooks, WriteHooks
from .transactions import MongoTransactionTemplate, SessionTransactionTemplate, TransactionOperations


# =============================================================================
# SQLAlchemy
# =============================================================================


class SqlAlchemyReadService(ReadService[Any, Any]):
    def __init__(
        self,
        session: Session,
        entity_class: type,
        *,
        search_fields: Iterable[str] | None = None,
        store: SqlAlchemyStore | None = None,
        hooks: ReadHooks | None = None,
        authorization: AuthorizationManager | None = None,
    ):
        super().__init__(
            store or SqlAlchemyStore(session, entity_class, search_fields=search_fields),
            hooks=hooks,
            authorization=authorization,
        )


class SqlAlchemyWriteService(WriteService[Any, Any, Any]):
    """Write service over a session; commits through ``SessionTransactionTemplate``."""

    def __init__(
        self,
        session: Session,
        entity_class: type,
        dto_class: type | None = None,
        *,
        store: SqlAlchemyStore | None = None,
        mapper: Mapper | None = None,
        hooks: WriteHooks | None = None,
        authorization: AuthorizationManager | None = None,
        transactions: TransactionOperations | None = None,
    ):
        super().__init__(
            store or SqlAlchemyStore(session, entity_class),
            entity_class=entity_class,
            dto_class=dto_class,
            mapper=mapper,
            hooks=hooks,
            authorization=authorization,
            transactions=transactions or SessionTransactionTemplate(session),
        )


class SqlAlchemyCrudService(CrudService[Any, Any, Any]):
    """
    Full CRUD over a mapped model.

    Usage:
        service = SqlAlchemyCrudService(db, Foo, FooInput, hooks=FooHooks())
        service.create(FooInput(name="x"))
    """

    def __init__(
        self,
        session: Session,
        entity_class: type,
        dto_class: type | None = None,
        *,
        search_fields: Iterable[str] | None = None,
        store: SqlAlchemyStore | None = None,
        mapper: Mapper | None = None,
        hooks: CrudHooks | None = None,
        authorization: AuthorizationManager | None = None,
        transactions: TransactionOperations | None = None,
    ):
        self.session = session
        super().__init__(
            store or SqlAlchemyStore(session, entity_class, search_fields=search_fields),
            entity_class=entity_class,
            dto_class=dto_class,
            mapper=mapper,
            hooks=hooks,
            authorization=authorization,
            transactions=transactions or SessionTransactionTemplate(session),
        )


# =============================================================================
# MongoDB
# =============================================================================


class MongoReadService(ReadService[Any, str]):
    def __init__(
        self,
        collection: Collection,
        entity_class: type[BaseModel],
        *,
        search_fields: Iterable[str] | None = None,
        hooks: ReadHooks | None = None,
        authorization: AuthorizationManager | None = None,
    ):
        super().__init__(
            MongoStore(collection, entity_class, search_fields=search_fields),
            hooks=hooks,
            authorization=authorization,
        )


class MongoWriteService(WriteService[Any, Any, str]):
    """
    Write service over a collection.

    Writes run without a transaction unless ``transactions`` is a
    ``MongoTransactionTemplate`` (replica sets only).
    """

    def __init__(
        self,
        collection: Collection,
        entity_class: type[BaseModel],
        dto_class: type | None = None,
        *,
        mapper: Mapper | None = None,
        hooks: WriteHooks | None = None,
        authorization: AuthorizationManager | None = None,
        transactions: TransactionOperations | None = None,
    ):
        session_source = transactions if isinstance(transactions, MongoTransactionTemplate) else None
        super().__init__(
            MongoStore(collection, entity_class, transactions=session_source),
            entity_class=entity_class,
            dto_class=dto_class,
            mapper=mapper,
            hooks=hooks,
            authorization=authorization,
            transactions=transactions,
        )


class MongoCrudService(CrudService[Any, Any, str]):
    """Full CRUD over a collection of pydantic entities."""

    def __init__(
        self,
        collection: Collection,
        entity_class: type[BaseModel],
        dto_class: type | None = None,
        *,
        search_fields: Iterable[str] | None = None,
        mapper: Mapper | None = None,
        hooks: CrudHooks | None = None,
        authorization: AuthorizationManager | None = None,
        transactions: TransactionOperations | None = None,
    ):
        session_source = transactions if isinstance(transactions, MongoTransactionTemplate) else None
        super().__init__(
            MongoStore(
                collection,
                entity_class,
                search_fields=search_fields,
                transactions=session_source,
            ),
            entity_class=entity_class,
            dto_class=dto_class,
            mapper=mapper,
            hooks=hooks,
            authorization=authorization,
            transactions=transactions,
        )

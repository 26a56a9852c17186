"""
Generic CRUD services.

A service owns its collaborators: the store it reads and writes through,
its hooks, an optional authorization manager, the transaction operations
for writes and, for write services, the entity/DTO classes and a mapper.
Every public operation is classified with ``crud_operation`` so
authorization runs before any hook, transaction or storage call.

Architecture:
    Router (thin) -> Service (pipeline) -> EntityStore (data access) -> Model

Usage:
    store = SqlAlchemyStore(db, Foo)
    service = CrudService(store, entity_class=Foo, dto_class=FooInput)

    page = service.page("bar", PageRequest.of(0, 20), parse_query("age=gt=3"))
    foo = service.create({"name": "bar", "age": 4})
    service.delete(foo.id)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import pydantic
from pydantic import BaseModel

from shared.config.logging import get_logger
from shared.utils.exceptions import NotFoundEntityError, ValidationError
from shared.utils.strings import normalize_search

from .authorization import AuthorizationManager, crud_operation, verify_access
from .hooks import (
    DEFAULT_CRUD_HOOKS,
    DEFAULT_READ_HOOKS,
    DEFAULT_WRITE_HOOKS,
    CrudHooks,
    ReadHooks,
    WriteHooks,
)
from .operations import CrudOperation
from .rsql import Node
from .search import (
    Page,
    PageRequest,
    create_search_base_options,
    create_search_options,
)
from .transactions import TransactionOperations, TransactionStatus, WithoutTransaction

if TYPE_CHECKING:
    from data_crud.repositories.base import EntityStore

logger = get_logger(__name__)

E = TypeVar("E")
D = TypeVar("D")
ID = TypeVar("ID")

Mapper = Callable[[Any, Any], None]


def _entity_fields(entity: Any) -> set[str] | None:
    model_fields = getattr(type(entity), "model_fields", None)
    if model_fields is not None:
        return set(model_fields)
    return None


def copy_fields(dto: Any, entity: Any, exclude: Iterable[str] = ("id",)) -> None:
    """
    Copy the DTO's fields onto same-named entity attributes.

    Accepts pydantic models and plain mappings. Fields the entity does not
    declare are ignored, as is the id.
    """
    if isinstance(dto, BaseModel):
        data = dto.model_dump()
    elif isinstance(dto, Mapping):
        data = dict(dto)
    else:
        data = dict(vars(dto))

    skip = set(exclude)
    declared = _entity_fields(entity)
    for name, value in data.items():
        if name in skip:
            continue
        if declared is not None:
            if name not in declared:
                continue
        elif not hasattr(type(entity), name):
            continue
        setattr(entity, name, value)


# =============================================================================
# Read Service
# =============================================================================


class ReadService(Generic[E, ID]):
    """
    Paging, search, lookup, count and existence checks over one store.

    ``page`` and ``count`` pick one of three paths:
        no filter, blank search  -> plain page / plain count
        no filter, search term   -> text search
        filter present           -> text search (may be None) AND filter
    """

    def __init__(
        self,
        store: EntityStore[E, ID],
        *,
        hooks: ReadHooks[E, ID] | None = None,
        authorization: AuthorizationManager | None = None,
        entity_name: str | None = None,
    ):
        self._store = store
        self._hooks = hooks or DEFAULT_READ_HOOKS
        self._authorization = authorization
        self._entity_name = entity_name or store.entity_class.__name__

    @property
    def store(self) -> EntityStore[E, ID]:
        return self._store

    @property
    def hooks(self) -> ReadHooks[E, ID]:
        return self._hooks

    @property
    def authorization(self) -> AuthorizationManager | None:
        return self._authorization

    @property
    def entity_class(self) -> type[E]:
        return self._store.entity_class

    @property
    def entity_name(self) -> str:
        return self._entity_name

    def pre_process(self, operation: CrudOperation) -> None:
        verify_access(self._authorization, operation)

    # =========================================================================
    # Operations
    # =========================================================================

    @crud_operation(CrudOperation.PAGE)
    def page(
        self,
        search: str | None,
        pageable: PageRequest,
        query: Node | None = None,
    ) -> Page[E]:
        search = normalize_search(search)
        logger.debug(
            "Page requested",
            entity=self._entity_name,
            search=search,
            query=str(query) if query is not None else None,
            page=pageable.page,
            size=pageable.size,
        )

        if query is None:
            if search is None:
                page = self._internal_page(pageable)
            else:
                page = self._internal_search(search, pageable)
        else:
            page = self._internal_search(search, pageable, query)

        self._hooks.on_page(page)
        return page

    @crud_operation(CrudOperation.FIND)
    def find(self, entity_id: ID) -> E:
        entity = self._store.find_by_id(entity_id)
        if entity is None:
            raise NotFoundEntityError(self.entity_class, entity_id)
        self._hooks.on_find(entity)
        return entity

    @crud_operation(CrudOperation.FIND)
    def find_all(self, ids: Iterable[ID]) -> list[E]:
        ids = list(ids)
        entities = list(self._store.find_all_by_ids(ids))
        self._hooks.on_find_all(entities, ids)
        return entities

    @crud_operation(CrudOperation.COUNT)
    def count(self, search: str | None = None, query: Node | None = None) -> int:
        search = normalize_search(search)
        count = self._internal_count(search, query)
        self._hooks.on_count(count)
        return count

    @crud_operation(CrudOperation.EXISTS)
    def exists(self, entity_id: ID) -> bool:
        exists = self._store.exists(entity_id)
        self._hooks.on_exists(exists, entity_id)
        return exists

    # =========================================================================
    # Internals
    # =========================================================================

    def _internal_page(self, pageable: PageRequest) -> Page[E]:
        return self._store.find_page(pageable)

    def _internal_search(
        self,
        search: str | None,
        pageable: PageRequest,
        query: Node | None = None,
    ) -> Page[E]:
        options = create_search_options(search, pageable, query)
        content = self._store.search(options)
        return Page.build(
            content,
            pageable,
            lambda: self._store.count_page(create_search_base_options(search, query)),
        )

    def _internal_count(self, search: str | None, query: Node | None) -> int:
        if query is None and search is None:
            return self._store.count(None)
        return self._store.count(create_search_base_options(search, query))


# =============================================================================
# Write Service
# =============================================================================


class WriteService(Generic[E, D, ID]):
    """
    Create, update and delete through one store.

    Create and update run inside ``transactions.execute``: map the DTO,
    call the before hook, save, call the after hook. Any failure marks the
    transaction rollback-only and the original exception propagates.
    Delete is not wrapped; the store commits it.
    """

    def __init__(
        self,
        store: EntityStore[E, ID],
        *,
        entity_class: type[E] | None = None,
        dto_class: type[D] | None = None,
        mapper: Mapper | None = None,
        hooks: WriteHooks[E, D, ID] | None = None,
        authorization: AuthorizationManager | None = None,
        transactions: TransactionOperations | None = None,
    ):
        self._store = store
        self._entity_class = entity_class or store.entity_class
        self._dto_class = dto_class
        self._mapper = mapper or copy_fields
        self._hooks = hooks or DEFAULT_WRITE_HOOKS
        self._authorization = authorization
        self._transactions = transactions or WithoutTransaction()

    @property
    def store(self) -> EntityStore[E, ID]:
        return self._store

    @property
    def hooks(self) -> WriteHooks[E, D, ID]:
        return self._hooks

    @property
    def entity_class(self) -> type[E]:
        return self._entity_class

    @property
    def dto_class(self) -> type[D] | None:
        return self._dto_class

    @property
    def transactions(self) -> TransactionOperations:
        return self._transactions

    def pre_process(self, operation: CrudOperation) -> None:
        verify_access(self._authorization, operation)

    def new_entity(self) -> E:
        """Fresh, unsaved entity instance to map a DTO onto."""
        if issubclass(self._entity_class, BaseModel):
            return self._entity_class.model_construct()
        return self._entity_class()

    def map_model(self, dto: D, entity: E) -> None:
        self._mapper(dto, entity)

    def validate(self, dto: Any) -> D:
        """Validate raw input against the DTO class, if it is a pydantic model."""
        dto_class = self._dto_class
        if (
            dto_class is None
            or not isinstance(dto_class, type)
            or not issubclass(dto_class, BaseModel)
            or isinstance(dto, dto_class)
        ):
            return dto
        try:
            return dto_class.model_validate(dto)
        except pydantic.ValidationError as exc:
            raise ValidationError(
                f"Invalid {dto_class.__name__}",
                errors=exc.errors(include_url=False, include_context=False),
            ) from exc

    # =========================================================================
    # Operations
    # =========================================================================

    @crud_operation(CrudOperation.CREATE)
    def create(self, dto: D) -> E:
        dto = self.validate(dto)
        entity = self.new_entity()
        logger.debug("Creating entity", entity=self._entity_class.__name__)
        return self._transactions.execute(
            lambda status: self._write(
                status,
                dto,
                entity,
                self._hooks.on_before_create,
                self._hooks.on_after_create,
            )
        )

    @crud_operation(CrudOperation.UPDATE)
    def update(self, entity_id: ID, dto: D) -> E:
        dto = self.validate(dto)
        entity = self._locate(entity_id)
        logger.debug(
            "Updating entity",
            entity=self._entity_class.__name__,
            entity_id=entity_id,
        )
        return self._transactions.execute(
            lambda status: self._write(
                status,
                dto,
                entity,
                self._hooks.on_before_update,
                self._hooks.on_after_update,
            )
        )

    @crud_operation(CrudOperation.DELETE)
    def delete(self, entity_id: ID) -> None:
        entity = self._locate(entity_id)
        logger.debug(
            "Deleting entity",
            entity=self._entity_class.__name__,
            entity_id=entity_id,
        )
        self._hooks.on_before_delete(entity)
        self._store.delete(entity)
        self._hooks.on_after_delete(entity)

    # =========================================================================
    # Internals
    # =========================================================================

    def _locate(self, entity_id: ID) -> E:
        entity = self._store.find_by_id(entity_id)
        if entity is None:
            raise NotFoundEntityError(self._entity_class, entity_id)
        return entity

    def _write(
        self,
        status: TransactionStatus,
        dto: D,
        entity: E,
        before: Callable[[D, E], None],
        after: Callable[[D, E], None],
    ) -> E:
        try:
            self.map_model(dto, entity)
            before(dto, entity)
            saved = self._store.save(entity)
            after(dto, saved)
            return saved
        except Exception:
            logger.warning(
                "Write failed, marking transaction rollback-only",
                entity=self._entity_class.__name__,
            )
            status.set_rollback_only()
            raise


# =============================================================================
# CRUD Service
# =============================================================================


class CrudService(Generic[E, D, ID]):
    """
    Read and write operations over one store, sharing hooks and
    authorization.

    Delegates to a ``ReadService`` and a ``WriteService``; override
    ``map_model`` in a subclass to customize DTO mapping.
    """

    def __init__(
        self,
        store: EntityStore[E, ID],
        *,
        entity_class: type[E] | None = None,
        dto_class: type[D] | None = None,
        mapper: Mapper | None = None,
        hooks: CrudHooks[E, D, ID] | None = None,
        authorization: AuthorizationManager | None = None,
        transactions: TransactionOperations | None = None,
    ):
        hooks = hooks or DEFAULT_CRUD_HOOKS
        self._mapper = mapper or copy_fields
        self.reader: ReadService[E, ID] = ReadService(
            store,
            hooks=hooks,
            authorization=authorization,
        )
        self.writer: WriteService[E, D, ID] = WriteService(
            store,
            entity_class=entity_class,
            dto_class=dto_class,
            mapper=self.map_model,
            hooks=hooks,
            authorization=authorization,
            transactions=transactions,
        )

    @property
    def store(self) -> EntityStore[E, ID]:
        return self.reader.store

    @property
    def entity_class(self) -> type[E]:
        return self.writer.entity_class

    @property
    def dto_class(self) -> type[D] | None:
        return self.writer.dto_class

    def map_model(self, dto: D, entity: E) -> None:
        self._mapper(dto, entity)

    def page(self, search: str | None, pageable: PageRequest, query: Node | None = None) -> Page[E]:
        return self.reader.page(search, pageable, query)

    def find(self, entity_id: ID) -> E:
        return self.reader.find(entity_id)

    def find_all(self, ids: Iterable[ID]) -> list[E]:
        return self.reader.find_all(ids)

    def count(self, search: str | None = None, query: Node | None = None) -> int:
        return self.reader.count(search, query)

    def exists(self, entity_id: ID) -> bool:
        return self.reader.exists(entity_id)

    def create(self, dto: D) -> E:
        return self.writer.create(dto)

    def update(self, entity_id: ID, dto: D) -> E:
        return self.writer.update(entity_id, dto)

    def delete(self, entity_id: ID) -> None:
        self.writer.delete(entity_id)

"""
Hook points around CRUD operations.

Hooks are plain objects whose methods do nothing by default; subclass and
override only the callbacks you need. Services fall back to the shared
default instances, so an absent hook costs one no-op call.

Usage:
    class AuditHooks(CrudHooks[Foo, FooDto, int]):
        def on_after_create(self, dto, entity):
            audit_logger.info("Foo created", foo_id=entity.id)

    service = FooService(db, hooks=AuditHooks())
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Generic, Iterable, TypeVar

if TYPE_CHECKING:
    from data_crud.services.search import Page

E = TypeVar("E")
D = TypeVar("D")
ID = TypeVar("ID")


class ReadHooks(Generic[E, ID]):
    """Callbacks invoked after read operations complete."""

    def on_page(self, page: Page[E]) -> None:
        pass

    def on_find(self, entity: E) -> None:
        pass

    def on_find_all(self, entities: Iterable[E], ids: Iterable[ID]) -> None:
        pass

    def on_count(self, count: int) -> None:
        pass

    def on_exists(self, exists: bool, entity_id: ID) -> None:
        pass


class WriteHooks(Generic[E, D, ID]):
    """Callbacks invoked before and after persistence in write operations."""

    def on_before_create(self, dto: D, entity: E) -> None:
        pass

    def on_after_create(self, dto: D, entity: E) -> None:
        pass

    def on_before_update(self, dto: D, entity: E) -> None:
        pass

    def on_after_update(self, dto: D, entity: E) -> None:
        pass

    def on_before_delete(self, entity: E) -> None:
        pass

    def on_after_delete(self, entity: E) -> None:
        pass


class CrudHooks(ReadHooks[E, ID], WriteHooks[E, D, ID], Generic[E, D, ID]):
    """Read and write callbacks in one object."""


_HOOK_NAMES = frozenset(
    name
    for name in (*vars(ReadHooks), *vars(WriteHooks))
    if name.startswith("on_")
)


class CallbackHooks(CrudHooks[E, D, ID]):
    """
    Hook set assembled from optional callables.

        hooks = CallbackHooks(on_after_create=lambda dto, entity: events.append(entity))
    """

    def __init__(self, **callbacks: Callable[..., Any] | None):
        unknown = set(callbacks) - _HOOK_NAMES
        if unknown:
            raise TypeError(f"Unknown hook(s): {', '.join(sorted(unknown))}")
        for name, callback in callbacks.items():
            if callback is not None:
                setattr(self, name, callback)


DEFAULT_READ_HOOKS: ReadHooks[Any, Any] = ReadHooks()
DEFAULT_WRITE_HOOKS: WriteHooks[Any, Any, Any] = WriteHooks()
DEFAULT_CRUD_HOOKS: CrudHooks[Any, Any, Any] = CrudHooks()

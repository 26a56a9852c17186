"""
Storage contract shared by every backend.

Services only talk to an ``EntityStore``; the SQLAlchemy and MongoDB stores
implement it, and tests can replace it with a mock.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import Generic, TypeVar

from data_crud.services.search import (
    Page,
    PageRequest,
    SearchBaseOptions,
    SearchOptions,
    create_search_options,
)

E = TypeVar("E")
ID = TypeVar("ID")


class EntityStore(ABC, Generic[E, ID]):
    """Data access for one entity type."""

    @property
    @abstractmethod
    def entity_class(self) -> type[E]:
        """The entity type this store persists."""

    @abstractmethod
    def find_by_id(self, entity_id: ID) -> E | None:
        """Entity with the given id, or None."""

    @abstractmethod
    def find_all_by_ids(self, ids: Iterable[ID]) -> Sequence[E]:
        """Entities whose id is in ``ids``; missing ids are skipped."""

    @abstractmethod
    def search(self, options: SearchOptions) -> Sequence[E]:
        """Entities matching the search term AND filter, windowed and sorted."""

    @abstractmethod
    def count(self, options: SearchBaseOptions | None = None) -> int:
        """Number of matches; ``None`` counts every entity."""

    @abstractmethod
    def exists(self, entity_id: ID) -> bool:
        ...

    @abstractmethod
    def save(self, entity: E) -> E:
        ...

    @abstractmethod
    def delete(self, entity: E) -> None:
        ...

    def count_page(self, options: SearchBaseOptions | None = None) -> int:
        """Total behind a page, under the same restrictions as ``search``."""
        return self.count(options)

    def find_page(self, pageable: PageRequest) -> Page[E]:
        """Unfiltered page; the total is counted only when needed."""
        content = self.search(create_search_options(None, pageable, None))
        return Page.build(content, pageable, lambda: self.count_page(None))

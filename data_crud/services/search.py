"""
Paging, sorting and search options.

``PageRequest`` is what callers (and the HTTP layer) ask for;
``SearchOptions`` is what the stores execute. ``create_search_options``
maps one to the other.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from shared.utils.strings import normalize_search

from .rsql import Node

T = TypeVar("T")


# =============================================================================
# Sorting
# =============================================================================


@dataclass(frozen=True)
class Order:
    """Sort order on a single property."""

    property: str
    ascending: bool = True

    @property
    def direction(self) -> str:
        return "asc" if self.ascending else "desc"


@dataclass(frozen=True)
class Sort:
    """Ordered list of property orders; empty means unsorted."""

    orders: tuple[Order, ...] = ()

    @classmethod
    def unsorted(cls) -> Sort:
        return cls()

    @classmethod
    def by(cls, *properties: str, ascending: bool = True) -> Sort:
        return cls(tuple(Order(p, ascending) for p in properties))

    @classmethod
    def parse(cls, values: Iterable[str] | None) -> Sort:
        """
        Parse ``property,(asc|desc)`` expressions.

        Each value may list several properties sharing one trailing
        direction: ``"lastName,firstName,desc"``. Blank values are ignored.
        """
        orders: list[Order] = []
        for value in values or ():
            parts = [p.strip() for p in value.split(",") if p.strip()]
            if not parts:
                continue
            ascending = True
            if parts[-1].lower() in ("asc", "desc"):
                ascending = parts.pop().lower() == "asc"
            orders.extend(Order(p, ascending) for p in parts)
        return cls(tuple(orders))

    @property
    def is_sorted(self) -> bool:
        return bool(self.orders)

    @property
    def is_unsorted(self) -> bool:
        return not self.orders

    def __iter__(self) -> Iterator[Order]:
        return iter(self.orders)

    def to_params(self) -> list[str]:
        return [f"{o.property},{o.direction}" for o in self.orders]


# =============================================================================
# Paging
# =============================================================================


@dataclass(frozen=True)
class PageRequest:
    """
    Requested page (0-indexed) with size and sort.

    ``size=None`` means unpaged: every matching entity in one page.
    """

    page: int = 0
    size: int | None = 20
    sort: Sort = field(default_factory=Sort.unsorted)

    def __post_init__(self):
        if self.page < 0:
            raise ValueError("Page index must not be less than zero")
        if self.size is not None and self.size < 1:
            raise ValueError("Page size must not be less than one")

    @classmethod
    def of(cls, page: int, size: int, sort: Sort | None = None) -> PageRequest:
        return cls(page, size, sort or Sort.unsorted())

    @classmethod
    def unpaged(cls, sort: Sort | None = None) -> PageRequest:
        return cls(0, None, sort or Sort.unsorted())

    @property
    def is_unpaged(self) -> bool:
        return self.size is None

    @property
    def is_paged(self) -> bool:
        return self.size is not None

    @property
    def offset(self) -> int:
        return 0 if self.size is None else self.page * self.size


@dataclass(frozen=True)
class Pagination:
    """Page window handed to the stores."""

    page: int
    size: int | None

    @classmethod
    def unpaginated(cls) -> Pagination:
        return cls(0, None)

    @property
    def is_paginated(self) -> bool:
        return self.size is not None

    @property
    def offset(self) -> int:
        return 0 if self.size is None else self.page * self.size


class Page(Generic[T]):
    """
    A slice of results plus the total number of matches.

    Usage:
        page = Page(items, PageRequest.of(0, 20), total=57)
        page.total_pages   # 3
        page.to_dict(lambda e: FooOutput.model_validate(e).model_dump())
    """

    def __init__(self, content: Sequence[T], pageable: PageRequest, total: int):
        self.content: list[T] = list(content)
        self.pageable = pageable
        # A short last page tells us the total without a count query.
        if pageable.is_paged and self.content and pageable.offset + pageable.size > total:
            total = pageable.offset + len(self.content)
        self.total_elements = total

    @classmethod
    def build(
        cls,
        content: Sequence[T],
        pageable: PageRequest,
        count: Callable[[], int],
    ) -> Page[T]:
        """
        Build a page, calling ``count`` only when the total is unknown.

        The count query is skipped for unpaged requests and for a first or
        last page that is not full.
        """
        content = list(content)
        if pageable.is_unpaged:
            return cls(content, pageable, len(content))
        if pageable.offset == 0 and len(content) < pageable.size:
            return cls(content, pageable, len(content))
        if content and len(content) < pageable.size:
            return cls(content, pageable, pageable.offset + len(content))
        return cls(content, pageable, count())

    @property
    def number(self) -> int:
        return self.pageable.page

    @property
    def size(self) -> int:
        return self.pageable.size if self.pageable.size is not None else len(self.content)

    @property
    def number_of_elements(self) -> int:
        return len(self.content)

    @property
    def total_pages(self) -> int:
        if self.size == 0:
            return 1
        return math.ceil(self.total_elements / self.size)

    @property
    def has_next(self) -> bool:
        return self.number + 1 < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.number > 0

    @property
    def is_first(self) -> bool:
        return not self.has_previous

    @property
    def is_last(self) -> bool:
        return not self.has_next

    def map(self, converter: Callable[[T], Any]) -> Page[Any]:
        page: Page[Any] = Page.__new__(Page)
        page.content = [converter(item) for item in self.content]
        page.pageable = self.pageable
        page.total_elements = self.total_elements
        return page

    def __iter__(self) -> Iterator[T]:
        return iter(self.content)

    def __len__(self) -> int:
        return len(self.content)

    def to_dict(self, converter: Callable[[T], Any] | None = None) -> dict[str, Any]:
        """Response body: content plus page metadata."""
        page = self.map(converter) if converter else self
        return {
            "content": list(page.content),
            "page": {
                "number": self.number,
                "size": self.size,
                "number_of_elements": self.number_of_elements,
                "total_elements": self.total_elements,
                "total_pages": self.total_pages,
                "first": self.is_first,
                "last": self.is_last,
            },
            "sort": self.pageable.sort.to_params(),
        }

    def __repr__(self) -> str:
        return (
            f"Page({self.number + 1} of {self.total_pages}, "
            f"{self.number_of_elements} of {self.total_elements} elements)"
        )


# =============================================================================
# Search Options
# =============================================================================


@dataclass(frozen=True)
class SearchBaseOptions:
    """Free-text search term plus optional parsed filter."""

    search: str | None = None
    query: Node | None = None

    @property
    def has_search(self) -> bool:
        return self.search is not None and bool(self.search.strip())


@dataclass(frozen=True)
class SearchOptions(SearchBaseOptions):
    """Search term and filter with the page window and sort to apply."""

    pagination: Pagination = field(default_factory=Pagination.unpaginated)
    sort: Sort = field(default_factory=Sort.unsorted)


def create_search_options(
    search: str | None,
    pageable: PageRequest,
    query: Node | None,
) -> SearchOptions:
    """Map a page request to the options the stores execute."""
    pagination = (
        Pagination.unpaginated()
        if pageable.is_unpaged
        else Pagination(pageable.page, pageable.size)
    )
    sort = Sort.unsorted() if pageable.sort.is_unsorted else Sort(pageable.sort.orders)
    return SearchOptions(
        search=normalize_search(search),
        query=query,
        pagination=pagination,
        sort=sort,
    )


def create_search_base_options(search: str | None, query: Node | None) -> SearchBaseOptions:
    return SearchBaseOptions(search=normalize_search(search), query=query)

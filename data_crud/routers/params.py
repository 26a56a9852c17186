"""
Request parameter dependencies shared by the CRUD routers.

Parameter names and page-size limits come from settings, so a host app can
rename ``page``/``size``/``sort``/``search``/``query`` without touching the
routers.

Usage:
    @router.get("/foos")
    def list_foos(
        pageable: PageRequest = Depends(get_page_request),
        search: str | None = Depends(get_search),
        query: Node | None = Depends(get_query_node),
    ):
        ...
"""

from typing import Any

from fastapi import Query, Request

from data_crud.services.rsql import Node, parse_query
from data_crud.services.search import PageRequest, Sort
from shared.config.constants import Limits
from shared.config.settings import settings
from shared.utils.strings import normalize_search

_FIRST_PAGE = 1 if settings.one_indexed_pages else 0


def get_page_request(
    page: int = Query(
        default=_FIRST_PAGE,
        ge=_FIRST_PAGE,
        alias=settings.page_param,
        description=f"Page number ({_FIRST_PAGE}-indexed)",
    ),
    size: int = Query(
        default=settings.default_page_size,
        ge=Limits.MIN_PAGE_SIZE,
        le=settings.max_page_size,
        alias=settings.size_param,
        description="Number of items per page",
    ),
    sort: list[str] | None = Query(
        default=None,
        alias=settings.sort_param,
        description="Sort criteria as property,(asc|desc); repeat for several properties",
    ),
) -> PageRequest:
    """FastAPI dependency building the requested page."""
    return PageRequest.of(page - _FIRST_PAGE, size, Sort.parse(sort))


def get_search(
    search: str | None = Query(
        default=None,
        alias=settings.search_param,
        description="Free-text search across the entity's text fields",
    ),
) -> str | None:
    return normalize_search(search)


def get_query_node(
    query: str | None = Query(
        default=None,
        alias=settings.query_param,
        description="RSQL filter, e.g. name==foo*;age=gt=18",
        examples=["name==foo*;age=gt=18"],
    ),
) -> Node | None:
    """Parse the RSQL filter; a malformed expression is a 400."""
    return parse_query(query)


def get_query_params(request: Request) -> dict[str, list[str]]:
    """Every query parameter of the request, multi-valued."""
    params: dict[str, list[str]] = {}
    for key, value in request.query_params.multi_items():
        params.setdefault(key, []).append(value)
    return params


def no_principal() -> Any:
    return None

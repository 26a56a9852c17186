"""
Read endpoints: paged listing, lookup by id and ids, count, existence.
"""

from typing import Any

from fastapi import Depends, Query

from data_crud.services.rsql import Node
from data_crud.services.search import PageRequest

from .base import ServiceRouter
from .params import get_page_request, get_query_node, get_search
from .responses import PageResponse


class ReadRouter(ServiceRouter):
    """
    Usage:
        router = ReadRouter(get_foo_service, output_schema=FooOutput, prefix="/foos").router
        app.include_router(router)
    """

    def add_static_routes(self) -> None:
        super().add_static_routes()
        router = self.router
        service_dependency = self.service_dependency
        principal_dependency = self.principal_source
        output = self.output_schema or Any
        id_type = self.id_type

        @router.get("/", response_model=PageResponse[output])
        def page(
            pageable: PageRequest = Depends(get_page_request),
            search: str | None = Depends(get_search),
            query: Node | None = Depends(get_query_node),
            service: Any = Depends(service_dependency),
            principal: Any = Depends(principal_dependency),
        ) -> dict[str, Any]:
            """Page of entities matching the search term and RSQL filter."""
            with self.principal_context(principal):
                result = service.page(search, pageable, query)
            return result.to_dict(self.to_output)

        @router.get("/ids", response_model=list[output])
        def find_all(
            ids: list[id_type] = Query(..., description="Ids to look up; unknown ids are skipped"),
            service: Any = Depends(service_dependency),
            principal: Any = Depends(principal_dependency),
        ) -> list[Any]:
            with self.principal_context(principal):
                entities = service.find_all(ids)
            return [self.to_output(e) for e in entities]

        @router.get("/count", response_model=int)
        def count(
            search: str | None = Depends(get_search),
            query: Node | None = Depends(get_query_node),
            service: Any = Depends(service_dependency),
            principal: Any = Depends(principal_dependency),
        ) -> int:
            """Number of entities matching the search term and RSQL filter."""
            with self.principal_context(principal):
                return service.count(search, query)

        @router.get("/exists", response_model=bool)
        def exists(
            entity_id: id_type = Query(..., alias="id", description="Entity id"),
            service: Any = Depends(service_dependency),
            principal: Any = Depends(principal_dependency),
        ) -> bool:
            with self.principal_context(principal):
                return service.exists(entity_id)

    def add_item_routes(self) -> None:
        super().add_item_routes()
        service_dependency = self.service_dependency
        principal_dependency = self.principal_source
        output = self.output_schema or Any
        id_type = self.id_type

        @self.router.get("/{entity_id}", response_model=output)
        def find(
            entity_id: id_type,
            service: Any = Depends(service_dependency),
            principal: Any = Depends(principal_dependency),
        ) -> Any:
            """Entity by id; 404 when it does not exist."""
            with self.principal_context(principal):
                entity = service.find(entity_id)
            return self.to_output(entity)

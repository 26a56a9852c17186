"""
Export endpoints: a page of entities or a single entity as a file.

Every query parameter of the request is handed to ``export_options``, so
exporters can take arbitrary options (``fields``, ``filename``, ...).
"""

from typing import Any

from fastapi import Depends, Response

from data_crud.services.rsql import Node
from data_crud.services.search import PageRequest
from shared.config.logging import get_logger

from .base import ServiceRouter
from .params import get_page_request, get_query_node, get_query_params, get_search
from .responses import file_response

logger = get_logger(__name__)


class ExportRouter(ServiceRouter):
    """
    Adds ``/export`` and ``/export/{entity_id}`` when an exporter is set.

    Override ``export_options`` to turn query parameters into the options
    object your exporter expects.
    """

    def export_options(self, params: dict[str, list[str]]) -> Any:
        return params

    def add_static_routes(self) -> None:
        super().add_static_routes()
        if self.exporter is None:
            return

        router = self.router
        service_dependency = self.service_dependency
        principal_dependency = self.principal_source
        id_type = self.id_type

        @router.get("/export", response_class=Response)
        def export_page(
            pageable: PageRequest = Depends(get_page_request),
            search: str | None = Depends(get_search),
            query: Node | None = Depends(get_query_node),
            params: dict[str, list[str]] = Depends(get_query_params),
            service: Any = Depends(service_dependency),
            principal: Any = Depends(principal_dependency),
        ) -> Response:
            """Export the requested page with the configured exporter."""
            options = self.export_options(params)
            with self.principal_context(principal):
                page = service.page(search, pageable, query)
            return self._export([self.to_output(e) for e in page], options)

        @router.get("/export/{entity_id}", response_class=Response)
        def export_one(
            entity_id: id_type,
            params: dict[str, list[str]] = Depends(get_query_params),
            service: Any = Depends(service_dependency),
            principal: Any = Depends(principal_dependency),
        ) -> Response:
            """Export a single entity; 404 when it does not exist."""
            options = self.export_options(params)
            with self.principal_context(principal):
                entity = service.find(entity_id)
            return self._export([self.to_output(entity)], options)

    def _export(self, elements: list[Any], options: Any) -> Response:
        resource = self.exporter.export(elements, options)
        logger.debug(
            "Export generated",
            exporter=type(self.exporter).__name__,
            filename=resource.filename,
            elements=len(elements),
        )
        return file_response(resource.content, resource.filename, resource.media_type)

"""
Common base for routers that expose a CRUD service over HTTP.

Routers are assembled from cooperative subclasses: each adds its routes in
``add_static_routes`` and ``add_item_routes`` and calls ``super()``. All
static routes are registered before any ``/{entity_id}`` route, so paths
like ``/count`` or ``/export`` never get captured as an id.
"""

from collections.abc import Callable
from contextlib import AbstractContextManager, nullcontext
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from data_crud.services.authorization import principal_scope

from .exporters import Exporter
from .params import no_principal


class ServiceRouter:
    """
    Holds the ``APIRouter`` and the collaborators shared by all routes.

    Args:
        service_dependency: FastAPI dependency returning the service.
        output_schema: Pydantic model entities are converted to.
        dto_schema: Pydantic model accepted as request body for writes.
        exporter: Exporter for the ``/export`` routes.
        id_type: Python type of entity ids (path and query parameters).
        principal_dependency: Dependency returning the current principal;
            its value is bound for the duration of each service call.
    """

    def __init__(
        self,
        service_dependency: Callable[..., Any],
        *,
        output_schema: type[BaseModel] | None = None,
        dto_schema: type[BaseModel] | None = None,
        exporter: Exporter | None = None,
        id_type: type = int,
        prefix: str = "",
        tags: list[str] | None = None,
        principal_dependency: Callable[..., Any] | None = None,
        router: APIRouter | None = None,
    ):
        self.service_dependency = service_dependency
        self.output_schema = output_schema
        self.dto_schema = dto_schema
        self.exporter = exporter
        self.id_type = id_type
        self.principal_dependency = principal_dependency
        self.router = router or APIRouter(prefix=prefix, tags=tags)

        self.add_static_routes()
        self.add_item_routes()

    @property
    def principal_source(self) -> Callable[..., Any]:
        return self.principal_dependency or no_principal

    def add_static_routes(self) -> None:
        """Routes without an id segment."""

    def add_item_routes(self) -> None:
        """Routes addressed by ``/{entity_id}``."""

    def principal_context(self, principal: Any) -> AbstractContextManager[Any]:
        if self.principal_dependency is None:
            return nullcontext()
        return principal_scope(principal)

    def to_output(self, entity: Any) -> Any:
        if self.output_schema is None:
            return entity
        return self.output_schema.model_validate(entity, from_attributes=True)

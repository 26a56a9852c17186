"""
Write endpoints: create, update, delete.
"""

from typing import Any

from fastapi import Depends
from fastapi.responses import PlainTextResponse

from .base import ServiceRouter


class WriteRouter(ServiceRouter):
    """
    Usage:
        WriteRouter(
            get_foo_service,
            output_schema=FooOutput,
            dto_schema=FooInput,
            prefix="/foos",
        )
    """

    def deleted_message(self, entity_id: Any) -> str:
        return f"Deleted {entity_id}"

    def add_static_routes(self) -> None:
        super().add_static_routes()
        service_dependency = self.service_dependency
        principal_dependency = self.principal_source
        output = self.output_schema or Any
        dto = self.dto_schema or dict[str, Any]

        @self.router.post("/", response_model=output)
        def create(
            body: dto,
            service: Any = Depends(service_dependency),
            principal: Any = Depends(principal_dependency),
        ) -> Any:
            with self.principal_context(principal):
                entity = service.create(body)
            return self.to_output(entity)

    def add_item_routes(self) -> None:
        super().add_item_routes()
        service_dependency = self.service_dependency
        principal_dependency = self.principal_source
        output = self.output_schema or Any
        dto = self.dto_schema or dict[str, Any]
        id_type = self.id_type

        @self.router.put("/{entity_id}", response_model=output)
        def update(
            entity_id: id_type,
            body: dto,
            service: Any = Depends(service_dependency),
            principal: Any = Depends(principal_dependency),
        ) -> Any:
            with self.principal_context(principal):
                entity = service.update(entity_id, body)
            return self.to_output(entity)

        @self.router.delete("/{entity_id}", response_class=PlainTextResponse)
        def delete(
            entity_id: id_type,
            service: Any = Depends(service_dependency),
            principal: Any = Depends(principal_dependency),
        ) -> str:
            with self.principal_context(principal):
                service.delete(entity_id)
            return self.deleted_message(entity_id)

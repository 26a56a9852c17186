"""
Full CRUD router: read, write and, when an exporter is given, export.
"""

from .export import ExportRouter
from .read import ReadRouter
from .write import WriteRouter


class CrudRouter(ExportRouter, ReadRouter, WriteRouter):
    """
    Usage:
        def get_foo_service(db: Session = Depends(get_db)) -> SqlAlchemyCrudService:
            return SqlAlchemyCrudService(db, Foo, FooInput)

        foos = CrudRouter(
            get_foo_service,
            output_schema=FooOutput,
            dto_schema=FooInput,
            exporter=CsvExporter("foos"),
            prefix="/foos",
            tags=["foos"],
        )
        app.include_router(foos.router)
    """

"""
HTTP surface for CRUD services: Read/Write/Crud/Export routers, request
parameter dependencies, exporters and file responses.
"""

from data_crud.routers.base import ServiceRouter
from data_crud.routers.read import ReadRouter
from data_crud.routers.write import WriteRouter
from data_crud.routers.export import ExportRouter
from data_crud.routers.crud import CrudRouter
from data_crud.routers.exporters import Exporter, ExportResource, CsvExporter, JsonExporter
from data_crud.routers.params import (
    get_page_request,
    get_search,
    get_query_node,
    get_query_params,
)
from data_crud.routers.responses import PageResponse, file_response, content_disposition

__all__ = [
    # routers
    "ServiceRouter",
    "ReadRouter",
    "WriteRouter",
    "ExportRouter",
    "CrudRouter",
    # exporters
    "Exporter",
    "ExportResource",
    "CsvExporter",
    "JsonExporter",
    # params
    "get_page_request",
    "get_search",
    "get_query_node",
    "get_query_params",
    # responses
    "PageResponse",
    "file_response",
    "content_disposition",
]

"""
Pluggable exporters for the ``/export`` endpoints.

An exporter turns a collection of elements (output models or mappings)
into file bytes plus a filename and media type. Options are whatever the
router's ``export_options`` builds from the request's query parameters;
the bundled exporters understand ``fields`` and ``filename``.

Usage:
    ExportRouter(get_foo_service, output_schema=FooOutput, exporter=CsvExporter())

    GET /foos/export?fields=id&fields=name&filename=foos
"""

import csv
import io
import json
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from shared.config.constants import MediaTypes


@dataclass(frozen=True)
class ExportResource:
    """Exported file."""

    content: bytes
    filename: str
    media_type: str = MediaTypes.OCTET_STREAM


class Exporter(ABC):
    @abstractmethod
    def export(self, elements: Iterable[Any], options: Any) -> ExportResource:
        ...


def to_record(element: Any) -> dict[str, Any]:
    """JSON-compatible mapping for a model, mapping or plain object."""
    if isinstance(element, BaseModel):
        return element.model_dump(mode="json")
    if isinstance(element, Mapping):
        return dict(element)
    return {k: v for k, v in vars(element).items() if not k.startswith("_")}


def _option(options: Any, name: str) -> list[str]:
    if isinstance(options, Mapping):
        value = options.get(name) or []
        return [value] if isinstance(value, str) else list(value)
    return []


class CsvExporter(Exporter):
    """
    CSV with a header row.

    Columns are the ``fields`` option in order, or the keys of the first
    record when no fields are requested.
    """

    def __init__(self, filename: str = "export", delimiter: str = ",", encoding: str = "utf-8"):
        self.filename = filename
        self.delimiter = delimiter
        self.encoding = encoding

    def export(self, elements: Iterable[Any], options: Any) -> ExportResource:
        records = [to_record(e) for e in elements]
        fields = _option(options, "fields") or (list(records[0]) if records else [])

        buffer = io.StringIO()
        writer = csv.DictWriter(
            buffer,
            fieldnames=fields,
            delimiter=self.delimiter,
            extrasaction="ignore",
        )
        writer.writeheader()
        writer.writerows(records)

        name = (_option(options, "filename") or [self.filename])[0]
        return ExportResource(
            content=buffer.getvalue().encode(self.encoding),
            filename=f"{name}.csv",
            media_type=f"{MediaTypes.CSV}; charset={self.encoding}",
        )


class JsonExporter(Exporter):
    """JSON array of records, optionally restricted to ``fields``."""

    def __init__(self, filename: str = "export", indent: int | None = 2):
        self.filename = filename
        self.indent = indent

    def export(self, elements: Iterable[Any], options: Any) -> ExportResource:
        fields = _option(options, "fields")
        records = [to_record(e) for e in elements]
        if fields:
            records = [{f: r.get(f) for f in fields} for r in records]

        name = (_option(options, "filename") or [self.filename])[0]
        return ExportResource(
            content=json.dumps(records, indent=self.indent, ensure_ascii=False, default=str).encode(),
            filename=f"{name}.json",
            media_type=MediaTypes.JSON,
        )

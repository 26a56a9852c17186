"""
Response bodies and file downloads for the CRUD routers.
"""

from typing import Generic, TypeVar
from urllib.parse import quote

from fastapi import Response
from pydantic import BaseModel

from shared.config.constants import CONTENT_DISPOSITION, MediaTypes
from shared.utils.strings import to_ascii

T = TypeVar("T")


class PageMetadata(BaseModel):
    number: int
    size: int
    number_of_elements: int
    total_elements: int
    total_pages: int
    first: bool
    last: bool


class PageResponse(BaseModel, Generic[T]):
    """Body of a paged listing."""

    content: list[T]
    page: PageMetadata
    sort: list[str] = []


def content_disposition(filename: str, inline: bool = False) -> str:
    """
    Content-Disposition value with an ASCII fallback and an RFC 5987 name.

        content_disposition("Canción.csv")
        # attachment; filename="Cancion.csv"; filename*=UTF-8''Canci%C3%B3n.csv
    """
    disposition = "inline" if inline else "attachment"
    safe_name = to_ascii(filename).replace('"', "")
    encoded = quote(filename, safe="")
    return f"{disposition}; filename=\"{safe_name}\"; filename*=UTF-8''{encoded}"


def file_response(
    content: bytes,
    filename: str,
    media_type: str = MediaTypes.OCTET_STREAM,
    inline: bool = False,
) -> Response:
    """200 response carrying ``content`` as a downloadable file."""
    return Response(
        content=content,
        media_type=media_type,
        headers={
            CONTENT_DISPOSITION: content_disposition(filename, inline),
            "Access-Control-Expose-Headers": CONTENT_DISPOSITION,
        },
    )

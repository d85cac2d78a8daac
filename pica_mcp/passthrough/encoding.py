"""Serialization of request data for the three supported body encodings."""

import urllib.parse
import uuid
from typing import List, Optional, Tuple

import aiohttp

from .models import CONTENT_TYPE_HEADER, BodyEncoding, EncodedBody, Payload, stringify


def form_fields(payload: Optional[Payload]) -> List[Tuple[str, str]]:
    """Flatten a record payload into ordered ``(name, text)`` pairs

    Nested objects and arrays are sent as their JSON text. Lists and scalars
    produce no fields.
    """
    if payload is None:
        return []
    return [(name, stringify(value)) for name, value in payload.fields.items()]


def encode(payload: Optional[Payload], encoding: BodyEncoding, boundary: Optional[str] = None) -> EncodedBody:
    """Encode ``payload`` and derive the matching content-type header

    Args:
        payload: Request data after path variables were promoted out of it
        encoding: Body encoding chosen by the caller
        boundary: Multipart boundary, generated when not given

    Returns:
        EncodedBody carrying the wire content and extra headers
    """
    if encoding is BodyEncoding.MULTIPART:
        boundary = boundary or uuid.uuid4().hex
        fields = form_fields(payload)
        writer = aiohttp.MultipartWriter("form-data", boundary=boundary)
        return EncodedBody(
            encoding=encoding,
            content=fields,
            headers={CONTENT_TYPE_HEADER: writer.content_type},
            boundary=boundary,
        )

    if encoding is BodyEncoding.URLENCODED:
        return EncodedBody(
            encoding=encoding,
            content=urllib.parse.urlencode(form_fields(payload)),
            headers={CONTENT_TYPE_HEADER: encoding.value},
        )

    return EncodedBody(encoding=encoding, content=payload.value if payload is not None else None)


__all__ = [
    "form_fields",
    "encode",
]

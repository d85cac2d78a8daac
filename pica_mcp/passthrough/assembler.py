"""Composition of the final passthrough request descriptor."""

from typing import Any, Dict, Mapping, Optional

from multidict import CIMultiDict

from .models import (
    ACTION_ID_HEADER,
    CONNECTION_KEY_HEADER,
    CONTENT_TYPE_HEADER,
    SECRET_HEADER,
    BodyEncoding,
    EncodedBody,
    RequestDescriptor,
    stringify,
)

PASSTHROUGH_PREFIX = "/v1/passthrough"


def base_headers(secret: str) -> Dict[str, str]:
    return {
        CONTENT_TYPE_HEADER: BodyEncoding.JSON.value,
        SECRET_HEADER: secret,
    }


def passthrough_url(base_url: str, path: Optional[str]) -> str:
    return f"{base_url.rstrip('/')}{PASSTHROUGH_PREFIX}/{(path or '').lstrip('/')}"


def is_get(method: Optional[str]) -> bool:
    return (method or "").lower() == "get"


def assemble(
    base_url: str,
    path: Optional[str],
    method: str,
    connection_key: str,
    action_id: str,
    secret: str,
    headers: Optional[Mapping[str, Any]] = None,
    query_params: Optional[Dict[str, Any]] = None,
    body: Optional[EncodedBody] = None,
) -> RequestDescriptor:
    """Build the RequestDescriptor for a resolved passthrough call

    Headers are merged case-insensitively, later layers winning: base headers,
    routing headers, the body's content-type, caller headers. The secret and
    routing headers are applied once more at the end so caller headers can
    change the content-type but never the credential or the routing.

    Args:
        base_url: Pica API base URL
        path: Path with every placeholder already resolved
        method: HTTP verb
        connection_key: Connection whose credential Pica should use
        action_id: Action the request is routed to
        secret: Pica secret sent in the ``x-pica-secret`` header
        headers: Caller supplied headers
        query_params: Query parameters, passed through verbatim
        body: Encoded body, dropped for GET requests

    Returns:
        The assembled RequestDescriptor
    """
    routing = {
        CONNECTION_KEY_HEADER: connection_key,
        ACTION_ID_HEADER: action_id,
    }

    merged = CIMultiDict(base_headers(secret))
    merged.update(routing)
    if body is not None:
        merged.update(body.headers)
    if headers:
        merged.update({name: stringify(value) for name, value in headers.items()})
    merged.update({SECRET_HEADER: secret, **routing})

    return RequestDescriptor(
        url=passthrough_url(base_url, path),
        method=method,
        headers={str(name): value for name, value in merged.items()},
        params=query_params,
        body=None if is_get(method) else body,
    )


__all__ = [
    "PASSTHROUGH_PREFIX",
    "base_headers",
    "passthrough_url",
    "is_get",
    "assemble",
]

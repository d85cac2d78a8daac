"""Data models for passthrough actions, connections and built requests.

This module contains the core data structures the request-construction
engine reads from the Pica catalog and the descriptor it produces.
"""

import copy
import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import aiohttp

from .errors import InvalidInvocation

SECRET_HEADER = "x-pica-secret"
CONNECTION_KEY_HEADER = "x-pica-connection-key"
ACTION_ID_HEADER = "x-pica-action-id"
CONTENT_TYPE_HEADER = "Content-Type"

SECRET_ENV_VAR = "PICA_SECRET"
SECRET_PLACEHOLDER = "${PICA_SECRET}"


class BodyEncoding(Enum):
    """Wire representation of a request body"""
    JSON = "application/json"
    MULTIPART = "multipart/form-data"
    URLENCODED = "application/x-www-form-urlencoded"


class PayloadKind(Enum):
    RECORD = "record"
    LIST = "list"
    SCALAR = "scalar"


@dataclass(frozen=True)
class Payload:
    """Caller-supplied request data, classified once at the boundary

    Args:
        kind: Which variant the raw value is
        value: The raw JSON-compatible value
    """
    kind: PayloadKind
    value: Any

    @classmethod
    def wrap(cls, value: Any) -> Optional["Payload"]:
        if value is None:
            return None
        if isinstance(value, Payload):
            return value
        if isinstance(value, dict):
            return cls(PayloadKind.RECORD, value)
        if isinstance(value, (list, tuple)):
            return cls(PayloadKind.LIST, list(value))
        return cls(PayloadKind.SCALAR, value)

    @property
    def fields(self) -> Dict[str, Any]:
        """Own fields of a record payload, empty for the other variants"""
        if self.kind is PayloadKind.RECORD:
            return self.value
        return {}


def stringify(value: Any) -> str:
    """Render a value the way JSON text would, leaving strings untouched"""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"))


def query_string_params(params: Optional[Dict[str, Any]]) -> Optional[Dict[str, str]]:
    """Query parameters as text, the way they go on the wire

    ``None`` values are dropped and everything else goes through ``stringify``.
    """
    if params is None:
        return None
    return {name: stringify(value) for name, value in params.items() if value is not None}


@dataclass(frozen=True)
class ActionDescriptor:
    """A documented remote operation cataloged by Pica

    Args:
        id: Opaque action identifier (upstream ``_id``)
        path: Path template with zero or more ``{{name}}`` placeholders
        title: Human readable title
        tags: Free-form tags
        knowledge: Documentation blob, opaque to the engine
    """
    id: str
    path: str = ""
    title: str = ""
    tags: Tuple[str, ...] = ()
    knowledge: Any = None

    @classmethod
    def from_dict(cls, row: dict) -> "ActionDescriptor":
        return cls(
            id=str(row.get("_id") or row.get("id") or ""),
            path=row.get("path") or "",
            title=row.get("title") or "",
            tags=tuple(row.get("tags") or ()),
            knowledge=row.get("knowledge"),
        )

    def summary(self) -> dict:
        return {"id": self.id, "title": self.title, "tags": list(self.tags)}


@dataclass(frozen=True)
class ConnectionRef:
    """A stored credential binding a user to a platform"""
    key: str
    platform: str
    active: bool = False

    @classmethod
    def from_dict(cls, row: dict) -> "ConnectionRef":
        return cls(
            key=row.get("key", ""),
            platform=row.get("platform", ""),
            active=bool(row.get("active", False)),
        )

    def to_dict(self) -> dict:
        return {"key": self.key, "platform": self.platform, "active": self.active}


@dataclass(frozen=True)
class ConnectorDefinition:
    """A connector Pica offers, whether or not the user connected it"""
    name: str
    platform: str
    key: str = ""
    description: str = ""
    category: str = ""
    image: str = ""
    tags: Tuple[str, ...] = ()
    active: bool = True
    deprecated: bool = False

    @classmethod
    def from_dict(cls, row: dict) -> "ConnectorDefinition":
        return cls(
            name=row.get("name", ""),
            platform=row.get("platform", ""),
            key=row.get("key", ""),
            description=row.get("description", ""),
            category=row.get("category", ""),
            image=row.get("image", ""),
            tags=tuple(row.get("tags") or ()),
            active=bool(row.get("active", True)),
            deprecated=bool(row.get("deprecated", False)),
        )


@dataclass
class InvocationRequest:
    """Caller intent for a single passthrough call

    Args:
        action_id: Action to route the request to
        connection_key: Connection whose credential Pica should use
        method: HTTP verb, case-insensitive
        path: Path template, usually the action's own path
        data: Raw request data (object, array or scalar)
        path_variables: Explicit values for ``{{name}}`` placeholders
        query_params: Query parameters sent verbatim
        headers: Extra headers, merged after the generated ones
        is_form_data: Send data as multipart/form-data
        is_form_url_encoded: Send data as application/x-www-form-urlencoded
    """
    action_id: str
    connection_key: str
    method: str
    path: str
    data: Any = None
    path_variables: Optional[Dict[str, Any]] = None
    query_params: Optional[Dict[str, Any]] = None
    headers: Optional[Dict[str, Any]] = None
    is_form_data: bool = False
    is_form_url_encoded: bool = False

    @property
    def encoding(self) -> BodyEncoding:
        if self.is_form_data and self.is_form_url_encoded:
            raise InvalidInvocation("isFormData and isFormUrlEncoded cannot both be set")
        if self.is_form_data:
            return BodyEncoding.MULTIPART
        if self.is_form_url_encoded:
            return BodyEncoding.URLENCODED
        return BodyEncoding.JSON


@dataclass(frozen=True)
class EncodedBody:
    """Request body in the representation matching its encoding

    ``content`` is the JSON value for JSON bodies, the url-encoded string for
    url-encoded bodies and the ordered list of text fields for multipart.
    """
    encoding: BodyEncoding
    content: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    boundary: Optional[str] = None

    def multipart_writer(self) -> aiohttp.MultipartWriter:
        writer = aiohttp.MultipartWriter("form-data", boundary=self.boundary)
        for name, value in self.content or []:
            part = writer.append(value)
            part.set_content_disposition("form-data", name=name)
        return writer

    def request_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for ``aiohttp.ClientSession.request``"""
        if self.encoding is BodyEncoding.MULTIPART:
            return {"data": self.multipart_writer()}
        if self.encoding is BodyEncoding.URLENCODED:
            return {"data": self.content}
        if self.content is None:
            return {}
        return {"data": json.dumps(self.content)}

    def display(self) -> Any:
        if self.encoding is BodyEncoding.MULTIPART:
            return dict(self.content or [])
        return self.content


@dataclass(frozen=True)
class RequestDescriptor:
    """A fully-formed passthrough request

    Args:
        url: Absolute passthrough URL
        method: HTTP verb as given by the caller
        headers: Final merged headers
        params: Query parameters, not yet encoded
        body: Encoded body, ``None`` for GET requests
    """
    url: str
    method: str
    headers: Dict[str, str]
    params: Optional[Dict[str, Any]] = None
    body: Optional[EncodedBody] = None

    def to_dict(self) -> dict:
        config = {
            "url": self.url,
            "method": self.method,
            "headers": dict(self.headers),
            "params": copy.deepcopy(self.params),
        }
        if self.body is not None:
            config["encoding"] = self.body.encoding.name.lower()
            config["data"] = copy.deepcopy(self.body.display())
        return config

    def sanitized(self) -> "RequestDescriptor":
        """Copy safe to display: the secret header holds a placeholder"""
        headers = {
            name: SECRET_PLACEHOLDER if name.lower() == SECRET_HEADER else value
            for name, value in self.headers.items()
        }
        return replace(self, headers=headers)


__all__ = [
    "SECRET_HEADER",
    "CONNECTION_KEY_HEADER",
    "ACTION_ID_HEADER",
    "CONTENT_TYPE_HEADER",
    "SECRET_ENV_VAR",
    "SECRET_PLACEHOLDER",
    "BodyEncoding",
    "PayloadKind",
    "Payload",
    "stringify",
    "query_string_params",
    "ActionDescriptor",
    "ConnectionRef",
    "ConnectorDefinition",
    "InvocationRequest",
    "EncodedBody",
    "RequestDescriptor",
]

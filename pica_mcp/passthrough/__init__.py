"""Pica passthrough package.

This package provides the request-construction engine that turns Pica
actions into passthrough HTTP requests, and the MCP server that exposes it
as tools.
"""

from .catalog import PicaCatalog
from .core import PicaMCPServer, build_pica_mcp_server
from .dispatcher import PassthroughDispatcher
from .errors import (
    ActionNotFound,
    CatalogUnavailable,
    InvalidInvocation,
    MissingPathVariable,
    MissingPathVariables,
    PassthroughError,
    UnknownConnection,
    UpstreamRequestFailed,
)
from .models import (
    ActionDescriptor,
    BodyEncoding,
    ConnectionRef,
    ConnectorDefinition,
    InvocationRequest,
    Payload,
    RequestDescriptor,
)

__all__ = [
    "PicaCatalog",
    "PicaMCPServer",
    "build_pica_mcp_server",
    "PassthroughDispatcher",
    "PassthroughError",
    "InvalidInvocation",
    "MissingPathVariable",
    "MissingPathVariables",
    "UnknownConnection",
    "ActionNotFound",
    "UpstreamRequestFailed",
    "CatalogUnavailable",
    "ActionDescriptor",
    "BodyEncoding",
    "ConnectionRef",
    "ConnectorDefinition",
    "InvocationRequest",
    "Payload",
    "RequestDescriptor",
]

"""Errors raised while building or sending passthrough requests.

Every error derives from PassthroughError so the dispatcher can turn any
engine failure into a ``{"success": False, "error": ...}`` envelope.
"""

import json
from typing import Any, Iterable, Optional


class PassthroughError(Exception):
    """Base class for request-construction and upstream failures"""


class InvalidInvocation(PassthroughError):
    """The caller's arguments are incomplete or contradictory"""


class MissingPathVariable(PassthroughError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Missing value for path variable: {name}")


class MissingPathVariables(PassthroughError):
    def __init__(self, names: Iterable[str]):
        self.names = list(names)
        super().__init__(
            f"Missing required path variables: {', '.join(self.names)}. "
            "Please provide values for these variables."
        )


class UnknownConnection(PassthroughError):
    def __init__(self, platform: str, connection_key: Optional[str] = None):
        self.platform = platform
        self.connection_key = connection_key
        super().__init__(f"Connection not found. Please add a {platform} connection first.")


class ActionNotFound(PassthroughError):
    def __init__(self, action_id: str):
        self.action_id = action_id
        super().__init__(f"Action with ID {action_id} not found")


class UpstreamRequestFailed(PassthroughError):
    """Pica answered with a non-2xx status or could not be reached

    Args:
        message: Local description of the failure
        status: HTTP status, ``None`` for network errors
        payload: Decoded upstream response body, if any
    """

    def __init__(self, message: str, status: Optional[int] = None, payload: Any = None):
        self.message = message
        self.status = status
        self.payload = payload
        super().__init__(message)

    def __str__(self) -> str:
        if self.payload is None or self.payload == "":
            return self.message
        return f"{self.message} - Server responded with: {json.dumps(self.payload)}"


class CatalogUnavailable(PassthroughError):
    """The Pica catalog could not be reached at all"""


__all__ = [
    "PassthroughError",
    "InvalidInvocation",
    "MissingPathVariable",
    "MissingPathVariables",
    "UnknownConnection",
    "ActionNotFound",
    "UpstreamRequestFailed",
    "CatalogUnavailable",
]

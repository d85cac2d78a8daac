"""Access to the user's Pica connections and the action catalog.

PicaCatalog owns the only cross-call state in the server: the cached list of
connections and connector definitions. It is created once and handed to the
dispatcher, which only ever reads snapshots of it.
"""

import asyncio
import json
import logging
import time
from typing import Any, Dict, List, Optional

import aiohttp

from .assembler import base_headers
from .errors import ActionNotFound, CatalogUnavailable, InvalidInvocation, UpstreamRequestFailed
from .models import ActionDescriptor, ConnectionRef, ConnectorDefinition

DEFAULT_BASE_URL = "https://api.picaos.com"

CONNECTIONS_LIMIT = 300
CONNECTORS_LIMIT = 500
ACTIONS_LIMIT = 1000


async def read_response(response: aiohttp.ClientResponse) -> Any:
    """Response body as decoded JSON when it is JSON, else as text, None when empty"""
    text = await response.text(errors="replace")
    if not text:
        return None
    if response.content_type and "json" in response.content_type:
        try:
            return json.loads(text)
        except ValueError:
            return text
    return text


class PicaCatalog:
    """Cached view of Pica connections, connectors and actions

    Connections and connector definitions are fetched on first use and kept
    until ``refresh()`` is called or ``ttl`` seconds have passed. Actions are
    always fetched live.

    Args:
        secret: Pica secret sent in the ``x-pica-secret`` header
        base_url: Pica API base URL
        ttl: Seconds before cached lists are considered stale, None to keep them
        timeout: Total timeout for each catalog request in seconds
    """

    def __init__(self, secret: str, base_url: str = DEFAULT_BASE_URL, ttl: Optional[float] = None,
                 timeout: Optional[float] = None):
        self.secret = secret
        self.base_url = base_url.rstrip("/")
        self.ttl = ttl
        self.timeout = timeout
        self._connections: List[ConnectionRef] = []
        self._definitions: List[ConnectorDefinition] = []
        self._loaded_at: Optional[float] = None
        self._lock = asyncio.Lock()
        logging.info(f"[Catalog] Initialized catalog for {self.base_url}")

    @property
    def initialized(self) -> bool:
        return self._loaded_at is not None

    def is_stale(self) -> bool:
        if self._loaded_at is None:
            return True
        if self.ttl is None:
            return False
        return time.monotonic() - self._loaded_at >= self.ttl

    def connections(self) -> List[ConnectionRef]:
        """Snapshot of the cached connections"""
        return list(self._connections)

    def connection_definitions(self) -> List[ConnectorDefinition]:
        """Snapshot of the cached connector definitions"""
        return list(self._definitions)

    def find_connection(self, connection_key: str) -> Optional[ConnectionRef]:
        return next((conn for conn in self._connections if conn.key == connection_key), None)

    async def ensure_initialized(self) -> None:
        """Load both cached lists unless a fresh copy is already held"""
        if not self.is_stale():
            return
        async with self._lock:
            if self.is_stale():
                await self._load()

    async def refresh(self) -> None:
        """Reload connections and connector definitions"""
        async with self._lock:
            await self._load()

    async def _load(self) -> None:
        await asyncio.gather(self._load_connections(), self._load_definitions())
        self._loaded_at = time.monotonic()

    async def _load_connections(self) -> None:
        try:
            await self.refresh_connections()
        except (UpstreamRequestFailed, CatalogUnavailable) as e:
            logging.warning(f"[Catalog] Failed to initialize connections: {e}")
            self._connections = []

    async def _load_definitions(self) -> None:
        try:
            rows = await self._get_rows("/v1/available-connectors", {"limit": CONNECTORS_LIMIT})
            self._definitions = [ConnectorDefinition.from_dict(row) for row in rows]
            logging.info(f"[Catalog] Loaded {len(self._definitions)} connector definitions")
        except (UpstreamRequestFailed, CatalogUnavailable) as e:
            logging.warning(f"[Catalog] Failed to initialize connection definitions: {e}")
            self._definitions = []

    async def refresh_connections(self) -> List[ConnectionRef]:
        """Fetch the user's connections, replacing the cached list

        Raises:
            UpstreamRequestFailed: If Pica answers with a non-2xx status
            CatalogUnavailable: If Pica cannot be reached
        """
        rows = await self._get_rows("/v1/vault/connections", {"limit": CONNECTIONS_LIMIT})
        self._connections = [ConnectionRef.from_dict(row) for row in rows]
        logging.info(f"[Catalog] Loaded {len(self._connections)} connections")
        return self.connections()

    async def list_actions_for_platform(self, platform: str) -> List[ActionDescriptor]:
        """Fetch the supported actions of a platform"""
        if not platform:
            raise InvalidInvocation("Platform name is required")
        params = {"supported": "true", "connectionPlatform": platform, "limit": ACTIONS_LIMIT}
        try:
            rows = await self._get_rows("/v1/knowledge", params)
        except UpstreamRequestFailed as e:
            raise UpstreamRequestFailed(f"Failed to fetch available actions: {e.message}", e.status, e.payload) from e
        return [ActionDescriptor.from_dict(row) for row in rows]

    async def get_action_by_id(self, action_id: str) -> ActionDescriptor:
        """Fetch one action with its knowledge

        Raises:
            ActionNotFound: If Pica has no action with this id
        """
        if not action_id:
            raise InvalidInvocation("Action ID is required")
        try:
            rows = await self._get_rows("/v1/knowledge", {"_id": action_id})
        except UpstreamRequestFailed as e:
            raise UpstreamRequestFailed(f"Failed to fetch action knowledge: {e.message}", e.status, e.payload) from e
        if not rows:
            raise ActionNotFound(action_id)
        return ActionDescriptor.from_dict(rows[0])

    async def _get_rows(self, path: str, params: Dict[str, Any]) -> List[dict]:
        url = f"{self.base_url}{path}"
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, params=params, headers=base_headers(self.secret)) as response:
                    if response.status < 200 or response.status >= 300:
                        raise UpstreamRequestFailed(f"{response.status} {response.reason}", response.status,
                                                    await read_response(response))
                    data = await response.json(content_type=None)
        except ValueError as e:
            raise UpstreamRequestFailed(f"Invalid JSON from {url}: {e}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise CatalogUnavailable(f"Could not reach Pica at {url}: {e}") from e

        if not isinstance(data, dict):
            return []
        return data.get("rows") or []


__all__ = [
    "DEFAULT_BASE_URL",
    "PicaCatalog",
    "read_response",
]

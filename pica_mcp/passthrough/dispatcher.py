"""Execution and code generation for Pica passthrough actions.

This module provides the PassthroughDispatcher class which turns an
InvocationRequest into a RequestDescriptor and then either sends it to Pica
or renders it as reviewable code. The public ``*_action*`` and listing
methods never raise engine errors: they return the ``success`` envelope the
MCP tools hand back to the agent.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from .assembler import assemble
from .catalog import DEFAULT_BASE_URL, PicaCatalog, read_response
from .codegen import SECRET_NOTE, render_python_code, sanitized_config
from .encoding import encode
from .errors import InvalidInvocation, PassthroughError, UnknownConnection, UpstreamRequestFailed
from .models import InvocationRequest, Payload, RequestDescriptor, query_string_params
from .partition import partition


class PassthroughDispatcher:
    """Builds passthrough requests and executes or renders them

    Args:
        catalog: Catalog used to validate connections and look up actions
        secret: Pica secret sent in the ``x-pica-secret`` header
        base_url: Pica API base URL
        timeout: Total timeout for executed requests, None for no limit
    """

    def __init__(self, catalog: PicaCatalog, secret: str, base_url: str = DEFAULT_BASE_URL,
                 timeout: Optional[float] = None):
        self.catalog = catalog
        self.secret = secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        logging.info(f"[Dispatcher] Initialized dispatcher for {self.base_url}")

    def build_request(self, invocation: InvocationRequest, boundary: Optional[str] = None) -> RequestDescriptor:
        """Partition, resolve, encode and assemble an invocation

        Raises:
            InvalidInvocation: If required fields are missing or flags conflict
            MissingPathVariables: If the path template cannot be resolved
        """
        for name, value in (("actionId", invocation.action_id),
                            ("connectionKey", invocation.connection_key),
                            ("method", invocation.method)):
            if not value:
                raise InvalidInvocation(f"`{name}` is required")

        encoding = invocation.encoding
        parts = partition(
            invocation.path,
            Payload.wrap(invocation.data),
            invocation.path_variables,
            invocation.query_params,
        )
        body = encode(parts.payload, encoding, boundary=boundary)

        return assemble(
            self.base_url,
            parts.path,
            invocation.method,
            invocation.connection_key,
            invocation.action_id,
            self.secret,
            headers=invocation.headers,
            query_params=parts.query_params,
            body=body,
        )

    async def execute(self, invocation: InvocationRequest) -> Dict[str, Any]:
        """Send the invocation to Pica and return the upstream payload

        Returns:
            Dict with ``result`` and a ``requestConfig`` echo holding only
            header names

        Raises:
            UpstreamRequestFailed: On network errors and non-2xx responses
        """
        descriptor = self.build_request(invocation)
        logging.info(f"[Dispatcher] Executing {descriptor.method.upper()} {descriptor.url} "
                     f"(headers: {sorted(descriptor.headers)})")

        body_kwargs = descriptor.body.request_kwargs() if descriptor.body is not None else {}
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    descriptor.method.upper(),
                    descriptor.url,
                    headers=descriptor.headers,
                    params=query_string_params(descriptor.params),
                    **body_kwargs,
                ) as response:
                    data = await read_response(response)
                    status = response.status
                    if response.status < 200 or response.status >= 300:
                        logging.warning(f"[Dispatcher] Passthrough returned {response.status} for "
                                        f"action '{invocation.action_id}'")
                        raise UpstreamRequestFailed(
                            f"Request failed with status code {response.status}", response.status, data)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logging.error(f"[Dispatcher] Passthrough request for action '{invocation.action_id}' failed: {e}")
            raise UpstreamRequestFailed(str(e) or type(e).__name__) from e

        logging.info(f"[Dispatcher] Action '{invocation.action_id}' returned {status}")
        return {
            "result": data,
            "requestConfig": {
                "method": invocation.method,
                "path": invocation.path,
                "headers": list(descriptor.headers),
            },
        }

    async def generate(self, platform: str, invocation: InvocationRequest) -> Dict[str, Any]:
        """Build the request without sending it and render it as code

        Raises:
            UnknownConnection: If the connection key is not in the user's account
        """
        await self.catalog.ensure_initialized()
        if self.catalog.find_connection(invocation.connection_key) is None:
            await self.catalog.refresh_connections()
            if self.catalog.find_connection(invocation.connection_key) is None:
                raise UnknownConnection(platform, invocation.connection_key)

        descriptor = self.build_request(invocation)
        logging.info(f"[Dispatcher] Generated request config for action '{invocation.action_id}' "
                     f"({descriptor.method.upper()} {descriptor.url})")
        return {
            "requestConfig": sanitized_config(descriptor, self.secret),
            "pythonCode": render_python_code(descriptor, self.secret),
            "note": f"IMPORTANT: {SECRET_NOTE}",
        }

    async def list_connections_and_connectors(self) -> Dict[str, Any]:
        try:
            await self.catalog.ensure_initialized()
            await self.catalog.refresh_connections()
        except PassthroughError as e:
            logging.warning(f"[Dispatcher] Using cached connections: {e}")

        active = [conn for conn in self.catalog.connections() if conn.active]
        return {
            "success": True,
            "connections": [conn.to_dict() for conn in active],
            "availablePicaConnectors": [
                {"title": connector.name, "platform": connector.platform, "image": connector.image}
                for connector in self.catalog.connection_definitions()
            ],
            "message": f"Found {len(active)} active connections in your Pica account.",
        }

    async def get_available_actions(self, platform: str) -> Dict[str, Any]:
        try:
            actions = await self.catalog.list_actions_for_platform(platform)
        except PassthroughError as e:
            logging.error(f"[Dispatcher] Error fetching actions for '{platform}': {e}")
            return {"success": False, "error": str(e)}
        return {
            "success": True,
            "platform": platform,
            "actions": [action.summary() for action in actions],
        }

    async def get_action_knowledge(self, action_id: str) -> Dict[str, Any]:
        try:
            action = await self.catalog.get_action_by_id(action_id)
        except PassthroughError as e:
            logging.error(f"[Dispatcher] Error fetching knowledge for '{action_id}': {e}")
            return {"success": False, "error": str(e)}
        return {
            "success": True,
            "action": {
                "id": action.id,
                "title": action.title,
                "knowledge": action.knowledge,
                "path": action.path,
            },
        }

    async def execute_action(self, invocation: InvocationRequest) -> Dict[str, Any]:
        try:
            result = await self.execute(invocation)
        except PassthroughError as e:
            return {"success": False, "error": str(e)}
        return {"success": True, **result}

    async def generate_action_config(self, platform: str, invocation: InvocationRequest) -> Dict[str, Any]:
        try:
            generated = await self.generate(platform, invocation)
        except PassthroughError as e:
            logging.warning(f"[Dispatcher] Failed to create request config: {e}")
            return {
                "success": False,
                "title": "Failed to create request config",
                "error": str(e),
            }
        return {
            "success": True,
            "title": "Request config returned",
            "message": "Request config returned without execution. "
                       "Use the Python code below to make the HTTP request.",
            **generated,
        }


__all__ = [
    "PassthroughDispatcher",
]

"""Core MCP server exposing Pica passthrough tools and resources.

This module provides the PicaMCPServer class which serves the tools built
around a PassthroughDispatcher and the ``pica-platform://`` and
``pica-connection://`` resources.
"""

import json
import logging
import urllib.parse
from typing import Dict, Optional

from google.adk.tools.function_tool import FunctionTool
from google.adk.tools.mcp_tool.conversion_utils import adk_to_mcp_tool_type
from mcp import types as mcp_types
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents

from .catalog import DEFAULT_BASE_URL, PicaCatalog
from .dispatcher import PassthroughDispatcher
from .tools import build_tools

PLATFORM_SCHEME = "pica-platform"
CONNECTION_SCHEME = "pica-connection"


class PicaMCPServer:
    """MCP server that serves Pica passthrough tools

    The server handles the MCP protocol (list_tools, call_tool, list_resources,
    read_resource) and delegates all Pica work to a PassthroughDispatcher.

    Args:
        dispatcher: PassthroughDispatcher the tools run against
        server_name: Name for the MCP server instance
    """

    def __init__(self, dispatcher: PassthroughDispatcher, server_name: str = "pica-mcp-server"):
        self.server_name = server_name
        self.server = Server(server_name)
        self.dispatcher = dispatcher
        self.tools: Dict[str, FunctionTool] = build_tools(dispatcher)
        self._setup_server()
        logging.info(f"[PicaMCP] Initialized MCP server '{server_name}'")

    def _setup_server(self) -> None:
        """Register the tool and resource handlers"""

        @self.server.list_tools()
        async def list_tools():
            return self.list_mcp_tools()

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict):
            return await self.call_tool(name, arguments)

        @self.server.list_resources()
        async def list_resources():
            return await self.list_resources()

        @self.server.read_resource()
        async def read_resource(uri):
            text = await self.read_resource(str(uri))
            return [ReadResourceContents(content=text, mime_type="application/json")]

    def list_mcp_tools(self) -> list:
        tool_list = []
        for tool in self.tools.values():
            try:
                tool_list.append(adk_to_mcp_tool_type(tool))
            except Exception as e:
                logging.error(f"[PicaMCP] Error converting tool {tool.name} to MCP type: {e}")
        logging.info(f"[PicaMCP] Returning {len(tool_list)} tools to MCP client")
        return tool_list

    async def call_tool(self, name: str, arguments: dict) -> list:
        # Only argument names are logged: values may hold credentials
        logging.info(f"[PicaMCP] Tool call: {name} with args: {sorted(arguments or {})}")
        try:
            if name not in self.tools:
                logging.warning(f"[PicaMCP] Tool '{name}' not found")
                return [mcp_types.TextContent(type="text", text=f"Tool '{name}' not found")]

            result = await self.tools[name].run_async(args=arguments or {}, tool_context=None)
            if isinstance(result, dict):
                logging.info(f"[PicaMCP] Tool '{name}' finished with success={result.get('success')}")
                text = json.dumps(result, indent=2, default=str)
            else:
                text = str(result)
            return [mcp_types.TextContent(type="text", text=text)]

        except Exception as e:
            logging.exception(f"[PicaMCP] Error executing tool '{name}': {e}")
            return [mcp_types.TextContent(
                type="text",
                text=json.dumps({"success": False, "error": f"Error executing tool: {e}"}, indent=2),
            )]

    async def list_resources(self) -> list:
        """One ``pica-platform://`` resource per platform with an active connection"""
        await self.dispatcher.catalog.ensure_initialized()
        platforms = sorted({conn.platform for conn in self.dispatcher.catalog.connections()
                            if conn.active and conn.platform})
        return [
            mcp_types.Resource(
                uri=f"{PLATFORM_SCHEME}://{urllib.parse.quote(platform)}",
                name=f"{platform} actions",
                description=f"Actions available for {platform}",
                mimeType="application/json",
            )
            for platform in platforms
        ]

    async def read_resource(self, uri: str) -> str:
        """Return the JSON text behind a Pica resource URI

        Raises:
            ValueError: If the scheme is unsupported or the connection is unknown
        """
        parts = urllib.parse.urlsplit(uri)
        catalog = self.dispatcher.catalog

        if parts.scheme == PLATFORM_SCHEME:
            platform = urllib.parse.unquote(parts.netloc)
            actions = await catalog.list_actions_for_platform(platform)
            return json.dumps([action.summary() for action in actions], indent=2)

        if parts.scheme == CONNECTION_SCHEME:
            platform = urllib.parse.unquote(parts.netloc)
            key = urllib.parse.unquote(parts.path.lstrip("/"))
            await catalog.ensure_initialized()
            connection = next((conn for conn in catalog.connections()
                               if conn.key == key and conn.platform == platform), None)
            if connection is None:
                raise ValueError(f"Connection not found for {platform} with key {key}")
            return json.dumps(connection.to_dict(), indent=2)

        raise ValueError(f"Unsupported resource URI scheme: {parts.scheme}:")

    def get_server(self) -> Server:
        """Get the configured MCP server instance

        Returns:
            The underlying MCP Server instance
        """
        return self.server


def build_pica_mcp_server(secret: str, base_url: str = DEFAULT_BASE_URL, catalog_ttl: Optional[float] = None,
                          request_timeout: Optional[float] = None) -> PicaMCPServer:
    """Wire a catalog, a dispatcher and the MCP server together"""
    catalog = PicaCatalog(secret, base_url, ttl=catalog_ttl, timeout=request_timeout)
    dispatcher = PassthroughDispatcher(catalog, secret, base_url, timeout=request_timeout)
    return PicaMCPServer(dispatcher)


__all__ = [
    "PLATFORM_SCHEME",
    "CONNECTION_SCHEME",
    "PicaMCPServer",
    "build_pica_mcp_server",
]

"""Agent-facing tool functions.

Each function's name, signature and docstring become the MCP tool's name,
input schema and description once wrapped in a FunctionTool, so argument
names follow the camelCase the agent sees.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from google.adk.tools.function_tool import FunctionTool

from .dispatcher import PassthroughDispatcher
from .models import InvocationRequest


def build_tool_functions(dispatcher: PassthroughDispatcher) -> List[Callable]:
    """Create the tool coroutines bound to ``dispatcher``"""

    async def list_user_connections_and_available_connectors() -> dict:
        """List all available connectors offered by Pica and connections in the user's Pica account"""
        return await dispatcher.list_connections_and_connectors()

    async def get_available_actions(platform: str) -> dict:
        """Get available actions for a specific platform

        Args:
            platform: Platform name
        """
        return await dispatcher.get_available_actions(platform)

    async def get_action_knowledge(actionId: str) -> dict:
        """Get detailed information about a specific action

        Args:
            actionId: ID of the action
        """
        return await dispatcher.get_action_knowledge(actionId)

    async def execute_action(
        actionId: str,
        connectionKey: str,
        method: str,
        path: str,
        data: Any = None,
        pathVariables: Optional[dict] = None,
        queryParams: Optional[dict] = None,
        headers: Optional[dict] = None,
        isFormData: bool = False,
        isFormUrlEncoded: bool = False,
    ) -> dict:
        """Execute a specific action through the Pica passthrough API and return the live response

        Args:
            actionId: ID of the action to execute
            connectionKey: Key of the connection to use
            method: HTTP method (GET, POST, PUT, DELETE, etc.)
            path: API path, may contain {{variable}} placeholders
            data: Request data (for POST, PUT, etc.)
            pathVariables: Variables to replace in the path
            queryParams: Query parameters
            headers: Additional headers
            isFormData: Whether to send data as multipart/form-data
            isFormUrlEncoded: Whether to send data as application/x-www-form-urlencoded
        """
        invocation = InvocationRequest(
            action_id=actionId,
            connection_key=connectionKey,
            method=method,
            path=path,
            data=data,
            path_variables=pathVariables,
            query_params=queryParams,
            headers=headers,
            is_form_data=bool(isFormData),
            is_form_url_encoded=bool(isFormUrlEncoded),
        )
        return await dispatcher.execute_action(invocation)

    async def generate_action_config_knowledge(
        platform: str,
        action: dict,
        method: str,
        connectionKey: str,
        data: Any = None,
        pathVariables: Optional[dict] = None,
        queryParams: Optional[dict] = None,
        headers: Optional[dict] = None,
        isFormData: bool = False,
        isFormUrlEncoded: bool = False,
    ) -> dict:
        """Generate request configuration for an action using knowledge-based path handling, this is to be used when the user is asking you to write code.

        Args:
            platform: Platform name
            action: Action object with `_id` and `path` (the path template with variables)
            method: HTTP method (GET, POST, PUT, DELETE, etc.)
            connectionKey: Key of the connection to use
            data: Request data (for POST, PUT, etc.)
            pathVariables: Variables to replace in the path
            queryParams: Query parameters
            headers: Additional headers
            isFormData: Whether to send data as multipart/form-data
            isFormUrlEncoded: Whether to send data as application/x-www-form-urlencoded
        """
        action = action if isinstance(action, dict) else {}
        action_id = action.get("_id") or action.get("id")
        if not action_id or not action.get("path"):
            return {
                "success": False,
                "title": "Failed to create request config",
                "error": "`action` must contain `_id` and `path`",
            }
        invocation = InvocationRequest(
            action_id=str(action_id),
            connection_key=connectionKey,
            method=method,
            path=action["path"],
            data=data,
            path_variables=pathVariables,
            query_params=queryParams,
            headers=headers,
            is_form_data=bool(isFormData),
            is_form_url_encoded=bool(isFormUrlEncoded),
        )
        return await dispatcher.generate_action_config(platform, invocation)

    return [
        list_user_connections_and_available_connectors,
        get_available_actions,
        get_action_knowledge,
        execute_action,
        generate_action_config_knowledge,
    ]


def build_tools(dispatcher: PassthroughDispatcher) -> Dict[str, FunctionTool]:
    """Wrap every tool function in a FunctionTool, keyed by tool name"""
    tools = {}
    for function in build_tool_functions(dispatcher):
        tool = FunctionTool(function)
        tools[tool.name] = tool
    logging.info(f"[PicaTools] Built tools: {list(tools)}")
    return tools


__all__ = [
    "build_tool_functions",
    "build_tools",
]

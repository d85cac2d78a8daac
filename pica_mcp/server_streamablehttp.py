import contextlib
import logging
import sys
from collections.abc import AsyncIterator

from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route
from starlette.types import Receive, Scope, Send

from pica_mcp.config import ConfigurationError, configure_logging, load_settings
from pica_mcp.passthrough import InvocationRequest, PicaMCPServer, build_pica_mcp_server


def _pica(request: Request) -> PicaMCPServer:
    return request.app.state.pica


def invocation_from_json(body: dict) -> InvocationRequest:
    """Create an InvocationRequest from a JSON request body

    The action may be given as ``actionId`` and ``path`` or as an ``action``
    object with ``_id`` and ``path``, the shape the generate tool takes.

    Raises:
        KeyError: If a required key is missing
    """
    action = body.get("action") or {}
    action_id = body.get("actionId") or action.get("_id") or action.get("id")
    if not action_id:
        raise KeyError("actionId")
    return InvocationRequest(
        action_id=str(action_id),
        connection_key=body["connectionKey"],
        method=body["method"],
        path=body.get("path") or action.get("path", ""),
        data=body.get("data"),
        path_variables=body.get("pathVariables"),
        query_params=body.get("queryParams"),
        headers=body.get("headers"),
        is_form_data=bool(body.get("isFormData")),
        is_form_url_encoded=bool(body.get("isFormUrlEncoded")),
    )


async def health_handler(request: Request) -> JSONResponse:
    """Health check endpoint"""
    pica = _pica(request)
    return JSONResponse({
        "status": "healthy",
        "server": pica.server_name,
        "catalog_initialized": pica.dispatcher.catalog.initialized,
        "tools_count": len(pica.tools),
    })


async def info_handler(request: Request) -> JSONResponse:
    pica = _pica(request)
    return JSONResponse({
        "name": pica.server_name,
        "baseUrl": pica.dispatcher.base_url,
        "tools": list(pica.tools),
    })


async def connections_handler(request: Request) -> JSONResponse:
    result = await _pica(request).dispatcher.list_connections_and_connectors()
    return JSONResponse(result)


async def actions_handler(request: Request) -> JSONResponse:
    platform = request.path_params.get("platform")
    result = await _pica(request).dispatcher.get_available_actions(platform)
    return JSONResponse(result, status_code=200 if result["success"] else 502)


async def _read_invocation(request: Request):
    try:
        body = await request.json()
        return body, invocation_from_json(body), None
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        logging.warning(f"[PicaHTTP] Invalid invocation body: {e}")
        return None, None, JSONResponse({
            "success": False,
            "error": f"Invalid request body: {e}",
        }, status_code=400)


async def execute_handler(request: Request) -> JSONResponse:
    """Execute an action through the passthrough API

    Args:
        request: Starlette request whose JSON body uses the execute_action argument names

    Returns:
        JSON response with the execution envelope
    """
    _, invocation, error = await _read_invocation(request)
    if error is not None:
        return error
    result = await _pica(request).dispatcher.execute_action(invocation)
    return JSONResponse(result, status_code=200 if result["success"] else 502)


async def generate_handler(request: Request) -> JSONResponse:
    """Generate a request config and code sample without executing it"""
    body, invocation, error = await _read_invocation(request)
    if error is not None:
        return error
    result = await _pica(request).dispatcher.generate_action_config(body.get("platform", ""), invocation)
    return JSONResponse(result, status_code=200 if result["success"] else 400)


def create_app(pica: PicaMCPServer, session_manager: StreamableHTTPSessionManager = None,
               host: str = "0.0.0.0", port: int = 8080) -> Starlette:
    """Build the Starlette app serving MCP at ``/`` and the REST helper routes"""
    routes = [
        Route("/health", health_handler, methods=["GET"]),
        Route("/info", info_handler, methods=["GET"]),
        Route("/connections", connections_handler, methods=["GET"]),
        Route("/actions/{platform}", actions_handler, methods=["GET"]),
        Route("/execute", execute_handler, methods=["POST"]),
        Route("/generate", generate_handler, methods=["POST"]),
    ]

    lifespan = None
    if session_manager is not None:
        async def handle_streamable_http(scope: Scope, receive: Receive, send: Send) -> None:
            """Handle MCP protocol requests via streamable HTTP"""
            await session_manager.handle_request(scope, receive, send)

        @contextlib.asynccontextmanager
        async def lifespan(app: Starlette) -> AsyncIterator[None]:
            """Context manager for session manager lifecycle"""
            async with session_manager.run():
                logging.info(f"[PicaHTTP] Pica MCP Server started on {host}:{port}")
                logging.info("[PicaHTTP] Available endpoints:")
                logging.info(f"[PicaHTTP]   - POST http://{host}:{port}/ (MCP protocol)")
                logging.info(f"[PicaHTTP]   - GET http://{host}:{port}/health (Health check)")
                logging.info(f"[PicaHTTP]   - GET http://{host}:{port}/info (Server info)")
                logging.info(f"[PicaHTTP]   - GET http://{host}:{port}/connections (Connections)")
                logging.info(f"[PicaHTTP]   - GET http://{host}:{port}/actions/{{platform}} (Actions)")
                logging.info(f"[PicaHTTP]   - POST http://{host}:{port}/execute (Execute action)")
                logging.info(f"[PicaHTTP]   - POST http://{host}:{port}/generate (Generate request config)")
                logging.info(f"[PicaHTTP]   - Tools: {list(pica.tools)}")
                try:
                    yield
                finally:
                    logging.info("[PicaHTTP] Pica MCP Server shutting down...")

        routes.append(Mount("/", app=handle_streamable_http))

    app = Starlette(routes=routes, lifespan=lifespan)
    app.state.pica = pica
    return app


def main() -> None:
    """Start the Pica MCP streamable HTTP server"""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        configure_logging()
        logging.error(f"[PicaHTTP] {e}")
        sys.exit(1)
    configure_logging(settings.log_level)

    pica = build_pica_mcp_server(
        settings.secret,
        settings.base_url,
        catalog_ttl=settings.catalog_ttl,
        request_timeout=settings.request_timeout,
    )

    session_manager = StreamableHTTPSessionManager(
        app=pica.get_server(),
        event_store=None,
        json_response=True,
        stateless=True,
    )

    starlette_app = create_app(pica, session_manager, settings.host, settings.port)

    import uvicorn
    uvicorn.run(starlette_app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()

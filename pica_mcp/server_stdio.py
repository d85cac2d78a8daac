import asyncio
import logging
import sys

from mcp.server.stdio import stdio_server

from pica_mcp.config import ConfigurationError, Settings, configure_logging, load_settings
from pica_mcp.passthrough import build_pica_mcp_server


async def serve(settings: Settings) -> None:
    pica = build_pica_mcp_server(
        settings.secret,
        settings.base_url,
        catalog_ttl=settings.catalog_ttl,
        request_timeout=settings.request_timeout,
    )
    server = pica.get_server()

    async with stdio_server() as (read_stream, write_stream):
        logging.info(f"[PicaStdio] Serving tools {list(pica.tools)} over stdio")
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    """Start the Pica MCP server on stdin/stdout"""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        configure_logging()
        logging.error(f"[PicaStdio] {e}")
        sys.exit(1)
    configure_logging(settings.log_level)
    asyncio.run(serve(settings))


if __name__ == "__main__":
    main()

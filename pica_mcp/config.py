"""Environment configuration for the Pica MCP servers."""

import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

from pica_mcp.passthrough.catalog import DEFAULT_BASE_URL


class ConfigurationError(Exception):
    pass


@dataclass
class Settings:
    """Runtime settings read from the environment

    Args:
        secret: Pica secret (PICA_SECRET)
        base_url: Pica API base URL (PICA_BASE_URL)
        host: Interface the HTTP server binds to (HOST)
        port: Port the HTTP server listens on (PORT)
        request_timeout: Total timeout in seconds for upstream calls (PICA_REQUEST_TIMEOUT)
        catalog_ttl: Seconds before cached connections are refetched (PICA_CATALOG_TTL)
        log_level: Logging level name (PICA_LOG_LEVEL)
    """
    secret: str
    base_url: str = DEFAULT_BASE_URL
    host: str = "0.0.0.0"
    port: int = 8080
    request_timeout: Optional[float] = None
    catalog_ttl: Optional[float] = None
    log_level: str = "INFO"


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}")


def load_settings() -> Settings:
    """Read Settings from the environment

    Raises:
        ConfigurationError: If PICA_SECRET is missing or a number is malformed
    """
    secret = os.getenv("PICA_SECRET")
    if not secret:
        raise ConfigurationError("PICA_SECRET environment variable is required")

    try:
        port = int(os.getenv("PORT", 8080))
    except ValueError:
        raise ConfigurationError(f"PORT must be an integer, got {os.getenv('PORT')!r}")

    return Settings(
        secret=secret,
        base_url=os.getenv("PICA_BASE_URL") or DEFAULT_BASE_URL,
        host=os.getenv("HOST", "0.0.0.0"),
        port=port,
        request_timeout=_optional_float("PICA_REQUEST_TIMEOUT"),
        catalog_ttl=_optional_float("PICA_CATALOG_TTL"),
        log_level=os.getenv("PICA_LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    # stderr keeps stdout free for the stdio transport
    logging.basicConfig(stream=sys.stderr, level=getattr(logging, level, logging.INFO),
                        format='[%(levelname)s] %(message)s')


__all__ = [
    "ConfigurationError",
    "Settings",
    "load_settings",
    "configure_logging",
]

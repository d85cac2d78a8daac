"""Rendering of reviewable code samples from request descriptors.

Rendering is a pure function of a sanitized RequestDescriptor: nothing here
touches the network and the configured secret never reaches the output.
"""

import pprint
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader

from .models import (
    CONTENT_TYPE_HEADER,
    SECRET_ENV_VAR,
    SECRET_HEADER,
    SECRET_PLACEHOLDER,
    RequestDescriptor,
)

TEMPLATE_DIR = Path(__file__).parent / "templates"

SECRET_NOTE = f"For the Pica secret always use the environment variable {SECRET_ENV_VAR}."

_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
)


def redact(value: Any, secret: Optional[str]) -> Any:
    """Replace every literal occurrence of ``secret`` inside ``value``"""
    if not secret:
        return value
    if isinstance(value, str):
        return value.replace(secret, SECRET_PLACEHOLDER)
    if isinstance(value, dict):
        return {redact(key, secret): redact(item, secret) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [redact(item, secret) for item in value]
    return value


def sanitized_config(descriptor: RequestDescriptor, secret: Optional[str] = None) -> dict:
    """Request config safe to show: secret header and any stray copies replaced"""
    return redact(descriptor.sanitized().to_dict(), secret)


def render_python_code(descriptor: RequestDescriptor, secret: Optional[str] = None) -> str:
    """Render an aiohttp script that performs the described request

    Args:
        descriptor: Request to render, sanitized or not
        secret: Value to scrub from the output in addition to the secret header

    Returns:
        Python source reading the secret from the environment at run time
    """
    config = sanitized_config(descriptor, secret)
    content_type_header = next(
        (name for name in config["headers"] if name.lower() == CONTENT_TYPE_HEADER.lower()),
        CONTENT_TYPE_HEADER,
    )
    secret_header = next(
        (name for name in config["headers"] if name.lower() == SECRET_HEADER),
        SECRET_HEADER,
    )

    template = _env.get_template("aiohttp_request.py.j2")
    code = template.render(
        note=SECRET_NOTE,
        config=pprint.pformat(config, indent=4, sort_dicts=False),
        secret_header=repr(secret_header),
        env_var=repr(SECRET_ENV_VAR),
        content_type_header=repr(content_type_header),
        encoding=config.get("encoding") if "data" in config else None,
    )
    return redact(code, secret)


__all__ = [
    "SECRET_NOTE",
    "redact",
    "sanitized_config",
    "render_python_code",
]

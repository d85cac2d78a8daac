"""Resolution of ``{{name}}`` placeholders in action path templates."""

import re
import urllib.parse
from typing import Any, List, Mapping, Optional

from .errors import MissingPathVariable
from .models import stringify

PLACEHOLDER = re.compile(r"\{\{([^}]+)\}\}")

# Characters encodeURIComponent leaves alone on top of quote()'s defaults
_SAFE = "!*'()"


def is_missing(value: Any) -> bool:
    return value is None or value == ""


def template_variables(template: Optional[str]) -> List[str]:
    """Return the placeholder names in ``template``, in order of appearance"""
    if not template:
        return []
    names = []
    for match in PLACEHOLDER.finditer(template):
        name = match.group(1).strip()
        if name not in names:
            names.append(name)
    return names


def encode_segment(value: Any) -> str:
    return urllib.parse.quote(stringify(value), safe=_SAFE)


def resolve(template: Optional[str], variables: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Substitute every placeholder in ``template`` with its encoded value

    Args:
        template: Path template such as ``/users/{{userId}}/messages``
        variables: Values keyed by placeholder name

    Returns:
        The resolved path, or the template itself when it has no placeholders

    Raises:
        MissingPathVariable: If a placeholder has no usable value
    """
    if not template:
        return template

    variables = variables or {}
    encoded = {}
    for name in template_variables(template):
        value = variables.get(name)
        if is_missing(value):
            raise MissingPathVariable(name)
        encoded[name] = encode_segment(value)

    return PLACEHOLDER.sub(lambda match: encoded[match.group(1).strip()], template)


__all__ = [
    "PLACEHOLDER",
    "is_missing",
    "template_variables",
    "encode_segment",
    "resolve",
]

"""Split caller data between the URL path and the request body.

Identifiers that an action's path template needs are often passed inside the
request data. They are promoted to path variables and removed from the body
so they are not sent twice.
"""

from typing import Any, Dict, NamedTuple, Optional

from .errors import MissingPathVariables
from .models import Payload, PayloadKind
from .path_template import is_missing, resolve, template_variables


class PartitionResult(NamedTuple):
    path: Optional[str]
    payload: Optional[Payload]
    path_variables: Dict[str, Any]
    query_params: Optional[Dict[str, Any]]


def partition(
    path_template: Optional[str],
    payload: Optional[Payload],
    path_variables: Optional[Dict[str, Any]] = None,
    query_params: Optional[Dict[str, Any]] = None,
) -> PartitionResult:
    """Resolve the path, promoting record fields to path variables

    Args:
        path_template: Action path template
        payload: Request data; only record payloads are mined for values
        path_variables: Explicit path variables, these win over data fields
        query_params: Query parameters, passed through untouched

    Returns:
        PartitionResult with the resolved path, the remaining payload and the
        path variables actually used

    Raises:
        MissingPathVariables: Listing every placeholder without a value
    """
    explicit = dict(path_variables or {})
    required = template_variables(path_template)
    if not required:
        return PartitionResult(path_template, payload, explicit, query_params)

    is_record = payload is not None and payload.kind is PayloadKind.RECORD
    combined = {**(payload.fields if is_record else {}), **explicit}

    missing = [name for name in required if is_missing(combined.get(name))]
    if missing:
        raise MissingPathVariables(missing)

    final_variables = dict(explicit)
    if is_record:
        remaining = dict(payload.fields)
        for name in required:
            if is_missing(explicit.get(name)) and name in remaining:
                final_variables[name] = remaining.pop(name)
        payload = Payload(PayloadKind.RECORD, remaining)

    return PartitionResult(resolve(path_template, final_variables), payload, final_variables, query_params)


__all__ = [
    "PartitionResult",
    "partition",
]

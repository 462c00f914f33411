"""
Base utilities for the operations layer.

The operations layer contains pure functions (Sans-I/O) that handle
business logic without performing any network I/O.

Design principles:
- All functions are pure: same inputs always produce same outputs
- No network I/O - that's the client's responsibility
- Response processors transform parsed data into domain-friendly formats
"""
from __future__ import annotations

from typing import Any
from typing import Dict
from typing import List

NAMESPACES = (
    "{DAV:}",
    "{urn:ietf:params:xml:ns:caldav}",
    "{http://calendarserver.org/ns/}",
)


def as_list(value: Any) -> List[Any]:
    """
    Coerce a value that may be missing, single or multiple into a list.

    >>> as_list(None), as_list("a"), as_list(["a", "b"])
    ([], ['a'], ['a', 'b'])
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def get_property_value(
    properties: Dict[str, Any],
    prop_name: str,
    default: Any = None,
) -> Any:
    """
    Get a property value, handling both namespaced and simple keys.

    Tries the full namespaced key first, then the namespaces we know.

    Args:
        properties: Dict of property tag -> value
        prop_name: Property name (e.g., 'displayname' or '{DAV:}displayname')
        default: Default value if not found
    """
    if prop_name in properties:
        return properties[prop_name]

    for ns in NAMESPACES:
        full_key = f"{ns}{prop_name}"
        if full_key in properties:
            return properties[full_key]

    return default


def first_text(value: Any) -> str | None:
    """The first non-empty string of a value coerced to a list"""
    for item in as_list(value):
        if isinstance(item, str) and item.strip():
            return item.strip()
    return None

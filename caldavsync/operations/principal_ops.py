"""
Principal operations - Sans-I/O business logic for identity resolution.

Turning a base address into a user principal and a calendar home takes
two PROPFIND round trips; the functions here decide where to send the
first one and what to make of the answers.
"""
from __future__ import annotations

from typing import List
from urllib.parse import urlparse

from caldavsync.lib import error
from caldavsync.lib.url import strip_base_path
from caldavsync.operations.base import first_text
from caldavsync.operations.base import get_property_value
from caldavsync.protocol.types import PropfindResult

DEFAULT_DISCOVERY_PATH = "/"

## Providers that do not answer current-user-principal on the root
PROVIDER_DISCOVERY_PATHS = {
    "apidata.googleusercontent.com": "/caldav/v2/",
}


def discovery_path_for(base_url: str, override: str | None = None) -> str:
    """
    Where to ask for the current user principal.

    An explicit override wins, then the provider table, then the root.
    """
    if override:
        return override
    hostname = urlparse(base_url).hostname or ""
    return PROVIDER_DISCOVERY_PATHS.get(hostname.lower(), DEFAULT_DISCOVERY_PATH)


def _find_href(results: List[PropfindResult], prop_name: str) -> str | None:
    for result in results:
        if not result.ok:
            continue
        href = first_text(get_property_value(result.properties, prop_name))
        if href:
            return href
    return None


def process_principal_response(
    results: List[PropfindResult], base_url: str
) -> str:
    """
    Extract the user principal path from a current-user-principal
    PROPFIND.

    Raises:
        AuthenticationError: If the property is absent
    """
    href = _find_href(results, "current-user-principal")
    if not href:
        raise error.AuthenticationError(
            url=base_url,
            reason="Invalid credentials: Unable to authenticate with the server.",
        )
    return strip_base_path(href, base_url)


def process_calendar_home_response(
    results: List[PropfindResult], base_url: str, principal_url: str
) -> str:
    """
    Extract the calendar home path from a calendar-home-set PROPFIND.

    Raises:
        ParseError: If the property is absent
    """
    href = _find_href(results, "calendar-home-set")
    if not href:
        raise error.ParseError(
            url=principal_url, reason="no calendar-home-set found for principal"
        )
    return strip_base_path(href, base_url)

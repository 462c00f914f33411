"""
CalendarSet operations - Sans-I/O business logic for the calendar home.

Turns the Depth:1 PROPFIND on the calendar home into Calendar objects.
"""
from __future__ import annotations

import logging
from typing import List
from urllib.parse import unquote

from caldavsync.lib.url import normalize_href
from caldavsync.lib.url import qualify
from caldavsync.models import SUPPORTED_COMPONENTS
from caldavsync.models import Calendar
from caldavsync.operations.base import as_list
from caldavsync.operations.base import first_text
from caldavsync.operations.base import get_property_value
from caldavsync.protocol.types import PropfindResult

log = logging.getLogger("caldavsync")

CALENDAR_PROPS = [
    "resourcetype",
    "displayname",
    "getctag",
    "supported-calendar-component-set",
]

## A calendar is only interesting if it can hold one of these
ITEM_COMPONENTS = ("VEVENT", "VTODO")


def process_calendar_list(
    results: List[PropfindResult], home_url: str
) -> List[Calendar]:
    """
    Process the PROPFIND response of the calendar home into calendars.

    Resources whose property lookup failed, the home itself and
    collections that support neither events nor todos are left out.

    Args:
        results: Parsed PROPFIND results
        home_url: The URL the calendar home was queried at
    """
    calendars = []
    home = normalize_href(unquote(home_url)).rstrip("/")

    for result in results:
        if not result.ok:
            log.debug(f"skipping {result.href}, status {result.status}")
            continue
        if normalize_href(result.href).rstrip("/") == home:
            continue

        components = [
            str(c).upper()
            for c in as_list(
                get_property_value(result.properties, "supported-calendar-component-set")
            )
            if str(c).upper() in SUPPORTED_COMPONENTS
        ]
        if not any(c in components for c in ITEM_COMPONENTS):
            continue

        calendars.append(
            Calendar(
                display_name=first_text(
                    get_property_value(result.properties, "displayname")
                )
                or "",
                url=qualify(result.href, home_url),
                ctag=first_text(get_property_value(result.properties, "getctag")),
                supported_components=components,
            )
        )
    return calendars

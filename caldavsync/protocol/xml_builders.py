"""
Pure functions for building CalDAV XML request bodies.

All functions in this module are pure - they take data in and return XML out,
with no side effects or I/O.
"""
from datetime import date
from typing import Dict
from typing import List
from typing import Optional
from typing import Type

from lxml import etree

from caldavsync.elements import cdav
from caldavsync.elements import cs
from caldavsync.elements import dav
from caldavsync.elements.base import BaseElement
from caldavsync.lib import error

PROPERTY_ELEMENTS: Dict[str, Type[BaseElement]] = {
    "displayname": dav.DisplayName,
    "resourcetype": dav.ResourceType,
    "getetag": dav.GetEtag,
    "current-user-principal": dav.CurrentUserPrincipal,
    "calendar-data": cdav.CalendarData,
    "calendar-home-set": cdav.CalendarHomeSet,
    "supported-calendar-component-set": cdav.SupportedCalendarComponentSet,
    "getctag": cs.GetCtag,
}


def _serialize(root: BaseElement) -> bytes:
    return etree.tostring(root.xmlelement(), encoding="utf-8", xml_declaration=True)


def build_propfind_body(props: Optional[List[str]] = None) -> bytes:
    """
    Build PROPFIND request body XML.

    Args:
        props: Property names to retrieve, like "displayname" or
            "calendar-home-set".  Unknown names raise ValueError.

    Returns:
        UTF-8 encoded XML bytes
    """
    prop = dav.Prop()
    for name in props or []:
        try:
            cls = PROPERTY_ELEMENTS[name.lower().replace("_", "-")]
        except KeyError:
            raise ValueError(f"unknown property {name}")
        prop += cls()
    return _serialize(dav.Propfind() + prop)


def build_calendar_query_body(
    comp_type: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    expand: bool = False,
    include_data: bool = True,
) -> bytes:
    """
    Build calendar-query REPORT request body.

    Args:
        comp_type: Component to filter on (VEVENT, VTODO)
        start: Start of time range filter
        end: End of time range filter
        expand: Ask the server to expand recurring items into
            instances within start/end
        include_data: Request calendar-data.  Without it only the
            etag is requested, which is what the sync engine wants.

    Returns:
        UTF-8 encoded XML bytes
    """
    props: List[BaseElement] = [dav.GetEtag()]
    if include_data:
        data = cdav.CalendarData()
        if expand:
            if not start or not end:
                raise error.ValidationError(reason="can't expand without a date range")
            data += cdav.Expand(start, end)
        props.append(data)

    comp_filter = cdav.CompFilter(comp_type)
    if start or end:
        comp_filter += cdav.TimeRange(start, end)

    vcalendar = cdav.CompFilter("VCALENDAR") + comp_filter
    root = cdav.CalendarQuery() + [dav.Prop() + props, cdav.Filter() + vcalendar]
    return _serialize(root)


def build_calendar_multiget_body(hrefs: List[str]) -> bytes:
    """
    Build calendar-multiget REPORT request body.

    Used to retrieve multiple calendar objects by their URLs in a single request.

    Args:
        hrefs: List of calendar object URLs to retrieve

    Returns:
        UTF-8 encoded XML bytes
    """
    elements: List[BaseElement] = [dav.Prop() + [dav.GetEtag(), cdav.CalendarData()]]
    for href in hrefs:
        elements.append(dav.Href(href))
    return _serialize(cdav.CalendarMultiGet() + elements)

"""
Pure functions for parsing CalDAV XML responses.

All functions in this module are pure - they take XML bytes in and return
structured data out, with no side effects or I/O.

Values are normalized at this boundary: a property that may carry one
or several children (hrefs, components, resource types) always comes
out as a list, whatever the cardinality in the actual response.
"""
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple
from typing import Union
from urllib.parse import unquote
from urllib.parse import urlparse

from lxml import etree
from lxml.etree import _Element

from caldavsync.elements import cdav
from caldavsync.elements import dav
from caldavsync.lib import error

from .types import CalendarQueryResult
from .types import PropfindResult

## properties holding one or more DAV:href children
HREF_PROPERTIES = (dav.CurrentUserPrincipal.tag, cdav.CalendarHomeSet.tag)


def _parse_xml(body: bytes, huge_tree: bool = False) -> _Element:
    if not body:
        raise error.ParseError(reason="empty body where a multistatus was expected")
    parser = etree.XMLParser(remove_blank_text=True, huge_tree=huge_tree)
    try:
        return etree.fromstring(body, parser)
    except etree.XMLSyntaxError as e:
        raise error.ParseError(reason=f"invalid XML: {e}") from e


def parse_multistatus(body: bytes, huge_tree: bool = False) -> List[PropfindResult]:
    """
    Parse a 207 Multi-Status body into one PropfindResult per response.

    Resources where no propstat succeeded get the failing status and
    no properties; the caller decides whether to skip them.

    Raises:
        ParseError: If body is empty or not valid XML
    """
    tree = _parse_xml(body, huge_tree)
    results: List[PropfindResult] = []

    for elem in _strip_to_multistatus(tree):
        if elem.tag != dav.Response.tag:
            continue

        href, propstats, status = _parse_response_element(elem)
        properties, propstat_status = _extract_properties(propstats)
        if status is not None:
            status_code = _status_to_code(status)
        else:
            status_code = propstat_status
        results.append(
            PropfindResult(href=href, properties=properties, status=status_code)
        )

    return results


def parse_propfind_response(body: bytes, huge_tree: bool = False) -> List[PropfindResult]:
    """Parse a PROPFIND response (a multistatus)."""
    return parse_multistatus(body, huge_tree=huge_tree)


def parse_calendar_query_response(
    body: bytes, huge_tree: bool = False
) -> List[CalendarQueryResult]:
    """
    Parse a calendar-query or calendar-multiget REPORT response.

    Returns:
        List of CalendarQueryResult with etag and calendar data
    """
    return [
        CalendarQueryResult(
            href=result.href,
            etag=result.properties.get(dav.GetEtag.tag),
            calendar_data=result.properties.get(cdav.CalendarData.tag),
            status=result.status,
        )
        for result in parse_multistatus(body, huge_tree=huge_tree)
    ]


parse_calendar_multiget_response = parse_calendar_query_response


# Helper functions


def _strip_to_multistatus(tree: _Element) -> Union[_Element, List[_Element]]:
    """
    Strip outer elements to get to the multistatus content.

    The general format is:
        <xml><multistatus>
            <response>...</response>
            <response>...</response>
        </multistatus></xml>

    But sometimes multistatus and/or xml element is missing.
    Returns the element(s) containing responses.
    """
    if tree.tag == "xml" and len(tree) > 0 and tree[0].tag == dav.MultiStatus.tag:
        return tree[0]
    if tree.tag == dav.MultiStatus.tag:
        return tree
    return [tree]


def _decode_href(text: str) -> str:
    text = text.strip()
    # Confluence quotes the user email twice
    if "%2540" in text:
        text = text.replace("%2540", "%40")
    return unquote(text)


def _parse_response_element(
    response: _Element,
) -> Tuple[str, List[_Element], Optional[str]]:
    """
    Parse a single DAV:response element.

    Returns:
        Tuple of (href, propstat elements list, status string)
    """
    status: Optional[str] = None
    href: Optional[str] = None
    propstats: List[_Element] = []

    for elem in response:
        if elem.tag == dav.Status.tag:
            status = elem.text
        elif elem.tag == dav.Href.tag:
            href = _decode_href(elem.text or "")
            # absolute URLs are converted to paths
            if "://" in href:
                href = urlparse(href).path
        elif elem.tag == dav.PropStat.tag:
            propstats.append(elem)

    return (href or "", propstats, status)


def _extract_properties(propstats: List[_Element]) -> Tuple[Dict[str, Any], int]:
    """
    Extract properties from the successful propstat elements.

    The properties may be delivered either in one propstat with
    multiple props or in multiple propstats, some of them failing
    (typically 404 for a property the server does not know).

    Returns:
        Tuple of (property tag -> value, resource status).  The
        resource status is 200 if any propstat succeeded, otherwise
        the status of the first propstat.
    """
    properties: Dict[str, Any] = {}
    statuses: List[int] = []

    for propstat in propstats:
        status_elem = propstat.find(dav.Status.tag)
        code = _status_to_code(status_elem.text if status_elem is not None else None)
        statuses.append(code)
        if not 200 <= code < 300:
            continue

        prop = propstat.find(dav.Prop.tag)
        if prop is None:
            continue
        for child in prop:
            properties[child.tag] = _element_to_value(child)

    if not statuses or any(200 <= code < 300 for code in statuses):
        return properties, 200
    return properties, statuses[0]


def _element_to_value(elem: _Element) -> Any:
    """
    Convert a property element to a Python value.

    Simple elements become their text.  Containers become lists.
    """
    tag = elem.tag

    if tag in HREF_PROPERTIES:
        return [
            _decode_href(child.text)
            for child in elem
            if child.tag == dav.Href.tag and child.text
        ]

    # supported-calendar-component-set: extract comp names
    if tag == cdav.SupportedCalendarComponentSet.tag:
        return [child.get("name").upper() for child in elem if child.get("name")]

    # resourcetype: child tag names (e.g., collection, calendar)
    if tag == dav.ResourceType.tag:
        return [child.tag for child in elem]

    if len(elem) == 0:
        return elem.text

    return [_element_to_value(child) for child in elem]


def _status_to_code(status: Optional[str]) -> int:
    """
    Extract status code from status string like "HTTP/1.1 200 OK".

    Returns:
        Integer status code (defaults to 200 if parsing fails)
    """
    if not status:
        return 200

    parts = status.split()
    if len(parts) >= 2:
        try:
            return int(parts[1])
        except ValueError:
            error.weirdness("unparseable status", status)

    return 200

"""
CalDAV protocol operations combining request building and response parsing.

This class provides a high-level interface to CalDAV operations while
remaining completely I/O-free.
"""
from datetime import date
from typing import Dict
from typing import List
from typing import Optional
from urllib.parse import urlparse

from caldavsync.lib.url import join

from .types import CalendarQueryResult
from .types import DAVMethod
from .types import DAVRequest
from .types import DAVResponse
from .types import PropfindResult
from .xml_builders import build_calendar_multiget_body
from .xml_builders import build_calendar_query_body
from .xml_builders import build_propfind_body
from .xml_parsers import parse_calendar_query_response
from .xml_parsers import parse_propfind_response

XML_CONTENT_TYPE = "application/xml; charset=utf-8"
ICAL_CONTENT_TYPE = "text/calendar; charset=utf-8"


class CalDAVProtocol:
    """
    Sans-I/O CalDAV protocol handler.

    Builds requests and parses responses without doing any I/O.
    All HTTP communication is delegated to an external I/O implementation,
    and so is authentication.

    Example:
        protocol = CalDAVProtocol(base_url="https://cal.example.com/dav/")

        # Build request
        request = protocol.propfind_request("/calendars/user/", ["displayname"])

        # Execute with your I/O (not shown)
        response = await io.execute(request)

        # Parse response
        results = protocol.parse_propfind(response)
    """

    def __init__(self, base_url: str = "", huge_tree: bool = False):
        """
        Args:
            base_url: Base URL for the CalDAV server.  Paths given to the
                request builders are appended to it.
            huge_tree: Allow parsing very large XML documents
        """
        self.base_url = base_url
        self.huge_tree = huge_tree

    def resolve_url(self, path: str) -> str:
        """
        Resolve a path to a full URL.

        Absolute paths repeating the path of the base URL are not
        doubled, fully qualified URLs are left alone.
        """
        return join(self.base_url, path)

    # =========================================================================
    # Request builders
    # =========================================================================

    def propfind_request(
        self,
        path: str,
        props: Optional[List[str]] = None,
        depth: int = 0,
    ) -> DAVRequest:
        """
        Build a PROPFIND request.

        Args:
            path: Resource path or URL
            props: Property names to retrieve
            depth: Depth header value (0 or 1)
        """
        return DAVRequest(
            method=DAVMethod.PROPFIND,
            url=self.resolve_url(path),
            headers={"Content-Type": XML_CONTENT_TYPE, "Depth": str(depth)},
            body=build_propfind_body(props),
        )

    def calendar_query_request(
        self,
        path: str,
        comp_type: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        expand: bool = False,
        include_data: bool = True,
    ) -> DAVRequest:
        """
        Build a calendar-query REPORT request.

        Args:
            path: Calendar collection path or URL
            comp_type: VEVENT or VTODO
            start: Start of time range
            end: End of time range
            expand: Expand recurring items within the time range
            include_data: Request calendar-data, not only the etag
        """
        body = build_calendar_query_body(
            comp_type,
            start=start,
            end=end,
            expand=expand,
            include_data=include_data,
        )
        return DAVRequest(
            method=DAVMethod.REPORT,
            url=self.resolve_url(path),
            headers={"Content-Type": XML_CONTENT_TYPE, "Depth": "1"},
            body=body,
        )

    def calendar_multiget_request(self, path: str, hrefs: List[str]) -> DAVRequest:
        """
        Build a calendar-multiget REPORT request.

        Args:
            path: Calendar collection path or URL
            hrefs: List of calendar object hrefs to retrieve, decoded.
                They are sent as quoted absolute paths.
        """
        hrefs = [urlparse(self.resolve_url(href)).path for href in hrefs]
        return DAVRequest(
            method=DAVMethod.REPORT,
            url=self.resolve_url(path),
            headers={"Content-Type": XML_CONTENT_TYPE, "Depth": "1"},
            body=build_calendar_multiget_body(hrefs),
        )

    def put_request(
        self,
        path: str,
        data: bytes,
        if_match: Optional[str] = None,
        if_none_match: Optional[str] = None,
    ) -> DAVRequest:
        """
        Build a PUT request to create/update a resource.

        Args:
            path: Resource path or URL
            data: iCalendar data
            if_match: If-Match header for conditional update
            if_none_match: If-None-Match header, "*" to refuse overwriting
        """
        headers: Dict[str, str] = {"Content-Type": ICAL_CONTENT_TYPE}
        if if_match:
            headers["If-Match"] = if_match
        if if_none_match:
            headers["If-None-Match"] = if_none_match
        return DAVRequest(
            method=DAVMethod.PUT,
            url=self.resolve_url(path),
            headers=headers,
            body=data,
        )

    def delete_request(self, path: str, if_match: str = "*") -> DAVRequest:
        """
        Build a DELETE request.

        Args:
            path: Resource path to delete
            if_match: If-Match header, "*" for an unconditional delete
        """
        return DAVRequest(
            method=DAVMethod.DELETE,
            url=self.resolve_url(path),
            headers={"If-Match": if_match},
        )

    # =========================================================================
    # Response parsers
    # =========================================================================

    def parse_propfind(self, response: DAVResponse) -> List[PropfindResult]:
        """Parse a PROPFIND response into one result per resource."""
        return parse_propfind_response(response.body, huge_tree=self.huge_tree)

    def parse_calendar_query(self, response: DAVResponse) -> List[CalendarQueryResult]:
        """Parse a calendar-query or calendar-multiget REPORT response."""
        return parse_calendar_query_response(response.body, huge_tree=self.huge_tree)

"""
Core protocol types for the Sans-I/O CalDAV implementation.

These dataclasses represent HTTP requests and responses at the protocol level,
independent of any I/O implementation.
"""
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import Any
from typing import Dict
from typing import Optional


class DAVMethod(Enum):
    """WebDAV/CalDAV HTTP methods used by this library."""

    GET = "GET"
    PUT = "PUT"
    DELETE = "DELETE"
    PROPFIND = "PROPFIND"
    REPORT = "REPORT"


@dataclass(frozen=True)
class DAVRequest:
    """
    Represents an HTTP request to be made.

    This is a pure data structure with no I/O. It describes what request
    should be made, but does not make it.

    Attributes:
        method: HTTP method (GET, PUT, PROPFIND, etc.)
        url: Full URL for the request
        headers: HTTP headers as dict
        body: Request body as bytes (optional)
    """

    method: DAVMethod
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None

    def with_header(self, name: str, value: str) -> "DAVRequest":
        """Return new request with additional header."""
        return DAVRequest(
            method=self.method,
            url=self.url,
            headers={**self.headers, name: value},
            body=self.body,
        )


@dataclass(frozen=True)
class DAVResponse:
    """
    Represents an HTTP response received.

    Attributes:
        status: HTTP status code
        headers: HTTP headers as dict
        body: Response body as bytes
    """

    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        """True if status indicates success (2xx)."""
        return 200 <= self.status < 300

    @property
    def is_multistatus(self) -> bool:
        """True if this is a 207 Multi-Status response."""
        return self.status == 207

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return None


@dataclass
class PropfindResult:
    """
    Parsed result of a PROPFIND request for a single resource.

    Attributes:
        href: URL/path of the resource
        properties: Dict of property tag -> value, only properties
            delivered with a 2xx propstat status
        status: HTTP status for this resource
    """

    href: str
    properties: Dict[str, Any] = field(default_factory=dict)
    status: int = 200

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass
class CalendarQueryResult:
    """
    Parsed result of a calendar-query or calendar-multiget REPORT for
    a single object.

    Attributes:
        href: URL/path of the calendar object
        etag: ETag of the object (for conditional updates)
        calendar_data: iCalendar data as string
        status: HTTP status for this resource
    """

    href: str
    etag: Optional[str] = None
    calendar_data: Optional[str] = None
    status: int = 200

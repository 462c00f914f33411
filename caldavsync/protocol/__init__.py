"""
Sans-I/O CalDAV protocol implementation.

This module provides protocol-level operations without any I/O.
It builds requests and parses responses as pure data transformations.

The protocol layer is organized into:
- types: Core data structures (DAVRequest, DAVResponse, result types)
- xml_builders: Pure functions to build XML request bodies
- xml_parsers: Pure functions to parse XML response bodies
- operations: CalDAVProtocol class combining builders and parsers
"""
from .types import CalendarQueryResult
from .types import DAVMethod
from .types import DAVRequest
from .types import DAVResponse
from .types import PropfindResult
from .xml_builders import build_calendar_multiget_body
from .xml_builders import build_calendar_query_body
from .xml_builders import build_propfind_body
from .xml_parsers import parse_calendar_multiget_response
from .xml_parsers import parse_calendar_query_response
from .xml_parsers import parse_multistatus
from .xml_parsers import parse_propfind_response
from .operations import CalDAVProtocol

__all__ = [
    # Enums
    "DAVMethod",
    # Request/Response
    "DAVRequest",
    "DAVResponse",
    # Result types
    "CalendarQueryResult",
    "PropfindResult",
    # XML Builders
    "build_calendar_multiget_body",
    "build_calendar_query_body",
    "build_propfind_body",
    # XML Parsers
    "parse_calendar_multiget_response",
    "parse_calendar_query_response",
    "parse_multistatus",
    "parse_propfind_response",
    # Protocol
    "CalDAVProtocol",
]

"""
I/O layer for the CalDAV protocol.

The I/O layer is intentionally thin - it only handles HTTP transport.
All protocol logic (XML building/parsing) is in caldavsync.protocol.

Example:
    from caldavsync.protocol import CalDAVProtocol
    from caldavsync.io import AsyncIO

    protocol = CalDAVProtocol(base_url="https://cal.example.com")
    async with AsyncIO() as io:
        request = protocol.propfind_request("/calendars/", ["displayname"])
        response = await io.execute(request)
        results = protocol.parse_propfind(response)
"""
from .async_ import AsyncIO
from .base import AsyncIOProtocol

__all__ = [
    "AsyncIOProtocol",
    "AsyncIO",
]

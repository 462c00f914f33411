"""
Abstract I/O protocol definition.

This module defines the interface that all I/O implementations must follow.
"""
from typing import Protocol
from typing import runtime_checkable

from caldavsync.protocol.types import DAVRequest
from caldavsync.protocol.types import DAVResponse


@runtime_checkable
class AsyncIOProtocol(Protocol):
    """
    Protocol defining the asynchronous I/O interface.

    Implementations must provide a way to execute DAVRequest objects
    and return DAVResponse objects asynchronously.  Network failures
    and timeouts are to be raised as caldavsync.lib.error.TransportError;
    HTTP error statuses are not exceptions at this level.
    """

    async def execute(self, request: DAVRequest) -> DAVResponse:
        """
        Execute a request and return the response.

        Args:
            request: The DAVRequest to execute

        Returns:
            DAVResponse with status, headers, and body
        """
        ...

    async def close(self) -> None:
        """Close any resources (e.g., HTTP session)."""
        ...

"""
Asynchronous I/O implementation using the niquests library.
"""
import logging
import sys
from typing import Optional
from typing import Union

import niquests
from niquests.auth import AuthBase

from caldavsync import __version__
from caldavsync.lib import error
from caldavsync.lib.python_utilities import to_normal_str
from caldavsync.protocol.types import DAVRequest
from caldavsync.protocol.types import DAVResponse

if sys.version_info < (3, 11):
    from typing_extensions import Self
else:
    from typing import Self

log = logging.getLogger("caldavsync")


class AsyncIO:
    """
    Asynchronous I/O shell using niquests.

    This is a thin wrapper that executes DAVRequest objects via HTTP
    and returns DAVResponse objects.  No retries are done here, a
    failing request propagates to the caller.

    Example:
        async with AsyncIO(auth=HTTPBasicAuth("user", "secret")) as io:
            request = protocol.propfind_request("/calendars/", ["displayname"])
            response = await io.execute(request)
    """

    def __init__(
        self,
        session: Optional[niquests.AsyncSession] = None,
        auth: Optional[AuthBase] = None,
        timeout: Optional[float] = 30.0,
        ssl_verify_cert: Union[bool, str] = True,
        log_requests: bool = False,
    ) -> None:
        """
        Args:
            session: Existing AsyncSession to use (creates new if None)
            auth: niquests auth object (basic or bearer)
            timeout: Request timeout in seconds
            ssl_verify_cert: Verify SSL certificates (bool or CA bundle path)
            log_requests: Log every request and response status at INFO
                level instead of DEBUG
        """
        self._owns_session = session is None
        self.session = session or niquests.AsyncSession()
        self.auth = auth
        self.timeout = timeout
        self.ssl_verify_cert = ssl_verify_cert
        self.log_requests = log_requests
        self.headers = {"User-Agent": f"caldavsync/{__version__}"}

    def _log(self, msg: str) -> None:
        if self.log_requests:
            log.info(msg)
        else:
            log.debug(msg)

    async def execute(self, request: DAVRequest) -> DAVResponse:
        """
        Execute a DAVRequest and return DAVResponse.

        Raises:
            TransportError: on connection failures and timeouts
        """
        headers = {**self.headers, **request.headers}
        self._log(f"sending request - method={request.method.value}, url={request.url}")
        log.debug(f"headers={headers}\nbody:\n{to_normal_str(request.body)}")

        try:
            r = await self.session.request(
                request.method.value,
                request.url,
                data=request.body,
                headers=headers,
                auth=self.auth,
                timeout=self.timeout,
                verify=self.ssl_verify_cert,
            )
        except niquests.exceptions.RequestException as e:
            raise error.TransportError(url=request.url, reason=str(e)) from e

        self._log(f"server responded with {r.status_code} {r.reason}")
        body = r.content or b""
        log.debug(f"response headers: {r.headers}\nbody:\n{to_normal_str(body)}")
        return DAVResponse(
            status=r.status_code,
            headers=dict(r.headers),
            body=body,
        )

    async def close(self) -> None:
        """Close the session if we created it."""
        if self._owns_session and self.session:
            await self.session.close()

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args) -> None:
        """Async context manager exit."""
        await self.close()

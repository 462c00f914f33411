#!/usr/bin/env python
import logging
import os
from typing import Optional

from caldavsync import __version__

## Environmental variables prepended with "PYTHON_CALDAVSYNC" are used for debug purposes,
## environmental variables prepended with "CALDAV_" are for connection parameters
## one of DEBUG, DEVELOPMENT, PRODUCTION
debugmode = os.environ.get("PYTHON_CALDAVSYNC_DEBUGMODE")
if not debugmode:
    if "dev" in __version__:
        debugmode = "DEVELOPMENT"
    else:
        debugmode = "PRODUCTION"

log = logging.getLogger("caldavsync")
if debugmode.startswith("DEBUG"):
    log.setLevel(logging.DEBUG)
else:
    log.setLevel(logging.WARNING)


def weirdness(*reasons) -> None:
    """Log a non-fatal deviation from what the protocol promises"""
    from caldavsync.lib.debug import xmlstring

    reason = " : ".join([xmlstring(x) for x in reasons])
    log.warning(f"Deviation from expectations found: {reason}")


class DAVError(Exception):
    url: Optional[str] = None
    reason: str = "no reason"

    def __init__(self, url: Optional[str] = None, reason: Optional[str] = None) -> None:
        if url:
            self.url = url
        if reason:
            self.reason = reason

    def __str__(self) -> str:
        return "%s at '%s', reason %s" % (
            self.__class__.__name__,
            self.url,
            self.reason,
        )


class AuthenticationError(DAVError):
    """
    Discovery of the current user principal failed, or the server
    answered 401/403.  The url property will contain the url in
    question, the reason property will contain the excuse the server
    sent.
    """

    pass


class NotInitializedError(DAVError):
    """The principal or calendar home has not been resolved yet"""

    pass


class ValidationError(DAVError):
    """The caller omitted something required, like uid or href on update"""

    pass


class ConflictError(DAVError):
    """
    A write precondition failed (412).  Either the uid is already
    taken on create, or the entity tag no longer matches on update.
    """

    pass


class NotFoundError(DAVError):
    pass


class TransportError(DAVError):
    """Network failure, timeout or an unexpected status code"""

    status: Optional[int] = None

    def __init__(
        self,
        url: Optional[str] = None,
        reason: Optional[str] = None,
        status: Optional[int] = None,
    ) -> None:
        super(TransportError, self).__init__(url, reason)
        self.status = status


class ParseError(DAVError):
    """The server sent something we could not make sense of"""

    pass

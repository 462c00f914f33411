#!/usr/bin/env python
import logging

__version__ = "0.3.0"

from .async_davclient import AsyncCalDAVClient
from .async_davclient import get_davclient

# Silence notification of no default logging handler
log = logging.getLogger("caldavsync")


class NullHandler(logging.Handler):
    def emit(self, record) -> None:
        pass


log.addHandler(NullHandler())

__all__ = ["__version__", "AsyncCalDAVClient", "get_davclient"]

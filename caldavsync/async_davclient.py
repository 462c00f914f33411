#!/usr/bin/env python
"""
Async CalDAV client.

Ties the sans-I/O protocol layer, the operations layer and an I/O
implementation together.  Every public method does one or more
sequential round trips and either returns a complete result or raises
one of the errors from ``caldavsync.lib.error``.
"""
import logging
import sys
from types import TracebackType
from typing import Any
from typing import List
from typing import Optional

from niquests.auth import AuthBase
from niquests.auth import HTTPBasicAuth

from caldavsync.config import ClientConfig
from caldavsync.config import get_config
from caldavsync.io.async_ import AsyncIO
from caldavsync.io.base import AsyncIOProtocol
from caldavsync.lib import error
from caldavsync.lib.python_utilities import to_wire
from caldavsync.lib.url import qualify
from caldavsync.models import Calendar
from caldavsync.models import Event
from caldavsync.models import Item
from caldavsync.models import ItemReference
from caldavsync.models import ServerIdentity
from caldavsync.models import SyncResult
from caldavsync.models import TimeRange
from caldavsync.models import Todo
from caldavsync.models import WriteResult
from caldavsync.operations.base import first_text
from caldavsync.operations.base import get_property_value
from caldavsync.operations.calendarobject_ops import EVENT
from caldavsync.operations.calendarobject_ops import TODO
from caldavsync.operations.calendarobject_ops import ItemKind
from caldavsync.operations.calendarobject_ops import decode_results
from caldavsync.operations.calendarobject_ops import generate_uid
from caldavsync.operations.calendarobject_ops import generate_url
from caldavsync.operations.calendarobject_ops import is_weak_etag
from caldavsync.operations.calendarobject_ops import strip_weak_prefix
from caldavsync.operations.calendarset_ops import CALENDAR_PROPS
from caldavsync.operations.calendarset_ops import process_calendar_list
from caldavsync.operations.principal_ops import discovery_path_for
from caldavsync.operations.principal_ops import process_calendar_home_response
from caldavsync.operations.principal_ops import process_principal_response
from caldavsync.operations.sync_ops import diff_references
from caldavsync.operations.sync_ops import needs_sync
from caldavsync.operations.sync_ops import process_reference_response
from caldavsync.protocol.operations import CalDAVProtocol
from caldavsync.protocol.types import DAVMethod
from caldavsync.protocol.types import DAVRequest
from caldavsync.protocol.types import DAVResponse
from caldavsync.requests import HTTPBearerAuth

if sys.version_info < (3, 11):
    from typing_extensions import Self
else:
    from typing import Self

log = logging.getLogger("caldavsync")

WRITE_METHODS = (DAVMethod.PUT, DAVMethod.DELETE)


class AsyncCalDAVClient:
    """
    Async CalDAV client for one user on one server.

    The recommended way to get a working client is through the async
    factories, which resolve the server identity before returning:

        async with await AsyncCalDAVClient.create(config) as client:
            calendars = await client.list_calendars()

    A previously exported identity can be fed back in to skip the two
    discovery round trips:

        client = AsyncCalDAVClient.from_identity(config, identity)
    """

    def __init__(
        self,
        config: ClientConfig,
        io: Optional[AsyncIOProtocol] = None,
        identity: Optional[ServerIdentity] = None,
    ) -> None:
        """
        Args:
            config: Connection configuration
            io: Transport to use; by default an AsyncIO built from the
                configuration
            identity: Previously resolved identity, if any
        """
        self.config = config
        self.protocol = CalDAVProtocol(base_url=config.url)
        if io is None:
            io = AsyncIO(
                auth=self.build_auth_object(),
                timeout=config.timeout,
                ssl_verify_cert=config.ssl_verify_cert,
                log_requests=config.log_requests,
            )
        self.io = io
        self.identity = identity

    def build_auth_object(self) -> Optional[AuthBase]:
        """Bearer auth if a token is configured, otherwise basic auth"""
        if self.config.token:
            return HTTPBearerAuth(self.config.token)
        if self.config.username is not None:
            return HTTPBasicAuth(self.config.username, self.config.password or "")
        return None

    @classmethod
    async def create(
        cls, config: ClientConfig, io: Optional[AsyncIOProtocol] = None
    ) -> "AsyncCalDAVClient":
        """
        Build a client and resolve the server identity, so that bad
        credentials are reported right away.
        """
        client = cls(config, io=io)
        try:
            await client.resolve_identity()
        except error.DAVError:
            await client.close()
            raise
        return client

    @classmethod
    def from_identity(
        cls,
        config: ClientConfig,
        identity: ServerIdentity,
        io: Optional[AsyncIOProtocol] = None,
    ) -> "AsyncCalDAVClient":
        return cls(config, io=io, identity=identity)

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the transport."""
        await self.io.close()

    # ==================== Request plumbing ====================

    async def request(self, request: DAVRequest) -> DAVResponse:
        """
        Send a request and map error statuses to exceptions.

        Raises:
            AuthenticationError: on 401 and 403
            NotFoundError: on 404
            ConflictError: on 412 for PUT and DELETE
            TransportError: on any other non-2xx status, and on
                connection failures
        """
        response = await self.io.execute(request)
        if response.ok:
            return response

        status = response.status
        reason = f"{request.method.value} failed with status {status}"
        if status in (401, 403):
            raise error.AuthenticationError(url=request.url, reason=reason)
        if status == 404:
            raise error.NotFoundError(url=request.url, reason=reason)
        if status == 412 and request.method in WRITE_METHODS:
            raise error.ConflictError(url=request.url, reason="precondition failed")
        raise error.TransportError(url=request.url, reason=reason, status=status)

    def _item_path(self, href: str, calendar_url: Optional[str] = None) -> str:
        ## item hrefs from the server lost their host on parsing
        if calendar_url:
            return qualify(href, self.protocol.resolve_url(calendar_url))
        return href

    # ==================== Identity ====================

    async def resolve_identity(self) -> ServerIdentity:
        """
        Find the current user principal and its calendar home.

        Raises:
            AuthenticationError: if the discovery request fails or
                doesn't yield a principal
            ParseError: if the principal has no calendar home
        """
        path = discovery_path_for(self.config.url, self.config.discovery_path)
        request = self.protocol.propfind_request(path, ["current-user-principal"], depth=0)
        response = await self.io.execute(request)
        if not response.ok:
            raise error.AuthenticationError(
                url=request.url,
                reason=f"Invalid credentials: server answered {response.status}",
            )
        principal = process_principal_response(
            self.protocol.parse_propfind(response), self.config.url
        )
        log.debug(f"user principal: {principal}")

        response = await self.request(
            self.protocol.propfind_request(principal, ["calendar-home-set"], depth=0)
        )
        home = process_calendar_home_response(
            self.protocol.parse_propfind(response), self.config.url, principal
        )
        log.debug(f"calendar home: {home}")

        self.identity = ServerIdentity(user_principal=principal, calendar_home=home)
        return self.identity

    def export_identity(self) -> ServerIdentity:
        if self.identity is None:
            raise error.NotInitializedError(
                url=self.config.url, reason="server identity not resolved"
            )
        return self.identity

    def get_calendar_home(self) -> str:
        if self.identity is None or not self.identity.calendar_home:
            raise error.NotInitializedError(
                url=self.config.url, reason="calendar home not resolved"
            )
        return self.identity.calendar_home

    # ==================== Calendars ====================

    async def list_calendars(self) -> List[Calendar]:
        """All calendars under the calendar home holding events or todos"""
        home = self.get_calendar_home()
        response = await self.request(
            self.protocol.propfind_request(home, CALENDAR_PROPS, depth=1)
        )
        return process_calendar_list(
            self.protocol.parse_propfind(response), self.protocol.resolve_url(home)
        )

    async def get_ctag(self, calendar_url: str) -> Optional[str]:
        """The current change tag of a calendar, None if the server has none"""
        response = await self.request(
            self.protocol.propfind_request(calendar_url, ["getctag"], depth=0)
        )
        for result in self.protocol.parse_propfind(response):
            if result.ok:
                ctag = first_text(get_property_value(result.properties, "getctag"))
                if ctag:
                    return ctag
        return None

    async def get_etag(self, href: str, calendar_url: Optional[str] = None) -> str:
        """
        Fetch the entity tag of an object.  For servers that don't send
        one back on PUT.  A weak validator prefix is stripped.

        Raises:
            NotFoundError: if the object does not exist
            ParseError: if the server did not report an etag
        """
        path = self._item_path(href, calendar_url)
        response = await self.request(
            self.protocol.propfind_request(path, ["getetag"], depth=0)
        )
        for result in self.protocol.parse_propfind(response):
            if result.ok:
                etag = first_text(get_property_value(result.properties, "getetag"))
                if etag:
                    return strip_weak_prefix(etag)
        raise error.ParseError(url=path, reason="no getetag in response")

    fetch_entity_tag = get_etag

    # ==================== Generic item CRUD ====================

    async def create_item(
        self, calendar_url: str, item: Item, kind: ItemKind
    ) -> WriteResult:
        """
        Store a new item.  A uid is generated unless the item has one.
        The object is never overwritten.

        Raises:
            ConflictError: if an object with this uid exists already
        """
        uid = item.uid or generate_uid()
        href = generate_url(calendar_url, uid)
        data = kind.encode(item, uid, self.config.prodid)
        try:
            response = await self.request(
                self.protocol.put_request(href, to_wire(data), if_none_match="*")
            )
        except error.ConflictError as e:
            raise error.ConflictError(
                url=href, reason=f"an object with uid {uid} already exists"
            ) from e

        etag = response.header("ETag") or ""
        ctag = await self.get_ctag(calendar_url)
        return WriteResult(uid=uid, href=href, etag=etag, ctag=ctag)

    async def update_item(
        self, calendar_url: str, item: Item, kind: ItemKind
    ) -> WriteResult:
        """
        Overwrite an existing item, provided nobody else changed it
        since its etag was read.  Weak etags can't be used for that, with
        a weak etag the object is overwritten unconditionally.

        Raises:
            ValidationError: if uid or href is missing
            ConflictError: if the etag does not match any longer
        """
        if not item.uid or not item.href:
            raise error.ValidationError(
                url=calendar_url, reason="uid and href are required to update an item"
            )
        if_match = None
        if item.etag and not is_weak_etag(item.etag):
            if_match = item.etag
        path = self._item_path(item.href, calendar_url)
        data = kind.encode(item, item.uid, self.config.prodid)
        response = await self.request(
            self.protocol.put_request(path, to_wire(data), if_match=if_match)
        )
        return WriteResult(
            uid=item.uid,
            href=item.href,
            etag=response.header("ETag") or "",
        )

    async def delete_item(
        self, calendar_url: str, uid: str, etag: Optional[str] = None
    ) -> None:
        """
        Delete the object with the given uid.  Without an etag, the
        delete is unconditional.
        """
        href = generate_url(calendar_url, uid)
        await self.request(self.protocol.delete_request(href, if_match=etag or "*"))

    async def get_items(
        self,
        calendar_url: str,
        kind: ItemKind,
        time_range: Optional[TimeRange] = None,
    ) -> List[Item]:
        """
        Fetch items of one kind.  With a time range, recurring items are
        expanded by the server into the instances within the range;
        without, everything is returned as stored.
        """
        start = end = None
        if time_range is not None:
            start, end = time_range.start, time_range.end
        response = await self.request(
            self.protocol.calendar_query_request(
                calendar_url,
                kind.component,
                start=start,
                end=end,
                expand=time_range is not None,
            )
        )
        return decode_results(self.protocol.parse_calendar_query(response), kind)

    async def get_items_by_href(
        self, calendar_url: str, hrefs: List[str], kind: ItemKind
    ) -> List[Item]:
        """Fetch the given objects in one calendar-multiget REPORT"""
        if not hrefs:
            return []
        response = await self.request(
            self.protocol.calendar_multiget_request(calendar_url, hrefs)
        )
        return decode_results(self.protocol.parse_calendar_query(response), kind)

    async def get_item_references(
        self, calendar_url: str, kind: ItemKind
    ) -> List[ItemReference]:
        """href and etag of every object of one kind, without the data"""
        response = await self.request(
            self.protocol.calendar_query_request(
                calendar_url, kind.component, include_data=False
            )
        )
        return process_reference_response(self.protocol.parse_calendar_query(response))

    async def sync_items(
        self,
        calendar_url: str,
        local_ctag: Optional[str],
        local_refs: List[ItemReference],
        kind: ItemKind,
    ) -> SyncResult:
        """
        Find out what changed on the server since ``local_ctag`` was seen.

        The references are only fetched if the change tag moved.  Item
        bodies are never fetched; use ``get_items_by_href`` on the new
        and updated hrefs for that.  The returned ctag should be stored
        by the caller for the next round.
        """
        remote_ctag = await self.get_ctag(calendar_url)
        if not needs_sync(local_ctag, remote_ctag):
            return SyncResult(changed=False, ctag=remote_ctag)

        remote_refs = await self.get_item_references(calendar_url, kind)
        diff = diff_references(remote_refs, local_refs, self.config.url)
        log.debug(
            f"{calendar_url}: {len(diff.new)} new, {len(diff.updated)} updated, "
            f"{len(diff.deleted)} deleted"
        )
        return SyncResult(
            changed=True,
            ctag=remote_ctag,
            new=diff.new,
            updated=diff.updated,
            deleted=diff.deleted,
        )

    # ==================== Events ====================

    async def create_event(self, calendar_url: str, event: Event) -> WriteResult:
        return await self.create_item(calendar_url, event, EVENT)

    async def update_event(self, calendar_url: str, event: Event) -> WriteResult:
        return await self.update_item(calendar_url, event, EVENT)

    async def delete_event(
        self, calendar_url: str, uid: str, etag: Optional[str] = None
    ) -> None:
        await self.delete_item(calendar_url, uid, etag)

    async def get_events(
        self, calendar_url: str, time_range: Optional[TimeRange] = None
    ) -> List[Event]:
        return await self.get_items(calendar_url, EVENT, time_range)

    async def get_events_by_href(
        self, calendar_url: str, hrefs: List[str]
    ) -> List[Event]:
        return await self.get_items_by_href(calendar_url, hrefs, EVENT)

    async def sync_changes(
        self,
        calendar_url: str,
        local_ctag: Optional[str],
        local_events: List[ItemReference],
    ) -> SyncResult:
        return await self.sync_items(calendar_url, local_ctag, local_events, EVENT)

    # ==================== Todos ====================

    async def create_todo(self, calendar_url: str, todo: Todo) -> WriteResult:
        return await self.create_item(calendar_url, todo, TODO)

    async def update_todo(self, calendar_url: str, todo: Todo) -> WriteResult:
        return await self.update_item(calendar_url, todo, TODO)

    async def delete_todo(
        self, calendar_url: str, uid: str, etag: Optional[str] = None
    ) -> None:
        await self.delete_item(calendar_url, uid, etag)

    async def get_todos(
        self, calendar_url: str, time_range: Optional[TimeRange] = None
    ) -> List[Todo]:
        return await self.get_items(calendar_url, TODO, time_range)

    async def get_todos_by_href(self, calendar_url: str, hrefs: List[str]) -> List[Todo]:
        return await self.get_items_by_href(calendar_url, hrefs, TODO)

    async def sync_todo_changes(
        self,
        calendar_url: str,
        local_ctag: Optional[str],
        local_todos: List[ItemReference],
    ) -> SyncResult:
        return await self.sync_items(calendar_url, local_ctag, local_todos, TODO)


# ==================== Factory Function ====================


async def get_davclient(
    check_config_file: bool = True,
    config_file: Optional[str] = None,
    config_section: Optional[str] = None,
    environment: bool = True,
    identity: Optional[ServerIdentity] = None,
    **config_data: Any,
) -> AsyncCalDAVClient:
    """
    Get a client with its identity resolved.  The connection
    parameters are read from, in this order:

    * The keyword arguments given, like `url`, `username`, `password`
    * Environment variables prepended with `CALDAV_`, like `CALDAV_URL`
    * The config file

    If an identity exported from an earlier session is given, discovery
    is skipped.

    Example:
        async with await get_davclient(url="...", username="...", password="...") as client:
            calendars = await client.list_calendars()
    """
    config = get_config(
        check_config_file=check_config_file,
        config_file=config_file,
        config_section_name=config_section,
        environment=environment,
        **config_data,
    )
    if identity is not None:
        return AsyncCalDAVClient.from_identity(config, identity)
    return await AsyncCalDAVClient.create(config)

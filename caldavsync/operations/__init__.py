"""
Operations Layer - Sans-I/O Business Logic for CalDAV.

This package contains pure functions that implement CalDAV business logic
without performing any network I/O.  The client does the round trips
and hands the parsed results over to the functions here.

Modules:
    base: Common utilities and base types
    principal_ops: Identity resolution (principal, calendar home)
    calendarset_ops: Calendar listing under the calendar home
    calendarobject_ops: Event and todo encoding and decoding
    sync_ops: Change tag decision and reference diffing
"""
from caldavsync.operations.base import as_list
from caldavsync.operations.base import get_property_value
from caldavsync.operations.calendarobject_ops import EVENT
from caldavsync.operations.calendarobject_ops import ItemKind
from caldavsync.operations.calendarobject_ops import TODO
from caldavsync.operations.calendarobject_ops import decode
from caldavsync.operations.calendarobject_ops import decode_results
from caldavsync.operations.calendarobject_ops import encode_event
from caldavsync.operations.calendarobject_ops import encode_todo
from caldavsync.operations.calendarobject_ops import generate_uid
from caldavsync.operations.calendarobject_ops import generate_url
from caldavsync.operations.calendarset_ops import process_calendar_list
from caldavsync.operations.principal_ops import discovery_path_for
from caldavsync.operations.principal_ops import process_calendar_home_response
from caldavsync.operations.principal_ops import process_principal_response
from caldavsync.operations.sync_ops import diff_references
from caldavsync.operations.sync_ops import needs_sync
from caldavsync.operations.sync_ops import process_reference_response

__all__ = [
    # Base
    "as_list",
    "get_property_value",
    # Principal operations
    "discovery_path_for",
    "process_principal_response",
    "process_calendar_home_response",
    # CalendarSet operations
    "process_calendar_list",
    # CalendarObject operations
    "EVENT",
    "TODO",
    "ItemKind",
    "decode",
    "decode_results",
    "encode_event",
    "encode_todo",
    "generate_uid",
    "generate_url",
    # Sync operations
    "diff_references",
    "needs_sync",
    "process_reference_response",
]

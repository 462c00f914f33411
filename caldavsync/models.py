"""
Value objects exchanged with callers of the library.

Everything here is reconstructed on every read; the server is the
system of record.  Only ``ServerIdentity`` lives as long as the client.
"""
from dataclasses import dataclass
from dataclasses import field
from datetime import date
from datetime import datetime
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from typing import Union

DateOrDatetime = Union[date, datetime]

SUPPORTED_COMPONENTS = frozenset(
    ("VEVENT", "VTODO", "VJOURNAL", "VFREEBUSY", "VTIMEZONE", "VAVAILABILITY")
)

ALARM_ACTIONS = ("DISPLAY", "EMAIL", "AUDIO")


@dataclass(frozen=True)
class ServerIdentity:
    """
    Where the authenticated user lives on the server.

    Both paths are relative to the base address of the client.  A
    snapshot may be exported with ``to_dict`` and fed back through
    ``from_dict`` to skip discovery on the next session.
    """

    user_principal: str
    calendar_home: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "user_principal": self.user_principal,
            "calendar_home": self.calendar_home,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerIdentity":
        return cls(
            user_principal=data["user_principal"],
            calendar_home=data.get("calendar_home"),
        )


@dataclass
class Calendar:
    display_name: str
    url: str
    ctag: Optional[str] = None
    supported_components: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ItemReference:
    """An href and the entity tag of the version seen, never a body"""

    href: str
    etag: str


@dataclass
class RecurrenceRule:
    freq: str
    interval: Optional[int] = None
    count: Optional[int] = None
    until: Optional[DateOrDatetime] = None
    byday: Optional[List[str]] = None
    bymonthday: Optional[List[int]] = None
    bymonth: Optional[List[int]] = None


@dataclass
class Alarm:
    """
    A VALARM.  ``action`` is one of DISPLAY, EMAIL or AUDIO and decides
    which of the other fields are meaningful: DISPLAY uses
    ``description``, EMAIL uses ``summary``, ``description`` and needs
    at least one attendee, AUDIO uses nothing but the trigger.
    """

    action: str
    trigger: str
    description: Optional[str] = None
    summary: Optional[str] = None
    attendees: List[str] = field(default_factory=list)


@dataclass
class Event:
    summary: str
    start: DateOrDatetime
    end: DateOrDatetime
    uid: Optional[str] = None
    href: Optional[str] = None
    etag: Optional[str] = None
    whole_day: bool = False
    description: Optional[str] = None
    location: Optional[str] = None
    start_tzid: Optional[str] = None
    end_tzid: Optional[str] = None
    recurrence_rule: Optional[RecurrenceRule] = None
    alarms: List[Alarm] = field(default_factory=list)


@dataclass
class Todo:
    summary: str
    uid: Optional[str] = None
    href: Optional[str] = None
    etag: Optional[str] = None
    start: Optional[DateOrDatetime] = None
    due: Optional[DateOrDatetime] = None
    completed: Optional[datetime] = None
    status: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    alarms: List[Alarm] = field(default_factory=list)
    sort_order: Optional[int] = None


Item = Union[Event, Todo]


@dataclass(frozen=True)
class TimeRange:
    start: DateOrDatetime
    end: DateOrDatetime


@dataclass
class WriteResult:
    """What the caller needs to keep after a create or update"""

    uid: str
    href: str
    etag: str = ""
    ctag: Optional[str] = None


@dataclass
class SyncResult:
    changed: bool
    ctag: Optional[str]
    new: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)

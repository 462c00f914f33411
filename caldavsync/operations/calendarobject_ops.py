"""
Calendar object operations - the item codec.

Maps Event and Todo objects to iCalendar text for writes, and the
calendar-data embedded in REPORT responses back to Event and Todo
objects for reads.  Events and todos share everything except their
field mapping, which is captured in an ``ItemKind`` record.

No VTIMEZONE is ever generated.  A timezone identifier is sent as a
bare TZID parameter and the server is trusted to know it.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Any
from typing import Callable
from typing import List
from typing import Optional
from zoneinfo import ZoneInfo
from zoneinfo import ZoneInfoNotFoundError

import icalendar

from caldavsync.config import DEFAULT_PRODID
from caldavsync.lib import error
from caldavsync.lib import vcal
from caldavsync.lib.python_utilities import to_normal_str
from caldavsync.models import ALARM_ACTIONS
from caldavsync.models import Alarm
from caldavsync.models import DateOrDatetime
from caldavsync.models import Event
from caldavsync.models import Item
from caldavsync.models import RecurrenceRule
from caldavsync.models import Todo
from caldavsync.operations.base import as_list
from caldavsync.protocol.types import CalendarQueryResult
from caldavsync.protocol.xml_parsers import parse_calendar_query_response


WEAK_ETAG_PREFIX = "W/"
SORT_ORDER_PROPERTY = "X-APPLE-SORT-ORDER"


def generate_uid() -> str:
    """Generate a new UID for a calendar object."""
    return str(uuid.uuid1())


def generate_url(parent_url: str, uid: str) -> str:
    """
    Generate the URL of a calendar object from its UID.

    Args:
        parent_url: URL of the parent calendar
        uid: The UID of the calendar object

    Returns:
        ``<parent_url>/<uid>.ics`` in decoded form.  A slash in the UID
        becomes a literal ``%2F``, which goes out as ``%252F`` on the wire.
    """
    # https://github.com/python-caldav/caldav/issues/143
    name = uid.replace("/", "%2F")
    if not parent_url.endswith("/"):
        parent_url += "/"
    return f"{parent_url}{name}.ics"


def is_weak_etag(etag: Optional[str]) -> bool:
    return bool(etag) and etag.startswith(WEAK_ETAG_PREFIX)


def strip_weak_prefix(etag: str) -> str:
    if is_weak_etag(etag):
        return etag[len(WEAK_ETAG_PREFIX) :]
    return etag


## Encoding


def _new_calendar(prodid: str) -> icalendar.Calendar:
    cal = icalendar.Calendar()
    cal.add("prodid", prodid)
    cal.add("version", "2.0")
    return cal


def _to_utc(ts: DateOrDatetime) -> datetime:
    ## a naive timestamp is taken as local time, a date as noon UTC
    if not isinstance(ts, datetime):
        return datetime(ts.year, ts.month, ts.day, 12, tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _add_date(
    component: icalendar.cal.Component,
    name: str,
    value: DateOrDatetime,
    whole_day: bool = False,
    tzid: Optional[str] = None,
) -> None:
    """
    Add a DTSTART/DTEND/DUE style property.

    Whole day values are written as dates.  Timestamps are written in
    UTC, unless a tzid is given; then the wall clock time in that zone
    is written with a TZID parameter.
    """
    if whole_day:
        if isinstance(value, datetime):
            value = value.date()
        component.add(name, value)
        return

    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)

    if not tzid:
        component.add(name, _to_utc(value))
        return

    if value.tzinfo is not None:
        try:
            value = value.astimezone(ZoneInfo(tzid))
        except (ZoneInfoNotFoundError, ValueError):
            error.weirdness(f"unknown timezone {tzid}, sending the wall clock time as given")
    component.add(name, value.replace(tzinfo=None), parameters={"TZID": tzid})


def encode_rrule(rule: RecurrenceRule) -> icalendar.vRecur:
    """Only the fields that are set end up in the RRULE"""
    recur = icalendar.vRecur()
    recur["FREQ"] = rule.freq.upper()
    if rule.interval is not None:
        recur["INTERVAL"] = rule.interval
    if rule.count is not None:
        recur["COUNT"] = rule.count
    if rule.until is not None:
        until = rule.until
        if isinstance(until, datetime):
            until = _to_utc(until)
        recur["UNTIL"] = until
    if rule.byday:
        recur["BYDAY"] = [d.upper() for d in rule.byday]
    if rule.bymonthday:
        recur["BYMONTHDAY"] = list(rule.bymonthday)
    if rule.bymonth:
        recur["BYMONTH"] = list(rule.bymonth)
    return recur


def encode_alarm(alarm: Alarm) -> icalendar.Alarm:
    action = alarm.action.upper()
    if action not in ALARM_ACTIONS:
        raise error.ValidationError(reason=f"unsupported alarm action {alarm.action}")
    if not alarm.trigger:
        raise error.ValidationError(reason="alarm without trigger")

    valarm = icalendar.Alarm()
    valarm.add("action", action)
    try:
        valarm.add("trigger", icalendar.vDDDTypes.from_ical(alarm.trigger))
    except ValueError as e:
        raise error.ValidationError(reason=f"invalid alarm trigger {alarm.trigger}") from e

    if action == "DISPLAY":
        if alarm.description is not None:
            valarm.add("description", alarm.description)
    elif action == "EMAIL":
        if not alarm.attendees:
            raise error.ValidationError(reason="EMAIL alarm needs at least one attendee")
        if alarm.summary is not None:
            valarm.add("summary", alarm.summary)
        if alarm.description is not None:
            valarm.add("description", alarm.description)
        for attendee in alarm.attendees:
            valarm.add("attendee", attendee)
    return valarm


def _add_common(component: icalendar.cal.Component, item: Item, uid: str) -> None:
    component.add("uid", uid)
    component.add("dtstamp", datetime.now(tz=timezone.utc))
    component.add("summary", item.summary)
    if item.description is not None:
        component.add("description", item.description)
    if item.location is not None:
        component.add("location", item.location)


def encode_event(event: Event, uid: str, prodid: str = DEFAULT_PRODID) -> str:
    """
    Build the VCALENDAR document for an event.

    Args:
        event: The event to encode; its uid attribute is ignored
        uid: The UID to write
        prodid: Product identifier of the generated document
    """
    cal = _new_calendar(prodid)
    vevent = icalendar.Event()
    _add_common(vevent, event, uid)
    _add_date(vevent, "dtstart", event.start, event.whole_day, event.start_tzid)
    _add_date(vevent, "dtend", event.end, event.whole_day, event.end_tzid)
    if event.recurrence_rule is not None:
        vevent.add("rrule", encode_rrule(event.recurrence_rule))
    for alarm in event.alarms:
        vevent.add_component(encode_alarm(alarm))
    cal.add_component(vevent)
    return to_normal_str(cal.to_ical())


def encode_todo(todo: Todo, uid: str, prodid: str = DEFAULT_PRODID) -> str:
    """
    Build the VCALENDAR document for a todo.

    STATUS defaults to NEEDS-ACTION, otherwise some servers won't
    return the task on a search.
    """
    cal = _new_calendar(prodid)
    vtodo = icalendar.Todo()
    _add_common(vtodo, todo, uid)
    for name, value in (("dtstart", todo.start), ("due", todo.due)):
        if value is not None:
            _add_date(vtodo, name, value, whole_day=not isinstance(value, datetime))
    if todo.completed is not None:
        vtodo.add("completed", _to_utc(todo.completed))
    vtodo.add("status", (todo.status or "NEEDS-ACTION").upper())
    if todo.sort_order is not None:
        vtodo.add(SORT_ORDER_PROPERTY, str(todo.sort_order))
    for alarm in todo.alarms:
        vtodo.add_component(encode_alarm(alarm))
    cal.add_component(vtodo)
    return to_normal_str(cal.to_ical())


## Decoding


def _text(component: icalendar.cal.Component, name: str) -> Optional[str]:
    value = component.get(name)
    if value is None:
        return None
    return str(as_list(value)[0])


def _date_and_tzid(
    component: icalendar.cal.Component, name: str
) -> tuple[Optional[DateOrDatetime], Optional[str]]:
    prop = component.get(name)
    if prop is None:
        return None, None
    prop = as_list(prop)[0]
    return prop.dt, prop.params.get("TZID")


def _int_list(values: Any) -> Optional[List[int]]:
    values = as_list(values)
    if not values:
        return None
    return [int(v) for v in values]


def decode_rrule(component: icalendar.cal.Component) -> Optional[RecurrenceRule]:
    rrule = component.get("RRULE")
    if rrule is None:
        return None
    rrule = as_list(rrule)[0]
    freq = as_list(rrule.get("FREQ"))
    if not freq:
        raise error.ParseError(reason="RRULE without FREQ")
    interval = as_list(rrule.get("INTERVAL"))
    count = as_list(rrule.get("COUNT"))
    until = as_list(rrule.get("UNTIL"))
    byday = as_list(rrule.get("BYDAY"))
    return RecurrenceRule(
        freq=str(freq[0]).upper(),
        interval=int(interval[0]) if interval else None,
        count=int(count[0]) if count else None,
        until=until[0] if until else None,
        byday=[str(d) for d in byday] or None,
        bymonthday=_int_list(rrule.get("BYMONTHDAY")),
        bymonth=_int_list(rrule.get("BYMONTH")),
    )


def decode_alarms(component: icalendar.cal.Component) -> List[Alarm]:
    alarms = []
    for valarm in component.subcomponents:
        if valarm.name != "VALARM":
            continue
        trigger = valarm.get("TRIGGER")
        action = _text(valarm, "ACTION")
        if trigger is None or action is None:
            error.weirdness("VALARM without ACTION or TRIGGER, ignored")
            continue
        alarms.append(
            Alarm(
                action=action.upper(),
                trigger=to_normal_str(as_list(trigger)[0].to_ical()),
                description=_text(valarm, "DESCRIPTION"),
                summary=_text(valarm, "SUMMARY"),
                attendees=[str(a) for a in as_list(valarm.get("ATTENDEE"))],
            )
        )
    return alarms


def _end_of(component: icalendar.cal.Component, start: DateOrDatetime) -> DateOrDatetime:
    end, _ = _date_and_tzid(component, "DTEND")
    if end is not None:
        ## for whole day events DTEND is already the exclusive end date
        return end
    duration = component.get("DURATION")
    if duration is not None:
        return start + duration.dt
    if not isinstance(start, datetime):
        return start + timedelta(days=1)
    return start


def decode_event(
    component: icalendar.cal.Component,
    href: Optional[str] = None,
    etag: Optional[str] = None,
) -> Event:
    start, start_tzid = _date_and_tzid(component, "DTSTART")
    if start is None:
        raise error.ParseError(url=href, reason="VEVENT without DTSTART")
    end_tzid = _date_and_tzid(component, "DTEND")[1] or (
        start_tzid if "DTEND" not in component else None
    )
    return Event(
        uid=_text(component, "UID"),
        href=href,
        etag=etag,
        summary=_text(component, "SUMMARY") or "Untitled Event",
        start=start,
        end=_end_of(component, start),
        whole_day=not isinstance(start, datetime),
        description=_text(component, "DESCRIPTION"),
        location=_text(component, "LOCATION"),
        start_tzid=start_tzid,
        end_tzid=end_tzid,
        recurrence_rule=decode_rrule(component),
        alarms=decode_alarms(component),
    )


def decode_todo(
    component: icalendar.cal.Component,
    href: Optional[str] = None,
    etag: Optional[str] = None,
) -> Todo:
    sort_order = None
    raw_sort_order = _text(component, SORT_ORDER_PROPERTY)
    if raw_sort_order is not None:
        try:
            sort_order = int(raw_sort_order)
        except ValueError:
            error.weirdness(f"non-numeric {SORT_ORDER_PROPERTY} {raw_sort_order} at {href}")
    completed = _date_and_tzid(component, "COMPLETED")[0]
    status = _text(component, "STATUS")
    return Todo(
        uid=_text(component, "UID"),
        href=href,
        etag=etag,
        summary=_text(component, "SUMMARY") or "Untitled Todo",
        start=_date_and_tzid(component, "DTSTART")[0],
        due=_date_and_tzid(component, "DUE")[0],
        completed=completed,
        status=status.upper() if status else None,
        description=_text(component, "DESCRIPTION"),
        location=_text(component, "LOCATION"),
        alarms=decode_alarms(component),
        sort_order=sort_order,
    )


@dataclass(frozen=True)
class ItemKind:
    """
    Everything the generic CRUD and query code needs to know about a
    kind of item: which component it lives in and how to map it.
    """

    component: str
    encode: Callable[[Any, str, str], str]
    decode: Callable[..., Any]


EVENT = ItemKind(component="VEVENT", encode=encode_event, decode=decode_event)
TODO = ItemKind(component="VTODO", encode=encode_todo, decode=decode_todo)


def decode_results(results: List[CalendarQueryResult], kind: ItemKind) -> List[Item]:
    """
    Decode every matching component of every result.

    A document may carry several components (expanded recurrences,
    overridden instances) and all of them are returned.  A result that
    cannot be parsed is skipped with a warning, it never aborts the
    rest of the list.
    """
    items: List[Item] = []
    for result in results:
        if not 200 <= result.status < 300 or not result.calendar_data:
            continue
        try:
            cal = icalendar.Calendar.from_ical(vcal.fix(result.calendar_data))
        except ValueError as e:
            error.weirdness(f"skipping unparseable calendar data at {result.href}: {e}")
            continue

        components = cal.walk(kind.component)
        if not components:
            error.weirdness(f"skipping {result.href}, no {kind.component} found")
            continue

        for component in components:
            try:
                items.append(kind.decode(component, href=result.href, etag=result.etag))
            except (ValueError, TypeError, error.ParseError) as e:
                error.weirdness(f"skipping invalid {kind.component} at {result.href}: {e}")
    return items


def decode(body: bytes, kind: ItemKind) -> List[Item]:
    """Decode a calendar-query or calendar-multiget multistatus body"""
    return decode_results(parse_calendar_query_response(body), kind)

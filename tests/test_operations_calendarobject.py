"""
Tests for the calendar object operations module.

These tests verify the item codec - encoding Event and Todo objects to
iCalendar and decoding calendar data from REPORT responses - without
any network I/O.
"""
import logging
from datetime import date
from datetime import datetime
from datetime import timedelta
from datetime import timezone

import pytest

from caldavsync.lib import error
from caldavsync.models import Alarm
from caldavsync.models import Event
from caldavsync.models import RecurrenceRule
from caldavsync.models import Todo
from caldavsync.operations.calendarobject_ops import EVENT
from caldavsync.operations.calendarobject_ops import TODO
from caldavsync.operations.calendarobject_ops import decode
from caldavsync.operations.calendarobject_ops import decode_results
from caldavsync.operations.calendarobject_ops import encode_event
from caldavsync.operations.calendarobject_ops import encode_todo
from caldavsync.operations.calendarobject_ops import generate_uid
from caldavsync.operations.calendarobject_ops import generate_url
from caldavsync.operations.calendarobject_ops import is_weak_etag
from caldavsync.operations.calendarobject_ops import strip_weak_prefix
from caldavsync.protocol.types import CalendarQueryResult

utc = timezone.utc


def roundtrip(item, kind=EVENT, uid="uid-1"):
    data = kind.encode(item, uid, "-//test//EN")
    [decoded] = decode_results(
        [CalendarQueryResult(href=f"/cal/{uid}.ics", etag='"1"', calendar_data=data)],
        kind,
    )
    return decoded


def meeting(**kwargs):
    params = dict(
        summary="Meeting",
        start=datetime(2024, 1, 15, 10, 0, tzinfo=utc),
        end=datetime(2024, 1, 15, 11, 0, tzinfo=utc),
    )
    params.update(kwargs)
    return Event(**params)


class TestGenerateHelpers:
    """Tests for uid/url generation and etag helpers."""

    def test_generate_uid_unique(self):
        assert generate_uid() != generate_uid()

    def test_generate_url(self):
        assert generate_url("https://x/cal/", "abc") == "https://x/cal/abc.ics"
        assert generate_url("https://x/cal", "abc") == "https://x/cal/abc.ics"

    def test_generate_url_quotes_slashes(self):
        ## decoded form; the request URL carries a%252Fb.ics
        assert generate_url("/cal/", "a/b") == "/cal/a%2Fb.ics"

    def test_weak_etags(self):
        assert is_weak_etag('W/"123"')
        assert not is_weak_etag('"123"')
        assert not is_weak_etag(None)
        assert strip_weak_prefix('W/"123"') == '"123"'
        assert strip_weak_prefix('"123"') == '"123"'


class TestEncodeEvent:
    """Tests for the iCalendar text produced for events."""

    def test_header_properties(self):
        data = encode_event(meeting(), "uid-1")
        assert data.startswith("BEGIN:VCALENDAR\n")
        assert "PRODID:-//caldavsync//caldavsync//EN\n" in data
        assert "VERSION:2.0\n" in data
        assert "UID:uid-1\n" in data
        assert "DTSTAMP:" in data
        assert data.count("BEGIN:VEVENT") == 1

    def test_custom_prodid(self):
        assert "PRODID:-//acme//planner//EN" in encode_event(
            meeting(), "uid-1", "-//acme//planner//EN"
        )

    def test_timed_event_in_utc(self):
        data = encode_event(meeting(), "uid-1")
        assert "DTSTART:20240115T100000Z\n" in data
        assert "DTEND:20240115T110000Z\n" in data

    def test_whole_day_event_uses_dates(self):
        event = meeting(start=date(2024, 3, 1), end=date(2024, 3, 2), whole_day=True)
        data = encode_event(event, "uid-1")
        assert "DTSTART;VALUE=DATE:20240301\n" in data
        assert "DTEND;VALUE=DATE:20240302\n" in data

    def test_timezone_id_wall_clock(self):
        event = meeting(
            start=datetime(2024, 7, 1, 9, 0),
            end=datetime(2024, 7, 1, 10, 0),
            start_tzid="Europe/Berlin",
            end_tzid="Europe/Berlin",
        )
        data = encode_event(event, "uid-1")
        assert "DTSTART;TZID=Europe/Berlin:20240701T090000\n" in data
        assert "DTEND;TZID=Europe/Berlin:20240701T100000\n" in data
        assert "VTIMEZONE" not in data

    def test_timezone_id_converts_aware_timestamps(self):
        event = meeting(
            start=datetime(2024, 7, 1, 7, 0, tzinfo=utc),
            end=datetime(2024, 7, 1, 8, 0, tzinfo=utc),
            start_tzid="Europe/Berlin",
        )
        data = encode_event(event, "uid-1")
        assert "DTSTART;TZID=Europe/Berlin:20240701T090000\n" in data
        assert "DTEND:20240701T080000Z\n" in data

    def test_rrule_only_contains_given_fields(self):
        event = meeting(recurrence_rule=RecurrenceRule(freq="DAILY", count=3))
        data = encode_event(event, "uid-1")
        [rrule] = [line for line in data.split("\n") if line.startswith("RRULE")]
        assert "FREQ=DAILY" in rrule
        assert "COUNT=3" in rrule
        assert "INTERVAL" not in rrule
        assert "UNTIL" not in rrule

    def test_alarms_become_valarms(self):
        event = meeting(
            alarms=[
                Alarm(action="DISPLAY", trigger="-PT15M", description="Soon"),
                Alarm(action="AUDIO", trigger="-PT5M"),
            ]
        )
        data = encode_event(event, "uid-1")
        assert data.count("BEGIN:VALARM") == 2
        assert "TRIGGER:-PT15M" in data
        assert "ACTION:AUDIO" in data

    def test_email_alarm_needs_attendee(self):
        event = meeting(alarms=[Alarm(action="EMAIL", trigger="-PT15M", summary="x")])
        with pytest.raises(error.ValidationError):
            encode_event(event, "uid-1")

    def test_unknown_alarm_action(self):
        event = meeting(alarms=[Alarm(action="PROCEDURE", trigger="-PT15M")])
        with pytest.raises(error.ValidationError):
            encode_event(event, "uid-1")


class TestEventRoundTrip:
    """decode(encode(event)) gives back what was put in."""

    def test_timed_event(self):
        event = meeting(description="Discuss things", location="Room 1")
        decoded = roundtrip(event)

        assert decoded.uid == "uid-1"
        assert decoded.href == "/cal/uid-1.ics"
        assert decoded.etag == '"1"'
        assert decoded.summary == "Meeting"
        assert decoded.start == event.start
        assert decoded.end == event.end
        assert decoded.whole_day is False
        assert decoded.description == "Discuss things"
        assert decoded.location == "Room 1"
        assert decoded.start_tzid is None
        assert decoded.end_tzid is None
        assert decoded.recurrence_rule is None
        assert decoded.alarms == []

    def test_whole_day_event(self):
        event = meeting(start=date(2024, 3, 1), end=date(2024, 3, 2), whole_day=True)
        decoded = roundtrip(event)

        assert decoded.whole_day is True
        assert decoded.start == date(2024, 3, 1)
        ## the exclusive end date is passed through as it is
        assert decoded.end == date(2024, 3, 2)

    def test_recurrence_rule(self):
        rule = RecurrenceRule(
            freq="WEEKLY",
            interval=2,
            until=datetime(2024, 6, 30, tzinfo=utc),
            byday=["MO", "WE"],
        )
        decoded = roundtrip(meeting(recurrence_rule=rule))

        assert decoded.recurrence_rule == rule

    def test_monthly_recurrence_rule(self):
        rule = RecurrenceRule(freq="YEARLY", count=5, bymonthday=[15], bymonth=[1, 7])
        decoded = roundtrip(meeting(recurrence_rule=rule))

        assert decoded.recurrence_rule == rule

    def test_alarms(self):
        alarms = [
            Alarm(action="DISPLAY", trigger="-PT15M", description="Soon"),
            Alarm(
                action="EMAIL",
                trigger="-P1D",
                summary="Tomorrow",
                description="Meeting tomorrow",
                attendees=["mailto:alice@example.com"],
            ),
            Alarm(action="AUDIO", trigger="-PT5M"),
        ]
        decoded = roundtrip(meeting(alarms=alarms))

        assert decoded.alarms == alarms

    def test_timezone_ids(self):
        event = meeting(
            start=datetime(2024, 7, 1, 9, 0),
            end=datetime(2024, 7, 1, 10, 0),
            start_tzid="Europe/Berlin",
            end_tzid="America/New_York",
        )
        decoded = roundtrip(event)

        assert decoded.start_tzid == "Europe/Berlin"
        assert decoded.end_tzid == "America/New_York"
        assert decoded.start.replace(tzinfo=None) == datetime(2024, 7, 1, 9, 0)
        assert decoded.end.replace(tzinfo=None) == datetime(2024, 7, 1, 10, 0)


class TestDecode:
    """Tests for decoding calendar data out of REPORT responses."""

    def test_all_components_of_a_document(self):
        data = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:x
BEGIN:VEVENT
UID:rec
DTSTAMP:20240101T000000Z
DTSTART:20240101T100000Z
DTEND:20240101T110000Z
SUMMARY:Weekly
RRULE:FREQ=WEEKLY
END:VEVENT
BEGIN:VEVENT
UID:rec
DTSTAMP:20240101T000000Z
RECURRENCE-ID:20240108T100000Z
DTSTART:20240108T120000Z
DTEND:20240108T130000Z
SUMMARY:Weekly, moved
END:VEVENT
END:VCALENDAR
"""
        events = decode_results(
            [CalendarQueryResult(href="/cal/rec.ics", etag='"1"', calendar_data=data)],
            EVENT,
        )
        assert [e.summary for e in events] == ["Weekly", "Weekly, moved"]
        assert all(e.href == "/cal/rec.ics" for e in events)

    def test_corrupt_entry_is_skipped(self, caplog):
        good = encode_event(meeting(), "good")
        results = [
            CalendarQueryResult(href="/cal/bad.ics", calendar_data="not an icalendar document"),
            CalendarQueryResult(href="/cal/good.ics", calendar_data=good),
        ]
        with caplog.at_level(logging.WARNING, logger="caldavsync"):
            events = decode_results(results, EVENT)

        assert [e.uid for e in events] == ["good"]
        assert "/cal/bad.ics" in caplog.text

    def test_missing_component_is_skipped(self):
        todo = encode_todo(Todo(summary="A todo"), "t1")
        events = decode_results(
            [CalendarQueryResult(href="/cal/t1.ics", calendar_data=todo)], EVENT
        )
        assert events == []

    def test_event_without_dtstart_is_skipped(self):
        data = (
            "BEGIN:VCALENDAR\nVERSION:2.0\nPRODID:x\nBEGIN:VEVENT\nUID:1\n"
            "SUMMARY:x\nEND:VEVENT\nEND:VCALENDAR\n"
        )
        events = decode_results(
            [CalendarQueryResult(href="/cal/1.ics", calendar_data=data)], EVENT
        )
        assert events == []

    def test_failed_or_empty_results_are_ignored(self):
        good = encode_event(meeting(), "good")
        results = [
            CalendarQueryResult(href="/cal/gone.ics", calendar_data=good, status=404),
            CalendarQueryResult(href="/cal/empty.ics", calendar_data=None),
        ]
        assert decode_results(results, EVENT) == []

    def test_defaults(self):
        data = (
            "BEGIN:VCALENDAR\nVERSION:2.0\nPRODID:x\n"
            "BEGIN:VEVENT\nUID:1\nDTSTART:20240101T100000Z\nDURATION:PT90M\nEND:VEVENT\n"
            "BEGIN:VEVENT\nUID:2\nDTSTART;VALUE=DATE:20240105\nEND:VEVENT\n"
            "BEGIN:VEVENT\nUID:3\nDTSTART:20240101T100000Z\nEND:VEVENT\n"
            "END:VCALENDAR\n"
        )
        first, second, third = decode_results(
            [CalendarQueryResult(href="/cal/x.ics", calendar_data=data)], EVENT
        )

        assert first.summary == "Untitled Event"
        assert first.end - first.start == timedelta(minutes=90)
        assert second.whole_day
        assert second.end == date(2024, 1, 6)
        assert third.end == third.start

    def test_encoded_carriage_returns(self):
        """Long descriptions folded with an escaped CR are unfolded"""
        base_description = "é" + "X" * 63
        ics = (
            "BEGIN:VCALENDAR\nVERSION:2.0\nBEGIN:VEVENT\nUID:1\n"
            f"DESCRIPTION:{base_description}&#13;\n X\n"
            "DTSTART:20240101T000000Z\nDTEND:20240101T010000Z\n"
            "END:VEVENT\nEND:VCALENDAR"
        )
        body = (
            '<?xml version="1.0" encoding="utf-8"?>'
            '<d:multistatus xmlns:d="DAV:" xmlns:c="urn:ietf:params:xml:ns:caldav">'
            "<d:response><d:href>/test.ics</d:href><d:propstat><d:prop>"
            f"<c:calendar-data>{ics}</c:calendar-data>"
            "</d:prop><d:status>HTTP/1.1 200 OK</d:status></d:propstat></d:response>"
            "</d:multistatus>"
        ).encode("utf-8")

        [event] = decode(body, EVENT)
        assert event.description == base_description + "X"
        assert event.href == "/test.ics"


class TestTodos:
    """Tests for the todo codec."""

    def test_new_todo_needs_action(self):
        data = encode_todo(Todo(summary="Buy milk"), "t1")
        assert "BEGIN:VTODO" in data
        assert "STATUS:NEEDS-ACTION" in data
        assert "VEVENT" not in data

    def test_roundtrip(self):
        todo = Todo(
            summary="Buy milk",
            start=datetime(2024, 1, 19, 9, 0, tzinfo=utc),
            due=datetime(2024, 1, 20, 17, 0, tzinfo=utc),
            description="Two litres",
            location="Shop",
            sort_order=5,
            alarms=[Alarm(action="DISPLAY", trigger="-PT30M", description="Milk")],
        )
        decoded = roundtrip(todo, kind=TODO)

        assert decoded.uid == "uid-1"
        assert decoded.summary == "Buy milk"
        assert decoded.start == todo.start
        assert decoded.due == todo.due
        assert decoded.status == "NEEDS-ACTION"
        assert decoded.completed is None
        assert decoded.description == "Two litres"
        assert decoded.location == "Shop"
        assert decoded.sort_order == 5
        assert decoded.alarms == todo.alarms

    def test_completed_todo(self):
        todo = Todo(
            summary="Done",
            status="COMPLETED",
            completed=datetime(2024, 1, 21, 8, 30, tzinfo=utc),
            due=date(2024, 1, 20),
        )
        data = encode_todo(todo, "t2")
        assert "COMPLETED:20240121T083000Z" in data
        assert "DUE;VALUE=DATE:20240120" in data

        decoded = roundtrip(todo, kind=TODO)
        assert decoded.status == "COMPLETED"
        assert decoded.completed == todo.completed
        assert decoded.due == date(2024, 1, 20)

    def test_completed_as_date(self):
        todo = Todo(summary="Done", status="COMPLETED", completed=date(2024, 1, 21))
        data = encode_todo(todo, "t3")
        assert "COMPLETED:20240121T120000Z" in data

        decoded = roundtrip(todo, kind=TODO)
        assert decoded.completed == datetime(2024, 1, 21, 12, 0, tzinfo=utc)

    def test_untitled_todo(self):
        data = (
            "BEGIN:VCALENDAR\nVERSION:2.0\nPRODID:x\nBEGIN:VTODO\nUID:1\n"
            "COMPLETED;VALUE=DATE:20240102\nX-APPLE-SORT-ORDER:junk\n"
            "END:VTODO\nEND:VCALENDAR\n"
        )
        [todo] = decode_results(
            [CalendarQueryResult(href="/cal/1.ics", calendar_data=data)], TODO
        )
        assert todo.summary == "Untitled Todo"
        assert todo.sort_order is None
        assert todo.completed == datetime(2024, 1, 2, 12, 0, tzinfo=utc)

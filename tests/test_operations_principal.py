"""
Tests for the principal operations module.

These tests verify the Sans-I/O business logic for identity
resolution without any network I/O.
"""
import pytest

from caldavsync.lib import error
from caldavsync.operations.principal_ops import DEFAULT_DISCOVERY_PATH
from caldavsync.operations.principal_ops import discovery_path_for
from caldavsync.operations.principal_ops import process_calendar_home_response
from caldavsync.operations.principal_ops import process_principal_response
from caldavsync.protocol.types import PropfindResult

CUP = "{DAV:}current-user-principal"
CHS = "{urn:ietf:params:xml:ns:caldav}calendar-home-set"


class TestDiscoveryPath:
    """Tests for discovery_path_for function."""

    def test_default_is_root(self):
        assert discovery_path_for("https://cal.example.com/dav/") == DEFAULT_DISCOVERY_PATH

    def test_google(self):
        assert (
            discovery_path_for("https://apidata.googleusercontent.com/caldav/v2/")
            == "/caldav/v2/"
        )

    def test_override_wins(self):
        assert (
            discovery_path_for(
                "https://apidata.googleusercontent.com/", "/caldav/v2/me/"
            )
            == "/caldav/v2/me/"
        )


class TestProcessPrincipalResponse:
    """Tests for process_principal_response function."""

    def test_principal_found(self):
        results = [PropfindResult(href="/", properties={CUP: ["/principals/user/"]})]
        assert (
            process_principal_response(results, "https://example.com/")
            == "/principals/user/"
        )

    def test_duplicate_base_path_stripped(self):
        results = [PropfindResult(href="/dav/", properties={CUP: ["/dav/principals/user/"]})]
        assert (
            process_principal_response(results, "https://example.com/dav/")
            == "/principals/user/"
        )

    def test_failed_result_skipped(self):
        results = [
            PropfindResult(href="/", properties={}, status=403),
            PropfindResult(href="/x/", properties={CUP: ["/principals/u/"]}),
        ]
        assert process_principal_response(results, "https://example.com/") == "/principals/u/"

    def test_missing_principal(self):
        with pytest.raises(error.AuthenticationError):
            process_principal_response(
                [PropfindResult(href="/", properties={})], "https://example.com/"
            )


class TestProcessCalendarHomeResponse:
    """Tests for process_calendar_home_response function."""

    def test_home_found(self):
        results = [
            PropfindResult(href="/dav/principals/u/", properties={CHS: ["/dav/calendars/u/"]})
        ]
        assert (
            process_calendar_home_response(
                results, "https://example.com/dav/", "/principals/u/"
            )
            == "/calendars/u/"
        )

    def test_home_on_other_host(self):
        """iCloud hands out a fully qualified home on another host"""
        home = "https://p42-caldav.icloud.com:443/1234/calendars/"
        results = [PropfindResult(href="/1234/principal/", properties={CHS: [home]})]
        assert (
            process_calendar_home_response(
                results, "https://caldav.icloud.com/", "/1234/principal/"
            )
            == home
        )

    def test_missing_home(self):
        with pytest.raises(error.ParseError):
            process_calendar_home_response(
                [PropfindResult(href="/p/", properties={})],
                "https://example.com/",
                "/p/",
            )

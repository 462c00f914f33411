#!/usr/bin/env python
import logging
import re

from caldavsync.lib.python_utilities import to_normal_str

log = logging.getLogger("caldavsync")

## Global counter.  We don't want to be too verbose on the users
fixup_error_loggings = 0


def fix(data):
    """Receives calendar data as it was embedded in a server response
    and irons out what would trip up the icalendar parser:

    1) Carriage returns.  Some servers escape them as ``&#13;`` inside
    the XML body, and depending on how the body was decoded the escape
    may survive as literal text.  Either way, line breaks are
    normalized to plain newlines, so that folded lines unfold.

    2) COMPLETED MUST be a datetime in UTC according to the RFC, but
    sometimes a date is given.

    3) iCloud apparently duplicates the DTSTAMP property sometimes -
    keep the first DTSTAMP encountered.
    """
    data = to_normal_str(data)
    data = data.replace("&#13;\n", "\n").replace("&#13;", "\n")
    data = data.replace("\r\n", "\n").replace("\r", "\n")
    fixed = data
    if not fixed.endswith("\n"):
        fixed = fixed + "\n"

    fixed = re.sub(
        r"^COMPLETED(?:;VALUE=DATE)?:(\d{8})$",
        r"COMPLETED:\g<1>T120000Z",
        fixed,
        flags=re.MULTILINE,
    )
    fixed = (
        "\n".join(filter(LineFilterDiscardingDuplicates(), fixed.strip().split("\n")))
        + "\n"
    )

    if fixed.strip() != data.strip():
        ## rate-limited, logs only on powers of two
        global fixup_error_loggings
        fixup_error_loggings += 1
        if not fixup_error_loggings & (fixup_error_loggings - 1):
            _log = log.warning
        else:
            _log = log.debug
        _log(
            "Ical data was modified to avoid compatibility issues "
            f"(error count: {fixup_error_loggings} - this error is ratelimited)"
        )

    return fixed


class LineFilterDiscardingDuplicates:
    """Needs to be a class because it keeps track of whether DTSTAMP
    was already encountered within the current component.  Must be
    called line by line, in order.
    """

    def __init__(self) -> None:
        self.stamped = 0

    def __call__(self, line):
        if line.startswith("BEGIN:V"):
            self.stamped = 0
        elif re.match("DTSTAMP[:;]", line):
            if self.stamped:
                return False
            self.stamped += 1
        return True

"""
Sync operations - Sans-I/O business logic for change detection.

A calendar's change tag (getctag) changes whenever anything inside it
changes.  As long as the tag the caller saw last is still current,
nothing needs to be enumerated.  When it differs, the (href, etag)
references of all objects are fetched and compared to the references
the caller has cached.
"""
from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional

from caldavsync.lib import error
from caldavsync.lib.url import normalize_href
from caldavsync.models import ItemReference
from caldavsync.protocol.types import CalendarQueryResult


@dataclass
class ReferenceDiff:
    new: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)


def needs_sync(local_ctag: Optional[str], remote_ctag: Optional[str]) -> bool:
    """
    Decide whether the references have to be enumerated.

    An empty local tag means the caller has nothing to compare with,
    which is reported as up to date; the caller should persist the
    returned tag and do a full read instead.
    """
    if not local_ctag:
        return False
    return local_ctag != remote_ctag


def diff_references(
    remote: Iterable[ItemReference],
    local: Iterable[ItemReference],
    base_url: Optional[str] = None,
) -> ReferenceDiff:
    """
    Classify references by href.

    New and updated hrefs are reported in server order, deleted hrefs
    in the order the caller gave them.  The hrefs reported are the ones
    as seen on the side they come from.  With ``base_url`` given, an
    href relative to the base address matches the full path the server
    lists for the same object.

    >>> r = diff_references(
    ...     [ItemReference("a", "1"), ItemReference("b", "9"), ItemReference("c", "5")],
    ...     [ItemReference("a", "1"), ItemReference("b", "2")])
    >>> r.new, r.updated, r.deleted
    (['c'], ['b'], [])
    """
    local_tags: Dict[str, str] = {}
    local_hrefs: Dict[str, str] = {}
    for ref in local:
        key = normalize_href(ref.href, base_url)
        local_tags.setdefault(key, ref.etag)
        local_hrefs.setdefault(key, ref.href)

    diff = ReferenceDiff()
    seen = set()
    for ref in remote:
        key = normalize_href(ref.href, base_url)
        if key in seen:
            continue
        seen.add(key)
        if key not in local_tags:
            diff.new.append(ref.href)
        elif local_tags[key] != ref.etag:
            diff.updated.append(ref.href)

    diff.deleted = [href for key, href in local_hrefs.items() if key not in seen]
    return diff


def process_reference_response(
    results: List[CalendarQueryResult],
) -> List[ItemReference]:
    """
    Turn a getetag-only calendar-query into references.

    Entries without an etag can't be compared; they are reported with an
    empty tag, so that they always count as updated.
    """
    references = []
    for result in results:
        if not 200 <= result.status < 300:
            continue
        if not result.etag:
            error.weirdness(f"no getetag for {result.href}")
        references.append(ItemReference(href=result.href, etag=result.etag or ""))
    return references

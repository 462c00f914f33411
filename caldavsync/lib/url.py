#!/usr/bin/env python
"""
URL helpers.

Servers hand us three kinds of addresses: paths relative to the base
address, absolute paths (``/dav/calendars/user/``) and fully qualified
URLs.  Requests are always built by appending a path to the base
address, so absolute paths that repeat the path of the base address
have to be shortened first, otherwise we end up requesting
``/dav/dav/calendars/user/``.

Hrefs are passed around in decoded form, the way they come out of a
multistatus response (``a%2Fb.ics`` is the object listed by the server
as ``a%252Fb.ics``).  Only the configured base URL is kept as given.
:func:`join` quotes the path once when the request URL is built.
"""
from typing import Optional
from urllib.parse import quote
from urllib.parse import unquote
from urllib.parse import urlparse

## characters that are legal in a path and left alone by servers
SAFE_PATH_CHARS = "/@:~!$&'()*+,;="


def base_path(base_url: str) -> str:
    """The decoded path of the base address, without trailing slash ("" for root)"""
    path = urlparse(base_url).path if "://" in base_url else base_url
    return unquote(path).rstrip("/")


def is_absolute(url: str) -> bool:
    return bool(urlparse(url).scheme)


def quote_path(path: str) -> str:
    return quote(path, safe=SAFE_PATH_CHARS)


def strip_base_path(path: Optional[str], base: str) -> Optional[str]:
    """
    Remove the base address' own path prefix from ``path``.

    ``base`` may be a full URL or just its path.  Fully qualified URLs
    and paths outside the base path are returned untouched.

    >>> strip_base_path("/dav/principals/user/", "https://example.com/dav/")
    '/principals/user/'
    """
    if not path or is_absolute(path):
        return path
    prefix = base_path(base)
    if not prefix:
        return path
    while path == prefix or path.startswith(prefix + "/"):
        path = path[len(prefix) :] or "/"
    return path


def join(base_url: str, path: Optional[str]) -> str:
    """
    Append the decoded ``path`` to ``base_url``, quoting it on the way.
    Fully qualified URLs keep their host, only their path is quoted.

    >>> join("https://example.com/dav/", "/dav/calendars/a%2Fb.ics")
    'https://example.com/dav/calendars/a%252Fb.ics'
    """
    if not path:
        return base_url
    if is_absolute(path):
        parsed = urlparse(path)
        return parsed._replace(path=quote_path(parsed.path)).geturl()
    path = strip_base_path(path, base_url)
    return base_url.rstrip("/") + "/" + quote_path(path.lstrip("/"))


def normalize_href(href: str, base_url: Optional[str] = None) -> str:
    """
    Canonical form of a decoded href, used when comparing hrefs from
    different responses: host-relative, no double slashes and, given
    ``base_url``, without the path of the base address.

    >>> normalize_href("https://example.com/dav//cal/a.ics", "https://example.com/dav/")
    '/cal/a.ics'
    """
    if not href:
        return href
    if is_absolute(href):
        href = urlparse(href).path
    while "//" in href:
        href = href.replace("//", "/")
    if base_url:
        href = strip_base_path(href, base_url)
    return href


def qualify(href: Optional[str], reference: str) -> Optional[str]:
    """
    Give a host-relative ``href`` the scheme and host of ``reference``
    when ``reference`` is a fully qualified URL.  Some servers (iCloud)
    keep the calendar home on another host than the one discovery
    started on, and the hrefs found below it belong to that host.

    The result stays in decoded form.
    """
    if not href or is_absolute(href) or not is_absolute(reference):
        return href
    parsed = urlparse(reference)
    if not href.startswith("/"):
        href = unquote(parsed.path).rstrip("/") + "/" + href
    return f"{parsed.scheme}://{parsed.netloc}{href}"

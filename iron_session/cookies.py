"""
Cookie header adapter.

Reads the session cookie from a request and appends ``Set-Cookie`` headers to
a response. Works with aiohttp requests/responses and with any object that
exposes ``cookies`` / ``headers`` the same way.
"""
import logging
from typing import Any, Optional
from datetime import timezone
from email.utils import format_datetime
from http.cookies import CookieError, Morsel, SimpleCookie

from aiohttp import hdrs
from multidict import CIMultiDict, CIMultiDictProxy

from .conf import CookieOptions
from .exceptions import ConfigurationError

logger = logging.getLogger("iron_session")


def parse_cookie(header: str) -> dict[str, str]:
    """Parse a raw ``Cookie`` header into a name -> value mapping.

    Pairs are parsed one at a time, so a malformed cookie only drops itself.
    The first occurrence of a repeated name wins.
    """
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        if not pair.strip():
            continue
        cookie = SimpleCookie()
        try:
            cookie.load(pair)
        except CookieError as err:
            logger.debug("Ignoring unparseable cookie: %s", err)
            continue
        for name, morsel in cookie.items():
            cookies.setdefault(name, morsel.value)
    return cookies


def _raw_cookie_header(headers: Any) -> str:
    if isinstance(headers, (CIMultiDict, CIMultiDictProxy)):
        return headers.get(hdrs.COOKIE, "")
    # plain mappings built by other frameworks may use any case
    for key, value in headers.items():
        if key.lower() == "cookie":
            return value
    return ""


def get_request_cookie(request: Any, name: str) -> Optional[str]:
    """Return the value of cookie ``name`` sent with ``request``.

    Cookies already parsed by the web framework (``request.cookies``) are
    preferred; otherwise the raw ``Cookie`` header is parsed.
    """
    cookies = getattr(request, "cookies", None)
    if cookies is not None:
        return cookies.get(name)
    headers = getattr(request, "headers", None) or {}
    return parse_cookie(_raw_cookie_header(headers)).get(name)


def serialize_cookie(name: str, value: str, options: CookieOptions) -> str:
    """Build a ``Set-Cookie`` header value.

    Raises:
        ConfigurationError: If ``name`` is not a legal cookie name.
    """
    morsel: Morsel = Morsel()
    try:
        morsel.set(name, value, value)
    except CookieError as err:
        raise ConfigurationError(f"Invalid cookie name: {name!r}") from err
    if options.max_age is not None:
        morsel["max-age"] = options.max_age
    if options.expires is not None:
        expires = options.expires
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        morsel["expires"] = format_datetime(
            expires.astimezone(timezone.utc), usegmt=True
        )
    if options.domain:
        morsel["domain"] = options.domain
    if options.path:
        morsel["path"] = options.path
    if options.http_only:
        morsel["httponly"] = True
    if options.same_site:
        morsel["samesite"] = options.same_site.capitalize()
    if options.secure:
        morsel["secure"] = True
    return morsel.OutputString()


def set_response_cookie(response: Any, serialized: str) -> None:
    """Append ``serialized`` as a new ``Set-Cookie`` header of ``response``.

    Existing ``Set-Cookie`` headers are kept.
    """
    headers = response.headers
    if hasattr(headers, "add"):
        # multidict (aiohttp) keeps every value of a repeated header
        headers.add(hdrs.SET_COOKIE, serialized)
        return
    existing = headers.get(hdrs.SET_COOKIE) or []
    if isinstance(existing, str):
        existing = [existing]
    headers[hdrs.SET_COOKIE] = [*existing, serialized]

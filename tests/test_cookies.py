"""Tests for the cookie header adapter."""
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from aiohttp import hdrs, web
from aiohttp.test_utils import make_mocked_request
from multidict import CIMultiDict

from iron_session.conf import CookieOptions
from iron_session.cookies import (
    get_request_cookie,
    parse_cookie,
    serialize_cookie,
    set_response_cookie,
)
from iron_session.exceptions import ConfigurationError

TOKEN = "Fe26.2*1*abc*def*ghi**jkl*mno-_"


class TestReadCookie:

    def test_parse_cookie(self):
        assert parse_cookie("a=1; b=two") == {"a": "1", "b": "two"}
        assert parse_cookie("") == {}

    def test_parsed_cookies_preferred(self):
        request = SimpleNamespace(
            cookies={"session": "parsed"},
            headers=CIMultiDict({"Cookie": "session=raw"}),
        )
        assert get_request_cookie(request, "session") == "parsed"

    def test_raw_header_fallback(self):
        request = SimpleNamespace(
            headers=CIMultiDict({"Cookie": f"other=1; session={TOKEN}"})
        )
        assert get_request_cookie(request, "session") == TOKEN

    def test_lowercase_plain_header(self):
        request = SimpleNamespace(headers={"cookie": f"session={TOKEN}"})
        assert get_request_cookie(request, "session") == TOKEN

    def test_malformed_cookie_does_not_hide_others(self):
        header = f"broken; other=\"unterminated; session={TOKEN}; last=1"
        cookies = parse_cookie(header)
        assert cookies["session"] == TOKEN
        assert cookies["last"] == "1"
        assert "broken" not in cookies

    def test_first_repeated_name_wins(self):
        assert parse_cookie("a=1; a=2") == {"a": "1"}

    def test_missing_cookie(self):
        request = SimpleNamespace(headers=CIMultiDict())
        assert get_request_cookie(request, "session") is None

    def test_aiohttp_request(self):
        request = make_mocked_request(
            "GET", "/", headers={"Cookie": f"session={TOKEN}"}
        )
        assert get_request_cookie(request, "session") == TOKEN


class TestSerializeCookie:

    def test_attributes(self):
        options = CookieOptions(secure=True, max_age=3540)
        serialized = serialize_cookie("session", TOKEN, options)
        assert serialized.startswith(f"session={TOKEN}; ")
        assert "HttpOnly" in serialized
        assert "Max-Age=3540" in serialized
        assert "Path=/" in serialized
        assert "SameSite=Lax" in serialized
        assert "Secure" in serialized

    def test_without_flags(self):
        options = CookieOptions(http_only=False, same_site=None, path=None)
        serialized = serialize_cookie("session", "value", options)
        assert serialized == "session=value"

    def test_expired_cookie(self):
        options = CookieOptions(max_age=0)
        serialized = serialize_cookie("session", "", options)
        assert serialized.startswith("session=; ")
        assert "Max-Age=0" in serialized

    def test_domain_and_expires(self):
        options = CookieOptions(
            domain="example.com",
            expires=datetime(2030, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        )
        serialized = serialize_cookie("session", "value", options)
        assert "Domain=example.com" in serialized
        assert "expires=Wed, 02 Jan 2030 03:04:05 GMT" in serialized

    def test_illegal_name(self):
        with pytest.raises(ConfigurationError):
            serialize_cookie("bad name;", "value", CookieOptions())


class TestWriteCookie:

    def test_append_to_existing(self):
        response = web.Response()
        response.headers.add(hdrs.SET_COOKIE, "other=1; Path=/")
        set_response_cookie(response, "session=abc; Path=/")
        assert response.headers.getall(hdrs.SET_COOKIE) == [
            "other=1; Path=/",
            "session=abc; Path=/",
        ]

    def test_plain_mapping_headers(self):
        response = SimpleNamespace(headers={})
        set_response_cookie(response, "a=1")
        set_response_cookie(response, "b=2")
        assert response.headers[hdrs.SET_COOKIE] == ["a=1", "b=2"]

import pytest
from aiohttp import web
from aiohttp.test_utils import make_mocked_request

from iron_session.conf import COOKIE_NAME_ENV, ENVIRONMENT_ENV, PASSWORD_ENV

PASSWORD = "complex_password_at_least_32_characters_long"
COOKIE_NAME = "test_session"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Isolate tests from the developer's environment."""
    for name in (COOKIE_NAME_ENV, PASSWORD_ENV, ENVIRONMENT_ENV):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def options():
    return {"cookie_name": COOKIE_NAME, "password": PASSWORD}


@pytest.fixture
def make_request():
    """Build an aiohttp request carrying an optional session cookie."""
    def _make(token=None, name=COOKIE_NAME):
        headers = {}
        if token is not None:
            headers["Cookie"] = f"{name}={token}"
        return make_mocked_request("GET", "/", headers=headers)
    return _make


@pytest.fixture
def response():
    return web.Response()

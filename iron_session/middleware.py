"""aiohttp middleware restoring an IronSession for every request."""
from typing import Union
from collections.abc import Awaitable, Callable

from aiohttp import web

from .conf import (
    SESSION_KEY,
    SessionOptions,
    build_options,
    get_cookie_name,
    get_password,
)
from .exceptions import SessionError
from .session import IronSession, get_iron_session

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def get_session(request: web.Request) -> IronSession:
    """Return the session restored by ``session_middleware``."""
    session = request.get(SESSION_KEY)
    if session is None:
        raise SessionError(
            "Iron Session not found, install `session_middleware` first"
        )
    return session


def session_middleware(
    options: Union[SessionOptions, dict, None] = None,
    **kwargs
):
    """Build a middleware storing an IronSession in ``request[SESSION_KEY]``.

    After the handler returns, a destroyed session expires the cookie and a
    changed session is saved; untouched sessions write nothing.
    """
    opts = build_options(options, **kwargs)
    # fail at startup instead of on every request
    get_cookie_name(opts)
    get_password(opts)

    @web.middleware
    async def middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        session = await get_iron_session(request, None, opts)
        request[SESSION_KEY] = session
        raise_response = False
        try:
            response = await handler(request)
        except web.HTTPException as exc:
            # redirects and errors still carry the session cookie
            response = exc
            raise_response = True
        if session.destroyed or session.is_changed:
            if response.prepared:
                raise SessionError(
                    "Cannot save session data into a prepared response"
                )
            session.bind(response)
            if session.destroyed:
                session.destroy()
            else:
                await session.save()
        if raise_response:
            raise response
        return response

    return middleware

"""Iron Session — stateless sessions stored in sealed, encrypted cookies.

Security Note:
    The whole session payload travels to the client inside the cookie. It is
    encrypted and signed, but its size is bounded by MAX_COOKIE_SIZE and it
    cannot be revoked server-side before it expires.
"""

from .version import __version__
from .conf import (
    CookieOptions,
    PasswordEntry,
    SessionOptions,
    DEFAULT_TTL,
    MAX_COOKIE_SIZE,
    MAX_TTL,
    SESSION_KEY,
    TIMESTAMP_SKEW_SEC,
)
from .exceptions import (
    IronSessionError,
    ConfigurationError,
    SessionError,
    PayloadTooLarge,
    IronError,
    SealInvalid,
)
from .store import IronStore
from .session import IronSession, get_iron_session
from .middleware import session_middleware, get_session

__all__ = [
    "__version__",
    "IronSession",
    "IronStore",
    "get_iron_session",
    "session_middleware",
    "get_session",
    "SessionOptions",
    "CookieOptions",
    "PasswordEntry",
    "DEFAULT_TTL",
    "MAX_COOKIE_SIZE",
    "MAX_TTL",
    "SESSION_KEY",
    "TIMESTAMP_SKEW_SEC",
    "IronSessionError",
    "ConfigurationError",
    "SessionError",
    "PayloadTooLarge",
    "IronError",
    "SealInvalid",
]

"""
Iron Session Configuration — constants, option models and resolution.

Options are resolved in two tiers: explicit value, then environment variable.
A required option missing from both raises ConfigurationError.

Security Note:
    Never log password material. Only log cookie names and password ids.
"""
import os
import logging
from datetime import datetime
from http.cookies import CookieError, Morsel
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationError

logger = logging.getLogger("iron_session")

# Permitted clock skew between client and server, in seconds
TIMESTAMP_SKEW_SEC = 60
# 2^31 - 1 seconds, the largest ttl the primitive handles in milliseconds
MAX_TTL = 2147483647
DEFAULT_TTL = 30 * 24 * 60 * 60  # 30 days
MAX_COOKIE_SIZE = 4096

COOKIE_NAME_ENV = "IRON_SESSION_COOKIE_NAME"
PASSWORD_ENV = "IRON_SESSION_PASSWORD"
ENVIRONMENT_ENV = "ENVIRONMENT"

# request key used by the aiohttp middleware
SESSION_KEY = "iron_session"


class PasswordEntry(BaseModel):
    """One password of a rotation list."""

    id: str = Field(pattern=r"^\w+$")
    secret: str = Field(min_length=1)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Password ids are always strings."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


Password = Union[str, list[PasswordEntry]]


class CookieOptions(BaseModel):
    """Serialization attributes of the session cookie."""

    http_only: bool = True
    path: Optional[str] = "/"
    same_site: Optional[Literal["lax", "strict", "none"]] = "lax"
    secure: bool = False
    max_age: Optional[int] = Field(default=None, ge=0)
    domain: Optional[str] = None
    expires: Optional[datetime] = None

    model_config = {"extra": "forbid"}

    @field_validator("same_site", mode="before")
    @classmethod
    def lower_same_site(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.lower()
        return v


class SessionOptions(BaseModel):
    """Options accepted by IronSession.

    ``cookie_name`` and ``password`` fall back to the
    IRON_SESSION_COOKIE_NAME and IRON_SESSION_PASSWORD environment variables.
    """

    cookie_name: Optional[str] = None
    password: Optional[Password] = None
    ttl: int = Field(default=DEFAULT_TTL, gt=0)
    cookie_options: Optional[CookieOptions] = None


def build_options(
    options: Union[SessionOptions, dict, None] = None,
    **kwargs
) -> SessionOptions:
    """Return a validated SessionOptions from a model, a dict or keywords.

    Raises:
        ConfigurationError: If an option has an invalid value.
    """
    if isinstance(options, SessionOptions):
        if not kwargs:
            return options
        values = options.model_dump(exclude_unset=True)
    else:
        values = dict(options or {})
    values.update(kwargs)
    try:
        return SessionOptions(**values)
    except ValidationError as err:
        raise ConfigurationError(f"Invalid Iron Session options: {err}") from err


def is_production() -> bool:
    """True when the ENVIRONMENT variable names a production deployment."""
    env = os.environ.get(ENVIRONMENT_ENV, "development").lower()
    return env in ("production", "prod")


def check_cookie_name(name: str) -> str:
    """Reject names that cannot be written in a Set-Cookie header.

    Raises:
        ConfigurationError: If ``name`` is reserved or has illegal characters.
    """
    try:
        Morsel().set(name, "", "")
    except CookieError as err:
        raise ConfigurationError(f"Invalid cookie name: {name!r}") from err
    return name


def get_cookie_name(options: Optional[SessionOptions] = None) -> str:
    if options is not None and options.cookie_name:
        return check_cookie_name(options.cookie_name)
    name = os.environ.get(COOKIE_NAME_ENV)
    if name:
        logger.debug("Cookie name read from %s", COOKIE_NAME_ENV)
        return check_cookie_name(name)
    raise ConfigurationError("Missing Iron Session option: `cookie_name`")


def get_password(options: Optional[SessionOptions] = None) -> Password:
    if options is not None and options.password:
        return options.password
    password = os.environ.get(PASSWORD_ENV)
    if password:
        logger.debug("Password read from %s", PASSWORD_ENV)
        return password
    raise ConfigurationError("Missing Iron Session option: `password`")


def get_ttl(options: Optional[SessionOptions] = None) -> int:
    if options is None:
        return DEFAULT_TTL
    return options.ttl


def get_cookie_max_age(options: Optional[SessionOptions] = None) -> int:
    """Cookie lifetime in seconds.

    An explicit ``max_age`` wins; otherwise the cookie expires
    TIMESTAMP_SKEW_SEC before the seal does, so the client drops it first.
    """
    if options is not None and options.cookie_options is not None:
        if options.cookie_options.max_age:
            return min(options.cookie_options.max_age, MAX_TTL)
    ttl = get_ttl(options)
    return max(0, min(ttl - TIMESTAMP_SKEW_SEC, MAX_TTL))


def get_cookie_options(options: Optional[SessionOptions] = None) -> CookieOptions:
    """Merge explicit cookie attributes over the defaults."""
    values: dict[str, Any] = {
        "http_only": True,
        "path": "/",
        "same_site": "lax",
        "secure": is_production(),
    }
    if options is not None and options.cookie_options is not None:
        values.update(options.cookie_options.model_dump(exclude_unset=True))
    values["max_age"] = get_cookie_max_age(options)
    return CookieOptions(**values)

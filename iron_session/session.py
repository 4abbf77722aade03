"""
IronSession — binds an IronStore to one request/response pair.

Provides the public API of a session:
- ``get`` / ``set`` / ``unset`` / ``clear`` — delegated to the store
- ``restore()`` — unseal the request cookie into the store
- ``save()`` — seal the store into a response cookie
- ``destroy()`` — empty the store and expire the cookie
- ``get_iron_session()`` — construct and restore in one step
"""
import logging
from typing import Any, Optional, Union
from collections.abc import Iterator

from .conf import (
    MAX_COOKIE_SIZE,
    SessionOptions,
    build_options,
    get_cookie_name,
    get_cookie_options,
    get_password,
    get_ttl,
)
from .cookies import get_request_cookie, serialize_cookie, set_response_cookie
from .exceptions import PayloadTooLarge, SessionError
from .store import IronStore

logger = logging.getLogger("iron_session")


class IronSession:
    """Session stored in a sealed cookie.

    A fresh IronStore backs every instance; sessions must not be shared
    between requests.
    """

    def __init__(
        self,
        request: Any,
        response: Any = None,
        options: Union[SessionOptions, dict, None] = None,
        **kwargs
    ):
        self.request = request
        self.response = response
        opts = build_options(options, **kwargs)
        self.cookie_name = get_cookie_name(opts)
        self.cookie_options = get_cookie_options(opts)
        self._store = IronStore(get_password(opts), get_ttl(opts))
        self._destroyed = False

    def __repr__(self) -> str:
        return (
            f'<IronSession [cookie:{self.cookie_name}, '
            f'destroyed:{self._destroyed}] {self._store!r}>'
        )

    # --- Store delegation ---

    def get(self, key: str, default: Any = None) -> Any:
        return self._store.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._destroyed = False
        self._store.set(key, value)

    def unset(self, key: str) -> None:
        self._store.unset(key)

    def clear(self) -> None:
        self._store.clear()

    def keys(self) -> list[str]:
        return self._store.keys()

    def __contains__(self, key: object) -> bool:
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)

    def __iter__(self) -> Iterator[str]:
        return iter(self._store)

    @property
    def empty(self) -> bool:
        return self._store.empty

    @property
    def is_changed(self) -> bool:
        return self._store.is_changed

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    # --- Cookie I/O ---

    def bind(self, response: Any) -> None:
        """Attach the response that will receive the session cookie."""
        self.response = response

    def _read_cookie(self) -> Optional[str]:
        return get_request_cookie(self.request, self.cookie_name)

    def _write_cookie(self, value: str) -> None:
        if self.response is None:
            raise SessionError(
                f"Iron Session {self.cookie_name!r} has no response to write to"
            )
        # an empty value immediately expires the cookie
        options = self.cookie_options
        if not value:
            options = options.model_copy(update={"max_age": 0})
        serialized = serialize_cookie(self.cookie_name, value, options)
        size = len(serialized.encode("utf-8"))
        if size > MAX_COOKIE_SIZE:
            logger.warning(
                "Iron Session cookie %s is too big: %d bytes",
                self.cookie_name, size,
            )
            raise PayloadTooLarge(size, MAX_COOKIE_SIZE)
        set_response_cookie(self.response, serialized)

    async def restore(self) -> bool:
        """Unseal the request cookie into the store.

        Returns:
            True if a valid session cookie was found, False otherwise.
        """
        sealed = self._read_cookie()
        if sealed:
            return await self._store.unseal(sealed)
        return False

    async def save(self) -> None:
        """Seal the store and write it as the response cookie.

        Raises:
            PayloadTooLarge: If the cookie exceeds MAX_COOKIE_SIZE bytes.
            SessionError: If no response is bound.
        """
        self._write_cookie(await self._store.seal())
        self._destroyed = False

    def destroy(self) -> None:
        """Empty the store and expire the client cookie.

        When no response is bound yet, the expiring cookie is left for the
        middleware to write.
        """
        self._store.clear()
        self._destroyed = True
        if self.response is not None:
            self._write_cookie("")


async def get_iron_session(
    request: Any,
    response: Any = None,
    options: Union[SessionOptions, dict, None] = None,
    **kwargs
) -> IronSession:
    """Create an IronSession and restore it from the request cookie."""
    session = IronSession(request, response, options, **kwargs)
    await session.restore()
    return session

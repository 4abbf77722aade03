"""
IronStore — in-memory session bag sealed into a single token.

The bag is never aliased with caller values: ``get`` and ``set`` work on deep
copies. ``unseal`` reports expired, tampered or foreign tokens as ``False``
and lets every other failure propagate.
"""
import copy
import logging
from typing import Any, Optional, Union
from collections.abc import Iterator, Mapping, Sequence

from . import iron
from .conf import MAX_TTL, PasswordEntry
from .exceptions import ConfigurationError, SealInvalid, SerializationError

logger = logging.getLogger("iron_session")

DEFAULT_PASSWORD_ID = "1"

DenormalizedPassword = Union[str, Sequence[Union[PasswordEntry, Mapping[str, Any]]]]


def _entry(item: Union[PasswordEntry, Mapping[str, Any]]) -> dict[str, str]:
    if isinstance(item, PasswordEntry):
        return {"id": item.id, "secret": item.secret}
    try:
        return {"id": str(item["id"]), "secret": item["secret"]}
    except (KeyError, TypeError) as err:
        raise ConfigurationError(
            "Password entries must define `id` and `secret`"
        ) from err


class IronStore:
    """Encrypted key/value storage serialized to and from a sealed token."""

    def __init__(
        self,
        password: DenormalizedPassword,
        ttl: int,
        options: Optional[iron.SealOptions] = None
    ):
        self._seal_password = self.normalize_seal_password(password)
        self._unseal_password = self.normalize_unseal_password(password)
        base = options or iron.DEFAULTS
        # ttl is given in seconds, iron works in milliseconds
        self._seal_options = base.model_copy(
            update={"ttl": min(ttl, MAX_TTL) * 1000}
        )
        self._unsealed: dict[str, Any] = {}
        self._changed = False

    def __repr__(self) -> str:
        return (
            f'<IronStore [id:{self._seal_password["id"]}, '
            f'changed:{self._changed}] keys={list(self._unsealed.keys())}>'
        )

    # --- Bag accessors ---

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._unsealed:
            return default
        return copy.deepcopy(self._unsealed[key])

    def set(self, key: str, value: Any) -> None:
        self._unsealed[key] = copy.deepcopy(value)
        self._changed = True

    def unset(self, key: str) -> None:
        if key in self._unsealed:
            del self._unsealed[key]
            self._changed = True

    def clear(self) -> None:
        self._unsealed = {}
        self._changed = True

    def keys(self) -> list[str]:
        return list(self._unsealed.keys())

    def __contains__(self, key: object) -> bool:
        return key in self._unsealed

    def __len__(self) -> int:
        return len(self._unsealed)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._unsealed))

    @property
    def empty(self) -> bool:
        return not self._unsealed

    @property
    def is_changed(self) -> bool:
        return self._changed

    # --- Seal / Unseal ---

    async def seal(self) -> str:
        """Seal the current bag into a token.

        Raises:
            IronError: If the bag cannot be serialized or the password is invalid.
        """
        sealed = iron.seal(self._unsealed, self._seal_password, self._seal_options)
        self._changed = False
        return sealed

    async def unseal(self, sealed: str) -> bool:
        """Replace the bag with the contents of ``sealed``.

        Returns:
            True on success; False if the token is expired, tampered with,
            malformed or sealed under an unknown password id.
        """
        try:
            unsealed = iron.unseal(sealed, self._unseal_password, self._seal_options)
        except SealInvalid as err:
            # "normal" errors that only mean the seal is no longer valid
            logger.debug("Discarding invalid seal: %s", err)
            return False
        if not isinstance(unsealed, dict):
            raise SerializationError("Sealed object is not a session mapping")
        self._unsealed = unsealed
        self._changed = False
        return True

    # --- Password normalization ---

    @staticmethod
    def normalize_seal_password(password: DenormalizedPassword) -> dict[str, str]:
        """Password used for sealing: the first (newest) entry.

        Raises:
            ConfigurationError: If ``password`` is empty.
        """
        if not password:
            raise ConfigurationError("Empty IronStore argument: `password`")
        if isinstance(password, str):
            return {"id": DEFAULT_PASSWORD_ID, "secret": password}
        return _entry(password[0])

    @staticmethod
    def normalize_unseal_password(password: DenormalizedPassword) -> dict[str, str]:
        """Mapping of every known password id to its secret.

        Raises:
            ConfigurationError: If ``password`` is empty.
        """
        if not password:
            raise ConfigurationError("Empty IronStore argument: `password`")
        if isinstance(password, str):
            return {DEFAULT_PASSWORD_ID: password}
        normalized: dict[str, str] = {}
        for item in password:
            entry = _entry(item)
            normalized[entry["id"]] = entry["secret"]
        return normalized

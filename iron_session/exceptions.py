"""Iron Session exceptions.

Recoverable unseal failures derive from ``SealInvalid``; they are swallowed by
the store and reported as ``False``. Every other error propagates.
"""


class IronSessionError(Exception):
    """Base class for all Iron Session errors."""


class ConfigurationError(IronSessionError, ValueError):
    """Missing or invalid session configuration."""


class SessionError(IronSessionError, RuntimeError):
    """Session handle used in an invalid state."""


class PayloadTooLarge(IronSessionError):
    """Serialized session cookie exceeds the browser size limit."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"Iron Session cookie length is too big: {size} (limit {limit})"
        )


class IronError(IronSessionError):
    """Sealing primitive failure."""


class PasswordError(IronError):
    """Invalid or too short password."""


class DecryptionError(IronError):
    """Ciphertext could not be decrypted after a valid MAC."""


class SerializationError(IronError):
    """Object could not be converted to or from JSON."""


class SealInvalid(IronError):
    """Token is no longer (or never was) a valid seal."""


class ExpiredSeal(SealInvalid):
    """Token expiration is in the past."""


class BadHmac(SealInvalid):
    """Integrity check failed."""


class PasswordNotFound(SealInvalid):
    """Token was sealed with a password id that is not configured."""

    def __init__(self, password_id: str):
        self.password_id = password_id
        super().__init__(f"Cannot find password: {password_id}")


class MalformedSeal(SealInvalid):
    """Token does not have the sealed format."""

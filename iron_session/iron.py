"""
Iron — authenticated encryption of JSON objects into opaque tokens.

Token format ("Fe26.2"), eight components joined by ``*``::

    Fe26.2*<password id>*<encryption salt>*<iv>*<ciphertext>*<expiration>*<hmac salt>*<hmac>

- Encryption: PBKDF2-SHA1(password, salt) → AES-256-CBC (PKCS7 padding)
- Integrity: PBKDF2-SHA1(password, salt) → HMAC-SHA256 over the first six components
- Binary parts are base64url encoded without padding; salts are hex strings.
- Expiration is a Unix timestamp in milliseconds, empty when there is no ttl.

Security Note:
    Never log passwords, tokens or unsealed objects.
"""
import os
import re
import time
import base64
import binascii
import secrets
import logging
from typing import Any, Literal, Optional, Union
from collections.abc import Mapping

import orjson
from pydantic import BaseModel, Field
from cryptography.hazmat.primitives import hashes, hmac, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .exceptions import (
    BadHmac,
    DecryptionError,
    ExpiredSeal,
    MalformedSeal,
    PasswordError,
    PasswordNotFound,
    SerializationError,
)

logger = logging.getLogger("iron_session")

MAC_FORMAT_VERSION = "2"
MAC_PREFIX = f"Fe26.{MAC_FORMAT_VERSION}"

# algorithm -> (key bits, iv bits)
ALGORITHMS: dict[str, tuple[int, int]] = {
    "aes-128-ctr": (128, 128),
    "aes-256-cbc": (256, 128),
    "sha256": (256, 0),
}

_PASSWORD_ID = re.compile(r"^\w+$")
_EXPIRATION = re.compile(r"^[0-9]+$")

PasswordSecret = Union[str, Mapping[str, Any]]
PasswordHash = Mapping[str, Any]


class KeyOptions(BaseModel):
    """Key derivation settings for one of the two keys of a seal."""

    algorithm: Literal["aes-128-ctr", "aes-256-cbc", "sha256"]
    salt_bits: int = Field(default=256, ge=8)
    iterations: int = Field(default=1, ge=1)
    min_password_length: int = Field(default=32, ge=0)

    model_config = {"frozen": True}


class SealOptions(BaseModel):
    """Seal/unseal settings; ``ttl`` is in milliseconds, 0 means no expiry."""

    encryption: KeyOptions = KeyOptions(algorithm="aes-256-cbc")
    integrity: KeyOptions = KeyOptions(algorithm="sha256")
    ttl: int = Field(default=0, ge=0)
    timestamp_skew_sec: int = Field(default=60, ge=0)
    localtime_offset_msec: int = 0

    model_config = {"frozen": True}


DEFAULTS = SealOptions()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def now_msec(options: SealOptions = DEFAULTS) -> int:
    """Current time in milliseconds, shifted by the configured offset."""
    return int(time.time() * 1000) + options.localtime_offset_msec


def generate_password(length: int = 64) -> str:
    """Generate a random password suitable for sealing.

    This is a utility for operators to create new secrets.
    """
    return secrets.token_urlsafe(length)[:length]


def _normalize_password(password: PasswordSecret) -> tuple[str, str, str]:
    """Return (id, encryption secret, integrity secret)."""
    if isinstance(password, str):
        return "", password, password
    if isinstance(password, Mapping):
        password_id = str(password.get("id") or "")
        if "secret" in password:
            return password_id, password["secret"], password["secret"]
        if "encryption" in password and "integrity" in password:
            return password_id, password["encryption"], password["integrity"]
    raise PasswordError("Invalid password")


def generate_key(
    password: str,
    options: KeyOptions,
    salt: Optional[str] = None,
    iv: Optional[bytes] = None
) -> tuple[bytes, str, Optional[bytes]]:
    """Derive a key from a password.

    Args:
        password: Secret string.
        options: Algorithm and derivation settings.
        salt: Hex salt; a random one is generated when omitted.
        iv: Initialization vector; generated for cipher algorithms.

    Returns:
        Tuple of (key, salt, iv). ``iv`` is None for integrity keys.

    Raises:
        PasswordError: If the password is not a string or is too short.
    """
    if not isinstance(password, str) or not password:
        raise PasswordError("Empty password")
    if len(password) < options.min_password_length:
        raise PasswordError(
            "Password string too short "
            f"(min {options.min_password_length} characters required)"
        )
    key_bits, iv_bits = ALGORITHMS[options.algorithm]
    if salt is None:
        salt = os.urandom((options.salt_bits + 7) // 8).hex()
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA1(),
        length=key_bits // 8,
        salt=salt.encode("utf-8"),
        iterations=options.iterations,
    )
    key = kdf.derive(password.encode("utf-8"))
    if iv_bits and iv is None:
        iv = os.urandom(iv_bits // 8)
    return key, salt, iv if iv_bits else None


def _cipher(algorithm: str, key: bytes, iv: bytes) -> Cipher:
    if algorithm == "aes-128-ctr":
        return Cipher(algorithms.AES(key), modes.CTR(iv))
    return Cipher(algorithms.AES(key), modes.CBC(iv))


def encrypt(
    password: str, options: KeyOptions, data: bytes
) -> tuple[bytes, str, bytes]:
    """Encrypt ``data``; returns (ciphertext, salt, iv)."""
    key, salt, iv = generate_key(password, options)
    encryptor = _cipher(options.algorithm, key, iv).encryptor()
    if options.algorithm == "aes-256-cbc":
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        data = padder.update(data) + padder.finalize()
    return encryptor.update(data) + encryptor.finalize(), salt, iv


def decrypt(
    password: str, options: KeyOptions, data: bytes, salt: str, iv: bytes
) -> bytes:
    """Decrypt ``data`` with a key derived from ``salt`` and ``iv``."""
    key, _, _ = generate_key(password, options, salt=salt, iv=iv)
    try:
        decryptor = _cipher(options.algorithm, key, iv).decryptor()
        plain = decryptor.update(data) + decryptor.finalize()
        if options.algorithm == "aes-256-cbc":
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plain = unpadder.update(plain) + unpadder.finalize()
    except ValueError as err:
        raise DecryptionError(f"Failed decrypting sealed object: {err}") from err
    return plain


def hmac_with_password(
    password: str,
    options: KeyOptions,
    data: str,
    salt: Optional[str] = None
) -> tuple[str, str]:
    """HMAC ``data``; returns (base64url digest, salt)."""
    key, salt, _ = generate_key(password, options, salt=salt)
    mac = hmac.HMAC(key, hashes.SHA256())
    mac.update(data.encode("utf-8"))
    return b64url_encode(mac.finalize()), salt


# ---------------------------------------------------------------------------
# Seal / Unseal
# ---------------------------------------------------------------------------

def seal(
    obj: Any,
    password: PasswordSecret,
    options: SealOptions = DEFAULTS
) -> str:
    """Serialize, encrypt and sign ``obj`` into a token.

    Args:
        obj: JSON-serializable object.
        password: Secret string, or a mapping with ``id`` and ``secret``.
        options: Seal settings.

    Returns:
        Sealed token string.

    Raises:
        PasswordError: Invalid password or password id.
        SerializationError: If ``obj`` cannot be serialized to JSON.
    """
    now = now_msec(options)
    password_id, encryption_secret, integrity_secret = _normalize_password(password)
    if password_id and not _PASSWORD_ID.match(password_id):
        raise PasswordError("Invalid password id")
    try:
        object_bytes = orjson.dumps(obj)
    except orjson.JSONEncodeError as err:
        raise SerializationError(
            f"Failed to stringify object: {err}"
        ) from err

    encrypted, salt, iv = encrypt(encryption_secret, options.encryption, object_bytes)
    expiration = str(now + options.ttl) if options.ttl else ""
    mac_base = "*".join((
        MAC_PREFIX,
        password_id,
        salt,
        b64url_encode(iv),
        b64url_encode(encrypted),
        expiration,
    ))
    digest, mac_salt = hmac_with_password(integrity_secret, options.integrity, mac_base)
    return f"{mac_base}*{mac_salt}*{digest}"


def unseal(
    sealed: str,
    password: Union[str, PasswordHash],
    options: SealOptions = DEFAULTS
) -> Any:
    """Verify, decrypt and deserialize a token.

    Args:
        sealed: Token produced by ``seal``.
        password: Secret string, or a mapping of password id to secret.
            A mapping is always looked up by the token password id; its
            values are secret strings or ``secret`` mappings.
        options: Seal settings.

    Returns:
        The unsealed object.

    Raises:
        MalformedSeal: Token does not have the sealed format.
        ExpiredSeal: Token expiration has passed (beyond the allowed skew).
        PasswordNotFound: Token password id is not in ``password``.
        BadHmac: Integrity check failed.
        DecryptionError: Ciphertext could not be decrypted.
        SerializationError: Decrypted payload is not valid JSON.
    """
    now = now_msec(options)
    parts = sealed.split("*")
    if len(parts) != 8:
        raise MalformedSeal("Incorrect number of sealed components")
    (
        prefix, password_id, encryption_salt, encryption_iv,
        encrypted_b64, expiration, hmac_salt, hmac_digest,
    ) = parts
    mac_base = "*".join(parts[:6])

    if prefix != MAC_PREFIX:
        raise MalformedSeal("Wrong mac prefix")
    if expiration:
        if not _EXPIRATION.match(expiration):
            raise MalformedSeal("Invalid expiration")
        if int(expiration) <= now - options.timestamp_skew_sec * 1000:
            raise ExpiredSeal("Expired seal")

    if isinstance(password, Mapping):
        secret = password.get(password_id or "default")
        if not secret:
            raise PasswordNotFound(password_id)
        password = secret
    _, encryption_secret, integrity_secret = _normalize_password(password)

    digest, _ = hmac_with_password(
        integrity_secret, options.integrity, mac_base, salt=hmac_salt
    )
    if not secrets.compare_digest(
        digest.encode("ascii"), hmac_digest.encode("utf-8")
    ):
        raise BadHmac("Bad hmac value")

    try:
        encrypted = b64url_decode(encrypted_b64)
        iv = b64url_decode(encryption_iv)
    except (binascii.Error, ValueError) as err:
        raise DecryptionError(f"Invalid sealed encoding: {err}") from err
    decrypted = decrypt(
        encryption_secret, options.encryption, encrypted, encryption_salt, iv
    )
    try:
        return orjson.loads(decrypted)
    except orjson.JSONDecodeError as err:
        raise SerializationError(
            f"Failed parsing sealed object JSON: {err}"
        ) from err

"""
Vault Crypto Core - Key derivation, password verification and AEAD encryption.

- Key derivation: Argon2id(password, salt) → 32-byte raw hash → AES-256 key
- Password verifier: Argon2 PHC string with its own random salt
- Secret encryption: AES-256-GCM, fresh random 96-bit nonce per call

The verifier salt and the key-derivation salt are independent: the verifier
is authentication only, the key is recreated from the dedicated salt.

Security Note:
    Never log plaintext, ciphertext, passwords or key material.
    Python cannot guarantee that no copy of a key survives in memory (the
    Argon2 output and the AESGCM context both hold their own copies);
    :class:`SecretKey` only guarantees its own buffer is zeroed on release.
"""
import os
import base64
import logging
from typing import Annotated, Any, Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import BaseModel, BeforeValidator, Field, PlainSerializer, model_validator

from ..exceptions import CorruptVaultError, DecryptionError, EncodingError

logger = logging.getLogger("sentinel.vault")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # GCM tag
KEY_LENGTH = 32  # AES-256
SALT_LENGTH = 32


# ---------------------------------------------------------------------------
# Bytes as base64 text in persisted records
# ---------------------------------------------------------------------------

def _decode_b64(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True)
        except ValueError as err:
            raise ValueError(f"invalid base64 data: {err}") from err
    return value


def _encode_b64(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


B64Bytes = Annotated[
    bytes,
    BeforeValidator(_decode_b64),
    PlainSerializer(_encode_b64, return_type=str, when_used="json"),
]


# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------

class SecretKey:
    """A 256-bit key held in a mutable buffer that is zeroed on release.

    Use as a context manager, or call :meth:`wipe` explicitly; the buffer is
    also wiped when the object is garbage collected.
    """

    __slots__ = ("_buf", "_wiped")

    def __init__(self, key: bytes):
        if len(key) != KEY_LENGTH:
            raise ValueError(
                f"Secret key must be exactly {KEY_LENGTH} bytes, got {len(key)}"
            )
        self._buf = bytearray(key)
        self._wiped = False

    @property
    def wiped(self) -> bool:
        return self._wiped

    def as_bytes(self) -> bytes:
        """Return a copy of the key bytes.

        Raises:
            ValueError: If the key has already been wiped.
        """
        if self._wiped:
            raise ValueError("Secret key has been wiped")
        return bytes(self._buf)

    def wipe(self) -> None:
        """Overwrite the key buffer with zeros."""
        self._buf[:] = bytes(len(self._buf))
        self._wiped = True

    def __enter__(self) -> "SecretKey":
        return self

    def __exit__(self, *exc_info) -> None:
        self.wipe()

    def __del__(self) -> None:
        try:
            self.wipe()
        except AttributeError:
            # __init__ failed before the buffer existed
            pass

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SecretKey):
            return NotImplemented
        return self._buf == other._buf and self._wiped == other._wiped

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        state = "wiped" if self._wiped else "active"
        return f"<SecretKey {state}>"


class KdfParams(BaseModel):
    """Argon2id cost parameters for key derivation."""

    time_cost: int = Field(default=3, ge=1)
    memory_cost: int = Field(default=65536, ge=8)  # KiB
    parallelism: int = Field(default=4, ge=1)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_costs(self) -> "KdfParams":
        """Argon2 requires at least 8 KiB of memory per lane."""
        if self.memory_cost < 8 * self.parallelism:
            raise ValueError(
                f"memory_cost {self.memory_cost} must be at least "
                f"8 * parallelism ({8 * self.parallelism})"
            )
        return self


def generate_salt() -> bytes:
    """Generate a random 32-byte key-derivation salt."""
    return os.urandom(SALT_LENGTH)


def derive_key(password: str, salt: bytes, params: Optional[KdfParams] = None) -> SecretKey:
    """Derive a 32-byte encryption key from a password with Argon2id.

    Deterministic: identical (password, salt, params) always give the same
    key. This is the expensive step of every session.

    Args:
        password: Master password.
        salt: Key-derivation salt stored in the identity record.
        params: Argon2id cost parameters (defaults when omitted).

    Returns:
        SecretKey owning the derived bytes.
    """
    params = params or KdfParams()
    raw = hash_secret_raw(
        secret=password.encode("utf-8"),
        salt=salt,
        time_cost=params.time_cost,
        memory_cost=params.memory_cost,
        parallelism=params.parallelism,
        hash_len=KEY_LENGTH,
        type=Type.ID,
    )
    return SecretKey(raw)


# ---------------------------------------------------------------------------
# Password verifier
# ---------------------------------------------------------------------------

def hash_password(password: str, hasher: Optional[PasswordHasher] = None) -> str:
    """Hash a password into a self-describing Argon2 verifier string.

    Each call uses a fresh random salt, so two hashes of the same password
    differ.
    """
    hasher = hasher or PasswordHasher()
    return hasher.hash(password)


def verify_password(
    password: str,
    verifier: str,
    hasher: Optional[PasswordHasher] = None,
) -> bool:
    """Check a password against a stored Argon2 verifier.

    Comparison is delegated to argon2 (constant time).

    Returns:
        True on match, False on mismatch.

    Raises:
        CorruptVaultError: If the verifier is not a valid Argon2 hash.
    """
    hasher = hasher or PasswordHasher()
    try:
        return hasher.verify(verifier, password)
    except VerificationError:
        return False
    except InvalidHashError as err:
        raise CorruptVaultError("Stored password verifier is malformed") from err


# ---------------------------------------------------------------------------
# Authenticated encryption
# ---------------------------------------------------------------------------

class EncryptedData(BaseModel):
    """AES-GCM ciphertext (tag appended) and the nonce it was sealed with."""

    ciphertext: B64Bytes
    nonce: B64Bytes

    model_config = {"frozen": True}


class CryptoEngine:
    """AES-256-GCM over a single session key.

    The engine owns the key and holds no other mutable state, so one instance
    can be shared between threads. :meth:`close` wipes the key.
    """

    def __init__(self, key: SecretKey):
        self._key = key
        self._cipher: Optional[AESGCM] = AESGCM(key.as_bytes())

    @property
    def closed(self) -> bool:
        return self._cipher is None

    def _get_cipher(self) -> AESGCM:
        if self._cipher is None:
            raise RuntimeError("Crypto engine is closed")
        return self._cipher

    def encrypt(self, plaintext: str) -> EncryptedData:
        """Encrypt text under a fresh random nonce.

        Args:
            plaintext: Text to encrypt.

        Returns:
            EncryptedData with ciphertext+tag and nonce.
        """
        cipher = self._get_cipher()
        nonce = os.urandom(NONCE_SIZE)
        ct = cipher.encrypt(nonce, plaintext.encode("utf-8"), None)
        return EncryptedData(ciphertext=ct, nonce=nonce)

    def decrypt(self, data: EncryptedData) -> str:
        """Verify and decrypt.

        Args:
            data: Output of :meth:`encrypt`.

        Returns:
            The original text.

        Raises:
            DecryptionError: If the tag does not verify or the input is
                truncated; no plaintext is returned.
            EncodingError: If the authenticated bytes are not UTF-8.
        """
        cipher = self._get_cipher()
        if len(data.nonce) != NONCE_SIZE:
            raise DecryptionError(
                f"nonce must be {NONCE_SIZE} bytes, got {len(data.nonce)}"
            )
        if len(data.ciphertext) < TAG_SIZE:
            raise DecryptionError(
                f"ciphertext too short: {len(data.ciphertext)} bytes "
                f"(minimum {TAG_SIZE})"
            )
        try:
            plaintext = cipher.decrypt(data.nonce, data.ciphertext, None)
        except InvalidTag:
            logger.debug("AES-GCM tag verification failed")
            raise DecryptionError(
                "Decryption failed: wrong key or tampered data"
            ) from None
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as err:
            raise EncodingError("Decrypted data is not valid UTF-8") from err

    def close(self) -> None:
        """Drop the cipher and wipe the owned key."""
        self._cipher = None
        self._key.wipe()

    def __enter__(self) -> "CryptoEngine":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

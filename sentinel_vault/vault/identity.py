"""
Vault Identity - Master password verification and session-key derivation.

The identity record is written once at init and read on every session:

    {password_hash, salt, kdf: {time_cost, memory_cost, parallelism}, created_at}

``password_hash`` is an Argon2 verifier with its own embedded salt; ``salt``
is a separate random value used only to derive the encryption key. The key
itself is never stored.

Security Note:
    Never log passwords, verifiers or keys. Failed authentications are logged
    without the supplied password.
"""
import logging
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..exceptions import (
    AlreadyInitializedError,
    InvalidCredentialsError,
    MissingVaultError,
    PasswordMismatchError,
    WeakPasswordError,
)
from .config import VaultConfig
from .crypto import (
    SALT_LENGTH,
    B64Bytes,
    KdfParams,
    SecretKey,
    derive_key,
    generate_salt,
    hash_password,
    verify_password,
)
from .lease import utcnow
from .models import dumps, loads
from .storage import atomic_write, read_bytes

logger = logging.getLogger("sentinel.vault")


def validate_new_password(
    password: str,
    confirmation: Optional[str] = None,
    min_length: int = 8,
) -> None:
    """Check the preconditions for a new master password.

    Args:
        password: Proposed password.
        confirmation: Repeated entry; skipped when None.
        min_length: Minimum number of characters.

    Raises:
        WeakPasswordError: If the password is too short.
        PasswordMismatchError: If the confirmation differs.
    """
    if len(password) < min_length:
        raise WeakPasswordError(
            f"Password must be at least {min_length} characters long"
        )
    if confirmation is not None and password != confirmation:
        raise PasswordMismatchError("Passwords do not match")


class Identity(BaseModel):
    """Persisted password verifier and key-derivation salt."""

    password_hash: str
    salt: B64Bytes
    kdf: KdfParams = Field(default_factory=KdfParams)
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("salt")
    @classmethod
    def validate_salt(cls, v: bytes) -> bytes:
        if len(v) != SALT_LENGTH:
            raise ValueError(
                f"Key-derivation salt must be {SALT_LENGTH} bytes, got {len(v)}"
            )
        return v

    @classmethod
    def create(
        cls,
        password: str,
        config: VaultConfig,
        confirmation: Optional[str] = None,
    ) -> "Identity":
        """Build a new identity after validating the password.

        Raises:
            WeakPasswordError: Password shorter than ``config.min_password_length``.
            PasswordMismatchError: Confirmation given and different.
        """
        validate_new_password(password, confirmation, config.min_password_length)
        return cls(
            password_hash=hash_password(password, config.password_hasher()),
            salt=generate_salt(),
            kdf=config.kdf_params,
        )

    @staticmethod
    def exists(config: VaultConfig) -> bool:
        return config.identity_path.exists()

    @classmethod
    def load(cls, config: VaultConfig) -> "Identity":
        """Read the identity record.

        Raises:
            MissingVaultError: If no identity has been created.
            CorruptVaultError: If the record cannot be parsed.
        """
        try:
            payload = read_bytes(config.identity_path)
        except FileNotFoundError:
            raise MissingVaultError(
                "Vault not initialized. Run 'sentinel-vault init' first."
            ) from None
        return loads(cls, payload, "Identity record")

    def save(self, config: VaultConfig, overwrite: bool = False) -> None:
        """Write the identity record atomically.

        Raises:
            AlreadyInitializedError: If a record exists and ``overwrite`` is False.
        """
        if not overwrite and self.exists(config):
            raise AlreadyInitializedError("Vault already initialized")
        atomic_write(config.identity_path, dumps(self))
        logger.debug("Identity written to %s", config.identity_path)

    def verify_password(self, password: str) -> bool:
        return verify_password(password, self.password_hash)

    def derive_key(self, password: str) -> SecretKey:
        """Verify ``password`` then derive the session key from it.

        Raises:
            InvalidCredentialsError: If the password does not match.
        """
        if not self.verify_password(password):
            logger.warning("Master password verification failed")
            raise InvalidCredentialsError("Invalid password")
        return derive_key(password, self.salt, self.kdf)


def authenticate(config: VaultConfig, password: str) -> tuple[Identity, SecretKey]:
    """Load the identity, verify the password and derive the session key.

    Returns:
        Tuple of (identity, session key).

    Raises:
        MissingVaultError: If the vault was never initialized.
        InvalidCredentialsError: On a wrong password.
        CorruptVaultError: If the identity record is unreadable.
    """
    identity = Identity.load(config)
    key = identity.derive_key(password)
    logger.debug("Session key derived")
    return identity, key

"""
SentinelVault exceptions.

Every failure raised by the vault core derives from :class:`VaultError`, so
callers can catch the whole family at the outer surface. Validation errors
are also ``ValueError`` and lookups are also ``LookupError``.
"""


class VaultError(Exception):
    """Base class for all vault failures."""


class ValidationError(VaultError, ValueError):
    """Bad user input: secret name, secret value, duration or password."""


class WeakPasswordError(ValidationError):
    """The new master password is shorter than the configured minimum."""


class PasswordMismatchError(ValidationError):
    """The new master password and its confirmation differ."""


class InvalidCredentialsError(VaultError):
    """The supplied master password does not match the stored verifier."""


class MissingVaultError(VaultError):
    """No identity or vault file exists yet."""


class AlreadyInitializedError(VaultError):
    """An identity already exists; the vault cannot be initialized twice."""


class CorruptVaultError(VaultError):
    """A persisted record could not be parsed."""


class DecryptionError(VaultError):
    """The authentication tag did not verify (wrong key or tampered data)."""


class EncodingError(VaultError):
    """Decrypted bytes are not valid UTF-8 text."""


class SecretNotFoundError(VaultError, LookupError):
    """The named secret does not exist."""


class VaultIOError(VaultError):
    """A filesystem operation failed; the OSError is chained as the cause."""


class ConcurrentModificationError(VaultError):
    """The vault file changed on disk since this session last read or wrote it."""

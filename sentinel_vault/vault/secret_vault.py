"""
Vault - Password-protected secret store persisted as one JSON file.

Provides the public API of the secret store:
- ``Vault.init(config, password)`` - create the identity and an empty vault
- ``Vault.load(config, password)`` - authenticate, read, sweep expired secrets
- ``add_secret`` / ``get_secret`` / ``list_secrets`` / ``remove_secret``
- ``set_expiry`` - attach or refresh a lease
- ``create_backup`` / ``get_stats``

Every mutation works on a deep copy of the aggregate. The copy is written
atomically and only then becomes the in-memory state, so a failed write
leaves memory and disk as they were.

Concurrency Note:
    One Vault per process. There is no cross-process lock. Before each write
    the on-disk digest is compared with the digest this session last read or
    wrote; a mismatch raises ConcurrentModificationError instead of silently
    discarding another invocation's update. A race between that check and
    the rename is still possible (last writer wins). Reads never raise it:
    an expired read still returns None and a tracked read still returns the
    value, with the bookkeeping write skipped.

Security Note:
    Never log secret values, ciphertext or keys. Only names and counts.
"""
import logging
from datetime import datetime
from typing import Optional

from ..exceptions import (
    AlreadyInitializedError,
    ConcurrentModificationError,
    MissingVaultError,
    SecretNotFoundError,
)
from .config import VaultConfig
from .crypto import CryptoEngine
from .identity import Identity, authenticate
from .lease import Lease, parse_duration, utcnow
from .models import BackupData, SecretEntry, VaultData, VaultStats, dumps, loads
from .storage import atomic_write, digest, file_size, read_bytes
from .validation import sanitize_secret_name, validate_secret_value

logger = logging.getLogger("sentinel.vault")


class Vault:
    """An unlocked vault session.

    Build instances with :meth:`load`; the constructor expects an already
    authenticated identity and engine.
    """

    def __init__(
        self,
        config: VaultConfig,
        identity: Identity,
        engine: CryptoEngine,
        data: VaultData,
        disk_digest: Optional[str],
    ):
        self._config = config
        self._identity = identity
        self._engine = engine
        self._data = data
        self._digest = disk_digest

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @classmethod
    def init(
        cls,
        config: VaultConfig,
        password: str,
        confirmation: Optional[str] = None,
    ) -> Identity:
        """Create the identity record and an empty vault.

        The vault file is written before the identity, so an interrupted
        init never leaves an identity without a vault.

        Raises:
            AlreadyInitializedError: If an identity already exists.
            WeakPasswordError / PasswordMismatchError: Bad new password.
        """
        if Identity.exists(config):
            raise AlreadyInitializedError(
                "Vault already initialized. Use 'sentinel-vault add' to add secrets."
            )
        identity = Identity.create(password, config, confirmation)
        atomic_write(config.vault_path, dumps(VaultData()))
        identity.save(config)
        logger.info("Vault initialized at %s", config.vault_dir)
        return identity

    @classmethod
    def load(cls, config: VaultConfig, password: str) -> "Vault":
        """Authenticate and open the vault.

        Derives the key once, parses the vault file and removes every secret
        whose lease has already expired.

        Raises:
            MissingVaultError: No identity or no vault file.
            InvalidCredentialsError: Wrong password.
            CorruptVaultError: A record cannot be parsed.
        """
        identity, key = authenticate(config, password)
        try:
            try:
                payload = read_bytes(config.vault_path)
            except FileNotFoundError:
                raise MissingVaultError(
                    "Vault file not found. Run 'sentinel-vault init' first."
                ) from None
            data = loads(VaultData, payload, "Vault file")
            engine = CryptoEngine(key)
        except Exception:
            key.wipe()
            raise
        vault = cls(config, identity, engine, data, digest(payload))
        try:
            vault._sweep()
        except Exception:
            vault.close()
            raise
        logger.info("Vault loaded: %d secret(s)", len(vault._data.secrets))
        return vault

    def close(self) -> None:
        """Wipe the session key. The instance is unusable afterwards."""
        self._engine.close()

    @property
    def closed(self) -> bool:
        return self._engine.closed

    def __enter__(self) -> "Vault":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _draft(self) -> VaultData:
        return self._data.model_copy(deep=True)

    def _current_disk_digest(self) -> Optional[str]:
        try:
            return digest(read_bytes(self._config.vault_path))
        except FileNotFoundError:
            return None

    def _commit(self, draft: VaultData) -> None:
        """Write ``draft`` atomically, then adopt it as the current state."""
        if self._current_disk_digest() != self._digest:
            logger.warning(
                "Vault file %s changed on disk since it was loaded",
                self._config.vault_path,
            )
            raise ConcurrentModificationError(
                "Vault file was modified by another process; reload and retry"
            )
        payload = dumps(draft)
        atomic_write(self._config.vault_path, payload)
        self._data = draft
        self._digest = digest(payload)

    def _commit_read(self, draft: VaultData) -> None:
        """Persist bookkeeping done by a read.

        A concurrent modification is left to the other writer: the read
        still answers and the in-memory state stays as it was.
        """
        try:
            self._commit(draft)
        except ConcurrentModificationError:
            logger.warning("Skipped persisting read bookkeeping; vault changed on disk")

    def _sweep(self, now: Optional[datetime] = None) -> list[str]:
        draft = self._draft()
        expired = draft.sweep_expired(now)
        if expired:
            self._commit(draft)
            logger.info("Removed %d expired secret(s)", len(expired))
        return expired

    # ------------------------------------------------------------------
    # Secrets
    # ------------------------------------------------------------------

    def add_secret(self, name: str, value: str) -> None:
        """Encrypt and store a secret, replacing any existing one.

        Replacing a secret resets its timestamps and access statistics; an
        existing lease is kept.

        Raises:
            ValidationError: Invalid name or value.
        """
        name = sanitize_secret_name(name)
        validate_secret_value(value)
        entry = SecretEntry.from_encrypted(self._engine.encrypt(value))
        draft = self._draft()
        draft.secrets[name] = entry
        self._commit(draft)
        logger.debug("Secret added: %s", name)

    def get_secret(self, name: str) -> Optional[str]:
        """Decrypt and return a secret.

        Returns None when the name is unknown or its lease has run out; an
        expired secret is purged on the spot. With ``track_access`` enabled
        the read is counted and persisted.

        Raises:
            ValidationError: Invalid name.
            DecryptionError: The stored entry fails authentication.
        """
        name = sanitize_secret_name(name)
        entry = self._data.secrets.get(name)
        if entry is None:
            return None
        if self._data.leases.is_expired(name):
            draft = self._draft()
            draft.purge(name)
            self._commit_read(draft)
            logger.debug("Secret expired on access: %s", name)
            return None
        value = self._engine.decrypt(entry.encrypted)
        if self._config.track_access:
            draft = self._draft()
            draft.secrets[name].mark_accessed()
            self._commit_read(draft)
        return value

    def list_secrets(self) -> list[tuple[str, Optional[datetime]]]:
        """(name, expires_at) for every live secret, ordered by name.

        Expired secrets are skipped silently; secrets without a lease have
        ``None`` as expiry.
        """
        now = utcnow()
        leases = self._data.leases
        listing = []
        for name in sorted(self._data.secrets):
            if leases.is_expired(name, now):
                continue
            lease = leases.get_lease(name)
            listing.append((name, lease.expires_at if lease else None))
        return listing

    def remove_secret(self, name: str) -> bool:
        """Delete a secret and its lease.

        Returns:
            True if anything was removed. Nothing is written otherwise.
        """
        name = sanitize_secret_name(name)
        if name not in self._data.secrets and name not in self._data.leases:
            return False
        draft = self._draft()
        draft.purge(name)
        self._commit(draft)
        logger.debug("Secret removed: %s", name)
        return True

    def set_expiry(self, name: str, duration_text: str) -> Lease:
        """Attach a lease to a secret, replacing any existing one.

        Args:
            name: Existing secret name.
            duration_text: Duration such as ``"30m"`` or ``"7d"``.

        Returns:
            The new lease.

        Raises:
            SecretNotFoundError: The secret does not exist.
            ValidationError: Invalid name or duration.
        """
        name = sanitize_secret_name(name)
        if name not in self._data.secrets:
            raise SecretNotFoundError(f"Secret '{name}' not found")
        duration = parse_duration(duration_text)
        draft = self._draft()
        lease = draft.leases.add_lease(name, duration)
        self._commit(draft)
        logger.debug("Lease set: %s expires %s", name, lease.expires_at.isoformat())
        return lease

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def create_backup(self) -> BackupData:
        """Snapshot the vault with the stored password verifier.

        Secrets are not re-encrypted and the key is not included: the backup
        is exactly as confidential as the vault file itself.
        """
        return BackupData(
            vault_data=self._draft(),
            identity_hash=self._identity.password_hash,
        )

    def get_stats(self) -> VaultStats:
        now = utcnow()
        leases = self._data.leases
        return VaultStats(
            total_secrets=len(self._data.secrets),
            active_leases=leases.active_count(now),
            expired_leases=leases.expired_count(now),
            vault_size=file_size(self._config.vault_path),
        )

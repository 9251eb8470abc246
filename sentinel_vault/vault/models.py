"""
Vault Models - Persisted records and their orjson serialization.

Records are pydantic models dumped in JSON mode (bytes as base64, datetimes
as ISO-8601 UTC) and encoded with orjson.
"""
from datetime import datetime
from typing import Any, Optional

import orjson
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from ..exceptions import CorruptVaultError
from .crypto import B64Bytes, EncryptedData
from .lease import LeaseManager, utcnow

SCHEMA_VERSION = "0.1.0"
BACKUP_VERSION = "0.1.0"


def dumps(record: BaseModel, indent: bool = True) -> bytes:
    """Serialize a record to UTF-8 JSON bytes."""
    option = orjson.OPT_SORT_KEYS
    if indent:
        option |= orjson.OPT_INDENT_2
    return orjson.dumps(record.model_dump(mode="json"), option=option)


def loads(model: type[BaseModel], payload: bytes, what: str) -> Any:
    """Parse JSON bytes into ``model``.

    Raises:
        CorruptVaultError: If the payload is not valid JSON or does not match
            the model.
    """
    try:
        return model.model_validate(orjson.loads(payload))
    except orjson.JSONDecodeError as err:
        raise CorruptVaultError(f"{what} is not valid JSON: {err}") from err
    except PydanticValidationError as err:
        raise CorruptVaultError(
            f"{what} has an unexpected structure ({err.error_count()} error(s))"
        ) from err


class SecretEntry(BaseModel):
    """One encrypted secret plus access bookkeeping."""

    ciphertext: B64Bytes
    nonce: B64Bytes
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    access_count: int = Field(default=0, ge=0)
    last_accessed: Optional[datetime] = None

    @classmethod
    def from_encrypted(cls, data: EncryptedData) -> "SecretEntry":
        return cls(ciphertext=data.ciphertext, nonce=data.nonce)

    @property
    def encrypted(self) -> EncryptedData:
        return EncryptedData(ciphertext=self.ciphertext, nonce=self.nonce)

    def mark_accessed(self) -> None:
        self.access_count += 1
        self.last_accessed = utcnow()


class VaultData(BaseModel):
    """The whole vault: the single unit of persistence."""

    secrets: dict[str, SecretEntry] = Field(default_factory=dict)
    leases: LeaseManager = Field(default_factory=LeaseManager)
    created_at: datetime = Field(default_factory=utcnow)
    schema_version: str = SCHEMA_VERSION

    def purge(self, name: str) -> bool:
        """Drop a secret and its lease together.

        Returns:
            True if either existed.
        """
        had_secret = self.secrets.pop(name, None) is not None
        had_lease = self.leases.remove_lease(name) is not None
        return had_secret or had_lease

    def sweep_expired(self, now: Optional[datetime] = None) -> list[str]:
        """Remove every expired lease and its secret entry."""
        expired = self.leases.cleanup_expired(now)
        for name in expired:
            self.secrets.pop(name, None)
        return expired


class BackupData(BaseModel):
    """Export snapshot. Secrets stay encrypted under the vault key."""

    vault_data: VaultData
    identity_hash: str
    created_at: datetime = Field(default_factory=utcnow)
    version: str = BACKUP_VERSION


class VaultStats(BaseModel):
    total_secrets: int
    active_leases: int
    expired_leases: int
    vault_size: int

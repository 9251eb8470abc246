"""
Vault Configuration - Validated settings for identity and vault storage.

The vault directory is injected explicitly into :class:`Identity` and
:class:`Vault`; nothing in the core reads the environment. The only
environment lookup lives in :meth:`VaultConfig.from_env`, used by the CLI:

    SENTINEL_VAULT_DIR = <directory holding identity.json and vault.json>

Security Note:
    Argon2 cost parameters are copied into the identity record at init, so
    changing them later never breaks key derivation for an existing vault.
"""
import os
import logging
from pathlib import Path

from argon2 import PasswordHasher
from pydantic import BaseModel, Field, field_validator, model_validator

from .crypto import KdfParams

logger = logging.getLogger("sentinel.vault")

DEFAULT_VAULT_DIRNAME = ".sentinelvault"
VAULT_DIR_ENV = "SENTINEL_VAULT_DIR"


def default_vault_dir() -> Path:
    """Return ``~/.sentinelvault``."""
    return Path.home() / DEFAULT_VAULT_DIRNAME


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    vault_dir: Path = Field(default_factory=default_vault_dir)
    identity_filename: str = Field(default="identity.json", min_length=1)
    vault_filename: str = Field(default="vault.json", min_length=1)
    kdf_time_cost: int = Field(default=3, ge=1)
    kdf_memory_cost: int = Field(default=65536, ge=8)
    kdf_parallelism: int = Field(default=4, ge=1)
    min_password_length: int = Field(default=8, ge=1)
    track_access: bool = True

    @field_validator("vault_dir")
    @classmethod
    def expand_vault_dir(cls, v: Path) -> Path:
        """Expand ``~`` in the vault directory."""
        return v.expanduser()

    @field_validator("identity_filename", "vault_filename")
    @classmethod
    def validate_filename(cls, v: str) -> str:
        """File names must be bare names inside ``vault_dir``."""
        if os.sep in v or (os.altsep and os.altsep in v) or v in (".", ".."):
            raise ValueError(f"Invalid file name: {v!r}")
        return v

    @model_validator(mode="after")
    def validate_kdf_costs(self) -> "VaultConfig":
        """Argon2 requires at least 8 KiB of memory per lane."""
        if self.kdf_memory_cost < 8 * self.kdf_parallelism:
            raise ValueError(
                f"kdf_memory_cost {self.kdf_memory_cost} must be at least "
                f"8 * kdf_parallelism ({8 * self.kdf_parallelism})"
            )
        return self

    @property
    def identity_path(self) -> Path:
        return self.vault_dir / self.identity_filename

    @property
    def vault_path(self) -> Path:
        return self.vault_dir / self.vault_filename

    @property
    def kdf_params(self) -> KdfParams:
        """Argon2id parameters used for new identities."""
        return KdfParams(
            time_cost=self.kdf_time_cost,
            memory_cost=self.kdf_memory_cost,
            parallelism=self.kdf_parallelism,
        )

    def password_hasher(self) -> PasswordHasher:
        """Build the Argon2 hasher used to create password verifiers."""
        return PasswordHasher(
            time_cost=self.kdf_time_cost,
            memory_cost=self.kdf_memory_cost,
            parallelism=self.kdf_parallelism,
        )

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig from the environment.

        Returns:
            VaultConfig rooted at ``$SENTINEL_VAULT_DIR`` when set,
            otherwise at ``~/.sentinelvault``.
        """
        raw = os.environ.get(VAULT_DIR_ENV)
        if raw:
            logger.debug("Using vault directory from %s", VAULT_DIR_ENV)
            return cls(vault_dir=Path(raw))
        return cls()

"""Sentinel Vault - Encrypted local secret storage behind a master password.

Security Note (Threat Model):
    Secrets are encrypted at rest with AES-256-GCM under a key derived from
    the master password with Argon2id. While a vault is open the session key
    and any decrypted value live in process memory; a memory dump of the
    process could expose them. The vault file and its backups are exactly as
    confidential as the master password is strong.
"""

from .config import VaultConfig
from .crypto import (
    CryptoEngine,
    EncryptedData,
    KdfParams,
    SecretKey,
    derive_key,
    generate_salt,
    hash_password,
    verify_password,
)
from .identity import Identity, authenticate, validate_new_password
from .lease import Lease, LeaseManager, parse_duration
from .models import BackupData, SecretEntry, VaultData, VaultStats
from .secret_vault import Vault
from .validation import sanitize_secret_name, validate_secret_value

__all__ = [
    "Vault",
    "VaultConfig",
    "CryptoEngine",
    "EncryptedData",
    "KdfParams",
    "SecretKey",
    "derive_key",
    "generate_salt",
    "hash_password",
    "verify_password",
    "Identity",
    "authenticate",
    "validate_new_password",
    "Lease",
    "LeaseManager",
    "parse_duration",
    "BackupData",
    "SecretEntry",
    "VaultData",
    "VaultStats",
    "sanitize_secret_name",
    "validate_secret_value",
]

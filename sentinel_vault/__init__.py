"""SentinelVault.

Local, password-protected secret store with per-secret leases.
"""
from .version import __version__
from .exceptions import VaultError
from .vault import Vault, VaultConfig

__all__ = ["__version__", "Vault", "VaultConfig", "VaultError"]

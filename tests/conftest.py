"""Shared fixtures: an isolated vault directory with cheap Argon2 costs."""
import pytest

from sentinel_vault.vault import Vault, VaultConfig

PASSWORD = "correctpassword1"


@pytest.fixture
def config(tmp_path):
    """VaultConfig rooted in a temporary directory."""
    return VaultConfig(
        vault_dir=tmp_path / "vault",
        kdf_time_cost=1,
        kdf_memory_cost=8,
        kdf_parallelism=1,
    )


@pytest.fixture
def initialized(config):
    """A config whose vault has been initialized with PASSWORD."""
    Vault.init(config, PASSWORD, PASSWORD)
    return config


@pytest.fixture
def vault(initialized):
    """An open vault; the key is wiped on teardown."""
    v = Vault.load(initialized, PASSWORD)
    yield v
    v.close()

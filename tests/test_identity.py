"""
Tests for the identity record and authentication flow.
"""
import base64

import orjson
import pytest

from sentinel_vault.exceptions import (
    AlreadyInitializedError,
    CorruptVaultError,
    InvalidCredentialsError,
    MissingVaultError,
    PasswordMismatchError,
    ValidationError,
    WeakPasswordError,
)
from sentinel_vault.vault.crypto import derive_key
from sentinel_vault.vault.identity import Identity, authenticate, validate_new_password

PASSWORD = "test_password_123"


@pytest.fixture
def identity(config):
    return Identity.create(PASSWORD, config)


class TestNewPassword:
    """Preconditions for creating a master password."""

    def test_accepts_minimum_length(self):
        validate_new_password("12345678", "12345678")

    def test_too_short(self):
        with pytest.raises(WeakPasswordError):
            validate_new_password("1234567")

    def test_mismatch(self):
        with pytest.raises(PasswordMismatchError):
            validate_new_password("password123", "password124")

    def test_errors_are_validation_errors(self):
        """Test both failures are catchable as ValidationError."""
        assert issubclass(WeakPasswordError, ValidationError)
        assert issubclass(PasswordMismatchError, ValidationError)

    def test_configured_minimum(self, config):
        """Test Identity.create honours config.min_password_length."""
        strict = config.model_copy(update={"min_password_length": 12})
        with pytest.raises(WeakPasswordError):
            Identity.create("elevenchars", strict)


class TestIdentity:
    """Creation, verification and key derivation."""

    def test_verify_password(self, identity):
        assert identity.verify_password(PASSWORD) is True
        assert identity.verify_password("wrong_password") is False

    def test_derive_key_is_stable(self, identity):
        """Test the same password recreates the same key."""
        assert identity.derive_key(PASSWORD) == identity.derive_key(PASSWORD)

    def test_derive_key_wrong_password(self, identity):
        with pytest.raises(InvalidCredentialsError):
            identity.derive_key("wrong_password")

    def test_kdf_params_recorded(self, identity, config):
        assert identity.kdf == config.kdf_params

    def test_salts_are_independent(self, identity):
        """Test the verifier's embedded salt is not the key-derivation salt."""
        encoded_salt = identity.password_hash.split("$")[4]
        padded = encoded_salt + "=" * (-len(encoded_salt) % 4)
        assert base64.b64decode(padded) != identity.salt
        assert len(identity.salt) == 32

    def test_key_matches_direct_derivation(self, identity):
        assert identity.derive_key(PASSWORD) == derive_key(PASSWORD, identity.salt, identity.kdf)


class TestIdentityPersistence:
    """Saving and loading the identity record."""

    def test_save_and_load(self, identity, config):
        identity.save(config)
        loaded = Identity.load(config)
        assert loaded == identity
        assert loaded.verify_password(PASSWORD)

    def test_exists(self, identity, config):
        assert Identity.exists(config) is False
        identity.save(config)
        assert Identity.exists(config) is True

    def test_record_fields(self, identity, config):
        """Test the persisted record layout."""
        identity.save(config)
        record = orjson.loads(config.identity_path.read_bytes())
        assert set(record) == {"password_hash", "salt", "kdf", "created_at"}
        assert base64.b64decode(record["salt"]) == identity.salt
        assert PASSWORD not in config.identity_path.read_text()

    def test_save_refuses_overwrite(self, identity, config):
        identity.save(config)
        with pytest.raises(AlreadyInitializedError):
            Identity.create(PASSWORD, config).save(config)

    def test_load_missing(self, config):
        with pytest.raises(MissingVaultError):
            Identity.load(config)

    def test_load_corrupt(self, config):
        config.vault_dir.mkdir(parents=True)
        config.identity_path.write_text("{not json")
        with pytest.raises(CorruptVaultError):
            Identity.load(config)

    def test_load_wrong_shape(self, config):
        config.vault_dir.mkdir(parents=True)
        config.identity_path.write_bytes(orjson.dumps({"password_hash": "x"}))
        with pytest.raises(CorruptVaultError):
            Identity.load(config)

    @pytest.mark.parametrize("field, value", [
        ("kdf", {"time_cost": 1, "memory_cost": 8, "parallelism": 4}),
        ("kdf", {"time_cost": 0, "memory_cost": 8, "parallelism": 1}),
        ("salt", "AAAA"),
        ("salt", base64.b64encode(b"x" * 33).decode()),
        ("salt", "not base64!"),
    ])
    def test_load_damaged_field(self, identity, config, field, value):
        """Test unusable Argon2 inputs are rejected when the record is read."""
        identity.save(config)
        record = orjson.loads(config.identity_path.read_bytes())
        record[field] = value
        config.identity_path.write_bytes(orjson.dumps(record))
        with pytest.raises(CorruptVaultError):
            Identity.load(config)
        with pytest.raises(CorruptVaultError):
            authenticate(config, PASSWORD)


class TestAuthenticate:
    """The load → verify → derive flow."""

    def test_success(self, identity, config):
        identity.save(config)
        loaded, key = authenticate(config, PASSWORD)
        assert loaded == identity
        assert key == identity.derive_key(PASSWORD)

    def test_wrong_password(self, identity, config):
        identity.save(config)
        with pytest.raises(InvalidCredentialsError):
            authenticate(config, "not the password")

    def test_not_initialized(self, config):
        with pytest.raises(MissingVaultError):
            authenticate(config, PASSWORD)

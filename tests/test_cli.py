"""
Tests for the click command line.
"""
import orjson
import pytest
from click.testing import CliRunner

from sentinel_vault import cli as cli_module
from sentinel_vault.cli import PASSWORD_ENV, cli
from sentinel_vault.render import format_bytes, render_backup
from sentinel_vault.vault import VaultConfig
from sentinel_vault.vault.models import BackupData, VaultData

PASSWORD = "correctpassword1"


class CheapConfig(VaultConfig):
    """VaultConfig with minimal Argon2 costs."""

    kdf_time_cost: int = 1
    kdf_memory_cost: int = 8
    kdf_parallelism: int = 1


@pytest.fixture
def run(tmp_path, monkeypatch):
    """Invoke the CLI against a temporary vault directory."""
    monkeypatch.setattr(cli_module, "VaultConfig", CheapConfig)
    runner = CliRunner()
    vault_dir = tmp_path / "vault"

    def invoke(*args, password=PASSWORD, input=None):
        env = {PASSWORD_ENV: password} if password else {}
        return runner.invoke(
            cli, ["--vault-dir", str(vault_dir), *args], env=env, input=input,
        )

    invoke.vault_dir = vault_dir
    return invoke


@pytest.fixture
def initialized_run(run):
    result = run("init")
    assert result.exit_code == 0, result.output
    return run


class TestInitCommand:

    def test_init(self, run):
        result = run("init")
        assert result.exit_code == 0
        assert "Vault initialized successfully!" in result.output
        assert (run.vault_dir / "identity.json").exists()

    def test_init_prompts(self, run):
        result = run("init", password=None, input=f"{PASSWORD}\n{PASSWORD}\n")
        assert result.exit_code == 0, result.output

    def test_init_mismatch(self, run):
        result = run("init", password=None, input=f"{PASSWORD}\nsomethingelse\n")
        assert result.exit_code == 1
        assert "Passwords do not match" in result.output

    def test_init_twice(self, initialized_run):
        result = initialized_run("init")
        assert result.exit_code == 1
        assert "already initialized" in result.output


class TestSecretCommands:

    def test_add_get(self, initialized_run):
        assert initialized_run("add", "api_key", "--value", "sk-123").exit_code == 0
        result = initialized_run("get", "api_key")
        assert result.exit_code == 0
        assert result.output == "sk-123\n"

    def test_add_prompts_for_value(self, initialized_run):
        result = initialized_run("add", "api_key", input="sk-prompted\n")
        assert result.exit_code == 0, result.output
        assert initialized_run("get", "api_key").output == "sk-prompted\n"

    def test_get_missing(self, initialized_run):
        result = initialized_run("get", "nope")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_wrong_password(self, initialized_run):
        result = initialized_run("list", password="wrongpassword")
        assert result.exit_code == 1
        assert "Invalid password" in result.output

    def test_invalid_name(self, initialized_run):
        result = initialized_run("add", "a/b", "--value", "v")
        assert result.exit_code == 1
        assert "invalid characters" in result.output

    def test_list_and_expire(self, initialized_run):
        assert initialized_run("list").output.strip() == "No secrets stored in vault"
        initialized_run("add", "b_key", "--value", "1")
        initialized_run("add", "a_key", "--value", "2")
        assert initialized_run("expire", "a_key", "2h").exit_code == 0

        lines = initialized_run("list").output.splitlines()
        assert lines[0] == "Stored secrets:"
        assert lines[1].startswith("  - a_key (expires: ")
        assert lines[2] == "  - b_key (no expiration)"

    def test_expire_bad_duration(self, initialized_run):
        initialized_run("add", "a_key", "--value", "2")
        result = initialized_run("expire", "a_key", "10x")
        assert result.exit_code == 1
        assert "Invalid duration unit" in result.output

    def test_remove(self, initialized_run):
        initialized_run("add", "a_key", "--value", "2")
        assert initialized_run("remove", "a_key").exit_code == 0
        result = initialized_run("remove", "a_key")
        assert result.exit_code == 1


class TestReportCommands:

    def test_backup_json(self, initialized_run):
        initialized_run("add", "a_key", "--value", "sk-backup")
        result = initialized_run("backup")
        assert result.exit_code == 0
        payload = orjson.loads(result.output)
        assert set(payload) == {"vault_data", "identity_hash", "created_at", "version"}
        assert "a_key" in payload["vault_data"]["secrets"]
        assert "sk-backup" not in result.output

    def test_backup_text_single_line(self, initialized_run):
        result = initialized_run("backup", "--format", "text")
        assert result.exit_code == 0
        assert len(result.output.strip().splitlines()) == 1

    def test_stats(self, initialized_run):
        initialized_run("add", "a_key", "--value", "1")
        initialized_run("expire", "a_key", "1d")
        result = initialized_run("stats")
        assert result.exit_code == 0
        assert "Total secrets: 1" in result.output
        assert "Active leases: 1" in result.output
        assert "Expired leases: 0" in result.output
        assert "Vault size: " in result.output


class TestRender:

    @pytest.mark.parametrize("size, expected", [
        (0, "0 B"),
        (1023, "1023 B"),
        (1024, "1.0 KB"),
        (1536, "1.5 KB"),
        (1048576, "1.0 MB"),
    ])
    def test_format_bytes(self, size, expected):
        assert format_bytes(size) == expected

    def test_unknown_backup_format(self):
        backup = BackupData(vault_data=VaultData(), identity_hash="$argon2id$...")
        with pytest.raises(ValueError):
            render_backup(backup, "qr")

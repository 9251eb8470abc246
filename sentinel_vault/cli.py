"""
SentinelVault command line.

Thin click wrapper over :class:`~sentinel_vault.vault.Vault`: it prompts for
passwords and values, opens the vault, calls one operation and prints the
result. ``SENTINEL_VAULT_PASSWORD`` skips the master password prompt and
``SENTINEL_VAULT_DIR`` (or ``--vault-dir``) selects the vault directory.
"""
import os
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import click

from .exceptions import VaultError
from .render import BACKUP_FORMATS, format_bytes, format_expiry, render_backup
from .version import __version__
from .vault import Vault, VaultConfig

PASSWORD_ENV = "SENTINEL_VAULT_PASSWORD"


@contextmanager
def _vault_errors():
    """Turn core failures into a click error (exit status 1)."""
    try:
        yield
    except VaultError as err:
        raise click.ClickException(str(err)) from err


def _master_password(prompt: str = "Enter master password") -> str:
    return os.environ.get(PASSWORD_ENV) or click.prompt(prompt, hide_input=True)


@contextmanager
def _open_vault(config: VaultConfig):
    password = _master_password()
    with _vault_errors():
        with Vault.load(config, password) as vault:
            yield vault


@click.group()
@click.version_option(version=__version__, prog_name="sentinel-vault")
@click.option(
    "--vault-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding identity.json and vault.json.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, vault_dir: Optional[Path], verbose: bool) -> None:
    """SentinelVault - encrypted local secrets with expiring leases."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        )
    ctx.obj = VaultConfig(vault_dir=vault_dir) if vault_dir else VaultConfig.from_env()


@cli.command()
@click.pass_obj
def init(config: VaultConfig) -> None:
    """Initialize a new vault."""
    click.echo("Initializing SentinelVault...")
    env_password = os.environ.get(PASSWORD_ENV)
    if env_password:
        password = confirmation = env_password
    else:
        password = click.prompt(
            f"Create master password (min {config.min_password_length} characters)",
            hide_input=True,
        )
        confirmation = click.prompt("Confirm master password", hide_input=True)
    with _vault_errors():
        Vault.init(config, password, confirmation)
    click.echo("Vault initialized successfully!")


@cli.command()
@click.argument("name")
@click.option("--value", default=None, help="Secret value (prompted when omitted).")
@click.pass_obj
def add(config: VaultConfig, name: str, value: Optional[str]) -> None:
    """Add or replace a secret."""
    with _open_vault(config) as vault:
        if value is None:
            value = click.prompt("Enter secret value", hide_input=True)
        vault.add_secret(name, value)
    click.echo(f"Secret '{name}' added successfully!")


@cli.command()
@click.argument("name")
@click.pass_obj
def get(config: VaultConfig, name: str) -> None:
    """Print a secret's value."""
    with _open_vault(config) as vault:
        value = vault.get_secret(name)
    if value is None:
        raise click.ClickException(f"Secret '{name}' not found")
    click.echo(value)


@cli.command(name="list")
@click.pass_obj
def list_secrets(config: VaultConfig) -> None:
    """List stored secrets and their expiry."""
    with _open_vault(config) as vault:
        secrets = vault.list_secrets()
    if not secrets:
        click.echo("No secrets stored in vault")
        return
    click.echo("Stored secrets:")
    for name, expires_at in secrets:
        click.echo(f"  - {name} ({format_expiry(expires_at)})")


@cli.command()
@click.argument("name")
@click.argument("after")
@click.pass_obj
def expire(config: VaultConfig, name: str, after: str) -> None:
    """Expire NAME after a duration such as 30m, 12h or 7d."""
    with _open_vault(config) as vault:
        lease = vault.set_expiry(name, after)
    click.echo(f"Set expiry for '{name}' to {after} ({format_expiry(lease.expires_at)})")


@cli.command()
@click.argument("name")
@click.pass_obj
def remove(config: VaultConfig, name: str) -> None:
    """Remove a secret and its lease."""
    with _open_vault(config) as vault:
        removed = vault.remove_secret(name)
    if not removed:
        raise click.ClickException(f"Secret '{name}' not found")
    click.echo(f"Secret '{name}' removed successfully!")


@cli.command()
@click.option(
    "--format", "fmt",
    type=click.Choice(BACKUP_FORMATS),
    default="json",
    show_default=True,
    help="Backup rendering.",
)
@click.pass_obj
def backup(config: VaultConfig, fmt: str) -> None:
    """Print a backup of the (still encrypted) vault."""
    with _open_vault(config) as vault:
        snapshot = vault.create_backup()
    click.echo(render_backup(snapshot, fmt))


@cli.command()
@click.pass_obj
def stats(config: VaultConfig) -> None:
    """Show vault statistics."""
    with _open_vault(config) as vault:
        info = vault.get_stats()
    click.echo("Vault Statistics:")
    click.echo(f"  Total secrets: {info.total_secrets}")
    click.echo(f"  Active leases: {info.active_leases}")
    click.echo(f"  Expired leases: {info.expired_leases}")
    click.echo(f"  Vault size: {format_bytes(info.vault_size)}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()

"""Rendering helpers for the command line: backups, sizes, expiry times."""
from datetime import datetime
from typing import Optional

from .exceptions import ValidationError
from .vault.models import BackupData, dumps

BACKUP_FORMATS = ("json", "text")

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")
_SIZE_THRESHOLD = 1024


def render_backup(backup: BackupData, fmt: str = "json") -> str:
    """Serialize a backup snapshot.

    ``json`` is indented for reading, ``text`` is the same payload on a
    single line for piping or storing.
    """
    if fmt == "json":
        return dumps(backup, indent=True).decode("utf-8")
    if fmt == "text":
        return dumps(backup, indent=False).decode("utf-8")
    raise ValidationError(
        f"Unknown backup format {fmt!r}; choose one of {', '.join(BACKUP_FORMATS)}"
    )


def format_bytes(size: int) -> str:
    """Human-readable byte count: ``1023 B``, ``1.5 KB``, ``1.0 MB``."""
    if size < _SIZE_THRESHOLD:
        return f"{size} B"
    value = float(size)
    unit = 0
    while value >= _SIZE_THRESHOLD and unit < len(_SIZE_UNITS) - 1:
        value /= _SIZE_THRESHOLD
        unit += 1
    return f"{value:.1f} {_SIZE_UNITS[unit]}"


def format_expiry(expires_at: Optional[datetime]) -> str:
    if expires_at is None:
        return "no expiration"
    return f"expires: {expires_at.strftime('%Y-%m-%d %H:%M:%S')} UTC"

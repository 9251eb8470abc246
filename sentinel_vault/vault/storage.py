"""
Vault Storage - Whole-file reads and atomic replacement writes.

Every write goes to a temporary file in the target directory, is flushed and
fsynced, then renamed over the target with ``os.replace``. A crash leaves
either the old file or the new one, never a torn mix. Temporary files are
created by ``mkstemp`` with mode 0600, which the renamed file keeps.
"""
import os
import hashlib
import logging
import tempfile
from pathlib import Path

from ..exceptions import VaultIOError

logger = logging.getLogger("sentinel.vault")

_DIR_MODE = 0o700


def digest(payload: bytes) -> str:
    """SHA-256 hex digest of a file payload."""
    return hashlib.sha256(payload).hexdigest()


def read_bytes(path: Path) -> bytes:
    """Read a whole file.

    Raises:
        FileNotFoundError: If the file does not exist (callers map this).
        VaultIOError: On any other filesystem failure.
    """
    try:
        return path.read_bytes()
    except FileNotFoundError:
        raise
    except OSError as err:
        raise VaultIOError(f"Cannot read {path}: {err}") from err


def file_size(path: Path) -> int:
    """Size of ``path`` in bytes, 0 when it does not exist."""
    try:
        return path.stat().st_size
    except FileNotFoundError:
        return 0
    except OSError as err:
        raise VaultIOError(f"Cannot stat {path}: {err}") from err


def ensure_dir(path: Path) -> None:
    try:
        path.mkdir(mode=_DIR_MODE, parents=True, exist_ok=True)
    except OSError as err:
        raise VaultIOError(f"Cannot create directory {path}: {err}") from err


def _fsync_dir(path: Path) -> None:
    # Directory fsync makes the rename durable; not supported everywhere.
    try:
        fd = os.open(path, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


def atomic_write(path: Path, payload: bytes) -> None:
    """Replace ``path`` with ``payload`` atomically.

    Args:
        path: Target file.
        payload: Complete new content.

    Raises:
        VaultIOError: If any step fails. The target is left untouched and the
            temporary file is removed.
    """
    ensure_dir(path.parent)
    tmp_path = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent,
        )
        tmp_path = Path(tmp_name)
        with os.fdopen(fd, "wb") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
        tmp_path = None
    except OSError as err:
        logger.error("Failed to write %s: %s", path, err)
        raise VaultIOError(f"Cannot write {path}: {err}") from err
    finally:
        if tmp_path is not None:
            try:
                tmp_path.unlink()
            except OSError as err:
                logger.warning("Could not remove temporary file %s: %s", tmp_path, err)
    _fsync_dir(path.parent)

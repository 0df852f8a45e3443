"""
Config Backup Module

Timestamped, never-overwritten copies of the daemon configuration.

Backups live next to the original as <path>.backup.<YYYYMMDDHHMMSS>.
Nothing here deletes a backup; retention is up to the operator.
"""

import logging
import re
import shutil
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

BACKUP_INFIX = ".backup."
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

_TIMESTAMP_RE = re.compile(r"^\d{14}$")


class BackupError(Exception):
    """Raised when a backup cannot be created or restored."""

    pass


def backup_path_for(config_path: Path, now: datetime | None = None) -> Path:
    """Backup file name for config_path at the given time."""
    now = now or datetime.now()
    config_path = Path(config_path)
    return config_path.with_name(f"{config_path.name}{BACKUP_INFIX}{now.strftime(TIMESTAMP_FORMAT)}")


def create_backup(config_path: Path, now: datetime | None = None) -> Path:
    """
    Copy config_path byte-for-byte to a timestamped backup.

    Args:
        config_path: File to back up
        now: Timestamp to use (default: current time)

    Returns:
        Path: The backup file

    Raises:
        BackupError: If the source is missing, a backup with the same
            timestamp already exists, or the copy fails
    """
    config_path = Path(config_path)
    if not config_path.is_file():
        raise BackupError(f"Cannot back up missing file: {config_path}")

    backup_path = backup_path_for(config_path, now)

    try:
        # 'x' mode: an existing backup is never overwritten
        with open(config_path, "rb") as src, open(backup_path, "xb") as dst:
            shutil.copyfileobj(src, dst)
        shutil.copymode(config_path, backup_path)
    except FileExistsError as e:
        raise BackupError(
            f"Backup already exists: {backup_path}. Wait a second and try again."
        ) from e
    except OSError as e:
        raise BackupError(f"Failed to back up {config_path}: {e}") from e

    logger.info(f"Backed up {config_path} to {backup_path}")
    return backup_path


def parse_backup_timestamp(backup_path: Path) -> datetime | None:
    """Timestamp encoded in a backup file name, or None if it is not a backup."""
    name = Path(backup_path).name
    if BACKUP_INFIX not in name:
        return None
    suffix = name.rsplit(BACKUP_INFIX, 1)[1]
    if not _TIMESTAMP_RE.match(suffix):
        return None
    try:
        return datetime.strptime(suffix, TIMESTAMP_FORMAT)
    except ValueError:
        return None


def list_backups(config_path: Path) -> list[Path]:
    """
    List backups of config_path, newest first.

    Example:
        >>> list_backups(Path("/etc/ssh/sshd_config"))
        [PosixPath('/etc/ssh/sshd_config.backup.20261018093000'), ...]
    """
    config_path = Path(config_path)
    directory = config_path.parent
    if not directory.is_dir():
        return []

    prefix = f"{config_path.name}{BACKUP_INFIX}"
    backups = [
        p
        for p in directory.iterdir()
        if p.name.startswith(prefix) and parse_backup_timestamp(p) is not None
    ]
    return sorted(backups, key=lambda p: p.name, reverse=True)


def restore_backup(backup_path: Path, config_path: Path, now: datetime | None = None) -> Path:
    """
    Copy a backup over the live config.

    The current config is backed up first so the restore can be undone.

    Args:
        backup_path: Backup to restore
        config_path: Live config file
        now: Timestamp for the pre-restore backup

    Returns:
        Path: Backup of the config as it was before the restore

    Raises:
        BackupError: If backup_path is not a backup of config_path or the
            copy fails
    """
    backup_path = Path(backup_path)
    config_path = Path(config_path)

    if not backup_path.is_file():
        raise BackupError(f"Backup not found: {backup_path}")
    if not backup_path.name.startswith(f"{config_path.name}{BACKUP_INFIX}"):
        raise BackupError(f"{backup_path.name} is not a backup of {config_path.name}")

    safety_backup = create_backup(config_path, now)

    try:
        # Copy contents only so the live file keeps its owner and mode
        shutil.copyfile(backup_path, config_path)
    except OSError as e:
        raise BackupError(f"Failed to restore {backup_path}: {e}") from e

    logger.info(f"Restored {config_path} from {backup_path}")
    return safety_backup


__all__ = [
    "BACKUP_INFIX",
    "BackupError",
    "TIMESTAMP_FORMAT",
    "backup_path_for",
    "create_backup",
    "list_backups",
    "parse_backup_timestamp",
    "restore_backup",
]

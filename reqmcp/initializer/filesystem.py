"""Filesystem operations for writing the configuration file.

The directory is created with mode 0755 and the file ends up with 0600,
since it holds the personal access token.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import time
from datetime import datetime
from pathlib import Path

from reqmcp.core.secure_io import CONFIG_DIR_MODE, SECURE_FILE_MODE, ensure_dir, secure_write_atomic

logger = logging.getLogger(__name__)

BACKUP_INFIX = ".backup."
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"
WRITE_PROBE_NAME = ".write_test"


class FileManager:
    """Directory creation, secure writes and backups for config.json."""

    def ensure_config_directory(self, config_path: Path) -> None:
        """Create the parent directory of config_path, or fix its mode.

        Raises:
            OSError: If the parent exists as a file or cannot be created.
        """
        config_dir = config_path.parent
        if config_dir.exists():
            if not config_dir.is_dir():
                raise NotADirectoryError(
                    f"config path exists but is not a directory: {config_dir}"
                )
            os.chmod(config_dir, CONFIG_DIR_MODE)
            return
        ensure_dir(config_dir, CONFIG_DIR_MODE)

    def write_config(self, config_path: Path, content: str | bytes) -> None:
        """Atomically replace config_path with content, mode 0600."""
        secure_write_atomic(config_path, content, SECURE_FILE_MODE)
        logger.debug("Wrote configuration to %s", config_path)

    def config_exists(self, config_path: Path) -> bool:
        return config_path.exists()

    def validate_config_path(self, config_path: Path) -> None:
        """Check that config_path is absolute and its directory writable.

        The directory is created if needed, and a probe file is written
        and removed.

        Raises:
            ValueError: If the path is relative.
            OSError: If the directory cannot be created or written.
        """
        if not config_path.is_absolute():
            raise ValueError(f"config path must be absolute: {config_path}")

        self.ensure_config_directory(config_path)
        probe = config_path.parent / WRITE_PROBE_NAME
        try:
            probe.write_bytes(b"test")
        except OSError as e:
            raise PermissionError(
                f"no write permission to config directory {config_path.parent}: {e}"
            ) from e
        probe.unlink(missing_ok=True)

    def backup_existing_config(self, config_path: Path, now: datetime | None = None) -> Path:
        """Copy config_path to ``<path>.backup.<YYYYMMDD-HHMMSS>``.

        The backup keeps the original's permission bits.

        Returns:
            Path of the backup.

        Raises:
            FileNotFoundError: If there is nothing to back up.
        """
        if not config_path.exists():
            raise FileNotFoundError(f"config file does not exist: {config_path}")

        timestamp = (now or datetime.now()).strftime(BACKUP_TIMESTAMP_FORMAT)
        backup_path = config_path.with_name(f"{config_path.name}{BACKUP_INFIX}{timestamp}")
        mode = stat.S_IMODE(config_path.stat().st_mode)

        shutil.copyfile(config_path, backup_path)
        os.chmod(backup_path, mode)
        return backup_path

    def restore_from_backup(self, config_path: Path, backup_path: Path) -> None:
        """Overwrite config_path with a backup, mode 0600.

        Raises:
            FileNotFoundError: If the backup does not exist.
        """
        if not backup_path.exists():
            raise FileNotFoundError(f"backup file does not exist: {backup_path}")
        self.write_config(config_path, backup_path.read_bytes())

    def list_backups(self, config_path: Path) -> list[Path]:
        """Backups of config_path, oldest name first."""
        prefix = config_path.name + BACKUP_INFIX
        if not config_path.parent.is_dir():
            return []
        return sorted(
            entry
            for entry in config_path.parent.iterdir()
            if entry.is_file() and entry.name.startswith(prefix) and len(entry.name) > len(prefix)
        )

    def cleanup_old_backups(self, config_path: Path, max_age_days: int) -> int:
        """Delete backups last modified more than max_age_days ago.

        Returns:
            Number of backups removed.
        """
        cutoff = time.time() - max_age_days * 86400
        removed = 0
        for backup in self.list_backups(config_path):
            try:
                if backup.stat().st_mtime < cutoff:
                    backup.unlink()
                    removed += 1
            except OSError as e:
                logger.debug("Skipping backup %s: %s", backup, e)
        return removed

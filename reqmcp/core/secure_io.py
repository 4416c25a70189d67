"""Secure file I/O utilities for requirements-mcp.

This module provides atomic, race-condition-free file operations with
proper permission handling for the configuration file, which holds the
personal access token.
"""

import os
import stat
from pathlib import Path

# Config directory permissions (owner rwx, group/other rx)
CONFIG_DIR_MODE: int = stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH | stat.S_IXOTH  # 0o755

# Secure permissions for config files (owner read/write only)
SECURE_FILE_MODE: int = stat.S_IRUSR | stat.S_IWUSR  # 0o600


def ensure_dir(path: Path, mode: int = CONFIG_DIR_MODE) -> None:
    """Create a directory (and its parents) with the given mode.

    Parents that already exist are left untouched. The target directory
    gets ``mode`` applied explicitly when it is created so the umask does
    not interfere.

    Args:
        path: Directory path to create.
        mode: Permission bits for newly created directories.
    """
    for parent in reversed(list(path.parents)):
        if not parent.exists():
            parent.mkdir(mode=mode)
            # Re-apply in case umask interfered
            os.chmod(parent, mode)

    if not path.exists():
        path.mkdir(mode=mode)
        os.chmod(path, mode)


def secure_write_new(path: Path, content: str | bytes, mode: int = SECURE_FILE_MODE) -> None:
    """Atomically create a new file with secure permissions.

    Creates a file with owner-only permissions in a single atomic
    operation using os.open() with O_CREAT | O_EXCL. The mode is applied at
    creation time, so no other process can read the file before its
    permissions are set.

    Args:
        path: Path to the file to create.
        content: Content to write (str or bytes).
        mode: Permission bits for the new file.

    Raises:
        FileExistsError: If the file already exists.
    """
    if isinstance(content, str):
        content = content.encode("utf-8")

    fd = os.open(
        str(path),
        os.O_CREAT | os.O_EXCL | os.O_WRONLY,
        mode,
    )
    try:
        os.write(fd, content)
        os.fsync(fd)  # Ensure content is on disk
    finally:
        os.close(fd)
    # O_CREAT honours the umask; force the exact mode
    os.chmod(path, mode)


def secure_write_atomic(path: Path, content: str | bytes, mode: int = SECURE_FILE_MODE) -> None:
    """Atomically write to a file (new or existing) with secure permissions.

    Content is written to a sibling temp file, fsynced, then renamed over
    the target. Readers see either the old file or the complete new one.

    Args:
        path: Path to the file to write.
        content: Content to write (str or bytes).
        mode: Permission bits for the final file.
    """
    if isinstance(content, str):
        content = content.encode("utf-8")

    temp_path = path.with_name(f".{path.name}.tmp")
    if temp_path.exists() or temp_path.is_symlink():
        temp_path.unlink()
    try:
        secure_write_new(temp_path, content, mode)

        # Atomic rename
        os.replace(temp_path, path)

        # Ensure permissions after replace (some filesystems may not preserve)
        os.chmod(path, mode)
    except Exception:
        # Clean up temp file on error
        if temp_path.exists():
            temp_path.unlink()
        raise


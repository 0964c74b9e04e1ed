"""Shared file utilities for jh.

Provides common utilities used by the token store and credential projection:
- set_secure_permissions: Owner-only file/directory permissions
- ensure_secure_directory: Recursive mkdir with owner-only permissions
- atomic_write_text: Same-directory temp file + rename
- file_lock: Exclusive advisory lock (fcntl)
"""

from __future__ import annotations

__all__ = [
    "atomic_write_text",
    "ensure_secure_directory",
    "file_lock",
    "set_secure_permissions",
]

import fcntl
import os
import sys
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from juliahub_cli.constants import SECURE_DIR_MODE, SECURE_FILE_MODE


def set_secure_permissions(path: Path, *, is_directory: bool = False) -> None:
    """Set secure permissions on file or directory.

    Sets permissions to restrict access to owner only:
    - Directory: 0o700 (rwx------)
    - File: 0o600 (rw-------)

    Does nothing on Windows. Silently ignores permission errors
    (some systems don't allow permission changes).

    Args:
        path: Path to file or directory.
        is_directory: If True, use directory permissions (0o700).
    """
    if sys.platform == "win32":
        return

    try:
        path.chmod(SECURE_DIR_MODE if is_directory else SECURE_FILE_MODE)
    except OSError:
        pass  # Permission changes might fail on some systems


def ensure_secure_directory(directory: Path) -> None:
    """Create directory (and parents) and restrict it to the owner.

    Raises:
        OSError: If the directory cannot be created.
    """
    directory.mkdir(parents=True, exist_ok=True, mode=SECURE_DIR_MODE)
    set_secure_permissions(directory, is_directory=True)


def atomic_write_text(target: Path, content: str, *, prefix: str | None = None) -> None:
    """Replace target with content without exposing a partially written file.

    The temp file lives in the target's own directory so the final rename
    stays on one filesystem. Owner-only permissions are applied to the temp
    file before any content is written. On failure the temp file is removed
    and the previous target is left untouched.

    Args:
        target: Final file path.
        content: Text to write (UTF-8).
        prefix: Temp file prefix (defaults to ".<name>.").

    Raises:
        OSError: If writing or renaming fails.
    """
    fd, temp_path = tempfile.mkstemp(
        dir=target.parent,
        prefix=prefix or f".{target.name}.",
        suffix=".tmp",
    )
    try:
        if sys.platform != "win32":
            os.fchmod(fd, SECURE_FILE_MODE)

        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        # Atomic rename (overwrites existing file atomically)
        os.replace(temp_path, target)

    except BaseException:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


@contextmanager
def file_lock(lock_path: Path) -> Iterator[None]:
    """Context manager for exclusive advisory file locking.

    Acquires an exclusive lock on the specified file, creating it if needed.
    The lock is released when exiting the context.

    Args:
        lock_path: Path to the lock file.

    Yields:
        None when lock is acquired.

    Raises:
        OSError: If the lock file cannot be opened or locked.
    """
    lock_file = open(lock_path, "w")
    try:
        set_secure_permissions(lock_path)
        fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
        yield
    finally:
        try:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
        except OSError:
            pass
        lock_file.close()

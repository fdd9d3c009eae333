"""File locking for writers that share a .squadsync/ directory."""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from pathlib import Path

from filelock import FileLock, Timeout


class LockTimeout(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""


@contextlib.contextmanager
def squad_lock(
    locks_dir: Path,
    key: str,
    timeout: float = 10,
) -> Generator[None, None, None]:
    """Acquire a single file lock at ``locks_dir/<key>.lock``.

    Two processes pointed at the same project (e.g. ``squadsync watch`` and a
    one-shot ``squadsync set``) serialize their cache writes through this.

    Raises:
        LockTimeout: If the lock cannot be acquired within *timeout* seconds.
    """
    lock_path = locks_dir / f"{key}.lock"
    lock = FileLock(lock_path, timeout=timeout)
    try:
        lock.acquire()
    except Timeout:
        raise LockTimeout(f"Could not acquire lock '{key}' within {timeout}s") from None
    try:
        yield
    finally:
        lock.release()

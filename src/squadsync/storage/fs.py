"""On-disk layout of a squadsync project.

The cache blob, config.json, the server's scope tables, and export files
all go through ``atomic_write()`` so a crash mid-save never leaves a
truncated JSON document behind.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

SQUAD_DIR = ".squadsync"
SQUADSYNC_ROOT_ENV = "SQUADSYNC_ROOT"


def _fsync_directory(path: Path) -> None:
    """Make the rename into *path* durable.  Best effort: not every platform
    can fsync a directory descriptor."""
    try:
        fd = os.open(str(path), os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
    except OSError:
        pass


def atomic_write(path: Path, content: str | bytes) -> None:
    """Replace *path* with *content* in one step.

    A ``watch`` process reading the cache while ``set`` saves it sees the
    old state tree or the new one, never half of each.

    Raises:
        FileNotFoundError: If the parent directory does not exist.
    """
    parent = path.parent
    if not parent.is_dir():
        raise FileNotFoundError(f"Parent directory does not exist: {parent}")

    data = content.encode("utf-8") if isinstance(content, str) else content

    fd, tmp_path = tempfile.mkstemp(dir=parent, prefix=".tmp.")
    closed = False
    try:
        mv = memoryview(data)
        while mv:
            written = os.write(fd, mv)
            mv = mv[written:]
        os.fsync(fd)
        os.close(fd)
        closed = True
        os.replace(tmp_path, path)
        _fsync_directory(parent)
    except BaseException:
        if not closed:
            os.close(fd)
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def ensure_squad_dirs(root: Path) -> None:
    """Create ``cache/``, ``locks/`` and ``server/`` under *root*/.squadsync."""
    squad = root / SQUAD_DIR
    for subdir in ("cache", "locks", "server"):
        (squad / subdir).mkdir(parents=True, exist_ok=True)


def find_root(start: Path | None = None) -> Path | None:
    """Return the directory holding this squad's ``.squadsync/``, or ``None``.

    ``SQUADSYNC_ROOT`` pins the project for every CLI command; when set it
    must name a project and the walk-up from *start* (default: cwd) is skipped.

    Raises:
        SquadRootError: If SQUADSYNC_ROOT is set but invalid.
    """
    env_root = os.environ.get(SQUADSYNC_ROOT_ENV)
    if env_root is not None:
        if not env_root:
            raise SquadRootError("SQUADSYNC_ROOT is set but empty")
        env_path = Path(env_root)
        if not env_path.is_dir():
            raise SquadRootError(
                f"SQUADSYNC_ROOT points to a path that does not exist: {env_root}"
            )
        if not (env_path / SQUAD_DIR).is_dir():
            raise SquadRootError(
                f"SQUADSYNC_ROOT points to a directory with no {SQUAD_DIR}/ inside: {env_root}"
            )
        return env_path

    current = (start or Path.cwd()).resolve()
    while True:
        if (current / SQUAD_DIR).is_dir():
            return current
        parent = current.parent
        if parent == current:
            return None
        current = parent


class SquadRootError(Exception):
    """Raised when SQUADSYNC_ROOT env var is set but invalid."""

"""Local cache: one JSON blob mirroring the full state tree.

The blob lives at ``.squadsync/cache/<CACHE_ID>.json``.  ``CACHE_ID`` is
versioned; bump it whenever the state tree's shape changes so that an old
blob is ignored instead of loaded into the new shape.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

from squadsync.storage.fs import atomic_write
from squadsync.storage.locks import squad_lock
from squadsync.sync.documents import (
    DocumentShapeError,
    default_state,
    drop_unknown_players,
    normalize_state,
)

CACHE_ID = "apex-squad-data-v5"


class LocalCache:
    """Load and persist the state tree for one project."""

    def __init__(self, squad_dir: Path, cache_id: str = CACHE_ID) -> None:
        self.cache_dir = squad_dir / "cache"
        self.locks_dir = squad_dir / "locks"
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.locks_dir.mkdir(parents=True, exist_ok=True)
        self.path = self.cache_dir / f"{cache_id}.json"

    def exists(self) -> bool:
        return self.path.exists()

    def load(self, players: list[str]) -> dict:
        """Return the cached state tree, or the default state.

        A missing, unreadable, or incompatible blob is not an error: the
        client starts from defaults and the next save overwrites it.
        Entries for players no longer on the roster are dropped; the rest
        of the blob is kept.
        """
        if not self.path.exists():
            return default_state(players)
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            return normalize_state(drop_unknown_players(payload, players), players)
        except (OSError, ValueError) as exc:
            # DocumentShapeError and JSONDecodeError are both ValueErrors.
            kind = "incompatible" if isinstance(exc, DocumentShapeError) else "unreadable"
            print(
                f"squadsync: ignoring {kind} cache {self.path.name}: {exc}",
                file=sys.stderr,
            )
            return default_state(players)

    def save(self, state: dict) -> None:
        """Persist *state* atomically.

        Raises:
            OSError: If the blob cannot be written.
            LockTimeout: If another writer holds the cache lock too long.
        """
        content = json.dumps(state, sort_keys=True, indent=2, ensure_ascii=False) + "\n"
        with squad_lock(self.locks_dir, "cache"):
            atomic_write(self.path, content)

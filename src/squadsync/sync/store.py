"""File-backed keyed document table used by the document server.

Logically a table of ``(scope, key, value)`` rows with upsert-by-(scope, key).
Each scope is one JSON file in ``<data_dir>/``, rewritten with
``atomic_write()`` on every upsert.  With no data directory the table is
memory-only.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from urllib.parse import quote

from squadsync.storage.fs import atomic_write

_SUFFIX = ".json"


class DocumentStore:
    """Load, cache, and persist per-scope document tables."""

    def __init__(self, data_dir: Path | None = None) -> None:
        self.data_dir = data_dir
        if data_dir is not None:
            data_dir.mkdir(parents=True, exist_ok=True)
        self._cache: dict[str, dict[str, object]] = {}

    def get(self, scope: str, key: str) -> tuple[bool, object]:
        """Return ``(found, value)`` for one row."""
        table = self._table(scope)
        if key not in table:
            return False, None
        return True, copy.deepcopy(table[key])

    def put(self, scope: str, key: str, value: object) -> None:
        """Upsert one row, replacing any previous value whole."""
        table = self._table(scope)
        table[key] = copy.deepcopy(value)
        self._save(scope)

    def _table(self, scope: str) -> dict[str, object]:
        if scope in self._cache:
            return self._cache[scope]

        table: dict[str, object] = {}
        path = self._scope_path(scope)
        if path is not None and path.exists():
            table = json.loads(path.read_text(encoding="utf-8"))

        self._cache[scope] = table
        return table

    def _save(self, scope: str) -> None:
        path = self._scope_path(scope)
        if path is None:
            return
        atomic_write(
            path,
            json.dumps(self._cache[scope], sort_keys=True, indent=2, ensure_ascii=False) + "\n",
        )

    def _scope_path(self, scope: str) -> Path | None:
        if self.data_dir is None:
            return None
        return self.data_dir / f"{quote(scope, safe='')}{_SUFFIX}"

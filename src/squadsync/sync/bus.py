"""Key-prefix filtered listener registry.

Listeners are fire-and-forget: failures are logged to stderr but never
raise exceptions or interrupt delivery to the remaining listeners.

Each registry is owned by the object that fires it (a change feed or an
orchestrator); there is no process-wide listener list.
"""

from __future__ import annotations

import itertools
import sys
from collections.abc import Callable

Listener = Callable[[str, object], None]


class ListenerRegistry:
    """Multiplex ``(key, value)`` notifications over many handlers."""

    def __init__(self, name: str = "squadsync") -> None:
        self.name = name
        self._listeners: dict[int, tuple[str, Listener]] = {}
        self._handles = itertools.count(1)

    def __len__(self) -> int:
        return len(self._listeners)

    def register(self, fn: Listener, prefix: str = "") -> int:
        """Register *fn* for keys starting with *prefix* and return its handle.

        The callback receives ``(key, value)``.
        """
        handle = next(self._handles)
        self._listeners[handle] = (prefix, fn)
        return handle

    def unregister(self, handle: int) -> None:
        """Remove a listener.  Unknown or already-removed handles are ignored."""
        self._listeners.pop(handle, None)

    def clear(self) -> None:
        self._listeners.clear()

    def notify(self, key: str, value: object) -> None:
        """Fire every listener whose prefix matches *key*.  Never raises."""
        for prefix, fn in list(self._listeners.values()):
            if not key.startswith(prefix):
                continue
            try:
                fn(key, value)
            except Exception as exc:
                print(f"{self.name}: listener error on {key}: {exc}", file=sys.stderr)

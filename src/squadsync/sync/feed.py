"""Change feed subscriber: one push channel per team scope.

``open()`` connects once and starts a reader task; every ``(key, value)``
change the server reports for the scope is fanned out to the handlers
registered with ``subscribe()``.  There is no history replay and no
automatic reconnection: when the connection drops, delivery stops and a
note goes to stderr.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import sys
from typing import Any

from squadsync.sync.bus import Listener, ListenerRegistry


class ChangeFeed:
    """Subscribe to document changes for one team scope."""

    def __init__(
        self,
        url: str,
        scope: str,
        token: str | None = None,
        peer_id: str | None = None,
    ) -> None:
        self.url = url
        self.scope = scope
        self.token = token
        self.peer_id = peer_id
        self._listeners = ListenerRegistry("squadsync feed")
        self._ws: Any = None
        self._reader: asyncio.Task | None = None

    @property
    def connected(self) -> bool:
        return self._reader is not None and not self._reader.done()

    def subscribe(self, on_event: Listener, prefix: str = "") -> int:
        """Register a handler for changes to keys starting with *prefix*."""
        return self._listeners.register(on_event, prefix)

    def unsubscribe(self, handle: int) -> None:
        """Stop delivery to one handler.  Safe to call more than once."""
        self._listeners.unregister(handle)

    async def open(self) -> bool:
        """Connect and start delivering.  Returns ``False`` if the channel is unavailable.

        At most one channel is opened; calling again while connected is a no-op.
        """
        if self.connected:
            return True

        import websockets

        request: dict = {"op": "subscribe", "scope": self.scope}
        if self.token:
            request["token"] = self.token
        if self.peer_id:
            request["peer_id"] = self.peer_id

        try:
            ws = await websockets.connect(self.url)
        except Exception as exc:
            print(f"squadsync: change feed unavailable: {exc}", file=sys.stderr)
            return False

        try:
            await ws.send(json.dumps(request))
            ack = json.loads(await ws.recv())
        except Exception as exc:
            print(f"squadsync: change feed handshake failed: {exc}", file=sys.stderr)
            await ws.close()
            return False
        if not isinstance(ack, dict) or not ack.get("ok"):
            print(f"squadsync: change feed refused: {ack}", file=sys.stderr)
            await ws.close()
            return False

        self._ws = ws
        self._reader = asyncio.get_running_loop().create_task(self._read_loop(ws))
        return True

    async def close(self) -> None:
        """Stop delivery and release the channel.  Idempotent."""
        reader, self._reader = self._reader, None
        ws, self._ws = self._ws, None
        if reader is not None:
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader
        if ws is not None:
            await ws.close()
        self._listeners.clear()

    async def _read_loop(self, ws: Any) -> None:
        from websockets.exceptions import ConnectionClosed

        try:
            async for message in ws:
                self._dispatch(message)
        except ConnectionClosed as exc:
            print(f"squadsync: change feed lost: {exc}", file=sys.stderr)
            return
        print("squadsync: change feed closed by server", file=sys.stderr)

    def _dispatch(self, raw_message: str | bytes) -> None:
        try:
            data = json.loads(raw_message)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            print(f"squadsync: bad feed message: {exc}", file=sys.stderr)
            return
        if not isinstance(data, dict) or data.get("type") != "change":
            return
        # Never mix documents from two scopes.
        if data.get("scope") != self.scope:
            return
        key = data.get("key")
        if not isinstance(key, str):
            return
        self._listeners.notify(key, data.get("value"))

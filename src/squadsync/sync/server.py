"""WebSocket document server: keyed table plus per-scope change notifications.

Every message is one JSON object.  Requests carry an ``op``:

``{"op": "get", "scope": s, "key": k}``
    answered with ``{"ok": true, "found": bool, "value": v}``
``{"op": "put", "scope": s, "key": k, "value": v}``
    answered with ``{"ok": true}``; every subscriber of ``s`` (the writer's
    own feed included) then receives
    ``{"type": "change", "scope": s, "key": k, "value": v}``
``{"op": "subscribe", "scope": s}``
    answered with ``{"ok": true}``; the connection then stays open for
    change notifications.

Failures are answered with ``{"ok": false, "error": {"code", "message"}}``.
When the server has a token, requests must carry a matching ``token``.
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any

from squadsync.core.config import DEFAULT_LISTEN_HOST, DEFAULT_LISTEN_PORT
from squadsync.sync.store import DocumentStore


class DocumentServer:
    """Serve a ``DocumentStore`` to squadsync clients over WebSocket."""

    def __init__(
        self,
        store: DocumentStore,
        host: str = DEFAULT_LISTEN_HOST,
        port: int = DEFAULT_LISTEN_PORT,
        token: str | None = None,
    ) -> None:
        self.store = store
        self.host = host
        self.port = port
        self.token = token
        self._subscribers: dict[str, set[Any]] = {}
        self._server: Any = None

    @property
    def bound_port(self) -> int:
        """The port actually listened on (differs from ``port`` when it is 0)."""
        if self._server is None:
            return self.port
        return next(iter(self._server.sockets)).getsockname()[1]

    async def start(self) -> None:
        """Start listening."""
        import websockets

        self._server = await websockets.serve(self._handle_peer, self.host, self.port)
        print(
            f"squadsync server: listening on ws://{self.host}:{self.bound_port}",
            file=sys.stderr,
        )

    async def serve_forever(self) -> None:
        """Start and run until cancelled."""
        await self.start()
        await asyncio.Future()  # Run forever

    async def stop(self) -> None:
        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    def subscriber_count(self, scope: str) -> int:
        return len(self._subscribers.get(scope, ()))

    async def _handle_peer(self, websocket: Any, path: Any = None) -> None:  # noqa: ARG002
        from websockets.exceptions import ConnectionClosed

        try:
            async for message in websocket:
                reply, change = self._handle_message(websocket, message)
                await websocket.send(json.dumps(reply))
                if change is not None:
                    await self._broadcast(change)
        except ConnectionClosed:
            pass
        finally:
            for subscribers in self._subscribers.values():
                subscribers.discard(websocket)

    def _handle_message(self, websocket: Any, raw_message: str | bytes) -> tuple[dict, dict | None]:
        """Apply one request.  Returns ``(reply, change_to_broadcast)``."""
        try:
            data = json.loads(raw_message)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            return _error("BAD_MESSAGE", f"invalid JSON: {exc}"), None
        if not isinstance(data, dict):
            return _error("BAD_MESSAGE", "message must be a JSON object"), None

        if self.token is not None and data.get("token") != self.token:
            return _error("UNAUTHORIZED", "missing or invalid token"), None

        scope = data.get("scope")
        if not isinstance(scope, str) or not scope:
            return _error("BAD_MESSAGE", "scope must be a non-empty string"), None

        op = data.get("op")
        if op == "subscribe":
            self._subscribers.setdefault(scope, set()).add(websocket)
            peer = data.get("peer_id") or id(websocket)
            print(f"squadsync server: {peer} subscribed to {scope}", file=sys.stderr)
            return {"ok": True}, None

        key = data.get("key")
        if not isinstance(key, str) or not key:
            return _error("BAD_MESSAGE", "key must be a non-empty string"), None

        if op == "get":
            found, value = self.store.get(scope, key)
            return {"ok": True, "found": found, "value": value}, None

        if op == "put":
            if "value" not in data:
                return _error("BAD_MESSAGE", "put requires a value"), None
            try:
                self.store.put(scope, key, data["value"])
            except OSError as exc:
                print(f"squadsync server: write failed for {scope}/{key}: {exc}", file=sys.stderr)
                return _error("WRITE_FAILED", str(exc)), None
            change = {"type": "change", "scope": scope, "key": key, "value": data["value"]}
            return {"ok": True}, change

        return _error("BAD_MESSAGE", f"unknown op: {op!r}"), None

    async def _broadcast(self, change: dict) -> None:
        subscribers = list(self._subscribers.get(change["scope"], ()))
        if subscribers:
            payload = json.dumps(change)
            await asyncio.gather(
                *(ws.send(payload) for ws in subscribers),
                return_exceptions=True,
            )


def _error(code: str, message: str) -> dict:
    return {"ok": False, "error": {"code": code, "message": message}}

"""Remote store client: point reads and whole-value upserts over WebSocket.

Best-effort by contract: no method raises.  A failed read looks exactly like
a key that was never written (``None``); a failed write returns ``False``.
Callers keep working from local data either way.
"""

from __future__ import annotations

import json
import sys


class RemoteStoreClient:
    """Read and write documents for one team scope on a document server."""

    def __init__(self, url: str, scope: str, token: str | None = None) -> None:
        self.url = url
        self.scope = scope
        self.token = token

    async def get(self, key: str) -> object | None:
        """Return the latest remote value for *key*, or ``None``."""
        try:
            reply = await self._request({"op": "get", "key": key})
        except Exception as exc:
            print(f"squadsync: remote read of {key} failed: {exc}", file=sys.stderr)
            return None
        if not reply.get("ok"):
            print(f"squadsync: remote read of {key} refused: {_describe(reply)}", file=sys.stderr)
            return None
        if not reply.get("found"):
            return None
        return reply.get("value")

    async def put(self, key: str, value: object) -> bool:
        """Replace the remote value for *key*.  Returns ``True`` on success."""
        try:
            reply = await self._request({"op": "put", "key": key, "value": value})
        except Exception as exc:
            print(f"squadsync: remote write of {key} failed: {exc}", file=sys.stderr)
            return False
        if not reply.get("ok"):
            print(f"squadsync: remote write of {key} refused: {_describe(reply)}", file=sys.stderr)
            return False
        return True

    async def _request(self, message: dict) -> dict:
        import websockets

        payload = {**message, "scope": self.scope}
        if self.token:
            payload["token"] = self.token

        async with websockets.connect(self.url) as ws:
            await ws.send(json.dumps(payload))
            raw = await ws.recv()

        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("reply is not a JSON object")
        return data


def _describe(reply: dict) -> str:
    error = reply.get("error") or {}
    if isinstance(error, dict):
        return error.get("message") or error.get("code") or "unknown error"
    return str(error)

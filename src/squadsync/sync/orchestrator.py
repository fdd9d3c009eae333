"""Sync orchestrator: one observable state tree over cache, remote store, and feed.

The orchestrator owns the in-memory state tree.  Nothing else mutates it;
every change enters through one of three doors:

* ``put()``: a local edit.  Applied in memory at once, persisted to the
  local cache synchronously, announced to local subscribers, and only then
  sent to the remote store in the background (write-behind).
* ``load()``: a background remote read.  A found value replaces the
  in-memory one; an absent one leaves local data in place.
* ``receive()``: a change-feed event.  Overwrites the in-memory value
  unconditionally (last writer wins, no version check).

Per key the orchestrator tracks freshness: UNLOADED (only cached or default
data), LOADED (a remote read completed), LIVE (a feed event was applied).

Everything runs on one asyncio event loop.  Remote calls are tasks and
debounce windows are loop timers; nothing blocks on the network.  Network
and storage failures are reported on stderr and absorbed here.
"""

from __future__ import annotations

import asyncio
import copy
import json
import sys
from collections.abc import Callable
from datetime import date
from enum import Enum
from pathlib import Path

from squadsync.core.config import get_players
from squadsync.core.resources import prepend_resource, remove_resource
from squadsync.core.schedule import (
    apply_day_status,
    status_for,
    team_readiness,
    validate_day_status,
)
from squadsync.core.weeks import (
    date_in_week,
    parse_week_id,
    start_of_next_week,
    start_of_week,
    week_key,
)
from squadsync.storage.cache import LocalCache
from squadsync.storage.locks import LockTimeout
from squadsync.sync.bus import ListenerRegistry
from squadsync.sync.documents import (
    RESOURCES_KEY,
    TEAM_NAME_KEY,
    DocumentFamily,
    DocumentKey,
    DocumentShapeError,
    normalize_state,
    notes_key,
    parse_key,
    payload_document_keys,
    read_document,
    schedule_key,
    validate_value,
    write_document,
)

DEBOUNCE_SECONDS = 0.4


class KeyState(str, Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"
    LIVE = "live"


class ImportPayloadError(ValueError):
    """Raised when an import payload is not a valid state tree.  State is left unchanged."""


class SyncOrchestrator:
    """Local-first document store for one team scope."""

    def __init__(
        self,
        cache: LocalCache,
        players: list[str],
        remote=None,
        feed=None,
        *,
        debounce: float = DEBOUNCE_SECONDS,
        active_week: date | None = None,
    ) -> None:
        self.cache = cache
        self.players = list(players)
        self.remote = remote
        self.feed = feed
        self.debounce = debounce
        self.active_week = start_of_week(active_week) if active_week else start_of_next_week()
        self.failed_writes = 0

        self._state = cache.load(self.players)
        self._key_states: dict[str, KeyState] = {}
        self._loading: set[str] = set()
        self._listeners = ListenerRegistry("squadsync")
        self._inflight: set[asyncio.Task] = set()
        self._debounced: dict[str, asyncio.TimerHandle] = {}
        self._pending: dict[str, object] = {}
        self._feed_handle: int | None = None

    @classmethod
    def from_squad_dir(cls, squad_dir: Path, environ=None, **kwargs) -> SyncOrchestrator:
        """Build an orchestrator from ``.squadsync/`` config and the environment.

        Without a team scope and remote URL the orchestrator runs local-only.
        """
        from squadsync.sync.client import RemoteStoreClient
        from squadsync.sync.config import load_squad_config, remote_enabled, resolve_remote_settings
        from squadsync.sync.feed import ChangeFeed

        config = load_squad_config(squad_dir)
        settings = resolve_remote_settings(config, environ)
        remote = feed = None
        if remote_enabled(settings):
            remote = RemoteStoreClient(settings["url"], settings["team"], settings["token"])
            feed = ChangeFeed(
                settings["url"],
                settings["team"],
                settings["token"],
                peer_id=config.get("peer_id"),
            )
        return cls(LocalCache(squad_dir), get_players(config), remote, feed, **kwargs)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def mode(self) -> str:
        """``"remote"`` when a remote store is configured, else ``"local"``."""
        return "remote" if self.remote is not None else "local"

    @property
    def state(self) -> dict:
        """A deep copy of the whole state tree."""
        return copy.deepcopy(self._state)

    @property
    def active_week_id(self) -> str:
        return week_key(self.active_week)

    def key_state(self, key: str) -> KeyState:
        return self._key_states.get(str(self._parse(key)), KeyState.UNLOADED)

    # ------------------------------------------------------------------
    # get / put / subscribe
    # ------------------------------------------------------------------

    def get(self, key: str) -> object | None:
        """Return the current in-memory value for *key* (``None`` if absent)."""
        return read_document(self._state, self._parse(key))

    def put(self, key: str, value: object, *, debounce: bool = False) -> None:
        """Apply a local edit now and write it to the remote store behind.

        With *debounce*, the remote write waits for ``self.debounce``
        seconds of quiet and then carries only the latest value.

        Raises:
            DocumentShapeError: If *value* does not fit *key*'s family.
        """
        dk = self._parse(key)
        validate_value(dk, value, self.players)
        self._apply(dk, value)
        self._schedule_push(str(dk), copy.deepcopy(value), debounce)

    def subscribe(self, handler: Callable[[str, object], None], prefix: str = "") -> int:
        """Call ``handler(key, value)`` after every in-memory change under *prefix*."""
        return self._listeners.register(handler, prefix)

    def unsubscribe(self, handle: int) -> None:
        self._listeners.unregister(handle)

    # ------------------------------------------------------------------
    # Remote reads and feed events
    # ------------------------------------------------------------------

    def load(self, key: str) -> asyncio.Task | None:
        """Fetch *key* from the remote store in the background.

        Returns the fetch task, or ``None`` when no fetch is needed (local-only
        mode, already fetched, or a fetch already running).  The current
        value stays readable the whole time.
        """
        dk = self._parse(key)
        raw = str(dk)
        if self.remote is None or raw in self._loading:
            return None
        if self._key_states.get(raw, KeyState.UNLOADED) is not KeyState.UNLOADED:
            return None
        self._loading.add(raw)
        return self._spawn(self._fetch(dk))

    async def refresh(self, *keys: str) -> None:
        """Fetch *keys* and wait for the results, even if already loaded."""
        if self.remote is None:
            return
        await asyncio.gather(*(self._fetch(self._parse(k)) for k in keys))

    async def _fetch(self, dk: DocumentKey) -> None:
        raw = str(dk)
        try:
            value = await self.remote.get(raw)
        finally:
            self._loading.discard(raw)
        if self._key_states.get(raw) is not KeyState.LIVE:
            self._key_states[raw] = KeyState.LOADED
        if value is None:
            return
        try:
            validate_value(dk, value, self.players)
        except DocumentShapeError as exc:
            print(f"squadsync: ignoring remote {raw}: {exc}", file=sys.stderr)
            return
        if value != read_document(self._state, dk):
            self._apply(dk, value)

    def receive(self, key: str, value: object) -> None:
        """Apply a change-feed event.  The delivered value wins outright."""
        try:
            dk = parse_key(key, self.players)
            validate_value(dk, value, self.players)
        except DocumentShapeError as exc:
            print(f"squadsync: ignoring feed event for {key}: {exc}", file=sys.stderr)
            return
        if not self.is_of_interest(dk):
            return
        self._key_states[str(dk)] = KeyState.LIVE
        self._apply(dk, value)

    def is_of_interest(self, dk: DocumentKey) -> bool:
        """Whether feed events for *dk* are applied.

        All non-schedule documents are; a week is when it is active, was
        already fetched, or has cached data to keep fresh.
        """
        if dk.family is not DocumentFamily.SCHEDULE:
            return True
        if dk.arg == self.active_week_id or dk.arg in self._state["scheduleDays"]:
            return True
        return self._key_states.get(str(dk), KeyState.UNLOADED) is not KeyState.UNLOADED

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def standing_keys(self) -> list[str]:
        """Keys every view needs: team name, all notes, resources, active week."""
        keys = [TEAM_NAME_KEY, RESOURCES_KEY]
        keys.extend(notes_key(scope) for scope in self._state["notes"])
        keys.append(schedule_key(self.active_week_id))
        return keys

    async def start(self) -> None:
        """Open the change feed, then fetch the standing keys in the background.

        Subscribing first means no change slips between a read and the feed.
        """
        if self.feed is not None and self._feed_handle is None:
            if await self.feed.open():
                self._feed_handle = self.feed.subscribe(self.receive)
        for key in self.standing_keys():
            self.load(key)

    async def flush(self) -> None:
        """Send pending debounced writes now and wait for every remote call."""
        for key in list(self._debounced):
            self._debounced.pop(key).cancel()
            self._spawn(self._push(key, self._pending.pop(key)))
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def close(self) -> None:
        """Flush, then release the change feed."""
        await self.flush()
        if self.feed is not None:
            if self._feed_handle is not None:
                self.feed.unsubscribe(self._feed_handle)
                self._feed_handle = None
            await self.feed.close()

    # ------------------------------------------------------------------
    # Document-level edits
    # ------------------------------------------------------------------

    def set_active_week(self, week: date | str) -> asyncio.Task | None:
        """Make *week* the week of interest and fetch it if never loaded.

        Previously loaded weeks stay in memory.
        """
        monday = parse_week_id(week) if isinstance(week, str) else start_of_week(week)
        self.active_week = monday
        return self.load(schedule_key(week_key(monday)))

    def set_day_status(self, week_id: str, player: str, day_key: str, status: str) -> None:
        """Set one player's status for one date, rewriting the whole week document."""
        monday = parse_week_id(week_id)
        self._check_player(player)
        if not date_in_week(day_key, monday):
            raise ValueError(f"{day_key!r} is not a date in the week of {week_id}")
        if not validate_day_status(status):
            raise ValueError(f"Invalid status {status!r}; expected YES, TBD, or NO")

        key = schedule_key(week_id)
        self.put(key, apply_day_status(self.get(key), player, day_key, status))

    def status_for(self, week_id: str, player: str, day_key: str) -> str | None:
        """Return one stored status, or ``None`` when never set."""
        return status_for(self.get(schedule_key(week_id)), player, day_key)

    def readiness(self, week_id: str | None = None) -> dict[str, int]:
        """Per date of the week (default: active week), how many players said YES."""
        monday = parse_week_id(week_id) if week_id else self.active_week
        week = self._state["scheduleDays"].get(week_key(monday))
        return team_readiness(week, monday, self.players)

    def set_note(self, scope: str, text: str) -> None:
        self.put(notes_key(scope), text, debounce=True)

    def set_team_name(self, name: str) -> None:
        self.put(TEAM_NAME_KEY, name, debounce=True)

    def add_resource(self, resource: dict) -> None:
        """Prepend *resource* exactly as given and write the whole list."""
        self.put(RESOURCES_KEY, prepend_resource(self.get(RESOURCES_KEY), resource))

    def remove_resource(self, resource_id: str) -> None:
        self.put(RESOURCES_KEY, remove_resource(self.get(RESOURCES_KEY), resource_id))

    def set_active_player(self, player: str) -> None:
        """Choose which player this client edits as.  Local preference, never synced."""
        self._check_player(player)
        self._state["activePlayer"] = player
        self._persist()

    # ------------------------------------------------------------------
    # Bulk transfer
    # ------------------------------------------------------------------

    def export_state(self) -> dict:
        """Return the whole state tree for export."""
        return self.state

    def import_state(self, payload: object) -> list[str]:
        """Replace the whole state tree and push every document in *payload*.

        *payload* is a state-tree dict or its JSON text.  Returns the keys
        written to the remote store, one per document present.

        Raises:
            ImportPayloadError: If *payload* is malformed; state is unchanged.
        """
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except ValueError as exc:
                raise ImportPayloadError(f"Invalid JSON file: {exc}") from None
        try:
            new_state = normalize_state(payload, self.players)
        except DocumentShapeError as exc:
            raise ImportPayloadError(f"Invalid import: {exc}") from None

        keys = payload_document_keys(payload)
        # Debounced edits made before the import describe the replaced state.
        for handle in self._debounced.values():
            handle.cancel()
        self._debounced.clear()
        self._pending.clear()

        self._state = new_state
        self._persist()
        for key in keys:
            value = self.get(key)
            self._listeners.notify(key, value)
            self._schedule_push(key, value, debounce=False)
        return keys

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _parse(self, key: str) -> DocumentKey:
        return parse_key(key, self.players)

    def _check_player(self, player: str) -> None:
        if player not in self.players:
            raise ValueError(f"Unknown player {player!r}; expected one of: {', '.join(self.players)}")

    def _apply(self, dk: DocumentKey, value: object) -> None:
        write_document(self._state, dk, value)
        self._persist()
        self._listeners.notify(str(dk), read_document(self._state, dk))

    def _persist(self) -> None:
        try:
            self.cache.save(self._state)
        except (OSError, LockTimeout) as exc:
            print(f"squadsync: local cache write failed: {exc}", file=sys.stderr)

    def _schedule_push(self, key: str, value: object, debounce: bool) -> None:
        if self.remote is None:
            return
        handle = self._debounced.pop(key, None)
        if handle is not None:
            handle.cancel()
            self._pending.pop(key, None)
        if not debounce or self.debounce <= 0:
            self._spawn(self._push(key, value))
            return
        self._pending[key] = value
        loop = asyncio.get_running_loop()
        self._debounced[key] = loop.call_later(self.debounce, self._fire_debounced, key)

    def _fire_debounced(self, key: str) -> None:
        self._debounced.pop(key, None)
        if key in self._pending:
            self._spawn(self._push(key, self._pending.pop(key)))

    async def _push(self, key: str, value: object) -> None:
        # No retry and no rollback: the optimistic value stays on screen.
        if not await self.remote.put(key, value):
            self.failed_writes += 1

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

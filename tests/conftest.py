"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import copy
import json
from datetime import date
from pathlib import Path

import pytest
from click.testing import CliRunner

from squadsync.core.config import DEFAULT_PLAYERS
from squadsync.sync.bus import ListenerRegistry

TEAM = "squad"
WEEK = "2025-09-29"
PLAYERS = list(DEFAULT_PLAYERS)


# ---------------------------------------------------------------------------
# In-process backend (stands in for the document server)
# ---------------------------------------------------------------------------


class MemoryBackend:
    """Keyed table plus change feeds, all in one process.

    ``hold_writes()`` parks every remote write before it reaches the table
    until ``release_writes()``; parked writes then land in the order they
    were issued.  Reads are never parked.
    """

    def __init__(self) -> None:
        self.table: dict[tuple[str, str], object] = {}
        self.feeds: list[FakeFeed] = []
        self.applied: list[tuple[str, object]] = []
        self._gate: asyncio.Event | None = None

    def hold_writes(self) -> None:
        self._gate = asyncio.Event()

    def release_writes(self) -> None:
        gate, self._gate = self._gate, None
        if gate is not None:
            gate.set()

    def value(self, key: str, scope: str = TEAM) -> object | None:
        return copy.deepcopy(self.table.get((scope, key)))

    def broadcast(self, scope: str, key: str, value: object) -> None:
        for feed in self.feeds:
            if feed.scope == scope and feed.connected:
                feed.deliver(key, copy.deepcopy(value))


class FakeRemote:
    def __init__(self, backend: MemoryBackend, scope: str = TEAM) -> None:
        self.backend = backend
        self.scope = scope
        self.fail = False
        self.reads: list[str] = []
        self.writes: list[tuple[str, object]] = []

    async def get(self, key: str) -> object | None:
        self.reads.append(key)
        await asyncio.sleep(0)
        if self.fail:
            return None
        return self.backend.value(key, self.scope)

    async def put(self, key: str, value: object) -> bool:
        self.writes.append((key, copy.deepcopy(value)))
        gate = self.backend._gate
        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)
        if self.fail:
            return False
        self.backend.table[(self.scope, key)] = copy.deepcopy(value)
        self.backend.applied.append((key, copy.deepcopy(value)))
        self.backend.broadcast(self.scope, key, value)
        return True


class FakeFeed:
    def __init__(self, backend: MemoryBackend, scope: str = TEAM) -> None:
        self.scope = scope
        self._listeners = ListenerRegistry("fake feed")
        self._open = False
        backend.feeds.append(self)

    @property
    def connected(self) -> bool:
        return self._open

    def subscribe(self, on_event, prefix: str = "") -> int:  # noqa: ANN001
        return self._listeners.register(on_event, prefix)

    def unsubscribe(self, handle: int) -> None:
        self._listeners.unregister(handle)

    async def open(self) -> bool:
        self._open = True
        return True

    async def close(self) -> None:
        self._open = False
        self._listeners.clear()

    def deliver(self, key: str, value: object) -> None:
        self._listeners.notify(key, value)


@pytest.fixture()
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture()
def make_client(tmp_path: Path, backend: MemoryBackend):
    """Factory fixture: build an orchestrator with its own cache directory.

    Usage::

        a = make_client("a")
        offline = make_client("c", remote=False)
    """
    from squadsync.storage.cache import LocalCache
    from squadsync.sync.orchestrator import SyncOrchestrator

    def _make(name: str = "a", *, remote: bool = True, **kwargs) -> SyncOrchestrator:
        kwargs.setdefault("active_week", date.fromisoformat(WEEK))
        kwargs.setdefault("debounce", 0.01)
        return SyncOrchestrator(
            LocalCache(tmp_path / name),
            PLAYERS,
            FakeRemote(backend) if remote else None,
            FakeFeed(backend) if remote else None,
            **kwargs,
        )

    return _make


# ---------------------------------------------------------------------------
# CLI fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def squad_root(tmp_path: Path) -> Path:
    """Return a temporary directory suitable for initializing .squadsync/ in."""
    return tmp_path


@pytest.fixture()
def initialized_root(squad_root: Path) -> Path:
    """Return a temporary directory with .squadsync/ already initialized."""
    from squadsync.core.config import default_config
    from squadsync.storage.fs import SQUAD_DIR, ensure_squad_dirs
    from squadsync.sync.config import save_squad_config

    ensure_squad_dirs(squad_root)
    save_squad_config(squad_root / SQUAD_DIR, dict(default_config()))
    return squad_root


@pytest.fixture()
def cli_runner() -> CliRunner:
    """Return a Click CliRunner for invoking CLI commands."""
    return CliRunner()


@pytest.fixture()
def cli_env(initialized_root: Path) -> dict[str, str]:
    """Env pointing at initialized_root with no remote store (local-only mode)."""
    return {
        "SQUADSYNC_ROOT": str(initialized_root),
        "SQUADSYNC_TEAM": "",
        "SQUADSYNC_REMOTE_URL": "",
        "SQUADSYNC_TOKEN": "",
    }


@pytest.fixture()
def invoke(cli_runner: CliRunner, cli_env: dict[str, str]):
    """Return a helper that invokes CLI commands with the right environment.

    Usage::

        result = invoke("set", "2025-09-29", "YES", "--player", "Potato")
    """
    from squadsync.cli.main import cli

    def _invoke(*args: str, **kwargs):
        return cli_runner.invoke(cli, list(args), env=cli_env, **kwargs)

    return _invoke


@pytest.fixture()
def invoke_json(invoke):
    """Like invoke, but appends --json and parses the response.

    Returns (parsed_dict, exit_code) tuple.
    """

    def _invoke_json(*args: str) -> tuple[dict, int]:
        result = invoke(*args, "--json")
        parsed = json.loads(result.stdout)
        return parsed, result.exit_code

    return _invoke_json

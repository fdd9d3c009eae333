"""Default config generation and validation."""

from __future__ import annotations

import json
import re
from typing import TypedDict

DEFAULT_PLAYERS: tuple[str, ...] = ("Potato", "YX8", "Champerrin")
DEFAULT_TEAM_NAME = "APEX Squad"
DEFAULT_LISTEN_HOST = "127.0.0.1"
DEFAULT_LISTEN_PORT = 9800

# Player names double as note scopes and document-key suffixes.
_PLAYER_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9 _.-]{0,31}$")
_RESERVED_SCOPES = frozenset({"shared"})


class ListenConfig(TypedDict, total=False):
    host: str
    port: int


class SquadConfig(TypedDict, total=False):
    schema_version: int
    peer_id: str
    players: list[str]
    team: str
    remote_url: str
    listen: ListenConfig


def default_config() -> SquadConfig:
    """Return the default squad configuration.

    ``team`` and ``remote_url`` are deliberately absent: without them the
    client runs against its local cache only.
    """
    from squadsync.core.ids import generate_peer_id

    return {
        "schema_version": 1,
        "peer_id": generate_peer_id(),
        "players": list(DEFAULT_PLAYERS),
        "listen": {
            "host": DEFAULT_LISTEN_HOST,
            "port": DEFAULT_LISTEN_PORT,
        },
    }


def validate_player_name(name: str) -> bool:
    """Return ``True`` if *name* can be used as a player (and note scope)."""
    if not isinstance(name, str) or name in _RESERVED_SCOPES:
        return False
    return bool(_PLAYER_NAME_RE.match(name))


def validate_players(players: object) -> list[str]:
    """Return a list of problems with a configured player roster (empty if valid)."""
    if not isinstance(players, list) or not players:
        return ["players must be a non-empty list"]
    problems: list[str] = []
    seen: set[str] = set()
    for name in players:
        if not validate_player_name(name):
            problems.append(f"invalid player name: {name!r}")
        elif name in seen:
            problems.append(f"duplicate player name: {name!r}")
        else:
            seen.add(name)
    return problems


def get_players(config: dict) -> list[str]:
    """Return the configured roster, falling back to the defaults."""
    players = config.get("players")
    if validate_players(players):
        return list(DEFAULT_PLAYERS)
    return list(players)


def serialize_config(config: SquadConfig | dict[str, object]) -> str:
    """Serialize a config dict to the canonical JSON format."""
    return json.dumps(config, sort_keys=True, indent=2) + "\n"


def load_config(raw: str) -> dict:
    """Parse a JSON config string and return the config dict.

    This is a pure function (no I/O).  Callers read the file and pass the
    raw string here.
    """
    return json.loads(raw)

"""Project configuration on disk plus remote-store settings from the environment.

The config file is ``.squadsync/config.json``.  Team scope, remote URL, and
token may also come from the environment, which wins over the file.  When
either the team scope or the remote URL is missing, the client runs in
local-only mode.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import TypedDict

from squadsync.core.config import default_config, load_config, serialize_config

TEAM_ENV = "SQUADSYNC_TEAM"
REMOTE_URL_ENV = "SQUADSYNC_REMOTE_URL"
TOKEN_ENV = "SQUADSYNC_TOKEN"


class RemoteSettings(TypedDict):
    team: str | None
    url: str | None
    token: str | None


def load_squad_config(squad_dir: Path) -> dict:
    """Load project configuration, returning defaults if missing."""
    config_path = squad_dir / "config.json"
    if config_path.exists():
        return load_config(config_path.read_text(encoding="utf-8"))
    return dict(default_config())


def save_squad_config(squad_dir: Path, config: dict) -> None:
    """Save project configuration to disk."""
    from squadsync.storage.fs import atomic_write

    squad_dir.mkdir(parents=True, exist_ok=True)
    atomic_write(squad_dir / "config.json", serialize_config(config))


def resolve_remote_settings(
    config: dict,
    environ: Mapping[str, str] | None = None,
) -> RemoteSettings:
    """Merge config-file values with environment overrides.

    Empty strings count as unset.
    """
    env = os.environ if environ is None else environ
    return {
        "team": env.get(TEAM_ENV) or config.get("team") or None,
        "url": env.get(REMOTE_URL_ENV) or config.get("remote_url") or None,
        "token": env.get(TOKEN_ENV) or None,
    }


def remote_enabled(settings: RemoteSettings) -> bool:
    """Return ``True`` when both a team scope and a remote URL are known."""
    return bool(settings["team"] and settings["url"])

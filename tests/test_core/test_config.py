"""Tests for config defaults, roster validation, and remote settings."""

from __future__ import annotations

import json
from pathlib import Path

from squadsync.core.config import (
    DEFAULT_PLAYERS,
    default_config,
    get_players,
    load_config,
    serialize_config,
    validate_player_name,
    validate_players,
)
from squadsync.core.ids import validate_id
from squadsync.sync.config import (
    load_squad_config,
    remote_enabled,
    resolve_remote_settings,
    save_squad_config,
)


class TestDefaultConfig:
    """default_config() returns a well-formed local-only configuration."""

    def test_has_schema_version(self) -> None:
        assert default_config()["schema_version"] == 1

    def test_has_peer_id(self) -> None:
        assert validate_id(default_config()["peer_id"], "peer")

    def test_default_players(self) -> None:
        assert default_config()["players"] == ["Potato", "YX8", "Champerrin"]

    def test_no_remote(self) -> None:
        config = default_config()
        assert "team" not in config
        assert "remote_url" not in config

    def test_serialize_is_canonical(self) -> None:
        config = default_config()
        text = serialize_config(config)
        assert text.endswith("\n")
        assert load_config(text) == json.loads(text)
        assert serialize_config(load_config(text)) == text


class TestPlayers:
    def test_valid_names(self) -> None:
        assert validate_player_name("Potato")
        assert validate_player_name("YX8")
        assert validate_player_name("Big Ed")

    def test_shared_is_reserved(self) -> None:
        assert not validate_player_name("shared")

    def test_rejects_punctuation_lead(self) -> None:
        assert not validate_player_name(":x")
        assert not validate_player_name("")

    def test_roster_problems(self) -> None:
        assert validate_players(["A", "B"]) == []
        assert validate_players([]) == ["players must be a non-empty list"]
        assert validate_players(["A", "A"]) == ["duplicate player name: 'A'"]

    def test_get_players_falls_back(self) -> None:
        assert get_players({}) == list(DEFAULT_PLAYERS)
        assert get_players({"players": ["shared"]}) == list(DEFAULT_PLAYERS)
        assert get_players({"players": ["A", "B"]}) == ["A", "B"]

    def test_unhashable_entry_falls_back(self) -> None:
        assert validate_players([["a"], "A"]) == ["invalid player name: ['a']"]
        assert get_players({"players": [["a"]]}) == list(DEFAULT_PLAYERS)
        assert get_players({"players": [{"x": 1}, "B"]}) == list(DEFAULT_PLAYERS)


class TestSquadConfigFile:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        config = load_squad_config(tmp_path)
        assert config["players"] == list(DEFAULT_PLAYERS)

    def test_save_and_load(self, tmp_path: Path) -> None:
        config = dict(default_config())
        config["team"] = "squad"
        save_squad_config(tmp_path / ".squadsync", config)
        assert load_squad_config(tmp_path / ".squadsync") == config


class TestRemoteSettings:
    def test_local_only_by_default(self) -> None:
        settings = resolve_remote_settings(dict(default_config()), {})
        assert settings == {"team": None, "url": None, "token": None}
        assert not remote_enabled(settings)

    def test_from_config(self) -> None:
        config = {"team": "squad", "remote_url": "ws://127.0.0.1:9800"}
        settings = resolve_remote_settings(config, {})
        assert remote_enabled(settings)
        assert settings["team"] == "squad"

    def test_env_wins(self) -> None:
        config = {"team": "squad", "remote_url": "ws://a"}
        env = {
            "SQUADSYNC_TEAM": "other",
            "SQUADSYNC_REMOTE_URL": "ws://b",
            "SQUADSYNC_TOKEN": "s3cret",
        }
        assert resolve_remote_settings(config, env) == {
            "team": "other",
            "url": "ws://b",
            "token": "s3cret",
        }

    def test_empty_env_is_unset(self) -> None:
        config = {"team": "squad", "remote_url": "ws://a"}
        settings = resolve_remote_settings(config, {"SQUADSYNC_TEAM": ""})
        assert settings["team"] == "squad"

    def test_url_without_team_is_local(self) -> None:
        settings = resolve_remote_settings({"remote_url": "ws://a"}, {})
        assert not remote_enabled(settings)

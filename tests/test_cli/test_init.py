"""Tests for the `squadsync init` CLI command."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from squadsync.cli.main import cli
from squadsync.core.ids import validate_id


class TestInitDirectoryStructure:
    """squadsync init creates the .squadsync/ directory tree."""

    def test_creates_expected_directories(self, tmp_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["init", "--path", str(tmp_path)])
        assert result.exit_code == 0

        for d in ("cache", "locks", "server"):
            assert (tmp_path / ".squadsync" / d).is_dir(), f"Missing directory: {d}"

    def test_prints_local_only_hint(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(cli, ["init", "--path", str(tmp_path)])
        assert "Initialized empty squadsync project" in result.output
        assert "Players: Potato, YX8, Champerrin" in result.output
        assert "local-only" in result.output

    def test_idempotent(self, tmp_path: Path) -> None:
        runner = CliRunner()
        runner.invoke(cli, ["init", "--path", str(tmp_path)])
        config_before = (tmp_path / ".squadsync" / "config.json").read_text()

        result = runner.invoke(cli, ["init", "--path", str(tmp_path), "--team", "other"])
        assert result.exit_code == 0
        assert "already initialized" in result.output
        assert (tmp_path / ".squadsync" / "config.json").read_text() == config_before

    def test_refuses_file_in_the_way(self, tmp_path: Path) -> None:
        (tmp_path / ".squadsync").write_text("")
        result = CliRunner().invoke(cli, ["init", "--path", str(tmp_path)])
        assert result.exit_code != 0
        assert "exists but is not a directory" in result.output


class TestInitConfig:
    """squadsync init writes a valid config.json."""

    def _config(self, tmp_path: Path, *args: str) -> dict:
        result = CliRunner().invoke(cli, ["init", "--path", str(tmp_path), *args])
        assert result.exit_code == 0, result.output
        return json.loads((tmp_path / ".squadsync" / "config.json").read_text())

    def test_defaults(self, tmp_path: Path) -> None:
        config = self._config(tmp_path)
        assert config["schema_version"] == 1
        assert config["players"] == ["Potato", "YX8", "Champerrin"]
        assert validate_id(config["peer_id"], "peer")
        assert "team" not in config

    def test_remote_settings(self, tmp_path: Path) -> None:
        config = self._config(tmp_path, "--team", "squad", "--remote-url", "ws://10.0.0.5:9800")
        assert config["team"] == "squad"
        assert config["remote_url"] == "ws://10.0.0.5:9800"

    def test_custom_players(self, tmp_path: Path) -> None:
        config = self._config(tmp_path, "--players", "Ana, Bo ,Cy")
        assert config["players"] == ["Ana", "Bo", "Cy"]

    def test_rejects_bad_roster(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(cli, ["init", "--path", str(tmp_path), "--players", "Ana,shared"])
        assert result.exit_code != 0
        assert "invalid player name: 'shared'" in result.output
        assert not (tmp_path / ".squadsync").exists()


class TestNotInitialized:
    def test_commands_require_root(self, tmp_path: Path) -> None:
        runner = CliRunner()
        env = {"SQUADSYNC_ROOT": str(tmp_path)}
        result = runner.invoke(cli, ["team-name", "--json"], env=env)
        assert result.exit_code == 1
        parsed = json.loads(result.stdout)
        assert parsed["ok"] is False
        assert parsed["error"]["code"] == "NOT_INITIALIZED"

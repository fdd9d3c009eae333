"""Tests for sync/documents.py: keys, value shapes, and the state tree."""

from __future__ import annotations

import pytest

from squadsync.sync.documents import (
    DocumentFamily,
    DocumentKey,
    DocumentShapeError,
    default_state,
    drop_unknown_players,
    normalize_state,
    parse_key,
    payload_document_keys,
    read_document,
    validate_value,
    write_document,
)

PLAYERS = ["Potato", "YX8", "Champerrin"]
WEEK_KEY = DocumentKey(DocumentFamily.SCHEDULE, "2025-09-29")


class TestParseKey:
    def test_families(self):
        assert parse_key("team:name", PLAYERS) == DocumentKey(DocumentFamily.TEAM_NAME)
        assert parse_key("resources", PLAYERS) == DocumentKey(DocumentFamily.RESOURCES)
        assert parse_key("notes:shared", PLAYERS) == DocumentKey(DocumentFamily.NOTES, "shared")
        assert parse_key("notes:YX8", PLAYERS) == DocumentKey(DocumentFamily.NOTES, "YX8")
        assert parse_key("schedule:2025-09-29", PLAYERS) == WEEK_KEY

    @pytest.mark.parametrize("key", ["schedule:2025-09-30", "schedule:soon", "notes:Ghost", "weather", ""])
    def test_rejects(self, key):
        with pytest.raises(DocumentShapeError):
            parse_key(key, PLAYERS)

    def test_str_round_trips(self):
        for raw in ("team:name", "resources", "notes:shared", "schedule:2025-09-29"):
            assert str(parse_key(raw, PLAYERS)) == raw


class TestValidateValue:
    def test_week_ok(self):
        validate_value(WEEK_KEY, {"Potato": {"2025-09-29": "YES", "2025-10-05": "NO"}}, PLAYERS)

    def test_week_empty_ok(self):
        validate_value(WEEK_KEY, {}, PLAYERS)

    @pytest.mark.parametrize(
        "value",
        [
            [],
            {"Ghost": {}},
            {"Potato": []},
            {"Potato": {"2025-10-06": "YES"}},
            {"Potato": {"2025-09-29": "MAYBE"}},
        ],
    )
    def test_week_rejects(self, value):
        with pytest.raises(DocumentShapeError):
            validate_value(WEEK_KEY, value, PLAYERS)

    def test_text_families(self):
        validate_value(DocumentKey(DocumentFamily.TEAM_NAME), "", PLAYERS)
        with pytest.raises(DocumentShapeError, match="must hold a string"):
            validate_value(DocumentKey(DocumentFamily.NOTES, "shared"), 3, PLAYERS)

    def test_resources(self):
        key = DocumentKey(DocumentFamily.RESOURCES)
        validate_value(key, [{"id": "r", "title": "t", "url": "u", "type": "Video"}], PLAYERS)
        with pytest.raises(DocumentShapeError, match=r"resources\[0\]\.url"):
            validate_value(key, [{"id": "r", "title": "t", "type": "Video"}], PLAYERS)
        with pytest.raises(DocumentShapeError, match="desc"):
            validate_value(key, [{"id": "r", "title": "t", "url": "u", "type": "Video", "desc": 1}], PLAYERS)


class TestStateTree:
    def test_default_state(self):
        state = default_state(PLAYERS)
        assert state["teamName"] == "APEX Squad"
        assert state["activePlayer"] == "Potato"
        assert state["notes"] == {"shared": "", "Potato": "", "YX8": "", "Champerrin": ""}
        assert state["scheduleDays"] == {}
        assert state["resources"] == []

    def test_read_absent_week(self):
        assert read_document(default_state(PLAYERS), WEEK_KEY) is None

    def test_write_then_read_is_copied(self):
        state = default_state(PLAYERS)
        week = {"Potato": {"2025-09-29": "YES"}}
        write_document(state, WEEK_KEY, week)
        week["Potato"]["2025-09-29"] = "NO"

        got = read_document(state, WEEK_KEY)
        assert got == {"Potato": {"2025-09-29": "YES"}}
        got["YX8"] = {}
        assert "YX8" not in state["scheduleDays"]["2025-09-29"]


class TestNormalizeState:
    def test_fills_missing_fields(self):
        state = normalize_state({"teamName": "Night Shift"}, PLAYERS)
        assert state["teamName"] == "Night Shift"
        assert state["notes"]["shared"] == ""

    def test_players_come_from_config(self):
        state = normalize_state({"players": ["Someone", "Else"]}, PLAYERS)
        assert state["players"] == PLAYERS

    def test_ignores_unknown_fields(self):
        state = normalize_state({"version": 5, "theme": "dark"}, PLAYERS)
        assert "theme" not in state

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"activePlayer": "Ghost"},
            {"scheduleDays": []},
            {"scheduleDays": {"2025-09-30": {}}},
            {"notes": {"Ghost": "hi"}},
            {"resources": {}},
            {"teamName": None},
        ],
    )
    def test_rejects(self, payload):
        with pytest.raises(DocumentShapeError):
            normalize_state(payload, PLAYERS)

    def test_payload_document_keys(self):
        payload = {
            "scheduleDays": {"2025-09-29": {}, "2025-10-06": {}},
            "notes": {"shared": "a"},
            "resources": [],
            "teamName": "x",
        }
        assert payload_document_keys(payload) == [
            "schedule:2025-09-29",
            "schedule:2025-10-06",
            "notes:shared",
            "resources",
            "team:name",
        ]

    def test_payload_document_keys_only_present(self):
        assert payload_document_keys({"teamName": "x"}) == ["team:name"]


class TestDropUnknownPlayers:
    def test_drops_removed_players_only(self):
        payload = {
            "activePlayer": "Ghost",
            "scheduleDays": {"2025-09-29": {"Ghost": {"2025-09-29": "YES"}, "YX8": {}}},
            "notes": {"shared": "s", "Ghost": "boo", "Potato": "p"},
            "teamName": "Night Shift",
        }
        pruned = drop_unknown_players(payload, PLAYERS)

        assert "activePlayer" not in pruned
        assert pruned["scheduleDays"] == {"2025-09-29": {"YX8": {}}}
        assert pruned["notes"] == {"shared": "s", "Potato": "p"}
        assert pruned["teamName"] == "Night Shift"
        assert payload["notes"]["Ghost"] == "boo"

    def test_leaves_bad_shapes_for_validation(self):
        pruned = drop_unknown_players({"scheduleDays": [], "notes": "x"}, PLAYERS)
        assert pruned == {"scheduleDays": [], "notes": "x"}
        with pytest.raises(DocumentShapeError):
            normalize_state(pruned, PLAYERS)
        assert drop_unknown_players([], PLAYERS) == []

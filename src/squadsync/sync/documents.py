"""Document keys, value shapes, and their place in the state tree.

Every synced document lives under a key from a closed set of families:

==================  =================  ======================================
key                 family             value
==================  =================  ======================================
``schedule:<week>`` SCHEDULE           ``{player: {YYYY-MM-DD: status}}``
``notes:<scope>``   NOTES              ``str`` (scope is ``shared`` or a player)
``team:name``       TEAM_NAME          ``str``
``resources``       RESOURCES          ``[{id, title, url, type, desc?}]``
==================  =================  ======================================

The family fixes the value shape.  ``validate_value()`` runs at every
boundary where a value enters the state tree: local writes, remote reads,
change-feed events, imports, and cache loads.

The state tree is the one JSON object shared by the in-memory state, the
local cache blob, and export files::

    {"players": [...], "activePlayer": "...", "teamName": "...",
     "scheduleDays": {week: {...}}, "notes": {...}, "resources": [...]}
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum

from squadsync.core.config import DEFAULT_TEAM_NAME
from squadsync.core.schedule import DAY_STATUSES
from squadsync.core.weeks import WeekIdError, date_in_week, parse_week_id

SCHEDULE_PREFIX = "schedule:"
NOTES_PREFIX = "notes:"
TEAM_NAME_KEY = "team:name"
RESOURCES_KEY = "resources"
SHARED_SCOPE = "shared"

_RESOURCE_REQUIRED = ("id", "title", "url", "type")


class DocumentShapeError(ValueError):
    """Raised when a key or value does not match its document family."""


class DocumentFamily(str, Enum):
    SCHEDULE = "schedule"
    NOTES = "notes"
    TEAM_NAME = "team_name"
    RESOURCES = "resources"


@dataclass(frozen=True)
class DocumentKey:
    """A parsed document key: its family plus the week id or note scope."""

    family: DocumentFamily
    arg: str | None = None

    def __str__(self) -> str:
        if self.family is DocumentFamily.SCHEDULE:
            return f"{SCHEDULE_PREFIX}{self.arg}"
        if self.family is DocumentFamily.NOTES:
            return f"{NOTES_PREFIX}{self.arg}"
        if self.family is DocumentFamily.TEAM_NAME:
            return TEAM_NAME_KEY
        return RESOURCES_KEY


def schedule_key(week_id: str) -> str:
    return f"{SCHEDULE_PREFIX}{week_id}"


def notes_key(scope: str) -> str:
    return f"{NOTES_PREFIX}{scope}"


def note_scopes(players: list[str]) -> list[str]:
    """Return every valid note scope: ``shared`` followed by each player."""
    return [SHARED_SCOPE, *players]


def parse_key(key: str, players: list[str]) -> DocumentKey:
    """Parse a raw key string into a ``DocumentKey``.

    Raises:
        DocumentShapeError: If the key belongs to no known family, names an
            invalid week, or names a note scope outside the roster.
    """
    if not isinstance(key, str):
        raise DocumentShapeError(f"Document key must be a string, got {type(key).__name__}")
    if key == TEAM_NAME_KEY:
        return DocumentKey(DocumentFamily.TEAM_NAME)
    if key == RESOURCES_KEY:
        return DocumentKey(DocumentFamily.RESOURCES)
    if key.startswith(SCHEDULE_PREFIX):
        week_id = key[len(SCHEDULE_PREFIX):]
        try:
            parse_week_id(week_id)
        except WeekIdError as exc:
            raise DocumentShapeError(str(exc)) from None
        return DocumentKey(DocumentFamily.SCHEDULE, week_id)
    if key.startswith(NOTES_PREFIX):
        scope = key[len(NOTES_PREFIX):]
        if scope not in note_scopes(players):
            raise DocumentShapeError(f"Unknown note scope {scope!r} in key {key!r}")
        return DocumentKey(DocumentFamily.NOTES, scope)
    raise DocumentShapeError(f"Unknown document key: {key!r}")


# ---------------------------------------------------------------------------
# Value validation
# ---------------------------------------------------------------------------


def validate_value(key: DocumentKey, value: object, players: list[str]) -> None:
    """Check that *value* has the shape required by *key*'s family.

    Raises:
        DocumentShapeError: Describing the first problem found.
    """
    family = key.family
    if family in (DocumentFamily.NOTES, DocumentFamily.TEAM_NAME):
        if not isinstance(value, str):
            raise DocumentShapeError(f"{key} must hold a string, got {type(value).__name__}")
    elif family is DocumentFamily.SCHEDULE:
        _validate_week(str(key), key.arg, value, players)
    else:
        _validate_resources(value)


def _validate_week(label: str, week_id: str, value: object, players: list[str]) -> None:
    if not isinstance(value, dict):
        raise DocumentShapeError(f"{label} must hold an object, got {type(value).__name__}")
    monday = parse_week_id(week_id)
    for player, days in value.items():
        if player not in players:
            raise DocumentShapeError(f"{label}: unknown player {player!r}")
        if not isinstance(days, dict):
            raise DocumentShapeError(f"{label}: days for {player!r} must be an object")
        for day_key, status in days.items():
            if not date_in_week(day_key, monday):
                raise DocumentShapeError(f"{label}: {day_key!r} is not a date in week {week_id}")
            if status not in DAY_STATUSES:
                raise DocumentShapeError(f"{label}: invalid status {status!r} for {player} on {day_key}")


def _validate_resources(value: object) -> None:
    if not isinstance(value, list):
        raise DocumentShapeError(f"{RESOURCES_KEY} must hold a list, got {type(value).__name__}")
    for index, item in enumerate(value):
        if not isinstance(item, dict):
            raise DocumentShapeError(f"{RESOURCES_KEY}[{index}] must be an object")
        for field in _RESOURCE_REQUIRED:
            if not isinstance(item.get(field), str):
                raise DocumentShapeError(f"{RESOURCES_KEY}[{index}].{field} must be a string")
        if "desc" in item and not isinstance(item["desc"], str):
            raise DocumentShapeError(f"{RESOURCES_KEY}[{index}].desc must be a string")


# ---------------------------------------------------------------------------
# State tree
# ---------------------------------------------------------------------------


def default_state(players: list[str]) -> dict:
    """Return the state tree of a squad that has never written anything."""
    return {
        "players": list(players),
        "activePlayer": players[0],
        "teamName": DEFAULT_TEAM_NAME,
        "scheduleDays": {},
        "notes": {scope: "" for scope in note_scopes(players)},
        "resources": [],
    }


def read_document(state: dict, key: DocumentKey) -> object | None:
    """Return a copy of the value stored for *key*, or ``None`` if absent."""
    family = key.family
    if family is DocumentFamily.SCHEDULE:
        value = state["scheduleDays"].get(key.arg)
    elif family is DocumentFamily.NOTES:
        value = state["notes"].get(key.arg)
    elif family is DocumentFamily.TEAM_NAME:
        value = state["teamName"]
    else:
        value = state["resources"]
    return copy.deepcopy(value)


def write_document(state: dict, key: DocumentKey, value: object) -> None:
    """Replace the value stored for *key* in place.  The value is copied."""
    value = copy.deepcopy(value)
    family = key.family
    if family is DocumentFamily.SCHEDULE:
        state["scheduleDays"][key.arg] = value
    elif family is DocumentFamily.NOTES:
        state["notes"][key.arg] = value
    elif family is DocumentFamily.TEAM_NAME:
        state["teamName"] = value
    else:
        state["resources"] = value


def payload_document_keys(payload: dict) -> list[str]:
    """Return the document keys present in a state-tree payload.

    One key per week, one per notes entry, then resources and team name
    when those fields are present.
    """
    keys = [schedule_key(week_id) for week_id in payload.get("scheduleDays", {})]
    keys.extend(notes_key(scope) for scope in payload.get("notes", {}))
    if "resources" in payload:
        keys.append(RESOURCES_KEY)
    if "teamName" in payload:
        keys.append(TEAM_NAME_KEY)
    return keys


def normalize_state(payload: object, players: list[str]) -> dict:
    """Validate a state-tree payload and return a complete state tree.

    Fields missing from *payload* take their defaults.  ``players`` always
    comes from configuration; unknown top-level fields are ignored.

    Raises:
        DocumentShapeError: If any present field has the wrong shape.
    """
    if not isinstance(payload, dict):
        raise DocumentShapeError(f"Expected a JSON object, got {type(payload).__name__}")

    state = default_state(players)

    active = payload.get("activePlayer", state["activePlayer"])
    if active not in players:
        raise DocumentShapeError(f"activePlayer {active!r} is not a configured player")
    state["activePlayer"] = active

    schedule = payload.get("scheduleDays", {})
    if not isinstance(schedule, dict):
        raise DocumentShapeError("scheduleDays must be an object")
    for week_id, week in schedule.items():
        write_document(state, _checked(schedule_key(week_id), week, players), week)

    notes = payload.get("notes", {})
    if not isinstance(notes, dict):
        raise DocumentShapeError("notes must be an object")
    for scope, text in notes.items():
        write_document(state, _checked(notes_key(scope), text, players), text)

    if "resources" in payload:
        resources = payload["resources"]
        write_document(state, _checked(RESOURCES_KEY, resources, players), resources)
    if "teamName" in payload:
        name = payload["teamName"]
        write_document(state, _checked(TEAM_NAME_KEY, name, players), name)

    return state


def drop_unknown_players(payload: object, players: list[str]) -> object:
    """Return a copy of *payload* without entries for players outside the roster.

    Schedule rows and note scopes of removed players are dropped, and an
    ``activePlayer`` no longer on the roster is cleared so it takes the
    default.  Anything that is not the expected container is left alone
    for ``normalize_state()`` to reject.
    """
    if not isinstance(payload, dict):
        return payload
    payload = copy.deepcopy(payload)
    if payload.get("activePlayer") not in players:
        payload.pop("activePlayer", None)

    schedule = payload.get("scheduleDays")
    if isinstance(schedule, dict):
        for week in schedule.values():
            if isinstance(week, dict):
                for player in [p for p in week if p not in players]:
                    del week[player]

    notes = payload.get("notes")
    if isinstance(notes, dict):
        scopes = note_scopes(players)
        for scope in [s for s in notes if s not in scopes]:
            del notes[scope]
    return payload


def _checked(raw_key: str, value: object, players: list[str]) -> DocumentKey:
    key = parse_key(raw_key, players)
    validate_value(key, value, players)
    return key

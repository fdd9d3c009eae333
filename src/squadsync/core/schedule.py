"""Day-level availability: statuses, labels, edits, and team readiness."""

from __future__ import annotations

import copy
from datetime import date

from squadsync.core.weeks import week_dates

DAY_STATUSES: tuple[str, ...] = ("YES", "TBD", "NO")

STATUS_LABELS: dict[str, str] = {
    "YES": "✅",
    "TBD": "❓",
    "NO": "❌",
}

# Shown for a player/date pair that was never set.  Distinct from TBD.
UNKNOWN_LABEL = "?"


def validate_day_status(status: str) -> bool:
    """Return ``True`` if *status* is one of YES, TBD, NO."""
    return status in DAY_STATUSES


def status_label(status: str | None) -> str:
    """Return the display glyph for a status, or the unknown marker for ``None``."""
    if status is None:
        return UNKNOWN_LABEL
    return STATUS_LABELS[status]


def status_for(week: dict | None, player: str, day_key: str) -> str | None:
    """Look up one player's status for one date; ``None`` means never set."""
    if not week:
        return None
    return week.get(player, {}).get(day_key)


def apply_day_status(week: dict | None, player: str, day_key: str, status: str) -> dict:
    """Return a copy of *week* with one player/date entry set.

    Every other player and date is carried over untouched.
    """
    updated = copy.deepcopy(week) if week else {}
    updated.setdefault(player, {})[day_key] = status
    return updated


def team_readiness(week: dict | None, week_start: date, players: list[str]) -> dict[str, int]:
    """Count, for each date of the week, how many players said YES."""
    counts: dict[str, int] = {}
    for day in week_dates(week_start):
        key = day.isoformat()
        counts[key] = sum(1 for p in players if status_for(week, p, key) == "YES")
    return counts

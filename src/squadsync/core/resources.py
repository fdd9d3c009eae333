"""Shared link list: entry validation, URL normalization, list edits."""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

from squadsync.core.ids import generate_resource_id

RESOURCE_TYPES: tuple[str, ...] = (
    "Video",
    "Website",
    "Tutorial",
    "Loadout",
    "Map Guide",
    "Other",
)
DEFAULT_RESOURCE_TYPE = "Video"


class ResourceInputError(ValueError):
    """Raised when user-entered resource fields are missing or invalid."""


def normalize_url(raw: str) -> str:
    """Return an absolute http(s) URL for user input.

    Input that does not start with ``http`` is assumed to be a bare host
    and gets ``https://`` prepended.  A bare host gains a trailing ``/``.

    Raises:
        ResourceInputError: If the result is not a usable http(s) URL.
    """
    text = raw.strip()
    candidate = text if text.startswith("http") else f"https://{text}"
    try:
        parts = urlsplit(candidate)
        # Accessing .port validates the port component.
        parts.port
    except ValueError:
        raise ResourceInputError(f"Invalid URL: {raw!r}") from None

    if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
        raise ResourceInputError(f"Invalid URL: {raw!r}")
    if any(ch.isspace() for ch in parts.netloc):
        raise ResourceInputError(f"Invalid URL: {raw!r}")

    return urlunsplit(
        (
            parts.scheme.lower(),
            parts.netloc.lower(),
            parts.path or "/",
            parts.query,
            parts.fragment,
        )
    )


def build_resource(
    title: str,
    url: str,
    type: str = DEFAULT_RESOURCE_TYPE,
    desc: str = "",
    resource_id: str | None = None,
) -> dict:
    """Validate raw input and build a resource record.

    No partial record is ever returned: any problem raises before the
    record exists.

    Raises:
        ResourceInputError: On a missing title or URL, an unparsable URL,
            or an unknown type.
    """
    if not title or not title.strip() or not url or not url.strip():
        raise ResourceInputError("Please enter a title and URL")
    if type not in RESOURCE_TYPES:
        raise ResourceInputError(
            f"Unknown resource type {type!r}; expected one of: {', '.join(RESOURCE_TYPES)}"
        )

    resource = {
        "id": resource_id or generate_resource_id(),
        "title": title.strip(),
        "url": normalize_url(url),
        "type": type,
    }
    if desc:
        resource["desc"] = desc
    return resource


def prepend_resource(resources: list[dict] | None, resource: dict) -> list[dict]:
    """Return a new list with *resource* first.  Duplicate ids are kept as written."""
    return [dict(resource)] + [dict(r) for r in resources or []]


def remove_resource(resources: list[dict] | None, resource_id: str) -> list[dict]:
    """Return a new list without any entry whose id is *resource_id*."""
    return [dict(r) for r in resources or [] if r.get("id") != resource_id]

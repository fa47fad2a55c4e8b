from __future__ import annotations

from typing import Any

from stagesheet.core.errors import ConfigurationError

PROJECT_PURPOSES = ("event", "generic")

# Project fields carried through normalization untouched.
_PASSTHROUGH_FIELDS = (
    "lineup",
    "talkbackOwnerId",
    "bandLeaderId",
    "stageplan",
    "slug",
    "displayName",
)


def _require_string(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"Missing or invalid {label}.")
    return value.strip()


def _optional_string(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def normalize_project(payload: dict[str, Any]) -> dict[str, Any]:
    """Normalize a project record, upgrading legacy ``date``/``venue`` files.

    Legacy projects become events whose document date is the event date.
    """
    if not isinstance(payload, dict):
        raise ConfigurationError("Project must be an object.")

    project: dict[str, Any] = {
        "id": _require_string(payload.get("id"), "project id"),
        "bandRef": _require_string(payload.get("bandRef"), "bandRef"),
    }

    if "purpose" in payload:
        purpose = payload.get("purpose")
        if purpose not in PROJECT_PURPOSES:
            raise ConfigurationError("Missing or invalid purpose.")
        project["purpose"] = purpose
        project["documentDate"] = _require_string(payload.get("documentDate"), "documentDate")
        if purpose == "event":
            project["eventDate"] = _require_string(payload.get("eventDate"), "eventDate")
            project["eventVenue"] = _require_string(payload.get("eventVenue"), "eventVenue")
        title = _optional_string(payload.get("title")) or _optional_string(payload.get("note"))
        if title is not None:
            project["title"] = title
    elif "date" in payload:
        event_date = _require_string(payload.get("date"), "date")
        project["purpose"] = "event"
        project["eventDate"] = event_date
        project["eventVenue"] = _optional_string(payload.get("venue")) or ""
        project["documentDate"] = event_date
    else:
        raise ConfigurationError("Unsupported project schema.")

    for field in _PASSTHROUGH_FIELDS:
        if payload.get(field) is not None:
            project[field] = payload[field]
    return project

from __future__ import annotations

import re
import unicodedata
from typing import Any

_SLUG_FORBIDDEN_RE = re.compile(r'[<>:"/\\|?*]')
_SLUG_DROP_RE = re.compile(r"[^\w\s-]|_")
_WHITESPACE_RE = re.compile(r"\s+")
_DASHES_RE = re.compile(r"-+")

SLUG_VENUE_MAX_LENGTH = 80


def _date_parts(iso_date: Any) -> tuple[str, str, str] | None:
    if not isinstance(iso_date, str):
        return None
    parts = iso_date.split("-")
    if len(parts) < 3 or not all(parts[:3]):
        return None
    year, month, day = parts[:3]
    return year, month, day[:2]


def format_date_for_slug(iso_date: Any) -> str:
    parts = _date_parts(iso_date)
    if parts is None:
        return "00-00-0000"
    year, month, day = parts
    return f"{day}-{month}-{year}"


def format_date_for_display_name(iso_date: Any) -> str:
    parts = _date_parts(iso_date)
    if parts is None:
        return "00/00/0000"
    year, month, day = parts
    return f"{day}/{month}/{year}"


def sanitize_venue_for_slug(value: str) -> str:
    """``"Praha – Lucerna!"`` becomes ``"Praha-Lucerna"``; accents are stripped."""
    decomposed = unicodedata.normalize("NFD", value.strip())
    text = "".join(char for char in decomposed if not unicodedata.category(char).startswith("M"))
    text = _SLUG_FORBIDDEN_RE.sub(" ", text)
    text = _SLUG_DROP_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text)
    segments = [segment[:1].upper() + segment[1:].lower() for segment in text.split(" ") if segment]
    slug = _DASHES_RE.sub("-", "-".join(segments)).strip("-")
    return slug[:SLUG_VENUE_MAX_LENGTH]


def _band_code(band: dict[str, Any]) -> str:
    code = band.get("code")
    if isinstance(code, str) and code.strip():
        return code.strip()
    return band["id"]


def _document_year(project: dict[str, Any]) -> str:
    document_date = project.get("documentDate")
    year = document_date[:4] if isinstance(document_date, str) else ""
    return year or "0000"


def format_project_slug(project: dict[str, Any], band: dict[str, Any]) -> str:
    band_code = _band_code(band)
    if project.get("purpose") == "event":
        event_date = format_date_for_slug(project.get("eventDate"))
        venue = sanitize_venue_for_slug(project.get("eventVenue") or "") or "Venue"
        return f"{band_code}_Inputlist_Stageplan_{event_date}_{venue}"
    return f"{band_code}_Inputlist_Stageplan_{_document_year(project)}"


def format_project_display_name(project: dict[str, Any], band: dict[str, Any]) -> str:
    band_name = band.get("name") or band["id"]
    if project.get("purpose") == "event":
        event_date = format_date_for_display_name(project.get("eventDate"))
        venue = (project.get("eventVenue") or "").strip() or "Venue"
        return f"{band_name} – {event_date} – {venue}"
    title = (project.get("title") or "").strip()
    if title:
        return f"{band_name} – {title} – {_document_year(project)}"
    return f"{band_name} – {_document_year(project)}"

from __future__ import annotations

import re
from datetime import date
from typing import Any

from stagesheet.core.errors import ConfigurationError

LEAD_VOCAL_LABEL = "Lead vocal"
ADDITIONAL_WEDGE_LABEL = "Additional wedge monitor"
SPARE_CHANNEL_PREFIX = "spare_ch_"
SPARE_CHANNEL_LABEL = "---"

_DISPLAYED_GENDERS = ("m", "f")
_MONITOR_LABELS = {
    "guitar": "Guitar",
    "keys": "Keys",
    "bass": "Bass",
    "drums": "Drums",
}

_ADDITIONAL_WEDGE_RE = re.compile(
    r"^(?P<base>.*?)(?:\s*\+\s*Additional wedge monitor\s+(?P<count>\d+)x)$"
)
_WHITESPACE_RE = re.compile(r"\s+")
_COUNT_PREFIX_RE = re.compile(r"^\d+x\s+", re.IGNORECASE)
_STEREO_LABEL_PATTERNS = (
    re.compile(r"^(.*)\s+[-–—]\s*(L|R)\s*$", re.IGNORECASE),
    re.compile(r"^(.*)\((L|R)\)$", re.IGNORECASE),
    re.compile(r"^(.*?)\s+(L|R)\s*(?=\(|$)", re.IGNORECASE),
)
_STEREO_WORD_RE = re.compile(r"^(.*?)\s+(Left|Right)\s*(?=\(|$)", re.IGNORECASE)
_OVERHEAD_BASES = ("overhead", "overheads", "oh")


# -- vocals and monitors -------------------------------------------------------


def format_vocal_label(
    index: int,
    *,
    lead_count: int,
    gender: str | None = None,
    gender_mode: str = "include",
) -> str:
    if lead_count <= 1:
        return LEAD_VOCAL_LABEL
    label = f"{LEAD_VOCAL_LABEL} {index}"
    if gender_mode != "omit" and gender in _DISPLAYED_GENDERS:
        label = f"{label} ({gender})"
    return label


def format_monitor_label(
    kind: str,
    *,
    lead_count: int = 1,
    index: int = 1,
    gender: str | None = None,
) -> str:
    if kind == "lead":
        return format_vocal_label(index, lead_count=lead_count, gender=gender)
    label = _MONITOR_LABELS.get(kind)
    if label is None:
        raise ValueError(f"Unknown monitor channel kind: {kind}")
    return label


def format_monitoring_label(base_label: str, additional_wedge_count: Any = None) -> str:
    if (
        isinstance(additional_wedge_count, (int, float))
        and not isinstance(additional_wedge_count, bool)
        and additional_wedge_count > 0
    ):
        return f"{base_label} + {ADDITIONAL_WEDGE_LABEL} {int(additional_wedge_count)}x"
    return base_label


def format_monitor_bullet(note: str | None, no: int) -> str:
    label = note.strip() if isinstance(note, str) else ""
    if not label:
        return f"({no})"
    return f"{label} ({no})"


def format_monitor_bullets(note: str | None, no: int) -> list[str]:
    """Split a trailing additional-wedge suffix onto its own bullet."""
    label = note.strip() if isinstance(note, str) else ""
    match = _ADDITIONAL_WEDGE_RE.match(label) if label else None
    if match is None:
        return [format_monitor_bullet(label, no)]
    return [
        format_monitor_bullet(match.group("base").strip(), no),
        f"+ {ADDITIONAL_WEDGE_LABEL} {match.group('count')}x",
    ]


# -- stage plan and meta -------------------------------------------------------


def format_stageplan_box_header(
    instrument_label: str,
    first_name: str | None = None,
    *,
    is_band_leader: bool = False,
) -> str:
    name = first_name.strip() if isinstance(first_name, str) else ""
    display_instrument = "Lead voc" if instrument_label == LEAD_VOCAL_LABEL else instrument_label
    main = f"{display_instrument} – {name}" if name else display_instrument
    suffix = " (band leader)" if is_band_leader else ""
    return f"{main.upper()}{suffix}"


def format_document_date(iso_date: Any) -> str:
    """Render an ISO ``YYYY-MM-DD`` date as ``D. M. YYYY``."""
    if not isinstance(iso_date, str):
        raise ConfigurationError(f"Invalid date: {iso_date!r}")
    try:
        parsed = date.fromisoformat(iso_date.strip()[:10])
    except ValueError as exc:
        raise ConfigurationError(f"Invalid date: {iso_date!r}") from exc
    return f"{parsed.day}. {parsed.month}. {parsed.year}"


def format_project_meta_line(
    *,
    purpose: str,
    document_date: str,
    event_date: str | None = None,
    event_venue: str | None = None,
    note: str | None = None,
) -> dict[str, str]:
    if purpose == "event":
        venue = event_venue.strip() if isinstance(event_venue, str) else ""
        return {
            "kind": "labeled",
            "label": "Datum akce a místo konání:",
            "value": (
                f"{format_document_date(event_date)}, {venue} "
                f"(datum aktualizace: {format_document_date(document_date)})"
            ),
        }

    title = note.strip() if isinstance(note, str) and note.strip() else "Stage plan"
    return {
        "kind": "plain",
        "value": f"{title} (datum aktualizace: {format_document_date(document_date)})",
    }


def meta_line_text(meta_line: dict[str, str]) -> str:
    if meta_line.get("kind") == "labeled":
        return f"{meta_line['label']} {meta_line['value']}"
    return meta_line["value"]


# -- input list ----------------------------------------------------------------


def normalize_ws(value: str | None) -> str:
    return _WHITESPACE_RE.sub(" ", value or "").strip()


def format_input_list_note(note: str | None, duplicate_count: int = 1) -> str | None:
    normalized = normalize_ws(note)
    if not normalized:
        return None
    if duplicate_count <= 1 or _COUNT_PREFIX_RE.match(normalized):
        return normalized
    return f"{duplicate_count}x {normalized}"


def parse_stereo_label(label: str) -> tuple[str, str] | None:
    """Return ``(base, side)`` for labels such as ``Keys L`` or ``Pad (R)``."""
    text = normalize_ws(label)
    for pattern in _STEREO_LABEL_PATTERNS:
        match = pattern.match(text)
        if match:
            return normalize_ws(match.group(1)), match.group(2).upper()
    match = _STEREO_WORD_RE.match(text)
    if match:
        return normalize_ws(match.group(1)), "L" if match.group(2).lower() == "left" else "R"
    return None


def is_overheads_base(base_label: str) -> bool:
    return normalize_ws(base_label).lower() in _OVERHEAD_BASES


def resolve_stereo_pair(a: dict[str, Any], b: dict[str, Any]) -> dict[str, Any] | None:
    if a.get("group") != b.get("group"):
        return None
    if normalize_ws(a.get("note")) != normalize_ws(b.get("note")):
        return None

    parsed_a = parse_stereo_label(a.get("label", ""))
    parsed_b = parse_stereo_label(b.get("label", ""))
    if parsed_a and parsed_b and parsed_a[0] == parsed_b[0] and parsed_a[1] != parsed_b[1]:
        return {
            "base": parsed_a[0],
            "a_side": parsed_a[1],
            "should_collapse": not is_overheads_base(parsed_a[0]),
        }

    key_a = a.get("key", "").lower()
    key_b = b.get("key", "").lower()
    if key_a[:-2] != key_b[:-2]:
        return None
    a_is_left = key_a.endswith("_l")
    a_is_right = key_a.endswith("_r")
    if (a_is_left and key_b.endswith("_r")) or (a_is_right and key_b.endswith("_l")):
        base = re.sub(r"_[lr]$", "", a.get("key", ""), flags=re.IGNORECASE)
        return {
            "base": base,
            "a_side": "L" if a_is_left else "R",
            "should_collapse": not is_overheads_base(base),
        }
    return None


def _clean_stereo_label(label: str) -> str:
    text = normalize_ws(label)
    text = re.sub(r"\s+(L|R)\s*$", "", text, flags=re.IGNORECASE).strip()
    text = re.sub(r"\(([^()]*)\b(L|R)\b([^()]*)\)\s*$", r"(\1\3)", text, flags=re.IGNORECASE)
    text = re.sub(r"\s+\)", ")", text)
    text = normalize_ws(text)
    text = re.sub(r"\s+(L|R)\s*\(", " (", text, count=1, flags=re.IGNORECASE)
    return normalize_ws(text)


def format_input_list_label(left_label: str, right_label: str) -> str:
    left = _clean_stereo_label(left_label)
    right = _clean_stereo_label(right_label)
    if left and left == right:
        return left
    return left or normalize_ws(left_label)


def is_spare_channel(item: dict[str, Any]) -> bool:
    return str(item.get("key", "")).startswith(SPARE_CHANNEL_PREFIX)


def assign_channel_numbers(inputs: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Number ordered inputs so stereo pairs start on an odd channel.

    A pair that would start on an even channel gets a ``---`` spare channel
    in front of it. Overheads are exempt.
    """
    numbered: list[dict[str, Any]] = []
    next_ch = 1
    index = 0
    while index < len(inputs):
        current = inputs[index]
        following = inputs[index + 1] if index + 1 < len(inputs) else None
        pair = resolve_stereo_pair(current, following) if following is not None else None
        if pair is None:
            numbered.append(dict(current, ch=next_ch))
            next_ch += 1
            index += 1
            continue

        if pair["should_collapse"] and next_ch % 2 == 0:
            spare: dict[str, Any] = {
                "ch": next_ch,
                "key": f"{SPARE_CHANNEL_PREFIX}{next_ch}",
                "label": SPARE_CHANNEL_LABEL,
                "note": SPARE_CHANNEL_LABEL,
            }
            if current.get("group"):
                spare["group"] = current["group"]
            numbered.append(spare)
            next_ch += 1
        left, right = (current, following) if pair["a_side"] == "L" else (following, current)
        numbered.append(dict(left, ch=next_ch))
        numbered.append(dict(right, ch=next_ch + 1))
        next_ch += 2
        index += 2
    return numbered


def build_input_rows(numbered_inputs: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Collapse adjacent stereo channels (overheads excepted) into ``a+b`` rows."""
    ordered = sorted(numbered_inputs, key=lambda item: item["ch"])
    rows: list[dict[str, Any]] = []
    index = 0
    while index < len(ordered):
        current = ordered[index]
        following = ordered[index + 1] if index + 1 < len(ordered) else None
        pair = None
        if following is not None and following["ch"] == current["ch"] + 1:
            pair = resolve_stereo_pair(current, following)

        if pair is not None and pair["should_collapse"]:
            left, right = (current, following) if pair["a_side"] == "L" else (following, current)
            row: dict[str, Any] = {
                "no": f"{current['ch']}+{following['ch']}",
                "label": format_input_list_label(left["label"], right["label"]),
            }
            note = format_input_list_note(current.get("note"), 2)
            if note is not None:
                row["note"] = note
            rows.append(row)
            index += 2
            continue

        row = {"no": str(current["ch"]), "label": current["label"]}
        if current.get("note"):
            row["note"] = current["note"]
        rows.append(row)
        index += 1
    return rows

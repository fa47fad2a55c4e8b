from __future__ import annotations

import re
from typing import Any, Mapping

from stagesheet.core.errors import ConfigurationError
from stagesheet.core.formatters import (
    LEAD_VOCAL_LABEL,
    format_monitor_bullets,
    format_stageplan_box_header,
)

STAGEPLAN_ROLES: tuple[str, ...] = ("drums", "bass", "guitar", "keys", "vocs")

INSTRUMENT_BY_ROLE: dict[str, str] = {
    "drums": "Drums",
    "bass": "Bass",
    "guitar": "Guitar",
    "keys": "Keys",
    "vocs": LEAD_VOCAL_LABEL,
}

_SLOT_BY_INSTRUMENT: dict[str, str] = {
    "Drums": "drums",
    "Bass": "bass",
    "Guitar": "guitar",
    "Keys": "keys",
}

STAGEPLAN_LAYOUTS: dict[str, dict[str, tuple[str, ...]]] = {
    "layout_5_party": {
        "top_row": ("drums", "bass"),
        "bottom_row": ("guitar", "lead_voc_1", "keys"),
    },
    "layout_6_2_vocs": {
        "top_row": ("drums", "bass"),
        "bottom_row": ("guitar", "lead_voc_1", "lead_voc_2", "keys"),
    },
}

DRUM_RISER_BULLET = "Drum riser 3x2"

_BACK_VOCAL_RE = re.compile(r"back vocal\s*[-–—]\s*(guitar|keys|bass|drums)", re.IGNORECASE)
_TALKBACK_RE = re.compile(r"talkback\s*[-–—]\s*(guitar|keys|bass|drums)", re.IGNORECASE)
_BACK_VOCAL_DRUMS_RE = re.compile(r"back vocal\s*[-–—]\s*drums", re.IGNORECASE)
_STEREO_LINE_RE = re.compile(r"^(.*?)(?:\s+([LR]))(?:\s*\(.*\))?$", re.IGNORECASE)
_PAIRABLE_LABEL_RE = re.compile(r"^(keys|synth|electric guitar|bass)\b", re.IGNORECASE)
_SYNTH_MONO_RE = re.compile(r"^synth\s*\(mono\)", re.IGNORECASE)
_LEAD_SLOT_TWO_RE = re.compile(r"\b2\b")


# -- people and power ----------------------------------------------------------


def _first_member_id(lineup: Mapping[str, Any], role: str) -> str | None:
    members = lineup.get(role) or ()
    if isinstance(members, str):
        return members or None
    return members[0] if members else None


def describe_person(
    musician_id: str | None,
    band_leader_id: str,
    musicians_by_id: Mapping[str, dict[str, Any]],
) -> dict[str, Any]:
    musician = musicians_by_id.get(musician_id) if musician_id else None
    first_name = musician.get("firstName") if musician else None
    return {
        "musician_id": musician_id,
        "first_name": first_name.strip() if isinstance(first_name, str) and first_name.strip() else None,
        "is_band_leader": bool(musician_id) and musician_id == band_leader_id,
    }


def resolve_stageplan_person(
    role: str,
    lineup: Mapping[str, Any],
    band_leader_id: str,
    musicians_by_id: Mapping[str, dict[str, Any]],
) -> dict[str, Any]:
    return describe_person(_first_member_id(lineup, role), band_leader_id, musicians_by_id)


def power_for_musician(
    musician_id: str | None,
    project: dict[str, Any],
    musicians_by_id: Mapping[str, dict[str, Any]],
) -> dict[str, Any] | None:
    """Project override first, then the musician's declared requirement."""
    if not musician_id:
        return None
    stageplan = project.get("stageplan")
    overrides = stageplan.get("powerOverridesByMusician") if isinstance(stageplan, dict) else None
    if isinstance(overrides, dict) and isinstance(overrides.get(musician_id), dict):
        return overrides[musician_id]
    musician = musicians_by_id.get(musician_id) or {}
    requirements = musician.get("requirements")
    power = requirements.get("power") if isinstance(requirements, dict) else None
    return power if isinstance(power, dict) else None


def resolve_power_for_stageplan(
    role: str,
    lineup: Mapping[str, Any],
    project: dict[str, Any],
    musicians_by_id: Mapping[str, dict[str, Any]],
) -> dict[str, Any] | None:
    return power_for_musician(_first_member_id(lineup, role), project, musicians_by_id)


def format_power_badge(power: dict[str, Any] | None) -> str | None:
    if not isinstance(power, dict):
        return None
    sockets = power.get("sockets")
    voltage = power.get("voltage")
    if sockets is None or voltage is None:
        return None
    return f"{sockets}x {voltage} V"


# -- input attribution ---------------------------------------------------------


def _instrument_from_match(value: str) -> str | None:
    return INSTRUMENT_BY_ROLE.get(value.lower()) if value.lower() != "vocs" else None


def is_lead_vocal_label(label: str) -> bool:
    normalized = label.strip().lower()
    return normalized.startswith("lead voc") or "lead vocal" in normalized


def resolve_stageplan_role_for_input(channel: dict[str, Any]) -> str | None:
    """Map an input back to a stage-plan instrument.

    Back vocal and talkback labels naming an instrument go to that
    instrument; a label matching both patterns resolves on the back vocal
    one.
    """
    label = channel.get("label") or ""
    for pattern in (_BACK_VOCAL_RE, _TALKBACK_RE):
        match = pattern.search(label)
        if match:
            return _instrument_from_match(match.group(1))
    if is_lead_vocal_label(label):
        return LEAD_VOCAL_LABEL
    group = channel.get("group")
    if group == "vocs":
        return None
    return _instrument_from_match(group) if isinstance(group, str) else None


def resolve_lead_vocal_slot(label: str) -> str:
    return "lead_voc_2" if _LEAD_SLOT_TWO_RE.search(label.lower()) else "lead_voc_1"


def resolve_monitor_instrument(output: str) -> str | None:
    normalized = output.strip().lower()
    if normalized.startswith("lead voc"):
        return LEAD_VOCAL_LABEL
    for prefix, instrument in (
        ("guitar", "Guitar"),
        ("keys", "Keys"),
        ("bass", "Bass"),
        ("drums", "Drums"),
    ):
        if normalized.startswith(prefix):
            return instrument
    return None


def match_stageplan_layout(lead_count: int) -> str:
    if lead_count > 2:
        raise ConfigurationError(f"Unsupported lead vocal count for stageplan layout: {lead_count}")
    if lead_count == 2:
        return "layout_6_2_vocs"
    return "layout_5_party"


# -- bullet lines --------------------------------------------------------------


def _parse_stereo_line(label: str) -> tuple[str, str] | None:
    match = _STEREO_LINE_RE.match(label.strip())
    if match is None:
        return None
    base = match.group(1).strip()
    if not base:
        return None
    return base, match.group(2).upper()


def stageplan_base_label(label: str, group: str | None = None) -> str:
    trimmed = label.strip()
    if group == "keys":
        if re.match(r"^keys\b", trimmed, re.IGNORECASE):
            return "Keys"
        if _SYNTH_MONO_RE.match(trimmed) or re.match(r"^synth\s+mono\b", trimmed, re.IGNORECASE):
            return "Synth (mono)"
        if re.match(r"^synth\b", trimmed, re.IGNORECASE):
            return "Synth"
    return trimmed


def _pairable_by_label(current: dict[str, Any], following: dict[str, Any]) -> bool:
    if current.get("no") is None or following.get("no") is None:
        return False
    current_label = stageplan_base_label(current["label"], current.get("group"))
    following_label = stageplan_base_label(following["label"], following.get("group"))
    if current_label.lower() != following_label.lower():
        return False
    if _SYNTH_MONO_RE.match(current_label):
        return False
    return current.get("group") == "keys" or bool(_PAIRABLE_LABEL_RE.match(current_label))


def _find_stereo_partner(lines: list[dict[str, Any]], start: int, used: set[int]) -> int:
    current = lines[start]
    stereo = _parse_stereo_line(current["label"])
    if stereo is None or stereo[0].lower() == "oh":
        return -1
    for index in range(start + 1, len(lines)):
        if index in used or lines[index].get("no") is None:
            continue
        candidate = _parse_stereo_line(lines[index]["label"])
        if candidate is None:
            continue
        if candidate[0].lower() == stereo[0].lower() and candidate[1] != stereo[1]:
            return index
    return -1


def format_stageplan_input_lines(lines: list[dict[str, Any]]) -> list[str]:
    """Collapse stereo and same-label neighbours into ``Label (a+b)`` bullets.

    ``lines`` items carry ``label``, ``no`` and optionally ``group``.
    """
    used: set[int] = set()
    output: list[str] = []
    for index, line in enumerate(lines):
        if index in used:
            continue
        used.add(index)
        number = line.get("no")
        if number is not None:
            partner = _find_stereo_partner(lines, index, used)
            if partner >= 0:
                stereo = _parse_stereo_line(line["label"])
                label = stageplan_base_label(stereo[0] if stereo else line["label"], line.get("group"))
                low, high = sorted((number, lines[partner]["no"]))
                output.append(f"{label} ({low}+{high})")
                used.add(partner)
                continue
            following = index + 1
            if (
                following < len(lines)
                and following not in used
                and _pairable_by_label(line, lines[following])
            ):
                label = stageplan_base_label(line["label"], line.get("group"))
                low, high = sorted((number, lines[following]["no"]))
                output.append(f"{label} ({low}+{high})")
                used.add(following)
                continue

        label = stageplan_base_label(line["label"], line.get("group"))
        if number is None:
            output.append(label)
        elif not label:
            output.append(f"({number})")
        else:
            output.append(f"{label} ({number})")
    return output


def _format_range(label: str, numbers: list[int]) -> str | None:
    if not numbers:
        return None
    low, high = min(numbers), max(numbers)
    span = f"{low}" if low == high else f"{low}–{high}"
    return f"{label} ({span})"


def _drum_input_bullets(inputs: list[dict[str, Any]]) -> list[str]:
    def is_pad(item: dict[str, Any]) -> bool:
        return "pad" in item["label"].lower() and "dummy" not in item["label"].lower()

    pads = [item for item in inputs if is_pad(item)]
    back_vocals = [item for item in inputs if _BACK_VOCAL_DRUMS_RE.search(item["label"])]
    drums = [
        item
        for item in inputs
        if item.get("group") == "drums"
        and "pad" not in item["label"].lower()
        and "dummy" not in item["label"].lower()
        and not _BACK_VOCAL_DRUMS_RE.search(item["label"])
    ]

    bullets: list[str] = []
    drum_range = _format_range("Drums", [item["ch"] for item in drums])
    if drum_range:
        bullets.append(drum_range)
    pad_lines = format_stageplan_input_lines(_bullet_lines(pads))
    if len(pads) == 2 and len(pad_lines) == 1:
        bullets.append(pad_lines[0])
    else:
        pad_range = _format_range("PAD", [item["ch"] for item in pads])
        if pad_range:
            bullets.append(pad_range)
    for item in back_vocals:
        bullets.append(f"{item['label']} ({item['ch']})")

    # Talkback and anything else routed to the drummer keeps its own line.
    claimed = {id(item) for item in pads + back_vocals + drums}
    others = [item for item in inputs if id(item) not in claimed]
    bullets.extend(format_stageplan_input_lines(_bullet_lines(others)))
    return bullets


def _bullet_lines(inputs: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [
        {"label": item["label"], "no": item["ch"], "group": item.get("group")}
        for item in inputs
    ]


def _keys_rank(label: str) -> int:
    normalized = label.strip().lower()
    if normalized.startswith("keys"):
        return 0
    if normalized.startswith(("synth (mono)", "synth mono")):
        return 2
    if normalized.startswith("synth"):
        return 1
    return 3


# -- layout --------------------------------------------------------------------


def _slot_for_instrument(instrument: str, label: str) -> str:
    if instrument == LEAD_VOCAL_LABEL:
        return resolve_lead_vocal_slot(label)
    return _SLOT_BY_INSTRUMENT[instrument]


def _talkback_owner_slot(
    owner_id: str,
    lineup: Mapping[str, Any],
    lead_vocals: list[dict[str, Any]],
) -> str | None:
    for index, lead in enumerate(lead_vocals[:2], start=1):
        if lead.get("musician_id") == owner_id:
            return f"lead_voc_{index}"
    for role in ("drums", "bass", "guitar", "keys"):
        if owner_id in (lineup.get(role) or ()):
            return role
    if owner_id in (lineup.get("vocs") or ()):
        return "lead_voc_1"
    return None


def build_stageplan(
    *,
    inputs: list[dict[str, Any]],
    monitor_rows: list[dict[str, Any]],
    lineup: Mapping[str, Any],
    project: dict[str, Any],
    band_leader_id: str,
    musicians_by_id: Mapping[str, dict[str, Any]],
    lead_vocals: list[dict[str, Any]],
    talkback_owner_id: str | None = None,
) -> dict[str, Any]:
    """Lay out stage-plan boxes for numbered ``inputs`` and monitor rows."""
    layout_id = match_stageplan_layout(len(lead_vocals))
    layout = STAGEPLAN_LAYOUTS[layout_id]
    slots = layout["top_row"] + layout["bottom_row"]

    lineup_by_role = {
        role: resolve_stageplan_person(role, lineup, band_leader_id, musicians_by_id)
        for role in STAGEPLAN_ROLES
    }
    power_by_role = {}
    for role in STAGEPLAN_ROLES:
        badge = format_power_badge(resolve_power_for_stageplan(role, lineup, project, musicians_by_id))
        power_by_role[role] = {
            "has_power_badge": badge is not None,
            "power_badge_text": badge or "",
        }

    talkback_slot = (
        _talkback_owner_slot(talkback_owner_id, lineup, lead_vocals) if talkback_owner_id else None
    )
    inputs_by_slot: dict[str, list[dict[str, Any]]] = {slot: [] for slot in slots}
    for item in inputs:
        instrument = resolve_stageplan_role_for_input(item)
        if instrument is not None:
            slot = _slot_for_instrument(instrument, item["label"])
        elif item.get("group") == "talkback":
            slot = talkback_slot
        else:
            slot = None
        if slot in inputs_by_slot:
            inputs_by_slot[slot].append(item)

    monitors_by_slot: dict[str, list[tuple[int, str]]] = {slot: [] for slot in slots}
    for row in monitor_rows:
        instrument = resolve_monitor_instrument(row["output"])
        if instrument is None:
            continue
        slot = _slot_for_instrument(instrument, row["output"])
        if slot not in monitors_by_slot:
            continue
        for bullet in format_monitor_bullets(row.get("note"), row["no"]):
            monitors_by_slot[slot].append((row["no"], bullet))

    boxes: list[dict[str, Any]] = []
    for slot in slots:
        if slot.startswith("lead_voc_"):
            lead_index = int(slot.rsplit("_", 1)[1]) - 1
            if lead_index < len(lead_vocals):
                person = lead_vocals[lead_index]
            elif lead_index == 0:
                person = lineup_by_role["vocs"]
            else:
                person = describe_person(None, band_leader_id, musicians_by_id)
            instrument = LEAD_VOCAL_LABEL
            badge = format_power_badge(
                power_for_musician(person.get("musician_id"), project, musicians_by_id)
            )
        else:
            person = lineup_by_role[slot]
            instrument = INSTRUMENT_BY_ROLE[slot]
            badge = power_by_role[slot]["power_badge_text"] or None

        slot_inputs = sorted(
            inputs_by_slot[slot],
            key=lambda item: (_keys_rank(item["label"]) if slot == "keys" else 0, item["ch"]),
        )
        if slot == "drums":
            input_bullets = _drum_input_bullets(slot_inputs)
        else:
            input_bullets = format_stageplan_input_lines(_bullet_lines(slot_inputs))

        boxes.append(
            {
                "slot": slot,
                "row": "top" if slot in layout["top_row"] else "bottom",
                "instrument": instrument,
                "header": format_stageplan_box_header(
                    instrument,
                    person.get("first_name"),
                    is_band_leader=person.get("is_band_leader", False),
                ),
                "input_bullets": input_bullets,
                "monitor_bullets": [
                    bullet for _, bullet in sorted(monitors_by_slot[slot], key=lambda entry: entry[0])
                ],
                "extra_bullets": [DRUM_RISER_BULLET] if slot == "drums" else [],
                "has_power_badge": badge is not None,
                "power_badge_text": badge or "",
            }
        )

    return {
        "layout_id": layout_id,
        "lineup_by_role": lineup_by_role,
        "lead_vocals": lead_vocals,
        "power_by_role": power_by_role,
        "boxes": boxes,
    }

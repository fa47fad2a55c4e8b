from __future__ import annotations

import re
from typing import Any

from stagesheet.core.formatters import format_vocal_label
from stagesheet.core.groups import GROUP_ORDER
from stagesheet.core.input_order import order_inputs
from stagesheet.core.musician_setup import EffectiveProjectSetup
from stagesheet.core.preset_override import copy_channel

_KEYS_INSTANCE_RE = re.compile(r"^(keys|synth|synth_mono)(?:_(\d+))?(?:_[lr])?$", re.IGNORECASE)
_KEYS_KIND_LABELS = {
    "keys": "Keys",
    "synth": "Synth",
    "synth_mono": "Synth (mono)",
}
_TRAILING_NUMBER_RE = re.compile(r"\s\d+$")
_TRAILING_PAREN_NUMBER_RE = re.compile(r"\(\d+\)$")
_TRAILING_SIDE_RE = re.compile(r"^(.*)\s+(L|R)\s*$", re.IGNORECASE)
_LEAD_INDEX_RE = re.compile(r"voc_lead_(\d+)", re.IGNORECASE)

ACOUSTIC_GUITAR_PREFIXES = ("ac_guitar", "acoustic_guitar")
ELECTRIC_GUITAR_PREFIXES = ("el_guitar", "electric_guitar")


# -- disambiguation ------------------------------------------------------------


def _stereo_side(key: str) -> str | None:
    lowered = key.lower()
    if lowered.endswith("_l"):
        return "l"
    if lowered.endswith("_r"):
        return "r"
    return None


def _ends_with_number(label: str) -> bool:
    trimmed = label.strip()
    return bool(_TRAILING_NUMBER_RE.search(trimmed) or _TRAILING_PAREN_NUMBER_RE.search(trimmed))


def _number_label(label: str, index: int) -> str:
    trimmed = label.rstrip()
    side_match = _TRAILING_SIDE_RE.match(trimmed)
    if side_match is None:
        if _ends_with_number(label):
            return label
        return f"{label} {index}"
    base = side_match.group(1).strip()
    if _ends_with_number(base):
        return label
    return f"{base} {index} {side_match.group(2)}"


def disambiguate_input_keys(inputs: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Number repeated keys; stereo ``_l``/``_r`` entries fill L/R slots per instance."""
    assignments: list[tuple[str, int]] = []
    mono_counts: dict[str, int] = {}
    stereo_slots: dict[str, list[dict[str, bool]]] = {}

    for item in inputs:
        key = item["key"]
        side = _stereo_side(key)
        if side is None:
            mono_counts[key] = mono_counts.get(key, 0) + 1
            assignments.append((key, mono_counts[key]))
            continue

        group_key = key[:-2]
        slots = stereo_slots.setdefault(group_key, [])
        instance = 0
        for slot_index, slot in enumerate(slots, start=1):
            if not slot[side]:
                slot[side] = True
                instance = slot_index
                break
        if instance == 0:
            slots.append({"l": side == "l", "r": side == "r"})
            instance = len(slots)
        assignments.append((group_key, instance))

    result: list[dict[str, Any]] = []
    for item, (group_key, instance) in zip(inputs, assignments):
        slots = stereo_slots.get(group_key)
        total = len(slots) if slots else mono_counts.get(group_key, 1)
        if total <= 1:
            result.append(dict(item))
            continue
        result.append(
            dict(
                item,
                key=f"{item['key']}_{instance}",
                label=_number_label(item["label"], instance),
            )
        )
    return result


# -- keys and synth labels -----------------------------------------------------


def _parse_keys_instance(key: str) -> tuple[str, int] | None:
    match = _KEYS_INSTANCE_RE.match(key)
    if match is None:
        return None
    return match.group(1).lower(), int(match.group(2) or 1)


def format_keys_input_instances(inputs: list[dict[str, Any]]) -> list[dict[str, Any]]:
    totals = dict.fromkeys(_KEYS_KIND_LABELS, 0)
    for item in inputs:
        if item.get("group") != "keys":
            continue
        parsed = _parse_keys_instance(item["key"])
        if parsed is not None:
            totals[parsed[0]] = max(totals[parsed[0]], parsed[1])

    result: list[dict[str, Any]] = []
    for item in inputs:
        parsed = _parse_keys_instance(item["key"]) if item.get("group") == "keys" else None
        if parsed is None:
            result.append(item)
            continue
        kind, index = parsed
        label = _KEYS_KIND_LABELS[kind]
        if totals[kind] > 1:
            label = f"{label} {index}"
        result.append(dict(item, label=label))
    return result


# -- acoustic guitars ----------------------------------------------------------


def _is_acoustic_guitar(item: dict[str, Any]) -> bool:
    return item["key"].lower().startswith(ACOUSTIC_GUITAR_PREFIXES)


def _is_electric_guitar(item: dict[str, Any]) -> bool:
    return item["key"].lower().startswith(ELECTRIC_GUITAR_PREFIXES)


def _is_keys_or_synth(item: dict[str, Any]) -> bool:
    key = item["key"].lower()
    return item.get("group") in ("keys", "synth") or key.startswith(("keys_", "synth"))


def _last_index_before(inputs: list[dict[str, Any]], stop: int, predicate: Any) -> int:
    for index in range(min(stop, len(inputs)) - 1, -1, -1):
        if predicate(inputs[index]):
            return index
    return -1


def reorder_acoustic_guitars(inputs: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Move acoustic guitars next to the electric guitars, ahead of keys.

    Falls back to the end of the guitar block, then to the slot right before
    the first keys/synth channel.
    """
    result = list(inputs)
    acoustic = [item for item in result if _is_acoustic_guitar(item)]
    for item in acoustic:
        current = next(index for index, candidate in enumerate(result) if candidate is item)
        result.pop(current)

        keys_index = next(
            (index for index, candidate in enumerate(result) if _is_keys_or_synth(candidate)),
            len(result),
        )
        anchor = _last_index_before(result, keys_index, _is_electric_guitar)
        if anchor < 0:
            anchor = _last_index_before(
                result, keys_index, lambda candidate: candidate.get("group") == "guitar"
            )
        insert_at = anchor + 1 if anchor >= 0 else keys_index
        result.insert(min(insert_at, keys_index), item)
    return result


# -- pipeline ------------------------------------------------------------------


def collect_lineup_inputs(setup: EffectiveProjectSetup) -> list[dict[str, Any]]:
    """Gather effective inputs in group order, then lineup order within a group.

    Each lineup slot contributes its own preset; without per-slot presets a
    musician's preset is collected once, at the first slot.
    """
    collected: list[dict[str, Any]] = []
    seen: set[str] = set()
    for group in GROUP_ORDER:
        for musician_id in setup.lineup.get(group, ()):
            preset = setup.by_slot.get((group, musician_id))
            if preset is None and musician_id not in seen:
                preset = setup.by_musician_id.get(musician_id)
            seen.add(musician_id)
            if preset is None:
                continue
            for channel in preset.get("inputs", []):
                copied = copy_channel(channel)
                copied.setdefault("group", group)
                collected.append(copied)
    return collected


def assemble_inputs(setup: EffectiveProjectSetup) -> list[dict[str, Any]]:
    inputs = collect_lineup_inputs(setup)
    inputs = format_keys_input_instances(inputs)
    inputs = disambiguate_input_keys(inputs)
    inputs = order_inputs(inputs)
    # Acoustic placement runs after the sort, which would otherwise undo it.
    return reorder_acoustic_guitars(inputs)


def finalize_lead_vocal_labels(
    inputs: list[dict[str, Any]],
    lead_genders: list[str | None],
) -> list[dict[str, Any]]:
    """Relabel ``voc_lead*`` channels; genders show only when leads are mixed."""
    lead_count = max(len(lead_genders), 1)
    mixed = len({gender for gender in lead_genders if gender}) >= 2

    result: list[dict[str, Any]] = []
    for item in inputs:
        if not item["key"].startswith("voc_lead"):
            result.append(item)
            continue
        match = _LEAD_INDEX_RE.search(item["key"])
        index = int(match.group(1)) if match else 1
        gender = lead_genders[index - 1] if 0 < index <= len(lead_genders) else None
        label = format_vocal_label(
            index,
            lead_count=lead_count,
            gender=gender,
            gender_mode="include" if mixed else "omit",
        )
        result.append(dict(item, label=label))
    return result

from __future__ import annotations

from typing import Any

from stagesheet.core.groups import group_rank

DRUM_KEY_ORDER: tuple[str, ...] = (
    "dr_kick_out",
    "dr_kick_in",
    "dr_snare1_top",
    "dr_snare1_bottom",
    "dr_hihat",
    "dr_tom_1",
    "dr_tom_2",
    "dr_tom_3",
    "dr_tom_4",
    "dr_floor_1",
    "dr_floor_2",
    "dr_floor_3",
    "dr_floor_4",
    "dr_oh_l",
    "dr_oh_r",
    "dr_snare2_top",
    "dr_snare3_top",
    "dr_pad_mono_sfx",
    "dr_pad_mono_backing",
    "dr_pad_stereo_sfx_l",
    "dr_pad_stereo_sfx_r",
    "dr_pad_stereo_backing_l",
    "dr_pad_stereo_backing_r",
)

# Older drum preset keys ranked like their current equivalents.
LEGACY_DRUM_KEYS: dict[str, str] = {
    "dr_snare_top": "dr_snare1_top",
    "dr_snare_bottom": "dr_snare1_bottom",
    "dr_floor_tom": "dr_floor_1",
}

UNKNOWN_DRUM_RANK = 500

# Amp and pedalboard are the same DI slot.
BASS_PRIORITY_BY_KEY: dict[str, int] = {
    "el_bass_xlr_amp": 0,
    "el_bass_xlr_pedalboard": 0,
    "el_bass_mic": 1,
    "bass_synth": 2,
}

_DRUM_RANK_BY_KEY: dict[str, int] = {key: index for index, key in enumerate(DRUM_KEY_ORDER)}


def drum_rank(key: str) -> int:
    lowered = key.lower()
    lowered = LEGACY_DRUM_KEYS.get(lowered, lowered)
    return _DRUM_RANK_BY_KEY.get(lowered, UNKNOWN_DRUM_RANK)


def _role_priority(role: str | None, item: dict[str, Any]) -> float:
    if role != "bass":
        return 0
    return BASS_PRIORITY_BY_KEY.get(item["key"], float("inf"))


def compare_inputs_for_role(role: str | None, a: dict[str, Any], b: dict[str, Any]) -> int:
    a_priority = _role_priority(role, a)
    b_priority = _role_priority(role, b)
    return (a_priority > b_priority) - (a_priority < b_priority)


def _input_sort_key(item: dict[str, Any], default_group: str | None) -> tuple[Any, ...]:
    group = item.get("group") or default_group
    return (
        group_rank(group),
        drum_rank(item["key"]) if group == "drums" else 0,
        _role_priority(group, item),
        item["key"],
    )


def order_inputs(
    inputs: list[dict[str, Any]],
    default_group: str | None = None,
) -> list[dict[str, Any]]:
    """Stable sort by group rank, drum rank, bass priority, then key."""
    return sorted(inputs, key=lambda item: _input_sort_key(item, default_group))

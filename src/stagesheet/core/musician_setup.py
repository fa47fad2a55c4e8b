from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from stagesheet.core.errors import ConfigurationError
from stagesheet.core.input_order import order_inputs
from stagesheet.core.preset_override import (
    DEFAULT_MONITOR_REF,
    apply_preset_override,
    copy_channel,
)
from stagesheet.core.presets import PresetLookup, require_preset
from stagesheet.core.project_state import resolve_effective_project_state

# Preferred variant per setupGroup; refs not listed rank after these in
# the order they appear on the musician.
SETUP_GROUP_PRIORITY: dict[str, tuple[str, ...]] = {
    "electric_bass": ("el_bass_xlr_pedalboard", "el_bass_xlr_amp"),
}


@dataclass(frozen=True)
class EffectiveProjectSetup:
    lineup: dict[str, tuple[str, ...]]
    by_musician_id: dict[str, dict[str, Any]]
    default_by_musician_id: dict[str, dict[str, Any]] = field(default_factory=dict)
    preset_override_by_musician_id: dict[str, dict[str, Any]] = field(default_factory=dict)
    talkback_owner_id: str = ""
    by_slot: dict[tuple[str, str], dict[str, Any]] = field(default_factory=dict)


def _setup_group_rank(setup_group: str, preset_id: str) -> float:
    priority = SETUP_GROUP_PRIORITY.get(setup_group, ())
    if preset_id in priority:
        return priority.index(preset_id)
    return float("inf")


def _select_setup_group_variants(entities: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Keep one preset per setupGroup, placed where that group first appears."""
    chosen: dict[str, dict[str, Any]] = {}
    for entity in entities:
        setup_group = entity.get("setupGroup")
        if not isinstance(setup_group, str) or not setup_group:
            continue
        current = chosen.get(setup_group)
        if current is None or _setup_group_rank(setup_group, entity.get("id", "")) < _setup_group_rank(
            setup_group, current.get("id", "")
        ):
            chosen[setup_group] = entity

    selected: list[dict[str, Any]] = []
    placed: set[str] = set()
    for entity in entities:
        setup_group = entity.get("setupGroup")
        if not isinstance(setup_group, str) or not setup_group:
            selected.append(entity)
            continue
        if setup_group in placed:
            continue
        placed.add(setup_group)
        selected.append(chosen[setup_group])
    return selected


def _default_inputs(defaults: dict[str, Any] | None) -> list[dict[str, Any]] | None:
    if not isinstance(defaults, dict):
        return None
    inputs = defaults.get("inputs")
    if not isinstance(inputs, list):
        return None
    return [copy_channel(item) for item in inputs if isinstance(item, dict)]


def _default_monitoring(defaults: dict[str, Any] | None) -> dict[str, Any]:
    if not isinstance(defaults, dict):
        return {}
    monitoring = defaults.get("monitoring")
    return dict(monitoring) if isinstance(monitoring, dict) else {}


def resolve_default_musician_setup(
    role: str,
    preset_items: list[dict[str, Any]] | None,
    get_preset_by_ref: PresetLookup,
    *,
    musician_defaults: dict[str, Any] | None = None,
    band_defaults: dict[str, Any] | None = None,
    owner_label: str = "musician",
    slot_roles: Sequence[str] | None = None,
) -> dict[str, Any]:
    """Expand a musician's preset refs into a default setup preset.

    ``monitor`` refs set the monitoring slot (first one wins); ``preset``
    refs contribute inputs in reference order. Presets sharing a
    ``setupGroup`` are alternatives and only the selected one contributes.

    ``slot_roles`` lists every lineup group the musician plays in, first
    slot first. A preset then goes to the slot matching its group, and
    presets of any other group go to the first slot only.
    """
    primary = not slot_roles or slot_roles[0] == role
    monitoring: dict[str, Any] = {"monitorRef": DEFAULT_MONITOR_REF}
    monitoring.update(_default_monitoring(band_defaults))
    monitoring.update(_default_monitoring(musician_defaults))

    monitor_entity: dict[str, Any] | None = None
    preset_entities: list[dict[str, Any]] = []
    for item in preset_items or []:
        if not isinstance(item, dict):
            raise ConfigurationError(f"Preset refs of {owner_label} must be objects.")
        kind = item.get("kind")
        ref = item.get("ref")
        if not isinstance(ref, str) or not ref.strip():
            raise ConfigurationError(f"Preset ref of {owner_label} is missing 'ref'.")
        if kind == "monitor":
            entity = require_preset(
                get_preset_by_ref, ref, expected_type="monitor", owner_label=owner_label
            )
            if monitor_entity is None:
                monitor_entity = entity
        elif kind == "preset":
            preset_entities.append(
                require_preset(
                    get_preset_by_ref, ref, expected_type="preset", owner_label=owner_label
                )
            )
        else:
            raise ConfigurationError(f"Unknown preset ref kind '{kind}' ({owner_label}, ref '{ref}').")

    if monitor_entity is not None:
        monitoring["monitorRef"] = monitor_entity.get("id", DEFAULT_MONITOR_REF)

    inputs: list[dict[str, Any]] = []
    seen_keys: set[str] = set()
    for entity in _select_setup_group_variants(preset_entities):
        entity_group = entity.get("group")
        if slot_roles and entity_group != role and (entity_group in slot_roles or not primary):
            continue
        for channel in entity.get("inputs") or []:
            if not isinstance(channel, dict) or channel.get("key") in seen_keys:
                continue
            copied = copy_channel(channel)
            copied.setdefault("group", entity_group or role)
            seen_keys.add(copied["key"])
            inputs.append(copied)

    if not inputs and primary:
        inputs = _default_inputs(musician_defaults) or _default_inputs(band_defaults) or []

    return {
        "inputs": order_inputs(inputs, role),
        "monitoring": monitoring,
    }


def _secondary_slot_patch(patch: dict[str, Any] | None) -> dict[str, Any] | None:
    """Keep the key-addressed edits of ``patch``; adds belong to the first slot."""
    if not isinstance(patch, dict) or not isinstance(patch.get("inputs"), dict):
        return None
    inputs = {
        name: value
        for name, value in patch["inputs"].items()
        if name in ("remove", "removeKeys", "update")
    }
    return {"inputs": inputs} if inputs else None


def resolve_effective_project_setup(
    project: dict[str, Any],
    band: dict[str, Any],
    band_leader_id: str,
    get_musician_by_id: Callable[[str], dict[str, Any]],
    get_preset_by_ref: PresetLookup,
    musician_defaults_by_id: dict[str, dict[str, Any]] | None = None,
    *,
    band_defaults: dict[str, Any] | None = None,
) -> EffectiveProjectSetup:
    """Resolve one effective preset per lineup slot.

    A musician listed under several groups gets a preset for each slot. The
    first slot carries the musician's override and defines
    ``by_musician_id``.
    """
    state = resolve_effective_project_state(
        project,
        band.get("defaultLineup") or {},
        band_leader_id,
    )

    roles_by_musician: dict[str, list[str]] = {}
    for role, musician_ids in state.effective_lineup.items():
        for musician_id in musician_ids:
            roles = roles_by_musician.setdefault(musician_id, [])
            if role not in roles:
                roles.append(role)

    defaults_by_id = musician_defaults_by_id or {}
    musicians: dict[str, dict[str, Any]] = {}
    by_slot: dict[tuple[str, str], dict[str, Any]] = {}
    by_musician_id: dict[str, dict[str, Any]] = {}
    default_by_musician_id: dict[str, dict[str, Any]] = {}
    for role, musician_ids in state.effective_lineup.items():
        for musician_id in musician_ids:
            if (role, musician_id) in by_slot:
                continue
            if musician_id not in musicians:
                musicians[musician_id] = get_musician_by_id(musician_id)
            slot_roles = roles_by_musician[musician_id]
            default_preset = resolve_default_musician_setup(
                role,
                musicians[musician_id].get("presets"),
                get_preset_by_ref,
                musician_defaults=defaults_by_id.get(musician_id),
                band_defaults=band_defaults,
                owner_label=f"musician '{musician_id}'",
                slot_roles=slot_roles,
            )
            patch = state.preset_override_by_musician_id.get(musician_id)
            if role != slot_roles[0]:
                by_slot[(role, musician_id)] = apply_preset_override(
                    default_preset, _secondary_slot_patch(patch)
                )
                continue
            effective = apply_preset_override(default_preset, patch)
            by_slot[(role, musician_id)] = effective
            default_by_musician_id[musician_id] = default_preset
            by_musician_id[musician_id] = effective

    return EffectiveProjectSetup(
        lineup=state.effective_lineup,
        by_musician_id=by_musician_id,
        default_by_musician_id=default_by_musician_id,
        preset_override_by_musician_id=state.preset_override_by_musician_id,
        talkback_owner_id=state.effective_talkback_owner_id,
        by_slot=by_slot,
    )

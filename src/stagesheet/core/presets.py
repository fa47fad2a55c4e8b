from __future__ import annotations

from typing import Any, Callable, Mapping

from stagesheet.core.errors import ConfigurationError

PRESET_TYPES: tuple[str, ...] = ("preset", "monitor")

# Legacy or ambiguous preset ids mapped to their canonical id.
PRESET_ID_ALIASES: dict[str, str] = {
    "el_bass_xlr": "el_bass_xlr_amp",
}

PresetLookup = Callable[[str], "dict[str, Any] | None"]


def resolve_preset_id_alias(preset_id: str) -> str:
    return PRESET_ID_ALIASES.get(preset_id, preset_id)


def make_preset_lookup(presets_by_id: Mapping[str, dict[str, Any]]) -> PresetLookup:
    def _lookup(ref: str) -> dict[str, Any] | None:
        if not isinstance(ref, str):
            return None
        normalized = ref.strip()
        entity = presets_by_id.get(resolve_preset_id_alias(normalized))
        if entity is None:
            entity = presets_by_id.get(normalized)
        return entity

    return _lookup


def require_preset(
    get_preset_by_ref: PresetLookup,
    ref: str,
    *,
    expected_type: str,
    owner_label: str,
) -> dict[str, Any]:
    entity = get_preset_by_ref(ref)
    if not isinstance(entity, dict):
        raise ConfigurationError(f"Unknown {expected_type} ref '{ref}' ({owner_label}).")
    entity_type = entity.get("type")
    if entity_type != expected_type:
        raise ConfigurationError(
            f"Ref '{ref}' ({owner_label}) points to type '{entity_type}', "
            f"expected '{expected_type}'."
        )
    return entity


def get_monitor_label(get_preset_by_ref: PresetLookup, monitor_ref: str) -> str:
    entity = get_preset_by_ref(monitor_ref)
    if not isinstance(entity, dict) or entity.get("type") != "monitor":
        raise ConfigurationError(f"Unknown monitor preset ref: {monitor_ref}")
    label = entity.get("label")
    return label.strip() if isinstance(label, str) else ""


def monitor_kind(entity: dict[str, Any]) -> str:
    if entity.get("wireless") is True:
        return "iem"
    entity_id = entity.get("id")
    if isinstance(entity_id, str) and entity_id.startswith("iem"):
        return "iem"
    return "wedge"

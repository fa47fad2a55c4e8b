from __future__ import annotations

from typing import Any

from stagesheet.core.errors import ConfigurationError
from stagesheet.core.groups import GROUP_ORDER
from stagesheet.core.validators import MAX_INPUTS

DEFAULT_MONITOR_REF = "wedge"

# Aux sends available for monitor mixes; fixed, no project-level override.
DEFAULT_MONITOR_MIX_LIMIT = 6

_CHANNEL_FIELDS = ("key", "label", "group", "note")
_UPDATE_FIELDS = ("label", "note", "group")

# Amp and pedalboard DI are the same slot; adding one replaces the other.
BASS_MAIN_CONNECTION_KEYS: tuple[str, ...] = ("el_bass_xlr_amp", "el_bass_xlr_pedalboard")


def create_default_musician_preset() -> dict[str, Any]:
    return {
        "inputs": [],
        "monitoring": {"monitorRef": DEFAULT_MONITOR_REF},
    }


def copy_channel(channel: dict[str, Any]) -> dict[str, Any]:
    return {
        field: channel[field]
        for field in _CHANNEL_FIELDS
        if channel.get(field) is not None
    }


def copy_preset(preset: dict[str, Any]) -> dict[str, Any]:
    inputs = preset.get("inputs")
    monitoring = preset.get("monitoring")
    return {
        "inputs": [
            copy_channel(item)
            for item in (inputs if isinstance(inputs, list) else [])
            if isinstance(item, dict)
        ],
        "monitoring": dict(monitoring) if isinstance(monitoring, dict) else {
            "monitorRef": DEFAULT_MONITOR_REF
        },
    }


def _wedge_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return max(int(value), 0)


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _channel_list(value: Any, *, field_name: str) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    channels: list[dict[str, Any]] = []
    for item in value:
        if not isinstance(item, dict):
            raise ConfigurationError(f"Preset override {field_name} entries must be objects.")
        key = item.get("key")
        if not isinstance(key, str) or not key.strip():
            raise ConfigurationError(
                f"Preset override {field_name} entries must include a non-empty key."
            )
        channels.append(dict(item, key=key.strip()))
    return channels


def _replace_list(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    entries: list[dict[str, Any]] = []
    for item in value:
        if not isinstance(item, dict):
            raise ConfigurationError("Preset override inputs.replace entries must be objects.")
        target_key = item.get("targetKey")
        if not isinstance(target_key, str) or not target_key.strip():
            raise ConfigurationError(
                "Preset override inputs.replace entries must include a non-empty targetKey."
            )
        replacement = _channel_list([item.get("with")], field_name="inputs.replace.with")[0]
        entries.append({"targetKey": target_key.strip(), "with": replacement})
    return entries


def normalize_patch_shape(patch: dict[str, Any] | None) -> dict[str, Any] | None:
    """Return ``patch`` with empty sections dropped, or None when nothing is left.

    ``remove`` and ``removeKeys`` are folded into one ``removeKeys`` list.
    """
    if not isinstance(patch, dict):
        return None

    normalized: dict[str, Any] = {}

    raw_inputs = patch.get("inputs")
    if isinstance(raw_inputs, dict):
        remove_keys: list[str] = []
        for key in _string_list(raw_inputs.get("remove")) + _string_list(raw_inputs.get("removeKeys")):
            if key not in remove_keys:
                remove_keys.append(key)
        add = _channel_list(raw_inputs.get("add"), field_name="inputs.add")
        replace = _replace_list(raw_inputs.get("replace"))
        update = _channel_list(raw_inputs.get("update"), field_name="inputs.update")

        inputs: dict[str, Any] = {}
        if remove_keys:
            inputs["removeKeys"] = remove_keys
        if add:
            inputs["add"] = add
        if replace:
            inputs["replace"] = replace
        if update:
            inputs["update"] = update
        if inputs:
            normalized["inputs"] = inputs

    raw_monitoring = patch.get("monitoring")
    if isinstance(raw_monitoring, dict):
        monitoring: dict[str, Any] = {}
        monitor_ref = raw_monitoring.get("monitorRef")
        if isinstance(monitor_ref, str) and monitor_ref.strip():
            monitoring["monitorRef"] = monitor_ref.strip()
        if raw_monitoring.get("additionalWedgeCount") is not None:
            monitoring["additionalWedgeCount"] = _wedge_count(
                raw_monitoring.get("additionalWedgeCount")
            )
        if monitoring:
            normalized["monitoring"] = monitoring

    return normalized or None


def _presets_equal(a: dict[str, Any], b: dict[str, Any]) -> bool:
    monitoring_a = a.get("monitoring", {})
    monitoring_b = b.get("monitoring", {})
    if monitoring_a.get("monitorRef") != monitoring_b.get("monitorRef"):
        return False
    if _wedge_count(monitoring_a.get("additionalWedgeCount")) != _wedge_count(
        monitoring_b.get("additionalWedgeCount")
    ):
        return False
    return [copy_channel(item) for item in a.get("inputs", [])] == [
        copy_channel(item) for item in b.get("inputs", [])
    ]


def normalize_bass_connection_override_patch(
    default_preset: dict[str, Any],
    patch: dict[str, Any] | None,
) -> dict[str, Any] | None:
    """Turn an added main bass DI into a replacement of the default one.

    Explicit ``replace`` entries win over the add-based form.
    """
    if not isinstance(patch, dict):
        return None
    default_main = next(
        (
            item
            for item in default_preset.get("inputs", [])
            if item.get("key") in BASS_MAIN_CONNECTION_KEYS
        ),
        None,
    )
    raw_inputs = patch.get("inputs")
    if default_main is None or not isinstance(raw_inputs, dict):
        return normalize_patch_shape(patch)

    add = _channel_list(raw_inputs.get("add"), field_name="inputs.add")
    replace = _replace_list(raw_inputs.get("replace"))
    main_add = next((item for item in add if item["key"] in BASS_MAIN_CONNECTION_KEYS), None)
    if not replace and main_add is not None:
        replace = [{"targetKey": default_main["key"], "with": main_add}]

    inputs = dict(raw_inputs)
    inputs["add"] = [item for item in add if item["key"] not in BASS_MAIN_CONNECTION_KEYS]
    inputs["replace"] = replace
    return normalize_patch_shape(dict(patch, inputs=inputs))


def normalize_setup_override_patch(
    default_preset: dict[str, Any],
    patch: dict[str, Any] | None,
) -> dict[str, Any] | None:
    """Normalize ``patch`` against ``default_preset``; None when it changes nothing."""
    normalized = normalize_bass_connection_override_patch(default_preset, patch)
    if normalized is None:
        return None
    effective = apply_preset_override(default_preset, normalized, skip_normalization=True)
    if _presets_equal(copy_preset(default_preset), effective):
        return None
    return normalized


def apply_preset_override(
    default_preset: dict[str, Any],
    patch: dict[str, Any] | None,
    *,
    skip_normalization: bool = False,
) -> dict[str, Any]:
    base = copy_preset(default_preset)
    if skip_normalization:
        normalized = normalize_patch_shape(patch)
    else:
        normalized = normalize_setup_override_patch(default_preset, patch)
    if normalized is None:
        return base

    monitoring_patch = normalized.get("monitoring", {})
    monitoring = dict(base["monitoring"])
    if "monitorRef" in monitoring_patch:
        monitoring["monitorRef"] = monitoring_patch["monitorRef"]
    if "additionalWedgeCount" in monitoring_patch:
        count = monitoring_patch["additionalWedgeCount"]
        if count > 0:
            monitoring["additionalWedgeCount"] = count
        else:
            monitoring.pop("additionalWedgeCount", None)

    inputs_patch = normalized.get("inputs", {})
    removed = set(inputs_patch.get("removeKeys", []))
    inputs = [item for item in base["inputs"] if item["key"] not in removed]

    for update in inputs_patch.get("update", []):
        for index, item in enumerate(inputs):
            if item["key"] != update["key"]:
                continue
            changed = dict(item)
            for field in _UPDATE_FIELDS:
                if update.get(field) is not None:
                    changed[field] = update[field]
            inputs[index] = changed

    replace = inputs_patch.get("replace", [])
    inputs = _apply_input_replacements(inputs, replace)

    replacement_keys = {entry["with"]["key"] for entry in replace}
    for add in inputs_patch.get("add", []):
        if add["key"] in replacement_keys:
            continue
        if any(existing["key"] == add["key"] for existing in inputs):
            raise ConfigurationError(f'Preset override collision for input key "{add["key"]}".')
        inputs.append(copy_channel(add))

    return {"inputs": inputs, "monitoring": monitoring}


def _apply_input_replacements(
    inputs: list[dict[str, Any]],
    replace: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Swap each ``targetKey`` channel in place; a missing target prepends."""
    result = [dict(item) for item in inputs]
    for entry in replace:
        replacement = copy_channel(entry["with"])
        target_index = next(
            (index for index, item in enumerate(result) if item["key"] == entry["targetKey"]),
            None,
        )
        duplicate_index = next(
            (
                index
                for index, item in enumerate(result)
                if item["key"] == replacement["key"] and index != target_index
            ),
            None,
        )
        if duplicate_index is not None:
            result.pop(duplicate_index)
            if target_index is not None and duplicate_index < target_index:
                target_index -= 1
        if target_index is not None:
            result[target_index] = replacement
        else:
            result.insert(0, replacement)
    return result


def _comparable_projection(preset: dict[str, Any]) -> dict[str, Any]:
    monitoring = preset.get("monitoring", {})
    projected_monitoring: dict[str, Any] = {"monitorRef": monitoring.get("monitorRef")}
    wedge_count = _wedge_count(monitoring.get("additionalWedgeCount"))
    if wedge_count > 0:
        projected_monitoring["additionalWedgeCount"] = wedge_count
    return {
        "monitoring": projected_monitoring,
        "inputs": sorted(
            (copy_channel(item) for item in preset.get("inputs", [])),
            key=lambda item: item["key"],
        ),
    }


def is_patch_different_from_default(
    default_preset: dict[str, Any],
    patch: dict[str, Any] | None,
) -> bool:
    normalized = normalize_setup_override_patch(default_preset, patch)
    if normalized is None:
        return False
    effective = apply_preset_override(default_preset, normalized, skip_normalization=True)
    return _comparable_projection(copy_preset(default_preset)) != _comparable_projection(effective)


def _plural(count: int, noun: str) -> str:
    return f"{noun}s" if count > 1 else noun


def build_changed_summary(patch: dict[str, Any] | None) -> list[str]:
    normalized = normalize_patch_shape(patch)
    if normalized is None:
        return []
    inputs = normalized.get("inputs", {})
    added = len(inputs.get("add", []))
    removed = len(inputs.get("removeKeys", []))
    replaced = len(inputs.get("replace", []))
    updated = len(inputs.get("update", []))

    summary: list[str] = []
    if added:
        summary.append(f"+{added} {_plural(added, 'input')}")
    if removed:
        summary.append(f"-{removed} {_plural(removed, 'input')}")
    if replaced:
        summary.append(f"{replaced} input {_plural(replaced, 'replacement')}")
    if updated:
        summary.append(f"{updated} input {_plural(updated, 'update')}")
    monitoring = normalized.get("monitoring", {})
    if "monitorRef" in monitoring:
        summary.append(f"Monitoring: {monitoring['monitorRef']}")
    if "additionalWedgeCount" in monitoring:
        summary.append(f"Additional wedge monitor {monitoring['additionalWedgeCount']}x")
    return summary


def _required_monitor_mix_count(preset: dict[str, Any]) -> int:
    if preset.get("monitoring", {}).get("monitorRef") == DEFAULT_MONITOR_REF:
        return 0
    return 1


def summarize_effective_preset_validation(
    effective_presets: list[dict[str, Any]],
) -> dict[str, Any]:
    """Check lineup-ordered ``{"group", "preset"}`` slots against console limits."""
    errors: list[str] = []
    warnings: list[str] = []

    input_total = sum(len(slot["preset"].get("inputs", [])) for slot in effective_presets)
    if input_total > MAX_INPUTS:
        errors.append(f"Total input channels exceed limit: {input_total}/{MAX_INPUTS}.")

    monitor_mix_total = sum(
        _required_monitor_mix_count(slot["preset"]) for slot in effective_presets
    )
    if monitor_mix_total > DEFAULT_MONITOR_MIX_LIMIT:
        warnings.append(
            "Total required monitor mixes (aux sends) exceed the configured limit "
            f"({monitor_mix_total} > {DEFAULT_MONITOR_MIX_LIMIT})."
        )

    previous_rank = -1
    for slot in effective_presets:
        group = slot.get("group")
        if group not in GROUP_ORDER:
            continue
        rank = GROUP_ORDER.index(group)
        if rank < previous_rank:
            errors.append("Group order must stay fixed: " + ", ".join(GROUP_ORDER) + ".")
            break
        previous_rank = rank

    return {
        "errors": errors,
        "warnings": warnings,
        "totals": {
            "input_channels": input_total,
            "monitor_mixes": monitor_mix_total,
            "monitor_mix_limit": DEFAULT_MONITOR_MIX_LIMIT,
        },
    }

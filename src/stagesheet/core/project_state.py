from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from stagesheet.core.groups import GROUP_ORDER, lineup_value_for_group


@dataclass(frozen=True)
class EffectiveProjectState:
    effective_lineup: dict[str, tuple[str, ...]]
    preset_override_by_musician_id: dict[str, dict[str, Any]] = field(default_factory=dict)
    effective_talkback_owner_id: str = ""


def _normalize_slot(
    value: Any,
    overrides: dict[str, dict[str, Any]],
) -> list[str]:
    if isinstance(value, str):
        musician_id = value.strip()
        return [musician_id] if musician_id else []
    if isinstance(value, dict):
        raw_id = value.get("musicianId")
        musician_id = raw_id.strip() if isinstance(raw_id, str) else ""
        if not musician_id:
            return []
        patch = value.get("presetOverride")
        if isinstance(patch, dict):
            overrides[musician_id] = patch
        return [musician_id]
    if isinstance(value, list):
        musician_ids: list[str] = []
        for item in value:
            musician_ids.extend(_normalize_slot(item, overrides))
        return musician_ids
    return []


def normalize_lineup_value(value: Any) -> list[str]:
    """Return the musician ids of one lineup entry, ignoring any override."""
    return _normalize_slot(value, {})


def resolve_effective_project_state(
    project: dict[str, Any],
    band_default_lineup: dict[str, Any] | None,
    band_leader_id: str,
) -> EffectiveProjectState:
    """Layer the project lineup over the band default, group by group.

    A project entry replaces the band entry for its group outright. Per-slot
    ``presetOverride`` patches are keyed by musician id, last write wins.
    """
    project_lineup = project.get("lineup")
    if not isinstance(project_lineup, dict):
        project_lineup = {}
    default_lineup = band_default_lineup if isinstance(band_default_lineup, dict) else {}

    overrides: dict[str, dict[str, Any]] = {}
    effective_lineup: dict[str, tuple[str, ...]] = {}
    for group in GROUP_ORDER:
        project_ids = _normalize_slot(lineup_value_for_group(project_lineup, group), overrides)
        if project_ids:
            effective_lineup[group] = tuple(project_ids)
            continue
        effective_lineup[group] = tuple(
            normalize_lineup_value(lineup_value_for_group(default_lineup, group))
        )

    raw_owner = project.get("talkbackOwnerId")
    owner_id = raw_owner.strip() if isinstance(raw_owner, str) else ""

    return EffectiveProjectState(
        effective_lineup=effective_lineup,
        preset_override_by_musician_id=overrides,
        effective_talkback_owner_id=owner_id or band_leader_id,
    )

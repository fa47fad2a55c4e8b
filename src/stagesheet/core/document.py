from __future__ import annotations

import re
from typing import Any, Protocol

from stagesheet.core.band_leader import validate_band_leader
from stagesheet.core.errors import ConfigurationError
from stagesheet.core.formatters import (
    assign_channel_numbers,
    build_input_rows,
    format_monitor_label,
    format_monitoring_label,
    format_project_meta_line,
    is_spare_channel,
)
from stagesheet.core.groups import GROUP_ORDER
from stagesheet.core.input_assembly import assemble_inputs, finalize_lead_vocal_labels
from stagesheet.core.musician_setup import EffectiveProjectSetup, resolve_effective_project_setup
from stagesheet.core.preset_override import (
    build_changed_summary,
    is_patch_different_from_default,
    normalize_setup_override_patch,
    summarize_effective_preset_validation,
)
from stagesheet.core.presets import get_monitor_label, monitor_kind
from stagesheet.core.stageplan import build_stageplan, describe_person
from stagesheet.core.validators import validate_document

_LEAD_PRESET_RE = re.compile(r"^vocal_lead", re.IGNORECASE)

# Monitor table order; lead vocals are inserted after guitar.
_MONITOR_ROLES_BEFORE_LEADS = ("guitar",)
_MONITOR_ROLES_AFTER_LEADS = ("keys", "bass", "drums")


class DocumentRepository(Protocol):
    def get_band(self, band_ref: str) -> dict[str, Any]: ...

    def get_musician(self, musician_id: str) -> dict[str, Any]: ...

    def get_preset(self, ref: str) -> dict[str, Any] | None: ...

    def get_project(self, project_id: str) -> dict[str, Any]: ...


def _resolve_band_leader_id(
    project: dict[str, Any],
    band: dict[str, Any],
    repo: DocumentRepository,
) -> str:
    leader_id = validate_band_leader(band, repo.get_musician)
    override = project.get("bandLeaderId")
    if isinstance(override, str) and override.strip():
        leader_id = override.strip()
        repo.get_musician(leader_id)
    return leader_id


def _has_lead_preset(musician: dict[str, Any]) -> bool:
    return any(
        isinstance(item, dict)
        and item.get("kind") == "preset"
        and isinstance(item.get("ref"), str)
        and _LEAD_PRESET_RE.match(item["ref"])
        for item in musician.get("presets") or []
    )


def _lead_musician_ids(
    setup: EffectiveProjectSetup,
    musicians_by_id: dict[str, dict[str, Any]],
) -> list[str]:
    vocs = list(setup.lineup.get("vocs", ()))
    leads = [musician_id for musician_id in vocs if _has_lead_preset(musicians_by_id[musician_id])]
    return leads or vocs


def _monitor_rows(
    setup: EffectiveProjectSetup,
    lead_ids: list[str],
    lead_genders: list[str | None],
    repo: DocumentRepository,
) -> list[dict[str, Any]]:
    mixed = len({gender for gender in lead_genders if gender}) >= 2
    entries: list[tuple[str, str]] = []
    for role in _MONITOR_ROLES_BEFORE_LEADS:
        if setup.lineup.get(role):
            entries.append((format_monitor_label(role), setup.lineup[role][0]))
    for index, musician_id in enumerate(lead_ids, start=1):
        output = format_monitor_label(
            "lead",
            lead_count=len(lead_ids),
            index=index,
            gender=lead_genders[index - 1] if mixed else None,
        )
        entries.append((output, musician_id))
    for role in _MONITOR_ROLES_AFTER_LEADS:
        if setup.lineup.get(role):
            entries.append((format_monitor_label(role), setup.lineup[role][0]))

    rows: list[dict[str, Any]] = []
    for number, (output, musician_id) in enumerate(entries, start=1):
        monitoring = setup.by_musician_id[musician_id]["monitoring"]
        base_label = get_monitor_label(repo.get_preset, monitoring["monitorRef"])
        rows.append(
            {
                "no": number,
                "output": output,
                "note": format_monitoring_label(
                    base_label, monitoring.get("additionalWedgeCount")
                ),
            }
        )
    return rows


def _monitor_summary(
    setup: EffectiveProjectSetup,
    repo: DocumentRepository,
) -> list[dict[str, Any]]:
    monitors: list[dict[str, Any]] = []
    for group in GROUP_ORDER:
        for musician_id in setup.lineup.get(group, ()):
            monitor_ref = setup.by_musician_id[musician_id]["monitoring"]["monitorRef"]
            entity = repo.get_preset(monitor_ref) or {"id": monitor_ref}
            monitors.append(
                {
                    "musician_id": musician_id,
                    "id": monitor_ref,
                    "label": get_monitor_label(repo.get_preset, monitor_ref),
                    "kind": monitor_kind(entity),
                }
            )
    return monitors


def _setup_changes(setup: EffectiveProjectSetup) -> dict[str, list[str]]:
    changes: dict[str, list[str]] = {}
    for musician_id, patch in sorted(setup.preset_override_by_musician_id.items()):
        default_preset = setup.default_by_musician_id.get(musician_id)
        if default_preset is None:
            continue
        if is_patch_different_from_default(default_preset, patch):
            changes[musician_id] = build_changed_summary(
                normalize_setup_override_patch(default_preset, patch)
            )
    return changes


def _meta(project: dict[str, Any], band: dict[str, Any]) -> dict[str, Any]:
    return {
        "project_id": project["id"],
        "band_name": band.get("name"),
        "band_code": band.get("code"),
        "purpose": project.get("purpose"),
        "event_date": project.get("eventDate"),
        "event_venue": project.get("eventVenue"),
        "document_date": project.get("documentDate"),
        "title": project.get("title"),
        "meta_line": format_project_meta_line(
            purpose=project.get("purpose", ""),
            document_date=project.get("documentDate"),
            event_date=project.get("eventDate"),
            event_venue=project.get("eventVenue"),
            note=project.get("title"),
        ),
    }


def build_document(project: dict[str, Any], repo: DocumentRepository) -> dict[str, Any]:
    """Resolve ``project`` against ``repo`` into a document view model."""
    band = repo.get_band(project["bandRef"])
    band_leader_id = _resolve_band_leader_id(project, band, repo)

    setup = resolve_effective_project_setup(
        project,
        band,
        band_leader_id,
        repo.get_musician,
        repo.get_preset,
    )
    musicians_by_id = {
        musician_id: repo.get_musician(musician_id)
        for group in GROUP_ORDER
        for musician_id in setup.lineup.get(group, ())
    }
    if setup.talkback_owner_id and setup.talkback_owner_id not in musicians_by_id:
        musicians_by_id[setup.talkback_owner_id] = repo.get_musician(setup.talkback_owner_id)

    lead_ids = _lead_musician_ids(setup, musicians_by_id)
    lead_genders = [musicians_by_id[musician_id].get("gender") for musician_id in lead_ids]

    inputs = finalize_lead_vocal_labels(assemble_inputs(setup), lead_genders)
    validation = summarize_effective_preset_validation(
        [
            {"group": group, "preset": setup.by_slot[(group, musician_id)]}
            for group in GROUP_ORDER
            for musician_id in setup.lineup.get(group, ())
        ]
    )
    if validation["errors"]:
        raise ConfigurationError(" ".join(validation["errors"]))

    numbered = assign_channel_numbers(inputs)
    monitor_rows = _monitor_rows(setup, lead_ids, lead_genders, repo)

    return {
        "meta": _meta(project, band),
        "inputs": numbered,
        "input_rows": build_input_rows(numbered),
        "monitors": _monitor_summary(setup, repo),
        "monitor_rows": monitor_rows,
        "stageplan": build_stageplan(
            inputs=[item for item in numbered if not is_spare_channel(item)],
            monitor_rows=monitor_rows,
            lineup=setup.lineup,
            project=project,
            band_leader_id=band_leader_id,
            musicians_by_id=musicians_by_id,
            lead_vocals=[
                describe_person(musician_id, band_leader_id, musicians_by_id)
                for musician_id in lead_ids
            ],
            talkback_owner_id=setup.talkback_owner_id,
        ),
        "talkback_owner_id": setup.talkback_owner_id,
        "setup_changes": _setup_changes(setup),
        "warnings": validation["warnings"],
    }


def generate_document(project_id: str, repo: DocumentRepository) -> dict[str, Any]:
    document = build_document(repo.get_project(project_id), repo)
    validate_document(document)
    return document

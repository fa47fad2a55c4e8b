from __future__ import annotations

from typing import Any, Callable

from stagesheet.core.errors import ConfigurationError


def band_leader_error_message(band_id: Any) -> str:
    return f"Band '{band_id}' must define bandLeader referencing an existing musician id."


def resolve_band_leader_id(band: dict[str, Any]) -> str:
    raw_leader = band.get("bandLeader")
    leader_id = raw_leader.strip() if isinstance(raw_leader, str) else ""
    if not leader_id:
        raise ConfigurationError(band_leader_error_message(band.get("id")))
    return leader_id


def is_band_leader(band: dict[str, Any], musician_id: str) -> bool:
    return musician_id == resolve_band_leader_id(band)


def validate_band_leader(
    band: dict[str, Any],
    get_musician_by_id: Callable[[str], dict[str, Any]],
) -> str:
    """Return the band leader id once it resolves to a known musician."""
    leader_id = resolve_band_leader_id(band)
    try:
        get_musician_by_id(leader_id)
    except ValueError as exc:
        raise ConfigurationError(band_leader_error_message(band.get("id"))) from exc
    return leader_id

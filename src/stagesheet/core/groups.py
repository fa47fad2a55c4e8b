from __future__ import annotations

from typing import Any

GROUP_ORDER: tuple[str, ...] = (
    "drums",
    "bass",
    "guitar",
    "keys",
    "vocs",
    "talkback",
)

# Lineup keys accepted in place of "vocs".
LEAD_VOCS_ALIASES: tuple[str, ...] = ("lead_vocs", "lead_voc")


def is_group(value: Any) -> bool:
    return isinstance(value, str) and value in GROUP_ORDER


def group_rank(group: Any) -> int:
    if not is_group(group):
        return len(GROUP_ORDER)
    return GROUP_ORDER.index(group)


def lineup_value_for_group(lineup: dict[str, Any], group: str) -> Any:
    if group == "vocs":
        for alias in LEAD_VOCS_ALIASES:
            if lineup.get(alias) is not None:
                return lineup[alias]
    return lineup.get(group)

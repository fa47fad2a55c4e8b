from __future__ import annotations

from typing import Any

from stagesheet.core.errors import DocumentValidationError

# Console and template capacity.
MAX_INPUTS = 32


def validate_document(document: dict[str, Any]) -> None:
    inputs = document.get("inputs")
    if not isinstance(inputs, list) or not inputs:
        raise DocumentValidationError(
            "No inputs generated. Check band.defaultLineup and musician.presets mapping."
        )
    if len(inputs) > MAX_INPUTS:
        raise DocumentValidationError(f"Too many inputs: {len(inputs)} (max {MAX_INPUTS})")

    seen: set[str] = set()
    for item in inputs:
        key = item.get("key") if isinstance(item, dict) else None
        if key in seen:
            raise DocumentValidationError(f'Duplicate input key: "{key}"')
        seen.add(key)

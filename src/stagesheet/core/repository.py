from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from stagesheet.core.errors import ConfigurationError
from stagesheet.core.groups import LEAD_VOCS_ALIASES
from stagesheet.core.presets import make_preset_lookup
from stagesheet.core.project import normalize_project
from stagesheet.resources import schemas_dir

try:
    import jsonschema
except ImportError:  # pragma: no cover - optional dependency
    jsonschema = None

try:
    import yaml
except ImportError:  # pragma: no cover - optional dependency
    yaml = None


RECORD_KINDS: tuple[tuple[str, str], ...] = (
    ("bands", "band"),
    ("musicians", "musician"),
    ("presets", "preset"),
    ("projects", "project"),
)
_RECORD_SUFFIXES = (".json", ".yaml", ".yml")


def _load_json_object(path: Path, *, label: str) -> dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ValueError(f"Failed to read {label} JSON from {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"{label} JSON is not valid JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"{label} JSON must be an object: {path}")
    return payload


def _load_yaml_object(path: Path, *, label: str) -> dict[str, Any]:
    if yaml is None:
        raise RuntimeError("PyYAML is required to load YAML records.")
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except OSError as exc:
        raise ValueError(f"Failed to read {label} YAML from {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"{label} YAML is not valid: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"{label} YAML root must be a mapping: {path}")
    return payload


def load_record(path: Path, *, label: str) -> dict[str, Any]:
    if path.suffix.lower() == ".json":
        return _load_json_object(path, label=label)
    return _load_yaml_object(path, label=label)


def _load_json_schema(schema_path: Path) -> dict[str, Any]:
    try:
        schema = json.loads(schema_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Failed to load schema from {schema_path}: {exc}") from exc
    if not isinstance(schema, dict):
        raise ValueError(f"Schema JSON must be an object: {schema_path}")
    return schema


def _build_schema_registry(schemas_root: Path) -> Any:
    try:
        from referencing import Registry, Resource  # noqa: WPS433
        from referencing.jsonschema import DRAFT202012  # noqa: WPS433
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "jsonschema referencing support is unavailable; cannot validate records."
        ) from exc

    registry = Registry()
    for schema_file in sorted(schemas_root.glob("*.schema.json")):
        schema = _load_json_schema(schema_file)
        resource = Resource.from_contents(schema, default_specification=DRAFT202012)
        registry = registry.with_resource(schema_file.resolve().as_uri(), resource)
        schema_id = schema.get("$id")
        if isinstance(schema_id, str) and schema_id:
            registry = registry.with_resource(schema_id, resource)
    return registry


class SchemaValidator:
    """Validates records against the packaged Draft 2020-12 schemas."""

    def __init__(self, schemas_root: Path | None = None) -> None:
        if jsonschema is None:
            raise RuntimeError("jsonschema is required to validate records.")
        self._schemas_root = schemas_root or schemas_dir()
        self._registry = _build_schema_registry(self._schemas_root)
        self._validators: dict[str, Any] = {}

    def _validator(self, schema_name: str) -> Any:
        validator = self._validators.get(schema_name)
        if validator is None:
            schema = _load_json_schema(self._schemas_root / f"{schema_name}.schema.json")
            validator = jsonschema.Draft202012Validator(schema, registry=self._registry)
            self._validators[schema_name] = validator
        return validator

    def validate(self, payload: dict[str, Any], *, schema_name: str, payload_name: str) -> None:
        errors = sorted(
            self._validator(schema_name).iter_errors(payload),
            key=lambda err: ([str(item) for item in err.path], err.message),
        )
        if not errors:
            return
        lines: list[str] = []
        for error in errors:
            path = ".".join(str(item) for item in error.path) or "$"
            lines.append(f"- {path}: {error.message}")
        raise ValueError(f"{payload_name} schema validation failed:\n" + "\n".join(lines))


def _record_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(
        path
        for path in directory.rglob("*")
        if path.is_file() and path.suffix.lower() in _RECORD_SUFFIXES
    )


def _load_records(
    directory: Path,
    *,
    label: str,
    validator: SchemaValidator | None,
) -> dict[str, dict[str, Any]]:
    records: dict[str, dict[str, Any]] = {}
    for path in _record_files(directory):
        payload = load_record(path, label=label)
        record_id = payload.get("id")
        if not isinstance(record_id, str) or not record_id.strip():
            raise ValueError(f'Missing or invalid "id" in: {path}')
        if record_id in records:
            raise ValueError(f'Duplicate id "{record_id}" in: {directory}')
        if validator is not None:
            validator.validate(payload, schema_name=label, payload_name=f"{label.capitalize()} {path}")
        records[record_id] = payload
    return records


def _normalize_band(band: dict[str, Any]) -> dict[str, Any]:
    lineup = band.get("defaultLineup")
    if not isinstance(lineup, dict):
        return band
    for alias in LEAD_VOCS_ALIASES:
        if lineup.get(alias) is not None:
            return dict(band, defaultLineup=dict(lineup, vocs=lineup[alias]))
    return band


class DataRepository:
    """In-memory view over band, musician, preset and project records."""

    def __init__(
        self,
        *,
        bands: dict[str, dict[str, Any]],
        musicians: dict[str, dict[str, Any]],
        presets: dict[str, dict[str, Any]],
        projects: dict[str, dict[str, Any]],
        root: Path | None = None,
    ) -> None:
        self.root = root
        self._bands = {band_id: _normalize_band(band) for band_id, band in bands.items()}
        self._band_refs: dict[str, dict[str, Any]] = {}
        for band_id, band in self._bands.items():
            self._band_refs[band_id] = band
            code = band.get("code")
            if isinstance(code, str) and code.strip():
                self._band_refs[code.strip().lower()] = band
        self._musicians = dict(musicians)
        self._presets = dict(presets)
        self._preset_lookup = make_preset_lookup(self._presets)
        self._projects = dict(projects)

    def get_band(self, band_ref: str) -> dict[str, Any]:
        band = self._band_refs.get(band_ref) or self._band_refs.get(band_ref.strip().lower())
        if band is None:
            raise ConfigurationError(f"Band not found: {band_ref}")
        return band

    def get_musician(self, musician_id: str) -> dict[str, Any]:
        musician = self._musicians.get(musician_id)
        if musician is None:
            raise ConfigurationError(f"Musician not found: {musician_id}")
        return musician

    def get_preset(self, ref: str) -> dict[str, Any] | None:
        return self._preset_lookup(ref)

    def get_project(self, project_id: str) -> dict[str, Any]:
        project = self._projects.get(project_id)
        if project is None:
            raise ConfigurationError(f"Project not found: {project_id}")
        return normalize_project(project)

    def list_projects(self) -> list[dict[str, Any]]:
        return [normalize_project(self._projects[key]) for key in sorted(self._projects)]

    def list_bands(self) -> list[dict[str, Any]]:
        return [self._bands[key] for key in sorted(self._bands)]


def load_repository(root: Path | str, *, validate: bool = True) -> DataRepository:
    """Load every record under ``root`` into a :class:`DataRepository`."""
    root_path = Path(root)
    if not root_path.is_dir():
        raise ValueError(f"Data root does not exist or is not a directory: {root_path}")

    validator = SchemaValidator() if validate else None
    loaded = {
        directory: _load_records(root_path / directory, label=label, validator=validator)
        for directory, label in RECORD_KINDS
    }
    return DataRepository(
        bands=loaded["bands"],
        musicians=loaded["musicians"],
        presets=loaded["presets"],
        projects=loaded["projects"],
        root=root_path,
    )

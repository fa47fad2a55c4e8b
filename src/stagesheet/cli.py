from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from stagesheet.core.band_leader import validate_band_leader
from stagesheet.core.document import build_document, generate_document
from stagesheet.core.formatters import meta_line_text
from stagesheet.core.project_naming import format_project_display_name, format_project_slug
from stagesheet.core.repository import DataRepository, SchemaValidator, load_repository
from stagesheet.core.validators import validate_document
from stagesheet.resources import library_root


def _write_json_file(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )


def _load_repo(args: argparse.Namespace) -> DataRepository:
    return load_repository(library_root(args.data_root), validate=not args.skip_schema)


def _build_validated_document(repo: DataRepository, project_id: str, *, check_schema: bool) -> dict[str, Any]:
    document = generate_document(project_id, repo)
    if check_schema:
        SchemaValidator().validate(document, schema_name="document", payload_name="Document")
    return document


def _render_document_text(document: dict[str, Any]) -> str:
    meta = document.get("meta", {})
    lines = [str(meta.get("band_name") or "")]
    meta_line = meta.get("meta_line")
    if isinstance(meta_line, dict):
        lines.append(meta_line_text(meta_line))
    lines.append("")
    lines.append("Inputs:")
    for row in document.get("input_rows", []):
        note = row.get("note")
        suffix = f"  [{note}]" if note else ""
        lines.append(f"  {row['no']:>5}  {row['label']}{suffix}")
    lines.append("")
    lines.append("Monitors:")
    for row in document.get("monitor_rows", []):
        lines.append(f"  {row['no']:>5}  {row['output']}  [{row['note']}]")
    for box in document.get("stageplan", {}).get("boxes", []):
        lines.append("")
        lines.append(box["header"])
        for bullet in box["input_bullets"] + box["monitor_bullets"] + box["extra_bullets"]:
            lines.append(f"  - {bullet}")
        if box.get("has_power_badge"):
            lines.append(f"  [{box['power_badge_text']}]")
    for warning in document.get("warnings", []):
        lines.append(f"warning: {warning}")
    return "\n".join(lines)


def _project_summaries(repo: DataRepository) -> list[dict[str, Any]]:
    summaries: list[dict[str, Any]] = []
    for project in repo.list_projects():
        band = repo.get_band(project["bandRef"])
        summaries.append(
            {
                "id": project["id"],
                "band_id": band["id"],
                "purpose": project.get("purpose"),
                "display_name": project.get("displayName") or format_project_display_name(project, band),
                "slug": project.get("slug") or format_project_slug(project, band),
            }
        )
    return summaries


def _run_check(repo: DataRepository) -> dict[str, Any]:
    results: list[dict[str, Any]] = []
    for band in repo.list_bands():
        try:
            validate_band_leader(band, repo.get_musician)
        except ValueError as exc:
            results.append({"kind": "band", "id": band["id"], "ok": False, "error": str(exc)})
            continue
        results.append({"kind": "band", "id": band["id"], "ok": True})

    for project in repo.list_projects():
        try:
            document = build_document(project, repo)
            validate_document(document)
        except ValueError as exc:
            results.append({"kind": "project", "id": project["id"], "ok": False, "error": str(exc)})
            continue
        result: dict[str, Any] = {"kind": "project", "id": project["id"], "ok": True}
        if document["warnings"]:
            result["warnings"] = list(document["warnings"])
        results.append(result)

    return {"ok": all(item["ok"] for item in results), "results": results}


def _add_data_root_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--data-root",
        default=None,
        help="Record library with bands/, musicians/, presets/, projects/ "
        "(default: $STAGESHEET_LIBRARY or the user data directory).",
    )
    parser.add_argument(
        "--skip-schema",
        action="store_true",
        help="Load records without JSON schema validation.",
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Input list and stage plan tools.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build", help="Build the document view model for a project."
    )
    build_parser.add_argument("project_id", help="Project id.")
    build_parser.add_argument("--out", default=None, help="Write the document JSON here.")
    build_parser.add_argument(
        "--format",
        choices=["json", "text"],
        default="json",
        help="Output format when --out is not given.",
    )
    _add_data_root_arguments(build_parser)

    export_parser = subparsers.add_parser("export", help="Export a project document to PDF.")
    export_parser.add_argument("project_id", help="Project id.")
    export_parser.add_argument(
        "--out-dir",
        default=".",
        help="Directory for the PDF; the file is named after the project slug.",
    )
    export_parser.add_argument("--out", default=None, help="Explicit PDF path (overrides --out-dir).")
    _add_data_root_arguments(export_parser)

    projects_parser = subparsers.add_parser("projects", help="List projects in the library.")
    projects_parser.add_argument(
        "--format",
        choices=["json", "text"],
        default="text",
        help="Output format.",
    )
    _add_data_root_arguments(projects_parser)

    check_parser = subparsers.add_parser(
        "check", help="Validate band leaders and build every project."
    )
    check_parser.add_argument(
        "--format",
        choices=["json", "text"],
        default="text",
        help="Output format.",
    )
    _add_data_root_arguments(check_parser)

    args = parser.parse_args(argv)

    if args.command == "build":
        try:
            repo = _load_repo(args)
            document = _build_validated_document(
                repo, args.project_id, check_schema=not args.skip_schema
            )
        except (RuntimeError, ValueError) as exc:
            print(str(exc), file=sys.stderr)
            return 1
        if args.out:
            _write_json_file(Path(args.out), document)
        elif args.format == "json":
            print(json.dumps(document, indent=2, sort_keys=True, ensure_ascii=False))
        else:
            print(_render_document_text(document))
        return 0

    if args.command == "export":
        from stagesheet.exporters.pdf_document import export_document_pdf  # noqa: WPS433

        try:
            repo = _load_repo(args)
            document = _build_validated_document(
                repo, args.project_id, check_schema=not args.skip_schema
            )
            if args.out:
                out_path = Path(args.out)
            else:
                project = repo.get_project(args.project_id)
                band = repo.get_band(project["bandRef"])
                slug = project.get("slug") or format_project_slug(project, band)
                out_path = Path(args.out_dir) / f"{slug}.pdf"
            export_document_pdf(document, out_path)
        except (RuntimeError, ValueError) as exc:
            print(str(exc), file=sys.stderr)
            return 1
        print(str(out_path))
        return 0

    if args.command == "projects":
        try:
            summaries = _project_summaries(_load_repo(args))
        except (RuntimeError, ValueError) as exc:
            print(str(exc), file=sys.stderr)
            return 1
        if args.format == "json":
            print(json.dumps(summaries, indent=2, sort_keys=True, ensure_ascii=False))
        else:
            for item in summaries:
                print(f"{item['id']}  {item['display_name']}  ({item['slug']})")
        return 0

    if args.command == "check":
        try:
            payload = _run_check(_load_repo(args))
        except (RuntimeError, ValueError) as exc:
            print(str(exc), file=sys.stderr)
            return 1
        if args.format == "json":
            print(json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False))
        else:
            for item in payload["results"]:
                status = "ok" if item["ok"] else "error"
                detail = f": {item['error']}" if not item["ok"] else ""
                print(f"{status}  {item['kind']} {item['id']}{detail}")
                for warning in item.get("warnings", []):
                    print(f"warning  {item['kind']} {item['id']}: {warning}")
        return 0 if payload["ok"] else 1

    return 0

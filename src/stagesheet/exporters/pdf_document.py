from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List
from xml.sax.saxutils import escape

from stagesheet.core.formatters import meta_line_text

try:
    from reportlab.lib import colors
    from reportlab.lib.pagesizes import A4
    from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
    from reportlab.lib.units import mm
    from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
except ImportError:  # pragma: no cover - optional dependency
    colors = None
    A4 = None
    ParagraphStyle = None
    getSampleStyleSheet = None
    mm = None
    Paragraph = None
    SimpleDocTemplate = None
    Spacer = None
    Table = None
    TableStyle = None

POWER_BADGE_COLOR = "#F7E65A"
# A4 width minus the 15 mm side margins.
_STAGE_AREA_WIDTH_MM = 180


def _text(value: Any) -> str:
    if value is None:
        return ""
    return escape(str(value))


def _grid_style() -> TableStyle:
    return TableStyle(
        [
            ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ]
    )


def _input_table(rows: List[Dict[str, Any]], styles: Any) -> Table:
    data: List[List[Any]] = [["No.", "Input", "Note"]]
    for row in rows:
        data.append(
            [
                _text(row.get("no")),
                Paragraph(_text(row.get("label")), styles["BodyText"]),
                Paragraph(_text(row.get("note")), styles["BodyText"]),
            ]
        )
    table = Table(data, colWidths=[20 * mm, 80 * mm, 80 * mm], repeatRows=1)
    table.setStyle(_grid_style())
    return table


def _monitor_table(rows: List[Dict[str, Any]], styles: Any) -> Table:
    data: List[List[Any]] = [["No.", "Output", "Note"]]
    for row in rows:
        data.append(
            [
                _text(row.get("no")),
                Paragraph(_text(row.get("output")), styles["BodyText"]),
                Paragraph(_text(row.get("note")), styles["BodyText"]),
            ]
        )
    table = Table(data, colWidths=[20 * mm, 60 * mm, 100 * mm], repeatRows=1)
    table.setStyle(_grid_style())
    return table


def _box_flowables(box: Dict[str, Any], styles: Any, width: float) -> List[Any]:
    header_style = ParagraphStyle("StageplanBoxHeader", parent=styles["BodyText"], fontName="Helvetica-Bold")
    flowables: List[Any] = [Paragraph(_text(box.get("header")), header_style), Spacer(1, 4)]
    sections = [
        box.get("input_bullets") or [],
        box.get("monitor_bullets") or [],
        box.get("extra_bullets") or [],
    ]
    first = True
    for bullets in sections:
        if not bullets:
            continue
        if not first:
            flowables.append(Spacer(1, 4))
        first = False
        for bullet in bullets:
            flowables.append(Paragraph(_text(bullet), styles["BodyText"], bulletText="•"))
    if box.get("has_power_badge"):
        badge = Table([[_text(box.get("power_badge_text"))]], colWidths=[width - 8])
        badge.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor(POWER_BADGE_COLOR)),
                    ("FONTNAME", (0, 0), (-1, -1), "Helvetica-Bold"),
                    ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                ]
            )
        )
        flowables.extend([Spacer(1, 6), badge])
    return flowables


def _stageplan_row(boxes: List[Dict[str, Any]], columns: int, styles: Any, *, leading_blank: bool) -> Table:
    width = _STAGE_AREA_WIDTH_MM * mm / columns
    cells: List[Any] = [""] if leading_blank else []
    cells.extend(_box_flowables(box, styles, width) for box in boxes)
    table = Table([cells], colWidths=[width] * len(cells))
    commands = [("VALIGN", (0, 0), (-1, -1), "TOP")]
    start = 1 if leading_blank else 0
    for column in range(start, len(cells)):
        commands.append(("BOX", (column, 0), (column, 0), 0.75, colors.black))
    table.setStyle(TableStyle(commands))
    return table


def export_document_pdf(document: Dict[str, Any], out_path: Path) -> None:
    """Render a validated document view model to ``out_path``."""
    if SimpleDocTemplate is None:
        raise RuntimeError("reportlab is required for PDF export")
    out_path.parent.mkdir(parents=True, exist_ok=True)

    meta = document.get("meta", {})
    doc = SimpleDocTemplate(
        str(out_path),
        pagesize=A4,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        title=f"{meta.get('band_name') or ''} Inputlist / Stageplan".strip(),
    )
    styles = getSampleStyleSheet()
    story: List[Any] = []

    story.append(Paragraph(_text(meta.get("band_name")), styles["Title"]))
    meta_line = meta.get("meta_line")
    if isinstance(meta_line, dict):
        story.append(Paragraph(_text(meta_line_text(meta_line)), styles["Normal"]))
    story.append(Spacer(1, 12))

    story.append(Paragraph("Input list", styles["Heading2"]))
    story.append(Spacer(1, 6))
    story.append(_input_table(document.get("input_rows", []), styles))
    story.append(Spacer(1, 12))

    monitor_rows = document.get("monitor_rows", [])
    if monitor_rows:
        story.append(Paragraph("Monitors", styles["Heading2"]))
        story.append(Spacer(1, 6))
        story.append(_monitor_table(monitor_rows, styles))
        story.append(Spacer(1, 12))

    stageplan = document.get("stageplan", {})
    boxes = stageplan.get("boxes", [])
    if boxes:
        story.append(Paragraph("Stage plan", styles["Heading2"]))
        story.append(Spacer(1, 6))
        top = [box for box in boxes if box.get("row") == "top"]
        bottom = [box for box in boxes if box.get("row") == "bottom"]
        if top:
            story.append(_stageplan_row(top, 3, styles, leading_blank=True))
            story.append(Spacer(1, 8 * mm))
        if bottom:
            story.append(_stageplan_row(bottom, len(bottom), styles, leading_blank=False))

    warnings = document.get("warnings", [])
    if warnings:
        story.append(Spacer(1, 12))
        story.append(Paragraph("Warnings", styles["Heading2"]))
        for warning in warnings:
            story.append(Paragraph(_text(warning), styles["Normal"], bulletText="•"))

    doc.build(story)

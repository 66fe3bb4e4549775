"""
ScriptSentries Redaction Exporter
=================================
Renders a clearance report spreadsheet for one script.

Rows with is_redacted=True have the entity name, snippet, comments and
restrictions replaced with the redaction marker. Reason, suggestion,
severity, category, sub-category and status are always shown.
"""

import io
import logging
import re
from datetime import datetime

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from core.config import REDACTED_MARKER, SEVERITY_COLORS
from core.models import Document, RiskFinding

logger = logging.getLogger(__name__)

COLUMNS = [
    ("Page", 8),
    ("Severity", 12),
    ("Category", 22),
    ("Sub-Category", 28),
    ("Entity Name", 25),
    ("Snippet", 40),
    ("Reason", 45),
    ("Suggestion", 45),
    ("Status", 25),
    ("Comments", 35),
    ("Restrictions", 35),
    ("Redacted", 12),
]

_HEADER_FILL = PatternFill("solid", fgColor="0F172A")
_TITLE_FILL = PatternFill("solid", fgColor="065F46")
_REDACTED_FILL = PatternFill("solid", fgColor="1E1E1E")
_WHITE_BOLD = Font(bold=True, color="FFFFFF")
_REDACTED_FONT = Font(bold=True, color="FF5050")
_HAIR = Side(style="hair")


def clean_text(value: str | None) -> str:
    """Drop control characters a worksheet cannot hold."""
    return ILLEGAL_CHARACTERS_RE.sub("", value or "")


def report_rows(findings: list[RiskFinding]) -> list[list[str]]:
    """Cell values for each finding, with the redaction rule applied."""
    rows = []
    for risk in findings:
        redacted = risk.is_redacted
        rows.append([
            str(risk.page_number),
            risk.severity.value,
            risk.category.value,
            risk.sub_category.value,
            REDACTED_MARKER if redacted else clean_text(risk.entity_name),
            REDACTED_MARKER if redacted else clean_text(risk.snippet),
            clean_text(risk.reason),
            clean_text(risk.suggestion),
            risk.status.value,
            REDACTED_MARKER if redacted else clean_text(risk.comments),
            REDACTED_MARKER if redacted else clean_text(risk.restrictions),
            "YES" if redacted else "NO",
        ])
    return rows


def generate_report(document: Document, findings: list[RiskFinding]) -> bytes:
    """Render findings into an .xlsx workbook and return its bytes."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Clearance Report"

    ws.append(["SCRIPTSENTRIES - LEGAL CLEARANCE REPORT"])
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(COLUMNS))
    title = ws.cell(row=1, column=1)
    title.font = Font(bold=True, color="FFFFFF", size=14)
    title.fill = _TITLE_FILL
    title.alignment = Alignment(horizontal="center")

    generated = document.uploaded_at.strftime("%Y-%m-%d %H:%M") if document.uploaded_at else "N/A"
    meta = [""] * len(COLUMNS)
    meta[0] = f"Script: {clean_text(document.filename)}"
    meta[4] = f"Pages: {document.total_pages}"
    meta[6] = f"Risks: {len(findings)}"
    meta[8] = f"Generated: {generated}"
    ws.append(meta)
    ws.append([])

    ws.append([name for name, _ in COLUMNS])
    header_row = ws.max_row
    for cell in ws[header_row]:
        cell.font = _WHITE_BOLD
        cell.fill = _HEADER_FILL
        cell.alignment = Alignment(horizontal="center")

    data_border = Border(bottom=_HAIR, right=_HAIR)
    redacted_columns = {5, 6, 10, 11, 12}
    for risk, values in zip(findings, report_rows(findings)):
        ws.append(values)
        row = ws.max_row
        for col_idx, cell in enumerate(ws[row], start=1):
            cell.alignment = Alignment(wrap_text=True, vertical="top")
            cell.border = data_border
            if isinstance(cell.value, str) and cell.value.startswith("="):
                # Script text, never a formula
                cell.data_type = "s"
            if col_idx == 2:
                cell.fill = PatternFill("solid", fgColor=SEVERITY_COLORS[risk.severity.value])
                cell.font = _WHITE_BOLD
                cell.alignment = Alignment(horizontal="center")
            elif risk.is_redacted and col_idx in redacted_columns:
                cell.fill = _REDACTED_FILL
                cell.font = _REDACTED_FONT
                cell.alignment = Alignment(horizontal="center")

    for col_idx, (_, width) in enumerate(COLUMNS, start=1):
        ws.column_dimensions[ws.cell(row=header_row, column=col_idx).column_letter].width = width

    buffer = io.BytesIO()
    wb.save(buffer)
    redacted_count = sum(1 for f in findings if f.is_redacted)
    logger.info(
        f"Excel report generated: {len(findings)} rows, {redacted_count} redacted "
        f"for script '{document.filename}'"
    )
    return buffer.getvalue()


def export_filename(document: Document, now: datetime | None = None) -> str:
    """Download filename: ScriptSentries_<name>_<YYYYmmdd_HHMM>.xlsx"""
    timestamp = (now or datetime.utcnow()).strftime("%Y%m%d_%H%M")
    safe = re.sub(r"[^a-zA-Z0-9._-]", "_", document.filename).replace(".pdf", "")
    return f"ScriptSentries_{safe}_{timestamp}.xlsx"

"""
Presentation adapter: write a cleaning run to disk.

xlsx output has three sheets (Clean Data, Issues, Change Log) with a coloured
bold header, frozen first row and sampled column widths. Cells the cleaner
touched are shaded on the Clean Data sheet and issue rows are shaded by
severity.

csv output writes the cleaned table plus sibling -issues.csv and
-changelog.csv files.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Sequence

import openpyxl
import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from sheet_rapi.constants import AUTO_FIX, CRITICAL, NEEDS_REVIEW
from sheet_rapi.heal_modules.changelog import ChangeRecord
from sheet_rapi.issue_taxonomy import Issue
from sheet_rapi.table import Table


OUTPUT_FORMATS = ("xlsx", "csv")

ISSUE_HEADERS = ["id", "severity", "type", "row", "column", "value", "message", "suggestion"]
CHANGE_HEADERS = ["type", "operation", "row", "column", "old_value", "new_value", "message"]

# Accent fills
FILL_MODIFIED = PatternFill("solid", fgColor="FFF2CC")   # soft yellow
SEVERITY_FILLS = {
    CRITICAL:     PatternFill("solid", fgColor="F8D7DA"),
    NEEDS_REVIEW: PatternFill("solid", fgColor="FCE4D6"),
    AUTO_FIX:     PatternFill("solid", fgColor="E2EFDA"),
}


def _header_font() -> Font:
    return Font(bold=True, color="FFFFFF")


def _header_fill(hex_color: str) -> PatternFill:
    return PatternFill("solid", fgColor=hex_color)


def _style_sheet(ws, col_widths: list[int], header_color: str):
    """Apply bold header, color, frozen row, and column widths."""
    fill = _header_fill(header_color)
    font = _header_font()
    for cell in ws[1]:
        cell.font  = font
        cell.fill  = fill
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=False)
    ws.freeze_panes = "A2"
    for i, width in enumerate(col_widths, start=1):
        ws.column_dimensions[get_column_letter(i)].width = width


def _infer_col_widths(rows: list[list], min_width: int = 10, max_width: int = 60, sample: int = 300) -> list[int]:
    if not rows:
        return []
    widths = [max(min_width, min(max_width, len(str(v)) + 2)) for v in rows[0]]
    for row in rows[1 : sample + 1]:
        for i, val in enumerate(row):
            widths[i] = max(widths[i], min(max_width, len(str(val)) + 2))
    return [max(min_width, min(max_width, w)) for w in widths]


def _cell_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def issue_rows(issues: Iterable[Issue]) -> list[list[Any]]:
    return [
        [issue.id, issue.severity, issue.type, issue.row, issue.column,
         _cell_value(issue.value), issue.message, issue.suggestion]
        for issue in issues
    ]


def change_rows(changes: Iterable[ChangeRecord]) -> list[list[Any]]:
    return [
        [change.type, change.operation, change.row, change.column,
         _cell_value(change.old_value), _cell_value(change.new_value), change.message]
        for change in changes
    ]


def write_workbook(
    table: Table,
    issues: Sequence[Issue],
    changes: Sequence[ChangeRecord],
    output_path: Path,
) -> Path:
    output_path = Path(output_path)
    headers = list(table.headers)
    modified = {(change.row, change.column) for change in changes if change.row is not None and change.column}
    wb = openpyxl.Workbook()

    # ── Sheet 1: Clean Data ─────────────────────────────────────────────
    ws1 = wb.active
    ws1.title = "Clean Data"
    clean_rows_for_width = [headers]
    ws1.append(headers)
    for row in table.rows:
        row_out = [_cell_value(row.get(header)) for header in headers]
        ws1.append(row_out)
        clean_rows_for_width.append(row_out)
        last = ws1.max_row
        for col_idx, header in enumerate(headers, start=1):
            if (row.source_line, header) in modified:
                ws1.cell(last, col_idx).fill = FILL_MODIFIED
    _style_sheet(ws1, _infer_col_widths(clean_rows_for_width), "4CAF50")   # green

    # ── Sheet 2: Issues ─────────────────────────────────────────────────
    ws2 = wb.create_sheet("Issues")
    issue_rows_for_width = [ISSUE_HEADERS]
    ws2.append(ISSUE_HEADERS)
    for issue, row_out in zip(issues, issue_rows(issues)):
        ws2.append(row_out)
        issue_rows_for_width.append(row_out)
        ws2.cell(ws2.max_row, 2).fill = SEVERITY_FILLS[issue.severity]
    _style_sheet(ws2, _infer_col_widths(issue_rows_for_width), "E53935")   # red

    # ── Sheet 3: Change Log ─────────────────────────────────────────────
    ws3 = wb.create_sheet("Change Log")
    log_rows_for_width = [CHANGE_HEADERS]
    ws3.append(CHANGE_HEADERS)
    for row_out in change_rows(changes):
        ws3.append(row_out)
        log_rows_for_width.append(row_out)
    _style_sheet(ws3, _infer_col_widths(log_rows_for_width), "1565C0")   # blue

    # Message column text-wrap in Sheet 3
    for cell in ws3["G"][1:]:
        cell.alignment = Alignment(wrap_text=True, vertical="top")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(output_path)
    return output_path


def write_csv_outputs(
    table: Table,
    issues: Sequence[Issue],
    changes: Sequence[ChangeRecord],
    output_path: Path,
) -> dict[str, str]:
    output_path = Path(output_path)
    stem = output_path.stem
    issues_path = output_path.with_name(f"{stem}-issues{output_path.suffix}")
    changelog_path = output_path.with_name(f"{stem}-changelog{output_path.suffix}")
    output_path.parent.mkdir(parents=True, exist_ok=True)

    pd.DataFrame(table.to_matrix(), columns=list(table.headers)).to_csv(output_path, index=False)
    pd.DataFrame(issue_rows(issues), columns=ISSUE_HEADERS).to_csv(issues_path, index=False)
    pd.DataFrame(change_rows(changes), columns=CHANGE_HEADERS).to_csv(changelog_path, index=False)
    return {
        "clean": str(output_path),
        "issues": str(issues_path),
        "changelog": str(changelog_path),
    }


def write_outputs(
    table: Table,
    issues: Sequence[Issue],
    changes: Sequence[ChangeRecord],
    output_path: Path,
    output_format: str = "xlsx",
) -> dict[str, str]:
    if output_format not in OUTPUT_FORMATS:
        raise ValueError(f"Unknown output format '{output_format}'. Supported: {', '.join(OUTPUT_FORMATS)}")
    if output_format == "xlsx":
        return {"workbook": str(write_workbook(table, issues, changes, output_path))}
    return write_csv_outputs(table, issues, changes, output_path)

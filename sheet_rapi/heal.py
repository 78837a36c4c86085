"""
Auto-fix engine.

`clean` consumes the AUTO_FIX issues of an analysis and applies the matching
repairs to a copy of the table, in this order:

  0. rename case-insensitive duplicate headers
  1. remove exact duplicate rows (first occurrence kept)
  2. remove empty rows
  3. trim and collapse whitespace in every text cell
  4. convert date columns to one format (DD-MMM-YYYY by default)
  5. Rupiah amounts -> "Rp 1.234.567"; numeric text -> numbers
  6. phones -> "+62 812-3456-7890"
  7. emails -> trimmed, lowercased, stray characters removed
  8. total = qty x price
  9. ppn = round(dpp x rate)
 10. NPWP -> XX.XXX.XXX.X-XXX.XXX
 11. optional text case for text columns

Rows that only become identical through steps 3-10 are removed at the end,
so cleaning its own output a second time changes nothing.

`basic_clean` runs steps 1-3 and the text-case pass without any analysis.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from sheet_rapi.column_detector import ColumnTypeInfo
from sheet_rapi.constants import (
    CALCULATION_ERROR,
    CURRENCY,
    CURRENCY_FORMAT,
    DATE,
    DATE_INCONSISTENT,
    DUPLICATE_HEADER,
    DUPLICATE_ROW,
    EMAIL,
    EMAIL_FORMAT,
    EMPTY_ROW,
    NPWP_FORMAT,
    NUMBER,
    NUMBER_FORMAT,
    PHONE,
    PHONE_FORMAT,
    STRING,
    TAX_CALCULATION,
    WHITESPACE,
)
from sheet_rapi.diagnose import AnalysisResult
from sheet_rapi.errors import FixConflict
from sheet_rapi.heal_modules.calculations import repair_calculations, repair_tax
from sheet_rapi.heal_modules.changelog import ChangeLog, ChangeRecord
from sheet_rapi.heal_modules.normalization import (
    apply_case,
    canonicalize_currency,
    canonicalize_dates,
    canonicalize_emails,
    canonicalize_phones,
    coerce_numbers,
    normalize_whitespace_cells,
    reformat_npwp,
)
from sheet_rapi.heal_modules.rows import remove_duplicate_rows, remove_empty_rows, rename_duplicate_headers
from sheet_rapi.issue_taxonomy import auto_fix_types
from sheet_rapi.settings import TEXT_CASES, CleaningOptions
from sheet_rapi.table import Row, Table


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CleanResult:
    table: Table
    changes: tuple[ChangeRecord, ...]
    stats: Mapping[str, int]
    changes_by_type: Mapping[str, int]
    skipped_fixes: tuple[dict[str, str], ...] = ()
    elapsed_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "headers": list(self.table.headers),
            "rows": self.table.to_records(),
            "source_lines": self.table.source_lines(),
            "stats": dict(self.stats),
            "changes": [change.to_dict() for change in self.changes],
            "changes_by_type": dict(self.changes_by_type),
            "skipped_fixes": [dict(item) for item in self.skipped_fixes],
            "elapsed_ms": self.elapsed_ms,
        }


def _build_result(original: Table, cleaned: Table, log: ChangeLog, skipped: list[dict[str, str]], started: float) -> CleanResult:
    stats = {
        "total_changes": log.mutation_count,
        "rows_affected": len(log.rows_affected),
        "cells_modified": log.cells_modified,
        "original_row_count": len(original),
        "cleaned_row_count": len(cleaned),
        "rows_removed": len(original) - len(cleaned),
    }
    return CleanResult(
        table=cleaned,
        changes=log.records,
        stats=stats,
        changes_by_type=log.counts_by_type(),
        skipped_fixes=tuple(skipped),
        elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
    )


def _columns_of_type(column_types: Mapping[str, ColumnTypeInfo], headers: Iterable[str], *wanted: str) -> list[str]:
    return [header for header in headers if header in column_types and column_types[header].type in wanted]


def clean(table: Table, analysis: AnalysisResult, options: CleaningOptions | None = None) -> CleanResult:
    started = time.perf_counter()
    options = options or CleaningOptions()
    fixes = auto_fix_types(analysis.issues)
    column_types = dict(analysis.column_types)
    log = ChangeLog()
    skipped: list[dict[str, str]] = []
    working = table

    def attempt(name: str, repair: Callable[[Table], Table]) -> None:
        nonlocal working
        try:
            working = repair(working)
        except FixConflict as exc:
            logger.warning("Skipping %s: %s", name, exc)
            skipped.append({"fix": name, "reason": str(exc)})

    if DUPLICATE_HEADER in fixes:
        working, column_types = rename_duplicate_headers(working, column_types, log)
    if DUPLICATE_ROW in fixes:
        working = remove_duplicate_rows(working, log)
    if EMPTY_ROW in fixes:
        working = remove_empty_rows(working, log)
    if WHITESPACE in fixes:
        working = normalize_whitespace_cells(working, log)
    if DATE_INCONSISTENT in fixes:
        working = canonicalize_dates(working, _columns_of_type(column_types, working.headers, DATE), options.date_format, log)
    if CURRENCY_FORMAT in fixes:
        working = canonicalize_currency(working, _columns_of_type(column_types, working.headers, CURRENCY), log)
    if NUMBER_FORMAT in fixes:
        working = coerce_numbers(working, _columns_of_type(column_types, working.headers, NUMBER), log)
    if PHONE_FORMAT in fixes:
        working = canonicalize_phones(working, _columns_of_type(column_types, working.headers, PHONE), log)
    if EMAIL_FORMAT in fixes:
        working = canonicalize_emails(working, _columns_of_type(column_types, working.headers, EMAIL), log)

    for issue in analysis.issues_of(CALCULATION_ERROR):
        attempt(
            "fix_calculations",
            lambda current, info=issue.fix_info: repair_calculations(current, info, column_types, log),
        )
    for issue in analysis.issues_of(TAX_CALCULATION):
        attempt(
            "fix_tax",
            lambda current, info=issue.fix_info: repair_tax(
                current, info, column_types, log, tolerance=analysis.settings.tax_tolerance
            ),
        )

    if NPWP_FORMAT in fixes:
        npwp_columns = {issue.column for issue in analysis.issues_of(NPWP_FORMAT) if issue.column}
        working = reformat_npwp(working, [h for h in working.headers if h in npwp_columns], log)

    if options.text_case:
        working = apply_case(working, _columns_of_type(column_types, working.headers, STRING), options.text_case, log)

    if log.cells_modified:
        working = remove_duplicate_rows(working, log, operation="remove_duplicate_after_normalization")

    result = _build_result(table, working, log, skipped, started)
    logger.debug("Cleaned %d -> %d rows with %d changes", len(table), len(working), result.stats["total_changes"])
    return result


def basic_clean(
    headers: Iterable[str],
    rows: Iterable[Mapping[str, Any] | Row],
    remove_duplicates: bool = True,
    remove_empty: bool = True,
    trim_whitespace: bool = True,
    text_case: str | None = None,
) -> CleanResult:
    """Quick cleanup without analysis; `text_case` applies to every column."""
    started = time.perf_counter()
    if text_case is not None and text_case not in TEXT_CASES:
        raise ValueError(f"Unknown text case '{text_case}'. Supported: {', '.join(TEXT_CASES)}")
    records = [dict(row.values, source_line=row.source_line) if isinstance(row, Row) else row for row in rows]
    table = Table.from_records(headers, records)

    log = ChangeLog()
    working = table
    if remove_duplicates:
        working = remove_duplicate_rows(working, log)
    if remove_empty:
        working = remove_empty_rows(working, log)
    if trim_whitespace:
        working = normalize_whitespace_cells(working, log)
    if text_case:
        working = apply_case(working, working.headers, text_case, log)
    return _build_result(table, working, log, [], started)

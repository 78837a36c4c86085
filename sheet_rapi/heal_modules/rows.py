"""Row- and header-level repairs: duplicate headers, duplicate rows, empty rows."""

from __future__ import annotations

from typing import Mapping

from sheet_rapi.column_detector import ColumnTypeInfo
from sheet_rapi.constants import DUPLICATE_HEADER, DUPLICATE_ROW, EMPTY_ROW
from sheet_rapi.diagnose_modules.duplicates import duplicate_key
from sheet_rapi.heal_modules.changelog import ChangeLog
from sheet_rapi.table import Table


def rename_duplicate_headers(
    table: Table,
    column_types: Mapping[str, ColumnTypeInfo],
    log: ChangeLog,
) -> tuple[Table, dict[str, ColumnTypeInfo]]:
    """Give the second and later case-insensitive repeats a `_2`, `_3` ... suffix."""
    taken = {header.lower() for header in table.headers}
    seen: dict[str, int] = {}
    pairs = []
    types = dict(column_types)
    renamed = 0
    for header in table.headers:
        key = header.strip().lower()
        seen[key] = seen.get(key, 0) + 1
        if not key or seen[key] == 1:
            pairs.append((header, header))
            continue

        suffix = seen[key]
        candidate = f"{header}_{suffix}"
        while candidate.lower() in taken:
            suffix += 1
            candidate = f"{header}_{suffix}"
        taken.add(candidate.lower())
        pairs.append((header, candidate))
        if header in types:
            types[candidate] = types.pop(header)
        log.header(DUPLICATE_HEADER, "rename_header", header, candidate)
        renamed += 1

    if not renamed:
        return table, types
    log.summary("rename_duplicate_headers", renamed, f"Renamed {renamed} duplicate headers")
    headers = tuple(new for _, new in pairs)
    return Table(headers, tuple(row.renamed(pairs) for row in table.rows)), types


def remove_duplicate_rows(table: Table, log: ChangeLog, operation: str = "remove_duplicate") -> Table:
    seen: dict[tuple[str, ...], int] = {}
    kept = []
    for row in table.rows:
        if row.is_blank():
            kept.append(row)
            continue
        key = duplicate_key(row, table.headers)
        if key in seen:
            log.removed_row(DUPLICATE_ROW, operation, row, f"duplicate of row {seen[key]}")
            continue
        seen[key] = row.source_line
        kept.append(row)

    removed = len(table) - len(kept)
    log.summary(operation, removed, f"Removed {removed} duplicate rows")
    return table.with_rows(kept) if removed else table


def remove_empty_rows(table: Table, log: ChangeLog) -> Table:
    kept = []
    for row in table.rows:
        if row.is_blank():
            log.removed_row(EMPTY_ROW, "remove_empty", row, "all cells empty")
        else:
            kept.append(row)
    removed = len(table) - len(kept)
    log.summary("remove_empty_rows", removed, f"Removed {removed} empty rows")
    return table.with_rows(kept) if removed else table

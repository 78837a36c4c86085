from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from sheet_rapi.table import Row, Table


SUMMARY = "SUMMARY"


@dataclass(frozen=True)
class ChangeRecord:
    type: str
    operation: str
    message: str
    row: int | None = None
    column: str | None = None
    old_value: Any = None
    new_value: Any = None
    count: int | None = None

    @property
    def is_summary(self) -> bool:
        return self.type == SUMMARY

    def to_dict(self) -> dict[str, Any]:
        if self.is_summary:
            return {"type": self.type, "operation": self.operation, "count": self.count, "message": self.message}
        return {
            "type": self.type,
            "operation": self.operation,
            "row": self.row,
            "column": self.column,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "message": self.message,
        }


class ChangeLog:
    """Append-only record of one cleaning call."""

    def __init__(self) -> None:
        self._records: list[ChangeRecord] = []
        self.cells_modified = 0
        self.rows_affected: set[int] = set()

    @property
    def records(self) -> tuple[ChangeRecord, ...]:
        return tuple(self._records)

    @property
    def mutation_count(self) -> int:
        return sum(1 for record in self._records if not record.is_summary)

    def cell(self, kind: str, operation: str, row: Row, column: str, old: Any, new: Any) -> None:
        self._records.append(ChangeRecord(
            type=kind,
            operation=operation,
            message=f"Row {row.source_line}, {column}: {old!r} -> {new!r}",
            row=row.source_line,
            column=column,
            old_value=old,
            new_value=new,
        ))
        self.cells_modified += 1
        self.rows_affected.add(row.source_line)

    def removed_row(self, kind: str, operation: str, row: Row, reason: str) -> None:
        self._records.append(ChangeRecord(
            type=kind,
            operation=operation,
            message=f"Removed row {row.source_line}: {reason}",
            row=row.source_line,
        ))
        self.rows_affected.add(row.source_line)

    def header(self, kind: str, operation: str, old: str, new: str) -> None:
        self._records.append(ChangeRecord(
            type=kind,
            operation=operation,
            message=f"Renamed header {old!r} -> {new!r}",
            column=new,
            old_value=old,
            new_value=new,
        ))

    def summary(self, operation: str, count: int, message: str) -> None:
        if count:
            self._records.append(ChangeRecord(type=SUMMARY, operation=operation, message=message, count=count))

    def counts_by_type(self) -> dict[str, int]:
        return dict(Counter(record.type for record in self._records if not record.is_summary))


CellTransform = Callable[[Any], Any]


def map_cells(
    table: Table,
    columns: Iterable[str],
    transform: CellTransform,
    log: ChangeLog,
    kind: str,
    operation: str,
) -> tuple[Table, int]:
    """
    Apply `transform` to every cell of `columns`; it returns None to leave a cell alone.

    Returns the new table and the number of cells that changed.
    """
    columns = [column for column in columns if column in table.headers]
    if not columns:
        return table, 0

    changed = 0
    rows = []
    for row in table.rows:
        for column in columns:
            old = row.get(column)
            new = transform(old)
            if new is None or (new == old and type(new) is type(old)):
                continue
            row = row.with_value(column, new)
            log.cell(kind, operation, row, column, old, new)
            changed += 1
        rows.append(row)
    return table.with_rows(rows), changed

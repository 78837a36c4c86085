"""
Immutable table records passed between the loader, the rule engine and the cleaner.

A Table never changes after construction: every edit returns a new Row or
Table, so analysis can always read the caller's data while the cleaner works
on its own copy.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Sequence

from sheet_rapi.errors import ParseFailure


FIRST_DATA_LINE = 2


def is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


@dataclass(frozen=True, eq=False)
class Row:
    source_line: int
    values: Mapping[str, Any]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def __getitem__(self, header: str) -> Any:
        return self.values[header]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Row):
            return NotImplemented
        return self.source_line == other.source_line and dict(self.values) == dict(other.values)

    def get(self, header: str, default: Any = "") -> Any:
        return self.values.get(header, default)

    def with_value(self, header: str, value: Any) -> "Row":
        updated = dict(self.values)
        updated[header] = value
        return Row(self.source_line, updated)

    def renamed(self, old_to_new: Sequence[tuple[str, str]]) -> "Row":
        """Re-key values positionally; `old_to_new` pairs follow header order."""
        return Row(self.source_line, {new: self.values.get(old, "") for old, new in old_to_new})

    def is_blank(self) -> bool:
        return all(is_blank(value) for value in self.values.values())

    def to_dict(self) -> dict[str, Any]:
        return dict(self.values)


@dataclass(frozen=True, eq=False)
class Table:
    headers: tuple[str, ...]
    rows: tuple[Row, ...]

    def __post_init__(self) -> None:
        headers = tuple(str(header) for header in self.headers)
        seen: set[str] = set()
        for header in headers:
            if header in seen:
                raise ParseFailure(f"Duplicate column header '{header}'")
            seen.add(header)

        rows = []
        for row in self.rows:
            if tuple(row.values.keys()) != headers:
                row = Row(row.source_line, {header: row.get(header, "") for header in headers})
            rows.append(row)

        object.__setattr__(self, "headers", headers)
        object.__setattr__(self, "rows", tuple(rows))

    def __len__(self) -> int:
        return len(self.rows)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table):
            return NotImplemented
        return self.headers == other.headers and self.rows == other.rows

    @classmethod
    def from_records(
        cls,
        headers: Iterable[str],
        records: Iterable[Mapping[str, Any]],
        first_line: int = FIRST_DATA_LINE,
    ) -> "Table":
        """Build a table from mappings; a record may carry its own `source_line`."""
        headers = tuple(headers)
        rows = []
        for offset, record in enumerate(records):
            line = record.get("source_line", first_line + offset)
            values = {header: _cell(record.get(header)) for header in headers}
            rows.append(Row(int(line), values))
        return cls(headers, tuple(rows))

    @classmethod
    def from_rows(
        cls,
        headers: Iterable[str],
        rows: Iterable[Sequence[Any]],
        first_line: int = FIRST_DATA_LINE,
    ) -> "Table":
        headers = tuple(headers)
        built = []
        for offset, cells in enumerate(rows):
            padded = list(cells) + [""] * max(0, len(headers) - len(cells))
            built.append(Row(first_line + offset, {h: _cell(v) for h, v in zip(headers, padded)}))
        return cls(headers, tuple(built))

    def with_rows(self, rows: Iterable[Row]) -> "Table":
        return Table(self.headers, tuple(rows))

    def column(self, header: str) -> list[Any]:
        return [row.get(header) for row in self.rows]

    def to_records(self) -> list[dict[str, Any]]:
        return [row.to_dict() for row in self.rows]

    def source_lines(self) -> list[int]:
        """Source line of each row, parallel to `to_records()`."""
        return [row.source_line for row in self.rows]

    def to_matrix(self) -> list[list[Any]]:
        return [[row.get(header) for header in self.headers] for row in self.rows]


def _cell(value: Any) -> Any:
    return "" if value is None else value

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Mapping, Sequence

from sheet_rapi.column_detector import ColumnTypeInfo
from sheet_rapi.constants import STRING
from sheet_rapi.issue_taxonomy import IssueCollector
from sheet_rapi.settings import AnalysisSettings
from sheet_rapi.table import Row, Table, is_blank


@dataclass(frozen=True)
class AnalysisContext:
    """Everything one detection pass may read, plus the call's issue collector."""

    table: Table
    column_types: Mapping[str, ColumnTypeInfo]
    settings: AnalysisSettings
    today: date
    issues: IssueCollector

    def type_of(self, header: str) -> str:
        info = self.column_types.get(header)
        return info.type if info else STRING

    def filled(self, header: str) -> list[tuple[Row, Any]]:
        return [(row, row.get(header)) for row in self.table.rows if not is_blank(row.get(header))]

    def sample(self, items: Sequence[Any]) -> list[Any]:
        return list(items[: self.settings.detail_sample_limit])


def header_matches(header: str, keywords: Iterable[str]) -> bool:
    lower = header.lower()
    return any(keyword in lower for keyword in keywords)


def find_column(headers: Sequence[str], keywords: Iterable[str], exclude: Iterable[str] = ()) -> str | None:
    keywords = tuple(keywords)
    taken = set(exclude)
    for header in headers:
        if header not in taken and header_matches(header, keywords):
            return header
    return None

"""
Column type inference and per-column profiling.

Every non-empty cell is classified by the first matching rule in
CELL_CLASSIFIERS; the column takes the type with the most votes. Ties go to
the rule listed first.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Sequence

from sheet_rapi.constants import (
    BOOLEAN,
    BOOLEAN_TOKENS,
    COLUMN_TYPE_ORDER,
    CURRENCY,
    CURRENCY_ID_RE,
    DATE,
    EMAIL,
    EMAIL_RE,
    EMPTY,
    NIK,
    NPWP,
    NUMBER,
    PERCENTAGE,
    PHONE,
    PHONE_CHARS_RE,
    PHONE_DIGITS_RE,
    PHONE_ID_RE,
    STRING,
)
from sheet_rapi.helpers import calculate_stats, digits_only, parse_date, parse_number
from sheet_rapi.table import Table, is_blank


PERCENT_FRACTION_RE = re.compile(r"^(?:0?\.\d+|1\.0+)$")
MOST_COMMON_LIMIT = 5
PROFILED_NUMERIC_TYPES = {NUMBER, CURRENCY, PERCENTAGE}


def _is_email(text: str) -> bool:
    return bool(EMAIL_RE.match(text))


def _is_nik(text: str) -> bool:
    return len(digits_only(text)) == 16


def _is_npwp(text: str) -> bool:
    return len(digits_only(text)) == 15


def _is_currency(text: str) -> bool:
    return bool(CURRENCY_ID_RE.match(text))


def _is_phone(text: str) -> bool:
    if not PHONE_CHARS_RE.match(text):
        return False
    return bool(PHONE_DIGITS_RE.match(digits_only(text))) or bool(PHONE_ID_RE.match(text))


def _is_percentage(text: str) -> bool:
    if text.endswith("%"):
        return parse_number(text[:-1]) is not None
    return bool(PERCENT_FRACTION_RE.match(text))


def _is_date(text: str) -> bool:
    return parse_date(text) is not None


def _is_number(text: str) -> bool:
    return parse_number(text) is not None


def _is_boolean(text: str) -> bool:
    return text.lower() in BOOLEAN_TOKENS


CELL_CLASSIFIERS: tuple[tuple[Callable[[str], bool], str], ...] = (
    (_is_email, EMAIL),
    (_is_nik, NIK),
    (_is_npwp, NPWP),
    (_is_currency, CURRENCY),
    (_is_phone, PHONE),
    (_is_percentage, PERCENTAGE),
    (_is_date, DATE),
    (_is_number, NUMBER),
    (_is_boolean, BOOLEAN),
)


def classify_cell(value: Any) -> str:
    text = str(value).strip()
    for predicate, column_type in CELL_CLASSIFIERS:
        if predicate(text):
            return column_type
    return STRING


@dataclass(frozen=True)
class ColumnTypeInfo:
    type: str
    confidence: float
    distribution: Mapping[str, int] = field(default_factory=dict)
    sample_size: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "confidence": round(self.confidence, 4),
            "distribution": dict(self.distribution),
            "sample_size": self.sample_size,
        }


def infer_column_type(values: Iterable[Any]) -> ColumnTypeInfo:
    votes = Counter(classify_cell(value) for value in values if not is_blank(value))
    total = sum(votes.values())
    if total == 0:
        return ColumnTypeInfo(EMPTY, 1.0, {}, 0)
    winner = min(votes, key=lambda column_type: (-votes[column_type], COLUMN_TYPE_ORDER.index(column_type)))
    return ColumnTypeInfo(winner, votes[winner] / total, dict(votes), total)


def infer_column_types(headers: Sequence[str], rows: Iterable[Any]) -> dict[str, ColumnTypeInfo]:
    """Infer one ColumnTypeInfo per header; `rows` may be Row objects or plain mappings."""
    rows = list(rows)
    return {header: infer_column_type(row.get(header) for row in rows) for header in headers}


# ══════════════════════════════════════════════════════════════════════════
# COLUMN PROFILES
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ColumnProfile:
    total_count: int
    non_empty_count: int
    empty_count: int
    empty_percentage: float
    unique_count: int
    most_common: tuple[tuple[str, int], ...]
    numeric: Mapping[str, float] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_count": self.total_count,
            "non_empty_count": self.non_empty_count,
            "empty_count": self.empty_count,
            "empty_percentage": self.empty_percentage,
            "unique_count": self.unique_count,
            "most_common": [{"value": value, "count": count} for value, count in self.most_common],
            "numeric": dict(self.numeric) if self.numeric is not None else None,
        }


def profile_column(values: Sequence[Any], column_type: str) -> ColumnProfile:
    filled = [str(value) for value in values if not is_blank(value)]
    total = len(values)
    empty = total - len(filled)
    counts = Counter(filled)
    numeric = None
    if column_type in PROFILED_NUMERIC_TYPES:
        numeric = calculate_stats(value.strip().rstrip("%") for value in filled)
    return ColumnProfile(
        total_count=total,
        non_empty_count=len(filled),
        empty_count=empty,
        empty_percentage=round(empty / total * 100, 1) if total else 0.0,
        unique_count=len(counts),
        most_common=tuple(counts.most_common(MOST_COMMON_LIMIT)),
        numeric=numeric,
    )


def profile_columns(table: Table, column_types: Mapping[str, ColumnTypeInfo]) -> dict[str, ColumnProfile]:
    profiles = {}
    for header in table.headers:
        info = column_types.get(header)
        profiles[header] = profile_column(table.column(header), info.type if info else STRING)
    return profiles

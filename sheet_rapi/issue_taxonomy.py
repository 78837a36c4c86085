"""
Shared issue taxonomy.

Keeps each issue type's default severity, category and wording in one place so
the detection passes, the scorer, the reporter and `sheet-rapi explain` do not
drift apart.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Iterable

from sheet_rapi.constants import (
    AUTO_FIX,
    CALCULATION_ERROR,
    CRITICAL,
    CURRENCY_FORMAT,
    DATE_INCONSISTENT,
    DUPLICATE_FUZZY,
    DUPLICATE_HEADER,
    DUPLICATE_ROW,
    EMAIL_FORMAT,
    EMPTY_CELL,
    EMPTY_ROW,
    FUTURE_DATE,
    MIXED_DATA_TYPE,
    NEEDS_REVIEW,
    NEGATIVE_INVALID,
    NIK_INVALID,
    NO_HEADER,
    NPWP_FORMAT,
    NPWP_INVALID,
    NUMBER_FORMAT,
    NUMERIC_OUTLIER,
    PAST_DATE_INVALID,
    PHONE_FORMAT,
    SEQUENCE_GAP,
    SEVERITIES,
    TAX_CALCULATION,
    TEXT_CASE,
    WHITESPACE,
)


ISSUE_DEFINITIONS: dict[str, dict[str, Any]] = {
    NO_HEADER: {
        "severity": NEEDS_REVIEW,
        "category": "structure",
        "description": "A column has no real header, either blank or a generated Column_N placeholder.",
    },
    DUPLICATE_HEADER: {
        "severity": AUTO_FIX,
        "category": "structure",
        "description": "Two headers differ only by letter case.",
    },
    EMPTY_ROW: {
        "severity": AUTO_FIX,
        "category": "structure",
        "description": "A row inside the data has no values at all.",
    },
    DATE_INCONSISTENT: {
        "severity": AUTO_FIX,
        "category": "format",
        "description": "A date column mixes several date spellings.",
    },
    FUTURE_DATE: {
        "severity": NEEDS_REVIEW,
        "category": "format",
        "description": "A date lies after today.",
    },
    PAST_DATE_INVALID: {
        "severity": NEEDS_REVIEW,
        "category": "format",
        "description": "A date lies before 1900 and is probably a typo.",
    },
    CURRENCY_FORMAT: {
        "severity": AUTO_FIX,
        "category": "format",
        "description": "Rupiah amounts are not written as 'Rp 1.234.567'.",
    },
    NUMBER_FORMAT: {
        "severity": AUTO_FIX,
        "category": "format",
        "description": "Numbers are stored as text.",
    },
    PHONE_FORMAT: {
        "severity": AUTO_FIX,
        "category": "format",
        "description": "Phone numbers are not written as '+62 812-3456-7890'.",
    },
    EMAIL_FORMAT: {
        "severity": AUTO_FIX,
        "category": "format",
        "description": "Emails have stray characters or mixed case; unrepairable ones are critical.",
    },
    WHITESPACE: {
        "severity": AUTO_FIX,
        "category": "format",
        "description": "Text has leading, trailing or repeated spaces.",
    },
    TEXT_CASE: {
        "severity": NEEDS_REVIEW,
        "category": "format",
        "description": "A text column has no dominant letter case.",
    },
    EMPTY_CELL: {
        "severity": NEEDS_REVIEW,
        "category": "quality",
        "description": "A column has a high share of empty cells.",
    },
    MIXED_DATA_TYPE: {
        "severity": NEEDS_REVIEW,
        "category": "quality",
        "description": "A column holds several kinds of values with no clear majority.",
    },
    DUPLICATE_ROW: {
        "severity": AUTO_FIX,
        "category": "duplicates",
        "description": "Rows repeat exactly, ignoring letter case and spacing.",
    },
    DUPLICATE_FUZZY: {
        "severity": NEEDS_REVIEW,
        "category": "duplicates",
        "description": "Rows have nearly identical names, emails, phones or ids.",
    },
    NUMERIC_OUTLIER: {
        "severity": NEEDS_REVIEW,
        "category": "outliers",
        "description": "A value falls outside 1.5 IQR of its column.",
    },
    NEGATIVE_INVALID: {
        "severity": NEEDS_REVIEW,
        "category": "outliers",
        "description": "A quantity, price or amount is negative.",
    },
    CALCULATION_ERROR: {
        "severity": AUTO_FIX,
        "category": "logic",
        "description": "Total does not equal quantity times price.",
    },
    SEQUENCE_GAP: {
        "severity": NEEDS_REVIEW,
        "category": "logic",
        "description": "A numbered id or invoice sequence skips numbers.",
    },
    NIK_INVALID: {
        "severity": CRITICAL,
        "category": "indonesia",
        "description": "A NIK fails length, province or birth-date checks.",
    },
    NPWP_INVALID: {
        "severity": CRITICAL,
        "category": "indonesia",
        "description": "An NPWP does not have 15 digits.",
    },
    NPWP_FORMAT: {
        "severity": AUTO_FIX,
        "category": "indonesia",
        "description": "A valid NPWP is not written as XX.XXX.XXX.X-XXX.XXX.",
    },
    TAX_CALCULATION: {
        "severity": AUTO_FIX,
        "category": "indonesia",
        "description": "PPN does not equal 11% of DPP.",
    },
}


@dataclass(frozen=True)
class Issue:
    id: str
    type: str
    severity: str
    message: str
    suggestion: str = ""
    auto_fix: bool = False
    row: int | None = None
    column: str | None = None
    value: Any = None
    affected_rows: int | None = None
    details: Any = None
    fix_info: dict[str, Any] | None = None

    @property
    def impact_rows(self) -> int:
        return self.affected_rows if self.affected_rows is not None else 1

    def to_dict(self) -> dict[str, Any]:
        payload = {
            "id": self.id,
            "type": self.type,
            "severity": self.severity,
            "message": self.message,
            "suggestion": self.suggestion,
            "auto_fix": self.auto_fix,
        }
        for key in ("row", "column", "value", "affected_rows", "details", "fix_info"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = copy.deepcopy(value)
        return payload


class IssueCollector:
    """Accumulates the issues of a single analysis call and numbers them in order."""

    def __init__(self) -> None:
        self._issues: list[Issue] = []

    def __len__(self) -> int:
        return len(self._issues)

    def add(
        self,
        issue_type: str,
        message: str,
        *,
        suggestion: str = "",
        severity: str | None = None,
        row: int | None = None,
        column: str | None = None,
        value: Any = None,
        affected_rows: int | None = None,
        details: Any = None,
        fix_info: dict[str, Any] | None = None,
    ) -> Issue:
        severity = severity or ISSUE_DEFINITIONS[issue_type]["severity"]
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown severity '{severity}'")
        issue = Issue(
            id=f"ISS-{len(self._issues) + 1:04d}",
            type=issue_type,
            severity=severity,
            message=message,
            suggestion=suggestion,
            auto_fix=severity == AUTO_FIX,
            row=row,
            column=column,
            value=value,
            affected_rows=affected_rows,
            details=details,
            fix_info=fix_info,
        )
        self._issues.append(issue)
        return issue

    def truncate(self, size: int) -> None:
        """Drop everything added after the collector held `size` issues."""
        del self._issues[size:]

    @property
    def issues(self) -> tuple[Issue, ...]:
        return tuple(self._issues)


def categorize_issues(issues: Iterable[Issue]) -> dict[str, list[Issue]]:
    categorized: dict[str, list[Issue]] = {severity: [] for severity in SEVERITIES}
    for issue in issues:
        categorized[issue.severity].append(issue)
    return categorized


def count_by_type(issues: Iterable[Issue]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for issue in issues:
        counts[issue.type] = counts.get(issue.type, 0) + 1
    return counts


def auto_fix_types(issues: Iterable[Issue]) -> set[str]:
    return {issue.type for issue in issues if issue.auto_fix}

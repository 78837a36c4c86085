"""Turn an issue list into a 0-100 quality score and an A-F grade."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from sheet_rapi.constants import AUTO_FIX, CRITICAL, NEEDS_REVIEW
from sheet_rapi.helpers import round_half_up
from sheet_rapi.issue_taxonomy import Issue


SCORE_GRADES = [
    (90, "A", "Excellent"),
    (80, "B", "Good"),
    (70, "C", "Fair"),
    (60, "D", "Poor"),
    (0, "F", "Critical"),
]

# severity -> (points per percent of rows affected, maximum deduction per issue)
SEVERITY_DEDUCTIONS = {
    CRITICAL: (2.0, 20.0),
    NEEDS_REVIEW: (1.0, 10.0),
    AUTO_FIX: (0.5, 5.0),
}


@dataclass(frozen=True)
class QualityScore:
    score: int
    grade: str
    label: str

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "grade": self.grade, "label": self.label}


def grade_for(score: int) -> tuple[str, str]:
    return next((grade, label) for threshold, grade, label in SCORE_GRADES if score >= threshold)


def issue_deduction(issue: Issue, row_count: int) -> float:
    impact = issue.impact_rows / row_count * 100 if row_count > 0 else 100.0
    weight, cap = SEVERITY_DEDUCTIONS[issue.severity]
    return min(cap, weight * impact)


def calculate_quality_score(issues: Iterable[Issue], row_count: int) -> QualityScore:
    score = 100.0
    for issue in issues:
        score -= issue_deduction(issue, row_count)
    score = max(0.0, min(100.0, score))
    rounded = int(round_half_up(score))
    grade, label = grade_for(rounded)
    return QualityScore(rounded, grade, label)

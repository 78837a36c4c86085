"""
Rule engine entry point.

`analyze` runs every detection pass over a read-only Table and returns the
issues, their severity buckets and the quality score. A pass that crashes is
logged and recorded in `failed_passes`; its partial issues are discarded and
the remaining passes still run.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Mapping, Sequence

from sheet_rapi.column_detector import ColumnProfile, ColumnTypeInfo, infer_column_types, profile_columns
from sheet_rapi.constants import AUTO_FIX, CRITICAL, NEEDS_REVIEW
from sheet_rapi.diagnose_modules import DETECTION_PASSES
from sheet_rapi.diagnose_modules.shared import AnalysisContext
from sheet_rapi.errors import AnalysisFailure, ParseFailure
from sheet_rapi.issue_taxonomy import Issue, IssueCollector, categorize_issues, count_by_type
from sheet_rapi.scoring import QualityScore, calculate_quality_score
from sheet_rapi.settings import AnalysisSettings, settings_for_mode
from sheet_rapi.table import Table


logger = logging.getLogger(__name__)

DetectionPass = Callable[[AnalysisContext], None]


@dataclass(frozen=True)
class AnalysisResult:
    issues: tuple[Issue, ...]
    quality_score: QualityScore
    categorized: Mapping[str, list[Issue]]
    column_types: Mapping[str, ColumnTypeInfo]
    column_profiles: Mapping[str, ColumnProfile]
    summary: Mapping[str, Any]
    mode: str
    failed_passes: tuple[dict[str, str], ...] = ()
    elapsed_ms: float = 0.0
    settings: AnalysisSettings = field(default_factory=AnalysisSettings)

    def issues_of(self, issue_type: str) -> list[Issue]:
        return [issue for issue in self.issues if issue.type == issue_type]

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "quality_score": self.quality_score.to_dict(),
            "summary": dict(self.summary),
            "issues": [issue.to_dict() for issue in self.issues],
            "categorized": {
                severity: [issue.id for issue in issues]
                for severity, issues in self.categorized.items()
            },
            "column_types": {header: info.to_dict() for header, info in self.column_types.items()},
            "column_profiles": {header: profile.to_dict() for header, profile in self.column_profiles.items()},
            "failed_passes": [dict(item) for item in self.failed_passes],
            "elapsed_ms": self.elapsed_ms,
        }


def build_summary(table: Table, issues: Sequence[Issue]) -> dict[str, Any]:
    categorized = categorize_issues(issues)
    return {
        "total_rows": len(table),
        "total_columns": len(table.headers),
        "total_issues": len(issues),
        "auto_fixable": len(categorized[AUTO_FIX]),
        "needs_review": len(categorized[NEEDS_REVIEW]),
        "critical": len(categorized[CRITICAL]),
        "issues_by_type": count_by_type(issues),
    }


def analyze(
    table: Table,
    column_types: Mapping[str, ColumnTypeInfo] | None = None,
    mode: str = "auto",
    settings: AnalysisSettings | None = None,
    today: date | None = None,
    passes: Sequence[tuple[str, DetectionPass]] | None = None,
) -> AnalysisResult:
    if not table.rows:
        raise ParseFailure("No data to analyze")

    started = time.perf_counter()
    settings = settings_for_mode(mode, settings)
    if column_types is None:
        column_types = infer_column_types(table.headers, table.rows)

    collector = IssueCollector()
    ctx = AnalysisContext(
        table=table,
        column_types=column_types,
        settings=settings,
        today=today or date.today(),
        issues=collector,
    )

    failed: list[dict[str, str]] = []
    for name, detection_pass in passes or DETECTION_PASSES:
        mark = len(collector)
        try:
            detection_pass(ctx)
        except Exception as exc:
            failure = AnalysisFailure(name, exc)
            logger.exception("Detection pass '%s' failed; continuing without it", name)
            collector.truncate(mark)
            failed.append({"pass": name, "error": str(failure)})

    issues = collector.issues
    result = AnalysisResult(
        issues=issues,
        quality_score=calculate_quality_score(issues, len(table)),
        categorized=categorize_issues(issues),
        column_types=dict(column_types),
        column_profiles=profile_columns(table, column_types),
        summary=build_summary(table, issues),
        mode=mode,
        failed_passes=tuple(failed),
        elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
        settings=settings,
    )
    logger.debug(
        "Analyzed %d rows x %d columns: %d issues, score %d",
        len(table),
        len(table.headers),
        len(issues),
        result.quality_score.score,
    )
    return result

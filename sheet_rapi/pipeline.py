"""
Pipeline orchestrator: Parse -> Analyze -> Clean -> Format -> Report.

Stages run in order and are never retried. The first stage that fails ends
the run; the result names that stage and keeps the timings of every stage
that ran. Data problems never escape as exceptions: `run_pipeline` always
returns a PipelineResult.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

from sheet_rapi import __version__ as TOOL_VERSION
from sheet_rapi.contracts import build_contract
from sheet_rapi.diagnose import AnalysisResult, analyze
from sheet_rapi.errors import ParseFailure
from sheet_rapi.heal import CleanResult, clean
from sheet_rapi.loader import load_table
from sheet_rapi.reporter import build_report
from sheet_rapi.scoring import QualityScore, calculate_quality_score
from sheet_rapi.settings import AnalysisSettings, CleaningOptions
from sheet_rapi.table import Table
from sheet_rapi.workbook import write_outputs


logger = logging.getLogger(__name__)

Source = Union[Table, str, Path]
ParseStage = Callable[[Source], Table]
FormatStage = Callable[[Table, AnalysisResult, CleanResult], Optional[Mapping[str, str]]]
ReportStage = Callable[..., Any]


@dataclass
class StageRecord:
    name: str
    success: bool = False
    elapsed_ms: float = 0.0
    metrics: dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "success": self.success,
            "elapsed_ms": self.elapsed_ms,
            "metrics": dict(self.metrics),
            "error": self.error,
        }


class _StageFailed(Exception):
    def __init__(self, stage: str, message: str) -> None:
        super().__init__(message)
        self.stage = stage


@dataclass
class PipelineResult:
    success: bool
    stages: list[StageRecord]
    failed_stage: Optional[str] = None
    error: Optional[str] = None
    original: Optional[Table] = None
    analysis: Optional[AnalysisResult] = None
    cleaning: Optional[CleanResult] = None
    quality_after: Optional[QualityScore] = None
    summary: dict[str, Any] = field(default_factory=dict)
    outputs: dict[str, str] = field(default_factory=dict)
    report: Any = None

    def to_dict(self) -> dict[str, Any]:
        contract = build_contract("sheet_rapi.pipeline")
        payload: dict[str, Any] = {
            "contract": contract,
            "schema_version": contract["version"],
            "tool_version": TOOL_VERSION,
            "success": self.success,
            "stages": [stage.to_dict() for stage in self.stages],
        }
        if not self.success:
            payload["failed_stage"] = self.failed_stage
            payload["error"] = self.error
            return payload

        payload.update({
            "issues": [issue.to_dict() for issue in self.analysis.issues],
            "quality_score": self.analysis.quality_score.to_dict(),
            "quality_after": self.quality_after.to_dict() if self.quality_after else None,
            "cleaned_table": {
                "headers": list(self.cleaning.table.headers),
                "rows": self.cleaning.table.to_records(),
                "source_lines": self.cleaning.table.source_lines(),
            },
            "changes": [change.to_dict() for change in self.cleaning.changes],
            "stats": dict(self.cleaning.stats),
            "summary": dict(self.summary),
            "outputs": dict(self.outputs),
        })
        return payload


def _default_parse(source: Source) -> Table:
    if isinstance(source, Table):
        return source
    return load_table(source)


def _no_format(table: Table, analysis: AnalysisResult, cleaning: CleanResult) -> None:
    return None


def _file_format(output_path: Path, output_format: str) -> FormatStage:
    def write(table: Table, analysis: AnalysisResult, cleaning: CleanResult) -> Mapping[str, str]:
        return write_outputs(cleaning.table, analysis.issues, cleaning.changes, output_path, output_format)
    return write


def build_pipeline_summary(analysis: AnalysisResult, cleaning: CleanResult, quality_after: QualityScore) -> dict[str, Any]:
    stats = cleaning.stats
    return {
        "original_rows": stats["original_row_count"],
        "cleaned_rows": stats["cleaned_row_count"],
        "rows_removed": stats["rows_removed"],
        "issues_fixed": analysis.summary["auto_fixable"],
        "issues_need_review": analysis.summary["needs_review"],
        "critical_issues": analysis.summary["critical"],
        "quality_before": analysis.quality_score.score,
        "quality_after": quality_after.score,
    }


def _score_cleaned(cleaned: Table, analysis: AnalysisResult, today: Optional[date]) -> QualityScore:
    if not cleaned.rows:
        return calculate_quality_score([], 0)
    rerun = analyze(cleaned, mode=analysis.mode, settings=analysis.settings, today=today)
    return rerun.quality_score


def run_pipeline(
    source: Source,
    *,
    mode: str = "auto",
    settings: Optional[AnalysisSettings] = None,
    options: Optional[CleaningOptions] = None,
    output_path: Optional[Union[str, Path]] = None,
    output_format: str = "xlsx",
    parse: Optional[ParseStage] = None,
    formatter: Optional[FormatStage] = None,
    report: Optional[ReportStage] = None,
    today: Optional[date] = None,
) -> PipelineResult:
    """Run every stage over `source` (a Table or a file path)."""
    parse = parse or _default_parse
    if formatter is None:
        formatter = _file_format(Path(output_path), output_format) if output_path else _no_format
    report = report or build_report

    stages: list[StageRecord] = []
    result = PipelineResult(success=False, stages=stages)

    def run_stage(name: str, action: Callable[[StageRecord], Any]) -> Any:
        record = StageRecord(name)
        stages.append(record)
        started = time.perf_counter()
        try:
            value = action(record)
        except (ParseFailure, FileNotFoundError) as exc:
            record.error = str(exc)
            logger.warning("Stage '%s' failed: %s", name, exc)
            raise _StageFailed(name, str(exc)) from exc
        except Exception as exc:
            record.error = f"{type(exc).__name__}: {exc}"
            logger.exception("Stage '%s' failed unexpectedly", name)
            raise _StageFailed(name, record.error) from exc
        finally:
            record.elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        record.success = True
        return value

    def do_parse(record: StageRecord) -> Table:
        table = parse(source)
        if not table.rows:
            raise ParseFailure("No data to analyze")
        record.metrics.update(rows=len(table), columns=len(table.headers))
        return table

    def do_analyze(record: StageRecord) -> AnalysisResult:
        analysis = analyze(result.original, mode=mode, settings=settings, today=today)
        record.metrics.update(
            issues=analysis.summary["total_issues"],
            quality_score=analysis.quality_score.score,
            failed_passes=len(analysis.failed_passes),
        )
        return analysis

    def do_clean(record: StageRecord) -> CleanResult:
        cleaning = clean(result.original, result.analysis, options)
        result.quality_after = _score_cleaned(cleaning.table, result.analysis, today)
        record.metrics.update(
            changes=cleaning.stats["total_changes"],
            rows_removed=cleaning.stats["rows_removed"],
            skipped_fixes=len(cleaning.skipped_fixes),
            quality_after=result.quality_after.score,
        )
        return cleaning

    def do_format(record: StageRecord) -> dict[str, str]:
        outputs = dict(formatter(result.cleaning.table, result.analysis, result.cleaning) or {})
        record.metrics.update(outputs=len(outputs))
        return outputs

    def do_report(record: StageRecord) -> Any:
        return report(
            result.analysis,
            result.cleaning,
            source=None if isinstance(source, Table) else source,
            quality_after=result.quality_after,
        )

    try:
        result.original = run_stage("parse", do_parse)
        result.analysis = run_stage("analyze", do_analyze)
        result.cleaning = run_stage("clean", do_clean)
        result.outputs = run_stage("format", do_format)
        result.report = run_stage("report", do_report)
    except _StageFailed as failure:
        result.failed_stage = failure.stage
        result.error = str(failure)
        return result

    result.summary = build_pipeline_summary(result.analysis, result.cleaning, result.quality_after)
    result.success = True
    return result

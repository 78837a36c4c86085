"""
Builds a plain-text and JSON data-quality report from an analysis and,
optionally, the cleaning run that followed it.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any

from sheet_rapi import __version__ as TOOL_VERSION
from sheet_rapi.constants import AUTO_FIX, CRITICAL, NEEDS_REVIEW
from sheet_rapi.contracts import build_contract, build_run_summary
from sheet_rapi.diagnose import AnalysisResult
from sheet_rapi.heal import CleanResult
from sheet_rapi.issue_taxonomy import ISSUE_DEFINITIONS, Issue
from sheet_rapi.scoring import QualityScore


SEVERITY_HEADINGS = {
    CRITICAL: "🚨 Critical (must be corrected by hand)",
    NEEDS_REVIEW: "⚠️  Needs review (check before using the data)",
    AUTO_FIX: "🔧 Auto-fixable (sheet-rapi heal repairs these)",
}
SEVERITY_ORDER = (CRITICAL, NEEDS_REVIEW, AUTO_FIX)


def format_issue(issue: dict[str, Any]) -> str:
    location = []
    if issue.get("row") is not None:
        location.append(f"row {issue['row']}")
    if issue.get("column"):
        location.append(f"column {issue['column']}")
    where = f" ({', '.join(location)})" if location else ""
    line = f"- [{issue['id']}] {issue['message']}{where}"
    if issue.get("suggestion"):
        line += f"\n  Suggestion: {issue['suggestion']}"
    return line


def build_column_breakdown(analysis: AnalysisResult) -> list[dict[str, Any]]:
    issue_counts = Counter(issue.column for issue in analysis.issues if issue.column)
    breakdown = []
    for header, info in analysis.column_types.items():
        profile = analysis.column_profiles.get(header)
        breakdown.append({
            "column": header,
            "detected_type": info.type,
            "confidence": info.confidence,
            "empty_percentage": profile.empty_percentage if profile else 0.0,
            "unique_count": profile.unique_count if profile else 0,
            "issue_count": issue_counts.get(header, 0),
        })
    return breakdown


def build_actions(analysis: AnalysisResult, cleaning: CleanResult | None = None) -> list[str]:
    by_type: dict[tuple[str, str], int] = Counter((issue.severity, issue.type) for issue in analysis.issues)
    actions: list[str] = []
    for severity in SEVERITY_ORDER:
        for (issue_severity, issue_type), count in sorted(by_type.items()):
            if issue_severity != severity:
                continue
            description = ISSUE_DEFINITIONS[issue_type]["description"]
            if severity == CRITICAL:
                actions.append(f"Correct {count} {issue_type} finding(s) by hand: {description}")
            elif severity == NEEDS_REVIEW:
                actions.append(f"Review {count} {issue_type} finding(s): {description}")
            elif cleaning is None:
                actions.append(f"Run `sheet-rapi heal` to repair {count} {issue_type} finding(s).")
    if cleaning is not None and cleaning.stats.get("total_changes"):
        actions.append(f"Use the cleaned output: {cleaning.stats['total_changes']} changes were applied.")
    return actions


def _issue_group(issues: list[Issue]) -> list[dict[str, Any]]:
    return [issue.to_dict() for issue in issues]


def render_text_report(report_json: dict[str, Any]) -> str:
    overview = report_json["file_overview"]
    score = report_json["quality_score"]
    after = report_json.get("quality_after")
    summary = report_json["summary"]
    issues = report_json["issues"]
    cleaning = report_json.get("cleaning")

    lines = [
        "SECTION 1 — FILE OVERVIEW",
        f"📄 File: {overview['file']}",
        f"📊 Size: {overview['rows']} rows × {overview['columns']} columns",
        f"🧭 Mode: {overview['mode']}",
        f"⏱  Scanned: {overview['scanned_at']}",
        "",
        "SECTION 2 — QUALITY SCORE",
        f"🩺 Quality Score: {score['score']}/100 (grade {score['grade']}, {score['label']})",
    ]
    if after:
        lines.append(f"✨ After cleaning: {after['score']}/100 (grade {after['grade']}, {after['label']})")
    lines.append(
        f"  • Issues — auto-fixable: {summary['auto_fixable']}, needs review: {summary['needs_review']}, critical: {summary['critical']}"
    )
    if report_json.get("failed_passes"):
        lines.append("  • Skipped checks: " + ", ".join(item["pass"] for item in report_json["failed_passes"]))
    lines.extend(["", "SECTION 3 — ISSUES FOUND"])

    for severity in SEVERITY_ORDER:
        lines.append(SEVERITY_HEADINGS[severity])
        if not issues[severity]:
            lines.append("- None")
        else:
            lines.extend(format_issue(item) for item in issues[severity])
        lines.append("")

    lines.append("SECTION 4 — COLUMN BREAKDOWN")
    for item in report_json["column_breakdown"]:
        lines.append(
            f"{item['column']} | {item['detected_type']} ({item['confidence']:.0%}) | "
            f"{item['empty_percentage']}% empty | {item['issue_count']} issue(s)"
        )

    if cleaning:
        stats = cleaning["stats"]
        lines.extend([
            "",
            "SECTION 5 — CLEANING",
            f"Rows: {stats['original_row_count']} -> {stats['cleaned_row_count']} ({stats['rows_removed']} removed)",
            f"Cells modified: {stats['cells_modified']}",
            f"Total changes: {stats['total_changes']}",
        ])
        for skipped in cleaning.get("skipped_fixes", []):
            lines.append(f"Skipped {skipped['fix']}: {skipped['reason']}")

    lines.extend(["", "SECTION 6 — RECOMMENDED ACTIONS"])
    actions = report_json["recommended_actions"]
    if not actions:
        lines.append("1. No action required.")
    else:
        lines.extend(f"{index}. {action}" for index, action in enumerate(actions, start=1))

    return "\n".join(lines).strip() + "\n"


def build_report(
    analysis: AnalysisResult,
    cleaning: CleanResult | None = None,
    *,
    source: str | Path | None = None,
    quality_after: QualityScore | None = None,
) -> dict[str, Any]:
    contract = build_contract("sheet_rapi.report")
    summary = dict(analysis.summary)
    report_json: dict[str, Any] = {
        "contract": contract,
        "schema_version": contract["version"],
        "tool_version": TOOL_VERSION,
        "file_overview": {
            "file": Path(source).name if source else "[in-memory table]",
            "rows": summary["total_rows"],
            "columns": summary["total_columns"],
            "mode": analysis.mode,
            "scanned_at": datetime.now().isoformat(timespec="seconds"),
        },
        "quality_score": analysis.quality_score.to_dict(),
        "quality_after": quality_after.to_dict() if quality_after else None,
        "summary": summary,
        "issues": {severity: _issue_group(analysis.categorized[severity]) for severity in SEVERITY_ORDER},
        "column_breakdown": build_column_breakdown(analysis),
        "recommended_actions": build_actions(analysis, cleaning),
        "failed_passes": [dict(item) for item in analysis.failed_passes],
        "cleaning": None,
    }
    if cleaning is not None:
        report_json["cleaning"] = {
            "stats": dict(cleaning.stats),
            "changes_by_type": dict(cleaning.changes_by_type),
            "skipped_fixes": [dict(item) for item in cleaning.skipped_fixes],
        }
    report_json["run_summary"] = build_run_summary(
        command="report",
        input_path=Path(source) if source else None,
        metrics={
            "mode": analysis.mode,
            "quality_score": analysis.quality_score.score,
            "quality_after": quality_after.score if quality_after else None,
            "issues_found": summary["total_issues"],
            "critical_issues": summary["critical"],
            "changes_applied": cleaning.stats["total_changes"] if cleaning else 0,
        },
        warnings=[f"Check '{item['pass']}' failed: {item['error']}" for item in analysis.failed_passes],
    )
    report_json["text_report"] = render_text_report(report_json)
    return report_json

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sheet_rapi import __version__ as TOOL_VERSION
from sheet_rapi.constants import ANALYSIS_MODES, AUTO_FIX
from sheet_rapi.contracts import build_contract, build_run_summary
from sheet_rapi.diagnose import analyze
from sheet_rapi.errors import ParseFailure
from sheet_rapi.issue_taxonomy import ISSUE_DEFINITIONS
from sheet_rapi.loader import load_file
from sheet_rapi.pipeline import PipelineResult, run_pipeline
from sheet_rapi.settings import DATE_FORMATS, TEXT_CASES, AnalysisSettings, CleaningOptions, default_config, load_settings
from sheet_rapi.workbook import OUTPUT_FORMATS


EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_DIAGNOSE_ISSUES = 3
EXIT_HEAL_CRITICAL = 4


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class SheetRapiArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True, default=str)


def configure_logging(args: argparse.Namespace) -> None:
    if getattr(args, "verbose", False):
        level = logging.DEBUG
    elif getattr(args, "quiet", False):
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def timestamp_token() -> str:
    override = os.environ.get("SHEET_RAPI_OUTPUT_STAMP")
    if override:
        return override
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def default_output_dir(input_path: Path) -> Path:
    return Path.cwd() / "sheet-rapi-output" / f"{input_path.stem}-{timestamp_token()}"


def determine_output_dir(args: argparse.Namespace, input_path: Path) -> Path:
    if getattr(args, "out_dir", None):
        return Path(args.out_dir)
    return default_output_dir(input_path)


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def write_text(path: Path, payload: str) -> None:
    ensure_parent(path)
    path.write_text(payload, encoding="utf-8")


def write_json(path: Path, payload: Any) -> None:
    write_text(path, json_dumps(payload))


def remove_generated_at(value: Any) -> Any:
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            if key == "generated_at":
                result[key] = "1970-01-01T00:00:00Z"
            else:
                result[key] = remove_generated_at(item)
        return result
    if isinstance(value, list):
        return [remove_generated_at(item) for item in value]
    return value


def normalize_report_for_cli(payload: Any) -> Any:
    payload = remove_generated_at(payload)
    if isinstance(payload, dict):
        overview = payload.get("file_overview")
        if isinstance(overview, dict) and "scanned_at" in overview:
            overview["scanned_at"] = "1970-01-01T00:00:00"
    return payload


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, FileNotFoundError):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, (ParseFailure, ImportError, UnicodeDecodeError)):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def safe_output_path(path: Path) -> Path:
    if path.exists():
        raise CliError(f"Refusing to overwrite existing output: {path}", EXIT_COMMAND_ERROR)
    return path


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        print(json_dumps(payload))


def resolve_settings(args: argparse.Namespace) -> tuple[AnalysisSettings, CleaningOptions]:
    if getattr(args, "config", None):
        config_path = Path(args.config)
        if not config_path.exists():
            raise CliError(f"Config not found: {config_path}", EXIT_COMMAND_ERROR)
        try:
            settings, options = load_settings(config_path)
        except ValueError as exc:
            raise CliError(str(exc), EXIT_COMMAND_ERROR) from exc
    else:
        settings, options = AnalysisSettings(), CleaningOptions()

    overrides = {}
    if getattr(args, "date_format", None):
        overrides["date_format"] = args.date_format
    if getattr(args, "text_case", None):
        overrides["text_case"] = args.text_case
    if overrides:
        options = replace(options, **overrides)
    return settings, options


def load_input(args: argparse.Namespace) -> tuple[Path, dict[str, Any]]:
    input_path = Path(args.input)
    if not input_path.exists():
        raise CliError(f"File not found: {input_path}", EXIT_COMMAND_ERROR)
    loaded = load_file(input_path, sheet_name=getattr(args, "sheet_name", None))
    for warning in loaded["warnings"]:
        emit_human(f"Warning: {warning}", quiet=args.quiet)
    return input_path, loaded


def exit_code_for_pipeline_failure(result: PipelineResult) -> int:
    return EXIT_PARSE_FAILED if result.failed_stage == "parse" else EXIT_COMMAND_ERROR


# ══════════════════════════════════════════════════════════════════════════
# RENDERING
# ══════════════════════════════════════════════════════════════════════════

def render_diagnose_text(payload: dict[str, Any]) -> str:
    summary = payload["summary"]
    score = payload["quality_score"]
    lines = [
        "sheet-rapi diagnose",
        f"File: {payload['file']}",
        f"Format: {payload.get('detected_format') or '[unknown]'}",
        f"Encoding: {payload.get('detected_encoding') or '[n/a]'}",
        f"Mode: {payload['mode']}",
        f"Rows: {summary['total_rows']}",
        f"Columns: {summary['total_columns']}",
        f"Quality score: {score['score']}/100 ({score['grade']}, {score['label']})",
        f"Issues: {summary['total_issues']}",
        f"Auto-fixable: {summary['auto_fixable']}",
        f"Needs review: {summary['needs_review']}",
        f"Critical: {summary['critical']}",
    ]
    if payload.get("sheet_name"):
        lines.append(f"Sheet: {payload['sheet_name']}")
    if summary["issues_by_type"]:
        lines.append("Issues by type:")
        lines.extend(f"- {issue_type}: {count}" for issue_type, count in sorted(summary["issues_by_type"].items()))
    if payload["failed_passes"]:
        lines.append("Skipped checks:")
        lines.extend(f"- {item['pass']}: {item['error']}" for item in payload["failed_passes"])
    return "\n".join(lines) + "\n"


def render_heal_summary(summary: dict[str, Any], outputs: dict[str, str]) -> str:
    totals = summary["summary"]
    lines = [
        "sheet-rapi heal",
        f"Input: {summary['run_summary']['input_file']}",
        f"Rows in: {totals['original_rows']}",
        f"Rows out: {totals['cleaned_rows']}",
        f"Rows removed: {totals['rows_removed']}",
        f"Changes logged: {summary['stats']['total_changes']}",
        f"Quality: {totals['quality_before']} -> {totals['quality_after']}",
        f"Needs review: {totals['issues_need_review']}",
        f"Critical remaining: {totals['critical_issues']}",
    ]
    for skipped in summary["skipped_fixes"]:
        lines.append(f"Skipped {skipped['fix']}: {skipped['reason']}")
    for name, path in sorted(outputs.items()):
        lines.append(f"Output ({name}): {path}")
    return "\n".join(lines) + "\n"


# ══════════════════════════════════════════════════════════════════════════
# PARSER
# ══════════════════════════════════════════════════════════════════════════

def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", help="Input file path")
    parser.add_argument("--mode", choices=list(ANALYSIS_MODES), default="auto", help="Analysis mode")
    parser.add_argument("--config", help="JSON config file with analysis/cleaning settings")
    parser.add_argument("--sheet", dest="sheet_name", help="Workbook sheet to read (default: first sheet)")
    parser.add_argument("-o", "--out", dest="out_dir", help="Output directory")
    parser.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    parser.add_argument("-v", "--verbose", action="store_true", help="More human logs")


def build_parser() -> argparse.ArgumentParser:
    parser = SheetRapiArgumentParser(prog="sheet-rapi", description="Spreadsheet data-quality checks and cleanup for Indonesian business data.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    diagnose = subparsers.add_parser("diagnose", help="Analyze a file and write a JSON report.")
    _add_common(diagnose)
    diagnose.add_argument("--output", help="Explicit report output path")

    heal = subparsers.add_parser("heal", help="Clean a file and write the cleaned output.")
    _add_common(heal)
    heal.add_argument("output_positional", nargs="?", default=None, help="Optional output path")
    heal.add_argument("--output", dest="output_flag", help="Explicit output path")
    heal.add_argument("--format", choices=list(OUTPUT_FORMATS), default="xlsx", help="Output format")
    heal.add_argument("--date-format", dest="date_format", choices=list(DATE_FORMATS), help="Target date format")
    heal.add_argument("--text-case", dest="text_case", choices=list(TEXT_CASES), help="Convert text columns to this case")
    heal.add_argument("--json-summary", dest="json_summary", help="Explicit JSON summary output path")
    heal.add_argument("--dry-run", action="store_true", help="Run cleaning without writing outputs")

    report = subparsers.add_parser("report", help="Generate a human-readable or JSON report.")
    _add_common(report)
    report.add_argument("--output", help="Explicit report output path")
    report.add_argument("--format", choices=["text", "json"], default="text", help="Output format when --json is not used")

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter config file.")
    config_init.add_argument("--path", default="sheet-rapi.json", help="Config output path")

    explain = subparsers.add_parser("explain", help="Explain an issue type.")
    explain.add_argument("issue_type", help="Issue type, e.g. nik_invalid")
    explain.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    subparsers.add_parser("version", help="Print version")
    return parser


# ══════════════════════════════════════════════════════════════════════════
# COMMANDS
# ══════════════════════════════════════════════════════════════════════════

def run_diagnose(args: argparse.Namespace) -> int:
    try:
        settings, _ = resolve_settings(args)
        input_path, loaded = load_input(args)
        analysis = analyze(loaded["table"], mode=args.mode, settings=settings)
        contract = build_contract("sheet_rapi.analysis")
        payload = {
            "contract": contract,
            "schema_version": contract["version"],
            "tool_version": TOOL_VERSION,
            "file": input_path.name,
            "detected_format": loaded["detected_format"],
            "detected_encoding": loaded["detected_encoding"],
            "delimiter": loaded["delimiter"],
            "sheet_name": loaded["sheet_name"],
            **analysis.to_dict(),
        }
        payload["run_summary"] = build_run_summary(
            command="diagnose",
            input_path=input_path,
            metrics={
                "quality_score": analysis.quality_score.score,
                "issues_found": analysis.summary["total_issues"],
                "critical_issues": analysis.summary["critical"],
            },
            warnings=loaded["warnings"],
        )
        payload = normalize_report_for_cli(payload)

        report_path = Path(args.output) if args.output else determine_output_dir(args, input_path) / "report.json"
        write_json(report_path, payload)
        if args.json:
            maybe_emit_json_stdout(payload, True)
        else:
            emit_human(render_diagnose_text(payload).rstrip(), quiet=args.quiet)
            emit_human(f"Report written: {report_path}", quiet=args.quiet)
        return EXIT_DIAGNOSE_ISSUES if analysis.summary["total_issues"] else EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def heal_default_paths(args: argparse.Namespace, input_path: Path) -> tuple[Path, Path]:
    if args.output_flag and args.output_positional:
        raise CliError("Use either positional output or --output, not both.", EXIT_COMMAND_ERROR)
    out_dir = determine_output_dir(args, input_path)
    explicit = args.output_flag or args.output_positional
    if explicit:
        output_path = Path(explicit)
    elif args.format == "csv":
        output_path = out_dir / f"{input_path.stem}-clean.csv"
    else:
        output_path = out_dir / f"{input_path.stem}-cleaned.xlsx"
    summary_path = Path(args.json_summary) if args.json_summary else out_dir / "heal-summary.json"
    return output_path, summary_path


def run_heal(args: argparse.Namespace) -> int:
    try:
        settings, options = resolve_settings(args)
        input_path, loaded = load_input(args)
        output_path, summary_path = heal_default_paths(args, input_path)
        if not args.dry_run:
            output_path = safe_output_path(output_path)
            summary_path = safe_output_path(summary_path)

        result = run_pipeline(
            input_path,
            mode=args.mode,
            settings=settings,
            options=options,
            output_path=None if args.dry_run else output_path,
            output_format=args.format,
            parse=lambda _: loaded["table"],
        )
        if not result.success:
            eprint(f"{result.failed_stage} failed: {result.error}")
            return exit_code_for_pipeline_failure(result)

        contract = build_contract("sheet_rapi.heal_summary")
        summary = {
            "contract": contract,
            "schema_version": contract["version"],
            "tool_version": TOOL_VERSION,
            "mode": args.mode,
            "dry_run": args.dry_run,
            "summary": result.summary,
            "stats": dict(result.cleaning.stats),
            "changes_by_type": dict(result.cleaning.changes_by_type),
            "skipped_fixes": [dict(item) for item in result.cleaning.skipped_fixes],
            "quality_before": result.analysis.quality_score.to_dict(),
            "quality_after": result.quality_after.to_dict(),
            "stages": [stage.to_dict() for stage in result.stages],
            "outputs": dict(result.outputs),
        }
        summary["run_summary"] = build_run_summary(
            command="heal",
            input_path=input_path,
            output_path=None if args.dry_run else output_path,
            metrics={
                "changes_applied": result.cleaning.stats["total_changes"],
                "rows_removed": result.cleaning.stats["rows_removed"],
                "critical_issues": result.summary["critical_issues"],
            },
            warnings=loaded["warnings"],
        )
        summary = normalize_report_for_cli(summary)
        if not args.dry_run:
            write_json(summary_path, summary)

        if args.json:
            maybe_emit_json_stdout(summary, True)
        else:
            emit_human(render_heal_summary(summary, result.outputs).rstrip(), quiet=args.quiet)
            if not args.dry_run:
                emit_human(f"Heal summary: {summary_path}", quiet=args.quiet)
        return EXIT_HEAL_CRITICAL if result.summary["critical_issues"] else EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_report(args: argparse.Namespace) -> int:
    try:
        settings, options = resolve_settings(args)
        input_path, loaded = load_input(args)
        result = run_pipeline(
            input_path,
            mode=args.mode,
            settings=settings,
            options=options,
            parse=lambda _: loaded["table"],
        )
        if not result.success:
            eprint(f"{result.failed_stage} failed: {result.error}")
            return exit_code_for_pipeline_failure(result)

        machine_payload = normalize_report_for_cli(result.report)
        text_payload = machine_payload["text_report"]
        as_json = args.json or args.format == "json"
        suffix = ".json" if as_json else ".txt"
        report_path = Path(args.output) if args.output else determine_output_dir(args, input_path) / f"report{suffix}"

        if as_json:
            write_json(report_path, machine_payload)
            if args.json:
                maybe_emit_json_stdout(machine_payload, True)
            else:
                emit_human(f"Report written: {report_path}", quiet=args.quiet)
        else:
            write_text(report_path, text_payload)
            emit_human(text_payload.rstrip(), quiet=args.quiet)
            emit_human(f"Report written: {report_path}", quiet=args.quiet)

        issues_found = machine_payload["run_summary"]["metrics"]["issues_found"]
        return EXIT_DIAGNOSE_ISSUES if issues_found else EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    write_json(config_path, default_config())
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_explain(args: argparse.Namespace) -> int:
    definition = ISSUE_DEFINITIONS.get(args.issue_type)
    if definition is None:
        eprint(f"Unknown issue type: {args.issue_type}")
        return EXIT_COMMAND_ERROR
    payload = {
        "issue_type": args.issue_type,
        "severity": definition["severity"],
        "category": definition["category"],
        "description": definition["description"],
        "auto_fixable": definition["severity"] == AUTO_FIX,
    }
    if args.json:
        maybe_emit_json_stdout(payload, True)
    else:
        print(
            "\n".join(
                [
                    f"Issue: {args.issue_type}",
                    f"What it means: {payload['description']}",
                    f"Category: {payload['category']}",
                    f"Default severity: {payload['severity']}",
                    f"Auto-fixable: {'yes' if payload['auto_fixable'] else 'no'}",
                ]
            )
        )
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        configure_logging(args)
        if args.command == "diagnose":
            return run_diagnose(args)
        if args.command == "heal":
            return run_heal(args)
        if args.command == "report":
            return run_report(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "explain":
            return run_explain(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())

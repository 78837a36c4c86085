from __future__ import annotations

import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

from sheet_rapi import __version__


ROOT = Path(__file__).resolve().parents[1]
CLI = [sys.executable, "-m", "sheet_rapi.cli"]
FIXED_STAMP = "20260301T010203Z"

DIRTY_CSV = "Qty,Price,Total\n2,250000,400000\n1,100000,100000\n"
CLEAN_CSV = "Nama,Kota\nBudi Santoso,Jakarta\nSiti Aminah,Bandung\n"
CRITICAL_CSV = "NIK,Kota\n3201011505990001,Jakarta\n12345,Bandung\n"


def run_cli(*args: str, cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
    env = dict(os.environ)
    env["SHEET_RAPI_OUTPUT_STAMP"] = FIXED_STAMP
    env["PYTHONIOENCODING"] = "utf-8"
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(ROOT), env.get("PYTHONPATH")]))
    return subprocess.run(
        [*CLI, *args],
        cwd=cwd or ROOT,
        capture_output=True,
        text=True,
        encoding="utf-8",
        env=env,
    )


class CliTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmpdir = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def write(self, name: str, content: str) -> Path:
        path = self.tmpdir / name
        path.write_text(content, encoding="utf-8")
        return path


class DiagnoseCliTests(CliTestCase):
    def test_dirty_csv_returns_exit_3_and_writes_report(self):
        source = self.write("sales.csv", DIRTY_CSV)
        out_dir = self.tmpdir / "out"
        proc = run_cli("diagnose", str(source), "--out", str(out_dir))

        self.assertEqual(proc.returncode, 3, proc.stderr)
        self.assertIn("sheet-rapi diagnose", proc.stderr)
        self.assertIn("Report written:", proc.stderr)
        report = json.loads((out_dir / "report.json").read_text(encoding="utf-8"))
        self.assertEqual(report["file"], "sales.csv")
        self.assertEqual(report["contract"]["name"], "sheet_rapi.analysis")
        self.assertEqual(report["summary"]["issues_by_type"], {"calculation_error": 1})
        self.assertEqual(report["run_summary"]["generated_at"], "1970-01-01T00:00:00Z")

    def test_clean_csv_returns_exit_0_with_json_only_on_stdout(self):
        source = self.write("warga.csv", CLEAN_CSV)
        proc = run_cli("diagnose", str(source), "--json", cwd=self.tmpdir)

        self.assertEqual(proc.returncode, 0, proc.stderr)
        report = json.loads(proc.stdout)
        self.assertEqual(report["summary"]["total_issues"], 0)
        self.assertEqual(report["quality_score"]["score"], 100)
        default_dir = self.tmpdir / "sheet-rapi-output" / f"warga-{FIXED_STAMP}"
        self.assertTrue((default_dir / "report.json").exists())

    def test_missing_input_returns_exit_1(self):
        proc = run_cli("diagnose", str(self.tmpdir / "missing.csv"))
        self.assertEqual(proc.returncode, 1)
        self.assertIn("File not found", proc.stderr)

    def test_unsupported_input_returns_exit_2(self):
        source = self.write("data.json", "[]")
        proc = run_cli("diagnose", str(source), "--out", str(self.tmpdir))
        self.assertEqual(proc.returncode, 2)
        self.assertIn("Unsupported format", proc.stderr)

    def test_strict_mode_is_recorded(self):
        source = self.write("warga.csv", CLEAN_CSV)
        proc = run_cli("diagnose", str(source), "--mode", "strict", "--json", "--out", str(self.tmpdir))
        self.assertEqual(json.loads(proc.stdout)["mode"], "strict")


class HealCliTests(CliTestCase):
    def test_heal_writes_workbook_and_summary(self):
        source = self.write("sales.csv", DIRTY_CSV)
        out_dir = self.tmpdir / "out"
        proc = run_cli("heal", str(source), "--out", str(out_dir))

        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertIn("sheet-rapi heal", proc.stderr)
        self.assertTrue((out_dir / "sales-cleaned.xlsx").exists())
        summary = json.loads((out_dir / "heal-summary.json").read_text(encoding="utf-8"))
        self.assertEqual(summary["contract"]["name"], "sheet_rapi.heal_summary")
        self.assertEqual(summary["changes_by_type"], {"calculation_error": 1})
        self.assertEqual(summary["quality_after"]["score"], 100)
        self.assertEqual([stage["name"] for stage in summary["stages"]], ["parse", "analyze", "clean", "format", "report"])

    def test_heal_csv_output(self):
        source = self.write("sales.csv", DIRTY_CSV)
        output = self.tmpdir / "fixed.csv"
        proc = run_cli("heal", str(source), str(output), "--format", "csv", "--out", str(self.tmpdir / "out"))

        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertIn("500000", output.read_text(encoding="utf-8"))
        self.assertTrue((self.tmpdir / "fixed-issues.csv").exists())
        self.assertTrue((self.tmpdir / "fixed-changelog.csv").exists())

    def test_critical_issues_return_exit_4(self):
        source = self.write("warga.csv", CRITICAL_CSV)
        proc = run_cli("heal", str(source), "--out", str(self.tmpdir / "out"))
        self.assertEqual(proc.returncode, 4, proc.stderr)
        self.assertIn("Critical remaining: 1", proc.stderr)

    def test_dry_run_writes_nothing(self):
        source = self.write("sales.csv", DIRTY_CSV)
        out_dir = self.tmpdir / "out"
        proc = run_cli("heal", str(source), "--dry-run", "--json", "--out", str(out_dir))

        self.assertEqual(proc.returncode, 0, proc.stderr)
        summary = json.loads(proc.stdout)
        self.assertTrue(summary["dry_run"])
        self.assertEqual(summary["outputs"], {})
        self.assertFalse(out_dir.exists())

    def test_existing_output_is_not_overwritten(self):
        source = self.write("sales.csv", DIRTY_CSV)
        existing = self.write("taken.xlsx", "")
        proc = run_cli("heal", str(source), "--output", str(existing), "--out", str(self.tmpdir / "out"))
        self.assertEqual(proc.returncode, 1)
        self.assertIn("Refusing to overwrite", proc.stderr)

    def test_positional_and_flag_output_conflict(self):
        source = self.write("sales.csv", DIRTY_CSV)
        proc = run_cli("heal", str(source), "a.xlsx", "--output", "b.xlsx", "--out", str(self.tmpdir))
        self.assertEqual(proc.returncode, 1)
        self.assertIn("not both", proc.stderr)


class ReportCliTests(CliTestCase):
    def test_text_report(self):
        source = self.write("sales.csv", DIRTY_CSV)
        proc = run_cli("report", str(source), "--out", str(self.tmpdir / "out"))

        self.assertEqual(proc.returncode, 3, proc.stderr)
        text = (self.tmpdir / "out" / "report.txt").read_text(encoding="utf-8")
        self.assertIn("SECTION 1 — FILE OVERVIEW", text)
        self.assertIn("SECTION 5 — CLEANING", text)
        self.assertIn("sales.csv", text)

    def test_json_report_on_stdout(self):
        source = self.write("warga.csv", CLEAN_CSV)
        proc = run_cli("report", str(source), "--json", "--out", str(self.tmpdir / "out"))

        self.assertEqual(proc.returncode, 0, proc.stderr)
        report = json.loads(proc.stdout)
        self.assertEqual(report["contract"]["name"], "sheet_rapi.report")
        self.assertEqual(report["file_overview"]["scanned_at"], "1970-01-01T00:00:00")
        self.assertTrue((self.tmpdir / "out" / "report.json").exists())


class UtilityCliTests(CliTestCase):
    def test_explain_json(self):
        proc = run_cli("explain", "nik_invalid", "--json")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        payload = json.loads(proc.stdout)
        self.assertEqual(payload["severity"], "critical")
        self.assertFalse(payload["auto_fixable"])

    def test_explain_text_and_unknown_type(self):
        proc = run_cli("explain", "whitespace")
        self.assertIn("Auto-fixable: yes", proc.stdout)
        self.assertEqual(run_cli("explain", "gremlins").returncode, 1)

    def test_config_init_refuses_overwrite(self):
        path = self.tmpdir / "rapi.json"
        first = run_cli("config", "init", "--path", str(path))
        self.assertEqual(first.returncode, 0, first.stderr)
        self.assertEqual(json.loads(path.read_text(encoding="utf-8"))["cleaning"]["date_format"], "DD-MMM-YYYY")
        self.assertEqual(run_cli("config", "init", "--path", str(path)).returncode, 1)

    def test_config_is_applied(self):
        config = self.write("rapi.json", json.dumps({"analysis": {"calc_tolerance_ratio": 0.5}}))
        source = self.write("sales.csv", DIRTY_CSV)
        proc = run_cli("diagnose", str(source), "--config", str(config), "--json", "--out", str(self.tmpdir / "out"))
        self.assertEqual(proc.returncode, 0, proc.stderr)

    def test_version(self):
        proc = run_cli("version")
        self.assertEqual(proc.stdout.strip(), __version__)

    def test_missing_command_is_a_usage_error(self):
        self.assertEqual(run_cli().returncode, 1)


if __name__ == "__main__":
    unittest.main()

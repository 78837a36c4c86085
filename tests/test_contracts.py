from __future__ import annotations

import re
import unittest
from pathlib import Path

from sheet_rapi import __version__
from sheet_rapi.contracts import CONTRACT_VERSIONS, build_contract, build_run_summary, utc_now_iso


class ContractTests(unittest.TestCase):
    def test_every_output_has_a_versioned_contract(self):
        self.assertEqual(
            set(CONTRACT_VERSIONS),
            {"sheet_rapi.analysis", "sheet_rapi.report", "sheet_rapi.heal_summary", "sheet_rapi.pipeline"},
        )
        for name in CONTRACT_VERSIONS:
            with self.subTest(contract=name):
                contract = build_contract(name)
                self.assertEqual(contract["name"], name)
                self.assertRegex(contract["version"], r"^\d+\.\d+\.\d+$")

    def test_unknown_contract_is_rejected(self):
        with self.assertRaises(KeyError):
            build_contract("sheet_rapi.unknown")

    def test_run_summary_shape(self):
        summary = build_run_summary(
            command="diagnose",
            input_path=Path("data/penjualan.csv"),
            output_path=Path("out/report.json"),
            metrics={"issues_found": 3},
            warnings=["Multiple sheets found"],
        )
        self.assertEqual(summary["tool"], "sheet-rapi")
        self.assertEqual(summary["command"], "diagnose")
        self.assertEqual(summary["status"], "ok")
        self.assertEqual(summary["input_file"], str(Path("data/penjualan.csv")))
        self.assertEqual(summary["output_file"], str(Path("out/report.json")))
        self.assertEqual(summary["warnings_count"], 1)
        self.assertEqual(summary["metrics"], {"issues_found": 3})

    def test_run_summary_defaults(self):
        summary = build_run_summary(command="report", input_path=None)
        self.assertIsNone(summary["input_file"])
        self.assertIsNone(summary["output_file"])
        self.assertEqual(summary["warnings"], [])
        self.assertEqual(summary["metrics"], {})

    def test_timestamps_are_utc_seconds(self):
        self.assertRegex(utc_now_iso(), r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$")

    def test_tool_version_is_semver(self):
        self.assertTrue(re.match(r"^\d+\.\d+\.\d+$", __version__))


if __name__ == "__main__":
    unittest.main()

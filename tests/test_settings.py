from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from sheet_rapi.settings import AnalysisSettings, CleaningOptions, default_config, load_settings, settings_for_mode


class ModeTests(unittest.TestCase):
    def test_strict_tightens_thresholds(self):
        strict = settings_for_mode("strict")
        self.assertEqual(strict.empty_cell_ratio, 0.0)
        self.assertEqual(strict.fuzzy_similarity, 0.80)
        self.assertEqual(strict.outlier_min_values, 5)

    def test_other_modes_keep_the_base(self):
        base = AnalysisSettings(detail_sample_limit=3)
        for mode in ("auto", "finance", "sales", "data"):
            with self.subTest(mode=mode):
                self.assertEqual(settings_for_mode(mode, base), base)

    def test_unknown_mode(self):
        with self.assertRaisesRegex(ValueError, "Unknown analysis mode"):
            settings_for_mode("turbo")


class CleaningOptionTests(unittest.TestCase):
    def test_defaults(self):
        options = CleaningOptions()
        self.assertEqual(options.date_format, "DD-MMM-YYYY")
        self.assertIsNone(options.text_case)

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            CleaningOptions(date_format="MM/DD/YYYY")
        with self.assertRaises(ValueError):
            CleaningOptions(text_case="shouting")


class ConfigFileTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmpdir = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def write(self, name: str, content: str) -> Path:
        path = self.tmpdir / name
        path.write_text(content, encoding="utf-8")
        return path

    def test_partial_config(self):
        path = self.write("rapi.json", json.dumps({
            "analysis": {"empty_cell_ratio": 0.1},
            "cleaning": {"date_format": "YYYY-MM-DD", "text_case": "title"},
        }))
        analysis, cleaning = load_settings(path)
        self.assertEqual(analysis.empty_cell_ratio, 0.1)
        self.assertEqual(analysis.fuzzy_similarity, 0.85)
        self.assertEqual(cleaning, CleaningOptions(date_format="YYYY-MM-DD", text_case="title"))

    def test_default_config_round_trips(self):
        path = self.write("rapi.json", json.dumps(default_config()))
        self.assertEqual(load_settings(path), (AnalysisSettings(), CleaningOptions()))

    def test_rejections(self):
        cases = {
            "rapi.yaml": ("analysis: {}", "YAML config files are not supported"),
            "rapi.toml": ("", "Unsupported config file type"),
            "broken.json": ("{", "not valid JSON"),
            "list.json": ("[]", "must contain a JSON object"),
            "unknown.json": ('{"analysis": {"speed": 3}}', "Unknown analysis setting"),
            "section.json": ('{"cleaning": []}', "must be an object"),
            "format.json": ('{"cleaning": {"date_format": "MM/DD"}}', "Unknown date format"),
        }
        for name, (content, message) in cases.items():
            with self.subTest(config=name):
                with self.assertRaisesRegex(ValueError, message):
                    load_settings(self.write(name, content))


if __name__ == "__main__":
    unittest.main()

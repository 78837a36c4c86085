"""
Tunable thresholds for analysis and cleaning.

Every heuristic cut-off used by the rule engine lives here as a named field so
modes and config files can override it. Config files are JSON:

    {
      "analysis": {"empty_cell_ratio": 0.1},
      "cleaning": {"date_format": "YYYY-MM-DD", "text_case": "title"}
    }
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

from sheet_rapi.constants import ANALYSIS_MODES, PPN_RATE


DATE_FORMATS = ("DD-MMM-YYYY", "DD/MM/YYYY", "YYYY-MM-DD", "DD MMMM YYYY")
TEXT_CASES = ("upper", "lower", "title", "sentence")
SUPPORTED_CONFIG_SUFFIXES = {".json"}


@dataclass(frozen=True)
class AnalysisSettings:
    empty_cell_ratio: float = 0.20
    mixed_type_confidence: float = 0.6
    mixed_type_min_samples: int = 5
    fuzzy_similarity: float = 0.85
    fuzzy_max_pairs: int = 50
    fuzzy_max_comparisons: int = 250_000
    outlier_min_values: int = 10
    outlier_iqr_multiplier: float = 1.5
    calc_tolerance_ratio: float = 0.01
    calc_tolerance_min: float = 1.0
    tax_tolerance: float = 1.0
    ppn_rate: float = PPN_RATE
    sequence_min_values: int = 3
    sequence_max_missing: int = 10
    text_case_dominant_ratio: float = 0.8
    text_case_mixed_ratio: float = 0.5
    min_valid_year: int = 1900
    detail_sample_limit: int = 10


@dataclass(frozen=True)
class CleaningOptions:
    date_format: str = "DD-MMM-YYYY"
    text_case: str | None = None

    def __post_init__(self) -> None:
        if self.date_format not in DATE_FORMATS:
            raise ValueError(f"Unknown date format '{self.date_format}'. Supported: {', '.join(DATE_FORMATS)}")
        if self.text_case is not None and self.text_case not in TEXT_CASES:
            raise ValueError(f"Unknown text case '{self.text_case}'. Supported: {', '.join(TEXT_CASES)}")


# Only strict changes thresholds; every mode runs every pass.
MODE_OVERRIDES: dict[str, dict[str, Any]] = {
    "strict": {
        "empty_cell_ratio": 0.0,
        "fuzzy_similarity": 0.80,
        "outlier_min_values": 5,
    },
}


def settings_for_mode(mode: str, base: AnalysisSettings | None = None) -> AnalysisSettings:
    if mode not in ANALYSIS_MODES:
        raise ValueError(f"Unknown analysis mode '{mode}'. Supported: {', '.join(ANALYSIS_MODES)}")
    base = base or AnalysisSettings()
    overrides = MODE_OVERRIDES.get(mode)
    if not overrides:
        return base
    return replace(base, **overrides)


def _apply_section(cls, section: Any, label: str):
    if section is None:
        return cls()
    if not isinstance(section, dict):
        raise ValueError(f"Config section '{label}' must be an object")
    known = {item.name for item in fields(cls)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ValueError(f"Unknown {label} setting(s): {', '.join(unknown)}")
    return cls(**section)


def load_settings(path: Path) -> tuple[AnalysisSettings, CleaningOptions]:
    suffix = path.suffix.lower()
    if suffix in {".yml", ".yaml"}:
        raise ValueError("YAML config files are not supported; use a .json config file")
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(f"Unsupported config file type '{suffix or '[missing extension]'}'")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Config file is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Config file must contain a JSON object")
    analysis = _apply_section(AnalysisSettings, payload.get("analysis"), "analysis")
    cleaning = _apply_section(CleaningOptions, payload.get("cleaning"), "cleaning")
    return analysis, cleaning


def default_config() -> dict[str, Any]:
    return {
        "analysis": asdict(AnalysisSettings()),
        "cleaning": asdict(CleaningOptions()),
    }

"""
Optional image-to-table extraction.

Needs the `ocr` extra (pytesseract + Pillow) and a local tesseract binary.
The loader sends image files here; other callers can probe
`is_available()` first and feed the resulting Table to the pipeline.
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from sheet_rapi.table import Table


logger = logging.getLogger(__name__)

DEFAULT_LANG = "ind+eng"
LOW_CONFIDENCE = 80.0

MULTI_SPACE_RE = re.compile(r"\s{2,}")
LOOKALIKE_RE = re.compile(r"[0O]{2,}|[Il1]{3,}")


@dataclass
class OcrResult:
    success: bool
    table: Optional[Table] = None
    table_detected: bool = False
    confidence: Optional[float] = None
    raw_text: str = ""
    warnings: list[dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    elapsed_ms: float = 0.0


def is_available() -> bool:
    return all(importlib.util.find_spec(name) is not None for name in ("pytesseract", "PIL"))


def _pick_delimiter(lines: list[str]) -> Optional[re.Pattern]:
    count = len(lines)
    avg_tabs = sum(line.count("\t") for line in lines) / count
    avg_pipes = sum(line.count("|") for line in lines) / count
    avg_spaces = sum(len(MULTI_SPACE_RE.findall(line)) for line in lines) / count
    if avg_tabs >= 2:
        return re.compile(r"\t")
    if avg_pipes >= 2:
        return re.compile(r"\|")
    if avg_spaces >= 2:
        return MULTI_SPACE_RE
    return None


def table_from_text_lines(text: str) -> tuple[Table, bool, list[dict[str, Any]]]:
    """
    Turn recognised text into a Table.

    Lines split on tabs, pipes or runs of spaces become a table whose first
    line is the header. Otherwise every line becomes a row of a two-column
    No/Content table.

    Returns (table, table_detected, warnings).
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if not lines:
        return Table((), ()), False, []

    delimiter = _pick_delimiter(lines)
    if delimiter is None:
        rows = [[index, line] for index, line in enumerate(lines, start=1)]
        return Table.from_rows(("No", "Content"), rows), False, []

    split = [[cell.strip() for cell in delimiter.split(line) if cell.strip()] for line in lines]
    headers: list[str] = []
    for index, header in enumerate(split[0], start=1):
        name = header or f"Column_{index}"
        headers.append(f"{name}_{index}" if name in headers else name)
    width = len(headers)
    body = [cells[:width] for cells in split[1:]]
    table = Table.from_rows(headers, body)

    warnings = []
    for row in table.rows:
        for header in table.headers:
            value = row.get(header)
            if isinstance(value, str) and LOOKALIKE_RE.search(value):
                warnings.append({
                    "row": row.source_line,
                    "column": header,
                    "value": value,
                    "issue": "Possible OCR error (look-alike characters)",
                })
    return table, True, warnings


def extract_table(image_path: "str | Path", lang: str = DEFAULT_LANG) -> OcrResult:
    started = time.perf_counter()

    def elapsed() -> float:
        return round((time.perf_counter() - started) * 1000, 2)

    if not is_available():
        return OcrResult(
            success=False,
            error="OCR is not available. Install it with: pip install 'sheet-rapi[ocr]'",
            elapsed_ms=elapsed(),
        )

    pytesseract = importlib.import_module("pytesseract")
    image_module = importlib.import_module("PIL.Image")
    try:
        with image_module.open(image_path) as image:
            raw_text = pytesseract.image_to_string(image, lang=lang)
            data = pytesseract.image_to_data(image, lang=lang, output_type=pytesseract.Output.DICT)
    except (OSError, RuntimeError, pytesseract.TesseractError) as exc:
        logger.warning("OCR failed for %s: %s", image_path, exc)
        return OcrResult(success=False, error=str(exc), elapsed_ms=elapsed())

    scores = [float(conf) for conf in data.get("conf", []) if float(conf) >= 0]
    confidence = round(sum(scores) / len(scores), 1) if scores else 0.0
    table, detected, warnings = table_from_text_lines(raw_text)
    return OcrResult(
        success=True,
        table=table,
        table_detected=detected,
        confidence=confidence,
        raw_text=raw_text,
        warnings=warnings,
        elapsed_ms=elapsed(),
    )


def validate_quality(result: OcrResult) -> dict[str, Any]:
    if not result.success:
        return {"is_good_quality": False, "issues": [{"type": "error", "message": result.error}]}

    issues = []
    if result.confidence is not None and result.confidence < LOW_CONFIDENCE:
        issues.append({
            "type": "low_confidence",
            "message": f"OCR confidence is low ({result.confidence:.1f}%). Results may be inaccurate.",
            "suggestion": "Try a sharper image with better lighting.",
        })
    if result.warnings:
        issues.append({
            "type": "ocr_warnings",
            "message": f"{len(result.warnings)} cells may have OCR errors.",
            "details": result.warnings[:5],
        })
    return {"is_good_quality": not issues, "issues": issues}

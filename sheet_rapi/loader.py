"""
loader.py: file ingestion for sheet-rapi

Supports: .csv .tsv .txt .xlsx .xlsm .xls, and images through OCR
(.png .jpg .jpeg .tif .tiff .bmp, needs the `ocr` extra)

Public API:
    result = load_file("path/to/file.csv")
    table  = result["table"]

Result dict keys:
    table             - sheet_rapi.table.Table (always present)
    detected_format   - "csv", "xlsx", ...
    detected_encoding - encoding name for text files; None for workbooks
    encoding_info     - dict: detected, confidence, is_utf8, suspicious_chars
    delimiter         - delimiter char for text files; None otherwise
    sheet_name        - sheet that was read for workbooks; None otherwise
    sheet_names       - every sheet in the workbook; None otherwise
    original_rows     - row count including the header row
    original_columns  - column count
    warnings          - list of warning strings
"""

from __future__ import annotations

import csv
import io
import logging
import re
from collections import Counter
from pathlib import Path
from typing import Any, Optional

import chardet
import pandas as pd

from sheet_rapi import ocr
from sheet_rapi.errors import ParseFailure
from sheet_rapi.table import FIRST_DATA_LINE, Row, Table


logger = logging.getLogger(__name__)

# ── Format groups ──────────────────────────────────────────────────────────────
TEXT_FORMATS  = {".csv", ".tsv", ".txt"}
EXCEL_FORMATS = {".xlsx", ".xlsm", ".xls"}
IMAGE_FORMATS = {".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp"}
ALL_FORMATS   = TEXT_FORMATS | EXCEL_FORMATS | IMAGE_FORMATS

UNNAMED_COLUMN_RE = re.compile(r"^Unnamed: (\d+)$")
# Plain numbers a spreadsheet would have stored as numbers; leading zeros and
# long digit runs (NIK, NPWP, phones) stay text.
CANONICAL_NUMBER_RE = re.compile(r"^-?(?:0|[1-9]\d{0,11})(?:\.\d+)?$")


# ══════════════════════════════════════════════════════════════════════════════
# ENCODING DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def _detect_encoding_info(raw: bytes) -> dict:
    """
    Detect encoding from raw bytes.

    Returns dict with: detected, confidence, is_utf8, suspicious_chars.
    """
    result     = chardet.detect(raw)
    detected   = result.get("encoding") or "unknown"
    confidence = round(result.get("confidence") or 0.0, 2)
    is_utf8    = detected.upper().replace("-", "") in ("UTF8", "ASCII", "UTF8SIG")

    suspicious: list[str] = []
    if not is_utf8:
        for row_idx, line in enumerate(raw.split(b"\n")[:100], start=1):
            try:
                line.decode("utf-8")
            except UnicodeDecodeError as e:
                bad_byte = line[e.start : e.end]
                suspicious.append(
                    f"row {row_idx}: byte {bad_byte!r} at position {e.start}"
                )

    return {
        "detected":         detected,
        "confidence":       confidence,
        "is_utf8":          is_utf8,
        "suspicious_chars": suspicious[:10],
    }


def _read_text_safely(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode raw bytes line by line: UTF-8, then the detected encoding, then
    latin-1, then CP1252 with replacement. Embedded NUL bytes are dropped.
    """
    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for enc in ("utf-8", preferred_encoding, "latin-1"):
            if not enc or enc == "unknown":
                continue
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.replace("\x00", ""))
    return "\n".join(decoded_lines).lstrip("﻿")


# ══════════════════════════════════════════════════════════════════════════════
# DELIMITER DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def _detect_delimiter(text: str) -> str:
    """
    Infer the delimiter from sample lines.

    Indonesian exports often use ';' because ',' is the decimal mark, so
    csv.Sniffer is tried first and candidates are scored on column-count
    consistency when it gives up.
    """
    sample_lines = [l for l in text.splitlines() if l.strip()][:50]
    sample = "\n".join(sample_lines[:25])

    if sample:
        try:
            sniffed = csv.Sniffer().sniff(sample, delimiters=",;\t|")
            return sniffed.delimiter
        except csv.Error:
            pass

    candidates  = [",", ";", "\t", "|"]
    best_delim  = ","
    best_score  = float("-inf")
    best_width  = 0
    sample_text = "\n".join(sample_lines[:120])

    for delim in candidates:
        rows = [
            row
            for row in csv.reader(io.StringIO(sample_text), delimiter=delim)
            if any(cell.strip() for cell in row)
        ]
        if len(rows) < 2:
            continue

        widths       = [len(row) for row in rows]
        width_counts = Counter(widths)
        mode_width, mode_count = width_counts.most_common(1)[0]
        consistency  = mode_count / len(widths)
        header_width = len(rows[0])

        score = (mode_width * 2.0) + (consistency * mode_width)
        if header_width == mode_width:
            score += 1.0
        if mode_width == 1:
            score -= 10.0

        if score > best_score or (score == best_score and mode_width > best_width):
            best_score = score
            best_width = mode_width
            best_delim = delim

    return best_delim


def _validate_txt_table(text: str, delimiter: str) -> None:
    """Reject .txt files that are prose rather than delimited rows."""
    sample_lines = [line for line in text.splitlines() if line.strip()][:50]
    rows = [
        row
        for row in csv.reader(io.StringIO("\n".join(sample_lines)), delimiter=delimiter)
        if any(cell.strip() for cell in row)
    ]
    if len(rows) < 2 or sum(1 for row in rows if len(row) > 1) < 2:
        raise ParseFailure(
            ".txt file does not appear to contain delimited/tabular data "
            f"(detected delimiter {delimiter!r})"
        )


# ══════════════════════════════════════════════════════════════════════════════
# DATAFRAME -> TABLE
# ══════════════════════════════════════════════════════════════════════════════

def _coerce_cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    if isinstance(value, str) and CANONICAL_NUMBER_RE.match(value):
        number = float(value)
        return int(number) if "." not in value else number
    return value


def _header_name(value: Any) -> str:
    text = "" if value is None else str(value).strip()
    match = UNNAMED_COLUMN_RE.match(text)
    if match:
        return f"Column_{int(match.group(1)) + 1}"
    return text


def table_from_dataframe(df: pd.DataFrame, first_line: int = FIRST_DATA_LINE) -> Table:
    """Convert a string-typed DataFrame into a Table; row N of the frame is source line first_line + N."""
    headers = tuple(_header_name(column) for column in df.columns)
    rows = []
    for offset, record in enumerate(df.itertuples(index=False, name=None)):
        values = {header: _coerce_cell(value) for header, value in zip(headers, record)}
        rows.append(Row(first_line + offset, values))
    return Table(headers, tuple(rows))


# ══════════════════════════════════════════════════════════════════════════════
# FORMAT LOADERS
# ══════════════════════════════════════════════════════════════════════════════

def _load_text(path: Path, suffix: str) -> dict:
    """Load .csv, .tsv or .txt into a Table."""
    raw = path.read_bytes()
    if not raw.strip():
        raise ParseFailure(f"{path.name} is empty")

    enc_info = _detect_encoding_info(raw)
    enc      = enc_info["detected"] if enc_info["detected"] != "unknown" else "utf-8"
    text     = _read_text_safely(raw, enc)

    delimiter = "\t" if suffix == ".tsv" else _detect_delimiter(text)
    if suffix == ".txt":
        _validate_txt_table(text, delimiter)

    sep = r"\|" if delimiter == "|" else delimiter
    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
            on_bad_lines="skip",
            sep=sep,
            engine="python",
        )
    except pd.errors.EmptyDataError as exc:
        raise ParseFailure(f"{path.name} has no header row") from exc
    except Exception as exc:
        raise ParseFailure(f"Could not parse {suffix} file: {exc}") from exc

    return {
        "table":             table_from_dataframe(df),
        "detected_format":   suffix.lstrip("."),
        "detected_encoding": enc,
        "encoding_info":     enc_info,
        "delimiter":         delimiter,
        "sheet_name":        None,
        "sheet_names":       None,
        "original_rows":     len(df) + 1,
        "original_columns":  len(df.columns),
        "warnings":          [],
    }


def _load_excel(path: Path, suffix: str, sheet_name: Optional[str] = None) -> dict:
    """
    Load .xlsx, .xlsm or .xls. Without `sheet_name` the first sheet is read
    and the others are listed in a warning.
    """
    warnings: list[str] = []
    try:
        with pd.ExcelFile(path) as workbook:
            all_sheets = list(workbook.sheet_names)
    except ImportError as exc:
        raise ParseFailure(f"Reading {suffix} files needs an extra dependency: {exc}") from exc
    except Exception as exc:
        raise ParseFailure(f"Could not read workbook: {exc}") from exc

    if not all_sheets:
        raise ParseFailure("Workbook has no sheets")
    if sheet_name is not None and sheet_name not in all_sheets:
        raise ParseFailure(f"Sheet '{sheet_name}' not found. Available: {all_sheets}")
    chosen = sheet_name or all_sheets[0]

    try:
        df = pd.read_excel(path, sheet_name=chosen, dtype=str)
    except Exception as exc:
        raise ParseFailure(f"Could not load sheet '{chosen}': {exc}") from exc

    if sheet_name is None and len(all_sheets) > 1:
        others = [name for name in all_sheets if name != chosen]
        warnings.append(
            f"Multiple sheets found ({len(all_sheets)} total); used '{chosen}'. Ignored: {others}"
        )

    return {
        "table":             table_from_dataframe(df),
        "detected_format":   suffix.lstrip("."),
        "detected_encoding": None,
        "encoding_info":     None,
        "delimiter":         None,
        "sheet_name":        chosen,
        "sheet_names":       all_sheets,
        "original_rows":     len(df) + 1,
        "original_columns":  len(df.columns),
        "warnings":          warnings,
    }


def _load_image(path: Path, suffix: str) -> dict:
    """Read a photographed or scanned table through OCR."""
    result = ocr.extract_table(path)
    if not result.success:
        raise ParseFailure(f"Could not read text from {path.name}: {result.error}")
    if result.table is None or not len(result.table):
        raise ParseFailure(f"No text found in {path.name}")

    table = Table(
        result.table.headers,
        tuple(
            Row(row.source_line, {header: _coerce_cell(value) for header, value in row.values.items()})
            for row in result.table.rows
        ),
    )
    warnings = [issue["message"] for issue in ocr.validate_quality(result)["issues"]]
    if not result.table_detected:
        warnings.append("No table layout found; each line of text became a row")

    return {
        "table":             table,
        "detected_format":   suffix.lstrip("."),
        "detected_encoding": None,
        "encoding_info":     None,
        "delimiter":         None,
        "sheet_name":        None,
        "sheet_names":       None,
        "original_rows":     len(table) + 1,
        "original_columns":  len(table.headers),
        "warnings":          warnings,
    }


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

def load_file(path: "str | Path", sheet_name: Optional[str] = None) -> dict:
    """
    Load any supported file into a Table.

    Raises:
        FileNotFoundError  if the file does not exist.
        ParseFailure       if the format is unsupported, empty or unreadable.
    """
    path   = Path(path)
    suffix = path.suffix.lower()

    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    if suffix not in ALL_FORMATS:
        supported = ", ".join(sorted(ALL_FORMATS))
        raise ParseFailure(f"Unsupported format '{suffix or '[missing extension]'}'. Supported: {supported}")

    if suffix in TEXT_FORMATS:
        result = _load_text(path, suffix)
    elif suffix in IMAGE_FORMATS:
        result = _load_image(path, suffix)
    else:
        result = _load_excel(path, suffix, sheet_name)

    for warning in result["warnings"]:
        logger.warning("%s: %s", path.name, warning)
    logger.debug(
        "Loaded %s: %d rows, %d columns",
        path.name,
        len(result["table"]),
        len(result["table"].headers),
    )
    return result


def load_table(path: "str | Path", sheet_name: Optional[str] = None) -> Table:
    return load_file(path, sheet_name)["table"]

"""
Parsing, formatting and validation primitives shared by type inference, the
rule engine and the cleaner.

Numbers and dates arrive in several Indonesian and international spellings;
every parser here returns None instead of raising when a value does not fit.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

import pandas as pd
from rapidfuzz.distance import Levenshtein

from sheet_rapi.constants import (
    EMAIL_RE,
    MONTH_NAMES,
    NPWP_FORMATTED_RE,
    PROVINCE_CODES,
)


# ── Numeric patterns ──────────────────────────────────────────────────────
CURRENCY_MARKER_RE = re.compile(r"^(?:[Rr][Pp]\.?|IDR)\s*")
INDONESIAN_NUMBER_RE = re.compile(r"^\d{1,3}(\.\d{3})*,\d+$")
US_NUMBER_RE = re.compile(r"^\d{1,3}(,\d{3})*\.\d+$")
COMMA_DECIMAL_RE = re.compile(r"^\d+,\d+$")
DOT_GROUPED_RE = re.compile(r"^\d{1,3}(\.\d{3}){2,}$")
SINGLE_DOT_GROUP_RE = re.compile(r"^\d{1,3}\.\d{3}$")
PLAIN_NUMBER_RE = re.compile(r"^(?:\d+(?:\.\d+)?|\.\d+)$")

# ── Date patterns ─────────────────────────────────────────────────────────
SPREADSHEET_EPOCH_OFFSET = 25569
UNIX_EPOCH = datetime(1970, 1, 1)
TWO_DIGIT_YEAR_PIVOT = 50

ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
DMY_DATE_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")
DMY_SHORT_DATE_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2})$")
NAMED_MONTH_DATE_RE = re.compile(r"^(\d{1,2})[\s-]+([A-Za-z]{3,})\.?[\s-]+(\d{4})$")
FALLBACK_DATE_FORMATS = (
    "%Y/%m/%d",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%d.%m.%Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d %Y",
    "%B %d %Y",
)

DATE_PATTERNS = (
    ("YYYY-MM-DD", re.compile(r"^\d{4}-\d{2}-\d{2}$")),
    ("DD/MM/YYYY", re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$")),
    ("DD-MM-YYYY", re.compile(r"^\d{1,2}-\d{1,2}-\d{4}$")),
    ("DD-MMM-YYYY", re.compile(r"^\d{1,2}-[A-Za-z]{3}-\d{4}$")),
    ("DD MMM YYYY", re.compile(r"^\d{1,2}\s+[A-Za-z]+\s+\d{4}$")),
)

SHORT_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
FULL_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

WHITESPACE_RUN_RE = re.compile(r"\s+")
NON_DIGIT_RE = re.compile(r"\D")


def normalize_whitespace(value: Any) -> str:
    return WHITESPACE_RUN_RE.sub(" ", str(value)).strip()


def digits_only(value: Any) -> str:
    return NON_DIGIT_RE.sub("", str(value))


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round like a cashier does: 0.5 always goes up, unlike Python's banker's rounding."""
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def as_plain_number(value: float) -> int | float:
    if float(value).is_integer():
        return int(value)
    return value


# ══════════════════════════════════════════════════════════════════════════
# NUMBERS AND CURRENCY
# ══════════════════════════════════════════════════════════════════════════

def parse_number(value: Any) -> float | None:
    """
    Parse a number written in Indonesian, US or bare-comma style.

    `Rp`/`IDR` markers are stripped first. A dot-grouped integer such as
    `1.234.567` is read as thousands separators; a single dot group is only
    read that way when a currency marker was present (`Rp 1.500`).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None
        return float(value)

    text = str(value).strip()
    negative = False
    if text.startswith("-"):
        negative = True
        text = text[1:].lstrip()

    marker = CURRENCY_MARKER_RE.match(text)
    had_currency = marker is not None
    if marker:
        text = text[marker.end():]
    text = WHITESPACE_RUN_RE.sub("", text)
    if text.startswith("-"):
        negative = True
        text = text[1:]
    elif text.startswith("+"):
        text = text[1:]
    if not text:
        return None

    if INDONESIAN_NUMBER_RE.match(text):
        text = text.replace(".", "").replace(",", ".")
    elif US_NUMBER_RE.match(text):
        text = text.replace(",", "")
    elif COMMA_DECIMAL_RE.match(text):
        text = text.replace(",", ".")
    elif DOT_GROUPED_RE.match(text) or (had_currency and SINGLE_DOT_GROUP_RE.match(text)):
        text = text.replace(".", "")
    else:
        text = text.replace(",", "")

    if not PLAIN_NUMBER_RE.match(text):
        return None
    number = float(text)
    return -number if negative else number


def _group_thousands(integer_digits: str) -> str:
    groups = []
    while len(integer_digits) > 3:
        groups.insert(0, integer_digits[-3:])
        integer_digits = integer_digits[:-3]
    groups.insert(0, integer_digits)
    return ".".join(groups)


def format_number(value: Any, decimals: int = 0) -> Any:
    """Indonesian grouping: `1.234.567,89`. Unparseable input is returned unchanged."""
    number = parse_number(value)
    if number is None:
        return value
    rounded = round_half_up(number, decimals)
    sign = "-" if rounded < 0 else ""
    text = f"{abs(rounded):.{decimals}f}"
    integer_part, _, fraction = text.partition(".")
    grouped = _group_thousands(integer_part)
    return f"{sign}{grouped},{fraction}" if decimals else f"{sign}{grouped}"


def format_currency(value: Any, with_symbol: bool = True) -> Any:
    """`1500000` -> `Rp 1.500.000`, rounded to whole rupiah."""
    if parse_number(value) is None:
        return value
    formatted = format_number(value, 0)
    return f"Rp {formatted}" if with_symbol else formatted


# ══════════════════════════════════════════════════════════════════════════
# DATES
# ══════════════════════════════════════════════════════════════════════════

def expand_two_digit_year(year: int) -> int:
    return 2000 + year if year < TWO_DIGIT_YEAR_PIVOT else 1900 + year


def _build_date(year: int, month: int, day: int) -> datetime | None:
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


def parse_date(value: Any) -> datetime | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, value.hour, value.minute, value.second)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None
        try:
            return UNIX_EPOCH + timedelta(days=float(value) - SPREADSHEET_EPOCH_OFFSET)
        except OverflowError:
            return None

    text = str(value).strip()
    if not text or text.isdigit():
        return None

    match = ISO_DATE_RE.match(text)
    if match:
        parsed = _build_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        if parsed:
            return parsed

    match = DMY_DATE_RE.match(text)
    if match:
        parsed = _build_date(int(match.group(3)), int(match.group(2)), int(match.group(1)))
        if parsed:
            return parsed

    match = DMY_SHORT_DATE_RE.match(text)
    if match:
        year = expand_two_digit_year(int(match.group(3)))
        parsed = _build_date(year, int(match.group(2)), int(match.group(1)))
        if parsed:
            return parsed

    match = NAMED_MONTH_DATE_RE.match(text)
    if match:
        month = MONTH_NAMES.get(match.group(2).lower())
        if month:
            parsed = _build_date(int(match.group(3)), month, int(match.group(1)))
            if parsed:
                return parsed

    for fmt in FALLBACK_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def format_date(value: Any, fmt: str = "DD-MMM-YYYY") -> Any:
    parsed = parse_date(value)
    if parsed is None:
        return value
    dd = f"{parsed.day:02d}"
    mm = f"{parsed.month:02d}"
    yyyy = f"{parsed.year:04d}"
    if fmt == "DD/MM/YYYY":
        return f"{dd}/{mm}/{yyyy}"
    if fmt == "YYYY-MM-DD":
        return f"{yyyy}-{mm}-{dd}"
    if fmt == "DD MMMM YYYY":
        return f"{dd} {FULL_MONTHS[parsed.month - 1]} {yyyy}"
    return f"{dd}-{SHORT_MONTHS[parsed.month - 1]}-{yyyy}"


def detect_date_pattern(value: Any) -> str:
    text = str(value).strip()
    for label, pattern in DATE_PATTERNS:
        if pattern.match(text):
            return label
    return "OTHER"


# ══════════════════════════════════════════════════════════════════════════
# CONTACT DETAILS
# ══════════════════════════════════════════════════════════════════════════

def is_valid_email(value: Any) -> bool:
    text = str(value)
    return bool(EMAIL_RE.match(text)) and ".." not in text


def fix_email(value: Any) -> str:
    text = WHITESPACE_RUN_RE.sub("", str(value).strip().lower())
    text = re.sub(r"@{2,}", "@", text)
    text = re.sub(r"\.{2,}", ".", text)
    return text.rstrip(".")


def _local_phone_digits(value: Any) -> str:
    digits = digits_only(value)
    if digits.startswith("62"):
        return "0" + digits[2:]
    if digits.startswith("8"):
        return "0" + digits
    return digits


def is_valid_phone(value: Any) -> bool:
    # Same local 08 digits that format_phone groups.
    digits = _local_phone_digits(value)
    return 10 <= len(digits) <= 13 and digits.startswith("08")


def format_phone(value: Any) -> Any:
    """`081234567890` -> `+62 812-3456-7890`; anything outside 10-13 digits is returned as-is."""
    digits = _local_phone_digits(value)
    if not 10 <= len(digits) <= 13:
        return value
    grouped = f"{digits[:4]}-{digits[4:8]}-{digits[8:]}"
    return "+62 " + grouped[1:]


# ══════════════════════════════════════════════════════════════════════════
# IDENTITY DOCUMENTS
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class NikValidation:
    is_valid: bool
    errors: tuple[str, ...]
    province: str | None = None
    province_code: str | None = None
    regency_code: str | None = None
    district_code: str | None = None
    birth_date: date | None = None
    gender: str | None = None
    sequence: str | None = None


def validate_nik(value: Any) -> NikValidation:
    """
    Decode a 16-digit NIK: province(2) regency(2) district(2) DDMMYY(6) sequence(4).

    Women have 40 added to the birth day.
    """
    digits = digits_only(value)
    if len(digits) != 16:
        return NikValidation(False, (f"Invalid length: {len(digits)} (should be 16)",))

    errors: list[str] = []
    province_code = digits[0:2]
    if province_code not in PROVINCE_CODES:
        errors.append(f"Invalid province code: {province_code}")

    day = int(digits[6:8])
    month = int(digits[8:10])
    year = expand_two_digit_year(int(digits[10:12]))
    female = day > 40
    if female:
        day -= 40

    birth_date = None
    try:
        birth_date = date(year, month, day)
    except ValueError:
        errors.append("Invalid birth date in NIK")

    if errors:
        return NikValidation(False, tuple(errors))
    return NikValidation(
        True,
        (),
        province=PROVINCE_CODES[province_code],
        province_code=province_code,
        regency_code=digits[2:4],
        district_code=digits[4:6],
        birth_date=birth_date,
        gender="Female" if female else "Male",
        sequence=digits[12:16],
    )


def format_nik(value: Any) -> Any:
    digits = digits_only(value)
    if len(digits) != 16:
        return value
    return f"{digits[:6]}.{digits[6:12]}.{digits[12:]}"


def is_valid_npwp(value: Any) -> bool:
    return len(digits_only(value)) == 15


def is_formatted_npwp(value: Any) -> bool:
    return bool(NPWP_FORMATTED_RE.match(str(value).strip()))


def format_npwp(value: Any) -> Any:
    """`XX.XXX.XXX.X-XXX.XXX`"""
    digits = digits_only(value)
    if len(digits) != 15:
        return value
    return f"{digits[:2]}.{digits[2:5]}.{digits[5:8]}.{digits[8]}-{digits[9:12]}.{digits[12:]}"


# ══════════════════════════════════════════════════════════════════════════
# TEXT CASE
# ══════════════════════════════════════════════════════════════════════════

def to_title_case(value: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in value.split(" "))


def to_sentence_case(value: str) -> str:
    return value[:1].upper() + value[1:].lower()


def apply_text_case(value: str, style: str) -> str:
    if style == "upper":
        return value.upper()
    if style == "lower":
        return value.lower()
    if style == "title":
        return to_title_case(value)
    if style == "sentence":
        return to_sentence_case(value)
    raise ValueError(f"Unknown text case '{style}'")


def detect_case_style(value: str) -> str | None:
    if not any(ch.isalpha() for ch in value):
        return None
    if value == value.upper():
        return "upper"
    if value == value.lower():
        return "lower"
    if value == to_title_case(value):
        return "title"
    return "mixed"


# ══════════════════════════════════════════════════════════════════════════
# SIMILARITY AND STATISTICS
# ══════════════════════════════════════════════════════════════════════════

def string_similarity(left: Any, right: Any) -> float:
    """Normalised Levenshtein similarity in [0, 1], case- and edge-whitespace-insensitive."""
    a = str(left).strip().lower()
    b = str(right).strip().lower()
    if a == b:
        return 1.0
    return Levenshtein.normalized_similarity(a, b)


def index_quartiles(values: list[float]) -> tuple[float, float]:
    ordered = sorted(values)
    n = len(ordered)
    return ordered[int(n * 0.25)], ordered[int(n * 0.75)]


def calculate_stats(values: Iterable[Any]) -> dict[str, float]:
    numbers = [number for number in (parse_number(value) for value in values) if number is not None]
    if not numbers:
        return {"count": 0, "sum": 0.0, "average": 0.0, "min": 0.0, "max": 0.0, "median": 0.0, "std_dev": 0.0}
    series = pd.Series(numbers, dtype="float64")
    return {
        "count": int(series.count()),
        "sum": float(series.sum()),
        "average": float(series.mean()),
        "min": float(series.min()),
        "max": float(series.max()),
        "median": float(series.median()),
        "std_dev": float(series.std(ddof=0)),
    }

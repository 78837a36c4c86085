"""Shared vocabulary for sheet-rapi: severities, issue types, column types and Indonesian reference data."""

from __future__ import annotations

import re


# ── Severity ──────────────────────────────────────────────────────────────
AUTO_FIX = "auto_fix"
NEEDS_REVIEW = "needs_review"
CRITICAL = "critical"
SEVERITIES = (AUTO_FIX, NEEDS_REVIEW, CRITICAL)

# ── Analysis modes ────────────────────────────────────────────────────────
ANALYSIS_MODES = ("auto", "finance", "sales", "data", "strict")

# ── Issue types ───────────────────────────────────────────────────────────
DATE_INCONSISTENT = "date_inconsistent"
NUMBER_FORMAT = "number_format"
CURRENCY_FORMAT = "currency_format"
PHONE_FORMAT = "phone_format"
EMAIL_FORMAT = "email_format"
TEXT_CASE = "text_case"
WHITESPACE = "whitespace"

DUPLICATE_ROW = "duplicate_row"
DUPLICATE_FUZZY = "duplicate_fuzzy"
EMPTY_ROW = "empty_row"
EMPTY_CELL = "empty_cell"

NUMERIC_OUTLIER = "numeric_outlier"
NEGATIVE_INVALID = "negative_invalid"
FUTURE_DATE = "future_date"
PAST_DATE_INVALID = "past_date_invalid"

CALCULATION_ERROR = "calculation_error"
SEQUENCE_GAP = "sequence_gap"

NIK_INVALID = "nik_invalid"
NPWP_INVALID = "npwp_invalid"
NPWP_FORMAT = "npwp_format"
TAX_CALCULATION = "tax_calculation"

NO_HEADER = "no_header"
DUPLICATE_HEADER = "duplicate_header"
MIXED_DATA_TYPE = "mixed_data_type"

# ── Column types ──────────────────────────────────────────────────────────
STRING = "string"
NUMBER = "number"
CURRENCY = "currency"
DATE = "date"
EMAIL = "email"
PHONE = "phone"
NIK = "nik"
NPWP = "npwp"
PERCENTAGE = "percentage"
BOOLEAN = "boolean"
EMPTY = "empty"

# Classification order; earlier entries win ties in the column vote.
COLUMN_TYPE_ORDER = (EMAIL, NIK, NPWP, CURRENCY, PHONE, PERCENTAGE, DATE, NUMBER, BOOLEAN, STRING)
NUMERIC_COLUMN_TYPES = {NUMBER, CURRENCY}

# ── Header keywords (case-insensitive substring match) ───────────────────
IDENTITY_KEYWORDS = ("name", "email", "phone", "id", "nama", "telepon")
SEQUENCE_KEYWORDS = ("no", "number", "invoice", "id")
NON_NEGATIVE_KEYWORDS = ("qty", "quantity", "jumlah", "stock", "price", "harga", "amount", "total")
QTY_KEYWORDS = ("qty", "quantity", "jumlah")
PRICE_KEYWORDS = ("price", "harga", "unit")
TOTAL_KEYWORDS = ("total", "amount", "subtotal")
NIK_KEYWORDS = ("nik", "ktp")
NPWP_KEYWORDS = ("npwp",)
DPP_KEYWORDS = ("dpp", "dasar")
PPN_KEYWORDS = ("ppn", "vat", "tax")

BOOLEAN_TOKENS = {"true", "false", "yes", "no", "ya", "tidak", "1", "0"}

# ── Indonesia reference data ──────────────────────────────────────────────
PPN_RATE = 0.11

PROVINCE_CODES = {
    "11": "Aceh", "12": "Sumatera Utara", "13": "Sumatera Barat",
    "14": "Riau", "15": "Jambi", "16": "Sumatera Selatan",
    "17": "Bengkulu", "18": "Lampung", "19": "Bangka Belitung",
    "21": "Kepulauan Riau", "31": "DKI Jakarta", "32": "Jawa Barat",
    "33": "Jawa Tengah", "34": "DI Yogyakarta", "35": "Jawa Timur",
    "36": "Banten", "51": "Bali", "52": "NTB", "53": "NTT",
    "61": "Kalimantan Barat", "62": "Kalimantan Tengah",
    "63": "Kalimantan Selatan", "64": "Kalimantan Timur",
    "65": "Kalimantan Utara", "71": "Sulawesi Utara",
    "72": "Sulawesi Tengah", "73": "Sulawesi Selatan",
    "74": "Sulawesi Tenggara", "75": "Gorontalo",
    "76": "Sulawesi Barat", "81": "Maluku", "82": "Maluku Utara",
    "91": "Papua", "92": "Papua Barat",
}

MONTH_NAMES = {
    "jan": 1, "january": 1, "januari": 1,
    "feb": 2, "february": 2, "februari": 2, "peb": 2, "pebruari": 2,
    "mar": 3, "march": 3, "maret": 3,
    "apr": 4, "april": 4,
    "may": 5, "mei": 5,
    "jun": 6, "june": 6, "juni": 6,
    "jul": 7, "july": 7, "juli": 7,
    "aug": 8, "august": 8, "agu": 8, "agt": 8, "agustus": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10, "okt": 10, "oktober": 10,
    "nov": 11, "november": 11, "nop": 11, "nopember": 11,
    "dec": 12, "december": 12, "des": 12, "desember": 12,
}

# ── Patterns ──────────────────────────────────────────────────────────────
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_ID_RE = re.compile(r"^(\+62|62|0)[\s.-]?(\d{2,4})[\s.-]?(\d{3,4})[\s.-]?(\d{3,4})$")
PHONE_CHARS_RE = re.compile(r"^\+?[\d\s().-]+$")
PHONE_DIGITS_RE = re.compile(r"^(?:62|0)\d{8,13}$")
CURRENCY_ID_RE = re.compile(r"^(?:[Rr][Pp]\.?|IDR)\s?-?[\d.,]+$")
NPWP_FORMATTED_RE = re.compile(r"^\d{2}\.\d{3}\.\d{3}\.\d-\d{3}\.\d{3}$")
DATE_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
GENERATED_HEADER_RE = re.compile(r"^Column_\d+$")

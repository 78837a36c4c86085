"""
Cell-level canonicalisation.

Each transform returns None when a cell should be left alone, so a second
pass over already-clean data changes nothing.
"""

from __future__ import annotations

from typing import Any, Iterable

from sheet_rapi.constants import CURRENCY_FORMAT, DATE_INCONSISTENT, EMAIL_FORMAT, NPWP_FORMAT, NUMBER_FORMAT, PHONE_FORMAT, TEXT_CASE, WHITESPACE
from sheet_rapi.heal_modules.changelog import ChangeLog, map_cells
from sheet_rapi.helpers import (
    apply_text_case,
    as_plain_number,
    fix_email,
    format_currency,
    format_date,
    format_npwp,
    format_phone,
    is_formatted_npwp,
    is_valid_email,
    is_valid_npwp,
    is_valid_phone,
    normalize_whitespace,
    parse_date,
    parse_number,
)
from sheet_rapi.table import Table, is_blank


def _whitespace(value: Any) -> Any:
    if isinstance(value, str):
        return normalize_whitespace(value)
    return None


def _currency(value: Any) -> Any:
    if is_blank(value) or parse_number(value) is None:
        return None
    return format_currency(value)


def _number(value: Any) -> Any:
    if not isinstance(value, str):
        return None
    number = parse_number(value)
    return None if number is None else as_plain_number(number)


def _phone(value: Any) -> Any:
    if is_blank(value) or not is_valid_phone(value):
        return None
    return format_phone(value)


def _email(value: Any) -> Any:
    if is_blank(value):
        return None
    fixed = fix_email(value)
    return fixed if is_valid_email(fixed) else None


def _npwp(value: Any) -> Any:
    if is_blank(value) or not is_valid_npwp(value) or is_formatted_npwp(value):
        return None
    return format_npwp(value)


def normalize_whitespace_cells(table: Table, log: ChangeLog) -> Table:
    table, changed = map_cells(table, table.headers, _whitespace, log, WHITESPACE, "trim_whitespace")
    log.summary("normalize_whitespace", changed, f"Trimmed whitespace in {changed} cells")
    return table


def canonicalize_dates(table: Table, columns: Iterable[str], date_format: str, log: ChangeLog) -> Table:
    def transform(value: Any) -> Any:
        if is_blank(value) or parse_date(value) is None:
            return None
        return format_date(value, date_format)

    table, changed = map_cells(table, columns, transform, log, DATE_INCONSISTENT, "format_date")
    log.summary("standardize_dates", changed, f"Converted {changed} dates to {date_format}")
    return table


def canonicalize_currency(table: Table, columns: Iterable[str], log: ChangeLog) -> Table:
    table, changed = map_cells(table, columns, _currency, log, CURRENCY_FORMAT, "format_currency")
    log.summary("standardize_currency", changed, f"Formatted {changed} amounts as Rupiah")
    return table


def coerce_numbers(table: Table, columns: Iterable[str], log: ChangeLog) -> Table:
    table, changed = map_cells(table, columns, _number, log, NUMBER_FORMAT, "to_number")
    log.summary("convert_numbers", changed, f"Converted {changed} text values to numbers")
    return table


def canonicalize_phones(table: Table, columns: Iterable[str], log: ChangeLog) -> Table:
    table, changed = map_cells(table, columns, _phone, log, PHONE_FORMAT, "format_phone")
    log.summary("standardize_phones", changed, f"Formatted {changed} phone numbers")
    return table


def canonicalize_emails(table: Table, columns: Iterable[str], log: ChangeLog) -> Table:
    table, changed = map_cells(table, columns, _email, log, EMAIL_FORMAT, "fix_email")
    log.summary("fix_emails", changed, f"Cleaned up {changed} email addresses")
    return table


def reformat_npwp(table: Table, columns: Iterable[str], log: ChangeLog) -> Table:
    table, changed = map_cells(table, columns, _npwp, log, NPWP_FORMAT, "format_npwp")
    log.summary("format_npwp", changed, f"Formatted {changed} NPWP numbers")
    return table


def apply_case(table: Table, columns: Iterable[str], style: str, log: ChangeLog) -> Table:
    def transform(value: Any) -> Any:
        if not isinstance(value, str) or not value:
            return None
        return apply_text_case(value, style)

    table, changed = map_cells(table, columns, transform, log, TEXT_CASE, f"{style}_case")
    log.summary("apply_text_case", changed, f"Converted {changed} values to {style} case")
    return table

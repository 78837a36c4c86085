"""Per-column format consistency checks, dispatched on the inferred column type."""

from __future__ import annotations

import re
from collections import Counter

from sheet_rapi.constants import (
    CRITICAL,
    CURRENCY,
    CURRENCY_FORMAT,
    DATE,
    DATE_INCONSISTENT,
    EMAIL,
    EMAIL_FORMAT,
    FUTURE_DATE,
    NUMBER,
    NUMBER_FORMAT,
    PAST_DATE_INVALID,
    PHONE,
    PHONE_FORMAT,
    STRING,
    TEXT_CASE,
    WHITESPACE,
)
from sheet_rapi.diagnose_modules.shared import AnalysisContext
from sheet_rapi.helpers import (
    detect_case_style,
    detect_date_pattern,
    fix_email,
    format_currency,
    format_date,
    format_phone,
    is_valid_email,
    is_valid_phone,
    parse_date,
    parse_number,
)


IRREGULAR_SPACING_RE = re.compile(r"\s{2,}")


def check_dates(ctx: AnalysisContext, header: str) -> None:
    patterns: Counter[str] = Counter()
    for row, value in ctx.filled(header):
        parsed = parse_date(value)
        if parsed is None:
            continue
        patterns[detect_date_pattern(value)] += 1

        if parsed.date() > ctx.today:
            ctx.issues.add(
                FUTURE_DATE,
                f'Future date {format_date(parsed)} in column "{header}"',
                suggestion="Check whether the year was mistyped",
                row=row.source_line,
                column=header,
                value=str(value),
            )
        elif parsed.year < ctx.settings.min_valid_year:
            ctx.issues.add(
                PAST_DATE_INVALID,
                f'Implausible date {format_date(parsed)} in column "{header}"',
                suggestion=f"Dates before {ctx.settings.min_valid_year} are usually typos",
                row=row.source_line,
                column=header,
                value=str(value),
            )

    if len(patterns) > 1:
        dominant_count = patterns.most_common(1)[0][1]
        ctx.issues.add(
            DATE_INCONSISTENT,
            f'Column "{header}" mixes {len(patterns)} date formats',
            suggestion="Convert every date to one format",
            column=header,
            affected_rows=sum(patterns.values()) - dominant_count,
            details={"patterns": dict(patterns)},
        )


def check_currency(ctx: AnalysisContext, header: str) -> None:
    mismatched = [
        (row, value)
        for row, value in ctx.filled(header)
        if parse_number(value) is not None and format_currency(value) != value
    ]
    if mismatched:
        ctx.issues.add(
            CURRENCY_FORMAT,
            f'{len(mismatched)} amounts in column "{header}" are not written as Rupiah',
            suggestion="Format as 'Rp 1.234.567'",
            column=header,
            affected_rows=len(mismatched),
            details={"examples": ctx.sample([str(value) for _, value in mismatched])},
        )


def check_numbers(ctx: AnalysisContext, header: str) -> None:
    as_text = [
        (row, value)
        for row, value in ctx.filled(header)
        if isinstance(value, str) and parse_number(value) is not None
    ]
    if as_text:
        ctx.issues.add(
            NUMBER_FORMAT,
            f'{len(as_text)} numbers in column "{header}" are stored as text',
            suggestion="Convert to numeric values",
            column=header,
            affected_rows=len(as_text),
            details={"examples": ctx.sample([value for _, value in as_text])},
        )


def check_phones(ctx: AnalysisContext, header: str) -> None:
    invalid = []
    unformatted = []
    for row, value in ctx.filled(header):
        text = str(value).strip()
        if not is_valid_phone(text):
            invalid.append(text)
        elif format_phone(text) != value:
            unformatted.append(text)

    if invalid or unformatted:
        ctx.issues.add(
            PHONE_FORMAT,
            f'{len(invalid) + len(unformatted)} phone numbers in column "{header}" need formatting',
            suggestion="Format as '+62 812-3456-7890'",
            column=header,
            affected_rows=len(invalid) + len(unformatted),
            details={
                "invalid": len(invalid),
                "unformatted": len(unformatted),
                "examples": ctx.sample(invalid + unformatted),
            },
        )


def check_emails(ctx: AnalysisContext, header: str) -> None:
    fixable = []
    for row, value in ctx.filled(header):
        text = str(value)
        fixed = fix_email(text)
        if fixed == text and is_valid_email(text):
            continue

        if is_valid_email(fixed):
            fixable.append(text)
        else:
            ctx.issues.add(
                EMAIL_FORMAT,
                f'Invalid email "{text}" in row {row.source_line}',
                suggestion="Correct the address by hand",
                severity=CRITICAL,
                row=row.source_line,
                column=header,
                value=text,
            )

    if fixable:
        ctx.issues.add(
            EMAIL_FORMAT,
            f'{len(fixable)} emails in column "{header}" need cleanup',
            suggestion="Lowercase and remove stray characters",
            column=header,
            affected_rows=len(fixable),
            details={"examples": ctx.sample(fixable)},
        )


def check_text(ctx: AnalysisContext, header: str) -> None:
    values = [value for _, value in ctx.filled(header) if isinstance(value, str)]

    spacing = [value for value in values if value != value.strip() or IRREGULAR_SPACING_RE.search(value)]
    if spacing:
        ctx.issues.add(
            WHITESPACE,
            f'{len(spacing)} values in column "{header}" have extra spaces',
            suggestion="Trim and collapse repeated spaces",
            column=header,
            affected_rows=len(spacing),
            details={"examples": ctx.sample([repr(value) for value in spacing])},
        )

    styles = Counter(style for style in (detect_case_style(value) for value in values) if style)
    total = sum(styles.values())
    if not total:
        return
    dominant, dominant_count = styles.most_common(1)[0]
    settings = ctx.settings
    if dominant_count < total * settings.text_case_dominant_ratio and styles["mixed"] < total * settings.text_case_mixed_ratio:
        ctx.issues.add(
            TEXT_CASE,
            f'Column "{header}" mixes letter cases',
            suggestion=f"Consider standardising to {dominant} case",
            column=header,
            details=dict(styles),
        )


FORMAT_CHECKS = {
    DATE: check_dates,
    CURRENCY: check_currency,
    NUMBER: check_numbers,
    PHONE: check_phones,
    EMAIL: check_emails,
    STRING: check_text,
}


def check_formats(ctx: AnalysisContext) -> None:
    for header in ctx.table.headers:
        check = FORMAT_CHECKS.get(ctx.type_of(header))
        if check:
            check(ctx, header)

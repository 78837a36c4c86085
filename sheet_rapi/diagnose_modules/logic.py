from __future__ import annotations

import re

from sheet_rapi.constants import (
    CALCULATION_ERROR,
    PRICE_KEYWORDS,
    QTY_KEYWORDS,
    SEQUENCE_GAP,
    SEQUENCE_KEYWORDS,
    TOTAL_KEYWORDS,
)
from sheet_rapi.diagnose_modules.shared import AnalysisContext, find_column, header_matches
from sheet_rapi.helpers import as_plain_number, parse_number


LAST_DIGIT_RUN_RE = re.compile(r"(\d+)(?!.*\d)")


def find_calculation_columns(headers) -> tuple[str, str, str] | None:
    qty = find_column(headers, QTY_KEYWORDS)
    price = find_column(headers, PRICE_KEYWORDS, exclude=[qty] if qty else [])
    if not qty or not price:
        return None
    total = find_column(headers, TOTAL_KEYWORDS, exclude=[qty, price])
    if not total:
        return None
    return qty, price, total


def within_tolerance(expected: float, actual: float, ratio: float, minimum: float) -> bool:
    return abs(expected - actual) <= max(minimum, abs(expected) * ratio)


def check_logic(ctx: AnalysisContext) -> None:
    check_calculations(ctx)
    check_sequences(ctx)


def check_calculations(ctx: AnalysisContext) -> None:
    columns = find_calculation_columns(ctx.table.headers)
    if columns is None:
        return
    qty_col, price_col, total_col = columns
    settings = ctx.settings

    violations = []
    for row in ctx.table.rows:
        qty = parse_number(row.get(qty_col))
        price = parse_number(row.get(price_col))
        if qty is None or price is None:
            continue
        expected = qty * price
        total = parse_number(row.get(total_col))
        if total is not None and within_tolerance(expected, total, settings.calc_tolerance_ratio, settings.calc_tolerance_min):
            continue
        violations.append({
            "row": row.source_line,
            "expected": as_plain_number(expected),
            "actual": row.get(total_col),
        })

    if violations:
        ctx.issues.add(
            CALCULATION_ERROR,
            f'{len(violations)} rows where "{total_col}" is not "{qty_col}" x "{price_col}"',
            suggestion=f"Recalculate {total_col} = {qty_col} x {price_col}",
            column=total_col,
            affected_rows=len(violations),
            details=ctx.sample(violations),
            fix_info={"qty_column": qty_col, "price_column": price_col, "total_column": total_col},
        )


def check_sequences(ctx: AnalysisContext) -> None:
    """Report small gaps in numbered columns; more than `sequence_max_missing` means the column is not a sequence."""
    settings = ctx.settings
    for header in ctx.table.headers:
        if not header_matches(header, SEQUENCE_KEYWORDS):
            continue

        numbers = set()
        for _, value in ctx.filled(header):
            match = LAST_DIGIT_RUN_RE.search(str(value))
            if match:
                numbers.add(int(match.group(1)))
        if len(numbers) < settings.sequence_min_values:
            continue

        ordered = sorted(numbers)
        steps = list(zip(ordered, ordered[1:]))
        missing_count = sum(high - low - 1 for low, high in steps)
        if not 0 < missing_count <= settings.sequence_max_missing:
            continue

        missing = [number for low, high in steps for number in range(low + 1, high)]
        ctx.issues.add(
            SEQUENCE_GAP,
            f'Column "{header}" skips {missing_count} number(s): {", ".join(map(str, missing))}',
            suggestion="Check whether these records were deleted or never entered",
            column=header,
            details={"missing": missing},
        )

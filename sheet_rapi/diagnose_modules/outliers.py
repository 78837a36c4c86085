from __future__ import annotations

from sheet_rapi.constants import NEGATIVE_INVALID, NON_NEGATIVE_KEYWORDS, NUMERIC_COLUMN_TYPES, NUMERIC_OUTLIER
from sheet_rapi.diagnose_modules.shared import AnalysisContext, header_matches
from sheet_rapi.helpers import calculate_stats, index_quartiles, parse_number


def check_outliers(ctx: AnalysisContext) -> None:
    for header in ctx.table.headers:
        if ctx.type_of(header) in NUMERIC_COLUMN_TYPES:
            _check_iqr(ctx, header)
        if header_matches(header, NON_NEGATIVE_KEYWORDS):
            _check_negatives(ctx, header)


def _parsed_cells(ctx: AnalysisContext, header: str) -> list[tuple]:
    cells = []
    for row, value in ctx.filled(header):
        number = parse_number(value)
        if number is not None:
            cells.append((row, value, number))
    return cells


def _check_iqr(ctx: AnalysisContext, header: str) -> None:
    settings = ctx.settings
    cells = _parsed_cells(ctx, header)
    if len(cells) < settings.outlier_min_values:
        return

    numbers = [number for _, _, number in cells]
    q1, q3 = index_quartiles(numbers)
    spread = (q3 - q1) * settings.outlier_iqr_multiplier
    lower, upper = q1 - spread, q3 + spread
    stats = calculate_stats(numbers)

    for row, value, number in cells:
        if lower <= number <= upper:
            continue
        deviation = (number - stats["average"]) / stats["std_dev"] if stats["std_dev"] else 0.0
        ctx.issues.add(
            NUMERIC_OUTLIER,
            f'Unusual value {value} in column "{header}" ({deviation:+.1f} std dev from the mean)',
            suggestion="Check whether the value was mistyped",
            row=row.source_line,
            column=header,
            value=value,
            details={
                "lower_bound": lower,
                "upper_bound": upper,
                "deviation": round(deviation, 2),
            },
        )


def _check_negatives(ctx: AnalysisContext, header: str) -> None:
    for row, value, number in _parsed_cells(ctx, header):
        if number < 0:
            ctx.issues.add(
                NEGATIVE_INVALID,
                f'Negative value {value} in column "{header}"',
                suggestion="Quantities, prices and amounts are normally positive",
                row=row.source_line,
                column=header,
                value=value,
            )

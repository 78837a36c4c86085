"""NIK, NPWP and PPN checks."""

from __future__ import annotations

from sheet_rapi.constants import (
    DPP_KEYWORDS,
    NIK,
    NIK_INVALID,
    NIK_KEYWORDS,
    NPWP,
    NPWP_FORMAT,
    NPWP_INVALID,
    NPWP_KEYWORDS,
    PPN_KEYWORDS,
    TAX_CALCULATION,
)
from sheet_rapi.diagnose_modules.shared import AnalysisContext, find_column, header_matches
from sheet_rapi.helpers import as_plain_number, is_formatted_npwp, is_valid_npwp, parse_number, round_half_up, validate_nik


NIK_EXAMPLE_LIMIT = 5


def is_nik_column(ctx: AnalysisContext, header: str) -> bool:
    return ctx.type_of(header) == NIK or header_matches(header, NIK_KEYWORDS)


def is_npwp_column(ctx: AnalysisContext, header: str) -> bool:
    return ctx.type_of(header) == NPWP or header_matches(header, NPWP_KEYWORDS)


def find_tax_columns(headers) -> tuple[str, str] | None:
    dpp = find_column(headers, DPP_KEYWORDS)
    if not dpp:
        return None
    ppn = find_column(headers, PPN_KEYWORDS, exclude=[dpp])
    if not ppn:
        return None
    return dpp, ppn


def check_indonesia(ctx: AnalysisContext) -> None:
    for header in ctx.table.headers:
        if is_nik_column(ctx, header):
            check_nik(ctx, header)
        elif is_npwp_column(ctx, header):
            check_npwp(ctx, header)
    check_tax(ctx)


def check_nik(ctx: AnalysisContext, header: str) -> None:
    invalid = []
    for row, value in ctx.filled(header):
        result = validate_nik(value)
        if not result.is_valid:
            invalid.append({"row": row.source_line, "value": str(value), "errors": list(result.errors)})

    if invalid:
        ctx.issues.add(
            NIK_INVALID,
            f'{len(invalid)} invalid NIK values in column "{header}"',
            suggestion="NIK must be 16 digits with a valid province code and birth date",
            column=header,
            affected_rows=len(invalid),
            details=invalid[:NIK_EXAMPLE_LIMIT],
        )


def check_npwp(ctx: AnalysisContext, header: str) -> None:
    invalid = []
    unformatted = []
    for row, value in ctx.filled(header):
        if not is_valid_npwp(value):
            invalid.append({"row": row.source_line, "value": str(value)})
        elif not is_formatted_npwp(value):
            unformatted.append({"row": row.source_line, "value": str(value)})

    if invalid:
        ctx.issues.add(
            NPWP_INVALID,
            f'{len(invalid)} invalid NPWP values in column "{header}"',
            suggestion="NPWP must be 15 digits",
            column=header,
            affected_rows=len(invalid),
            details=invalid[:NIK_EXAMPLE_LIMIT],
        )
    if unformatted:
        ctx.issues.add(
            NPWP_FORMAT,
            f'{len(unformatted)} NPWP values in column "{header}" are not formatted',
            suggestion="Format as XX.XXX.XXX.X-XXX.XXX",
            column=header,
            affected_rows=len(unformatted),
            details=ctx.sample(unformatted),
        )


def check_tax(ctx: AnalysisContext) -> None:
    columns = find_tax_columns(ctx.table.headers)
    if columns is None:
        return
    dpp_col, ppn_col = columns
    rate = ctx.settings.ppn_rate

    violations = []
    for row in ctx.table.rows:
        dpp = parse_number(row.get(dpp_col))
        if dpp is None or dpp <= 0:
            continue
        expected = round_half_up(dpp * rate)
        ppn = parse_number(row.get(ppn_col))
        if ppn is not None and abs(expected - ppn) <= ctx.settings.tax_tolerance:
            continue
        violations.append({"row": row.source_line, "expected": as_plain_number(expected), "actual": row.get(ppn_col)})

    if violations:
        ctx.issues.add(
            TAX_CALCULATION,
            f'{len(violations)} rows where "{ppn_col}" is not {rate * 100:g}% of "{dpp_col}"',
            suggestion=f"Recalculate {ppn_col} = round({dpp_col} x {rate:g})",
            column=ppn_col,
            affected_rows=len(violations),
            details=ctx.sample(violations),
            fix_info={"dpp_column": dpp_col, "ppn_column": ppn_col, "rate": rate},
        )

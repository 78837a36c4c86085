"""Recompute totals and PPN from the columns named in an issue's fix_info."""

from __future__ import annotations

from typing import Any, Mapping

from sheet_rapi.column_detector import ColumnTypeInfo
from sheet_rapi.constants import CALCULATION_ERROR, CURRENCY, TAX_CALCULATION
from sheet_rapi.errors import FixConflict
from sheet_rapi.heal_modules.changelog import ChangeLog
from sheet_rapi.helpers import as_plain_number, format_currency, parse_number, round_half_up
from sheet_rapi.table import Table


def _required_columns(table: Table, fix_info: Mapping[str, Any] | None, keys: tuple[str, ...]) -> list[str]:
    if not fix_info:
        raise FixConflict("issue carries no fix_info")
    try:
        columns = [fix_info[key] for key in keys]
    except KeyError as exc:
        raise FixConflict(f"fix_info is missing {exc.args[0]}") from exc
    missing = [column for column in columns if column not in table.headers]
    if missing:
        raise FixConflict(f"column(s) no longer present: {', '.join(missing)}")
    return columns


def _render(value: float, column: str, column_types: Mapping[str, ColumnTypeInfo]) -> Any:
    info = column_types.get(column)
    if info is not None and info.type == CURRENCY:
        return format_currency(value)
    return as_plain_number(value)


def repair_calculations(
    table: Table,
    fix_info: Mapping[str, Any] | None,
    column_types: Mapping[str, ColumnTypeInfo],
    log: ChangeLog,
) -> Table:
    """Write qty x price into the total column wherever it is missing or differs."""
    qty_col, price_col, total_col = _required_columns(table, fix_info, ("qty_column", "price_column", "total_column"))

    changed = 0
    rows = []
    for row in table.rows:
        qty = parse_number(row.get(qty_col))
        price = parse_number(row.get(price_col))
        if qty is None or price is None:
            rows.append(row)
            continue

        expected = qty * price
        current = row.get(total_col)
        target = _render(expected, total_col, column_types)
        if current == target or parse_number(current) == expected:
            rows.append(row)
            continue

        row = row.with_value(total_col, target)
        log.cell(CALCULATION_ERROR, "recalculate_total", row, total_col, current, target)
        changed += 1
        rows.append(row)

    log.summary("fix_calculations", changed, f"Recalculated {changed} {total_col} values")
    return table.with_rows(rows) if changed else table


def repair_tax(
    table: Table,
    fix_info: Mapping[str, Any] | None,
    column_types: Mapping[str, ColumnTypeInfo],
    log: ChangeLog,
    tolerance: float = 1.0,
) -> Table:
    """Write round(dpp x rate) into the PPN column wherever it is missing or off by more than `tolerance`."""
    dpp_col, ppn_col = _required_columns(table, fix_info, ("dpp_column", "ppn_column"))
    rate = fix_info.get("rate")
    if not isinstance(rate, (int, float)) or rate <= 0:
        raise FixConflict(f"invalid tax rate {rate!r}")

    changed = 0
    rows = []
    for row in table.rows:
        dpp = parse_number(row.get(dpp_col))
        if dpp is None or dpp <= 0:
            rows.append(row)
            continue

        expected = round_half_up(dpp * rate)
        current = row.get(ppn_col)
        ppn = parse_number(current)
        if ppn is not None and abs(expected - ppn) <= tolerance:
            rows.append(row)
            continue

        target = _render(expected, ppn_col, column_types)
        row = row.with_value(ppn_col, target)
        log.cell(TAX_CALCULATION, "recalculate_ppn", row, ppn_col, current, target)
        changed += 1
        rows.append(row)

    log.summary("fix_tax", changed, f"Recalculated {changed} {ppn_col} values")
    return table.with_rows(rows) if changed else table

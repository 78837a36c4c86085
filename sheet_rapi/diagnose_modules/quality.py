from __future__ import annotations

from sheet_rapi.constants import EMPTY, EMPTY_CELL, MIXED_DATA_TYPE
from sheet_rapi.diagnose_modules.shared import AnalysisContext
from sheet_rapi.table import is_blank


def check_quality(ctx: AnalysisContext) -> None:
    settings = ctx.settings
    total = len(ctx.table)

    for header in ctx.table.headers:
        empty = sum(1 for value in ctx.table.column(header) if is_blank(value))
        ratio = empty / total if total else 0.0
        if 0 < ratio < 1 and ratio > settings.empty_cell_ratio:
            ctx.issues.add(
                EMPTY_CELL,
                f'Column "{header}" has {ratio * 100:.1f}% empty values',
                suggestion="Review whether these cells should be filled",
                column=header,
                affected_rows=empty,
                details={"empty_ratio": round(ratio, 4), "empty_count": empty},
            )

        info = ctx.column_types.get(header)
        if (
            info is not None
            and info.type != EMPTY
            and info.sample_size >= settings.mixed_type_min_samples
            and info.confidence < settings.mixed_type_confidence
        ):
            ctx.issues.add(
                MIXED_DATA_TYPE,
                f'Column "{header}" mixes value types (only {info.confidence * 100:.0f}% are {info.type})',
                suggestion="Split the column or correct the odd values",
                column=header,
                affected_rows=info.sample_size - info.distribution.get(info.type, 0),
                details={"distribution": dict(info.distribution)},
            )

from __future__ import annotations

from sheet_rapi.constants import DUPLICATE_HEADER, EMPTY_ROW, GENERATED_HEADER_RE, NO_HEADER
from sheet_rapi.diagnose_modules.shared import AnalysisContext


def check_structure(ctx: AnalysisContext) -> None:
    headers = ctx.table.headers

    for index, header in enumerate(headers, start=1):
        stripped = header.strip()
        if not stripped or GENERATED_HEADER_RE.match(stripped):
            ctx.issues.add(
                NO_HEADER,
                f"Column {index} has no header",
                suggestion="Give the column a descriptive name",
                column=header,
            )

    groups: dict[str, list[str]] = {}
    for header in headers:
        key = header.strip().lower()
        if key:
            groups.setdefault(key, []).append(header)
    for names in groups.values():
        if len(names) > 1:
            ctx.issues.add(
                DUPLICATE_HEADER,
                f'Header "{names[0]}" appears {len(names)} times',
                suggestion="Rename the repeated headers with a numeric suffix",
                column=names[0],
                details={"headers": names},
            )

    # trailing row is exempt
    for row in ctx.table.rows[:-1]:
        if row.is_blank():
            ctx.issues.add(
                EMPTY_ROW,
                f"Row {row.source_line} is empty",
                suggestion="Remove empty rows",
                row=row.source_line,
            )

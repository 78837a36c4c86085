"""
Exact and fuzzy duplicate detection.

Exact duplicates compare every cell after collapsing whitespace and folding
case, so rows that differ only in spacing or capitalisation are the same
row. The cleaner removes duplicates with the same key.
"""

from __future__ import annotations

import logging
from typing import Sequence

from sheet_rapi.constants import DUPLICATE_FUZZY, DUPLICATE_ROW, IDENTITY_KEYWORDS
from sheet_rapi.diagnose_modules.shared import AnalysisContext, header_matches
from sheet_rapi.helpers import normalize_whitespace, string_similarity
from sheet_rapi.table import Row, is_blank


logger = logging.getLogger(__name__)


def duplicate_key(row: Row, headers: Sequence[str]) -> tuple[str, ...]:
    return tuple(normalize_whitespace("" if is_blank(row.get(h)) else row.get(h)).casefold() for h in headers)


def check_duplicates(ctx: AnalysisContext) -> None:
    headers = ctx.table.headers
    seen: dict[tuple[str, ...], int] = {}
    pairs = []
    for row in ctx.table.rows:
        if row.is_blank():
            continue
        key = duplicate_key(row, headers)
        if key in seen:
            pairs.append({"row": row.source_line, "duplicate_of": seen[key]})
        else:
            seen[key] = row.source_line

    if pairs:
        ctx.issues.add(
            DUPLICATE_ROW,
            f"Found {len(pairs)} exact duplicate rows",
            suggestion="Remove duplicate rows, keeping the first occurrence",
            affected_rows=len(pairs),
            details=ctx.sample(pairs),
        )

    check_fuzzy_duplicates(ctx)


def check_fuzzy_duplicates(ctx: AnalysisContext) -> None:
    """
    Pair rows whose identity columns (name, email, phone, id) are all nearly equal.

    The scan is quadratic, so it stops at `fuzzy_max_pairs` matches or
    `fuzzy_max_comparisons` comparisons, whichever comes first.
    """
    settings = ctx.settings
    headers = ctx.table.headers
    key_columns = [header for header in headers if header_matches(header, IDENTITY_KEYWORDS)]
    rows = [row for row in ctx.table.rows if not row.is_blank()]
    if not key_columns or len(rows) < 2:
        return

    exact_keys = [duplicate_key(row, headers) for row in rows]
    identity = [
        [normalize_whitespace("" if is_blank(row.get(c)) else row.get(c)).lower() for c in key_columns]
        for row in rows
    ]

    pairs = []
    comparisons = 0
    truncated = False
    for i in range(len(rows)):
        if len(pairs) >= settings.fuzzy_max_pairs or truncated:
            break
        for j in range(i + 1, len(rows)):
            if len(pairs) >= settings.fuzzy_max_pairs:
                break
            if comparisons >= settings.fuzzy_max_comparisons:
                truncated = True
                break
            comparisons += 1
            if exact_keys[i] == exact_keys[j]:
                continue

            compared = [(a, b) for a, b in zip(identity[i], identity[j]) if a or b]
            if not compared:
                continue
            scores = []
            for a, b in compared:
                score = string_similarity(a, b)
                if score <= settings.fuzzy_similarity:
                    break
                scores.append(score)
            else:
                pairs.append({
                    "row1": rows[i].source_line,
                    "row2": rows[j].source_line,
                    "similarity": round(min(scores), 3),
                })

    if truncated:
        logger.info("Fuzzy duplicate scan stopped after %d comparisons", comparisons)

    if pairs:
        ctx.issues.add(
            DUPLICATE_FUZZY,
            f"Found {len(pairs)} pairs of rows that look like the same record",
            suggestion="Review these pairs and merge or delete as needed",
            affected_rows=len(pairs) * 2,
            details={
                "columns": key_columns,
                "pairs": ctx.sample(pairs),
                "pair_count": len(pairs),
                "truncated": truncated,
            },
        )

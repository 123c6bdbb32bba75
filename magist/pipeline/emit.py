"""
Flatten aggregator output into ordered report tables.
"""

from __future__ import annotations

from typing import Any, Sequence

import polars as pl

from magist.contracts.schemas import ERROR_COLUMN
from magist.pipeline.aggregate import Summary


def _flatten(summary: Summary) -> dict[str, Any]:
    record = {**summary.key, **summary.values}
    record[ERROR_COLUMN] = str(summary.error) if summary.error else None
    return record


def emit(
    summaries: dict[tuple, Summary],
    schema: dict[str, pl.DataType],
    order_by: str | Sequence[str] | None = None,
    descending: bool = False,
    limit: int | None = None,
) -> pl.DataFrame:
    """
    Build one flat row per group, typed by `schema`, plus an `error` column.

    Without order_by rows are sorted by the group key ascending. With
    order_by (a leaderboard metric) the key columns break ties ascending.
    Nulls sort last either way.
    """
    full_schema = {**schema, ERROR_COLUMN: pl.Utf8}
    records = [_flatten(s) for s in summaries.values()]
    df = pl.DataFrame(records, schema=full_schema)

    key_cols = list(next(iter(summaries.values())).key) if summaries else []
    primary = [order_by] if isinstance(order_by, str) else list(order_by or [])
    sort_cols = primary + [c for c in key_cols if c not in primary]
    if sort_cols and df.height > 1:
        df = df.sort(
            sort_cols,
            descending=[descending] * len(primary) + [False] * (len(sort_cols) - len(primary)),
            nulls_last=True,
            maintain_order=True,
        )
    if limit is not None:
        df = df.head(limit)
    return df


def to_records(
    summaries: dict[tuple, Summary],
    schema: dict[str, pl.DataType],
    order_by: str | Sequence[str] | None = None,
    descending: bool = False,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """Same rows as emit(), as plain dicts."""
    return emit(summaries, schema, order_by, descending, limit).to_dicts()

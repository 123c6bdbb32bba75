"""
Grouped statistics over polars frames.

Polars computes the raw per-group numbers (row counts, hit counts, sums,
means, extrema); the finishing pass turns them into report values with
decimal round-half-up and attaches EmptyGroup where a denominator is zero.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Sequence

import polars as pl

from magist.contracts.errors import EmptyGroup
from magist.contracts.schemas import PERCENT_PLACES

_ROWS = "__rows"

# Metric kinds whose value is a ratio over the group's own rows
_RATIO_KINDS = {"avg", "bucket_share"}


@dataclass(eq=False)
class MetricSpec:
    """One named metric; build instances with the factories below."""

    name: str
    kind: str
    field: str | None = None
    predicate: pl.Expr | None = None
    places: int | None = None

    def raw_exprs(self) -> list[pl.Expr]:
        if self.kind in ("count", "share_of_total"):
            return []
        if self.kind in ("count_if", "bucket_share"):
            return [self.predicate.fill_null(False).sum().alias(self._raw("hits"))]
        col = pl.col(self.field)
        if self.kind == "distinct_count":
            return [col.drop_nulls().n_unique().alias(self._raw("value"))]
        reducer = {"sum": col.sum(), "avg": col.mean(), "min": col.min(), "max": col.max()}[self.kind]
        return [reducer.alias(self._raw("value")), col.count().alias(self._raw("non_null"))]

    def _raw(self, part: str) -> str:
        return f"__{self.name}__{part}"


def count(name: str) -> MetricSpec:
    return MetricSpec(name, "count")


def distinct_count(name: str, field: str) -> MetricSpec:
    return MetricSpec(name, "distinct_count", field=field)


def sum_of(name: str, field: str, places: int | None = None) -> MetricSpec:
    return MetricSpec(name, "sum", field=field, places=places)


def avg_of(name: str, field: str, places: int | None = PERCENT_PLACES) -> MetricSpec:
    return MetricSpec(name, "avg", field=field, places=places)


def min_of(name: str, field: str, places: int | None = None) -> MetricSpec:
    return MetricSpec(name, "min", field=field, places=places)


def max_of(name: str, field: str, places: int | None = None) -> MetricSpec:
    return MetricSpec(name, "max", field=field, places=places)


def count_if(name: str, predicate: pl.Expr) -> MetricSpec:
    """Rows where predicate holds; null counts as false."""
    return MetricSpec(name, "count_if", predicate=predicate)


def bucket_share(name: str, predicate: pl.Expr) -> MetricSpec:
    """100 * rows where predicate holds / rows in the group."""
    return MetricSpec(name, "bucket_share", predicate=predicate, places=PERCENT_PLACES)


def share_of_total(name: str) -> MetricSpec:
    """100 * rows in the group / rows in the whole input."""
    return MetricSpec(name, "share_of_total", places=PERCENT_PLACES)


@dataclass
class Summary:
    """Finished metrics for one group. `error` is set when the group was empty."""

    key: dict[str, Any]
    rows: int
    values: dict[str, Any] = field(default_factory=dict)
    error: EmptyGroup | None = None


# ---------------------------------------------------------------------------
# Numeric helpers
# ---------------------------------------------------------------------------

def round_half_up(value: float | Decimal | None, places: int = PERCENT_PLACES) -> float | None:
    """Round to `places` decimals, ties away from zero. Floats round on their shortest repr."""
    if value is None:
        return None
    dec = value if isinstance(value, Decimal) else Decimal(str(value))
    return float(dec.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))


def percentage(part: int, whole: int, places: int = PERCENT_PLACES) -> float:
    """100 * part / whole with exact decimal arithmetic. whole must be non-zero."""
    return round_half_up(Decimal(100 * part) / Decimal(whole), places)


def date_delta(a: str | pl.Expr, b: str | pl.Expr) -> pl.Expr:
    """Whole days a - b, truncated toward zero (SQL TIMESTAMPDIFF(DAY, b, a))."""
    a = pl.col(a) if isinstance(a, str) else a
    b = pl.col(b) if isinstance(b, str) else b
    return (a - b).dt.total_days()


def days_between(a: date | datetime, b: date | datetime) -> int:
    """Pure-Python date_delta: whole days a - b, truncated toward zero."""
    return int((a - b) / timedelta(days=1))


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def _finish(metric: MetricSpec, raw: dict | None, rows: int, total_rows: int) -> tuple[Any, bool]:
    """Return (value, undefined) for one metric of one group."""
    if metric.kind == "count":
        return rows, False
    if metric.kind == "share_of_total":
        if total_rows == 0:
            return None, True
        return percentage(rows, total_rows, metric.places), False
    if metric.kind in ("count_if", "bucket_share"):
        hits = int(raw[metric._raw("hits")]) if raw else 0
        if metric.kind == "count_if":
            return hits, False
        if rows == 0:
            return None, True
        return percentage(hits, rows, metric.places), False
    if metric.kind == "distinct_count":
        return (int(raw[metric._raw("value")]) if raw else 0), False

    if metric.kind in _RATIO_KINDS and rows == 0:
        return None, True
    if not raw or raw[metric._raw("non_null")] == 0:
        return None, False
    value = raw[metric._raw("value")]
    if metric.places is not None:
        value = round_half_up(value, metric.places)
    return value, False


def _summarise(
    key_names: list[str],
    key: tuple,
    raw: dict | None,
    metrics: Sequence[MetricSpec],
    total_rows: int,
) -> Summary:
    rows = int(raw[_ROWS]) if raw else 0
    summary = Summary(key=dict(zip(key_names, key)), rows=rows)
    undefined = []
    for metric in metrics:
        value, is_undefined = _finish(metric, raw, rows, total_rows)
        summary.values[metric.name] = value
        if is_undefined:
            undefined.append(metric.name)
    if undefined:
        summary.error = EmptyGroup(key, undefined)
    return summary


def aggregate(
    df: pl.DataFrame,
    by: Sequence[str | pl.Expr],
    metrics: Sequence[MetricSpec],
    keys: Iterable[Any] | None = None,
) -> dict[tuple, Summary]:
    """
    Group df by `by` and compute metrics per group.

    `by` is the key function: column names or expressions, empty for one
    overall group keyed (). `keys` lists groups that must be present even
    without rows; scalar keys are accepted for single-column groupings.
    """
    by_exprs = [pl.col(b) if isinstance(b, str) else b for b in by]
    key_names = [e.meta.output_name() for e in by_exprs]

    raw_exprs = [pl.len().alias(_ROWS)]
    for metric in metrics:
        raw_exprs.extend(metric.raw_exprs())

    if by_exprs:
        table = df.group_by(by_exprs, maintain_order=True).agg(raw_exprs)
    else:
        table = df.select(raw_exprs)

    total_rows = df.height
    summaries: dict[tuple, Summary] = {}
    for raw in table.iter_rows(named=True):
        key = tuple(raw[name] for name in key_names)
        if by_exprs or raw[_ROWS] > 0:
            summaries[key] = _summarise(key_names, key, raw, metrics, total_rows)

    if not by_exprs and () not in summaries:
        summaries[()] = _summarise(key_names, (), None, metrics, total_rows)

    for key in keys or ():
        key = key if isinstance(key, tuple) else (key,)
        if key not in summaries:
            summaries[key] = _summarise(key_names, key, None, metrics, total_rows)
    return summaries

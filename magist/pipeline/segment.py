"""
Segment definitions: the refined tech predicate and the price buckets.

Every report that needs the tech segment goes through is_refined_tech /
refined_tech_expr so the category list and price floor are stated once.
"""

from __future__ import annotations

import polars as pl

from magist.contracts.schemas import (
    PRICE_BUCKETS,
    SEGMENT_ALL_ITEMS,
    SEGMENT_OTHER,
    SEGMENT_TECH,
    TECH_CATEGORIES,
    TECH_PRICE_THRESHOLD,
)


# ---------------------------------------------------------------------------
# Refined tech segment
# ---------------------------------------------------------------------------

def is_refined_tech(category: str | None, price: float | None) -> bool:
    """True iff category is one of the tech categories and price >= the threshold."""
    if category is None or price is None:
        return False
    return category in TECH_CATEGORIES and price >= TECH_PRICE_THRESHOLD


def tech_category_expr(category_col: str = "category") -> pl.Expr:
    """Category membership only, any price. Null categories are not tech."""
    return pl.col(category_col).is_in(sorted(TECH_CATEGORIES)).fill_null(False)


def refined_tech_expr(category_col: str = "category", price_col: str = "price") -> pl.Expr:
    """Polars form of is_refined_tech. Never evaluates to null."""
    return (
        tech_category_expr(category_col)
        & (pl.col(price_col) >= TECH_PRICE_THRESHOLD).fill_null(False)
    ).alias("is_refined_tech")


def segment_partition_expr(flag_col: str = "is_refined_tech") -> pl.Expr:
    """Label every item TECH_SEGMENT or OTHER; the two labels partition ALL_ITEMS."""
    return (
        pl.when(pl.col(flag_col))
          .then(pl.lit(SEGMENT_TECH))
          .otherwise(pl.lit(SEGMENT_OTHER))
          .alias("segment")
    )


def label_segments(all_rows: pl.DataFrame, tech_rows: pl.DataFrame) -> pl.DataFrame:
    """
    Stack the whole population and the tech subset with a `segment` column,
    the way the analysis compares ALL_ITEMS against TECH_SEGMENT side by side.
    Both frames must share the same columns.
    """
    return pl.concat([
        all_rows.with_columns(pl.lit(SEGMENT_ALL_ITEMS).alias("segment")),
        tech_rows.select(all_rows.columns).with_columns(pl.lit(SEGMENT_TECH).alias("segment")),
    ])


# ---------------------------------------------------------------------------
# Price buckets
# ---------------------------------------------------------------------------

def validate_buckets(buckets: list[tuple[str, float | None, float | None]]) -> None:
    """
    Raise ValueError unless the buckets cover the whole price line exactly once:
    first open below, last open above, each upper bound equal to the next lower bound.
    """
    if not buckets:
        raise ValueError("At least one price bucket is required")
    labels = [label for label, _, _ in buckets]
    if len(set(labels)) != len(labels):
        raise ValueError(f"Duplicate price bucket labels: {labels}")
    if buckets[0][1] is not None:
        raise ValueError(f"First bucket '{buckets[0][0]}' must have no lower bound")
    if buckets[-1][2] is not None:
        raise ValueError(f"Last bucket '{buckets[-1][0]}' must have no upper bound")
    for (label, lower, upper), (next_label, next_lower, _) in zip(buckets, buckets[1:]):
        if upper is None or next_lower is None or upper != next_lower:
            raise ValueError(f"Buckets '{label}' and '{next_label}' leave a gap or overlap")
        if lower is not None and lower >= upper:
            raise ValueError(f"Bucket '{label}' is empty: [{lower}, {upper})")


def bucket_predicate(lower: float | None, upper: float | None, price_col: str = "price") -> pl.Expr:
    """lower <= price < upper, with None meaning unbounded."""
    expr = pl.lit(True)
    if lower is not None:
        expr = expr & (pl.col(price_col) >= lower)
    if upper is not None:
        expr = expr & (pl.col(price_col) < upper)
    return expr


def price_bucket_expr(price_col: str = "price") -> pl.Expr:
    """Map a price to its bucket label; null price gives a null label."""
    label, lower, upper = PRICE_BUCKETS[0]
    chain = pl.when(bucket_predicate(lower, upper, price_col)).then(pl.lit(label))
    for label, lower, upper in PRICE_BUCKETS[1:]:
        chain = chain.when(bucket_predicate(lower, upper, price_col)).then(pl.lit(label))
    return chain.otherwise(pl.lit(None, dtype=pl.Utf8)).alias("price_bucket")


validate_buckets(PRICE_BUCKETS)

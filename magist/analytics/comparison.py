"""
Tech segment vs whole marketplace, metric by metric.

Takes the delivery_performance and review_scores reports (one row per
segment) and lines the two segments up: one row per metric with the
ALL_ITEMS value, the TECH_SEGMENT value and their difference.
"""

from typing import Optional

import polars as pl

from magist.contracts.schemas import COMPARISON_SCHEMA, SEGMENT_ALL_ITEMS, SEGMENT_TECH
from magist.pipeline.aggregate import round_half_up

DELIVERY_METRICS = [
    "avg_delay_days",
    "avg_abs_delivery_days",
    "avg_estimated_delivery_days",
    "pct_on_time",
    "pct_delayed",
]
REVIEW_METRICS = ["avg_review_score", "pct_low_scores", "pct_five_star"]


def _segment_row(report: pl.DataFrame, segment: str) -> dict:
    rows = report.filter(pl.col("segment") == segment).to_dicts()
    return rows[0] if rows else {}


def _difference(tech: Optional[float], overall: Optional[float]) -> Optional[float]:
    if tech is None or overall is None:
        return None
    return round_half_up(tech - overall)


def compare_segments(delivery: pl.DataFrame, reviews: pl.DataFrame) -> pl.DataFrame:
    """Return a DataFrame matching COMPARISON_SCHEMA; difference = tech - all."""
    records = []
    for report, metrics in ((delivery, DELIVERY_METRICS), (reviews, REVIEW_METRICS)):
        overall = _segment_row(report, SEGMENT_ALL_ITEMS)
        tech = _segment_row(report, SEGMENT_TECH)
        for metric in metrics:
            all_value = overall.get(metric)
            tech_value = tech.get(metric)
            records.append({
                "metric": metric,
                "all_items": all_value,
                "tech_segment": tech_value,
                "difference": _difference(tech_value, all_value),
            })
    return pl.DataFrame(records, schema=COMPARISON_SCHEMA)

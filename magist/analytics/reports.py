"""
Market analysis reports for the Magist marketplace.

Each report answers one question from the tech-segment fit assessment:
order volume and growth, catalogue, price and payment structure, tech
segment size and price levels, seller concentration, delivery performance
and customer satisfaction. Every report is a small flat DataFrame with the
columns declared in REPORT_SCHEMAS plus an `error` column.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Callable, Optional

import polars as pl

from magist.contracts.schemas import (
    DELIVERED_STATUS,
    LOW_SCORE_MAX,
    PRICE_BUCKETS,
    REPORT_SCHEMAS,
    REVIEW_SCORES,
    SEGMENTS,
    TOP_CATEGORIES_LIMIT,
    TOP_SELLERS_LIMIT,
)
from magist.pipeline.aggregate import (
    aggregate,
    avg_of,
    bucket_share,
    count,
    count_if,
    distinct_count,
    max_of,
    min_of,
    share_of_total,
    sum_of,
)
from magist.pipeline.emit import emit
from magist.pipeline.ingest import Dataset
from magist.pipeline.segment import bucket_predicate, label_segments, tech_category_expr
from magist.pipeline.transform import (
    build_delivery_frame,
    build_item_frame,
    build_review_frame,
    restrict_to_tech_items,
    translate_categories,
)


@dataclass
class ReportInputs:
    """The dataset snapshot plus derived frames, each built once on first use."""

    dataset: Dataset

    @cached_property
    def items(self) -> pl.DataFrame:
        return build_item_frame(self.dataset)

    @cached_property
    def tech_items(self) -> pl.DataFrame:
        return self.items.filter(pl.col("is_refined_tech"))

    @cached_property
    def deliveries(self) -> pl.DataFrame:
        return build_delivery_frame(self.dataset.orders)

    @cached_property
    def reviews(self) -> pl.DataFrame:
        return build_review_frame(self.dataset.reviews)

    @cached_property
    def tech_reviews(self) -> pl.DataFrame:
        return restrict_to_tech_items(self.reviews, self.items)


def _schema(name: str) -> dict:
    return REPORT_SCHEMAS[name]


# ---------------------------------------------------------------------------
# Order volume and growth
# ---------------------------------------------------------------------------

def order_overview(inputs: ReportInputs) -> pl.DataFrame:
    """Total orders and the time span they cover."""
    summaries = aggregate(inputs.dataset.orders, [], [
        count("total_orders"),
        min_of("first_order_date", "order_purchase_timestamp"),
        max_of("last_order_date", "order_purchase_timestamp"),
    ])
    return emit(summaries, _schema("order_overview"))


def monthly_orders(inputs: ReportInputs) -> pl.DataFrame:
    ts = pl.col("order_purchase_timestamp")
    summaries = aggregate(
        inputs.dataset.orders,
        [ts.dt.year().alias("year"), ts.dt.month().alias("month_number")],
        [count("orders_in_month")],
    )
    return emit(summaries, _schema("monthly_orders"))


def yearly_revenue(inputs: ReportInputs) -> pl.DataFrame:
    """Sum of payments for delivered orders, per purchase year."""
    delivered = inputs.dataset.orders.filter(pl.col("order_status") == DELIVERED_STATUS)
    paid = delivered.join(inputs.dataset.payments, on="order_id", how="inner")
    summaries = aggregate(
        paid,
        [pl.col("order_purchase_timestamp").dt.year().alias("year")],
        [sum_of("total_revenue", "payment_value", places=2)],
    )
    return emit(summaries, _schema("yearly_revenue"))


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------

def catalogue_size(inputs: ReportInputs) -> pl.DataFrame:
    summaries = aggregate(inputs.dataset.products, [], [
        distinct_count("total_unique_products", "product_id"),
    ])
    return emit(summaries, _schema("catalogue_size"))


def products_per_category(inputs: ReportInputs) -> pl.DataFrame:
    """Largest categories by catalogue size; untranslated categories are kept."""
    products = translate_categories(
        inputs.dataset.products, inputs.dataset.category_translation
    ).rename({"category": "category_en"})
    summaries = aggregate(products, ["category_pt", "category_en"], [count("number_of_products")])
    return emit(
        summaries,
        _schema("products_per_category"),
        order_by="number_of_products",
        descending=True,
        limit=TOP_CATEGORIES_LIMIT,
    )


# ---------------------------------------------------------------------------
# Price and payment structure
# ---------------------------------------------------------------------------

def item_price_range(inputs: ReportInputs) -> pl.DataFrame:
    summaries = aggregate(inputs.dataset.order_items, [], [
        min_of("cheapest_item_price", "price"),
        max_of("most_expensive_item_price", "price"),
    ])
    return emit(summaries, _schema("item_price_range"))


def payment_value_range(inputs: ReportInputs) -> pl.DataFrame:
    """Range of individual payment fragments, not order totals."""
    summaries = aggregate(inputs.dataset.payments, [], [
        min_of("smallest_payment_value", "payment_value"),
        max_of("largest_payment_value", "payment_value"),
    ])
    return emit(summaries, _schema("payment_value_range"))


def top_order_payment(inputs: ReportInputs) -> pl.DataFrame:
    """The single order with the highest total payment (fragments summed)."""
    summaries = aggregate(
        inputs.dataset.payments,
        ["order_id"],
        [sum_of("total_order_payment", "payment_value", places=2)],
    )
    return emit(
        summaries,
        _schema("top_order_payment"),
        order_by="total_order_payment",
        descending=True,
        limit=1,
    )


# ---------------------------------------------------------------------------
# Tech segment: size, price levels, sellers
# ---------------------------------------------------------------------------

def tech_price_profile(inputs: ReportInputs) -> pl.DataFrame:
    """
    Low / mid / premium split of every tech category at any price.
    This is the evidence for drawing the refined segment's price floor.
    """
    metrics = [count("total_items")]
    for label, lower, upper in PRICE_BUCKETS:
        predicate = bucket_predicate(lower, upper, "price")
        metrics.append(count_if(label, predicate))
        metrics.append(bucket_share(f"pct_{label}", predicate))
    tech = inputs.items.filter(tech_category_expr("category"))
    summaries = aggregate(tech, ["category"], metrics)
    return emit(
        summaries,
        _schema("tech_price_profile"),
        order_by="total_items",
        descending=True,
    )


def refined_tech_prices(inputs: ReportInputs) -> pl.DataFrame:
    summaries = aggregate(inputs.tech_items, ["category"], [
        count("total_items"),
        avg_of("avg_price", "price"),
        min_of("min_price", "price", places=2),
        max_of("max_price", "price", places=2),
    ])
    return emit(
        summaries,
        _schema("refined_tech_prices"),
        order_by="avg_price",
        descending=True,
    )


def tech_share_overall(inputs: ReportInputs) -> pl.DataFrame:
    flag = pl.col("is_refined_tech")
    summaries = aggregate(inputs.items, [], [
        count("total_items"),
        count_if("refined_tech_items", flag),
        bucket_share("pct_refined_tech_items_overall", flag),
    ])
    return emit(summaries, _schema("tech_share_overall"))


def tech_share_monthly(inputs: ReportInputs) -> pl.DataFrame:
    """Monthly time series of the refined tech share of items sold."""
    flag = pl.col("is_refined_tech")
    summaries = aggregate(inputs.items, ["purchase_month"], [
        count("total_items_sold"),
        count_if("refined_tech_items", flag),
        bucket_share("pct_refined_tech_items", flag),
    ])
    return emit(summaries, _schema("tech_share_monthly"))


def tech_sellers(inputs: ReportInputs) -> pl.DataFrame:
    """Top sellers by refined tech items sold, with their share of the segment."""
    summaries = aggregate(inputs.tech_items, ["seller_id"], [
        count("tech_items_sold"),
        share_of_total("pct_of_tech_items"),
    ])
    return emit(
        summaries,
        _schema("tech_sellers"),
        order_by="tech_items_sold",
        descending=True,
        limit=TOP_SELLERS_LIMIT,
    )


# ---------------------------------------------------------------------------
# Delivery and satisfaction: ALL_ITEMS vs TECH_SEGMENT
# ---------------------------------------------------------------------------

def delivery_performance(inputs: ReportInputs) -> pl.DataFrame:
    """
    Delay (delivered - estimated), absolute delivery time (delivered - purchase)
    and promised delivery time (estimated - purchase), on-time vs delayed shares.
    """
    deliveries = label_segments(
        inputs.deliveries,
        restrict_to_tech_items(inputs.deliveries, inputs.items),
    )
    delay = pl.col("delay_days")
    summaries = aggregate(deliveries, ["segment"], [
        count("deliveries"),
        avg_of("avg_delay_days", "delay_days"),
        avg_of("avg_abs_delivery_days", "abs_delivery_days"),
        avg_of("avg_estimated_delivery_days", "est_delivery_days"),
        bucket_share("pct_on_time", delay <= 0),
        bucket_share("pct_delayed", delay > 0),
    ], keys=SEGMENTS)
    return emit(summaries, _schema("delivery_performance"))


def review_scores(inputs: ReportInputs) -> pl.DataFrame:
    score = pl.col("review_score")
    reviews = label_segments(inputs.reviews, inputs.tech_reviews)
    summaries = aggregate(reviews, ["segment"], [
        count("reviews"),
        avg_of("avg_review_score", "review_score"),
        bucket_share("pct_low_scores", score <= LOW_SCORE_MAX),
        bucket_share("pct_five_star", score == 5),
    ], keys=SEGMENTS)
    return emit(summaries, _schema("review_scores"))


def _rating_distribution(reviews: pl.DataFrame, schema: dict) -> pl.DataFrame:
    summaries = aggregate(reviews, ["review_score"], [
        count("count_reviews"),
        share_of_total("pct_reviews"),
    ], keys=REVIEW_SCORES)
    return emit(summaries, schema)


def rating_distribution_all(inputs: ReportInputs) -> pl.DataFrame:
    return _rating_distribution(inputs.reviews, _schema("rating_distribution_all"))


def rating_distribution_tech(inputs: ReportInputs) -> pl.DataFrame:
    return _rating_distribution(inputs.tech_reviews, _schema("rating_distribution_tech"))


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

REPORTS: dict[str, Callable[[ReportInputs], pl.DataFrame]] = {
    "order_overview": order_overview,
    "monthly_orders": monthly_orders,
    "yearly_revenue": yearly_revenue,
    "catalogue_size": catalogue_size,
    "products_per_category": products_per_category,
    "item_price_range": item_price_range,
    "payment_value_range": payment_value_range,
    "top_order_payment": top_order_payment,
    "tech_price_profile": tech_price_profile,
    "refined_tech_prices": refined_tech_prices,
    "tech_share_overall": tech_share_overall,
    "tech_share_monthly": tech_share_monthly,
    "tech_sellers": tech_sellers,
    "delivery_performance": delivery_performance,
    "review_scores": review_scores,
    "rating_distribution_all": rating_distribution_all,
    "rating_distribution_tech": rating_distribution_tech,
}


def build_reports(
    inputs: ReportInputs | Dataset,
    names: Optional[list[str]] = None,
) -> dict[str, pl.DataFrame]:
    """Run the named reports (all of them by default) over one dataset snapshot."""
    if isinstance(inputs, Dataset):
        inputs = ReportInputs(inputs)
    selected = names or list(REPORTS)
    unknown = [n for n in selected if n not in REPORTS]
    if unknown:
        raise ValueError(f"Unknown report(s): {', '.join(unknown)}")
    return {name: REPORTS[name](inputs) for name in selected}

"""
Joins and derived columns shared by the reports.
"""

import warnings

import polars as pl

from magist.contracts.errors import MissingJoinTarget
from magist.contracts.schemas import (
    DELIVERED_STATUS,
    DELIVERY_FRAME_SCHEMA,
    ITEM_FRAME_SCHEMA,
)
from magist.pipeline.aggregate import date_delta
from magist.pipeline.ingest import Dataset
from magist.pipeline.segment import price_bucket_expr, refined_tech_expr


def translate_categories(products: pl.DataFrame, translation: pl.DataFrame) -> pl.DataFrame:
    """
    Left-join products to the English category label.
    Products whose category has no translation keep a null `category`.
    Product rows are neither dropped nor duplicated.
    """
    lookup = (
        translation
        .unique(subset=["product_category_name"], keep="first", maintain_order=True)
        .select(["product_category_name", "product_category_name_english"])
    )
    return (
        products
        .join(lookup, on="product_category_name", how="left")
        .rename({
            "product_category_name": "category_pt",
            "product_category_name_english": "category",
        })
    )


def _warn_untranslated(items: pl.DataFrame) -> None:
    missing = items.filter(pl.col("category_pt").is_not_null() & pl.col("category").is_null())
    if missing.height:
        names = sorted(missing["category_pt"].unique().to_list())
        warnings.warn(
            MissingJoinTarget(
                f"{missing.height:,} order items have a category with no English "
                f"translation ({', '.join(names)}); kept with a null category"
            ),
            stacklevel=3,
        )


def build_item_frame(dataset: Dataset) -> pl.DataFrame:
    """
    One row per order item with its English category, purchase date,
    refined tech flag and price bucket. Matches ITEM_FRAME_SCHEMA.
    """
    products = translate_categories(
        dataset.products.unique(subset=["product_id"], keep="first", maintain_order=True),
        dataset.category_translation,
    )
    orders = (
        dataset.orders
        .unique(subset=["order_id"], keep="first", maintain_order=True)
        .select(["order_id", "order_purchase_timestamp"])
    )
    items = (
        dataset.order_items
        .join(products, on="product_id", how="left")
        .join(orders, on="order_id", how="left")
    )
    _warn_untranslated(items)
    return (
        items
        .with_columns([
            pl.col("order_purchase_timestamp").dt.strftime("%Y-%m").alias("purchase_month"),
            refined_tech_expr("category", "price"),
            price_bucket_expr("price"),
        ])
        .select(list(ITEM_FRAME_SCHEMA.keys()))
        .cast(ITEM_FRAME_SCHEMA)
    )


def build_delivery_frame(orders: pl.DataFrame) -> pl.DataFrame:
    """
    Delivered orders with purchase, estimated and delivered dates, with whole-day
    delivery metrics. Matches DELIVERY_FRAME_SCHEMA.
    """
    return (
        orders
        .filter(
            (pl.col("order_status") == DELIVERED_STATUS)
            & pl.col("order_delivered_customer_date").is_not_null()
            & pl.col("order_estimated_delivery_date").is_not_null()
            & pl.col("order_purchase_timestamp").is_not_null()
        )
        .with_columns([
            date_delta("order_delivered_customer_date", "order_estimated_delivery_date").alias("delay_days"),
            date_delta("order_delivered_customer_date", "order_purchase_timestamp").alias("abs_delivery_days"),
            date_delta("order_estimated_delivery_date", "order_purchase_timestamp").alias("est_delivery_days"),
        ])
        .select(list(DELIVERY_FRAME_SCHEMA.keys()))
        .cast(DELIVERY_FRAME_SCHEMA)
    )


def build_review_frame(reviews: pl.DataFrame) -> pl.DataFrame:
    """Reviews that carry a score."""
    return reviews.filter(pl.col("review_score").is_not_null()).select(["order_id", "review_score"])


def restrict_to_tech_items(df: pl.DataFrame, items: pl.DataFrame) -> pl.DataFrame:
    """
    Inner-join order-level rows to the refined tech items of the same order.
    An order contributes one row per tech item it contains.
    """
    tech_orders = items.filter(pl.col("is_refined_tech")).select("order_id")
    return df.join(tech_orders, on="order_id", how="inner").select(df.columns)

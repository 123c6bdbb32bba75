"""
Data contracts for the Magist market analysis.

These schemas and constants are the SINGLE SOURCE OF TRUTH for the pipeline.
The tech segment definition lives here and nowhere else.

Layer flow: raw marketplace tables -> joined item/delivery/review frames -> report tables
"""

import os

import polars as pl


# =============================================================================
# LAYER 1: Raw Marketplace Tables (data/raw/*.csv | *.parquet)
# =============================================================================

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
# Accepted when reading text sources, tried in order; date-only values load as midnight
TIMESTAMP_FORMATS = [TIMESTAMP_FORMAT, "%Y-%m-%d"]

ORDERS_SCHEMA = {
    "order_id": pl.Utf8,
    "order_status": pl.Utf8,                        # delivered, shipped, canceled, ...
    "order_purchase_timestamp": pl.Datetime("us"),
    "order_estimated_delivery_date": pl.Datetime("us"),
    "order_delivered_customer_date": pl.Datetime("us"),  # null until delivered
}

ORDER_ITEMS_SCHEMA = {
    "order_id": pl.Utf8,
    "order_item_id": pl.Int64,                      # 1..n within an order
    "product_id": pl.Utf8,
    "seller_id": pl.Utf8,
    "price": pl.Float64,
}

PRODUCTS_SCHEMA = {
    "product_id": pl.Utf8,
    "product_category_name": pl.Utf8,               # Portuguese label, nullable
}

CATEGORY_TRANSLATION_SCHEMA = {
    "product_category_name": pl.Utf8,
    "product_category_name_english": pl.Utf8,
}

PAYMENTS_SCHEMA = {
    "order_id": pl.Utf8,
    "payment_sequential": pl.Int64,                 # one row per payment fragment
    "payment_value": pl.Float64,
}

REVIEWS_SCHEMA = {
    "review_id": pl.Utf8,
    "order_id": pl.Utf8,
    "review_score": pl.Int64,                       # 1-5, nullable
}

# relation name -> (required columns, accepted file stems)
SOURCE_TABLES = {
    "orders": (ORDERS_SCHEMA, ["orders", "olist_orders_dataset"]),
    "order_items": (ORDER_ITEMS_SCHEMA, ["order_items", "olist_order_items_dataset"]),
    "products": (PRODUCTS_SCHEMA, ["products", "olist_products_dataset"]),
    "product_category_name_translation": (
        CATEGORY_TRANSLATION_SCHEMA,
        ["product_category_name_translation"],
    ),
    "order_payments": (PAYMENTS_SCHEMA, ["order_payments", "olist_order_payments_dataset"]),
    "order_reviews": (REVIEWS_SCHEMA, ["order_reviews", "olist_order_reviews_dataset"]),
}

SOURCE_EXTENSIONS = [".parquet", ".csv"]

RAW_DATA_DIR = os.getenv("MAGIST_DATA_DIR", "data/raw")


# =============================================================================
# LAYER 2: Derived Frames (transform.py)
# =============================================================================

# One row per order item, joined to its product, category and order
ITEM_FRAME_SCHEMA = {
    "order_id": pl.Utf8,
    "product_id": pl.Utf8,
    "seller_id": pl.Utf8,
    "price": pl.Float64,
    "category_pt": pl.Utf8,
    "category": pl.Utf8,                            # English label, null if untranslated
    "order_purchase_timestamp": pl.Datetime("us"),
    "purchase_month": pl.Utf8,                      # "2017-03"
    "is_refined_tech": pl.Boolean,
    "price_bucket": pl.Utf8,
}

# One row per delivered order with both delivery dates
DELIVERY_FRAME_SCHEMA = {
    "order_id": pl.Utf8,
    "delay_days": pl.Int64,                         # delivered - estimated, positive = late
    "abs_delivery_days": pl.Int64,                  # delivered - purchase
    "est_delivery_days": pl.Int64,                  # estimated - purchase
}


# =============================================================================
# LAYER 3: Report Tables (magist.analytics.reports -> data/reports/)
# =============================================================================

REPORT_SCHEMAS = {
    "order_overview": {
        "total_orders": pl.Int64,
        "first_order_date": pl.Datetime("us"),
        "last_order_date": pl.Datetime("us"),
    },
    "monthly_orders": {
        "year": pl.Int32,
        "month_number": pl.Int32,
        "orders_in_month": pl.Int64,
    },
    "yearly_revenue": {
        "year": pl.Int32,
        "total_revenue": pl.Float64,
    },
    "catalogue_size": {
        "total_unique_products": pl.Int64,
    },
    "products_per_category": {
        "category_pt": pl.Utf8,
        "category_en": pl.Utf8,
        "number_of_products": pl.Int64,
    },
    "item_price_range": {
        "cheapest_item_price": pl.Float64,
        "most_expensive_item_price": pl.Float64,
    },
    "payment_value_range": {
        "smallest_payment_value": pl.Float64,
        "largest_payment_value": pl.Float64,
    },
    "top_order_payment": {
        "order_id": pl.Utf8,
        "total_order_payment": pl.Float64,
    },
    "tech_price_profile": {
        "category": pl.Utf8,
        "total_items": pl.Int64,
        "low_range": pl.Int64,
        "pct_low_range": pl.Float64,
        "mid_range": pl.Int64,
        "pct_mid_range": pl.Float64,
        "premium": pl.Int64,
        "pct_premium": pl.Float64,
    },
    "refined_tech_prices": {
        "category": pl.Utf8,
        "total_items": pl.Int64,
        "avg_price": pl.Float64,
        "min_price": pl.Float64,
        "max_price": pl.Float64,
    },
    "tech_share_overall": {
        "total_items": pl.Int64,
        "refined_tech_items": pl.Int64,
        "pct_refined_tech_items_overall": pl.Float64,
    },
    "tech_share_monthly": {
        "purchase_month": pl.Utf8,
        "total_items_sold": pl.Int64,
        "refined_tech_items": pl.Int64,
        "pct_refined_tech_items": pl.Float64,
    },
    "tech_sellers": {
        "seller_id": pl.Utf8,
        "tech_items_sold": pl.Int64,
        "pct_of_tech_items": pl.Float64,
    },
    "delivery_performance": {
        "segment": pl.Utf8,
        "deliveries": pl.Int64,
        "avg_delay_days": pl.Float64,
        "avg_abs_delivery_days": pl.Float64,
        "avg_estimated_delivery_days": pl.Float64,
        "pct_on_time": pl.Float64,
        "pct_delayed": pl.Float64,
    },
    "review_scores": {
        "segment": pl.Utf8,
        "reviews": pl.Int64,
        "avg_review_score": pl.Float64,
        "pct_low_scores": pl.Float64,
        "pct_five_star": pl.Float64,
    },
    "rating_distribution_all": {
        "review_score": pl.Int64,
        "count_reviews": pl.Int64,
        "pct_reviews": pl.Float64,
    },
    "rating_distribution_tech": {
        "review_score": pl.Int64,
        "count_reviews": pl.Int64,
        "pct_reviews": pl.Float64,
    },
}

# Segment vs segment deltas printed by `magist analyze`
COMPARISON_SCHEMA = {
    "metric": pl.Utf8,
    "all_items": pl.Float64,
    "tech_segment": pl.Float64,
    "difference": pl.Float64,                       # tech_segment - all_items
}

ERROR_COLUMN = "error"

REPORT_OUTPUT_DIR = os.getenv("MAGIST_OUTPUT_DIR", "data/reports")
REPORT_FORMATS = ["csv", "parquet"]


# =============================================================================
# CONSTANTS
# =============================================================================

TECH_CATEGORIES = frozenset({
    "computers",
    "computers_accessories",
    "electronics",
    "audio",
    "telephony",
})
TECH_PRICE_THRESHOLD = 100.0

SEGMENT_ALL_ITEMS = "ALL_ITEMS"
SEGMENT_TECH = "TECH_SEGMENT"
SEGMENT_OTHER = "OTHER"
SEGMENTS = [SEGMENT_ALL_ITEMS, SEGMENT_TECH]

# (label, lower bound inclusive, upper bound exclusive); None = unbounded
PRICE_BUCKETS = [
    ("low_range", None, 50.0),
    ("mid_range", 50.0, TECH_PRICE_THRESHOLD),
    ("premium", TECH_PRICE_THRESHOLD, None),
]

DELIVERED_STATUS = "delivered"
REVIEW_SCORES = [1, 2, 3, 4, 5]
LOW_SCORE_MAX = 2

TOP_CATEGORIES_LIMIT = 20
TOP_SELLERS_LIMIT = 20
PERCENT_PLACES = 2

"""
Test Suite Configuration
"""
from datetime import datetime

import polars as pl
import pytest

from magist.contracts.schemas import (
    CATEGORY_TRANSLATION_SCHEMA,
    ORDER_ITEMS_SCHEMA,
    ORDERS_SCHEMA,
    PAYMENTS_SCHEMA,
    PRODUCTS_SCHEMA,
    REVIEWS_SCHEMA,
)
from magist.pipeline.ingest import Dataset


def _frame(rows, schema) -> pl.DataFrame:
    return pl.DataFrame([{k: r.get(k) for k in schema} for r in rows or []], schema=schema)


def build_dataset(
    orders=None,
    order_items=None,
    products=None,
    translation=None,
    payments=None,
    reviews=None,
) -> Dataset:
    """Build a Dataset from partial row dicts; absent columns are null."""
    return Dataset(
        orders=_frame(orders, ORDERS_SCHEMA),
        order_items=_frame(order_items, ORDER_ITEMS_SCHEMA),
        products=_frame(products, PRODUCTS_SCHEMA),
        category_translation=_frame(translation, CATEGORY_TRANSLATION_SCHEMA),
        payments=_frame(payments, PAYMENTS_SCHEMA),
        reviews=_frame(reviews, REVIEWS_SCHEMA),
    )


@pytest.fixture
def dataset_factory():
    """Factory for small hand-built datasets"""
    return build_dataset


@pytest.fixture
def sample_dataset() -> Dataset:
    """
    Five orders, seven items, two of them in the refined tech segment.

    o1 delivered 5 days late, o2 delivered 2 days early, o5 on the estimated
    day; o3 is still shipping and o4 is delivered without a delivery date.
    pc_gamer has no English translation and p_none has no category.
    """
    return build_dataset(
        orders=[
            {"order_id": "o1", "order_status": "delivered",
             "order_purchase_timestamp": datetime(2018, 2, 20, 10, 0),
             "order_estimated_delivery_date": datetime(2018, 3, 10),
             "order_delivered_customer_date": datetime(2018, 3, 15, 12, 0)},
            {"order_id": "o2", "order_status": "delivered",
             "order_purchase_timestamp": datetime(2018, 2, 25, 9, 0),
             "order_estimated_delivery_date": datetime(2018, 3, 10),
             "order_delivered_customer_date": datetime(2018, 3, 8)},
            {"order_id": "o3", "order_status": "shipped",
             "order_purchase_timestamp": datetime(2017, 12, 5, 14, 30),
             "order_estimated_delivery_date": datetime(2017, 12, 30)},
            {"order_id": "o4", "order_status": "delivered",
             "order_purchase_timestamp": datetime(2017, 11, 11, 11, 11),
             "order_estimated_delivery_date": datetime(2017, 12, 1)},
            {"order_id": "o5", "order_status": "delivered",
             "order_purchase_timestamp": datetime(2017, 11, 20, 8, 0),
             "order_estimated_delivery_date": datetime(2017, 12, 10),
             "order_delivered_customer_date": datetime(2017, 12, 10)},
        ],
        order_items=[
            {"order_id": "o1", "order_item_id": 1, "product_id": "p_elec", "seller_id": "s1", "price": 150.0},
            {"order_id": "o1", "order_item_id": 2, "product_id": "p_bed", "seller_id": "s2", "price": 40.0},
            {"order_id": "o2", "order_item_id": 1, "product_id": "p_comp", "seller_id": "s1", "price": 120.0},
            {"order_id": "o2", "order_item_id": 2, "product_id": "p_comp", "seller_id": "s3", "price": 60.0},
            {"order_id": "o3", "order_item_id": 1, "product_id": "p_gamer", "seller_id": "s2", "price": 900.0},
            {"order_id": "o4", "order_item_id": 1, "product_id": "p_none", "seller_id": "s3", "price": 30.0},
            {"order_id": "o5", "order_item_id": 1, "product_id": "p_bed", "seller_id": "s2", "price": 75.0},
        ],
        products=[
            {"product_id": "p_elec", "product_category_name": "eletronicos"},
            {"product_id": "p_comp", "product_category_name": "informatica_acessorios"},
            {"product_id": "p_bed", "product_category_name": "cama_mesa_banho"},
            {"product_id": "p_gamer", "product_category_name": "pc_gamer"},
            {"product_id": "p_none", "product_category_name": None},
        ],
        translation=[
            {"product_category_name": "eletronicos", "product_category_name_english": "electronics"},
            {"product_category_name": "informatica_acessorios",
             "product_category_name_english": "computers_accessories"},
            {"product_category_name": "cama_mesa_banho", "product_category_name_english": "bed_bath_table"},
        ],
        payments=[
            {"order_id": "o1", "payment_sequential": 1, "payment_value": 30.0},
            {"order_id": "o1", "payment_sequential": 2, "payment_value": 45.5},
            {"order_id": "o2", "payment_sequential": 1, "payment_value": 200.0},
            {"order_id": "o3", "payment_sequential": 1, "payment_value": 950.0},
            {"order_id": "o4", "payment_sequential": 1, "payment_value": 35.0},
            {"order_id": "o5", "payment_sequential": 1, "payment_value": 80.0},
        ],
        reviews=[
            {"review_id": "r1", "order_id": "o1", "review_score": 1},
            {"review_id": "r2", "order_id": "o2", "review_score": 5},
            {"review_id": "r3", "order_id": "o3", "review_score": 5},
            {"review_id": "r4", "order_id": "o4", "review_score": 3},
            {"review_id": "r5", "order_id": "o5", "review_score": 5},
            {"review_id": "r6", "order_id": "o5", "review_score": None},
        ],
    )


@pytest.fixture
def ten_item_dataset() -> Dataset:
    """Two electronics items priced 150 and 80, eight items in other categories."""
    prices = [150.0, 80.0, 20.0, 35.0, 110.0, 250.0, 60.0, 99.0, 15.0, 300.0]
    products = ["p_elec", "p_elec"] + ["p_bed", "p_toy"] * 4
    return build_dataset(
        orders=[
            {"order_id": f"o{i}", "order_status": "delivered",
             "order_purchase_timestamp": datetime(2017, 6, 1 + i)}
            for i in range(10)
        ],
        order_items=[
            {"order_id": f"o{i}", "order_item_id": 1, "product_id": product,
             "seller_id": f"s{i % 3}", "price": price}
            for i, (product, price) in enumerate(zip(products, prices))
        ],
        products=[
            {"product_id": "p_elec", "product_category_name": "eletronicos"},
            {"product_id": "p_bed", "product_category_name": "cama_mesa_banho"},
            {"product_id": "p_toy", "product_category_name": "brinquedos"},
        ],
        translation=[
            {"product_category_name": "eletronicos", "product_category_name_english": "electronics"},
            {"product_category_name": "cama_mesa_banho", "product_category_name_english": "bed_bath_table"},
            {"product_category_name": "brinquedos", "product_category_name_english": "toys"},
        ],
    )

"""
Synthetic Magist marketplace generator.

Builds a small, deterministic dataset with the shape of the real snapshot:
  1. Orders from Sep 2016 to Aug 2018, ~97% delivered
  2. Tech categories priced higher and delivered slightly slower
  3. One category with no English translation (pc_gamer, as in the real data)
  4. Split payments and unscored reviews

Usage:
    python -m magist.data_generator.generate
"""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import numpy as np
import polars as pl

from magist.contracts.schemas import (
    CATEGORY_TRANSLATION_SCHEMA,
    ORDER_ITEMS_SCHEMA,
    ORDERS_SCHEMA,
    PAYMENTS_SCHEMA,
    PRODUCTS_SCHEMA,
    RAW_DATA_DIR,
    REVIEWS_SCHEMA,
    SOURCE_TABLES,
    TECH_CATEGORIES,
    TIMESTAMP_FORMAT,
)
from magist.pipeline.ingest import Dataset

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
DEFAULT_ORDERS = 2_000
DEFAULT_SEED = 42
START_DATE = datetime(2016, 9, 4)
END_DATE = datetime(2018, 8, 31)
N_PRODUCTS = 400
N_SELLERS = 60

# (portuguese label, english label or None, catalogue weight, price range)
CATEGORIES = [
    ("cama_mesa_banho",        "bed_bath_table",        0.14, (15, 180)),
    ("beleza_saude",           "health_beauty",         0.13, (10, 220)),
    ("esporte_lazer",          "sports_leisure",        0.12, (15, 250)),
    ("moveis_decoracao",       "furniture_decor",       0.11, (20, 300)),
    ("utilidades_domesticas",  "housewares",            0.09, (10, 200)),
    ("relogios_presentes",     "watches_gifts",         0.07, (40, 600)),
    ("brinquedos",             "toys",                  0.06, (10, 250)),
    ("informatica_acessorios", "computers_accessories", 0.09, (15, 400)),
    ("telefonia",              "telephony",             0.06, (10, 350)),
    ("eletronicos",            "electronics",           0.06, (10, 300)),
    ("audio",                  "audio",                 0.03, (30, 450)),
    ("pcs",                    "computers",             0.02, (300, 3000)),
    ("pc_gamer",               None,                    0.01, (200, 2500)),
]

TECH_DELIVERY_SLOWDOWN_DAYS = 1.5

STATUS_WEIGHTS = {
    "delivered": 0.97,
    "shipped": 0.012,
    "canceled": 0.008,
    "processing": 0.005,
    "unavailable": 0.005,
}

REVIEW_SCORE_WEIGHTS = [0.11, 0.03, 0.08, 0.19, 0.59]   # scores 1..5
LATE_REVIEW_SCORE_WEIGHTS = [0.45, 0.12, 0.15, 0.12, 0.16]


# ---------------------------------------------------------------------------
# Random helpers
# ---------------------------------------------------------------------------

def _hex_id(rng: np.random.Generator) -> str:
    return rng.bytes(16).hex()


def _pick(rng: np.random.Generator, weights: dict[str, float]) -> str:
    keys = list(weights.keys())
    probs = np.array(list(weights.values()), dtype=float)
    probs /= probs.sum()
    return str(rng.choice(keys, p=probs))


def _random_timestamp(rng: np.random.Generator) -> datetime:
    span = (END_DATE - START_DATE).total_seconds()
    return START_DATE + timedelta(seconds=int(rng.random() * span))


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

def _build_products(rng: np.random.Generator) -> list[dict]:
    weights = np.array([c[2] for c in CATEGORIES], dtype=float)
    weights /= weights.sum()
    # Every category is listed at least once
    picks = np.concatenate([
        np.arange(len(CATEGORIES)),
        rng.choice(len(CATEGORIES), size=N_PRODUCTS - len(CATEGORIES), p=weights),
    ])
    products = []
    for idx in picks:
        pt, en, _, (low, high) = CATEGORIES[idx]
        products.append({
            "product_id": _hex_id(rng),
            "product_category_name": pt,
            "_base_price": round(float(rng.uniform(low, high)), 2),
            "_is_tech_category": en in TECH_CATEGORIES,
        })
    # A handful of products were never categorised
    for product in products[:: max(N_PRODUCTS // 5, 1)][:3]:
        product["product_category_name"] = None
    return products


def _order_rows(rng: np.random.Generator, order_id: str, products: list[dict], sellers: list[str]) -> tuple:
    """Build one order with its items, payments and review."""
    purchased = _random_timestamp(rng)
    status = _pick(rng, STATUS_WEIGHTS)
    estimated = (purchased + timedelta(days=int(rng.integers(15, 36)))).replace(
        hour=0, minute=0, second=0
    )

    n_items = int(rng.choice([1, 1, 1, 1, 2, 2, 3]))
    items = []
    for position in range(1, n_items + 1):
        product = products[int(rng.integers(0, len(products)))]
        price = round(product["_base_price"] * float(rng.uniform(0.9, 1.1)), 2)
        items.append({
            "order_id": order_id,
            "order_item_id": position,
            "product_id": product["product_id"],
            "seller_id": sellers[int(rng.integers(0, len(sellers)))],
            "price": price,
            "_is_tech_category": product["_is_tech_category"],
        })

    delivered = None
    if status == "delivered" and rng.random() > 0.002:
        slowdown = TECH_DELIVERY_SLOWDOWN_DAYS if any(i["_is_tech_category"] for i in items) else 0.0
        days = max(1.0, float(rng.gamma(shape=3.0, scale=4.0)) + slowdown)
        delivered = purchased + timedelta(days=days)

    total = round(sum(i["price"] for i in items) * float(rng.uniform(1.05, 1.25)), 2)
    if rng.random() < 0.15:
        first = round(total * float(rng.uniform(0.2, 0.8)), 2)
        fragments = [first, round(total - first, 2)]
    else:
        fragments = [total]
    payments = [
        {"order_id": order_id, "payment_sequential": seq, "payment_value": value}
        for seq, value in enumerate(fragments, start=1)
    ]

    late = delivered is not None and delivered > estimated
    weights = np.array(LATE_REVIEW_SCORE_WEIGHTS if late else REVIEW_SCORE_WEIGHTS)
    score = int(rng.choice([1, 2, 3, 4, 5], p=weights / weights.sum()))
    review = {
        "review_id": _hex_id(rng),
        "order_id": order_id,
        "review_score": None if rng.random() < 0.01 else score,
    }

    order = {
        "order_id": order_id,
        "order_status": status,
        "order_purchase_timestamp": purchased,
        "order_estimated_delivery_date": estimated,
        "order_delivered_customer_date": delivered,
    }
    return order, items, payments, review


def generate_dataset(n_orders: int = DEFAULT_ORDERS, seed: int = DEFAULT_SEED) -> Dataset:
    """Generate a Magist-shaped Dataset. Same seed, same data."""
    rng = np.random.default_rng(seed=seed)
    products = _build_products(rng)
    sellers = [_hex_id(rng) for _ in range(N_SELLERS)]

    orders, items, payments, reviews = [], [], [], []
    for _ in range(n_orders):
        order, order_items, order_payments, review = _order_rows(rng, _hex_id(rng), products, sellers)
        orders.append(order)
        items.extend(order_items)
        payments.extend(order_payments)
        reviews.append(review)

    translation = [
        {"product_category_name": pt, "product_category_name_english": en}
        for pt, en, _, _ in CATEGORIES
        if en is not None
    ]

    def frame(rows: list[dict], schema: dict) -> pl.DataFrame:
        return pl.DataFrame([{k: r[k] for k in schema} for r in rows], schema=schema)

    return Dataset(
        orders=frame(orders, ORDERS_SCHEMA),
        order_items=frame(items, ORDER_ITEMS_SCHEMA),
        products=frame(products, PRODUCTS_SCHEMA),
        category_translation=frame(translation, CATEGORY_TRANSLATION_SCHEMA),
        payments=frame(payments, PAYMENTS_SCHEMA),
        reviews=frame(reviews, REVIEWS_SCHEMA),
    )


def write_dataset(dataset: Dataset, data_dir: str | Path = RAW_DATA_DIR) -> list[Path]:
    """Write each relation as <relation>.csv under data_dir."""
    out = Path(data_dir)
    out.mkdir(parents=True, exist_ok=True)
    tables = {
        "orders": dataset.orders,
        "order_items": dataset.order_items,
        "products": dataset.products,
        "product_category_name_translation": dataset.category_translation,
        "order_payments": dataset.payments,
        "order_reviews": dataset.reviews,
    }
    written = []
    for relation, df in tables.items():
        path = out / f"{SOURCE_TABLES[relation][1][0]}.csv"
        df.write_csv(path, datetime_format=TIMESTAMP_FORMAT)
        written.append(path)
    return written


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

def print_summary(dataset: Dataset) -> None:
    print("\n" + "=" * 60)
    print("DATA GENERATOR SUMMARY")
    print("=" * 60)
    print(f"Orders:        {len(dataset.orders):,}")
    print(f"Order items:   {len(dataset.order_items):,}")
    print(f"Products:      {len(dataset.products):,}")
    print(f"Payments:      {len(dataset.payments):,}")
    print(f"Reviews:       {len(dataset.reviews):,}")

    print("\n--- Order status ---")
    status = dataset.orders.group_by("order_status").agg(pl.len().alias("n")).sort("n", descending=True)
    for row in status.iter_rows(named=True):
        print(f"  {row['order_status']:<12} {row['n']:>6,}")
    print("=" * 60)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(
    data_dir: str | Path = RAW_DATA_DIR,
    n_orders: int = DEFAULT_ORDERS,
    seed: int = DEFAULT_SEED,
) -> Dataset:
    print("[generate] Generating synthetic Magist marketplace...")
    dataset = generate_dataset(n_orders, seed)
    print_summary(dataset)
    for path in write_dataset(dataset, data_dir):
        print(f"[generate] Saved -> {path}")
    return dataset


if __name__ == "__main__":
    main()

"""
Unit Tests - Market Analysis Reports
"""
from datetime import datetime

import polars as pl
import pytest

from magist.analytics.reports import (
    REPORTS,
    ReportInputs,
    build_reports,
    catalogue_size,
    delivery_performance,
    item_price_range,
    monthly_orders,
    order_overview,
    payment_value_range,
    products_per_category,
    rating_distribution_all,
    rating_distribution_tech,
    refined_tech_prices,
    review_scores,
    tech_price_profile,
    tech_sellers,
    tech_share_monthly,
    tech_share_overall,
    top_order_payment,
    yearly_revenue,
)
from magist.contracts.schemas import ERROR_COLUMN, REPORT_SCHEMAS, SEGMENT_ALL_ITEMS, SEGMENT_TECH

pytestmark = pytest.mark.filterwarnings("ignore::magist.contracts.errors.MissingJoinTarget")


@pytest.fixture
def inputs(sample_dataset) -> ReportInputs:
    return ReportInputs(sample_dataset)


def _row(df: pl.DataFrame, **match) -> dict:
    for col, value in match.items():
        df = df.filter(pl.col(col) == value)
    rows = df.to_dicts()
    assert len(rows) == 1
    return rows[0]


class TestOrderVolume:
    """Tests for order volume and revenue reports"""

    def test_order_overview(self, inputs):
        row = order_overview(inputs).to_dicts()[0]

        assert row["total_orders"] == 5
        assert row["first_order_date"] == datetime(2017, 11, 11, 11, 11)
        assert row["last_order_date"] == datetime(2018, 2, 25, 9, 0)

    def test_monthly_orders_time_series(self, inputs):
        result = monthly_orders(inputs)

        assert result.select(["year", "month_number", "orders_in_month"]).rows() == [
            (2017, 11, 2),
            (2017, 12, 1),
            (2018, 2, 2),
        ]

    def test_yearly_revenue_counts_delivered_orders_only(self, inputs):
        result = yearly_revenue(inputs)

        assert result.select(["year", "total_revenue"]).rows() == [(2017, 115.0), (2018, 275.5)]


class TestCatalogueAndPrices:
    """Tests for catalogue and price structure reports"""

    def test_catalogue_size(self, inputs):
        assert catalogue_size(inputs)["total_unique_products"].to_list() == [5]

    def test_products_per_category_keeps_untranslated(self, inputs):
        result = products_per_category(inputs)

        assert result.height == 5
        assert _row(result, category_pt="pc_gamer")["category_en"] is None
        assert result["category_pt"].to_list()[-1] is None

    def test_products_per_category_counts_every_product_row(self, dataset_factory):
        dataset = dataset_factory(
            products=[
                {"product_id": "p1", "product_category_name": "audio"},
                {"product_id": "p1", "product_category_name": "audio"},
                {"product_id": "p2", "product_category_name": "audio"},
            ],
            translation=[{"product_category_name": "audio", "product_category_name_english": "audio"}],
        )

        result = products_per_category(ReportInputs(dataset))

        assert result.select(["category_en", "number_of_products"]).rows() == [("audio", 3)]
        assert catalogue_size(ReportInputs(dataset))["total_unique_products"].to_list() == [2]

    def test_price_and_payment_ranges(self, inputs):
        assert item_price_range(inputs).select(
            ["cheapest_item_price", "most_expensive_item_price"]
        ).rows() == [(30.0, 900.0)]
        assert payment_value_range(inputs).select(
            ["smallest_payment_value", "largest_payment_value"]
        ).rows() == [(30.0, 950.0)]

    def test_top_order_payment(self, inputs):
        assert top_order_payment(inputs).select(["order_id", "total_order_payment"]).rows() == [("o3", 950.0)]


class TestTechSegment:
    """Tests for refined tech segment reports"""

    def test_ten_item_tech_share(self, ten_item_dataset):
        row = tech_share_overall(ReportInputs(ten_item_dataset)).to_dicts()[0]

        assert row["total_items"] == 10
        assert row["refined_tech_items"] == 1
        assert row["pct_refined_tech_items_overall"] == 10.00

    def test_tech_share_monthly(self, inputs):
        result = tech_share_monthly(inputs)

        assert result["purchase_month"].to_list() == ["2017-11", "2017-12", "2018-02"]
        feb = _row(result, purchase_month="2018-02")
        assert (feb["total_items_sold"], feb["refined_tech_items"], feb["pct_refined_tech_items"]) == (4, 2, 50.0)

    def test_tech_price_profile(self, inputs):
        result = tech_price_profile(inputs)

        assert result["category"].to_list() == ["computers_accessories", "electronics"]
        accessories = result.row(0, named=True)
        assert accessories["total_items"] == 2
        assert (accessories["low_range"], accessories["mid_range"], accessories["premium"]) == (0, 1, 1)
        assert (accessories["pct_low_range"], accessories["pct_mid_range"], accessories["pct_premium"]) == (
            0.0, 50.0, 50.0
        )

    def test_price_profile_buckets_are_exhaustive(self, ten_item_dataset):
        result = tech_price_profile(ReportInputs(ten_item_dataset))

        for row in result.iter_rows(named=True):
            assert row["low_range"] + row["mid_range"] + row["premium"] == row["total_items"]
            shares = row["pct_low_range"] + row["pct_mid_range"] + row["pct_premium"]
            assert abs(shares - 100.0) <= 0.05

    def test_refined_tech_prices(self, inputs):
        result = refined_tech_prices(inputs)

        assert result.select(["category", "total_items", "avg_price"]).rows() == [
            ("electronics", 1, 150.0),
            ("computers_accessories", 1, 120.0),
        ]

    def test_tech_sellers(self, inputs):
        result = tech_sellers(inputs)

        assert result.select(["seller_id", "tech_items_sold", "pct_of_tech_items"]).rows() == [("s1", 2, 100.0)]

    def test_tech_sellers_limited_to_top_twenty(self, dataset_factory):
        dataset = dataset_factory(
            order_items=[
                {"order_id": f"o{i}", "order_item_id": 1, "product_id": "p1",
                 "seller_id": f"s{i:02d}", "price": 500.0}
                for i in range(25)
            ],
            products=[{"product_id": "p1", "product_category_name": "pcs"}],
            translation=[{"product_category_name": "pcs", "product_category_name_english": "computers"}],
        )

        result = tech_sellers(ReportInputs(dataset))

        assert result.height == 20
        assert result["pct_of_tech_items"].to_list() == [4.0] * 20


class TestDeliveryAndReviews:
    """Tests for ALL_ITEMS vs TECH_SEGMENT comparisons"""

    def test_delivery_performance(self, inputs):
        result = delivery_performance(inputs)

        overall = _row(result, segment=SEGMENT_ALL_ITEMS)
        assert overall["deliveries"] == 3
        assert overall["avg_delay_days"] == 1.0
        assert overall["avg_abs_delivery_days"] == 17.33
        assert overall["avg_estimated_delivery_days"] == 16.0
        assert (overall["pct_on_time"], overall["pct_delayed"]) == (66.67, 33.33)

        tech = _row(result, segment=SEGMENT_TECH)
        assert tech["deliveries"] == 2
        assert tech["avg_delay_days"] == 1.5
        assert (tech["pct_on_time"], tech["pct_delayed"]) == (50.0, 50.0)
        assert result[ERROR_COLUMN].null_count() == 2

    def test_review_scores(self, inputs):
        result = review_scores(inputs)

        overall = _row(result, segment=SEGMENT_ALL_ITEMS)
        assert overall["reviews"] == 5
        assert overall["avg_review_score"] == 3.80
        assert overall["pct_five_star"] == 60.00
        assert overall["pct_low_scores"] == 20.00

        tech = _row(result, segment=SEGMENT_TECH)
        assert (tech["reviews"], tech["avg_review_score"], tech["pct_five_star"]) == (2, 3.0, 50.0)

    def test_rating_distribution(self, inputs):
        result = rating_distribution_all(inputs)

        assert result.select(["review_score", "count_reviews", "pct_reviews"]).rows() == [
            (1, 1, 20.0),
            (2, 0, 0.0),
            (3, 1, 20.0),
            (4, 0, 0.0),
            (5, 3, 60.0),
        ]
        assert _row(rating_distribution_tech(inputs), review_score=5)["pct_reviews"] == 50.0

    def test_empty_tech_segment_is_reported_not_raised(self, dataset_factory):
        dataset = dataset_factory(
            orders=[{"order_id": "o1", "order_status": "delivered",
                     "order_purchase_timestamp": datetime(2018, 1, 1),
                     "order_estimated_delivery_date": datetime(2018, 1, 20),
                     "order_delivered_customer_date": datetime(2018, 1, 22)}],
            order_items=[{"order_id": "o1", "order_item_id": 1, "product_id": "p1",
                          "seller_id": "s1", "price": 80.0}],
            products=[{"product_id": "p1", "product_category_name": "audio"}],
            translation=[{"product_category_name": "audio", "product_category_name_english": "audio"}],
        )

        result = delivery_performance(ReportInputs(dataset))

        tech = _row(result, segment=SEGMENT_TECH)
        assert tech["deliveries"] == 0
        assert tech["avg_delay_days"] is None
        assert "TECH_SEGMENT" in tech[ERROR_COLUMN]

        overall = _row(result, segment=SEGMENT_ALL_ITEMS)
        assert overall[ERROR_COLUMN] is None
        assert (overall["avg_delay_days"], overall["pct_delayed"]) == (2.0, 100.0)


class TestBuildReports:
    """Tests for the report registry"""

    def test_every_report_matches_its_schema(self, inputs):
        reports = build_reports(inputs)

        assert set(reports) == set(REPORTS)
        for name, df in reports.items():
            assert df.columns == list(REPORT_SCHEMAS[name]) + [ERROR_COLUMN], name

    def test_selected_reports(self, sample_dataset):
        reports = build_reports(sample_dataset, ["catalogue_size"])

        assert list(reports) == ["catalogue_size"]

    def test_unknown_report(self, inputs):
        with pytest.raises(ValueError, match="no_such_report"):
            build_reports(inputs, ["no_such_report"])

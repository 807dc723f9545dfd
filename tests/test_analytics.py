"""Test commission and storefront analytics calculations."""

from unittest.mock import MagicMock

import pytest

from analytics import (AnalyticsService, calculate_most_viewed_products, calculate_top_selling_products,
                       order_commission, product_lookup)
from analytics_store import JsonAnalyticsStore
from models import MainStoreProduct


@pytest.fixture
def orders():
    return [
        {"id": 1, "order_number": 1001, "total_price": "100.00",
         "line_items": [{"title": "Trail Tee", "quantity": 2, "product_id": 11},
                        {"title": "Widget", "quantity": 1, "product_id": 12}]},
        {"id": 2, "order_number": 1002, "total_price": "19.99",
         "line_items": [{"title": "Widget", "quantity": 5, "product_id": 12}]},
    ]


@pytest.fixture
def products():
    return [
        MainStoreProduct(id=11, title="Trail Tee", image={"src": "https://cdn.example.com/tee.jpg"}),
        MainStoreProduct(id=12, title="Widget", image=None),
    ]


@pytest.fixture
def store(tmp_path):
    return JsonAnalyticsStore(str(tmp_path / "analytics.json"))


class TestCalculations:
    """Test pure analytics helpers."""

    @pytest.mark.parametrize("total,percentage,expected", [
        ("100.00", 10, "10.00"),
        ("19.99", 12.5, "2.50"),
        (None, 10, "0.00"),
        ("n/a", 10, "0.00"),
    ])
    def test_order_commission(self, total, percentage, expected):
        assert order_commission({"total_price": total}, percentage) == expected

    def test_product_lookup(self, products):
        images, titles = product_lookup(products)

        assert images == {"11": "https://cdn.example.com/tee.jpg", "12": ""}
        assert titles == {"11": "Trail Tee", "12": "Widget"}

    def test_top_selling_sums_quantities_by_title(self, orders):
        top = calculate_top_selling_products(orders, {"11": "tee.jpg"})

        assert top == [
            {"title": "Widget", "quantity": 6, "image": ""},
            {"title": "Trail Tee", "quantity": 2, "image": "tee.jpg"},
        ]

    def test_most_viewed_sorted_by_views(self):
        viewed = calculate_most_viewed_products({"11": 3, "12": 9}, {"11": "tee.jpg"}, {"11": "Trail Tee"})

        assert [p["id"] for p in viewed] == ["12", "11"]
        assert viewed[1] == {"id": "11", "title": "Trail Tee", "views": 3, "image": "tee.jpg"}
        assert viewed[0]["title"] is None


class TestAnalyticsService:
    """Test reports combining the main store with stored analytics."""

    def test_commission_overview(self, store, orders):
        store.set_commission_percentage(20)
        shopify = MagicMock()
        shopify.fetch_all_orders.return_value = orders

        overview = AnalyticsService(shopify, store).commission_overview()

        assert overview["commissionPercentage"] == 20.0
        assert [o["commission"] for o in overview["orders"]] == ["20.00", "4.00"]

    def test_product_analytics(self, store, orders, products):
        store.increment_product_view_count(11)
        shopify = MagicMock()
        shopify.fetch_all_products.return_value = products
        shopify.fetch_all_orders.return_value = orders

        report = AnalyticsService(shopify, store).product_analytics()

        assert report["topSellingProducts"][0]["title"] == "Widget"
        assert report["mostViewedProducts"] == [
            {"id": "11", "title": "Trail Tee", "views": 1, "image": "https://cdn.example.com/tee.jpg"}
        ]

    def test_facebook_event_report_drops_unknown_products(self, store, products):
        store.track_facebook_event({"eventName": "ViewContent", "productId": 11})
        store.track_facebook_event({"eventName": "ViewContent", "productId": 99})
        store.track_facebook_event({"eventName": "AddToCart", "productId": 12})
        shopify = MagicMock()
        shopify.fetch_all_products.return_value = products

        report = AnalyticsService(shopify, store).facebook_event_report()

        assert report["counts"] == {"ViewContent": 2, "AddToCart": 1, "InitiateCheckout": 0, "Purchase": 0}
        assert [p["productId"] for p in report["topViewedProducts"]] == ["11"]
        assert report["topViewedProducts"][0]["title"] == "Trail Tee"
        assert report["topAddToCartProducts"][0]["title"] == "Widget"
        assert len(report["events"]) == 3

"""Test the Shopify REST catalog client."""

from unittest.mock import patch

import pytest
import requests

from conftest import make_response
from models import ShopCredentials
from shopify_client import RemoteAPIError, ResponseParseError, ShopifyClient


@pytest.fixture
def client(mock_session):
    return ShopifyClient("main-store", " shpat_main ", "2024-04", session=mock_session)


def _page(ids, next_url=None):
    links = {"next": {"url": next_url, "rel": "next"}} if next_url else {}
    return make_response(200, {"products": [{"id": i, "title": f"P{i}"} for i in ids]}, links=links)


class TestPagination:
    """Test link-header pagination of the product listing."""

    def test_three_pages_are_concatenated(self, client, mock_session):
        mock_session.request.side_effect = [
            _page([1, 2], "https://main-store.myshopify.com/admin/api/2024-04/products.json?page_info=b"),
            _page([3, 4, 5], "https://main-store.myshopify.com/admin/api/2024-04/products.json?page_info=c"),
            _page([6]),
        ]

        products = client.fetch_all_products()

        assert [p.id for p in products] == [1, 2, 3, 4, 5, 6]
        assert mock_session.request.call_count == 3

    def test_first_request_uses_page_limit(self, client, mock_session):
        mock_session.request.side_effect = [_page([1])]

        client.fetch_all_products()

        method, url = mock_session.request.call_args.args
        assert method == "GET"
        assert url == "https://main-store.myshopify.com/admin/api/2024-04/products.json?limit=250"

    def test_next_link_is_followed(self, client, mock_session):
        next_url = "https://main-store.myshopify.com/admin/api/2024-04/products.json?limit=250&page_info=xyz"
        mock_session.request.side_effect = [_page([1], next_url), _page([2])]

        client.fetch_all_products()

        assert mock_session.request.call_args_list[1].args[1] == next_url

    def test_failed_page_raises(self, client, mock_session):
        mock_session.request.side_effect = [
            _page([1], "https://main-store.myshopify.com/next"),
            make_response(500, ValueError("no json"), text="Internal error"),
        ]

        with pytest.raises(RemoteAPIError) as exc:
            client.fetch_all_products()

        assert exc.value.status == 500
        assert exc.value.body == "Internal error"


class TestCredentials:
    """Test per-call host and token resolution."""

    def test_default_credentials(self, client, mock_session):
        mock_session.request.side_effect = [_page([])]

        client.fetch_all_products()

        headers = mock_session.request.call_args.kwargs["headers"]
        assert headers["X-Shopify-Access-Token"] == "shpat_main"

    def test_vendor_credentials(self, client, mock_session):
        mock_session.request.side_effect = [_page([])]
        creds = ShopCredentials(shop_name="https://vendor.example.com/", access_token="shpat_vendor")

        client.fetch_all_products(creds)

        url = mock_session.request.call_args.args[1]
        assert url.startswith("https://vendor.example.com/admin/api/2024-04/products.json")
        assert mock_session.request.call_args.kwargs["headers"]["X-Shopify-Access-Token"] == "shpat_vendor"


class TestWrites:
    """Test create and update requests."""

    def test_create_posts_payload(self, client, mock_session):
        mock_session.request.return_value = make_response(201, {"product": {"id": 7, "title": "New"}})
        payload = {"product": {"title": "New"}}

        product = client.create_product(payload)

        assert product.id == 7
        method, url = mock_session.request.call_args.args
        assert method == "POST"
        assert url.endswith("/admin/api/2024-04/products.json")
        assert mock_session.request.call_args.kwargs["json"] == payload

    def test_update_puts_to_product_url(self, client, mock_session):
        mock_session.request.return_value = make_response(200, {"product": {"id": 7, "title": "New"}})

        client.update_product(7, {"product": {"id": 7}})

        method, url = mock_session.request.call_args.args
        assert method == "PUT"
        assert url.endswith("/products/7.json")

    def test_structured_error_body_is_parsed(self, client, mock_session):
        body = {"errors": {"variants": ["is invalid"]}}
        mock_session.request.return_value = make_response(422, body)

        with pytest.raises(RemoteAPIError) as exc:
            client.create_product({"product": {}})

        assert exc.value.status == 422
        assert exc.value.body == body
        assert "422" in str(exc.value)

    def test_unparseable_error_body_keeps_raw_text(self, client, mock_session):
        mock_session.request.return_value = make_response(502, ValueError("html"), text="<html>Bad gateway</html>")

        with pytest.raises(RemoteAPIError) as exc:
            client.update_product(1, {"product": {}})

        assert exc.value.body == "<html>Bad gateway</html>"

    def test_invalid_json_on_success_raises_parse_error(self, client, mock_session):
        mock_session.request.return_value = make_response(200, ValueError("bad"), text="not json")

        with pytest.raises(ResponseParseError):
            client.fetch_product(1)

    def test_missing_envelope_raises_parse_error(self, client, mock_session):
        mock_session.request.return_value = make_response(200, {"unexpected": {}})

        with pytest.raises(ResponseParseError):
            client.fetch_product(1)

    def test_transport_errors_propagate(self, client, mock_session):
        mock_session.request.side_effect = requests.ConnectionError("unreachable")

        with pytest.raises(requests.ConnectionError):
            client.fetch_product(1)


class TestThrottling:
    """Test 429 backoff."""

    def test_throttled_request_is_retried(self, client, mock_session):
        mock_session.request.side_effect = [
            make_response(429, {"errors": "Exceeded 2 calls per second"}, headers={"Retry-After": "1.5"}),
            make_response(200, {"product": {"id": 1, "title": "P"}}),
        ]

        with patch("shopify_client.time.sleep") as sleep:
            product = client.fetch_product(1)

        assert product.id == 1
        sleep.assert_called_once_with(1.5)

    def test_retries_are_bounded(self, client, mock_session):
        mock_session.request.return_value = make_response(429, {"errors": "throttled"})

        with patch("shopify_client.time.sleep"):
            with pytest.raises(RemoteAPIError) as exc:
                client.fetch_product(1)

        assert exc.value.status == 429
        assert mock_session.request.call_count == 3


class TestOrders:
    """Test order endpoints used for order routing."""

    def test_fetch_order(self, client, mock_session):
        mock_session.request.return_value = make_response(200, {"order": {"id": 5, "order_number": 1005}})

        assert client.fetch_order(5)["order_number"] == 1005

    def test_create_draft_order_on_vendor_store(self, client, mock_session):
        mock_session.request.return_value = make_response(201, {"draft_order": {"id": 77}})
        creds = ShopCredentials(shop_name="acme", access_token="shpat_vendor")

        draft = client.create_draft_order({"draft_order": {}}, creds)

        assert draft["id"] == 77
        assert mock_session.request.call_args.args[1] == "https://acme.myshopify.com/admin/api/2024-04/draft_orders.json"

    def test_fetch_all_orders_follows_pages(self, client, mock_session):
        next_url = "https://main-store.myshopify.com/admin/api/2024-04/orders.json?page_info=b"
        mock_session.request.side_effect = [
            make_response(200, {"orders": [{"id": 1}]}, links={"next": {"url": next_url}}),
            make_response(200, {"orders": [{"id": 2}]}),
        ]

        orders = client.fetch_all_orders()

        assert [o["id"] for o in orders] == [1, 2]
        first_url = mock_session.request.call_args_list[0].args[1]
        assert first_url == "https://main-store.myshopify.com/admin/api/2024-04/orders.json?status=any&limit=250"
        assert mock_session.request.call_args_list[1].args[1] == next_url

"""Shared test fixtures for the catalog sync test suite."""

import json
import re
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Setup path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from models import MainStoreProduct, Vendor  # noqa: E402
from shopify_client import RemoteAPIError  # noqa: E402
from vendor_store import JsonVendorStore  # noqa: E402


def make_response(status=200, body=None, links=None, text=None, headers=None):
    """Build a mock requests.Response."""
    response = MagicMock()
    response.status_code = status
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    response.links = links or {}
    response.text = text if text is not None else json.dumps(body)
    response.headers = headers or {}
    return response


def store_slug(title):
    """Slug the way the store does: every run of non-alphanumerics becomes one hyphen."""
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")


class FakeShopify:
    """In-memory stand-in for the main store, recording every write."""

    def __init__(self, products=None, fail_titles=(), fail_catalog=None):
        self.products = {}
        self.next_id = 1000
        self.fail_titles = set(fail_titles)
        self.fail_catalog = fail_catalog
        self.created = []
        self.updated = []
        self.catalog_fetches = 0
        for raw in products or []:
            product = MainStoreProduct.model_validate(raw)
            self.products[product.id] = product

    def fetch_all_products(self, credentials=None):
        self.catalog_fetches += 1
        if self.fail_catalog:
            raise self.fail_catalog
        return list(self.products.values())

    def fetch_product(self, product_id, credentials=None):
        return self.products[product_id]

    def _check(self, payload):
        title = payload["product"].get("title")
        if title in self.fail_titles:
            raise RemoteAPIError(422, {"errors": {"base": ["rejected"]}}, "POST")

    def create_product(self, payload, credentials=None):
        self._check(payload)
        self.next_id += 1
        body = dict(payload["product"])
        body["id"] = self.next_id
        # Without an explicit handle the store slugs the title itself
        body.setdefault("handle", store_slug(body["title"]))
        body["variants"] = [
            {**v, "id": self.next_id * 10 + i, "product_id": self.next_id}
            for i, v in enumerate(body.get("variants", []))
        ]
        product = MainStoreProduct.model_validate(body)
        self.products[product.id] = product
        self.created.append(payload)
        return product

    def update_product(self, product_id, payload, credentials=None):
        self._check(payload)
        self.updated.append((product_id, payload))
        return self.products[product_id]


@pytest.fixture
def fake_shopify():
    return FakeShopify()


@pytest.fixture
def vendor():
    return Vendor(id="v1", name="Acme Outfitters", shop_name="acme-outfitters", access_token="shpat_vendor")


@pytest.fixture
def vendor_store(tmp_path, vendor):
    store = JsonVendorStore(str(tmp_path / "vendors.json"))
    store._save([vendor])
    return store


@pytest.fixture
def mock_session():
    """A requests.Session double whose request() results are queued per test."""
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def sample_candidate():
    return {
        "title": "Trail Tee",
        "product_type": "Shirts",
        "tags": ["outdoor", "summer"],
        "status": "active",
        "body_html": "<p>Vendor copy</p>",
        "images": [{"src": "https://cdn.example.com/tee.jpg"}],
        "options": [{"name": "Size", "values": ["S", "M"]}],
        "variants": [
            {"title": "S", "price": 20, "inventory_quantity": 5, "option1": "S", "sku": "TEE-S"},
            {"title": "M", "price": "21.50", "inventory_quantity": -3, "option1": "M", "sku": "TEE-M",
             "compare_at_price": 30},
        ],
    }

# ============================================================================
#  shopify_client.py — Shopify API Handler
#  Version: 2.0.0
#  CHANGES: REST catalog client with link-header pagination, per-call
#           credentials, typed errors and 429 backoff
# ============================================================================
import requests
import logging
import time
import json
from typing import Any, Dict, List, Optional, Union
from pydantic import ValidationError
from models import MainStoreProduct, ShopCredentials

logger = logging.getLogger(__name__)

PAGE_LIMIT = 250


class ShopifyError(Exception):
    """Base class for failures talking to a Shopify store."""


class RemoteAPIError(ShopifyError):
    def __init__(self, status: int, body: Any, method: str = "", url: str = ""):
        self.status = status
        self.body = body
        self.method = method
        self.url = url
        detail = json.dumps(body) if isinstance(body, (dict, list)) else str(body)
        verb = f"Shopify API {method}" if method else "Shopify API"
        super().__init__(f"{verb} responded with status {status}: {detail}")


class ResponseParseError(ShopifyError):
    pass


class ShopifyClient:
    def __init__(self, shop_name: str, token: str, version: str = "2024-04",
                 session: Optional[requests.Session] = None, max_retries: int = 3,
                 timeout: float = 30):
        """Initializes the client against the main store; vendor stores are reached per call."""
        # Trim whitespace from token (common issue with env vars)
        token = token.strip() if token else ""

        self.default_credentials = ShopCredentials(shop_name=shop_name, access_token=token)
        self.version = version
        self.max_retries = max(1, max_retries)
        self.timeout = timeout
        # Use session for connection pooling and reuse
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

        logger.info("=" * 80)
        logger.info("Shopify API Configuration:")
        logger.info(f"  Main store: {self.default_credentials.hostname}")
        logger.info(f"  API Version: {version}")
        logger.info(f"  Access Token: {'*' * min(len(token), 20)}... (hidden)")
        logger.info("=" * 80)

    def _resolve(self, credentials: Optional[ShopCredentials]) -> ShopCredentials:
        return credentials or self.default_credentials

    def api_url(self, path: str, credentials: Optional[ShopCredentials] = None) -> str:
        creds = self._resolve(credentials)
        return f"https://{creds.hostname}/admin/api/{self.version}/{path.lstrip('/')}"

    def _request(self, method: str, url: str, credentials: Optional[ShopCredentials] = None,
                 payload: Optional[Dict] = None) -> requests.Response:
        """Sends one request, retrying when the store answers 429 Too Many Requests."""
        creds = self._resolve(credentials)
        headers = {"X-Shopify-Access-Token": creds.access_token}
        writes = method in ("POST", "PUT")
        if writes:
            logger.info(f"--- {method} to Shopify: {url}")
            logger.debug(f"Payload: {json.dumps(payload, indent=2, default=str)}")

        for attempt in range(self.max_retries):
            response = self.session.request(method, url, json=payload, headers=headers,
                                            timeout=self.timeout)
            if response.status_code == 429 and attempt < self.max_retries - 1:
                wait = _retry_after(response, attempt)
                logger.warning(f"Throttled by {creds.hostname}. Waiting {wait}s... (attempt {attempt + 1}/{self.max_retries})")
                time.sleep(wait)
                continue
            break

        if writes:
            logger.info(f"--- {method} response: {response.status_code}")
        if not 200 <= response.status_code < 300:
            body = _error_body(response)
            logger.error(f"Shopify {method} {url} failed with status {response.status_code}")
            logger.error(f"  Response: {response.text[:500] if response.text else 'No response body'}")
            raise RemoteAPIError(response.status_code, body, method, url)
        return response

    def _decode(self, response: requests.Response, key: str) -> Any:
        try:
            data = response.json()
        except ValueError as e:
            raise ResponseParseError(f"Failed to parse Shopify response: {e}") from e
        if not isinstance(data, dict) or key not in data:
            raise ResponseParseError(f"Shopify response is missing '{key}'")
        return data[key]

    def _product(self, raw: Any) -> MainStoreProduct:
        try:
            return MainStoreProduct.model_validate(raw)
        except ValidationError as e:
            raise ResponseParseError(f"Unexpected product record from Shopify: {e}") from e

    def _paginate(self, path: str, key: str, credentials: Optional[ShopCredentials] = None) -> List[Any]:
        """Walks every page of a listing, following the rel="next" link header."""
        url = self.api_url(path, credentials)
        records: List[Any] = []
        pages = 0
        while url:
            response = self._request("GET", url, credentials)
            records.extend(self._decode(response, key))
            pages += 1
            url = (response.links or {}).get("next", {}).get("url")
        logger.info(f"Fetched {len(records)} {key} in {pages} page(s) from {self._resolve(credentials).hostname}")
        return records

    def fetch_all_products(self, credentials: Optional[ShopCredentials] = None,
                           limit: int = PAGE_LIMIT) -> List[MainStoreProduct]:
        page = self._paginate(f"products.json?limit={limit}", "products", credentials)
        return [self._product(p) for p in page]

    def fetch_all_orders(self, credentials: Optional[ShopCredentials] = None, status: str = "any",
                         limit: int = PAGE_LIMIT) -> List[Dict]:
        return self._paginate(f"orders.json?status={status}&limit={limit}", "orders", credentials)

    def fetch_product(self, product_id: Union[int, str],
                      credentials: Optional[ShopCredentials] = None) -> MainStoreProduct:
        response = self._request("GET", self.api_url(f"products/{product_id}.json", credentials), credentials)
        return self._product(self._decode(response, "product"))

    def create_product(self, payload: Dict, credentials: Optional[ShopCredentials] = None) -> MainStoreProduct:
        response = self._request("POST", self.api_url("products.json", credentials), credentials, payload)
        return self._product(self._decode(response, "product"))

    def update_product(self, product_id: Union[int, str], payload: Dict,
                       credentials: Optional[ShopCredentials] = None) -> MainStoreProduct:
        response = self._request("PUT", self.api_url(f"products/{product_id}.json", credentials),
                                 credentials, payload)
        return self._product(self._decode(response, "product"))

    def fetch_order(self, order_id: Union[int, str], credentials: Optional[ShopCredentials] = None) -> Dict:
        response = self._request("GET", self.api_url(f"orders/{order_id}.json", credentials), credentials)
        return self._decode(response, "order")

    def create_draft_order(self, payload: Dict, credentials: ShopCredentials) -> Dict:
        response = self._request("POST", self.api_url("draft_orders.json", credentials), credentials, payload)
        return self._decode(response, "draft_order")


def _retry_after(response: requests.Response, attempt: int) -> float:
    try:
        return float(response.headers.get("Retry-After"))
    except (TypeError, ValueError):
        return float((attempt + 1) * 2)


def _error_body(response: requests.Response) -> Any:
    """Structured error object when the body is JSON, raw text otherwise."""
    try:
        return response.json()
    except ValueError:
        return response.text
# ============================================================================
# End of shopify_client.py — Version: 2.0.0
# ============================================================================

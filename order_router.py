# ============================================================================
#  order_router.py — Main-Store Order Routing to Vendors
#  Version: 2.0.0
#  CHANGES: Forward main-store orders to a vendor store as draft orders
# ============================================================================
import logging
import requests
from dataclasses import dataclass, field
from typing import Dict, List, Union
from shopify_client import ShopifyClient, ShopifyError
from sync_engine import VendorNotFoundError
from vendor_store import VendorStore

logger = logging.getLogger(__name__)


class OrderRoutingError(Exception):
    pass


@dataclass
class RoutingResult:
    vendor_name: str
    sent: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failed

    @property
    def message(self) -> str:
        return f"Successfully sent {len(self.sent)} orders. Failed to send {len(self.failed)} orders."


def to_draft_order_payload(order: Dict) -> Dict:
    """Builds the vendor draft order for a main-store order."""
    if not order.get("customer") or not order.get("shipping_address"):
        raise OrderRoutingError(
            f"Order #{order.get('order_number', order.get('id'))} is missing customer or shipping address details."
        )
    customer = order["customer"]
    return {
        "draft_order": {
            "line_items": [
                {
                    "title": item.get("title"),
                    "price": item.get("price"),
                    "quantity": item.get("quantity"),
                    "requires_shipping": item.get("requires_shipping"),
                    "grams": item.get("grams") or 0,
                }
                for item in order.get("line_items", [])
            ],
            "customer": {
                "first_name": customer.get("first_name"),
                "last_name": customer.get("last_name"),
                "email": customer.get("email"),
            },
            "shipping_address": order["shipping_address"],
            "use_customer_default_address": False,
        }
    }


class OrderRouter:
    def __init__(self, shopify: ShopifyClient, vendors: VendorStore):
        self.shopify = shopify
        self.vendors = vendors

    def send_orders(self, vendor_id: str, order_ids: List[Union[int, str]]) -> RoutingResult:
        if not vendor_id or not order_ids:
            raise ValueError("Missing order IDs or vendor ID.")
        vendor = self.vendors.get_vendor_by_id(vendor_id)
        if vendor is None:
            raise VendorNotFoundError(vendor_id)

        logger.info(f"Sending {len(order_ids)} order(s) to vendor: {vendor.name}")
        result = RoutingResult(vendor.name)
        for order_id in order_ids:
            logger.info(f"--- Processing Order ID: {order_id} ---")
            try:
                order = self.shopify.fetch_order(order_id)
                payload = to_draft_order_payload(order)
                draft = self.shopify.create_draft_order(payload, vendor.credentials)
                logger.info(f"Sent draft order {draft.get('id')} for order #{order.get('order_number')} to {vendor.name}")
                result.sent.append(str(order_id))
            except (ShopifyError, OrderRoutingError, requests.RequestException) as e:
                logger.error(f"Failed to send order {order_id} to vendor {vendor.name}: {e}")
                result.failed[str(order_id)] = str(e)
        logger.info(result.message)
        return result
# ============================================================================
# End of order_router.py — Version: 2.0.0
# ============================================================================

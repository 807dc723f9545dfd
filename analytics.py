# ============================================================================
#  analytics.py — Commission & Storefront Analytics
#  Version: 2.0.0
#  CHANGES: Per-order commission, top selling / most viewed products and
#           ad-pixel event reports over main-store data
# ============================================================================
import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple
from analytics_store import JsonAnalyticsStore
from models import EventFilters, MainStoreProduct
from shopify_client import ShopifyClient

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
REPORTED_PIXEL_EVENTS = ("ViewContent", "AddToCart", "InitiateCheckout", "Purchase")


def order_commission(order: Dict[str, Any], percentage: float) -> str:
    """Commission owed on one order, as a two-decimal string."""
    try:
        total = Decimal(str(order.get("total_price") or 0))
    except InvalidOperation:
        total = Decimal(0)
    return str((total * Decimal(str(percentage)) / 100).quantize(CENT, rounding=ROUND_HALF_UP))


def product_lookup(products: Iterable[MainStoreProduct]) -> Tuple[Dict[str, str], Dict[str, str]]:
    """Image URL and title per product id (as string)."""
    images, titles = {}, {}
    for p in products:
        image = (p.model_extra or {}).get("image") or {}
        images[str(p.id)] = image.get("src", "") if isinstance(image, dict) else ""
        titles[str(p.id)] = p.title
    return images, titles


def calculate_top_selling_products(orders: Iterable[Dict[str, Any]],
                                   product_images: Dict[str, str]) -> List[Dict[str, Any]]:
    counts: Dict[str, Dict[str, Any]] = {}
    for order in orders:
        for item in order.get("line_items") or []:
            title = item.get("title")
            entry = counts.get(title)
            if entry is None:
                counts[title] = {"title": title, "quantity": int(item.get("quantity") or 0),
                                 "image": product_images.get(str(item.get("product_id")), "")}
            else:
                entry["quantity"] += int(item.get("quantity") or 0)
    return sorted(counts.values(), key=lambda p: p["quantity"], reverse=True)


def calculate_most_viewed_products(view_counts: Dict[str, int], product_images: Dict[str, str],
                                   product_titles: Dict[str, str]) -> List[Dict[str, Any]]:
    products = [
        {"id": pid, "title": product_titles.get(pid), "views": views, "image": product_images.get(pid, "")}
        for pid, views in view_counts.items()
    ]
    return sorted(products, key=lambda p: p["views"], reverse=True)


class AnalyticsService:
    def __init__(self, shopify: ShopifyClient, store: JsonAnalyticsStore):
        self.shopify = shopify
        self.store = store

    def commission_overview(self) -> Dict[str, Any]:
        percentage = self.store.get_commission_percentage()
        orders = self.shopify.fetch_all_orders()
        rows = [
            {
                "id": o.get("id"),
                "order_number": o.get("order_number"),
                "created_at": o.get("created_at"),
                "total_price": o.get("total_price"),
                "commission": order_commission(o, percentage),
            }
            for o in orders
        ]
        logger.info(f"Commission overview: {len(rows)} order(s) at {percentage}%")
        return {"commissionPercentage": percentage, "orders": rows}

    def product_analytics(self) -> Dict[str, Any]:
        images, titles = product_lookup(self.shopify.fetch_all_products())
        orders = self.shopify.fetch_all_orders()
        return {
            "topSellingProducts": calculate_top_selling_products(orders, images),
            "mostViewedProducts": calculate_most_viewed_products(
                self.store.get_all_product_view_counts(), images, titles),
        }

    def facebook_event_report(self, filters: Optional[EventFilters] = None) -> Dict[str, Any]:
        """
        Event totals, the products most often viewed / added to cart, and the
        matching event log. Products no longer in the main store are left out
        of the top lists.
        """
        filters = filters or EventFilters()
        images, titles = product_lookup(self.shopify.fetch_all_products())

        def with_product(rows):
            return [dict(r, title=titles[r["productId"]], image=images[r["productId"]])
                    for r in rows if r["productId"] in titles]

        counts = self.store.get_facebook_event_counts(filters)
        return {
            "counts": {name: counts.get(name, 0) for name in REPORTED_PIXEL_EVENTS},
            "topViewedProducts": with_product(
                self.store.get_top_facebook_events_by_product("ViewContent", filters)),
            "topAddToCartProducts": with_product(
                self.store.get_top_facebook_events_by_product("AddToCart", filters)),
            "events": [e.model_dump(by_alias=True, mode="json")
                       for e in self.store.get_facebook_events(filters)],
            "productImages": images,
        }
# ============================================================================
# End of analytics.py — Version: 2.0.0
# ============================================================================

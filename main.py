# ============================================================================
#  main.py — Sync Entry Point
#  Version: 2.0.0
#  CHANGES: Subcommands for vendors, vendor catalog listing, product sync,
#           order routing, commission, analytics and the HTTP server
# ============================================================================
import argparse
import json
import logging
import sys
from typing import List, Optional
from analytics import AnalyticsService
from analytics_store import JsonAnalyticsStore
from config import Settings, load_settings
from order_router import OrderRouter
from shopify_client import ShopifyClient
from sync_engine import SyncEngine, VendorNotFoundError
from sync_reporter import SessionCompleted, SyncReporter
from vendor_store import JsonVendorStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Vendor to main store catalog sync")
    parser.add_argument("--env-file", default=".env", help="Environment file to load")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("vendors", help="List vendors")

    add = sub.add_parser("add-vendor", help="Register a vendor store")
    add.add_argument("--name", required=True)
    add.add_argument("--shop", required=True, help="Shop name or domain of the vendor store")
    add.add_argument("--token", required=True, help="Admin API access token of the vendor store")

    listing = sub.add_parser("vendor-products", help="List products of a vendor's own store")
    listing.add_argument("--vendor-id", required=True)

    sync = sub.add_parser("sync", help="Sync vendor products into the main store")
    sync.add_argument("--vendor-id", required=True)
    source = sync.add_mutually_exclusive_group(required=True)
    source.add_argument("--products", help="JSON file holding a list of products (or {\"products\": [...]})")
    source.add_argument("--all", action="store_true", help="Sync every product of the vendor's store")
    sync.add_argument("--dry-run", action="store_true", help="Simulate only")
    sync.add_argument("--match-key", choices=["handle", "title"], help="Override SYNC_MATCH_KEY")

    orders = sub.add_parser("send-orders", help="Send main store orders to a vendor as draft orders")
    orders.add_argument("--vendor-id", required=True)
    orders.add_argument("order_ids", nargs="+")

    commission = sub.add_parser("commission", help="Show or set the commission percentage")
    commission.add_argument("--set", dest="percentage", help="New commission percentage")

    sub.add_parser("analytics", help="Show top selling and most viewed products")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=3000)
    return parser


def load_products(path: str) -> list:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("products", [])
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of products")
    return data


def run_sync(engine: SyncEngine, vendor_id: str, products: list) -> int:
    """Prints each progress line as it arrives; exit code 0 only when nothing failed."""
    terminal = SyncReporter().deliver(engine.run(vendor_id, products), lambda line: print(line, flush=True))
    if isinstance(terminal, SessionCompleted) and not terminal.failed:
        return 0
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings: Settings = load_settings(args.env_file)
    vendors = JsonVendorStore(settings.vendor_store_path)

    if args.command == "vendors":
        for v in vendors.list_vendors():
            print(f"{v.id}  {v.name}  ({v.credentials.hostname})")
        return 0

    if args.command == "add-vendor":
        vendor = vendors.create_vendor(args.name, args.shop, args.token)
        print(f"Created vendor {vendor.name}: {vendor.id}")
        return 0

    if args.command == "commission":
        store = JsonAnalyticsStore(settings.analytics_store_path)
        if args.percentage is not None:
            try:
                store.set_commission_percentage(args.percentage)
            except ValueError as e:
                logger.error(str(e))
                return 1
        print(f"Commission percentage: {store.get_commission_percentage()}%")
        return 0

    if args.command == "serve":
        import uvicorn
        from api import create_app
        uvicorn.run(create_app(), host=args.host, port=args.port)
        return 0

    shopify = ShopifyClient(settings.shop_name, settings.access_token, settings.api_version,
                            max_retries=settings.max_retries)

    if args.command == "analytics":
        report = AnalyticsService(shopify, JsonAnalyticsStore(settings.analytics_store_path)).product_analytics()
        print("Top selling products:")
        for p in report["topSellingProducts"]:
            print(f"  {p['quantity']:>6}  {p['title']}")
        print("Most viewed products:")
        for p in report["mostViewedProducts"]:
            print(f"  {p['views']:>6}  {p['title'] or p['id']}")
        return 0

    if args.command == "send-orders":
        try:
            result = OrderRouter(shopify, vendors).send_orders(args.vendor_id, args.order_ids)
        except VendorNotFoundError as e:
            logger.error(str(e))
            return 1
        print(result.message)
        return 0 if result.success else 1

    config = settings.engine_config()
    if args.command == "sync":
        config["DRY_RUN"] = config["DRY_RUN"] or args.dry_run
        if args.match_key:
            config["MATCH_KEY"] = args.match_key
    engine = SyncEngine(shopify, vendors, config)

    try:
        if args.command == "vendor-products":
            for p in engine.vendor_products(args.vendor_id):
                print(f"{p.id}  {p.title}  [{len(p.variants)} variant(s)]")
            return 0

        if args.all:
            products = [p.model_dump() for p in engine.vendor_products(args.vendor_id)]
        else:
            products = load_products(args.products)
    except VendorNotFoundError as e:
        logger.error(str(e))
        return 1
    return run_sync(engine, args.vendor_id, products)


if __name__ == "__main__":
    sys.exit(main())
# ============================================================================
# End of main.py — Version: 2.0.0
# ============================================================================

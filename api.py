# ============================================================================
#  api.py — HTTP API
#  Version: 2.0.0
#  CHANGES: Vendor, streaming product sync, order routing, commission and
#           analytics endpoints
# ============================================================================
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional, Union
import requests
from fastapi import APIRouter, Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from analytics import AnalyticsService
from analytics_store import JsonAnalyticsStore
from config import Settings, load_settings
from models import EventFilters
from order_router import OrderRouter
from shopify_client import ShopifyClient, ShopifyError
from sync_engine import SyncEngine, VendorNotFoundError
from sync_reporter import SyncReporter
from vendor_store import JsonVendorStore, VendorStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Vendors"])
analytics_router = APIRouter(tags=["Analytics"])


class VendorCreate(BaseModel):
    name: str = Field(..., min_length=1)
    shop_name: str = Field(..., min_length=1)
    access_token: str = Field(..., min_length=1)


class VendorResponse(BaseModel):
    id: str
    name: str
    shop_name: str


class SyncRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    vendor_id: str = Field(..., alias="vendorId")
    # Raw records: each product is validated on its own so one bad record cannot reject the batch
    products: List[Any] = Field(default_factory=list)


class CommissionUpdate(BaseModel):
    percentage: Any


class SendOrdersRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    vendor_id: str = Field(..., alias="vendorId")
    order_ids: List[Union[int, str]] = Field(default_factory=list, alias="orderIds")


@lru_cache
def get_settings() -> Settings:
    return load_settings()


@lru_cache
def _shopify_client(shop_name: str, access_token: str, api_version: str, max_retries: int) -> ShopifyClient:
    return ShopifyClient(shop_name, access_token, api_version, max_retries=max_retries)


def get_shopify_client(settings: Settings = Depends(get_settings)) -> ShopifyClient:
    # One client (and connection pool) per store configuration
    return _shopify_client(settings.shop_name, settings.access_token, settings.api_version,
                           settings.max_retries)


def get_vendor_store(settings: Settings = Depends(get_settings)) -> VendorStore:
    return JsonVendorStore(settings.vendor_store_path)


def get_analytics_store(settings: Settings = Depends(get_settings)) -> JsonAnalyticsStore:
    return JsonAnalyticsStore(settings.analytics_store_path)


def get_engine(settings: Settings = Depends(get_settings),
               shopify: ShopifyClient = Depends(get_shopify_client),
               vendors: VendorStore = Depends(get_vendor_store)) -> SyncEngine:
    return SyncEngine(shopify, vendors, settings.engine_config())


def get_order_router(shopify: ShopifyClient = Depends(get_shopify_client),
                     vendors: VendorStore = Depends(get_vendor_store)) -> OrderRouter:
    return OrderRouter(shopify, vendors)


def get_analytics(shopify: ShopifyClient = Depends(get_shopify_client),
                  store: JsonAnalyticsStore = Depends(get_analytics_store)) -> AnalyticsService:
    return AnalyticsService(shopify, store)


@router.get("/vendors", response_model=List[VendorResponse])
def list_vendors(vendors: VendorStore = Depends(get_vendor_store)):
    return [VendorResponse(id=v.id, name=v.name, shop_name=v.shop_name) for v in vendors.list_vendors()]


@router.post("/vendors", response_model=VendorResponse, status_code=201)
def create_vendor(body: VendorCreate, vendors: VendorStore = Depends(get_vendor_store)):
    vendor = vendors.create_vendor(body.name, body.shop_name, body.access_token)
    return VendorResponse(id=vendor.id, name=vendor.name, shop_name=vendor.shop_name)


@router.get("/vendors/{vendor_id}/products")
def vendor_products(vendor_id: str, engine: SyncEngine = Depends(get_engine)):
    """
    Lists the vendor's own store catalog so the operator can pick products to sync
    """
    try:
        products = engine.vendor_products(vendor_id)
    except VendorNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ShopifyError as e:
        raise HTTPException(status_code=502, detail=f"Failed to fetch vendor products: {e}")
    return {"products": [p.model_dump() for p in products]}


@router.post("/vendors/sync-products")
def sync_products(body: SyncRequest, engine: SyncEngine = Depends(get_engine)):
    """
    Streams one progress line per step while the vendor's products are synced
    into the main store. The stream ends with a completion or failure banner.
    """
    session = engine.run(body.vendor_id, body.products)
    return StreamingResponse(SyncReporter().stream_lines(session), media_type="text/plain")


@router.post("/send-orders")
def send_orders(body: SendOrdersRequest, order_router: OrderRouter = Depends(get_order_router)):
    try:
        result = order_router.send_orders(body.vendor_id, body.order_ids)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except VendorNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": result.message, "success": result.success, "failed": result.failed}


@analytics_router.get("/commission")
def get_commission(store: JsonAnalyticsStore = Depends(get_analytics_store)):
    return {"percentage": store.get_commission_percentage()}


@analytics_router.post("/set-commission")
def set_commission(body: CommissionUpdate, store: JsonAnalyticsStore = Depends(get_analytics_store)):
    try:
        percentage = store.set_commission_percentage(body.percentage)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"percentage": percentage}


@analytics_router.get("/orders")
def commission_orders(analytics: AnalyticsService = Depends(get_analytics)):
    """
    Main store orders with the commission owed at the current percentage
    """
    try:
        return analytics.commission_overview()
    except (ShopifyError, requests.RequestException) as e:
        raise HTTPException(status_code=502, detail=f"Failed to fetch orders: {e}")


@analytics_router.post("/track-view")
def track_view(product_id: Optional[str] = None, store: JsonAnalyticsStore = Depends(get_analytics_store)):
    views = store.increment_product_view_count(product_id) if product_id else None
    return {"success": True, "views": views}


@analytics_router.post("/track-fb-event")
def track_fb_event(body: Dict[str, Any], store: JsonAnalyticsStore = Depends(get_analytics_store)):
    try:
        store.track_facebook_event(body)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid pixel event: {e.errors()[0]['msg']}")
    return {"success": True}


@analytics_router.get("/analytics")
def product_analytics(analytics: AnalyticsService = Depends(get_analytics)):
    try:
        return analytics.product_analytics()
    except (ShopifyError, requests.RequestException) as e:
        raise HTTPException(status_code=502, detail=f"Failed to load analytics: {e}")


@analytics_router.get("/facebook-events")
def facebook_events(period: str = "all", startDate: str = "", endDate: str = "", eventType: str = "all",
                    analytics: AnalyticsService = Depends(get_analytics)):
    try:
        filters = EventFilters(period=period, startDate=startDate, endDate=endDate, eventType=eventType)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid event filters: {e.errors()[0]['msg']}")
    try:
        return analytics.facebook_event_report(filters)
    except (ShopifyError, requests.RequestException) as e:
        raise HTTPException(status_code=502, detail=f"Failed to load pixel events: {e}")


def create_app() -> FastAPI:
    app = FastAPI(title="Vendor Catalog Sync")

    # --- CORS Middleware ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    app.include_router(analytics_router)
    return app
# ============================================================================
# End of api.py — Version: 2.0.0
# ============================================================================

# ============================================================================
#  models.py — Pydantic Data Models
#  Version: 2.0.0
#  CHANGES: Vendor/candidate product models for main-store catalog sync
# ============================================================================
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Literal, Optional, Union
from datetime import date, datetime, timedelta, timezone
import re

SHOPIFY_STOREFRONT_DOMAIN = "myshopify.com"


def derive_handle(title: str) -> str:
    """Lower-cases the title, turns whitespace into hyphens and drops anything outside [a-z0-9-]."""
    slug = re.sub(r'\s+', '-', title.lower())
    return re.sub(r'[^a-z0-9-]', '', slug)


def normalize_title(title: str) -> str:
    return " ".join((title or "").split()).casefold()


class ProductOption(BaseModel):
    name: str
    values: List[str] = Field(default_factory=list)
    position: Optional[int] = None


class ProductVariant(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[int, str]] = None
    product_id: Optional[Union[int, str]] = None
    title: Optional[str] = None
    price: Optional[Any] = None
    compare_at_price: Optional[Any] = None
    inventory_quantity: Optional[Any] = None
    option1: Optional[str] = None
    option2: Optional[str] = None
    option3: Optional[str] = None
    sku: Optional[str] = None


class CandidateProduct(BaseModel):
    """A vendor-sourced product awaiting reconciliation against the main store."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[int, str]] = None
    title: str = Field(..., min_length=1)
    handle: Optional[str] = None
    product_type: Optional[str] = None
    tags: Optional[Union[List[str], str]] = None
    status: Literal["active", "draft", "archived"] = "active"
    body_html: Optional[str] = None
    price: Optional[Any] = None
    images: List[Dict[str, Any]] = Field(default_factory=list)
    options: List[ProductOption] = Field(default_factory=list)
    variants: List[ProductVariant] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be blank")
        return value

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, value):
        # Vendor stores send null for unset status
        return value.lower() if isinstance(value, str) and value else "active"

    @field_validator("options", "variants", "images", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return [] if value is None else value

    def resolved_handle(self) -> str:
        return self.handle if self.handle else derive_handle(self.title)


class MainStoreProduct(BaseModel):
    """Authoritative product record as returned by the main store."""
    model_config = ConfigDict(extra="allow")

    id: Union[int, str]
    title: str = ""
    handle: Optional[str] = None
    variants: List[ProductVariant] = Field(default_factory=list)

    @property
    def effective_handle(self) -> str:
        return self.handle if self.handle else derive_handle(self.title)


class ShopCredentials(BaseModel):
    shop_name: str
    access_token: str

    @property
    def hostname(self) -> str:
        host = re.sub(r'^https?://', '', self.shop_name.strip()).rstrip('/')
        # Bare shop names have no dot; custom domains are used as-is
        if '.' not in host:
            host = f"{host}.{SHOPIFY_STOREFRONT_DOMAIN}"
        return host


class Vendor(BaseModel):
    id: str
    name: str
    shop_name: str
    access_token: str

    @property
    def credentials(self) -> ShopCredentials:
        return ShopCredentials(shop_name=self.shop_name, access_token=self.access_token)


class CreateIntent(BaseModel):
    kind: Literal["create"] = "create"
    candidate: CandidateProduct


class UpdateIntent(BaseModel):
    kind: Literal["update"] = "update"
    candidate: CandidateProduct
    existing: MainStoreProduct


SyncIntent = Union[CreateIntent, UpdateIntent]


class PixelEvent(BaseModel):
    """Storefront ad-pixel event (ViewContent, AddToCart, ...) posted by the tracking script."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    event_name: str = Field(..., alias="eventName", min_length=1)
    product_id: Optional[Union[int, str]] = Field(None, alias="productId")
    product_name: Optional[str] = Field(None, alias="productName")
    variant_id: Optional[Union[int, str]] = Field(None, alias="variantId")
    variant_name: Optional[str] = Field(None, alias="variantName")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


PERIOD_DAYS = {"week": 7, "month": 30}


class EventFilters(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    period: Literal["all", "today", "week", "month"] = "all"
    start_date: Optional[date] = Field(None, alias="startDate")
    end_date: Optional[date] = Field(None, alias="endDate")
    event_type: str = Field("all", alias="eventType")

    @field_validator("period", "event_type", mode="before")
    @classmethod
    def blank_as_all(cls, value):
        return value or "all"

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def blank_as_none(cls, value):
        return value or None

    def matches(self, event: PixelEvent, now: Optional[datetime] = None) -> bool:
        if self.event_type != "all" and event.event_name != self.event_type:
            return False
        now = now or datetime.now(timezone.utc)
        ts = event.timestamp.astimezone(timezone.utc)
        if self.period == "today" and ts < now.replace(hour=0, minute=0, second=0, microsecond=0):
            return False
        if self.period in PERIOD_DAYS and ts < now - timedelta(days=PERIOD_DAYS[self.period]):
            return False
        # Date bounds are inclusive whole UTC days
        if self.start_date and ts.date() < self.start_date:
            return False
        if self.end_date and ts.date() > self.end_date:
            return False
        return True
# ============================================================================
# End of models.py — Version: 2.0.0
# ============================================================================

# ============================================================================
#  sync_engine.py — Orchestration Engine
#  Version: 2.0.0
#  CHANGES: Vendor-to-main-store catalog reconciliation with per-product
#           failure isolation and streamed session events
# ============================================================================
import logging
import time
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union
from pydantic import ValidationError
from models import (CandidateProduct, CreateIntent, MainStoreProduct, SyncIntent, UpdateIntent,
                    Vendor, normalize_title)
from payload_mapper import build_payload
from shopify_client import ShopifyClient
from sync_reporter import (CREATED, UPDATED, WOULD_CREATE, WOULD_UPDATE, CatalogFetched,
                           ProductFailed, ProductSynced, SessionAborted, SessionCompleted,
                           SessionStarted, SyncEvent)
from vendor_store import VendorStore

logger = logging.getLogger(__name__)

ProductId = Union[int, str]


class SyncError(Exception):
    pass


class VendorNotFoundError(SyncError):
    def __init__(self, vendor_id: str):
        self.vendor_id = vendor_id
        super().__init__(f"Vendor not found: {vendor_id}")


class ProductSyncError(SyncError):
    def __init__(self, title: str, reason: str):
        self.title = title
        self.reason = reason
        super().__init__(f"{title}: {reason}")


class CatalogIndex:
    """Maps the session's match key (handle or normalized title) to main-store product ids."""

    def __init__(self, match_key: str = "handle"):
        if match_key not in ("handle", "title"):
            raise ValueError(f"Unsupported match key: {match_key}")
        self.match_key = match_key
        self.product_count = 0
        self._ids: Dict[str, ProductId] = {}

    @classmethod
    def from_products(cls, products: Iterable[MainStoreProduct], match_key: str = "handle") -> "CatalogIndex":
        index = cls(match_key)
        for product in products:
            index.product_count += 1
            # First record wins when the main store already holds duplicates
            index._ids.setdefault(index._record_key(product), product.id)
        return index

    def _record_key(self, product: MainStoreProduct) -> str:
        if self.match_key == "title":
            return normalize_title(product.title)
        return product.effective_handle

    def candidate_key(self, candidate: CandidateProduct) -> str:
        if self.match_key == "title":
            return normalize_title(candidate.title)
        return candidate.resolved_handle()

    def lookup(self, candidate: CandidateProduct) -> Optional[ProductId]:
        return self._ids.get(self.candidate_key(candidate))

    def add(self, candidate: CandidateProduct, product_id: ProductId) -> None:
        self._ids[self.candidate_key(candidate)] = product_id

    def __len__(self) -> int:
        return len(self._ids)


class RemoteCatalogLookup:
    """Builds a fresh index from a full main-store catalog fetch on every session."""

    def __init__(self, shopify: ShopifyClient):
        self.shopify = shopify

    def build_index(self, match_key: str) -> CatalogIndex:
        return CatalogIndex.from_products(self.shopify.fetch_all_products(), match_key)


class SyncSession:
    """Finite, lazily evaluated stream of events for one sync; it can be iterated once."""

    def __init__(self, events: Iterator[SyncEvent]):
        self._events = events
        self._started = False

    def __iter__(self) -> Iterator[SyncEvent]:
        if self._started:
            raise RuntimeError("Sync session already consumed; start a new session to retry")
        self._started = True
        return self._events


class SyncEngine:
    def __init__(self, shopify: ShopifyClient, vendors: VendorStore, config: Optional[dict] = None,
                 lookup: Optional[Any] = None):
        """Initializes engine with the main-store client, vendor store and sync options."""
        self.shopify = shopify
        self.vendors = vendors
        self.config = config or {}
        self.lookup = lookup or RemoteCatalogLookup(shopify)

    def resolve_vendor(self, vendor_id: str) -> Vendor:
        vendor = self.vendors.get_vendor_by_id(vendor_id)
        if vendor is None:
            raise VendorNotFoundError(vendor_id)
        return vendor

    def vendor_products(self, vendor_id: str) -> List[MainStoreProduct]:
        """Lists every product of the vendor's own store."""
        vendor = self.resolve_vendor(vendor_id)
        return self.shopify.fetch_all_products(vendor.credentials)

    def run(self, vendor_id: str, products: Iterable[Any]) -> SyncSession:
        """Sync invocation boundary: resolves the vendor, then reconciles its products."""
        return SyncSession(self._run(vendor_id, products))

    def sync_products(self, vendor: Vendor, products: Iterable[Any]) -> SyncSession:
        return SyncSession(self._sync(vendor, products))

    def _run(self, vendor_id: str, products: Iterable[Any]) -> Iterator[SyncEvent]:
        try:
            vendor = self.resolve_vendor(vendor_id)
        except VendorNotFoundError as e:
            logger.error(f"Sync aborted: {e}")
            yield SessionAborted(str(e))
            return
        yield from self._sync(vendor, products)

    def _sync(self, vendor: Vendor, products: Iterable[Any]) -> Iterator[SyncEvent]:
        products = list(products)
        match_key = self.config.get("MATCH_KEY", "handle")
        dry_run = self.config.get("DRY_RUN", False)
        delay = self.config.get("DELAY_BETWEEN_PRODUCTS", 0)

        logger.info(f"Starting Sync for vendor: {vendor.name} ({len(products)} product(s))")
        yield SessionStarted(vendor.name, len(products))

        # 1. Snapshot the whole main-store catalog
        try:
            index = self.lookup.build_index(match_key)
        except Exception as e:
            logger.error(f"Could not fetch main store catalog: {e}")
            yield SessionAborted(f"Could not fetch main store catalog: {e}")
            return
        yield CatalogFetched(index.product_count)

        # 2. Create or update each candidate, isolating failures per product
        created, updated, failed = 0, 0, []
        for i, raw in enumerate(products, 1):
            title = _raw_title(raw)
            logger.info(f"[{i}/{len(products)}] Syncing product: {title}")
            try:
                event = self._sync_one(vendor, raw, index, dry_run)
            except ProductSyncError as e:
                logger.error(f"--> Failed to sync product: \"{e.title}\". Reason: {e.reason}")
                failed.append(e.title)
                yield ProductFailed(e.title, e.reason)
            else:
                if event.action in (CREATED, WOULD_CREATE):
                    created += 1
                else:
                    updated += 1
                yield event

            # 3. Throttle delay
            if delay and i < len(products):
                time.sleep(delay)

        logger.info(f"Sync Process Finished: {created} created, {updated} updated, {len(failed)} failed")
        yield SessionCompleted(vendor.name, created, updated, failed)

    def resolve_intent(self, candidate: CandidateProduct, index: CatalogIndex) -> SyncIntent:
        existing_id = index.lookup(candidate)
        if existing_id is None:
            return CreateIntent(candidate=candidate)
        return UpdateIntent(candidate=candidate, existing=self.shopify.fetch_product(existing_id))

    def _sync_one(self, vendor: Vendor, raw: Any, index: CatalogIndex, dry_run: bool) -> ProductSynced:
        """Reconciles one candidate; any failure comes back as ProductSyncError."""
        title = _raw_title(raw)
        try:
            candidate = raw if isinstance(raw, CandidateProduct) else CandidateProduct.model_validate(raw)
            title = candidate.title
            intent = self.resolve_intent(candidate, index)
            payload = build_payload(intent, vendor.name)

            if isinstance(intent, UpdateIntent):
                if dry_run:
                    logger.info(f"DRY-RUN: Skipping update of {title}")
                    return ProductSynced(title, WOULD_UPDATE, intent.existing.id)
                product = self.shopify.update_product(intent.existing.id, payload)
                logger.info(f"Updated product: {title}")
                return ProductSynced(title, UPDATED, product.id)

            if dry_run:
                logger.info(f"DRY-RUN: Skipping creation of {title}")
                return ProductSynced(title, WOULD_CREATE)
            product = self.shopify.create_product(payload)
            index.add(candidate, product.id)
            logger.info(f"Synced new product: {title}")
            return ProductSynced(title, CREATED, product.id)
        except ValidationError as e:
            raise ProductSyncError(title, _validation_reason(e)) from e
        except Exception as e:
            # Per-product isolation: nothing raised here may abort the session
            raise ProductSyncError(title, str(e) or e.__class__.__name__) from e


def _raw_title(raw: Any) -> str:
    if isinstance(raw, CandidateProduct):
        return raw.title
    title = raw.get("title") if isinstance(raw, dict) else None
    if isinstance(title, str) and title.strip():
        return title
    product_id = raw.get("id") if isinstance(raw, dict) else None
    return f"<untitled product {product_id}>" if product_id is not None else "<untitled product>"


def _validation_reason(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'product'}: {err['msg']}"
        for err in error.errors()
    )
# ============================================================================
# End of sync_engine.py — Version: 2.0.0
# ============================================================================

# ============================================================================
#  vendor_store.py — Vendor Persistence
#  Version: 2.0.0
#  CHANGES: JSON document store for vendors and their store credentials
# ============================================================================
import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional
from pydantic import ValidationError
from json_store import path_lock, read_json, write_json
from models import Vendor

logger = logging.getLogger(__name__)


class VendorStore(ABC):
    @abstractmethod
    def get_vendor_by_id(self, vendor_id: str) -> Optional[Vendor]:
        ...

    @abstractmethod
    def list_vendors(self) -> List[Vendor]:
        ...

    @abstractmethod
    def create_vendor(self, name: str, shop_name: str, access_token: str) -> Vendor:
        ...


class JsonVendorStore(VendorStore):
    """Keeps vendors as a list of JSON documents in a single file."""

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = path_lock(self.path)

    def _load(self) -> List[Vendor]:
        vendors = []
        for doc in read_json(self.path, []):
            try:
                vendors.append(Vendor.model_validate(doc))
            except ValidationError as e:
                logger.warning(f"Skipping malformed vendor record in {self.path}: {e}")
        return vendors

    def _save(self, vendors: List[Vendor]) -> None:
        write_json(self.path, [v.model_dump() for v in vendors])

    def get_vendor_by_id(self, vendor_id: str) -> Optional[Vendor]:
        return next((v for v in self._load() if v.id == str(vendor_id)), None)

    def list_vendors(self) -> List[Vendor]:
        return self._load()

    def create_vendor(self, name: str, shop_name: str, access_token: str) -> Vendor:
        if not name or not shop_name or not access_token:
            raise ValueError("Vendor name, shop name and access token are required")
        vendor = Vendor(id=uuid.uuid4().hex, name=name.strip(), shop_name=shop_name.strip(),
                        access_token=access_token.strip())
        with self._lock:
            vendors = self._load()
            vendors.append(vendor)
            self._save(vendors)
        logger.info(f"Created vendor {vendor.name} ({vendor.id}) for shop {vendor.credentials.hostname}")
        return vendor
# ============================================================================
# End of vendor_store.py — Version: 2.0.0
# ============================================================================

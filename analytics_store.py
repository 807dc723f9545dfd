# ============================================================================
#  analytics_store.py — Settings & Analytics Persistence
#  Version: 2.0.0
#  CHANGES: Commission percentage, product view counters and ad-pixel
#           event log kept in one JSON document
# ============================================================================
import logging
import math
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union
from pydantic import ValidationError
from json_store import path_lock, read_json, write_json
from models import EventFilters, PixelEvent

logger = logging.getLogger(__name__)

DEFAULT_COMMISSION_PERCENTAGE = 10.0


class JsonAnalyticsStore:
    """Keeps settings, view counters and pixel events in a single JSON file."""

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = path_lock(self.path)

    def _load(self) -> Dict[str, Any]:
        doc = read_json(self.path, {})
        doc.setdefault("settings", {})
        doc.setdefault("productViews", {})
        doc.setdefault("facebookEvents", [])
        return doc

    def _update(self, change: Callable[[Dict[str, Any]], Any]) -> Any:
        with self._lock:
            doc = self._load()
            result = change(doc)
            write_json(self.path, doc)
        return result

    # --- Commission ---

    def get_commission_percentage(self) -> float:
        value = self._load()["settings"].get("commissionPercentage")
        return DEFAULT_COMMISSION_PERCENTAGE if value is None else float(value)

    def set_commission_percentage(self, percentage: Any) -> float:
        try:
            value = float(percentage)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid commission percentage: {percentage!r}")
        if not math.isfinite(value) or value < 0:
            raise ValueError("Commission percentage must be a non-negative number")

        def change(doc):
            doc["settings"]["commissionPercentage"] = value

        self._update(change)
        logger.info(f"Commission percentage set to {value}%")
        return value

    # --- Product views ---

    def increment_product_view_count(self, product_id: Union[int, str]) -> int:
        key = str(product_id)

        def change(doc):
            views = doc["productViews"]
            views[key] = int(views.get(key, 0)) + 1
            return views[key]

        return self._update(change)

    def get_product_view_count(self, product_id: Union[int, str]) -> int:
        return int(self._load()["productViews"].get(str(product_id), 0))

    def get_all_product_view_counts(self) -> Dict[str, int]:
        return {k: int(v) for k, v in self._load()["productViews"].items()}

    # --- Pixel events ---

    def track_facebook_event(self, data: Union[PixelEvent, Dict[str, Any]]) -> PixelEvent:
        event = data if isinstance(data, PixelEvent) else PixelEvent.model_validate(data)
        record = event.model_dump(by_alias=True, mode="json")
        self._update(lambda doc: doc["facebookEvents"].append(record))
        logger.debug(f"Tracked pixel event {event.event_name} for product {event.product_id}")
        return event

    def _events(self) -> List[PixelEvent]:
        events = []
        for doc in self._load()["facebookEvents"]:
            try:
                events.append(PixelEvent.model_validate(doc))
            except ValidationError as e:
                logger.warning(f"Skipping malformed pixel event in {self.path}: {e}")
        return events

    def get_facebook_events(self, filters: Optional[EventFilters] = None,
                            now: Optional[datetime] = None) -> List[PixelEvent]:
        """Matching events, newest first."""
        filters = filters or EventFilters()
        matching = [e for e in self._events() if filters.matches(e, now)]
        return sorted(matching, key=lambda e: e.timestamp, reverse=True)

    def get_facebook_event_counts(self, filters: Optional[EventFilters] = None,
                                  now: Optional[datetime] = None) -> Dict[str, int]:
        return dict(Counter(e.event_name for e in self.get_facebook_events(filters, now)))

    def get_top_facebook_events_by_product(self, event_name: str, filters: Optional[EventFilters] = None,
                                           limit: int = 10, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        scoped = (filters or EventFilters()).model_copy(update={"event_type": event_name})
        counts = Counter(str(e.product_id) for e in self.get_facebook_events(scoped, now)
                         if e.product_id is not None)
        return [{"productId": pid, "count": n} for pid, n in counts.most_common(limit)]
# ============================================================================
# End of analytics_store.py — Version: 2.0.0
# ============================================================================

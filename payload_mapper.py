# ============================================================================
#  payload_mapper.py — Candidate Product to Shopify Payload Mapping
#  Version: 2.0.0
#  CHANGES: Create/update payloads, SKU-based variant identity
# ============================================================================
from typing import Any, Dict, List, Optional, Union
from models import (CandidateProduct, CreateIntent, MainStoreProduct, ProductVariant,
                    SyncIntent, UpdateIntent)

INVENTORY_MANAGEMENT = "shopify"
OPTIONAL_VARIANT_FIELDS = ("option1", "option2", "option3", "sku")


def price_string(value: Any) -> str:
    if value is None or value == "":
        return "0"
    return str(value)


def inventory_quantity(value: Any) -> int:
    try:
        quantity = int(float(value))
    except (TypeError, ValueError):
        return 0
    return max(0, quantity)


def tags_string(tags: Optional[Union[List[str], str]]) -> Optional[str]:
    """Joins a tag list or a comma-delimited tag string into Shopify's single tag string."""
    if tags is None:
        return None
    items = tags.split(",") if isinstance(tags, str) else tags
    cleaned = [str(t).strip() for t in items if str(t).strip()]
    return ", ".join(cleaned)


def _variant_fields(variant: ProductVariant) -> Dict[str, Any]:
    payload = {
        "price": price_string(variant.price),
        "inventory_quantity": inventory_quantity(variant.inventory_quantity),
        "inventory_management": INVENTORY_MANAGEMENT,
    }
    if variant.compare_at_price:
        payload["compare_at_price"] = price_string(variant.compare_at_price)
    for field in OPTIONAL_VARIANT_FIELDS:
        value = getattr(variant, field)
        if value:
            payload[field] = value
    return payload


def default_variant(candidate: CandidateProduct) -> Dict[str, Any]:
    return {
        "price": price_string(candidate.price),
        "inventory_management": INVENTORY_MANAGEMENT,
        "inventory_quantity": 0,
    }


def to_create_payload(candidate: CandidateProduct, vendor_name: str) -> Dict[str, Any]:
    product: Dict[str, Any] = {
        "title": candidate.title,
        "body_html": "",
        "vendor": vendor_name,
        "status": candidate.status or "active",
        "images": list(candidate.images),
        # Explicit handle so the next session keys this product the same way
        "handle": candidate.resolved_handle(),
    }
    if candidate.product_type:
        product["product_type"] = candidate.product_type
    tags = tags_string(candidate.tags)
    if tags:
        product["tags"] = tags

    if candidate.variants:
        product["options"] = [
            {"name": opt.name, "values": opt.values, "position": opt.position or index + 1}
            for index, opt in enumerate(candidate.options)
        ]
        variants = []
        for v in candidate.variants:
            variant = _variant_fields(v)
            if v.title:
                variant["title"] = v.title
            variants.append(variant)
        product["variants"] = variants
    else:
        product["options"] = []
        product["variants"] = [default_variant(candidate)]
    return {"product": product}


def to_update_payload(candidate: CandidateProduct, existing: MainStoreProduct,
                      vendor_name: str) -> Dict[str, Any]:
    """Maps a candidate onto an existing main-store product.

    Variants whose SKU matches an existing variant carry that variant's id so
    Shopify updates them in place; unmatched variants go out without an id and
    are added as new variants.
    """
    existing_variant_ids = {v.sku: v.id for v in existing.variants if v.sku and v.id is not None}

    variants = []
    for v in candidate.variants:
        variant = _variant_fields(v)
        existing_id = existing_variant_ids.get(v.sku) if v.sku else None
        if existing_id is not None:
            variant = {"id": existing_id, **variant}
        variant.pop("product_id", None)
        variants.append(variant)

    if not variants:
        variant = default_variant(candidate)
        if existing.variants and existing.variants[0].id is not None:
            variant = {"id": existing.variants[0].id, **variant}
        variants.append(variant)

    product = {
        "id": existing.id,
        "title": candidate.title,
        "body_html": "",
        "vendor": vendor_name,
        "status": candidate.status or "active",
        "options": [{"name": opt.name, "values": opt.values} for opt in candidate.options],
        "variants": variants,
    }
    # Fields the candidate leaves out stay untouched on the main store
    if candidate.product_type is not None:
        product["product_type"] = candidate.product_type
    tags = tags_string(candidate.tags)
    if tags is not None:
        product["tags"] = tags
    return {"product": product}


def build_payload(intent: SyncIntent, vendor_name: str) -> Dict[str, Any]:
    if isinstance(intent, UpdateIntent):
        return to_update_payload(intent.candidate, intent.existing, vendor_name)
    if isinstance(intent, CreateIntent):
        return to_create_payload(intent.candidate, vendor_name)
    raise TypeError(f"Unknown sync intent: {intent!r}")
# ============================================================================
# End of payload_mapper.py — Version: 2.0.0
# ============================================================================

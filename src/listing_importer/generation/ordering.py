"""Canonical key order for generated configs.

The renderer and the editor UI both show configs in this order, so generated
output is reordered before it is persisted.  Known keys come first in
canonical order; unknown keys follow in the order the service returned them.
"""

from __future__ import annotations

from typing import Any, Mapping

CANONICAL_KEY_ORDER: tuple[str, ...] = (
    "title",
    "subtitle",
    "language",
    "currency",
    "currency_symbol",
    "property_status",
    "photos",
    "address",
    "price_info",
    "beds",
    "baths",
    "property_type",
    "year_built",
    "is_new_construction",
    "mls_id",
    "living_area",
    "lot_size",
    "highlights",
    "description",
    "features",
    "features_amenities",
    "agent",
    "mortgage_info",
    "virtual_tour_url",
    "floorplan_url",
)

_AREA = ("value", "unit")
_FEE = ("amount", "period")

#: Orders for nested objects, keyed by the object's key in its parent.
NESTED_KEY_ORDER: dict[str, tuple[str, ...]] = {
    "address": (
        "street",
        "city",
        "neighborhood",
        "state",
        "zipcode",
        "county",
        "country",
        "subdivision",
    ),
    "price_info": ("price", "is_discounted", "original_price", "price_per_unit"),
    "price_per_unit": ("amount", "unit"),
    "living_area": _AREA,
    "lot_size": _AREA,
    "features_amenities": ("interior", "appliances", "parking", "outdoor", "building", "energy"),
    "interior": (
        "amenities",
        "floor_covering",
        "kitchen_features",
        "heating",
        "cooling",
        "fireplace",
    ),
    "parking": ("type", "spaces", "covered"),
    "outdoor": ("amenities", "pool", "balcony_terrace", "garden"),
    "building": ("architecture_style", "exterior_type", "elevator", "security_features"),
    "energy": ("energy_rating", "solar", "ev_charger"),
    "agent": ("name", "title", "agency", "phone", "email", "photo", "bio", "license"),
    "mortgage_info": ("interest_rate", "property_tax", "hoa_fee"),
    "property_tax": _FEE,
    "hoa_fee": _FEE,
}

#: Orders for the items of list-valued keys.
LIST_ITEM_KEY_ORDER: dict[str, tuple[str, ...]] = {
    "photos": ("url", "alt", "label"),
    "highlights": ("title", "value", "icon", "photo"),
    "features": ("icon", "label", "value"),
}


def order_keys(data: Mapping[str, Any], order: tuple[str, ...]) -> dict[str, Any]:
    """Return *data* with keys in *order* first, the rest in original order."""
    ordered = {key: data[key] for key in order if key in data}
    for key, value in data.items():
        if key not in ordered:
            ordered[key] = value
    return ordered


def _sort_value(key: str, value: Any) -> Any:
    if isinstance(value, Mapping) and key in NESTED_KEY_ORDER:
        nested = order_keys(value, NESTED_KEY_ORDER[key])
        return {k: _sort_value(k, v) for k, v in nested.items()}
    if isinstance(value, list) and key in LIST_ITEM_KEY_ORDER:
        item_order = LIST_ITEM_KEY_ORDER[key]
        return [order_keys(item, item_order) if isinstance(item, Mapping) else item for item in value]
    return value


def sort_config(config: Mapping[str, Any]) -> dict[str, Any]:
    """Reorder a generated config into canonical key order, recursively.

    Args:
        config: Config as returned by the generation service.

    Returns:
        A new dict; *config* is not modified.
    """
    top = order_keys(config, CANONICAL_KEY_ORDER)
    return {key: _sort_value(key, value) for key, value in top.items()}

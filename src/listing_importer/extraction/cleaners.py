"""Per-site pruning of Apify dataset items.

Actor output carries a lot of portal plumbing (ad targeting, tracking ids,
agent marketing modules) that only inflates the generation prompt.  Each
cleaner accepts whatever the actor returned (a list of items, a single item,
or an ``{"apifyData": [...]}`` wrapper) and returns the same shape with the
noise removed.
"""

from __future__ import annotations

import copy
import re
from typing import Any, Callable

JsonCleaner = Callable[[Any], Any]

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, (list, dict)) and not value)


def remove_empty_values(value: Any) -> Any:
    """Recursively drop ``None``, ``""``, empty lists and empty dicts.

    Containers that become empty after cleaning are dropped too.  Returns
    ``None`` when *value* itself ends up empty.
    """
    if isinstance(value, dict):
        cleaned = {}
        for key, item in value.items():
            item = remove_empty_values(item)
            if not _is_empty(item):
                cleaned[key] = item
        return cleaned or None
    if isinstance(value, list):
        items = [remove_empty_values(item) for item in value]
        items = [item for item in items if not _is_empty(item)]
        return items or None
    return value


def _map_items(data: Any, clean_item: JsonCleaner) -> Any:
    """Apply *clean_item* across the accepted input shapes."""
    if not data:
        return data
    if isinstance(data, dict) and isinstance(data.get("apifyData"), list):
        return {**data, "apifyData": [clean_item(item) for item in data["apifyData"]]}
    if isinstance(data, list):
        return [clean_item(item) for item in data]
    if isinstance(data, dict):
        return clean_item(data)
    return data


_CENTER_RE = re.compile(r"center=([^&]+)")


def _static_map_coordinates(static_map: Any) -> dict[str, float | None]:
    """Reduce a Google static-map blob to its centre coordinates."""
    latitude = longitude = None
    sources = static_map.get("sources") if isinstance(static_map, dict) else None
    if isinstance(sources, list) and sources and isinstance(sources[0], dict):
        first_url = sources[0].get("url")
        match = _CENTER_RE.search(first_url) if isinstance(first_url, str) else None
        if match:
            parts = match.group(1).replace("%2C", ",").split(",")
            if len(parts) >= 2:
                try:
                    latitude, longitude = float(parts[0]), float(parts[1])
                except ValueError:
                    latitude = longitude = None
    return {"latitude": latitude, "longitude": longitude}


def _largest_per_format(mixed_sources: dict[str, Any]) -> dict[str, Any]:
    """Keep only the widest image of each raster format."""
    processed: dict[str, Any] = {}
    for fmt, images in mixed_sources.items():
        if fmt in ("webp", "jpeg", "jpg") and isinstance(images, list) and images:
            widest = max(
                images,
                key=lambda img: (img.get("width") or 0) if isinstance(img, dict) else 0,
            )
            processed[fmt] = [widest]
        else:
            processed[fmt] = images
    return processed


# ---------------------------------------------------------------------------
# Zillow
# ---------------------------------------------------------------------------

#: Zillow keys with no bearing on the listing page.
ZILLOW_DROP_FIELDS: frozenset[str] = frozenset(
    {
        # portal plumbing
        "submitFlow", "collections", "adTargets", "attributionInfo", "listingMetadata",
        "onsiteMessage", "placementId", "placementName", "surfaceId", "treatmentId",
        "qualifiedTreatments", "selectedTreatment", "decisionContext", "renderingProps",
        "isAdsRestricted", "isGlobalHoldout", "isPlacementHoldout", "skipDisplayReason",
        "shouldDisplay", "shouldDisplayUpsell", "hideMortgageAdDetailPage", "display",
        "ZoDsFsUpsellTop", "contactFormRenderData", "request_trace", "authentication",
        "display_options", "fallback_form", "hidden_fields", "hide_textarea",
        "displayed_agents", "lender_details", "tour_eligible", "pixelid", "pixelurl",
        "opaquela", "variant", "intl", "tourconfig", "agentmodule", "zpro",
        "apifyScraperId", "scrapedAt", "operatingSystem",
        # identifiers and search URLs
        "ouid", "ssid", "zpid", "mlsid", "guid", "parcelId", "brokerId", "listingId",
        "boroughId", "listingFeedID", "encodedzuid", "hdpUrl", "postingUrl", "communityUrl",
        "housesForRentInZipcodeSearchUrl", "apartmentsForRentInZipcodeSearchUrl",
        "streetViewServiceUrl", "streetViewTileImageUrlMediumAddress",
        "streetViewTileImageUrlMediumLatLong", "streetViewMetadataUrlMediaWallAddress",
        "streetViewMetadataUrlMediaWallLatLong", "streetViewMetadataUrlMapLightboxAddress",
        # market history and neighbourhood noise
        "priceHistory", "taxHistory", "nearbyHomes", "homeValues", "schools", "recentsales",
        "mortgageRates", "mortgageZHLRates", "pageViewCount", "tourViewCount", "percentile",
        # duplicated media
        "responsivePhotos", "originalPhotos", "richMedia", "richMediaVideos", "hiResImageLink",
        "thumb", "photoCount",
        # agent marketing
        "postingContact", "listingAccount", "reviewcount", "ratingaverage", "writereviewurl",
        "profileurl", "reviewsurl", "businessname", "servicesoffered", "badgetype",
        "contactbuttontext", "regionphonenumber", "desktopphonenumber", "phone", "prefix",
        "areacode",
    }
)

#: Room keys dropped inside ``resoFacts.rooms``.
ZILLOW_ROOM_DROP_FIELDS: frozenset[str] = frozenset(
    {
        "area", "level", "features", "roomArea", "roomWidth", "dimensions", "roomLength",
        "description", "roomAreaSource", "roomDimensions", "roomDescription",
        "roomLengthWidthSource",
    }
)


def _clean_zillow_item(item: Any) -> Any:
    if not isinstance(item, dict):
        return item
    cleaned = {k: v for k, v in item.items() if k not in ZILLOW_DROP_FIELDS}

    vr_model = cleaned.get("vrModel")
    if isinstance(vr_model, dict):
        cleaned["vrModel"] = {
            k: v for k, v in vr_model.items() if k not in ("revisionId", "vrModelGuid")
        }

    reso = cleaned.get("resoFacts")
    if isinstance(reso, dict):
        reso = {k: v for k, v in reso.items() if k not in ("gas", "attic")}
        if isinstance(reso.get("rooms"), list):
            reso["rooms"] = [
                {k: v for k, v in room.items() if k not in ZILLOW_ROOM_DROP_FIELDS}
                if isinstance(room, dict)
                else room
                for room in reso["rooms"]
            ]
        cleaned["resoFacts"] = reso

    if cleaned.get("staticMap"):
        cleaned["staticMap"] = _static_map_coordinates(cleaned["staticMap"])
    if isinstance(cleaned.get("mixedSources"), dict):
        cleaned["mixedSources"] = _largest_per_format(cleaned["mixedSources"])

    for key, value in list(cleaned.items()):
        if key in ("staticMap", "mixedSources"):
            continue
        if isinstance(value, dict):
            cleaned[key] = _clean_zillow_item(value)
        elif isinstance(value, list):
            cleaned[key] = [_clean_zillow_item(v) for v in value]

    return remove_empty_values(cleaned) or {}


def clean_zillow_json(data: Any) -> Any:
    """Prune a Zillow detail-scraper response."""
    return _map_items(copy.deepcopy(data), _clean_zillow_item)


# ---------------------------------------------------------------------------
# Realtor.com
# ---------------------------------------------------------------------------

#: Request bookkeeping fields added by the crawler.
REALTOR_DROP_FIELDS: frozenset[str] = frozenset({"url", "loadedUrl", "requestId", "requestQueueId"})


def _clean_realtor_item(item: Any) -> Any:
    # Conservative: only crawler bookkeeping and empty values go.
    if isinstance(item, list):
        cleaned_list = [_clean_realtor_item(v) for v in item]
        return [v for v in cleaned_list if not _is_empty(v)]
    if not isinstance(item, dict):
        return item
    cleaned = {}
    for key, value in item.items():
        if key in REALTOR_DROP_FIELDS or _is_empty(value):
            continue
        cleaned[key] = _clean_realtor_item(value) if isinstance(value, (dict, list)) else value
    return cleaned


def clean_realtor_json(data: Any) -> Any:
    """Prune a Realtor.com actor response, keeping every non-empty field."""
    return _map_items(copy.deepcopy(data), _clean_realtor_item)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_CLEANERS: dict[str, JsonCleaner] = {
    "zillow": clean_zillow_json,
    "realtor": clean_realtor_json,
}


def cleaner_for(scraper_id: str) -> JsonCleaner | None:
    """Return the cleaner registered for an Apify scraper id, if any."""
    return _CLEANERS.get(scraper_id)

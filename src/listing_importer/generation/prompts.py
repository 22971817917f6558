"""Prompt templates for the two generation calls.

The base call fills a one-pager config from scraped listing content; the
refinement call rewrites the title, subtitle and highlights from a narrowed
view of that config.
"""

from __future__ import annotations

import json
from typing import Any

from listing_importer.generation.config import (
    CONTENT_TYPE_STRUCTURED,
    HIGHLIGHT_COUNT,
    MAX_PHOTOS,
    TITLE_MAX_CHARS,
)

SYSTEM_MESSAGE = (
    "You are an AI assistant inside a SaaS tool that generates real estate "
    "one-pager websites from property listings. Always respond with valid JSON "
    "only. Never invent facts that are not present in the listing data. Ignore "
    "navigation menus, cookie banners, ads, similar properties and other page "
    "furniture that does not describe the listed property."
)

PROPERTY_TYPES = (
    "HOUSE",
    "TOWNHOUSE",
    "CONDO",
    "LAND",
    "MULTI_FAMILY",
    "MOBILE_HOME",
    "APARTMENT",
    "FARM_RANCH",
    "OTHER",
)

PROPERTY_STATUSES = (
    "FOR_SALE",
    "FOR_RENT",
    "SOLD",
    "UNDER_CONTRACT",
    "PENDING",
    "OFF_MARKET",
    "OTHER",
)

#: Shape of the config the base call must return.  Title, subtitle and
#: highlights are left to the refinement call.
CONFIG_TEMPLATE: dict[str, Any] = {
    "language": "",
    "currency": "",
    "currency_symbol": "",
    "property_status": "",
    "photos": [{"url": "", "alt": "", "label": ""}],
    "address": {
        "street": "",
        "city": "",
        "neighborhood": "",
        "state": "",
        "zipcode": "",
        "county": "",
        "country": "",
        "subdivision": "",
    },
    "price_info": {
        "price": 0,
        "is_discounted": False,
        "original_price": 0,
        "price_per_unit": {"amount": 0, "unit": ""},
    },
    "beds": 0,
    "baths": 0,
    "property_type": "",
    "year_built": 0,
    "is_new_construction": False,
    "mls_id": "",
    "living_area": {"value": 0, "unit": ""},
    "lot_size": {"value": 0, "unit": ""},
    "description": "",
    "features": [{"icon": "", "label": "", "value": ""}],
    "features_amenities": {
        "interior": {
            "amenities": [],
            "floor_covering": [],
            "kitchen_features": [],
            "heating": [],
            "cooling": [],
            "fireplace": False,
        },
        "appliances": [],
        "parking": {"type": "", "spaces": 0, "covered": False},
        "outdoor": {
            "amenities": [],
            "pool": False,
            "balcony_terrace": False,
            "garden": False,
        },
        "building": {
            "architecture_style": "",
            "exterior_type": "",
            "elevator": False,
            "security_features": [],
        },
        "energy": {"energy_rating": "", "solar": False, "ev_charger": False},
    },
    "agent": {
        "name": "",
        "title": "",
        "agency": "",
        "phone": "",
        "email": "",
        "photo": "",
        "bio": "",
        "license": "",
    },
    "mortgage_info": {
        "interest_rate": 0,
        "property_tax": {"amount": 0, "period": ""},
        "hoa_fee": {"amount": 0, "period": ""},
    },
    "virtual_tour_url": "",
    "floorplan_url": "",
}

#: Phosphor icon names offered to the refinement call, grouped by theme.
HIGHLIGHT_ICONS: dict[str, tuple[str, ...]] = {
    "location": ("MapPin", "NavigationArrow", "Compass"),
    "view": ("Mountains", "Waves", "Sun", "Eye"),
    "bedroom": ("Bed",),
    "bathroom": ("Bathtub", "Shower"),
    "kitchen": ("CookingPot", "ForkKnife"),
    "luxury": ("Crown", "Diamond", "Sparkle"),
    "pool": ("SwimmingPool",),
    "parking": ("Garage", "Car"),
    "outdoor": ("Tree", "Plant", "Flower"),
    "security": ("ShieldCheck", "Lock"),
    "heating_cooling": ("Thermometer", "Snowflake", "Fire"),
    "energy": ("SolarPanel", "Lightning", "Leaf"),
    "price": ("CurrencyDollar", "Tag"),
    "size": ("Ruler", "ArrowsOut"),
    "elevator": ("Elevator",),
    "building": ("House", "Buildings"),
    "appliances": ("Sofa", "Television"),
    "storage": ("Wardrobe", "Package"),
    "distance": ("MapPin", "Clock"),
    "trending": ("Star", "TrendUp"),
    "miscellaneous": ("Check", "Info"),
}


def _icon_catalogue() -> str:
    return "\n".join(
        f"- {category}: {', '.join(icons)}" for category, icons in HIGHLIGHT_ICONS.items()
    )


def build_config_prompt(content: str, content_type: str) -> str:
    """Return the base-call prompt for *content*.

    Args:
        content: Normalized listing content.
        content_type: ``"structured"`` when *content* was rendered from
            scraper JSON, ``"text"`` for page text.
    """
    if content_type == CONTENT_TYPE_STRUCTURED:
        intro = (
            "Analyze real estate listing data exported from a listing portal "
            "(structured fields rendered as labelled text). Fill JSON config for one-pager."
        )
    else:
        intro = "Analyze real estate listing. Fill JSON config for one-pager."

    return f"""{intro}

PRIORITY FIELDS:
1. language: ISO 639-1 two-letter code of the listing text
2. currency: ISO 4217 code, plus currency_symbol
3. price_info.price: asking price as a number
4. photos: EXHAUSTIVE list of property photo URLs (max {MAX_PHOTOS}), highest resolution available
5. beds, baths, living_area, lot_size
6. description: the listing description, cleaned of boilerplate
7. address: every component present in the listing
8. agent: listing agent and agency contact details
9. property_type: one of {", ".join(PROPERTY_TYPES)}
10. property_status: one of {", ".join(PROPERTY_STATUSES)}

RULES:
- Missing = "" / 0 / [] (never null)
- No hallucinations: only use facts present in the data
- Prefer the largest image variant when several sizes of one photo exist

JSON STRUCTURE:
{json.dumps(CONFIG_TEMPLATE, indent=2)}

DATA TO PROCESS:
{content}"""


def build_refinement_prompt(property_text: str, *, current_title: str = "", current_highlights: str = "") -> str:
    """Return the refinement-call prompt.

    Args:
        property_text: Output of
            :func:`~listing_importer.generation.refinement.format_refinement_input`.
        current_title: Title from the base call, shown for improvement.
        current_highlights: Rendered highlights from the base call.
    """
    sections = [
        "Write marketing copy for a real estate one-pager.",
        "",
        f"TITLE: a single lifestyle-oriented title, max {TITLE_MAX_CHARS} characters, "
        "written in the language given by the property's Language line.",
        "SUBTITLE: one short sentence supporting the title, same language.",
        f"HIGHLIGHTS: exactly {HIGHLIGHT_COUNT} items, each with title, value and icon. "
        "Use only facts from the property data. The icon must be one of these Phosphor icon names:",
        _icon_catalogue(),
    ]
    if current_title:
        sections += ["", "CURRENT TITLE:", current_title]
    if current_highlights:
        sections += ["", "CURRENT HIGHLIGHTS:", current_highlights]
    sections += [
        "",
        "PROPERTY DATA:",
        property_text,
        "",
        "Respond with JSON in exactly this shape:",
        json.dumps(
            {
                "title": "",
                "subtitle": "",
                "highlights": [{"title": "", "value": "", "icon": ""}],
            },
            indent=2,
        ),
    ]
    return "\n".join(sections)


def config_messages(content: str, content_type: str) -> list[dict[str, str]]:
    """Chat messages for the base call."""
    return [
        {"role": "system", "content": SYSTEM_MESSAGE},
        {"role": "user", "content": build_config_prompt(content, content_type)},
    ]


def refinement_messages(prompt: str) -> list[dict[str, str]]:
    """Chat messages for the refinement call."""
    return [
        {"role": "system", "content": SYSTEM_MESSAGE},
        {"role": "user", "content": prompt},
    ]

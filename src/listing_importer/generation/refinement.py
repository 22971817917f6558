"""Pure helpers for the refinement call.

The refinement call only sees a narrowed projection of the base config,
rendered as plain text.  Its answer is merged back conservatively: the base
title, subtitle and highlights survive unless the refinement produced a
usable replacement.
"""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field


class RefinementInput(BaseModel):
    """Fields of a config the refinement call is allowed to see."""

    model_config = ConfigDict(frozen=True)

    language: str = ""
    title: str = ""
    address: dict[str, Any] = Field(default_factory=dict)
    beds: float = 0
    baths: float = 0
    property_type: str = "OTHER"
    year_built: int = 0
    living_area: dict[str, Any] = Field(default_factory=dict)
    lot_size: dict[str, Any] = Field(default_factory=dict)
    description: str = ""
    features_amenities: dict[str, Any] = Field(default_factory=dict)
    highlights: list[dict[str, Any]] = Field(default_factory=list)


class Refinement(BaseModel):
    """Parsed refinement answer.  Empty values mean "keep the base value"."""

    title: str = ""
    subtitle: str = ""
    highlights: list[dict[str, Any]] | None = None

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> "Refinement":
        title = data.get("title")
        subtitle = data.get("subtitle")
        highlights = data.get("highlights")
        return cls(
            title=title if isinstance(title, str) else "",
            subtitle=subtitle if isinstance(subtitle, str) else "",
            highlights=(
                [item for item in highlights if isinstance(item, dict)]
                if isinstance(highlights, list)
                else None
            ),
        )


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_dict(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


def _as_number(value: Any) -> float:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    return 0


def narrow(config: Mapping[str, Any]) -> RefinementInput:
    """Project *config* onto the fields the refinement call uses.

    Missing or mistyped values fall back to neutral defaults
    (``""``, ``0``, ``{}``, ``[]``, property type ``OTHER``).
    """
    highlights = config.get("highlights")
    return RefinementInput(
        language=_as_str(config.get("language")),
        title=_as_str(config.get("title")),
        address=_as_dict(config.get("address")),
        beds=_as_number(config.get("beds")),
        baths=_as_number(config.get("baths")),
        property_type=_as_str(config.get("property_type")) or "OTHER",
        year_built=int(_as_number(config.get("year_built"))),
        living_area=_as_dict(config.get("living_area")),
        lot_size=_as_dict(config.get("lot_size")),
        description=_as_str(config.get("description")),
        features_amenities=_as_dict(config.get("features_amenities")),
        highlights=[h for h in highlights if isinstance(h, Mapping)] if isinstance(highlights, list) else [],
    )


_ADDRESS_PARTS = ("street", "city", "neighborhood", "state", "zipcode", "country", "subdivision")


def _count(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _plural(value: float, noun: str) -> str:
    return f"{_count(value)} {noun}" if value == 1 else f"{_count(value)} {noun}s"


def _area_line(label: str, area: Mapping[str, Any]) -> str | None:
    value = area.get("value")
    if not value:
        return None
    return f"{label}: {value} {area.get('unit') or 'sqft'}"


def _feature_lines(features: Mapping[str, Any]) -> list[str]:
    interior = _as_dict(features.get("interior"))
    outdoor = _as_dict(features.get("outdoor"))
    parking = _as_dict(features.get("parking"))
    building = _as_dict(features.get("building"))
    energy = _as_dict(features.get("energy"))

    items: list[str] = []
    if features.get("pool") or outdoor.get("pool"):
        items.append("Pool")
    if outdoor.get("balcony_terrace"):
        items.append("Balcony/Terrace")
    if outdoor.get("garden"):
        items.append("Garden")
    items.extend(str(a) for a in outdoor.get("amenities") or [] if a)
    if interior.get("fireplace"):
        items.append("Fireplace")
    items.extend(str(k) for k in interior.get("kitchen_features") or [] if k)
    items.extend(str(a) for a in features.get("appliances") or [] if a)
    if parking.get("type"):
        items.append(f"Parking: {parking['type']}")
    if building.get("elevator"):
        items.append("Elevator")
    if energy.get("solar"):
        items.append("Solar")
    if energy.get("ev_charger"):
        items.append("EV Charger")
    return items


def format_refinement_input(projection: RefinementInput) -> str:
    """Render *projection* as the plain-text property block of the prompt."""
    lines: list[str] = []
    if projection.language:
        lines.append(f"Language: {projection.language}")
    if projection.title:
        lines.append(f"Current Title: {projection.title}")

    address = ", ".join(
        str(projection.address[part]) for part in _ADDRESS_PARTS if projection.address.get(part)
    )
    if address:
        lines.append(f"Address: {address}")

    if projection.beds or projection.baths:
        lines.append(
            f"Property: {_plural(projection.beds, 'bed')}, {_plural(projection.baths, 'bath')}"
            f" - {projection.property_type}"
        )
    else:
        lines.append(f"Property: {projection.property_type}")

    if projection.year_built > 0:
        lines.append(f"Year Built: {projection.year_built}")
    for label, area in (("Living Area", projection.living_area), ("Lot Size", projection.lot_size)):
        line = _area_line(label, area)
        if line:
            lines.append(line)

    if projection.description:
        lines += ["", "Description:", projection.description]

    features = _feature_lines(projection.features_amenities)
    if features:
        lines += ["", "Features & Amenities:"]
        lines += [f"- {item}" for item in features]

    if projection.highlights:
        lines += ["", "Current Highlights (for improvement):"]
        for index, highlight in enumerate(projection.highlights, start=1):
            lines.append(f"{index}. {highlight.get('title', '')}: {highlight.get('value', '')}")

    return "\n".join(lines)


def merge(config: Mapping[str, Any], refinement: Refinement) -> dict[str, Any]:
    """Apply *refinement* to a copy of *config*.

    Title and subtitle are replaced only when the refined value is non-blank;
    highlights only when the refinement returned a non-empty list.
    """
    merged = dict(config)
    if refinement.title.strip():
        merged["title"] = refinement.title.strip()
    if refinement.subtitle.strip():
        merged["subtitle"] = refinement.subtitle.strip()
    if refinement.highlights:
        merged["highlights"] = list(refinement.highlights)
    return merged

"""Pydantic models for generated one-pager configs.

Every model allows extra keys: the generation service may return fields the
renderer knows about but this package does not, and they are kept.  All
fields are optional so a sparse but well-formed response validates.
"""

from __future__ import annotations

from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# "" is the prompt's placeholder for a missing value.
Number = Annotated[Optional[Union[int, float]], BeforeValidator(_blank_to_none)]
Flag = Annotated[Optional[bool], BeforeValidator(_blank_to_none)]
Strings = Annotated[Optional[list[str]], BeforeValidator(_blank_to_none)]


class _ConfigModel(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)


class Photo(_ConfigModel):
    url: Optional[str] = None
    alt: Optional[str] = None
    label: Optional[str] = None


class Address(_ConfigModel):
    street: Optional[str] = None
    city: Optional[str] = None
    neighborhood: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    county: Optional[str] = None
    country: Optional[str] = None
    subdivision: Optional[str] = None


class PricePerUnit(_ConfigModel):
    amount: Number = None
    unit: Optional[str] = None


class PriceInfo(_ConfigModel):
    price: Number = None
    is_discounted: Flag = None
    original_price: Number = None
    price_per_unit: Optional[PricePerUnit] = None


class AreaMeasurement(_ConfigModel):
    value: Number = None
    unit: Optional[str] = None


class Highlight(_ConfigModel):
    title: Optional[str] = None
    value: Optional[str] = None
    icon: Optional[str] = None
    photo: Optional[str] = None


class Feature(_ConfigModel):
    icon: Optional[str] = None
    label: Optional[str] = None
    value: Optional[Any] = None


class Interior(_ConfigModel):
    amenities: Strings = None
    floor_covering: Strings = None
    kitchen_features: Strings = None
    heating: Strings = None
    cooling: Strings = None
    fireplace: Flag = None


class Parking(_ConfigModel):
    type: Optional[str] = None
    spaces: Number = None
    covered: Flag = None


class Outdoor(_ConfigModel):
    amenities: Strings = None
    pool: Flag = None
    balcony_terrace: Flag = None
    garden: Flag = None


class Building(_ConfigModel):
    architecture_style: Optional[str] = None
    exterior_type: Optional[str] = None
    elevator: Flag = None
    security_features: Strings = None


class Energy(_ConfigModel):
    energy_rating: Optional[str] = None
    solar: Flag = None
    ev_charger: Flag = None


class FeaturesAmenities(_ConfigModel):
    interior: Optional[Interior] = None
    appliances: Strings = None
    parking: Optional[Parking] = None
    outdoor: Optional[Outdoor] = None
    building: Optional[Building] = None
    energy: Optional[Energy] = None


class Agent(_ConfigModel):
    name: Optional[str] = None
    title: Optional[str] = None
    agency: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    photo: Optional[str] = None
    bio: Optional[str] = None
    license: Optional[str] = None


class Fee(_ConfigModel):
    amount: Number = None
    period: Optional[str] = None


class MortgageInfo(_ConfigModel):
    interest_rate: Number = None
    property_tax: Optional[Fee] = None
    hoa_fee: Optional[Fee] = None


class ListingConfig(_ConfigModel):
    """A generated one-pager config."""

    title: Optional[str] = None
    subtitle: Optional[str] = None
    language: Optional[str] = None
    currency: Optional[str] = None
    currency_symbol: Optional[str] = None
    property_status: Optional[str] = None
    photos: Optional[list[Union[Photo, str]]] = None
    address: Optional[Address] = None
    price_info: Optional[PriceInfo] = None
    beds: Number = None
    baths: Number = None
    property_type: Optional[str] = None
    year_built: Number = None
    is_new_construction: Flag = None
    mls_id: Optional[str] = None
    living_area: Optional[AreaMeasurement] = None
    lot_size: Optional[AreaMeasurement] = None
    highlights: Optional[list[Highlight]] = None
    description: Optional[str] = None
    features: Optional[list[Feature]] = None
    features_amenities: Optional[FeaturesAmenities] = None
    agent: Optional[Agent] = None
    mortgage_info: Optional[MortgageInfo] = None
    virtual_tour_url: Optional[str] = None
    floorplan_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Dump only the keys the service actually returned, extras included."""
        return self.model_dump(exclude_unset=True)

"""Data models for saved restaurants."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

ADDRESS_PLACEHOLDER = "Address not provided"
DEFAULT_CUISINE = "Unknown"


class Coordinates(BaseModel):
    """A latitude/longitude pair in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in degrees")

    def __str__(self) -> str:
        return f"{self.latitude:.4f}, {self.longitude:.4f}"


class PriceRange(str, Enum):
    """Relative price level of a restaurant."""

    INEXPENSIVE = "$"
    MODERATE = "$$"
    EXPENSIVE = "$$$"
    VERY_EXPENSIVE = "$$$$"

    @classmethod
    def parse(cls, value: Any) -> "PriceRange | None":
        """Map loosely formatted price strings onto the enum.

        Exact matches win. Otherwise the highest run of dollar signs is used,
        so ``"$$-$$$"`` becomes ``$$$``. Anything without a dollar sign is None.
        """
        if value is None or isinstance(value, cls):
            return value
        text = str(value).strip()
        try:
            return cls(text)
        except ValueError:
            pass
        dollars = max((len(part) for part in _dollar_runs(text)), default=0)
        if dollars == 0:
            return None
        return list(cls)[min(dollars, 4) - 1]


def _dollar_runs(text: str) -> list[str]:
    runs = []
    current = ""
    for char in text:
        if char == "$":
            current += char
        elif current:
            runs.append(current)
            current = ""
    if current:
        runs.append(current)
    return runs


class RestaurantSource(str, Enum):
    """How a restaurant entered the list."""

    VISION = "vision-extracted"
    MANUAL = "manual"


class RestaurantRecord(BaseModel):
    """A restaurant saved to the user's list.

    Records are immutable; changes go through ``RestaurantUpdate.apply_to``,
    which re-validates and so keeps ``visited_date`` in step with
    ``is_visited``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        default_factory=lambda: uuid.uuid4().hex,
        description="Unique restaurant identifier",
    )
    name: str = Field(..., min_length=1, description="Restaurant name")
    address: str = Field(default=ADDRESS_PLACEHOLDER, description="Street address")
    coordinates: Coordinates = Field(..., description="Resolved location")
    cuisine: str = Field(default=DEFAULT_CUISINE, description="Type of cuisine")
    price_range: PriceRange = Field(default=PriceRange.MODERATE)
    rating: float | None = Field(None, ge=0, le=5, description="Rating out of 5")
    review_count: int | None = Field(None, ge=0, description="Number of reviews")
    phone_number: str | None = Field(None, description="Restaurant phone number")
    website: str | None = Field(None, description="Restaurant website")
    description: str | None = Field(None, description="Short description")
    image_uri: str | None = Field(None, description="Screenshot the entry came from")
    source: RestaurantSource = Field(default=RestaurantSource.MANUAL)
    tags: set[str] = Field(default_factory=set, description="Free-text tags")
    date_added: datetime = Field(
        default_factory=datetime.now,
        description="When the restaurant was saved",
    )
    is_visited: bool = Field(default=False)
    visited_date: datetime | None = Field(None, description="When it was visited")
    notes: str | None = Field(None, description="User notes")

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "name must not be blank"
            raise ValueError(msg)
        return value

    @field_validator("price_range", mode="before")
    @classmethod
    def _parse_price_range(cls, value: Any) -> Any:
        return PriceRange.parse(value) or PriceRange.MODERATE

    @model_validator(mode="before")
    @classmethod
    def _sync_visited_date(cls, data: Any) -> Any:
        """Keep ``visited_date`` set exactly when ``is_visited`` is true."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("is_visited"):
            if data.get("visited_date") is None:
                data["visited_date"] = datetime.now()
        else:
            data["visited_date"] = None
        return data


class RestaurantUpdate(BaseModel):
    """Partial update applied to a stored restaurant.

    ``id`` and ``date_added`` are deliberately absent: they never change.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1)
    address: str | None = None
    cuisine: str | None = None
    price_range: PriceRange | None = None
    rating: float | None = Field(None, ge=0, le=5)
    review_count: int | None = Field(None, ge=0)
    phone_number: str | None = None
    website: str | None = None
    description: str | None = None
    tags: set[str] | None = None
    is_visited: bool | None = None
    notes: str | None = None

    def apply_to(self, record: RestaurantRecord) -> RestaurantRecord:
        """Return a new, re-validated record with these changes applied."""
        data = record.model_dump()
        data.update(self.model_dump(exclude_unset=True))
        return RestaurantRecord.model_validate(data)

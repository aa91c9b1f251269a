"""Restaurant details as extracted from a screenshot or typed by the user."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from snapbite.models.restaurant import PriceRange

REQUIRED_FIELDS = ("name", "rating", "address")


class RestaurantData(BaseModel):
    """Structured restaurant data returned by the vision model.

    Field aliases follow the camelCase keys the model is asked to produce.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str = Field(..., min_length=1, description="Restaurant name")
    rating: float = Field(..., ge=0, le=5, description="Rating out of 5")
    address: str = Field(..., min_length=1, description="Full address")
    cuisine: str | None = Field(None, description="Type of cuisine")
    price_range: PriceRange | None = Field(None, alias="priceRange")
    phone_number: str | None = Field(None, alias="phoneNumber")
    website: str | None = Field(None, description="Website if visible")
    review_count: int | None = Field(None, ge=0, alias="reviewCount")

    @field_validator("name", "address", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("price_range", mode="before")
    @classmethod
    def _parse_price_range(cls, value: Any) -> PriceRange | None:
        return PriceRange.parse(value)


class ManualFields(BaseModel):
    """Restaurant details entered by hand.

    ``name`` may be empty here; the ingestion pipeline rejects it so the
    caller gets a single, user-facing validation error.
    """

    name: str = Field(default="", description="Restaurant name")
    address: str | None = Field(None, description="Street address")
    cuisine: str | None = Field(None, description="Type of cuisine")
    price_range: PriceRange | None = None
    rating: float | None = Field(None, ge=0, le=5)
    review_count: int | None = Field(None, ge=0)
    phone_number: str | None = None
    website: str | None = None
    description: str | None = None
    tags: set[str] = Field(default_factory=set)
    notes: str | None = None

    @field_validator("price_range", mode="before")
    @classmethod
    def _parse_price_range(cls, value: Any) -> PriceRange | None:
        return PriceRange.parse(value)

    @classmethod
    def from_extraction(cls, data: RestaurantData) -> "ManualFields":
        """Pre-fill a manual entry form from extracted data."""
        return cls(
            name=data.name,
            address=data.address,
            cuisine=data.cuisine,
            price_range=data.price_range,
            rating=data.rating,
            review_count=data.review_count,
            phone_number=data.phone_number,
            website=data.website,
        )

"""Data models for adding restaurants to the list."""

from enum import Enum

from pydantic import BaseModel, Field

from snapbite.models.extraction import ManualFields
from snapbite.models.restaurant import RestaurantRecord


class IngestionStatus(str, Enum):
    """Outcome of an ingestion attempt."""

    CREATED = "created"
    DUPLICATE_REJECTED = "duplicate_rejected"
    NEEDS_MANUAL_ENTRY = "needs_manual_entry"


class GeocodingProvider(str, Enum):
    """Which geocoding tier produced a coordinate."""

    GOOGLE = "google"
    NOMINATIM = "nominatim"
    DEFAULT = "default"


class IngestionRequest(BaseModel):
    """A screenshot, hand-entered details, or both."""

    image_base64: str | None = Field(None, description="Base64-encoded JPEG")
    image_uri: str | None = Field(None, description="Where the screenshot lives")
    manual_fields: ManualFields | None = Field(
        None, description="Details typed by the user; take precedence over the image"
    )


class IngestionResult(BaseModel):
    """Result of an ingestion attempt."""

    status: IngestionStatus = Field(..., description="Ingestion outcome")
    record: RestaurantRecord | None = Field(
        None, description="Created record, or the rejected candidate"
    )
    duplicate_of: RestaurantRecord | None = Field(
        None, description="Existing record the candidate collided with"
    )
    geocoding_provider: GeocodingProvider | None = Field(
        None, description="Geocoding tier that resolved the address"
    )
    message: str = Field(..., description="User-facing explanation")

    @property
    def created(self) -> bool:
        return self.status == IngestionStatus.CREATED

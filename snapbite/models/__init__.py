"""Data models for the SnapBite system."""

from snapbite.models.extraction import ManualFields, RestaurantData
from snapbite.models.ingestion import (
    GeocodingProvider,
    IngestionRequest,
    IngestionResult,
    IngestionStatus,
)
from snapbite.models.restaurant import (
    Coordinates,
    PriceRange,
    RestaurantRecord,
    RestaurantSource,
    RestaurantUpdate,
)
from snapbite.models.result import Err, Ok, Result

__all__ = [
    "Coordinates",
    "Err",
    "GeocodingProvider",
    "IngestionRequest",
    "IngestionResult",
    "IngestionStatus",
    "ManualFields",
    "Ok",
    "PriceRange",
    "RestaurantData",
    "RestaurantRecord",
    "RestaurantSource",
    "RestaurantUpdate",
    "Result",
]

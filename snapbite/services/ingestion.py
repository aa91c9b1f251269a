"""Pipeline that turns a screenshot or typed details into a saved restaurant."""

import asyncio
import logging

import pydantic

from snapbite.errors import ValidationError
from snapbite.models import (
    IngestionRequest,
    IngestionResult,
    IngestionStatus,
    ManualFields,
    RestaurantRecord,
    RestaurantSource,
)
from snapbite.models.restaurant import ADDRESS_PLACEHOLDER, DEFAULT_CUISINE
from snapbite.services.deduplication import DeduplicationGate
from snapbite.services.geocoding_service import GeocodingResolver
from snapbite.services.restaurant_store import RestaurantStore
from snapbite.services.vision_service import VisionExtractionClient

logger = logging.getLogger(__name__)


class RestaurantIngestionPipeline:
    """Runs extraction, geocoding, duplicate detection and saving in order.

    Each stage awaits the previous one. The duplicate check and the insert are
    one store call made under the store lock, so concurrent ingestions cannot
    both save the same restaurant. That call writes the JSON file, so it runs
    in a worker thread.
    """

    def __init__(
        self,
        store: RestaurantStore,
        geocoder: GeocodingResolver,
        vision: VisionExtractionClient | None = None,
        gate: DeduplicationGate | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            store: Where restaurants are saved
            geocoder: Address resolver
            vision: Screenshot analyzer (image ingestion disabled if None)
            gate: Duplicate policy (100m / same name if None)
        """
        self.store = store
        self.geocoder = geocoder
        self.vision = vision
        self.gate = gate or DeduplicationGate()

    async def ingest(self, request: IngestionRequest) -> IngestionResult:
        """Add a restaurant from a screenshot or manual details.

        Args:
            request: Screenshot and/or manual fields. A request with neither
                is treated as manual entry with an empty name.

        Returns:
            IngestionResult with status CREATED, DUPLICATE_REJECTED or
            NEEDS_MANUAL_ENTRY

        Raises:
            ValidationError: If the restaurant name is missing or a field is invalid
        """
        fields, source = await self._resolve_fields(request)
        if fields is None:
            return IngestionResult(
                status=IngestionStatus.NEEDS_MANUAL_ENTRY,
                message="Could not read this screenshot. Please enter details manually.",
            )

        if not fields.name.strip():
            msg = "name required"
            raise ValidationError(msg)

        address = (fields.address or "").strip()
        geocoded = await self.geocoder.resolve_with_provenance(address)

        try:
            candidate = RestaurantRecord(
                name=fields.name,
                address=address or ADDRESS_PLACEHOLDER,
                coordinates=geocoded.coordinates,
                cuisine=fields.cuisine or DEFAULT_CUISINE,
                price_range=fields.price_range,
                rating=fields.rating,
                review_count=fields.review_count,
                phone_number=fields.phone_number,
                website=fields.website,
                description=fields.description,
                image_uri=request.image_uri,
                source=source,
                tags=fields.tags,
                notes=fields.notes,
            )
        except pydantic.ValidationError as e:
            msg = f"Invalid restaurant details: {e}"
            raise ValidationError(msg) from e

        duplicate = await asyncio.to_thread(
            self.store.insert_if_not_duplicate, candidate, self.gate
        )
        if duplicate is not None:
            logger.info(
                f"Rejected '{candidate.name}' as a duplicate of '{duplicate.name}'"
            )
            return IngestionResult(
                status=IngestionStatus.DUPLICATE_REJECTED,
                record=candidate,
                duplicate_of=duplicate,
                geocoding_provider=geocoded.provider,
                message=f"{duplicate.name} is already in your list.",
            )

        return IngestionResult(
            status=IngestionStatus.CREATED,
            record=candidate,
            geocoding_provider=geocoded.provider,
            message=f"{candidate.name} saved to your list.",
        )

    async def _resolve_fields(
        self, request: IngestionRequest
    ) -> tuple[ManualFields | None, RestaurantSource]:
        if request.manual_fields is not None:
            return request.manual_fields, RestaurantSource.MANUAL

        if not request.image_base64:
            return ManualFields(), RestaurantSource.MANUAL

        if self.vision is None:
            logger.warning("Screenshot supplied but vision analysis is disabled")
            return None, RestaurantSource.VISION

        data = await self.vision.extract(request.image_base64)
        if data is None:
            return None, RestaurantSource.VISION

        return ManualFields.from_extraction(data), RestaurantSource.VISION

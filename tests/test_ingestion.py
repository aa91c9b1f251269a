"""Tests for the restaurant ingestion pipeline."""

import asyncio
import json
import threading

import httpx
import pytest
from conftest import make_record, mock_async_client
from openai import AsyncOpenAI

from snapbite.errors import ValidationError
from snapbite.models import (
    Coordinates,
    GeocodingProvider,
    IngestionRequest,
    IngestionStatus,
    ManualFields,
    PriceRange,
    RestaurantSource,
)
from snapbite.services.geocoding_service import GeocodeResult, GeocodingResolver
from snapbite.services.ingestion import RestaurantIngestionPipeline
from snapbite.services.restaurant_store import RestaurantStore
from snapbite.services.vision_service import VisionExtractionClient

IMAGE = "aGVsbG8="


class FakeGeocoder:
    """Geocoder that returns a fixed coordinate and records addresses."""

    def __init__(self, coordinates: Coordinates) -> None:
        self.coordinates = coordinates
        self.addresses: list[str] = []

    async def resolve_with_provenance(self, address: str) -> GeocodeResult:
        self.addresses.append(address)
        await asyncio.sleep(0)
        return GeocodeResult(
            coordinates=self.coordinates, provider=GeocodingProvider.NOMINATIM
        )


class FakeVision:
    """Vision client returning canned data."""

    def __init__(self, data) -> None:
        self.data = data
        self.calls = 0

    async def extract(self, image_base64: str):
        self.calls += 1
        return self.data


class ThreadRecordingStore(RestaurantStore):
    """In-memory store that records which thread saved each record."""

    def __init__(self) -> None:
        super().__init__()
        self.threads: list[int] = []

    def insert_if_not_duplicate(self, record, gate):
        self.threads.append(threading.get_ident())
        return super().insert_if_not_duplicate(record, gate)


def vision_returning(config, content: dict) -> VisionExtractionClient:
    """Real vision client whose model answers with ``content``."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "id": "chatcmpl-test",
                "object": "chat.completion",
                "created": 0,
                "model": "gpt-4o",
                "choices": [
                    {
                        "index": 0,
                        "finish_reason": "stop",
                        "message": {"role": "assistant", "content": json.dumps(content)},
                    }
                ],
            },
        )

    openai_client = AsyncOpenAI(
        api_key="test-key", http_client=mock_async_client(handler), max_retries=0
    )
    return VisionExtractionClient(config, client=openai_client)


@pytest.fixture
def geocoder():
    return FakeGeocoder(Coordinates(latitude=37.7749, longitude=-122.4194))


class TestManualIngestion:
    """Tests for ingesting hand-entered details."""

    @pytest.mark.asyncio
    async def test_creates_record(self, store, geocoder):
        """Test a new restaurant is geocoded and saved."""
        pipeline = RestaurantIngestionPipeline(store, geocoder)

        result = await pipeline.ingest(
            IngestionRequest(
                manual_fields=ManualFields(
                    name="Joe's Pizza",
                    address="1 Market St",
                    price_range="$",
                    tags={"pizza"},
                )
            )
        )

        assert result.status == IngestionStatus.CREATED
        assert result.geocoding_provider == GeocodingProvider.NOMINATIM
        record = result.record
        assert record.source == RestaurantSource.MANUAL
        assert record.coordinates == geocoder.coordinates
        assert record.price_range == PriceRange.INEXPENSIVE
        assert record.cuisine == "Unknown"
        assert store.list() == [record]
        assert geocoder.addresses == ["1 Market St"]

    @pytest.mark.asyncio
    async def test_empty_name_without_image(self, store, geocoder):
        """Test that a blank name is a validation error."""
        pipeline = RestaurantIngestionPipeline(store, geocoder)

        with pytest.raises(ValidationError, match="name required"):
            await pipeline.ingest(IngestionRequest(manual_fields=ManualFields(name="  ")))

        assert geocoder.addresses == []
        assert store.list() == []

    @pytest.mark.asyncio
    async def test_missing_address_uses_placeholder(self, store, geocoder):
        """Test that an unknown address is stored as a placeholder."""
        pipeline = RestaurantIngestionPipeline(store, geocoder)

        result = await pipeline.ingest(
            IngestionRequest(manual_fields=ManualFields(name="Food Truck"))
        )

        assert result.record.address == "Address not provided"
        assert geocoder.addresses == [""]

    @pytest.mark.asyncio
    async def test_duplicate_is_not_saved(self, store, geocoder):
        """Test that a duplicate is rejected and the store is unchanged."""
        existing = store.insert(make_record("Joe's Pizza", 40.0, -74.0))
        pipeline = RestaurantIngestionPipeline(store, geocoder)

        result = await pipeline.ingest(
            IngestionRequest(manual_fields=ManualFields(name="joe's pizza"))
        )

        assert result.status == IngestionStatus.DUPLICATE_REJECTED
        assert result.duplicate_of == existing
        assert store.list() == [existing]

    @pytest.mark.asyncio
    async def test_manual_fields_take_precedence(self, store, geocoder):
        """Test that the image is ignored when details are supplied."""
        vision = FakeVision(None)
        pipeline = RestaurantIngestionPipeline(store, geocoder, vision=vision)

        result = await pipeline.ingest(
            IngestionRequest(image_base64=IMAGE, manual_fields=ManualFields(name="Umi"))
        )

        assert result.status == IngestionStatus.CREATED
        assert vision.calls == 0

    @pytest.mark.asyncio
    async def test_concurrent_duplicates(self, store, geocoder):
        """Test that interleaved ingestions of one place save it once."""
        pipeline = RestaurantIngestionPipeline(store, geocoder)
        request = IngestionRequest(manual_fields=ManualFields(name="Joe's Pizza"))

        results = await asyncio.gather(pipeline.ingest(request), pipeline.ingest(request))

        statuses = sorted(result.status for result in results)
        assert statuses == [IngestionStatus.CREATED, IngestionStatus.DUPLICATE_REJECTED]
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_store_write_runs_off_the_event_loop(self, geocoder):
        """Test that saving happens in a worker thread."""
        store = ThreadRecordingStore()
        pipeline = RestaurantIngestionPipeline(store, geocoder)

        await pipeline.ingest(IngestionRequest(manual_fields=ManualFields(name="Umi")))

        assert store.threads
        assert threading.get_ident() not in store.threads


class TestImageIngestion:
    """Tests for ingesting screenshots."""

    @pytest.mark.asyncio
    async def test_vision_data_is_saved(self, config, store, geocoder):
        """Test extracted data becomes a vision-sourced record."""
        vision = vision_returning(
            config,
            {"name": "Pizzeria A", "rating": 4.2, "address": "1 Market St, SF", "priceRange": "$$$"},
        )
        pipeline = RestaurantIngestionPipeline(store, geocoder, vision=vision)

        result = await pipeline.ingest(
            IngestionRequest(image_base64=IMAGE, image_uri="file:///shot.jpg")
        )

        assert result.status == IngestionStatus.CREATED
        assert result.record.source == RestaurantSource.VISION
        assert result.record.rating == 4.2
        assert result.record.price_range == PriceRange.EXPENSIVE
        assert result.record.image_uri == "file:///shot.jpg"
        assert geocoder.addresses == ["1 Market St, SF"]

    @pytest.mark.asyncio
    async def test_missing_address_needs_manual_entry(self, config, store, geocoder):
        """Test incomplete vision data asks for manual entry instead of failing."""
        vision = vision_returning(config, {"name": "Pizzeria A", "rating": 4.2})
        pipeline = RestaurantIngestionPipeline(store, geocoder, vision=vision)

        result = await pipeline.ingest(IngestionRequest(image_base64=IMAGE))

        assert result.status == IngestionStatus.NEEDS_MANUAL_ENTRY
        assert result.record is None
        assert geocoder.addresses == []
        assert store.list() == []

    @pytest.mark.asyncio
    async def test_no_vision_client(self, store, geocoder):
        """Test screenshots need manual entry when analysis is disabled."""
        pipeline = RestaurantIngestionPipeline(store, geocoder)

        result = await pipeline.ingest(IngestionRequest(image_base64=IMAGE))

        assert result.status == IngestionStatus.NEEDS_MANUAL_ENTRY

    @pytest.mark.asyncio
    async def test_empty_request(self, store, geocoder):
        """Test that a request with no image and no details has no name."""
        pipeline = RestaurantIngestionPipeline(store, geocoder)

        with pytest.raises(ValidationError, match="name required"):
            await pipeline.ingest(IngestionRequest())

        assert geocoder.addresses == []
        assert store.list() == []

    @pytest.mark.asyncio
    async def test_end_to_end_duplicate(self, config, store, rng):
        """Test screenshot → geocode within 50m of a saved entry → rejected."""
        existing = store.insert(make_record("Pizzeria A", 37.7, -122.4))
        vision = vision_returning(
            config, {"name": "Pizzeria A", "rating": 4.2, "address": "1 Market St, SF"}
        )

        def nominatim(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"lat": "37.7003", "lon": "-122.4"}])

        geocoder = GeocodingResolver(
            config, http_client=mock_async_client(nominatim), rng=rng
        )
        pipeline = RestaurantIngestionPipeline(store, geocoder, vision=vision)

        result = await pipeline.ingest(IngestionRequest(image_base64=IMAGE))

        assert result.status == IngestionStatus.DUPLICATE_REJECTED
        assert result.duplicate_of == existing
        assert result.geocoding_provider == GeocodingProvider.NOMINATIM
        assert store.list() == [existing]

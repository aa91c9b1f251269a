"""Tests for data models."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from snapbite.models import (
    Coordinates,
    IngestionResult,
    IngestionStatus,
    ManualFields,
    PriceRange,
    RestaurantData,
    RestaurantRecord,
    RestaurantSource,
    RestaurantUpdate,
)

SF = Coordinates(latitude=37.7749, longitude=-122.4194)


class TestCoordinates:
    """Tests for the Coordinates model."""

    def test_create_coordinates(self):
        """Test creating coordinates."""
        assert SF.latitude == 37.7749
        assert SF.longitude == -122.4194
        assert str(SF) == "37.7749, -122.4194"

    @pytest.mark.parametrize(("lat", "lon"), [(91, 0), (-91, 0), (0, 181), (0, -181)])
    def test_out_of_range(self, lat, lon):
        """Test that out-of-range values are rejected."""
        with pytest.raises(ValidationError):
            Coordinates(latitude=lat, longitude=lon)

    def test_coordinates_immutable(self):
        """Test that coordinates are frozen/immutable."""
        with pytest.raises((ValidationError, AttributeError)):
            SF.latitude = 0.0


class TestPriceRange:
    """Tests for price range parsing."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("$", PriceRange.INEXPENSIVE),
            ("$$$$", PriceRange.VERY_EXPENSIVE),
            (" $$ ", PriceRange.MODERATE),
            ("$$-$$$", PriceRange.EXPENSIVE),
            ("$$$$$", PriceRange.VERY_EXPENSIVE),
            ("cheap", None),
            (None, None),
        ],
    )
    def test_parse(self, raw, expected):
        """Test that loosely formatted price ranges are normalized."""
        assert PriceRange.parse(raw) == expected


class TestRestaurantRecord:
    """Tests for the RestaurantRecord model."""

    def test_defaults(self):
        """Test defaults for a minimal record."""
        record = RestaurantRecord(name="Test Restaurant", coordinates=SF)

        assert record.id
        assert record.cuisine == "Unknown"
        assert record.price_range == PriceRange.MODERATE
        assert record.source == RestaurantSource.MANUAL
        assert record.tags == set()
        assert record.is_visited is False
        assert record.visited_date is None
        assert isinstance(record.date_added, datetime)

    def test_ids_are_unique(self):
        """Test that each record gets its own id."""
        ids = {RestaurantRecord(name="A", coordinates=SF).id for _ in range(50)}
        assert len(ids) == 50

    def test_blank_name_rejected(self):
        """Test that a whitespace-only name is invalid."""
        with pytest.raises(ValidationError):
            RestaurantRecord(name="   ", coordinates=SF)

    def test_id_and_date_added_are_frozen(self):
        """Test that id and date_added cannot be reassigned."""
        record = RestaurantRecord(name="Test Restaurant", coordinates=SF)

        with pytest.raises(ValidationError):
            record.id = "other"
        with pytest.raises(ValidationError):
            record.date_added = datetime(2020, 1, 1)

    def test_visited_flag_cannot_be_assigned(self):
        """Test that is_visited can only change through an update."""
        record = RestaurantRecord(name="Test", coordinates=SF)

        with pytest.raises(ValidationError):
            record.is_visited = True

        assert record.is_visited is False
        assert record.visited_date is None

    def test_visited_sets_visited_date(self):
        """Test that a visited record always has a visited date."""
        record = RestaurantRecord(name="Test", coordinates=SF, is_visited=True)
        assert record.visited_date is not None

    def test_unvisited_clears_visited_date(self):
        """Test that an unvisited record never keeps a visited date."""
        record = RestaurantRecord(
            name="Test", coordinates=SF, visited_date=datetime(2024, 1, 1)
        )
        assert record.visited_date is None

    def test_json_round_trip_keeps_tags(self):
        """Test that tags survive serialization."""
        record = RestaurantRecord(name="Test", coordinates=SF, tags={"pizza", "late"})
        restored = RestaurantRecord.model_validate_json(record.model_dump_json())
        assert restored.model_dump() == record.model_dump()


class TestRestaurantUpdate:
    """Tests for partial updates."""

    def test_mark_visited_then_unvisited(self):
        """Test visited_date follows is_visited transitions."""
        record = RestaurantRecord(name="Test", coordinates=SF)

        visited = RestaurantUpdate(is_visited=True).apply_to(record)
        assert visited.is_visited is True
        assert visited.visited_date is not None

        again = RestaurantUpdate(is_visited=True).apply_to(visited)
        assert again.visited_date == visited.visited_date

        unvisited = RestaurantUpdate(is_visited=False).apply_to(visited)
        assert unvisited.visited_date is None

    def test_update_keeps_identity(self):
        """Test that updates never change id or date_added."""
        record = RestaurantRecord(name="Test", coordinates=SF)
        updated = RestaurantUpdate(notes="Great crust").apply_to(record)

        assert updated.id == record.id
        assert updated.date_added == record.date_added
        assert updated.notes == "Great crust"

    def test_unknown_fields_rejected(self):
        """Test that id cannot be smuggled in through an update."""
        with pytest.raises(ValidationError):
            RestaurantUpdate.model_validate({"id": "other"})


class TestRestaurantData:
    """Tests for the vision extraction schema."""

    def test_parse_camel_case_payload(self):
        """Test that the model's camelCase keys are accepted."""
        data = RestaurantData.model_validate(
            {
                "name": "Pizzeria A",
                "rating": 4.2,
                "address": "1 Market St, SF",
                "priceRange": "$$",
                "phoneNumber": "(415) 555-0123",
                "reviewCount": 120,
            }
        )

        assert data.price_range == PriceRange.MODERATE
        assert data.phone_number == "(415) 555-0123"
        assert data.review_count == 120

    def test_rating_out_of_range(self):
        """Test that ratings above 5 are rejected."""
        with pytest.raises(ValidationError):
            RestaurantData(name="A", rating=7, address="Somewhere")

    def test_manual_fields_from_extraction(self):
        """Test pre-filling manual fields from extracted data."""
        data = RestaurantData(name="A", rating=4.0, address="1 Main St", cuisine="Thai")
        fields = ManualFields.from_extraction(data)

        assert fields.name == "A"
        assert fields.address == "1 Main St"
        assert fields.cuisine == "Thai"
        assert fields.rating == 4.0


class TestIngestionResult:
    """Tests for the IngestionResult model."""

    def test_created_flag(self):
        """Test the created convenience property."""
        result = IngestionResult(status=IngestionStatus.CREATED, message="ok")
        assert result.created is True

        rejected = IngestionResult(
            status=IngestionStatus.DUPLICATE_REJECTED, message="dup"
        )
        assert rejected.created is False

    def test_status_values(self):
        """Test that all expected status values exist."""
        assert IngestionStatus.CREATED == "created"
        assert IngestionStatus.DUPLICATE_REJECTED == "duplicate_rejected"
        assert IngestionStatus.NEEDS_MANUAL_ENTRY == "needs_manual_entry"

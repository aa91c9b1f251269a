"""Shared fixtures for SnapBite tests."""

import random

import httpx
import pytest

from snapbite.config import Config
from snapbite.models import Coordinates, RestaurantRecord
from snapbite.services.restaurant_store import RestaurantStore

SAN_FRANCISCO = Coordinates(latitude=37.7749, longitude=-122.4194)


@pytest.fixture
def config() -> Config:
    """Configuration that never reads .env and never sleeps."""
    return Config(
        _env_file=None,
        openai_api_key="test-key",
        google_maps_api_key=None,
        nominatim_delay_seconds=0.0,
    )


@pytest.fixture
def store() -> RestaurantStore:
    """Empty in-memory restaurant store."""
    return RestaurantStore()


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source for reproducible jitter."""
    return random.Random(1234)


def make_record(name: str, latitude: float, longitude: float, **kwargs) -> RestaurantRecord:
    """Build a restaurant record at the given position."""
    return RestaurantRecord(
        name=name,
        coordinates=Coordinates(latitude=latitude, longitude=longitude),
        **kwargs,
    )


def mock_async_client(handler) -> httpx.AsyncClient:
    """Async HTTP client whose requests are answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))

"""Nearby-restaurant alerts based on the user's position."""

import logging
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

from snapbite.models import Coordinates, RestaurantRecord
from snapbite.services.geo import PROXIMITY_RADIUS_METERS, distance_meters
from snapbite.services.restaurant_store import RestaurantStore

logger = logging.getLogger(__name__)


class LocationProvider(Protocol):
    """Source of the device's current position."""

    async def get_current_position(self) -> Coordinates: ...


class StaticLocationProvider:
    """Location provider that always reports the same position."""

    def __init__(self, position: Coordinates) -> None:
        self.position = position

    async def get_current_position(self) -> Coordinates:
        return self.position


class ProximityAlert(BaseModel):
    """A saved restaurant close to the user."""

    model_config = ConfigDict(frozen=True)

    restaurant: RestaurantRecord = Field(..., description="Nearby restaurant")
    distance_meters: float = Field(..., ge=0, description="Distance from the user")

    @property
    def message(self) -> str:
        rating = (
            f"{self.restaurant.rating:g}⭐" if self.restaurant.rating is not None else "unrated"
        )
        return (
            f"{self.restaurant.name} is {round(self.distance_meters)}m away - {rating}"
        )


class ProximityMonitor:
    """Finds saved restaurants within walking distance of the user."""

    def __init__(
        self,
        store: RestaurantStore,
        location_provider: LocationProvider | None = None,
        radius_meters: float = PROXIMITY_RADIUS_METERS,
    ) -> None:
        self.store = store
        self.location_provider = location_provider
        self.radius_meters = radius_meters

    def check(self, position: Coordinates) -> list[ProximityAlert]:
        """Get alerts for restaurants within the radius, nearest first.

        Args:
            position: The user's current position

        Returns:
            List of ProximityAlert objects
        """
        alerts = []
        for restaurant in self.store.list():
            distance = distance_meters(position, restaurant.coordinates)
            if distance <= self.radius_meters:
                alerts.append(
                    ProximityAlert(restaurant=restaurant, distance_meters=distance)
                )

        alerts.sort(key=lambda alert: alert.distance_meters)
        for alert in alerts:
            logger.info(f"Restaurant nearby: {alert.message}")
        return alerts

    async def check_current(self) -> list[ProximityAlert]:
        """Get alerts for the position reported by the location provider."""
        if self.location_provider is None:
            msg = "No location provider configured"
            raise ValueError(msg)

        position = await self.location_provider.get_current_position()
        return self.check(position)

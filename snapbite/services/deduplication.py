"""Duplicate detection for saved restaurants."""

import logging
from collections.abc import Iterable

from snapbite.models import RestaurantRecord
from snapbite.services.geo import DUPLICATE_RADIUS_METERS, distance_meters

logger = logging.getLogger(__name__)


class DeduplicationGate:
    """Decides whether a candidate restaurant is already in the list.

    A candidate duplicates an existing entry when either the names match
    case-insensitively or the two are strictly closer than ``radius_meters``.
    Screenshots of one venue often OCR to slightly different names but land
    on the same spot, while a chain name at another address is still the
    same name, so both signals are checked.
    """

    def __init__(self, radius_meters: float = DUPLICATE_RADIUS_METERS) -> None:
        self.radius_meters = radius_meters

    def find_duplicate(
        self, candidate: RestaurantRecord, existing: Iterable[RestaurantRecord]
    ) -> RestaurantRecord | None:
        """Return the first existing record the candidate collides with.

        Args:
            candidate: Restaurant about to be saved
            existing: Restaurants already saved

        Returns:
            The matching record, or None if the candidate is new
        """
        candidate_name = candidate.name.casefold()
        for record in existing:
            if record.name.casefold() == candidate_name:
                logger.info(f"Duplicate by name: '{candidate.name}' ({record.id})")
                return record

            distance = distance_meters(candidate.coordinates, record.coordinates)
            if distance < self.radius_meters:
                logger.info(
                    f"Duplicate by location: '{candidate.name}' is {distance:.0f}m "
                    f"from '{record.name}' ({record.id})"
                )
                return record

        return None

    def is_duplicate(
        self, candidate: RestaurantRecord, existing: Iterable[RestaurantRecord]
    ) -> bool:
        """Check whether the candidate duplicates any existing record."""
        return self.find_duplicate(candidate, existing) is not None

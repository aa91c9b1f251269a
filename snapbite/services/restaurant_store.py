"""Storage for the user's saved restaurants."""

import logging
import threading
from pathlib import Path
from typing import Any, Literal

import pydantic
from pydantic import TypeAdapter

from snapbite.errors import DuplicateIdError, RecordNotFoundError, ValidationError
from snapbite.models import Coordinates, RestaurantRecord, RestaurantUpdate
from snapbite.services.deduplication import DeduplicationGate
from snapbite.services.geo import distance_meters

logger = logging.getLogger(__name__)

SortKey = Literal["date", "name", "distance"]

_records_adapter = TypeAdapter(list[RestaurantRecord])
_entries_adapter = TypeAdapter(list[Any])


class RestaurantStore:
    """Holds saved restaurants, optionally persisted to a JSON file.

    The store is an ordinary object owned by whoever creates it; there is no
    module-level instance. When ``path`` is given, the file is read once on
    creation and rewritten after every change.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        """Initialize the store.

        Args:
            path: JSON file to load from and save to (in-memory if None)
        """
        self.path = Path(path) if path is not None else None
        self._records: dict[str, RestaurantRecord] = {}
        self._lock = threading.RLock()

        if self.path is not None:
            self._load()

    def _load(self) -> None:
        if not self.path.exists():
            logger.info(f"No saved restaurants at {self.path}")
            return

        try:
            entries = _entries_adapter.validate_json(self.path.read_bytes())
        except (OSError, pydantic.ValidationError):
            logger.exception(f"Failed to load restaurants from {self.path}")
            self._set_aside()
            return

        skipped = 0
        for entry in entries:
            try:
                record = RestaurantRecord.model_validate(entry)
            except pydantic.ValidationError:
                logger.exception(f"Skipping invalid restaurant entry in {self.path}")
                skipped += 1
                continue
            self._records[record.id] = record

        logger.info(f"Loaded {len(self._records)} restaurants from {self.path}")
        if skipped:
            self._set_aside()
            self._save()

    def _set_aside(self) -> None:
        """Keep an unreadable file as ``<name>.corrupt`` so it is never overwritten."""
        backup = self.path.with_suffix(self.path.suffix + ".corrupt")
        try:
            self.path.replace(backup)
        except OSError:
            logger.exception(f"Cannot move {self.path} aside, changes will not be saved")
            self.path = None
            return
        logger.warning(f"Moved unreadable restaurant file to {backup}")

    def _save(self) -> None:
        if self.path is None:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_bytes(_records_adapter.dump_json(list(self._records.values())))
        tmp_path.replace(self.path)
        logger.debug(f"Saved {len(self._records)} restaurants to {self.path}")

    def get(self, restaurant_id: str) -> RestaurantRecord | None:
        """Get a restaurant by ID."""
        with self._lock:
            return self._records.get(restaurant_id)

    def insert(self, record: RestaurantRecord) -> RestaurantRecord:
        """Save a new restaurant.

        Args:
            record: Restaurant to save

        Returns:
            The saved record

        Raises:
            DuplicateIdError: If a restaurant with the same ID exists
        """
        with self._lock:
            if record.id in self._records:
                msg = f"Restaurant ID already in use: {record.id}"
                raise DuplicateIdError(msg)

            self._records[record.id] = record
            self._save()

        logger.info(f"Saved restaurant '{record.name}' ({record.id})")
        return record

    def insert_if_not_duplicate(
        self, record: RestaurantRecord, gate: DeduplicationGate
    ) -> RestaurantRecord | None:
        """Save a restaurant unless it duplicates one already saved.

        The duplicate check and the insert happen under one lock, so two
        ingestions cannot both pass the check and then both insert.

        Args:
            record: Candidate restaurant
            gate: Duplicate detection policy

        Returns:
            The existing record the candidate duplicates, or None if it was saved
        """
        with self._lock:
            duplicate = gate.find_duplicate(record, self._records.values())
            if duplicate is not None:
                return duplicate
            self.insert(record)
            return None

    def update(
        self, restaurant_id: str, changes: RestaurantUpdate | dict[str, Any]
    ) -> RestaurantRecord:
        """Apply a partial update to a saved restaurant.

        Marking a restaurant visited stamps ``visited_date``; marking it
        unvisited clears it.

        Args:
            restaurant_id: Restaurant ID
            changes: Fields to change

        Returns:
            The updated record

        Raises:
            RecordNotFoundError: If no restaurant has this ID
            ValidationError: If the changes are invalid
        """
        try:
            if not isinstance(changes, RestaurantUpdate):
                changes = RestaurantUpdate.model_validate(changes)

            with self._lock:
                current = self._records.get(restaurant_id)
                if current is None:
                    raise RecordNotFoundError(restaurant_id)

                updated = changes.apply_to(current)
                self._records[restaurant_id] = updated
                self._save()
        except pydantic.ValidationError as e:
            msg = f"Invalid restaurant update: {e}"
            raise ValidationError(msg) from e

        logger.info(f"Updated restaurant {restaurant_id}")
        return updated

    def delete(self, restaurant_id: str) -> bool:
        """Permanently remove a restaurant.

        Returns:
            True if a restaurant was removed, False if the ID was unknown
        """
        with self._lock:
            removed = self._records.pop(restaurant_id, None)
            if removed is None:
                logger.warning(f"Attempted to delete non-existent restaurant {restaurant_id}")
                return False
            self._save()

        logger.info(f"Deleted restaurant '{removed.name}' ({restaurant_id})")
        return True

    def search(self, query: str) -> list[RestaurantRecord]:
        """Find restaurants whose name, cuisine, address or tags contain the query."""
        needle = query.strip().casefold()
        if not needle:
            return self.list()

        def matches(record: RestaurantRecord) -> bool:
            haystacks = [record.name, record.cuisine, record.address, *record.tags]
            return any(needle in text.casefold() for text in haystacks)

        return [record for record in self.list() if matches(record)]

    def nearby(self, origin: Coordinates, radius_km: float) -> list[RestaurantRecord]:
        """Get restaurants within ``radius_km`` of a point, nearest first."""
        radius_meters = radius_km * 1000
        with_distance = [
            (distance_meters(origin, record.coordinates), record)
            for record in self.list()
        ]
        return [
            record
            for distance, record in sorted(with_distance, key=lambda item: item[0])
            if distance <= radius_meters
        ]

    def sorted_by(
        self, key: SortKey, origin: Coordinates | None = None
    ) -> list[RestaurantRecord]:
        """Get all restaurants sorted for display.

        Args:
            key: "date" (newest first), "name", or "distance" from ``origin``
            origin: Reference point, required when sorting by distance

        Returns:
            Sorted list of restaurants
        """
        records = self.list()
        if key == "date":
            return sorted(records, key=lambda r: r.date_added, reverse=True)
        if key == "name":
            return sorted(records, key=lambda r: r.name.casefold())
        if key == "distance":
            if origin is None:
                msg = "A reference location is required to sort by distance"
                raise ValueError(msg)
            return sorted(records, key=lambda r: distance_meters(origin, r.coordinates))

        msg = f"Unknown sort key: {key}"
        raise ValueError(msg)

    def __len__(self) -> int:
        return len(self._records)

    # Defined last so the name does not shadow the builtin in annotations above.
    def list(self) -> "list[RestaurantRecord]":
        """Get all saved restaurants in the order they were added."""
        with self._lock:
            return list(self._records.values())

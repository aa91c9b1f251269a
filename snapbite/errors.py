"""Exception types raised and absorbed by the SnapBite core."""


class SnapBiteError(Exception):
    """Base class for all SnapBite errors."""


class VisionError(SnapBiteError):
    """Base class for failures while extracting data from a screenshot."""


class TransportError(VisionError):
    """An HTTP call failed or returned a non-success status."""


class SchemaError(VisionError):
    """A response did not have the expected structure."""


class IncompleteDataError(VisionError):
    """Parsed data is missing required fields."""


class NoResultsError(SnapBiteError):
    """A geocoding provider answered but found nothing for the address."""


class ValidationError(SnapBiteError, ValueError):
    """User-supplied restaurant details are invalid."""


class GeocodingExhausted(SnapBiteError):
    """Every geocoding provider failed for an address.

    Never escapes the resolver; it is logged and replaced by the default
    coordinate.
    """

    def __init__(self, address: str, failures: list[Exception]) -> None:
        self.address = address
        self.failures = failures
        reasons = "; ".join(str(failure) for failure in failures) or "no providers"
        super().__init__(f"Could not geocode {address!r}: {reasons}")


class RecordNotFoundError(SnapBiteError, KeyError):
    """No restaurant with the given id exists in the store."""

    def __str__(self) -> str:
        return f"Restaurant not found: {self.args[0]}"


class DuplicateIdError(SnapBiteError, ValueError):
    """A restaurant with the same id is already stored."""

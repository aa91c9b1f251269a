"""SnapBite: turn restaurant screenshots into a geolocated, de-duplicated list."""

__version__ = "0.1.0"

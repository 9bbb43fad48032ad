"""API route modules."""

from . import assignments, geocoding, health

__all__ = ["assignments", "geocoding", "health"]

"""Exceptions surfaced by the assignment engine."""

from __future__ import annotations


class GeoAssignError(Exception):
    """Base class for engine failures the caller can act on."""


class AddressNotFound(GeoAssignError):
    """The geocoding provider returned no result for the address text."""

    def __init__(self, address: str) -> None:
        super().__init__(f"Address could not be resolved: '{address}'")
        self.address = address


class ProviderError(GeoAssignError):
    """A geocoding or routing provider was unreachable or refused the request.

    Retryable from the caller's point of view; the engine itself has already
    spent its bounded retry budget when this is raised.
    """

    def __init__(self, provider: str, message: str, *, status: str | None = None) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status = status

"""Distance port — abstract interface for mapping/geocoding providers.

The core consumes a single primitive, the road distance between two points,
and trusts whatever the provider returns.
"""

from abc import ABC, abstractmethod


class DistanceProviderUnavailable(Exception):
    """The provider could not be reached or refused the request."""


class DistancePort(ABC):
    """Abstract interface for distance providers."""

    @abstractmethod
    def distance_km(self, origin: tuple[float, float], destination: tuple[float, float]) -> float:
        """Return the travel distance in kilometres between two (latitude, longitude) pairs.

        Raises:
            DistanceProviderUnavailable: when the provider cannot answer.
        """
        ...

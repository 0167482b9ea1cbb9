"""Fake distance provider — great-circle distance, no network."""

import math

from logistics.mapping.port import DistancePort, DistanceProviderUnavailable

EARTH_RADIUS_KM = 6371.0088


def haversine_km(origin: tuple[float, float], destination: tuple[float, float]) -> float:
    lat1, lng1 = map(math.radians, origin)
    lat2, lng2 = map(math.radians, destination)
    a = math.sin((lat2 - lat1) / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin((lng2 - lng1) / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


class FakeDistanceProvider(DistancePort):
    """Distance provider that computes haversine distances and records every call."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.failures_remaining = 0

    def configure(self, failures: int = 0):
        """Make the next ``failures`` calls raise DistanceProviderUnavailable."""
        self.failures_remaining = failures

    def distance_km(self, origin, destination) -> float:
        self.calls.append((origin, destination))
        if self.failures_remaining:
            self.failures_remaining -= 1
            raise DistanceProviderUnavailable("Mapping provider unavailable")
        return round(haversine_km(origin, destination), 3)

    def reset(self):
        self.calls.clear()
        self.failures_remaining = 0
